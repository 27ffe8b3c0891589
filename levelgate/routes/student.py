# levelgate/routes/student.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from levelgate.access import service
from levelgate.access.store import AccessStore, get_store
from levelgate.db.models import AccessStatus
from levelgate.routes.errors import raise_for_failure
from levelgate.schemas.access_request import (
    AccessRequestCreate,
    AccessRequestCreated,
    AccessRequestItem,
    AccessRequestList,
)
from levelgate.schemas.level import AccessibleLevels
from levelgate.security.auth import get_current_user
from levelgate.security.models import AuthenticatedUser

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/access-request", response_model=AccessRequestCreated)
async def create_access_request(
    body: AccessRequestCreate,
    store: AccessStore = Depends(get_store),
    user: AuthenticatedUser = Depends(get_current_user),
):
    """Ask for access to a gated level."""
    result = await service.request_access(store, user.sub, body.level, user.username)
    return AccessRequestCreated(requestId=raise_for_failure(result))


@router.get("/access-requests", response_model=AccessRequestList)
async def list_my_requests(
    status: Optional[AccessStatus] = None,
    store: AccessStore = Depends(get_store),
    user: AuthenticatedUser = Depends(get_current_user),
):
    rows = await service.list_requests(store, user.sub, status)
    return AccessRequestList(
        requests=[AccessRequestItem.from_row(req, name) for req, name in rows]
    )


@router.get("/levels", response_model=AccessibleLevels)
async def my_levels(
    store: AccessStore = Depends(get_store),
    user: AuthenticatedUser = Depends(get_current_user),
):
    return AccessibleLevels(levels=await service.accessible_levels(store, user.sub))
