# levelgate/access/service.py
from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from levelgate.access.results import AccessFailure, AccessResult
from levelgate.access.store import AccessStore, PendingRequestExists
from levelgate.db.models import AccessRequest, AccessStatus, Level

logger = logging.getLogger(__name__)


def normalize_level_name(raw: Any) -> Optional[str]:
    """Return the lookup key for a level name, or None when unusable."""
    if not isinstance(raw, str):
        return None
    name = raw.strip().lower()
    return name or None


async def request_access(
    store: AccessStore,
    user_id: str,
    level_name_raw: Any,
    student_name: Optional[str] = None,
) -> AccessResult:
    """
    Create a pending access request for `user_id` on the named level.

    Checks run in a fixed order and stop at the first failure:
    input, level lookup, beginner level, existing access, pending request.
    Only the final insert writes to the store; it records `student_name`
    for the review list.
    """
    level_name = normalize_level_name(level_name_raw)
    if level_name is None:
        return AccessResult.fail(AccessFailure.INVALID_INPUT)

    try:
        level = await store.find_level_by_name(level_name)
        if level is None:
            return AccessResult.fail(AccessFailure.LEVEL_NOT_FOUND)

        if level.is_beginner:
            return AccessResult.fail(AccessFailure.BEGINNER_ALWAYS_ACCESSIBLE)

        if await store.has_request(user_id, level.id, AccessStatus.APPROVED):
            return AccessResult.fail(AccessFailure.ALREADY_HAS_ACCESS)

        if await store.has_request(user_id, level.id, AccessStatus.PENDING):
            return AccessResult.fail(AccessFailure.DUPLICATE_PENDING_REQUEST)

        request_id = await store.create_request(user_id, level.id, student_name)

    except PendingRequestExists:
        return AccessResult.fail(AccessFailure.DUPLICATE_PENDING_REQUEST)
    except SQLAlchemyError:
        logger.exception(
            "Failed to create access request user=%s level=%s", user_id, level_name
        )
        return AccessResult.fail(AccessFailure.STORE_FAILURE)

    logger.info(
        "Access request %s created user=%s level=%s", request_id, user_id, level_name
    )
    return AccessResult.success(request_id)


async def list_requests(
    store: AccessStore, user_id: str, status: Optional[AccessStatus] = None
) -> Sequence[tuple[AccessRequest, str]]:
    return await store.list_student_requests(user_id, status)


async def accessible_levels(store: AccessStore, user_id: str) -> list[str]:
    """Lower-cased names of every level the user may play."""
    levels: Sequence[Level] = await store.list_accessible_levels(user_id)
    names: list[str] = []
    for level in levels:
        name = level.name.lower()
        if name not in names:
            names.append(name)
    return names
