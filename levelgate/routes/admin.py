# levelgate/routes/admin.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from levelgate.access import review
from levelgate.access.store import AccessStore, LevelNameConflict, get_store
from levelgate.routes.errors import raise_for_failure
from levelgate.schemas.access_request import (
    AccessRequestItem,
    AccessRequestList,
    ReviewCommand,
    ReviewOutcome,
)
from levelgate.schemas.level import LevelCatalogueModel, LevelImportResponse
from levelgate.security.auth import require_admin
from levelgate.security.models import AuthenticatedUser

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/access-requests", response_model=AccessRequestList)
async def pending_requests(
    store: AccessStore = Depends(get_store),
    admin: AuthenticatedUser = Depends(require_admin),
):
    rows = await review.list_pending(store)
    return AccessRequestList(
        requests=[AccessRequestItem.from_row(req, name) for req, name in rows]
    )


@router.post(
    "/access-requests",
    response_model=ReviewOutcome,
    response_model_exclude_none=True,
)
async def review_requests(
    body: ReviewCommand,
    store: AccessStore = Depends(get_store),
    admin: AuthenticatedUser = Depends(require_admin),
):
    """Approve or reject one request (`requestId`) or many (`requestIds`)."""
    action = review.ReviewAction.REJECT
    if body.action == "approve":
        action = review.ReviewAction.APPROVE

    if body.requestIds:
        outcome = await review.bulk_review(store, body.requestIds, admin.sub, action)
        return ReviewOutcome(**outcome)

    if not body.requestId:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields: action and requestId/requestIds",
        )

    result = await review.review_request(store, body.requestId, admin.sub, action)
    raise_for_failure(result)
    return ReviewOutcome(success=True)


@router.post(
    "/levels",
    response_model=LevelImportResponse,
    status_code=status.HTTP_200_OK,
)
async def import_levels(
    body: LevelCatalogueModel,
    store: AccessStore = Depends(get_store),
    admin: AuthenticatedUser = Depends(require_admin),
):
    """Import or update levels in the catalogue.

    Intended for use by the CLI. Idempotent upserts on level id; the whole
    import is rejected when a name clashes with another id, ignoring case.
    """
    created = 0
    updated = 0

    try:
        for level in body.levels:
            was_created = await store.upsert_level(
                level_id=level.id,
                name=level.name,
                difficulty_level=level.difficulty_level,
                description=level.description,
            )
            if was_created:
                created += 1
            else:
                updated += 1

        await store.commit()
    except LevelNameConflict as exc:
        await store.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except IntegrityError as exc:
        logger.info("Level import rejected by constraint: %s", exc.orig)
        await store.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Level name already exists.",
        )
    except SQLAlchemyError as exc:
        logger.exception("Failed to import levels: %s", exc)
        await store.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to import levels.",
        )

    logger.info("Level import completed. created=%d updated=%d", created, updated)
    return LevelImportResponse(created=created, updated=updated)
