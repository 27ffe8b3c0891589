# levelgate/access/review.py
from __future__ import annotations

import logging
from enum import Enum
from typing import Sequence

from sqlalchemy.exc import SQLAlchemyError

from levelgate.access.results import FAILURE_POLICIES, AccessFailure, AccessResult
from levelgate.access.store import AccessStore
from levelgate.db.models import AccessRequest, AccessStatus

logger = logging.getLogger(__name__)


class ReviewAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"

    @property
    def target_status(self) -> AccessStatus:
        if self is ReviewAction.APPROVE:
            return AccessStatus.APPROVED
        return AccessStatus.REJECTED


async def list_pending(store: AccessStore) -> Sequence[tuple[AccessRequest, str]]:
    return await store.list_pending()


async def review_request(
    store: AccessStore, request_id: str, reviewer_id: str, action: ReviewAction
) -> AccessResult:
    """Move a pending request to approved or rejected."""
    try:
        request = await store.get_request(request_id)
        if request is None:
            return AccessResult.fail(AccessFailure.REQUEST_NOT_FOUND)

        if request.status != AccessStatus.PENDING.value:
            return AccessResult.fail(AccessFailure.NOT_PENDING)

        await store.mark_reviewed(request, action.target_status, reviewer_id)

    except SQLAlchemyError:
        logger.exception("Failed to %s access request %s", action.value, request_id)
        return AccessResult.fail(AccessFailure.STORE_FAILURE)

    logger.info(
        "Access request %s %s by %s",
        request_id,
        action.target_status.value,
        reviewer_id,
    )
    return AccessResult.success(request_id)


async def approve(store: AccessStore, request_id: str, reviewer_id: str) -> AccessResult:
    return await review_request(store, request_id, reviewer_id, ReviewAction.APPROVE)


async def reject(store: AccessStore, request_id: str, reviewer_id: str) -> AccessResult:
    return await review_request(store, request_id, reviewer_id, ReviewAction.REJECT)


async def bulk_review(
    store: AccessStore,
    request_ids: Sequence[str],
    reviewer_id: str,
    action: ReviewAction,
) -> dict[str, list]:
    """Review each id independently; one failure does not stop the rest."""
    successful: list[str] = []
    failed: list[dict[str, str]] = []

    for request_id in request_ids:
        result = await review_request(store, request_id, reviewer_id, action)
        if result.failure is None:
            successful.append(request_id)
        else:
            failed.append(
                {
                    "requestId": request_id,
                    "error": FAILURE_POLICIES[result.failure].message,
                }
            )

    return {"successful": successful, "failed": failed}
