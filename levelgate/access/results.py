from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from fastapi import status


class AccessFailure(str, Enum):
    INVALID_INPUT = "invalid_input"
    LEVEL_NOT_FOUND = "level_not_found"
    BEGINNER_ALWAYS_ACCESSIBLE = "beginner_always_accessible"
    ALREADY_HAS_ACCESS = "already_has_access"
    DUPLICATE_PENDING_REQUEST = "duplicate_pending_request"
    REQUEST_NOT_FOUND = "request_not_found"
    NOT_PENDING = "not_pending"
    STORE_FAILURE = "store_failure"


@dataclass(frozen=True)
class FailurePolicy:
    status_code: int
    message: str


FAILURE_POLICIES: dict[AccessFailure, FailurePolicy] = {
    AccessFailure.INVALID_INPUT: FailurePolicy(
        status.HTTP_400_BAD_REQUEST, "Invalid level format"
    ),
    AccessFailure.LEVEL_NOT_FOUND: FailurePolicy(
        status.HTTP_404_NOT_FOUND, "Level not found"
    ),
    AccessFailure.BEGINNER_ALWAYS_ACCESSIBLE: FailurePolicy(
        status.HTTP_400_BAD_REQUEST, "Beginner level is always accessible"
    ),
    AccessFailure.ALREADY_HAS_ACCESS: FailurePolicy(
        status.HTTP_409_CONFLICT, "You already have access to this level"
    ),
    AccessFailure.DUPLICATE_PENDING_REQUEST: FailurePolicy(
        status.HTTP_409_CONFLICT,
        "You already have a pending request for this level",
    ),
    AccessFailure.REQUEST_NOT_FOUND: FailurePolicy(
        status.HTTP_404_NOT_FOUND, "Access request not found"
    ),
    AccessFailure.NOT_PENDING: FailurePolicy(
        status.HTTP_409_CONFLICT, "Access request is not pending"
    ),
    AccessFailure.STORE_FAILURE: FailurePolicy(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"
    ),
}


@dataclass(frozen=True)
class AccessResult:
    """
    Outcome of an access operation.

    Exactly one of `request_id` / `failure` is set.
    """

    request_id: Optional[str] = None
    failure: Optional[AccessFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def policy(self) -> Optional[FailurePolicy]:
        if self.failure is None:
            return None
        return FAILURE_POLICIES[self.failure]

    @classmethod
    def success(cls, request_id: str) -> "AccessResult":
        return cls(request_id=request_id)

    @classmethod
    def fail(cls, failure: AccessFailure) -> "AccessResult":
        return cls(failure=failure)
