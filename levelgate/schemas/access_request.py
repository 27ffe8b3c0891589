# levelgate/schemas/access_request.py
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, StrictStr, model_validator

from levelgate.db.models import AccessRequest


class AccessRequestCreate(BaseModel):
    """Body of a student access request. Name checks happen in the service."""

    level: Optional[StrictStr] = None

    model_config = ConfigDict(extra="ignore")


class AccessRequestCreated(BaseModel):
    success: bool = True
    requestId: str
    message: str = "Access request created successfully"


class AccessRequestItem(BaseModel):
    id: str
    studentId: str
    studentName: str
    levelId: str
    levelName: str
    status: str
    requestedAt: Optional[datetime] = None
    reviewedAt: Optional[datetime] = None
    reviewedBy: Optional[str] = None

    @classmethod
    def from_row(cls, request: AccessRequest, level_name: str) -> "AccessRequestItem":
        return cls(
            id=request.id,
            studentId=request.student_id,
            studentName=request.student_name or "Unknown Student",
            levelId=request.level_id,
            levelName=level_name,
            status=request.status,
            requestedAt=request.requested_at,
            reviewedAt=request.reviewed_at,
            reviewedBy=request.reviewed_by,
        )


class AccessRequestList(BaseModel):
    requests: List[AccessRequestItem]


class ReviewCommand(BaseModel):
    action: Literal["approve", "reject", "deny"]
    requestId: Optional[StrictStr] = None
    requestIds: Optional[List[StrictStr]] = None

    @model_validator(mode="after")
    def require_target(self):
        if not self.requestId and not self.requestIds:
            raise ValueError("Missing required fields: action and requestId/requestIds")
        return self


class ReviewFailure(BaseModel):
    requestId: str
    error: str


class ReviewOutcome(BaseModel):
    success: Optional[bool] = None
    successful: Optional[List[str]] = None
    failed: Optional[List[ReviewFailure]] = None

    model_config = ConfigDict(extra="ignore")
