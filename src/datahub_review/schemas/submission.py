# src/datahub_review/schemas/submission.py
"""Submission-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from datahub_review.models import FileType, RejectionReason, SubmissionStatus
from datahub_review.schemas.common import ApiModel


class SubmissionCreate(ApiModel):
    """Metadata recorded when the upload layer registers a new file."""

    id: str | None = Field(None, max_length=64, description="Identifier from the upload layer")
    user_email: str = Field(..., min_length=3, max_length=320)
    file_name: str = Field(..., min_length=1)
    file_type: FileType = FileType.DOCUMENT
    file_size: int = Field(0, ge=0, description="Size in bytes")


class SubmissionResponse(ApiModel):
    """Schema for submission information returned by the API."""

    id: str
    user_email: str
    file_name: str
    file_type: FileType
    file_size: int
    status: SubmissionStatus
    rejection_reason: RejectionReason | None = None
    rejection_feedback: str | None = None
    decided_by: str | None = None
    decided_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    queued_by: list[str] = Field(default_factory=list, description="Admins holding it in their queue")


class ValidateRequest(ApiModel):
    """Body of a validate call."""

    admin_email: str | None = None


class RejectRequest(ApiModel):
    """Body of a reject call; a reason or feedback is required."""

    admin_email: str | None = None
    # Plain strings so unknown reasons surface as precondition failures.
    rejection_reason: str | None = None
    rejection_feedback: str | None = None


class TransitionResponse(ApiModel):
    """Result of a validate or reject call."""

    success: bool = True
    changed: bool = Field(..., description="False when the call repeated an existing decision")
    submission: SubmissionResponse
    removed_from_queues: list[str] = Field(default_factory=list)
