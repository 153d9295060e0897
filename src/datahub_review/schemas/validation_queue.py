# src/datahub_review/schemas/validation_queue.py
"""Validation queue Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field, model_validator

from datahub_review.schemas.common import ApiModel
from datahub_review.schemas.submission import SubmissionResponse


class QueueRequest(ApiModel):
    """Add or remove one (``submissionId``) or many (``submissionIds``) submissions."""

    admin_email: str | None = None
    submission_id: str | None = None
    submission_ids: list[str] | None = None

    @model_validator(mode="after")
    def _single_or_batch(self) -> QueueRequest:
        if self.submission_id is not None and self.submission_ids is not None:
            raise ValueError("Send either submissionId or submissionIds, not both")
        return self

    @property
    def is_batch(self) -> bool:
        return self.submission_ids is not None


class QueueEntryResponse(ApiModel):
    """One claim in an admin's queue."""

    submission_id: str
    admin_email: str
    created_at: datetime
    submission: SubmissionResponse | None = None


class EnqueueResponse(ApiModel):
    """Result of a single enqueue."""

    success: bool = True
    created: bool = Field(..., description="False when the admin already held the submission")
    item: QueueEntryResponse


class DequeueResponse(ApiModel):
    """Result of a dequeue: ``removed`` for single calls, ``count`` for batches."""

    success: bool = True
    removed: bool | None = None
    count: int | None = None
