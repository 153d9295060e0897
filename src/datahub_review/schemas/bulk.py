# src/datahub_review/schemas/bulk.py
"""Bulk operation request and response schemas."""

from __future__ import annotations

from pydantic import Field

from datahub_review.models import SubmissionStatus
from datahub_review.schemas.common import ApiModel
from datahub_review.services.bulk import BulkOperationResult


class BulkRequest(ApiModel):
    """Ids to act on plus the acting admin."""

    admin_email: str | None = None
    submission_ids: list[str] = Field(default_factory=list)


class BulkRejectRequest(BulkRequest):
    """Bulk reject; the reason and feedback apply to every item."""

    rejection_reason: str | None = None
    rejection_feedback: str | None = None


class BulkItemResponse(ApiModel):
    submission_id: str
    outcome: str
    status: SubmissionStatus | None = None
    error_kind: str | None = None
    error_detail: str | None = None


class BulkResultResponse(ApiModel):
    """Aggregate outcome; inspect ``items`` for per-id errors."""

    operation: str
    success_count: int
    failure_count: int
    succeeded_ids: list[str]
    failed_ids: list[str]
    items: list[BulkItemResponse]

    @classmethod
    def from_result(cls, result: BulkOperationResult) -> BulkResultResponse:
        return cls(
            operation=result.operation.value,
            success_count=result.success_count,
            failure_count=result.failure_count,
            succeeded_ids=result.succeeded_ids,
            failed_ids=result.failed_ids,
            items=[
                BulkItemResponse(
                    submission_id=item.submission_id,
                    outcome=item.outcome,
                    status=item.status,
                    error_kind=item.error_kind,
                    error_detail=item.error_detail,
                )
                for item in result.items.values()
            ],
        )
