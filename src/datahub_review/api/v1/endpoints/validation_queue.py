"""Validation queue endpoints: per-admin review claims."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, Response, status
from sqlalchemy.orm import Session

from datahub_review.api.v1.dependencies import (
    AdminQueryDep,
    BulkCoordinatorDep,
    QueueServiceDep,
    RequestTimeoutDep,
    SessionFactoryDep,
    resolve_admin,
    submission_to_response,
    submissions_to_response,
)
from datahub_review.core.errors import PreconditionFailed
from datahub_review.db.store import run_unit_of_work
from datahub_review.models import Submission, ValidationQueueEntry
from datahub_review.schemas.bulk import BulkResultResponse
from datahub_review.schemas.validation_queue import (
    DequeueResponse,
    EnqueueResponse,
    QueueEntryResponse,
    QueueRequest,
)

router = APIRouter(prefix="/validation-queue", tags=["validation-queue"])


def _entry_response(entry: ValidationQueueEntry, submission=None) -> QueueEntryResponse:
    return QueueEntryResponse(
        submission_id=entry.submission_id,
        admin_email=entry.admin_email,
        created_at=entry.created_at,
        submission=submission,
    )


@router.post(
    "",
    response_model=EnqueueResponse | BulkResultResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_to_queue(
    payload: QueueRequest,
    response: Response,
    queue: QueueServiceDep,
    coordinator: BulkCoordinatorDep,
    session_factory: SessionFactoryDep,
    timeout: RequestTimeoutDep,
) -> EnqueueResponse | BulkResultResponse:
    """Place one submission, or a batch of them, in the admin's queue.

    A batch reports per-id outcomes and answers 200; a single enqueue answers
    201 and raises on failure.
    """
    admin = resolve_admin(payload.admin_email)

    if payload.is_batch:
        result = await coordinator.enqueue(payload.submission_ids or [], admin)
        response.status_code = status.HTTP_200_OK
        return BulkResultResponse.from_result(result)

    if not payload.submission_id:
        raise PreconditionFailed("submissionId or submissionIds is required")
    submission_id = payload.submission_id.strip()

    def _work(session: Session) -> EnqueueResponse:
        result = queue.enqueue(session, admin, submission_id)
        entry = result.entry
        submission = session.get(Submission, submission_id)
        return EnqueueResponse(
            created=result.created,
            item=_entry_response(entry, submission_to_response(session, submission)),
        )

    return await run_unit_of_work(session_factory, _work, timeout=timeout)


@router.delete("", response_model=DequeueResponse)
async def remove_from_queue(
    queue: QueueServiceDep,
    session_factory: SessionFactoryDep,
    timeout: RequestTimeoutDep,
    payload: QueueRequest | None = None,
    submission_id: Annotated[str | None, Query(alias="submissionId")] = None,
    admin_email: Annotated[str | None, Query(alias="adminEmail")] = None,
) -> DequeueResponse:
    """Drop claims without deciding the submissions.

    Accepts the request body or ``submissionId``/``adminEmail`` query parameters.
    """
    payload = payload or QueueRequest(submission_id=submission_id, admin_email=admin_email)
    admin = resolve_admin(payload.admin_email or admin_email)

    if payload.is_batch:
        ids = [sid.strip() for sid in payload.submission_ids or [] if sid and sid.strip()]
        if not ids:
            raise PreconditionFailed("No submissions selected")
        count = await run_unit_of_work(
            session_factory,
            lambda session: queue.dequeue_batch(session, admin, ids),
            timeout=timeout,
        )
        return DequeueResponse(count=count)

    target = (payload.submission_id or submission_id or "").strip()
    if not target:
        raise PreconditionFailed("submissionId or submissionIds is required")
    removed = await run_unit_of_work(
        session_factory,
        lambda session: queue.dequeue(session, admin, target),
        timeout=timeout,
    )
    return DequeueResponse(removed=removed)


@router.get("", response_model=list[QueueEntryResponse])
async def list_queue(
    admin: AdminQueryDep,
    queue: QueueServiceDep,
    session_factory: SessionFactoryDep,
    timeout: RequestTimeoutDep,
) -> list[QueueEntryResponse]:
    """Return the admin's queue, oldest claim first, with submission details."""

    def _work(session: Session) -> list[QueueEntryResponse]:
        rows = queue.list_for_admin(session, admin.email)
        details = submissions_to_response(session, [submission for _, submission in rows])
        return [_entry_response(entry, detail) for (entry, _), detail in zip(rows, details)]

    return await run_unit_of_work(session_factory, _work, timeout=timeout)
