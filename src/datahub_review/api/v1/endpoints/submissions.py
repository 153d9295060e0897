"""Submission review endpoints for the DataHub Review API."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from datahub_review.api.v1.dependencies import (
    BulkCoordinatorDep,
    RequestTimeoutDep,
    SessionFactoryDep,
    TransitionEngineDep,
    resolve_admin,
    submission_to_response,
    submissions_to_response,
)
from datahub_review.core.errors import Conflict, NotFound
from datahub_review.core.settings import settings
from datahub_review.db.store import run_unit_of_work
from datahub_review.models import SubmissionStatus
from datahub_review.repositories.submission_repo import SubmissionRepository
from datahub_review.schemas.bulk import BulkRejectRequest, BulkRequest, BulkResultResponse
from datahub_review.schemas.submission import (
    RejectRequest,
    SubmissionCreate,
    SubmissionResponse,
    TransitionResponse,
    ValidateRequest,
)
from datahub_review.services.transitions import TransitionResult

router = APIRouter(prefix="/submissions", tags=["submissions"])

ListingLimit = Annotated[int, Query(ge=1, le=settings.listing_limit_max)]


def _transition_response(session: Session, result: TransitionResult) -> TransitionResponse:
    return TransitionResponse(
        changed=result.changed,
        submission=submission_to_response(session, result.submission),
        removed_from_queues=result.removed_from_queues,
    )


@router.post("", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
async def create_submission(
    payload: SubmissionCreate,
    session_factory: SessionFactoryDep,
    timeout: RequestTimeoutDep,
) -> SubmissionResponse:
    """Register a pending submission for a file stored by the upload layer."""

    def _work(session: Session) -> SubmissionResponse:
        repo = SubmissionRepository(session)
        try:
            submission = repo.create(
                submission_id=payload.id,
                user_email=payload.user_email.strip().lower(),
                file_name=payload.file_name,
                file_type=payload.file_type,
                file_size=payload.file_size,
            )
        except IntegrityError as err:
            session.rollback()
            raise Conflict(
                f"Submission {payload.id} already exists",
                submission_id=payload.id,
            ) from err
        return submission_to_response(session, submission, [])

    return await run_unit_of_work(session_factory, _work, timeout=timeout)


@router.get("", response_model=list[SubmissionResponse])
async def list_user_submissions(
    session_factory: SessionFactoryDep,
    timeout: RequestTimeoutDep,
    user_email: Annotated[str, Query(alias="userEmail", min_length=3)],
    limit: ListingLimit = 1000,
) -> list[SubmissionResponse]:
    """List a contributor's own submissions, newest first."""

    def _work(session: Session) -> list[SubmissionResponse]:
        submissions = SubmissionRepository(session).list_for_user(
            user_email.strip().lower(), limit=limit
        )
        return submissions_to_response(session, submissions)

    return await run_unit_of_work(session_factory, _work, timeout=timeout)


async def _list_by_status(
    session_factory,
    target: SubmissionStatus,
    limit: int,
    timeout: float,
) -> list[SubmissionResponse]:
    def _work(session: Session) -> list[SubmissionResponse]:
        submissions = SubmissionRepository(session).list_by_status(target, limit=limit)
        return submissions_to_response(session, submissions)

    return await run_unit_of_work(session_factory, _work, timeout=timeout)


@router.get("/pending", response_model=list[SubmissionResponse])
async def list_pending_submissions(
    session_factory: SessionFactoryDep,
    timeout: RequestTimeoutDep,
    limit: ListingLimit = settings.listing_limit_default,
) -> list[SubmissionResponse]:
    """Submissions awaiting a decision, oldest first."""
    return await _list_by_status(session_factory, SubmissionStatus.PENDING, limit, timeout)


@router.get("/validated", response_model=list[SubmissionResponse])
async def list_validated_submissions(
    session_factory: SessionFactoryDep,
    timeout: RequestTimeoutDep,
    limit: ListingLimit = settings.listing_limit_default,
) -> list[SubmissionResponse]:
    """Validated submissions, newest first."""
    return await _list_by_status(session_factory, SubmissionStatus.VALIDATED, limit, timeout)


@router.get("/rejected", response_model=list[SubmissionResponse])
async def list_rejected_submissions(
    session_factory: SessionFactoryDep,
    timeout: RequestTimeoutDep,
    limit: ListingLimit = settings.listing_limit_default,
) -> list[SubmissionResponse]:
    """Rejected submissions, newest first."""
    return await _list_by_status(session_factory, SubmissionStatus.REJECTED, limit, timeout)


# Bulk routes are registered before /{submission_id}/... so "bulk" is never read as an id.
@router.post("/bulk/validate", response_model=BulkResultResponse)
async def bulk_validate_submissions(
    payload: BulkRequest,
    coordinator: BulkCoordinatorDep,
) -> BulkResultResponse:
    """Validate many submissions; reports which ones succeeded."""
    admin = resolve_admin(payload.admin_email)
    result = await coordinator.validate(payload.submission_ids, admin)
    return BulkResultResponse.from_result(result)


@router.post("/bulk/reject", response_model=BulkResultResponse)
async def bulk_reject_submissions(
    payload: BulkRejectRequest,
    coordinator: BulkCoordinatorDep,
) -> BulkResultResponse:
    """Reject many submissions with one shared reason and feedback."""
    admin = resolve_admin(payload.admin_email)
    result = await coordinator.reject(
        payload.submission_ids,
        admin,
        reason=payload.rejection_reason,
        feedback=payload.rejection_feedback,
    )
    return BulkResultResponse.from_result(result)


@router.get("/{submission_id}", response_model=SubmissionResponse)
async def get_submission(
    submission_id: str,
    session_factory: SessionFactoryDep,
    timeout: RequestTimeoutDep,
) -> SubmissionResponse:
    """Return the current record, including status and rejection metadata."""

    def _work(session: Session) -> SubmissionResponse:
        submission = SubmissionRepository(session).get_by_id(submission_id)
        if submission is None:
            raise NotFound(f"Submission {submission_id} not found", submission_id=submission_id)
        return submission_to_response(session, submission)

    return await run_unit_of_work(session_factory, _work, timeout=timeout)


@router.post("/{submission_id}/validate", response_model=TransitionResponse)
async def validate_submission(
    submission_id: str,
    session_factory: SessionFactoryDep,
    engine: TransitionEngineDep,
    timeout: RequestTimeoutDep,
    payload: ValidateRequest | None = None,
) -> TransitionResponse:
    """Approve a submission; repeating the call is harmless."""
    admin = resolve_admin(payload.admin_email if payload else None)

    def _work(session: Session) -> TransitionResponse:
        return _transition_response(session, engine.validate(session, submission_id, admin))

    return await run_unit_of_work(session_factory, _work, timeout=timeout)


@router.post("/{submission_id}/reject", response_model=TransitionResponse)
async def reject_submission(
    submission_id: str,
    payload: RejectRequest,
    session_factory: SessionFactoryDep,
    engine: TransitionEngineDep,
    timeout: RequestTimeoutDep,
) -> TransitionResponse:
    """Reject a submission; a reason or feedback must be supplied."""
    admin = resolve_admin(payload.admin_email)

    def _work(session: Session) -> TransitionResponse:
        result = engine.reject(
            session,
            submission_id,
            admin,
            reason=payload.rejection_reason,
            feedback=payload.rejection_feedback,
        )
        return _transition_response(session, result)

    return await run_unit_of_work(session_factory, _work, timeout=timeout)
