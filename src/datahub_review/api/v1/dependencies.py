"""Shared API dependencies for admin identity and store access."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Query, status
from sqlalchemy.orm import Session, sessionmaker

from datahub_review.core.identity import AdminIdentity
from datahub_review.core.settings import settings
from datahub_review.db.session import get_db, get_session_factory
from datahub_review.models import Submission
from datahub_review.repositories.submission_repo import SubmissionRepository
from datahub_review.schemas.submission import SubmissionResponse
from datahub_review.services.bulk import BulkOperationCoordinator
from datahub_review.services.transitions import TransitionEngine
from datahub_review.services.validation_queue import ValidationQueueService

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]

# Type alias for the per-unit-of-work session factory
SessionFactoryDep = Annotated[sessionmaker[Session], Depends(get_session_factory)]


def resolve_admin(raw_email: str | None) -> AdminIdentity:
    """Turn a forwarded admin email into an :class:`AdminIdentity`.

    Args:
        raw_email: Email supplied with the request by the upstream auth layer

    Returns:
        The normalised identity

    Raises:
        ValidationError: If the email is missing or malformed
        HTTPException: If an allow-list is configured and the email is not on it
    """
    admin = AdminIdentity.from_email(raw_email)
    allowlist = settings.admin_allowlist
    if allowlist and admin.email not in allowlist:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not an authorised reviewer",
        )
    return admin


def get_admin_from_query(
    admin_email: Annotated[str | None, Query(alias="adminEmail")] = None,
) -> AdminIdentity:
    """Resolve the admin identity from the ``adminEmail`` query parameter."""
    return resolve_admin(admin_email)


AdminQueryDep = Annotated[AdminIdentity, Depends(get_admin_from_query)]


def get_queue_service() -> ValidationQueueService:
    """Get ValidationQueueService dependency for dependency injection."""
    return ValidationQueueService(settings.queue_claim_policy)


def get_transition_engine(
    queue: Annotated[ValidationQueueService, Depends(get_queue_service)],
) -> TransitionEngine:
    """Get TransitionEngine dependency for dependency injection."""
    return TransitionEngine(queue)


def get_request_timeout(
    x_request_timeout: Annotated[float | None, Header(gt=0)] = None,
) -> float:
    """Per-call store timeout: the caller's ``X-Request-Timeout`` capped by the configured one."""
    if x_request_timeout is None:
        return settings.store_timeout_seconds
    return min(x_request_timeout, settings.store_timeout_seconds)


RequestTimeoutDep = Annotated[float, Depends(get_request_timeout)]


def get_bulk_coordinator(
    session_factory: SessionFactoryDep,
    engine: Annotated[TransitionEngine, Depends(get_transition_engine)],
    timeout: RequestTimeoutDep,
) -> BulkOperationCoordinator:
    """Get BulkOperationCoordinator dependency for dependency injection."""
    return BulkOperationCoordinator(
        session_factory,
        engine=engine,
        queue=engine.queue,
        item_timeout=timeout,
    )


QueueServiceDep = Annotated[ValidationQueueService, Depends(get_queue_service)]
TransitionEngineDep = Annotated[TransitionEngine, Depends(get_transition_engine)]
BulkCoordinatorDep = Annotated[BulkOperationCoordinator, Depends(get_bulk_coordinator)]


def submission_to_response(
    session: Session,
    submission: Submission,
    queued_by: list[str] | None = None,
) -> SubmissionResponse:
    """Serialize a submission together with the admins currently queueing it."""
    if queued_by is None:
        queued_by = SubmissionRepository(session).queued_by([submission.id]).get(submission.id, [])
    response = SubmissionResponse.model_validate(submission)
    response.queued_by = list(queued_by)
    return response


def submissions_to_response(session: Session, submissions: list[Submission]) -> list[SubmissionResponse]:
    """Serialize many submissions with one queue lookup."""
    holders = SubmissionRepository(session).queued_by(s.id for s in submissions)
    return [submission_to_response(session, s, holders.get(s.id, [])) for s in submissions]
