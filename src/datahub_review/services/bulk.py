"""Bulk operation coordinator.

Applies one operation (enqueue, validate or reject) to many submissions.
Each item runs as its own unit of work in its own session, concurrently with
the others and bounded by a semaphore. The whole fan-out shares one deadline
(`STORE_TIMEOUT_SECONDS` by default), so a batch takes at most about one
timeout however many items it holds. There is no cross-item transaction: an
item's failure is recorded against its id and never undoes another item's
success.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from datahub_review.core.errors import (
    AlreadyTerminal,
    EmptySelection,
    OperationTimeout,
    PreconditionFailed,
    ReviewError,
    StoreUnavailable,
)
from datahub_review.core.identity import AdminIdentity
from datahub_review.core.settings import settings
from datahub_review.db.store import run_unit_of_work
from datahub_review.db.time import utcnow
from datahub_review.models import RejectionReason, Submission, SubmissionStatus
from datahub_review.repositories.submission_repo import SubmissionRepository
from datahub_review.services.transitions import TransitionEngine, normalize_rejection
from datahub_review.services.validation_queue import ValidationQueueService

logger = logging.getLogger(__name__)


class BulkOperation(str, Enum):
    ENQUEUE = "enqueue"
    VALIDATE = "validate"
    REJECT = "reject"


TARGET_STATUS: dict[BulkOperation, SubmissionStatus] = {
    BulkOperation.VALIDATE: SubmissionStatus.VALIDATED,
    BulkOperation.REJECT: SubmissionStatus.REJECTED,
}


@dataclass
class BulkItemResult:
    """Outcome for one submission id within a bulk request."""

    submission_id: str
    success: bool
    status: SubmissionStatus | None = None
    error_kind: str | None = None
    error_detail: str | None = None

    @property
    def outcome(self) -> str:
        return "success" if self.success else "failure"


@dataclass
class BulkOperationResult:
    """Aggregate of a bulk request, keyed by submission id."""

    operation: BulkOperation
    items: dict[str, BulkItemResult] = field(default_factory=dict)

    @property
    def succeeded_ids(self) -> list[str]:
        return [sid for sid, item in self.items.items() if item.success]

    @property
    def failed_ids(self) -> list[str]:
        return [sid for sid, item in self.items.items() if not item.success]

    @property
    def success_count(self) -> int:
        return len(self.succeeded_ids)

    @property
    def failure_count(self) -> int:
        return len(self.items) - self.success_count


class BulkOperationCoordinator:
    """Fans a single operation out over many submission ids."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        engine: TransitionEngine | None = None,
        queue: ValidationQueueService | None = None,
        max_concurrency: int | None = None,
        item_timeout: float | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.queue = queue or ValidationQueueService()
        self.engine = engine or TransitionEngine(self.queue)
        self.max_concurrency = max(1, max_concurrency or settings.bulk_max_concurrency)
        self.item_timeout = item_timeout if item_timeout is not None else settings.store_timeout_seconds

    async def enqueue(self, submission_ids: list[str], admin: AdminIdentity) -> BulkOperationResult:
        return await self.run(BulkOperation.ENQUEUE, submission_ids, admin)

    async def validate(self, submission_ids: list[str], admin: AdminIdentity) -> BulkOperationResult:
        return await self.run(BulkOperation.VALIDATE, submission_ids, admin)

    async def reject(
        self,
        submission_ids: list[str],
        admin: AdminIdentity,
        reason: RejectionReason | str | None = None,
        feedback: str | None = None,
    ) -> BulkOperationResult:
        return await self.run(
            BulkOperation.REJECT, submission_ids, admin, reason=reason, feedback=feedback
        )

    async def run(
        self,
        operation: BulkOperation,
        submission_ids: list[str],
        admin: AdminIdentity,
        *,
        reason: RejectionReason | str | None = None,
        feedback: str | None = None,
    ) -> BulkOperationResult:
        """Apply ``operation`` to every id and collect per-item outcomes.

        Args:
            operation: Which operation to apply.
            submission_ids: Target ids; duplicates are collapsed.
            admin: Acting admin.
            reason: Shared rejection reason (reject only).
            feedback: Shared rejection feedback (reject only).

        Returns:
            Aggregate result; item order follows the first occurrence of each id.

        Raises:
            EmptySelection: No ids were given.
            PreconditionFailed: Too many ids, or reject without reason/feedback.
            StoreUnavailable: Every item failed because the store was unreachable.
        """
        ids = list(dict.fromkeys(sid.strip() for sid in submission_ids if sid and sid.strip()))
        if not ids:
            raise EmptySelection("No submissions selected")
        if len(ids) > settings.bulk_max_items:
            raise PreconditionFailed(
                f"At most {settings.bulk_max_items} submissions can be processed per request"
            )

        if operation is BulkOperation.REJECT:
            reason, feedback = normalize_rejection(reason, feedback)

        started_at = utcnow()
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _bounded(submission_id: str) -> BulkItemResult:
            async with semaphore:
                return await self._run_item(
                    operation, submission_id, admin, reason, feedback, started_at
                )

        tasks = {sid: asyncio.create_task(_bounded(sid)) for sid in ids}
        # One deadline for the whole fan-out; items still running or waiting
        # for a slot when it passes are reported as timed out.
        _, unfinished = await asyncio.wait(tasks.values(), timeout=self.item_timeout)
        for task in unfinished:
            task.cancel()
        if unfinished:
            await asyncio.gather(*unfinished, return_exceptions=True)

        result = BulkOperationResult(operation=operation)
        for submission_id, task in tasks.items():
            if task in unfinished:
                result.items[submission_id] = BulkItemResult(
                    submission_id,
                    False,
                    error_kind=OperationTimeout.kind,
                    error_detail=f"Not finished within {self.item_timeout:g}s",
                )
            else:
                result.items[submission_id] = task.result()

        if result.success_count == 0 and all(
            item.error_kind == StoreUnavailable.kind for item in result.items.values()
        ):
            raise StoreUnavailable(f"Store unavailable for every item of bulk {operation.value}")

        logger.info(
            "Bulk %s by %s: %d succeeded, %d failed",
            operation.value,
            admin.email,
            result.success_count,
            result.failure_count,
        )
        return result

    async def _run_item(
        self,
        operation: BulkOperation,
        submission_id: str,
        admin: AdminIdentity,
        reason: RejectionReason | None,
        feedback: str | None,
        started_at: datetime,
    ) -> BulkItemResult:
        work = self._work_for(operation, submission_id, admin, reason, feedback)
        try:
            outcome, persisted = await run_unit_of_work(
                self.session_factory, work, timeout=self.item_timeout
            )
            if operation is BulkOperation.ENQUEUE:
                return BulkItemResult(submission_id, True, status=SubmissionStatus.PENDING)

            target = TARGET_STATUS[operation]
            replayed = _is_own_write(outcome.submission, admin, target, started_at)
            if not outcome.changed and not replayed:
                raise AlreadyTerminal(
                    f"Submission {submission_id} was already {outcome.submission.status.value}",
                    submission_id=submission_id,
                )

            if persisted is not target:
                return BulkItemResult(
                    submission_id,
                    False,
                    status=persisted,
                    error_kind="unconfirmed",
                    error_detail=f"Store reports {persisted.value if persisted else 'no row'}",
                )
            return BulkItemResult(submission_id, True, status=persisted)
        except ReviewError as exc:
            logger.warning(
                "Bulk %s failed for submission %s: %s", operation.value, submission_id, exc.message
            )
            return BulkItemResult(
                submission_id,
                False,
                error_kind=exc.kind,
                error_detail=exc.message,
            )
        except SQLAlchemyError as exc:
            logger.error(
                "Bulk %s hit a store error for submission %s: %s",
                operation.value,
                submission_id,
                exc,
                exc_info=True,
            )
            return BulkItemResult(
                submission_id,
                False,
                error_kind="store_error",
                error_detail=str(exc),
            )

    def _work_for(
        self,
        operation: BulkOperation,
        submission_id: str,
        admin: AdminIdentity,
        reason: RejectionReason | None,
        feedback: str | None,
    ) -> Callable[[Session], tuple[Any, SubmissionStatus | None]]:
        """Build the unit of work for one item: the write, then a re-read of the stored status."""
        if operation is BulkOperation.ENQUEUE:
            def apply(session: Session) -> Any:
                return self.queue.enqueue(session, admin, submission_id)
        elif operation is BulkOperation.VALIDATE:
            def apply(session: Session) -> Any:
                return self.engine.validate(session, submission_id, admin)
        else:
            def apply(session: Session) -> Any:
                return self.engine.reject(session, submission_id, admin, reason, feedback)

        def work(session: Session) -> tuple[Any, SubmissionStatus | None]:
            outcome = apply(session)
            persisted = SubmissionRepository(session).refresh_status(submission_id)
            session.commit()
            return outcome, persisted

        return work


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def _is_own_write(
    submission: Submission,
    admin: AdminIdentity,
    target: SubmissionStatus,
    started_at: datetime,
) -> bool:
    """True when a no-op result is this request's own decision seen again.

    A unit of work retried after its commit landed finds the row already in
    ``target``, decided by this admin after the bulk request started.
    """
    return (
        submission.status is target
        and submission.decided_by == admin.email
        and submission.decided_at is not None
        and _as_utc(submission.decided_at) >= started_at
    )
