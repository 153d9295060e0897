"""Per-admin validation queue.

An entry means "this admin intends to review this submission next". Entries
only ever reference pending submissions: enqueue writes its claim with a
conditional insert that re-checks the status, and the transition engine
removes every entry for a submission in the same transaction that makes it
terminal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from sqlalchemy import DateTime, String, delete, exists, insert, literal, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from datahub_review.core.errors import AlreadyTerminal, Conflict, NotFound
from datahub_review.core.identity import AdminIdentity
from datahub_review.core.settings import QueueClaimPolicy, settings
from datahub_review.db.time import utcnow
from datahub_review.models import Submission, SubmissionStatus, ValidationQueueEntry
from datahub_review.models.admin_action import ACTION_DEQUEUE, ACTION_ENQUEUE
from datahub_review.services.audit import record_action

logger = logging.getLogger(__name__)


class EnqueueOutcome(str, Enum):
    SUCCESS = "success"
    ALREADY_TERMINAL = "already_terminal"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"


@dataclass
class EnqueueResult:
    """Outcome of placing one submission in an admin's queue."""

    submission_id: str
    outcome: EnqueueOutcome
    entry: ValidationQueueEntry | None = None
    created: bool = False
    detail: str | None = None


class ValidationQueueService:
    """Service handling validation queue membership."""

    def __init__(self, claim_policy: QueueClaimPolicy | None = None) -> None:
        self._claim_policy = claim_policy

    @property
    def claim_policy(self) -> QueueClaimPolicy:
        return self._claim_policy or settings.queue_claim_policy

    def enqueue(
        self,
        session: Session,
        admin: AdminIdentity,
        submission_id: str,
    ) -> EnqueueResult:
        """Add ``submission_id`` to the admin's queue.

        Re-queueing an entry the admin already holds is a no-op. The claim is
        written by one conditional ``INSERT ... SELECT`` that re-checks the
        submission is pending (and, under the exclusive policy, unclaimed) in
        the same statement, so a concurrent decision or claim cannot slip in
        between the checks and the write.

        Raises:
            NotFound: If the submission does not exist.
            AlreadyTerminal: If the submission has already been decided.
            Conflict: Under the exclusive policy, when another admin holds it.
        """
        submission = session.execute(
            select(Submission).where(Submission.id == submission_id).with_for_update()
        ).scalar_one_or_none()
        if submission is None:
            raise NotFound(f"Submission {submission_id} not found", submission_id=submission_id)
        if submission.status.is_terminal:
            raise AlreadyTerminal(
                f"Submission {submission_id} is already {submission.status.value}",
                submission_id=submission_id,
            )

        existing = self._get_entry(session, admin.email, submission_id)
        if existing is not None:
            session.commit()
            return EnqueueResult(submission_id, EnqueueOutcome.SUCCESS, entry=existing)

        try:
            claimed = self._insert_claim(session, admin, submission_id)
            if not claimed:
                session.rollback()
                return self._refused_claim(session, admin, submission_id)
            record_action(session, admin, ACTION_ENQUEUE, submission_id, "Added to validation queue")
            session.commit()
        except IntegrityError:
            # A concurrent request from the same admin inserted the claim first.
            session.rollback()
            existing = self._get_entry(session, admin.email, submission_id)
            if existing is None:
                raise
            session.commit()
            return EnqueueResult(submission_id, EnqueueOutcome.SUCCESS, entry=existing)

        entry = self._get_entry(session, admin.email, submission_id)
        session.commit()
        logger.info("Queued submission %s for %s", submission_id, admin.email)
        return EnqueueResult(submission_id, EnqueueOutcome.SUCCESS, entry=entry, created=True)

    def _insert_claim(self, session: Session, admin: AdminIdentity, submission_id: str) -> bool:
        """Insert the claim only if the submission is still claimable; report whether it was."""
        conditions = [
            Submission.id == submission_id,
            Submission.status_is(SubmissionStatus.PENDING),
        ]
        if self.claim_policy is QueueClaimPolicy.EXCLUSIVE:
            conditions.append(
                ~exists().where(ValidationQueueEntry.submission_id == submission_id)
            )
        source = (
            select(
                literal(submission_id, String),
                literal(admin.email, String),
                literal(utcnow(), DateTime(timezone=True)),
            )
            .select_from(Submission)
            .where(*conditions)
        )
        result = session.execute(
            insert(ValidationQueueEntry).from_select(
                ["submission_id", "admin_email", "created_at"], source
            )
        )
        return result.rowcount == 1

    def _refused_claim(
        self,
        session: Session,
        admin: AdminIdentity,
        submission_id: str,
    ) -> EnqueueResult:
        """Explain why the conditional insert wrote nothing, re-reading committed state."""
        submission = session.execute(
            select(Submission)
            .where(Submission.id == submission_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if submission is None:
            raise NotFound(f"Submission {submission_id} not found", submission_id=submission_id)
        if submission.status.is_terminal:
            raise AlreadyTerminal(
                f"Submission {submission_id} is already {submission.status.value}",
                submission_id=submission_id,
            )
        existing = self._get_entry(session, admin.email, submission_id)
        if existing is not None:
            session.commit()
            return EnqueueResult(submission_id, EnqueueOutcome.SUCCESS, entry=existing)
        holder = session.scalars(
            select(ValidationQueueEntry.admin_email)
            .where(ValidationQueueEntry.submission_id == submission_id)
            .order_by(ValidationQueueEntry.id)
        ).first()
        session.rollback()
        raise Conflict(
            f"Submission {submission_id} is already claimed by {holder or 'another admin'}",
            submission_id=submission_id,
        )

    def enqueue_batch(
        self,
        session: Session,
        admin: AdminIdentity,
        submission_ids: list[str],
    ) -> list[EnqueueResult]:
        """Apply :meth:`enqueue` to each id independently on one session.

        Never raises for an individual item; failures are reported per id.
        """
        results: list[EnqueueResult] = []
        for submission_id in submission_ids:
            try:
                result = self.enqueue(session, admin, submission_id)
            except NotFound as exc:
                results.append(
                    EnqueueResult(submission_id, EnqueueOutcome.NOT_FOUND, detail=exc.message)
                )
            except AlreadyTerminal as exc:
                results.append(
                    EnqueueResult(
                        submission_id, EnqueueOutcome.ALREADY_TERMINAL, detail=exc.message
                    )
                )
            except Conflict as exc:
                results.append(
                    EnqueueResult(submission_id, EnqueueOutcome.CONFLICT, detail=exc.message)
                )
            else:
                # Later items may roll back; keep this entry's loaded state.
                if result.entry is not None:
                    session.expunge(result.entry)
                results.append(result)
        return results

    def list_for_admin(
        self,
        session: Session,
        admin_email: str,
    ) -> list[tuple[ValidationQueueEntry, Submission]]:
        """Return the admin's queue, oldest claim first."""
        rows = session.execute(
            select(ValidationQueueEntry, Submission)
            .join(Submission, Submission.id == ValidationQueueEntry.submission_id)
            .where(
                ValidationQueueEntry.admin_email == admin_email.strip().lower(),
                Submission.status_is(SubmissionStatus.PENDING),
            )
            .order_by(ValidationQueueEntry.id)
        )
        return [(entry, submission) for entry, submission in rows]

    def dequeue(self, session: Session, admin: AdminIdentity, submission_id: str) -> bool:
        """Remove one entry without deciding the submission.

        Raises:
            NotFound: If the admin does not hold this submission.
        """
        result = session.execute(
            delete(ValidationQueueEntry).where(
                ValidationQueueEntry.submission_id == submission_id,
                ValidationQueueEntry.admin_email == admin.email,
            )
        )
        if result.rowcount == 0:
            session.rollback()
            raise NotFound(
                f"Submission {submission_id} is not in the queue of {admin.email}",
                submission_id=submission_id,
            )
        record_action(session, admin, ACTION_DEQUEUE, submission_id, "Removed from validation queue")
        session.commit()
        logger.info("Dequeued submission %s for %s", submission_id, admin.email)
        return True

    def dequeue_batch(
        self,
        session: Session,
        admin: AdminIdentity,
        submission_ids: list[str],
    ) -> int:
        """Remove several entries at once; returns how many existed."""
        ids = list(dict.fromkeys(submission_ids))
        removed_ids = list(
            session.scalars(
                select(ValidationQueueEntry.submission_id).where(
                    ValidationQueueEntry.submission_id.in_(ids),
                    ValidationQueueEntry.admin_email == admin.email,
                )
            )
        )
        if not removed_ids:
            session.rollback()
            return 0
        session.execute(
            delete(ValidationQueueEntry).where(
                ValidationQueueEntry.submission_id.in_(removed_ids),
                ValidationQueueEntry.admin_email == admin.email,
            )
        )
        for submission_id in removed_ids:
            record_action(
                session, admin, ACTION_DEQUEUE, submission_id, "Removed from validation queue"
            )
        session.commit()
        logger.info("Dequeued %d submissions for %s", len(removed_ids), admin.email)
        return len(removed_ids)

    @staticmethod
    def dequeue_all_for_submission(session: Session, submission_id: str) -> list[str]:
        """Remove the submission from every admin's queue inside the caller's transaction.

        Returns:
            Emails of the admins whose entry was removed.
        """
        holders = list(
            session.scalars(
                select(ValidationQueueEntry.admin_email).where(
                    ValidationQueueEntry.submission_id == submission_id
                )
            )
        )
        session.execute(
            delete(ValidationQueueEntry).where(ValidationQueueEntry.submission_id == submission_id)
        )
        return holders

    @staticmethod
    def _get_entry(
        session: Session,
        admin_email: str,
        submission_id: str,
    ) -> ValidationQueueEntry | None:
        return session.execute(
            select(ValidationQueueEntry).where(
                ValidationQueueEntry.submission_id == submission_id,
                ValidationQueueEntry.admin_email == admin_email,
            )
        ).scalar_one_or_none()
