# src/datahub_review/services/transitions.py
"""Status transition engine for submissions.

The only code that writes ``Submission.status``. Legal moves are
``pending -> validated`` and ``pending -> rejected``; both terminal states are
final. A transition is one compare-and-set UPDATE guarded on the pending
status, committed together with the removal of every queue entry for the
submission and the audit row, so concurrent readers never observe one
effect without the other.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import update
from sqlalchemy.orm import Session

from datahub_review.core.errors import Conflict, InvalidStateTransition, NotFound, PreconditionFailed
from datahub_review.core.identity import AdminIdentity
from datahub_review.db.time import utcnow
from datahub_review.models import RejectionReason, Submission, SubmissionStatus
from datahub_review.models.admin_action import ACTION_REJECT, ACTION_VALIDATE
from datahub_review.services.audit import record_action
from datahub_review.services.validation_queue import ValidationQueueService

logger = logging.getLogger(__name__)

# Allowed edges of the state graph, keyed by source state.
ALLOWED_TRANSITIONS: dict[SubmissionStatus, frozenset[SubmissionStatus]] = {
    SubmissionStatus.PENDING: frozenset({SubmissionStatus.VALIDATED, SubmissionStatus.REJECTED}),
    SubmissionStatus.VALIDATED: frozenset(),
    SubmissionStatus.REJECTED: frozenset(),
}


@dataclass
class TransitionResult:
    """Outcome of a validate or reject call.

    ``changed`` is False when the submission was already in the requested
    state with the same decision data, i.e. the call was an idempotent repeat.
    """

    submission: Submission
    changed: bool
    removed_from_queues: list[str] = field(default_factory=list)


def normalize_rejection(
    reason: RejectionReason | str | None,
    feedback: str | None,
) -> tuple[RejectionReason | None, str | None]:
    """Validate reject input, returning canonical ``(reason, feedback)``.

    Raises:
        PreconditionFailed: If neither a reason nor non-blank feedback is given,
            or the reason is not a known value.
    """
    if isinstance(reason, str) and not isinstance(reason, RejectionReason):
        reason = reason.strip() or None
        if reason is not None:
            try:
                reason = RejectionReason(reason)
            except ValueError as err:
                raise PreconditionFailed(f"Unknown rejection reason: {reason!r}") from err
    cleaned_feedback = (feedback or "").strip() or None
    if reason is None and cleaned_feedback is None:
        raise PreconditionFailed("rejectionReason or rejectionFeedback is required to reject")
    return reason, cleaned_feedback


class TransitionEngine:
    """Enforces the submission state graph and applies its side effects."""

    def __init__(self, queue: ValidationQueueService | None = None) -> None:
        self.queue = queue or ValidationQueueService()

    def validate(
        self,
        session: Session,
        submission_id: str,
        admin: AdminIdentity,
    ) -> TransitionResult:
        """Move a pending submission to ``validated``.

        Repeating the call on an already validated submission succeeds with
        ``changed=False``.

        Raises:
            NotFound: Unknown submission id.
            InvalidStateTransition: The submission was already rejected.
            Conflict: A concurrent request rejected it first.
        """
        return self._transition(
            session,
            submission_id,
            admin,
            SubmissionStatus.VALIDATED,
        )

    def reject(
        self,
        session: Session,
        submission_id: str,
        admin: AdminIdentity,
        reason: RejectionReason | str | None = None,
        feedback: str | None = None,
    ) -> TransitionResult:
        """Move a pending submission to ``rejected`` with its reason/feedback.

        Repeating the call with identical reason and feedback succeeds with
        ``changed=False``; different content is refused because terminal
        states are immutable.

        Raises:
            PreconditionFailed: Neither reason nor feedback given.
            NotFound: Unknown submission id.
            InvalidStateTransition: Already validated, or rejected differently.
            Conflict: A concurrent request decided it first.
        """
        reason, feedback = normalize_rejection(reason, feedback)
        return self._transition(
            session,
            submission_id,
            admin,
            SubmissionStatus.REJECTED,
            reason=reason,
            feedback=feedback,
        )

    def _transition(
        self,
        session: Session,
        submission_id: str,
        admin: AdminIdentity,
        target: SubmissionStatus,
        *,
        reason: RejectionReason | None = None,
        feedback: str | None = None,
    ) -> TransitionResult:
        observed = session.get(Submission, submission_id)
        if observed is None:
            raise NotFound(f"Submission {submission_id} not found", submission_id=submission_id)

        if target not in ALLOWED_TRANSITIONS[observed.status]:
            return self._resolve_repeat(observed, target, reason, feedback, raced=False)

        now = utcnow()
        result = session.execute(
            update(Submission)
            .where(
                Submission.id == submission_id,
                Submission.status_is(SubmissionStatus.PENDING),
            )
            .values(
                status=target,
                rejection_reason=reason,
                rejection_feedback=feedback,
                decided_by=admin.email,
                decided_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            # Lost the compare-and-set; judge against what actually won.
            session.rollback()
            current = session.get(Submission, submission_id, populate_existing=True)
            if current is None:
                raise NotFound(
                    f"Submission {submission_id} not found",
                    submission_id=submission_id,
                )
            return self._resolve_repeat(current, target, reason, feedback, raced=True)

        removed = self.queue.dequeue_all_for_submission(session, submission_id)
        action = ACTION_VALIDATE if target is SubmissionStatus.VALIDATED else ACTION_REJECT
        description = f"{target.value.capitalize()} submission: {observed.file_name}"
        if reason is not None:
            description += f" ({reason.value})"
        record_action(session, admin, action, submission_id, description)
        session.commit()

        submission = session.get(Submission, submission_id, populate_existing=True)
        if submission is None:  # pragma: no cover - rows are never deleted here
            raise NotFound(f"Submission {submission_id} not found", submission_id=submission_id)

        logger.info(
            "Submission %s %s by %s; removed from %d queue(s)",
            submission_id,
            target.value,
            admin.email,
            len(removed),
        )
        return TransitionResult(submission=submission, changed=True, removed_from_queues=removed)

    @staticmethod
    def _resolve_repeat(
        current: Submission,
        target: SubmissionStatus,
        reason: RejectionReason | None,
        feedback: str | None,
        *,
        raced: bool,
    ) -> TransitionResult:
        same_decision = current.status is target and (
            target is SubmissionStatus.VALIDATED
            or (
                current.rejection_reason == reason
                and (current.rejection_feedback or None) == feedback
            )
        )
        if same_decision:
            return TransitionResult(submission=current, changed=False)

        if current.status is SubmissionStatus.PENDING:
            # Guard failed yet the row is still pending: let the caller retry.
            raise Conflict(
                f"Submission {current.id} changed concurrently; retry the request",
                submission_id=current.id,
            )
        if raced:
            raise Conflict(
                f"Submission {current.id} was {current.status.value} by a concurrent request",
                submission_id=current.id,
            )
        raise InvalidStateTransition(
            f"Cannot move submission {current.id} from {current.status.value} to {target.value}",
            submission_id=current.id,
        )
