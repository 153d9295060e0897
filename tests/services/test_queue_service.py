"""Tests for per-admin validation queue membership."""

import threading
from collections.abc import Callable

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from datahub_review.core.errors import AlreadyTerminal, Conflict, NotFound
from datahub_review.core.identity import AdminIdentity
from datahub_review.core.settings import QueueClaimPolicy
from datahub_review.models import Submission, SubmissionStatus, ValidationQueueEntry
from datahub_review.services.transitions import TransitionEngine
from datahub_review.services.validation_queue import EnqueueOutcome, ValidationQueueService


@pytest.fixture()
def queue() -> ValidationQueueService:
    return ValidationQueueService(QueueClaimPolicy.ADVISORY)


def _entry_count(session: Session) -> int:
    return session.scalar(select(func.count()).select_from(ValidationQueueEntry))


class TestEnqueue:
    def test_enqueue_pending_submission(
        self,
        db_session: Session,
        queue: ValidationQueueService,
        admin: AdminIdentity,
        make_submission: Callable[..., Submission],
    ) -> None:
        submission = make_submission()

        result = queue.enqueue(db_session, admin, submission.id)

        assert result.outcome is EnqueueOutcome.SUCCESS
        assert result.created is True
        assert result.entry.admin_email == admin.email
        assert result.entry.submission_id == submission.id

    def test_enqueue_is_idempotent_per_admin(
        self,
        db_session: Session,
        queue: ValidationQueueService,
        admin: AdminIdentity,
        make_submission: Callable[..., Submission],
    ) -> None:
        submission = make_submission()
        queue.enqueue(db_session, admin, submission.id)

        again = queue.enqueue(db_session, admin, submission.id)

        assert again.created is False
        assert _entry_count(db_session) == 1

    def test_enqueue_does_not_change_status(
        self,
        db_session: Session,
        queue: ValidationQueueService,
        admin: AdminIdentity,
        make_submission: Callable[..., Submission],
        fresh_status: Callable[[str], SubmissionStatus | None],
    ) -> None:
        submission = make_submission()
        queue.enqueue(db_session, admin, submission.id)
        assert fresh_status(submission.id) is SubmissionStatus.PENDING

    @pytest.mark.parametrize("status", [SubmissionStatus.VALIDATED, SubmissionStatus.REJECTED])
    def test_decided_submissions_cannot_be_queued(
        self,
        db_session: Session,
        queue: ValidationQueueService,
        admin: AdminIdentity,
        make_submission: Callable[..., Submission],
        status: SubmissionStatus,
    ) -> None:
        submission = make_submission(status=status)

        with pytest.raises(AlreadyTerminal):
            queue.enqueue(db_session, admin, submission.id)
        assert _entry_count(db_session) == 0

    def test_unknown_submission(
        self, db_session: Session, queue: ValidationQueueService, admin: AdminIdentity
    ) -> None:
        with pytest.raises(NotFound):
            queue.enqueue(db_session, admin, "missing")

    def test_advisory_claims_allow_several_admins(
        self,
        db_session: Session,
        queue: ValidationQueueService,
        admin: AdminIdentity,
        other_admin: AdminIdentity,
        make_submission: Callable[..., Submission],
    ) -> None:
        submission = make_submission()
        queue.enqueue(db_session, admin, submission.id)
        queue.enqueue(db_session, other_admin, submission.id)
        assert _entry_count(db_session) == 2

    def test_exclusive_claims_refuse_second_admin(
        self,
        db_session: Session,
        admin: AdminIdentity,
        other_admin: AdminIdentity,
        make_submission: Callable[..., Submission],
    ) -> None:
        exclusive = ValidationQueueService(QueueClaimPolicy.EXCLUSIVE)
        submission = make_submission()
        exclusive.enqueue(db_session, admin, submission.id)

        with pytest.raises(Conflict):
            exclusive.enqueue(db_session, other_admin, submission.id)
        assert exclusive.enqueue(db_session, admin, submission.id).created is False

    def test_enqueue_batch_reports_each_id(
        self,
        db_session: Session,
        queue: ValidationQueueService,
        admin: AdminIdentity,
        make_submission: Callable[..., Submission],
    ) -> None:
        pending = make_submission()
        decided = make_submission(status=SubmissionStatus.VALIDATED)

        results = queue.enqueue_batch(db_session, admin, [pending.id, decided.id, "missing"])

        outcomes = {result.submission_id: result.outcome for result in results}
        assert outcomes == {
            pending.id: EnqueueOutcome.SUCCESS,
            decided.id: EnqueueOutcome.ALREADY_TERMINAL,
            "missing": EnqueueOutcome.NOT_FOUND,
        }
        assert results[0].entry.submission_id == pending.id


class TestListAndDequeue:
    def test_queue_is_listed_in_claim_order(
        self,
        db_session: Session,
        queue: ValidationQueueService,
        admin: AdminIdentity,
        other_admin: AdminIdentity,
        make_submission: Callable[..., Submission],
    ) -> None:
        older = make_submission()
        newer = make_submission()
        queue.enqueue(db_session, admin, newer.id)
        queue.enqueue(db_session, admin, older.id)
        queue.enqueue(db_session, other_admin, older.id)

        rows = queue.list_for_admin(db_session, admin.email)

        assert [submission.id for _, submission in rows] == [newer.id, older.id]
        assert all(entry.admin_email == admin.email for entry, _ in rows)

    def test_dequeue_keeps_submission_pending(
        self,
        db_session: Session,
        queue: ValidationQueueService,
        admin: AdminIdentity,
        make_submission: Callable[..., Submission],
        fresh_status: Callable[[str], SubmissionStatus | None],
    ) -> None:
        submission = make_submission()
        queue.enqueue(db_session, admin, submission.id)

        assert queue.dequeue(db_session, admin, submission.id) is True

        assert queue.list_for_admin(db_session, admin.email) == []
        assert fresh_status(submission.id) is SubmissionStatus.PENDING
        with pytest.raises(NotFound):
            queue.dequeue(db_session, admin, submission.id)

    def test_dequeue_only_touches_own_entry(
        self,
        db_session: Session,
        queue: ValidationQueueService,
        admin: AdminIdentity,
        other_admin: AdminIdentity,
        make_submission: Callable[..., Submission],
    ) -> None:
        submission = make_submission()
        queue.enqueue(db_session, admin, submission.id)
        queue.enqueue(db_session, other_admin, submission.id)

        queue.dequeue(db_session, admin, submission.id)

        rows = queue.list_for_admin(db_session, other_admin.email)
        assert [s.id for _, s in rows] == [submission.id]

    def test_dequeue_batch_counts_existing_entries(
        self,
        db_session: Session,
        queue: ValidationQueueService,
        admin: AdminIdentity,
        make_submission: Callable[..., Submission],
    ) -> None:
        first = make_submission()
        second = make_submission()
        queue.enqueue(db_session, admin, first.id)
        queue.enqueue(db_session, admin, second.id)

        removed = queue.dequeue_batch(db_session, admin, [first.id, second.id, "missing", first.id])

        assert removed == 2
        assert _entry_count(db_session) == 0
        assert queue.dequeue_batch(db_session, admin, [first.id]) == 0


class TestConcurrentClaims:
    """Claims written from separate sessions on separate threads."""

    def test_racing_exclusive_claims_leave_one_holder(
        self,
        session_factory: sessionmaker[Session],
        admin: AdminIdentity,
        other_admin: AdminIdentity,
        make_submission: Callable[..., Submission],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        submission = make_submission()
        exclusive = ValidationQueueService(QueueClaimPolicy.EXCLUSIVE)
        # Both threads finish their checks before either writes.
        barrier = threading.Barrier(2, timeout=5)
        original = ValidationQueueService._insert_claim

        def _insert_together(self, session, who, submission_id):
            barrier.wait()
            return original(self, session, who, submission_id)

        monkeypatch.setattr(ValidationQueueService, "_insert_claim", _insert_together)
        outcomes: dict[str, str] = {}

        def _claim(who: AdminIdentity) -> None:
            with session_factory() as session:
                try:
                    exclusive.enqueue(session, who, submission.id)
                except Conflict:
                    outcomes[who.email] = "conflict"
                else:
                    outcomes[who.email] = "claimed"

        workers = [threading.Thread(target=_claim, args=(who,)) for who in (admin, other_admin)]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join(timeout=15)

        assert sorted(outcomes.values()) == ["claimed", "conflict"]
        with session_factory() as session:
            holders = session.scalars(select(ValidationQueueEntry.admin_email)).all()
        assert len(holders) == 1
        assert outcomes[holders[0]] == "claimed"

    def test_decision_between_checks_and_write_blocks_the_claim(
        self,
        session_factory: sessionmaker[Session],
        queue: ValidationQueueService,
        admin: AdminIdentity,
        other_admin: AdminIdentity,
        make_submission: Callable[..., Submission],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        submission = make_submission()
        reached, proceed = threading.Event(), threading.Event()
        original = ValidationQueueService._insert_claim

        def _paused_insert(self, session, who, submission_id):
            reached.set()
            proceed.wait(timeout=5)
            return original(self, session, who, submission_id)

        monkeypatch.setattr(ValidationQueueService, "_insert_claim", _paused_insert)
        refused: list[AlreadyTerminal] = []

        def _claim() -> None:
            with session_factory() as session:
                try:
                    queue.enqueue(session, admin, submission.id)
                except AlreadyTerminal as exc:
                    refused.append(exc)

        worker = threading.Thread(target=_claim)
        worker.start()
        assert reached.wait(timeout=5)
        with session_factory() as session:
            TransitionEngine(queue).validate(session, submission.id, other_admin)
        proceed.set()
        worker.join(timeout=15)

        assert len(refused) == 1
        with session_factory() as session:
            assert _entry_count(session) == 0
            assert session.get(Submission, submission.id).status is SubmissionStatus.VALIDATED
