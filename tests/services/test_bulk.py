"""Tests for the bulk operation coordinator."""

import time
from collections.abc import Callable

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from datahub_review.core.errors import (
    Conflict,
    EmptySelection,
    PreconditionFailed,
    StoreUnavailable,
)
from datahub_review.core.identity import AdminIdentity
from datahub_review.models import (
    RejectionReason,
    Submission,
    SubmissionStatus,
    ValidationQueueEntry,
)
from datahub_review.repositories.submission_repo import SubmissionRepository
from datahub_review.services.bulk import BulkOperation, BulkOperationCoordinator
from datahub_review.services.transitions import TransitionEngine, TransitionResult
from datahub_review.services.validation_queue import ValidationQueueService


@pytest.fixture()
def coordinator(session_factory: sessionmaker[Session]) -> BulkOperationCoordinator:
    return BulkOperationCoordinator(session_factory, max_concurrency=2, item_timeout=5.0)


@pytest.mark.asyncio
async def test_bulk_validate_all_pending(
    coordinator: BulkOperationCoordinator,
    admin: AdminIdentity,
    make_submission: Callable[..., Submission],
    fresh_status: Callable[[str], SubmissionStatus | None],
) -> None:
    ids = [make_submission().id for _ in range(4)]

    result = await coordinator.validate(ids, admin)

    assert result.operation is BulkOperation.VALIDATE
    assert result.success_count == 4
    assert result.failed_ids == []
    assert all(fresh_status(sid) is SubmissionStatus.VALIDATED for sid in ids)


@pytest.mark.asyncio
async def test_bulk_validate_reports_already_decided_items(
    coordinator: BulkOperationCoordinator,
    admin: AdminIdentity,
    make_submission: Callable[..., Submission],
    fresh_status: Callable[[str], SubmissionStatus | None],
) -> None:
    """One decided submission in the selection fails alone; the rest succeed."""
    first = make_submission()
    decided = make_submission(status=SubmissionStatus.VALIDATED)
    third = make_submission()

    result = await coordinator.validate([first.id, decided.id, third.id], admin)

    assert result.succeeded_ids == [first.id, third.id]
    assert result.failed_ids == [decided.id]
    failure = result.items[decided.id]
    assert failure.error_kind == "already_terminal"
    assert failure.outcome == "failure"
    assert fresh_status(first.id) is SubmissionStatus.VALIDATED
    assert fresh_status(third.id) is SubmissionStatus.VALIDATED


@pytest.mark.asyncio
async def test_bulk_failures_do_not_roll_back_successes(
    coordinator: BulkOperationCoordinator,
    admin: AdminIdentity,
    make_submission: Callable[..., Submission],
    fresh_status: Callable[[str], SubmissionStatus | None],
) -> None:
    good = make_submission()

    result = await coordinator.validate([good.id, "missing"], admin)

    assert result.success_count == 1
    assert result.items["missing"].error_kind == "not_found"
    assert fresh_status(good.id) is SubmissionStatus.VALIDATED


@pytest.mark.asyncio
async def test_bulk_reject_applies_shared_reason(
    coordinator: BulkOperationCoordinator,
    admin: AdminIdentity,
    make_submission: Callable[..., Submission],
    session_factory: sessionmaker[Session],
) -> None:
    ids = [make_submission().id for _ in range(3)]

    result = await coordinator.reject(ids, admin, "metadata_missing", " Add a licence ")

    assert result.success_count == 3
    with session_factory() as session:
        rows = session.scalars(select(Submission).where(Submission.id.in_(ids))).all()
    assert {row.rejection_reason for row in rows} == {RejectionReason.METADATA_MISSING}
    assert {row.rejection_feedback for row in rows} == {"Add a licence"}
    assert {row.status for row in rows} == {SubmissionStatus.REJECTED}


@pytest.mark.asyncio
async def test_bulk_reject_without_reason_changes_nothing(
    coordinator: BulkOperationCoordinator,
    admin: AdminIdentity,
    make_submission: Callable[..., Submission],
    fresh_status: Callable[[str], SubmissionStatus | None],
) -> None:
    submission = make_submission()

    with pytest.raises(PreconditionFailed):
        await coordinator.reject([submission.id], admin)

    assert fresh_status(submission.id) is SubmissionStatus.PENDING


@pytest.mark.asyncio
@pytest.mark.parametrize("ids", [[], ["", "   "]])
async def test_empty_selection_is_refused(
    coordinator: BulkOperationCoordinator, admin: AdminIdentity, ids: list[str]
) -> None:
    with pytest.raises(EmptySelection):
        await coordinator.validate(ids, admin)


@pytest.mark.asyncio
async def test_duplicate_ids_are_processed_once(
    coordinator: BulkOperationCoordinator,
    admin: AdminIdentity,
    make_submission: Callable[..., Submission],
) -> None:
    submission = make_submission()

    result = await coordinator.validate([submission.id, submission.id], admin)

    assert list(result.items) == [submission.id]
    assert result.success_count == 1


@pytest.mark.asyncio
async def test_bulk_enqueue(
    coordinator: BulkOperationCoordinator,
    admin: AdminIdentity,
    make_submission: Callable[..., Submission],
    session_factory: sessionmaker[Session],
) -> None:
    pending = make_submission()
    rejected = make_submission(status=SubmissionStatus.REJECTED)

    result = await coordinator.enqueue([pending.id, rejected.id], admin)

    assert result.succeeded_ids == [pending.id]
    assert result.items[rejected.id].error_kind == "already_terminal"
    with session_factory() as session:
        queued = session.scalars(select(ValidationQueueEntry.submission_id)).all()
    assert queued == [pending.id]


@pytest.mark.asyncio
async def test_store_outage_on_every_item_fails_the_batch(
    session_factory: sessionmaker[Session],
    admin: AdminIdentity,
    make_submission: Callable[..., Submission],
) -> None:
    class _DownEngine:
        queue = None

        def validate(self, session: Session, submission_id: str, admin: AdminIdentity):
            raise OperationalError("UPDATE submission", {}, Exception("database is locked"))

    coordinator = BulkOperationCoordinator(
        session_factory, engine=_DownEngine(), max_concurrency=2, item_timeout=5.0
    )
    ids = [make_submission().id, make_submission().id]

    with pytest.raises(StoreUnavailable):
        await coordinator.validate(ids, admin)


@pytest.mark.asyncio
async def test_bulk_validate_one_pending_one_validated(
    coordinator: BulkOperationCoordinator,
    admin: AdminIdentity,
    make_submission: Callable[..., Submission],
    fresh_status: Callable[[str], SubmissionStatus | None],
) -> None:
    pending = make_submission()
    validated = make_submission(status=SubmissionStatus.VALIDATED)

    result = await coordinator.validate([pending.id, validated.id], admin)

    assert (result.success_count, result.failure_count) == (1, 1)
    assert fresh_status(pending.id) is SubmissionStatus.VALIDATED
    assert fresh_status(validated.id) is SubmissionStatus.VALIDATED


class _StallingEngine(TransitionEngine):
    """Validates normally except for ``stalled`` ids, which hang and then give up."""

    def __init__(self, stalled: set[str] | None = None, delay: float = 1.0) -> None:
        super().__init__(ValidationQueueService())
        self.stalled = stalled
        self.delay = delay

    def validate(self, session: Session, submission_id: str, admin: AdminIdentity) -> TransitionResult:
        if self.stalled is None or submission_id in self.stalled:
            time.sleep(self.delay)
            raise Conflict("gave up", submission_id=submission_id)
        return super().validate(session, submission_id, admin)


@pytest.mark.asyncio
async def test_batch_latency_is_one_timeout_not_one_per_wave(
    session_factory: sessionmaker[Session],
    admin: AdminIdentity,
    make_submission: Callable[..., Submission],
) -> None:
    coordinator = BulkOperationCoordinator(
        session_factory, engine=_StallingEngine(), max_concurrency=2, item_timeout=0.3
    )
    ids = [make_submission().id for _ in range(6)]

    started = time.perf_counter()
    result = await coordinator.validate(ids, admin)
    elapsed = time.perf_counter() - started

    assert elapsed < 0.8
    assert result.success_count == 0
    assert {item.error_kind for item in result.items.values()} == {"timeout"}
    assert list(result.items) == ids


@pytest.mark.asyncio
async def test_one_slow_item_times_out_while_the_rest_succeed(
    session_factory: sessionmaker[Session],
    admin: AdminIdentity,
    make_submission: Callable[..., Submission],
    fresh_status: Callable[[str], SubmissionStatus | None],
) -> None:
    ids = [make_submission().id for _ in range(4)]
    slow = ids[1]
    coordinator = BulkOperationCoordinator(
        session_factory,
        engine=_StallingEngine(stalled={slow}, delay=1.5),
        max_concurrency=2,
        item_timeout=0.5,
    )

    started = time.perf_counter()
    result = await coordinator.validate(ids, admin)
    elapsed = time.perf_counter() - started

    assert elapsed < 1.0
    assert result.failed_ids == [slow]
    assert result.items[slow].error_kind == "timeout"
    assert result.succeeded_ids == [sid for sid in ids if sid != slow]
    assert fresh_status(slow) is SubmissionStatus.PENDING
    assert all(fresh_status(sid) is SubmissionStatus.VALIDATED for sid in ids if sid != slow)


@pytest.mark.asyncio
async def test_write_not_visible_on_reread_is_reported_unconfirmed(
    coordinator: BulkOperationCoordinator,
    admin: AdminIdentity,
    make_submission: Callable[..., Submission],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    submission = make_submission()
    monkeypatch.setattr(
        SubmissionRepository,
        "refresh_status",
        lambda self, submission_id: SubmissionStatus.PENDING,
    )

    result = await coordinator.validate([submission.id], admin)

    item = result.items[submission.id]
    assert item.success is False
    assert item.error_kind == "unconfirmed"
    assert item.status is SubmissionStatus.PENDING


class _ReplayingEngine(TransitionEngine):
    """Applies each validation twice, as a retried unit of work would after its commit landed."""

    def validate(self, session: Session, submission_id: str, admin: AdminIdentity) -> TransitionResult:
        super().validate(session, submission_id, admin)
        return super().validate(session, submission_id, admin)


@pytest.mark.asyncio
async def test_replayed_write_of_this_request_counts_as_success(
    session_factory: sessionmaker[Session],
    admin: AdminIdentity,
    make_submission: Callable[..., Submission],
    fresh_status: Callable[[str], SubmissionStatus | None],
) -> None:
    coordinator = BulkOperationCoordinator(
        session_factory,
        engine=_ReplayingEngine(ValidationQueueService()),
        max_concurrency=2,
        item_timeout=5.0,
    )
    ids = [make_submission().id, make_submission().id]

    result = await coordinator.validate(ids, admin)

    assert result.succeeded_ids == ids
    assert all(fresh_status(sid) is SubmissionStatus.VALIDATED for sid in ids)


@pytest.mark.asyncio
async def test_earlier_decision_by_same_admin_is_still_already_terminal(
    coordinator: BulkOperationCoordinator,
    admin: AdminIdentity,
    make_submission: Callable[..., Submission],
) -> None:
    submission = make_submission()
    first = await coordinator.validate([submission.id], admin)

    second = await coordinator.validate([submission.id], admin)

    assert first.succeeded_ids == [submission.id]
    assert second.items[submission.id].error_kind == "already_terminal"
