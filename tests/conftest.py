# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from datetime import timedelta
from itertools import count
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

os.environ.setdefault("STORE_RETRY_BACKOFF_SECONDS", "0.01")
os.environ.setdefault("BULK_MAX_CONCURRENCY", "2")

from datahub_review.core.identity import AdminIdentity
from datahub_review.db.session import Base, build_engine
from datahub_review.db.session import get_db as app_get_session
from datahub_review.db.session import get_session_factory as app_get_session_factory
from datahub_review.db.time import utcnow
from datahub_review.main import app as fastapi_app
from datahub_review.models import FileType, Submission, SubmissionStatus

_SUBMISSION_COUNTER = count(1)


@pytest.fixture(scope="session")
def engine(tmp_path_factory: pytest.TempPathFactory) -> Generator[Engine, None, None]:
    # A file database so worker threads each get their own connection.
    db_path: Path = tmp_path_factory.mktemp("store") / "review.db"
    engine = build_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> Iterator[sessionmaker[Session]]:
    factory = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    try:
        yield factory
    finally:
        # Ensure each test sees a clean database; every unit of work commits.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def db_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependencies(
    app: FastAPI, session_factory: sessionmaker[Session]
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[app_get_session_factory] = lambda: session_factory
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(app_get_session_factory, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def admin() -> AdminIdentity:
    """Primary reviewer."""
    return AdminIdentity.from_email("alice@datahub.test")


@pytest.fixture()
def other_admin() -> AdminIdentity:
    """Second reviewer used for cross-queue scenarios."""
    return AdminIdentity.from_email("bob@datahub.test")


@pytest.fixture()
def make_submission(db_session: Session) -> Callable[..., Submission]:
    """Persist submissions with strictly increasing creation times."""
    base_time = utcnow() - timedelta(days=1)

    def _make(
        submission_id: str | None = None,
        *,
        status: SubmissionStatus = SubmissionStatus.PENDING,
        user_email: str = "contributor@datahub.test",
        file_name: str | None = None,
    ) -> Submission:
        seq = next(_SUBMISSION_COUNTER)
        created_at = base_time + timedelta(seconds=seq)
        submission = Submission(
            id=submission_id or f"sub-{seq:05d}",
            user_email=user_email,
            file_name=file_name or f"dataset-{seq}.csv",
            file_type=FileType.DOCUMENT,
            file_size=1024 * seq,
            status=status,
            rejection_feedback="Seeded rejection" if status is SubmissionStatus.REJECTED else None,
            decided_by="seed@datahub.test" if status.is_terminal else None,
            decided_at=created_at if status.is_terminal else None,
            created_at=created_at,
            updated_at=created_at,
        )
        db_session.add(submission)
        db_session.commit()
        return submission

    return _make


@pytest.fixture()
def fresh_status(session_factory: sessionmaker[Session]) -> Callable[[str], SubmissionStatus | None]:
    """Read a submission's persisted status through a new session."""

    def _read(submission_id: str) -> SubmissionStatus | None:
        with session_factory() as session:
            submission = session.get(Submission, submission_id)
            return submission.status if submission else None

    return _read
