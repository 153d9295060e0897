"""Data access helpers for working with submissions."""
from __future__ import annotations

import uuid
from collections import defaultdict
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from datahub_review.db.time import utcnow
from datahub_review.models import FileType, Submission, SubmissionStatus, ValidationQueueEntry

__all__ = ["SubmissionRepository"]


class SubmissionRepository:
    """Thin wrapper around database access for submission rows."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get_by_id(self, submission_id: str) -> Submission | None:
        """Return a submission by identifier."""
        return self.session.get(Submission, submission_id)

    def refresh_status(self, submission_id: str) -> SubmissionStatus | None:
        """Read the persisted status, bypassing the identity map."""
        result = self.session.execute(
            select(Submission.status)
            .where(Submission.id == submission_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    def list_by_status(
        self,
        status: SubmissionStatus,
        *,
        limit: int,
        newest_first: bool | None = None,
    ) -> list[Submission]:
        """Return submissions in ``status``.

        Pending work is listed oldest first so reviewers see the backlog in
        arrival order; decided submissions are listed newest first.
        """
        if newest_first is None:
            newest_first = status.is_terminal
        order = Submission.created_at.desc() if newest_first else Submission.created_at.asc()
        stmt = select(Submission).where(Submission.status_is(status)).order_by(order).limit(limit)
        return list(self.session.scalars(stmt))

    def list_for_user(self, user_email: str, *, limit: int) -> list[Submission]:
        """Return a contributor's submissions, newest first."""
        stmt = (
            select(Submission)
            .where(Submission.user_email == user_email)
            .order_by(Submission.created_at.desc())
            .limit(limit)
        )
        return list(self.session.scalars(stmt))

    def queued_by(self, submission_ids: Iterable[str]) -> dict[str, list[str]]:
        """Map each submission id to the admins currently holding it in their queue."""
        ids = list(submission_ids)
        holders: dict[str, list[str]] = defaultdict(list)
        if not ids:
            return holders
        rows = self.session.execute(
            select(ValidationQueueEntry.submission_id, ValidationQueueEntry.admin_email)
            .where(ValidationQueueEntry.submission_id.in_(ids))
            .order_by(ValidationQueueEntry.id)
        )
        for submission_id, admin_email in rows:
            holders[submission_id].append(admin_email)
        return holders

    def create(
        self,
        *,
        user_email: str,
        file_name: str,
        file_type: FileType,
        file_size: int,
        submission_id: str | None = None,
    ) -> Submission:
        """Insert a new pending submission and return the persisted ORM instance.

        Args:
            user_email: Contributor that uploaded the file.
            file_name: Original file name.
            file_type: Broad media category.
            file_size: Size in bytes.
            submission_id: Identifier assigned by the upload layer, if any.
        """
        now = utcnow()
        submission = Submission(
            id=submission_id or uuid.uuid4().hex,
            user_email=user_email,
            file_name=file_name,
            file_type=file_type,
            file_size=file_size,
            status=SubmissionStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        self.session.add(submission)
        self.session.commit()
        return submission
