# src/datahub_review/models/submission.py
"""SQLAlchemy model for contributor submissions."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Enum, String, Text, type_coerce
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql.elements import ColumnElement

from datahub_review.db.session import Base
from datahub_review.db.time import utcnow
from datahub_review.models.status import (
    CanonicalStatus,
    FileType,
    RejectionReason,
    SubmissionStatus,
    spellings_for,
)


class Submission(Base):
    """One uploaded data file and its review lifecycle.

    Descriptive metadata is written once at creation. Status and the decision
    fields are only changed by the transition engine.
    """

    __tablename__ = "submission"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    file_name: Mapped[str] = mapped_column(Text, nullable=False)
    file_type: Mapped[FileType] = mapped_column(
        Enum(FileType, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    status: Mapped[SubmissionStatus] = mapped_column(
        CanonicalStatus(),
        nullable=False,
        default=SubmissionStatus.PENDING,
        index=True,
    )
    # Populated iff status == rejected.
    rejection_reason: Mapped[RejectionReason | None] = mapped_column(
        Enum(RejectionReason, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=True,
    )
    rejection_feedback: Mapped[str | None] = mapped_column(Text, nullable=True)

    decided_by: Mapped[str | None] = mapped_column(String(320), nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    @classmethod
    def status_is(cls, status: SubmissionStatus) -> ColumnElement[bool]:
        """SQL predicate matching ``status`` under any of its stored spellings."""
        return type_coerce(cls.status, String).in_(spellings_for(status))
