# src/datahub_review/models/comment.py
"""Append-only discussion log attached to a submission."""

from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from datahub_review.db.session import Base
from datahub_review.db.time import utcnow
from datahub_review.models.status import AuthorType


class SubmissionComment(Base):
    """A comment left by the contributor or a reviewing admin."""

    __tablename__ = "submission_comment"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    submission_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("submission.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    author_email: Mapped[str] = mapped_column(String(320), nullable=False)
    author_type: Mapped[AuthorType] = mapped_column(
        Enum(AuthorType, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    # Optional reply pointer; the thread itself is still read in creation order.
    parent_comment_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("submission_comment.id"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
