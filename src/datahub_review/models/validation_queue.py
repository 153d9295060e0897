# src/datahub_review/models/validation_queue.py
"""Models tracking which submissions each admin has claimed for review."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from datahub_review.db.session import Base
from datahub_review.db.time import utcnow


class ValidationQueueEntry(Base):
    """Admin X has claimed submission Y for review.

    Keyed by ``(submission_id, admin_email)``; the surrogate ``id`` grows
    monotonically and gives each admin a stable FIFO order.
    """

    __tablename__ = "validation_queue"
    __table_args__ = (
        UniqueConstraint("submission_id", "admin_email", name="uq_validation_queue_claim"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    submission_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("submission.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    admin_email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
