# src/datahub_review/models/admin_action.py
"""Audit record of review actions taken by admins."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from datahub_review.db.session import Base
from datahub_review.db.time import utcnow

ACTION_ENQUEUE = "enqueue"
ACTION_DEQUEUE = "dequeue"
ACTION_VALIDATE = "validate"
ACTION_REJECT = "reject"


class AdminAction(Base):
    """Written in the same transaction as the change it describes."""

    __tablename__ = "admin_action"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    admin_email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    action_type: Mapped[str] = mapped_column(String(32), nullable=False)
    target_id: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
