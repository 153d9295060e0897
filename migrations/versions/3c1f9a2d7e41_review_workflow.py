"""review workflow tables

Revision ID: 3c1f9a2d7e41
Revises:
Create Date: 2026-10-19 09:12:44.318206

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3c1f9a2d7e41"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

FILE_TYPES = ("image", "audio", "video", "document")
REJECTION_REASONS = (
    "data_quality",
    "format_incorrect",
    "content_inappropriate",
    "duplicate",
    "metadata_missing",
    "other",
)


def upgrade() -> None:
    """Create submissions, validation queue, comments and the audit trail."""
    op.create_table(
        "submission",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("user_email", sa.String(length=320), nullable=False),
        sa.Column("file_name", sa.Text(), nullable=False),
        sa.Column(
            "file_type",
            sa.Enum(*FILE_TYPES, name="filetype", native_enum=False),
            nullable=False,
        ),
        sa.Column("file_size", sa.BigInteger(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column(
            "rejection_reason",
            sa.Enum(*REJECTION_REASONS, name="rejectionreason", native_enum=False),
            nullable=True,
        ),
        sa.Column("rejection_feedback", sa.Text(), nullable=True),
        sa.Column("decided_by", sa.String(length=320), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_submission_user_email", "submission", ["user_email"])
    op.create_index("ix_submission_status", "submission", ["status"])

    op.create_table(
        "validation_queue",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("submission_id", sa.String(length=64), nullable=False),
        sa.Column("admin_email", sa.String(length=320), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["submission_id"], ["submission.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("submission_id", "admin_email", name="uq_validation_queue_claim"),
    )
    op.create_index("ix_validation_queue_submission_id", "validation_queue", ["submission_id"])
    op.create_index("ix_validation_queue_admin_email", "validation_queue", ["admin_email"])

    op.create_table(
        "submission_comment",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("submission_id", sa.String(length=64), nullable=False),
        sa.Column("author_email", sa.String(length=320), nullable=False),
        sa.Column(
            "author_type",
            sa.Enum("user", "admin", name="authortype", native_enum=False),
            nullable=False,
        ),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("parent_comment_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["submission_id"], ["submission.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["parent_comment_id"], ["submission_comment.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_submission_comment_submission_id", "submission_comment", ["submission_id"])

    op.create_table(
        "admin_action",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("admin_email", sa.String(length=320), nullable=False),
        sa.Column("action_type", sa.String(length=32), nullable=False),
        sa.Column("target_id", sa.String(length=64), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_admin_action_admin_email", "admin_action", ["admin_email"])


def downgrade() -> None:
    """Drop the review workflow tables."""
    op.drop_index("ix_admin_action_admin_email", table_name="admin_action")
    op.drop_table("admin_action")
    op.drop_index("ix_submission_comment_submission_id", table_name="submission_comment")
    op.drop_table("submission_comment")
    op.drop_index("ix_validation_queue_admin_email", table_name="validation_queue")
    op.drop_index("ix_validation_queue_submission_id", table_name="validation_queue")
    op.drop_table("validation_queue")
    op.drop_index("ix_submission_status", table_name="submission")
    op.drop_index("ix_submission_user_email", table_name="submission")
    op.drop_table("submission")
