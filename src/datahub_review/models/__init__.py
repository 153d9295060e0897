# src/datahub_review/models/__init__.py
"""SQLAlchemy models for the DataHub Review service."""

from .admin_action import AdminAction
from .comment import SubmissionComment
from .status import AuthorType, FileType, RejectionReason, SubmissionStatus
from .submission import Submission
from .validation_queue import ValidationQueueEntry

__all__ = [
    "AdminAction",
    "AuthorType", "FileType", "RejectionReason", "SubmissionStatus",
    "Submission",
    "SubmissionComment",
    "ValidationQueueEntry",
]
