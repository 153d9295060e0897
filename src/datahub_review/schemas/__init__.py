# src/datahub_review/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .bulk import BulkRejectRequest, BulkRequest, BulkResultResponse
from .comment import AdminActionResponse, CommentCreate, CommentResponse
from .common import ErrorResponse
from .submission import (
    RejectRequest,
    SubmissionCreate,
    SubmissionResponse,
    TransitionResponse,
    ValidateRequest,
)
from .validation_queue import DequeueResponse, EnqueueResponse, QueueEntryResponse, QueueRequest

__all__ = [
    "BulkRejectRequest", "BulkRequest", "BulkResultResponse",
    "AdminActionResponse", "CommentCreate", "CommentResponse",
    "ErrorResponse",
    "RejectRequest", "SubmissionCreate", "SubmissionResponse", "TransitionResponse",
    "ValidateRequest",
    "DequeueResponse", "EnqueueResponse", "QueueEntryResponse", "QueueRequest",
]
