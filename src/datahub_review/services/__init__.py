# src/datahub_review/services/__init__.py
"""Business logic services for the review workflow."""

from .bulk import BulkOperation, BulkOperationCoordinator, BulkOperationResult
from .comments import CommentService
from .transitions import TransitionEngine, TransitionResult
from .validation_queue import ValidationQueueService

__all__ = [
    "BulkOperation",
    "BulkOperationCoordinator",
    "BulkOperationResult",
    "CommentService",
    "TransitionEngine",
    "TransitionResult",
    "ValidationQueueService",
]
