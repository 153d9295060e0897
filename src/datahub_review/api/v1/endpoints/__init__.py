# src/datahub_review/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .admin_actions import router as admin_actions_router
from .comments import router as comments_router
from .submissions import router as submissions_router
from .system import router as system_router
from .validation_queue import router as validation_queue_router

__all__ = [
    "admin_actions_router",
    "comments_router",
    "submissions_router",
    "system_router",
    "validation_queue_router",
]
