# src/datahub_review/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    admin_actions_router,
    comments_router,
    submissions_router,
    system_router,
    validation_queue_router,
)

__all__ = [
    "submissions_router",
    "validation_queue_router",
    "comments_router",
    "admin_actions_router",
    "system_router",
]
