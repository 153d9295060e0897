"""Health and configuration endpoints for the review service."""

from __future__ import annotations

import time

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from datahub_review.api.v1.dependencies import SessionDep
from datahub_review.core.settings import settings

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/config")
async def get_public_config() -> dict[str, object]:
    """Return a sanitized snapshot of the review workflow configuration.

    Excludes connection strings and the admin allow-list.
    """
    return {
        "app": {
            "name": settings.app_name,
            "version": settings.app_version,
            "debug": settings.debug,
        },
        "queue": {"claim_policy": settings.queue_claim_policy.value},
        "bulk": {
            "max_concurrency": settings.bulk_max_concurrency,
            "max_items": settings.bulk_max_items,
        },
        "store": {
            "timeout_seconds": settings.store_timeout_seconds,
            "retry_attempts": settings.store_retry_attempts,
        },
    }


@router.get("/health")
async def get_system_health(db: SessionDep) -> dict[str, object]:
    """Health check including database connectivity.

    Args:
        db: Database session

    Returns:
        Dictionary with overall status, component health, and version
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError as e:
        db_status = f"unhealthy: {e}"

    return {
        "status": "healthy" if db_status == "healthy" else "unhealthy",
        "timestamp": int(time.time()),
        "components": {"database": db_status},
        "version": settings.app_version,
    }
