"""Admin audit trail endpoint."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query

from datahub_review.api.v1.dependencies import RequestTimeoutDep, SessionFactoryDep
from datahub_review.core.settings import settings
from datahub_review.db.store import run_unit_of_work
from datahub_review.schemas.comment import AdminActionResponse
from datahub_review.services.audit import list_actions

router = APIRouter(prefix="/admin-actions", tags=["audit"])


@router.get("", response_model=list[AdminActionResponse])
async def list_admin_actions(
    session_factory: SessionFactoryDep,
    timeout: RequestTimeoutDep,
    admin_email: Annotated[str | None, Query(alias="adminEmail")] = None,
    limit: Annotated[int, Query(ge=1, le=settings.listing_limit_max)] = 100,
) -> list[AdminActionResponse]:
    """Return recorded admin actions, newest first."""
    return await run_unit_of_work(
        session_factory,
        lambda session: [
            AdminActionResponse.model_validate(action)
            for action in list_actions(session, admin_email, limit)
        ],
        timeout=timeout,
    )
