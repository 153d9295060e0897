"""Helpers for the admin action audit trail."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from datahub_review.core.identity import AdminIdentity
from datahub_review.models import AdminAction


def record_action(
    session: Session,
    admin: AdminIdentity,
    action_type: str,
    target_id: str,
    description: str | None = None,
) -> AdminAction:
    """Stage an audit row; the caller's commit makes it durable with the change."""
    action = AdminAction(
        admin_email=admin.email,
        action_type=action_type,
        target_id=target_id,
        description=description,
    )
    session.add(action)
    return action


def list_actions(session: Session, admin_email: str | None = None, limit: int = 100) -> list[AdminAction]:
    """Return recorded actions, newest first, optionally for one admin."""
    stmt = select(AdminAction)
    if admin_email:
        stmt = stmt.where(AdminAction.admin_email == admin_email.strip().lower())
    stmt = stmt.order_by(AdminAction.id.desc()).limit(limit)
    return list(session.scalars(stmt))
