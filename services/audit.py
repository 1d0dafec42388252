"""Audit logging service."""

from __future__ import annotations

from typing import Optional

from extensions import db
from models import AuditLog
from services.auth import get_current_user


def log_action(
    action: str,
    entity_type: str,
    entity_id: Optional[str],
    details: str = "",
    user_id: Optional[int] = None,
) -> None:
    """Record an audit log entry.

    NOTE: This does NOT commit. The caller is responsible for committing
    the session together with the change being audited.
    """
    if user_id is None:
        user = get_current_user()
        user_id = user.id if user else None
    db.session.add(
        AuditLog(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
        )
    )
