"""Authentication and authorization services."""

from __future__ import annotations

import logging
import os
import secrets
from functools import wraps
from typing import Optional

from flask import g, jsonify
from werkzeug.security import generate_password_hash

from extensions import db
from models import ADMIN_PERMISSIONS, ROLE_PERMISSIONS, User

logger = logging.getLogger(__name__)


def get_current_user() -> Optional[User]:
    """Return the currently logged-in user from ``flask.g``."""
    return getattr(g, "current_user", None)


def user_permissions(user: User) -> set[str]:
    """Role permissions merged with any explicitly granted ones."""
    permissions = set(ROLE_PERMISSIONS.get(user.role or "", set()))
    permissions.update(user.permissions or [])
    return permissions


def login_required(f):
    """Decorator that answers 401 if user is not authenticated."""

    @wraps(f)
    def decorated(*args, **kwargs):
        if not get_current_user():
            return jsonify({"error": "You are unauthorized!"}), 401
        return f(*args, **kwargs)

    return decorated


def role_required(permission: str):
    """Decorator that checks user has *permission* (or ``manage_all``)."""

    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            user = get_current_user()
            if not user:
                return jsonify({"error": "You are unauthorized!"}), 401
            permissions = user_permissions(user)
            if permission not in permissions and "manage_all" not in permissions:
                return jsonify({"error": "You do not have permission for this action."}), 403
            return f(*args, **kwargs)

        return decorated

    return decorator


def first_admin() -> Optional[User]:
    """The platform admin account: the oldest user with the admin role."""
    return (
        User.query.filter_by(role="admin")
        .order_by(User.created_at.asc(), User.id.asc())
        .first()
    )


def ensure_admin_user():
    """Create a default admin user if the users table is empty."""
    if User.query.count() == 0:
        password = os.environ.get("ADMIN_PASSWORD") or secrets.token_urlsafe(12)
        admin = User(
            email=os.environ.get("ADMIN_EMAIL", "admin@noretmy.com"),
            username=os.environ.get("ADMIN_USERNAME", "admin"),
            full_name=os.environ.get("ADMIN_FULLNAME", "System Administrator"),
            password_hash=generate_password_hash(password),
            role="admin",
            permissions=list(ADMIN_PERMISSIONS),
            is_verified=True,
        )
        db.session.add(admin)
        db.session.commit()
        if "ADMIN_PASSWORD" not in os.environ:
            # stdout only, never the log files
            print(
                f"Created default admin user. Initial password: {password} "
                "(change immediately after first login)"
            )
        logger.info("Created default admin user %s", admin.username)
