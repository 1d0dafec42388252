"""User-role repair operations used by the maintenance CLI."""

from __future__ import annotations

import logging
import os
import secrets
from typing import Optional

from sqlalchemy import func, or_
from werkzeug.security import generate_password_hash

from extensions import db
from models import ADMIN_PERMISSIONS, User

logger = logging.getLogger(__name__)


def find_user(identifier: str) -> Optional[User]:
    """Look a user up by email or username."""
    return User.query.filter(
        or_(User.email == identifier, User.username == identifier)
    ).first()


def make_admin(identifier: str) -> Optional[User]:
    """Grant the admin role and every admin permission."""
    user = find_user(identifier)
    if user is None:
        return None
    user.role = "admin"
    user.permissions = list(ADMIN_PERMISSIONS)
    db.session.commit()
    logger.info("User %s promoted to admin", user.id)
    return user


def fix_seller_role(email: str) -> tuple[Optional[User], bool]:
    """Turn a user into a freelancer seller unless either marker is already set.

    Returns (user, changed).
    """
    user = User.query.filter_by(email=email).first()
    if user is None:
        return None, False
    if user.role == "freelancer" or user.is_seller is True:
        return user, False
    user.role = "freelancer"
    user.is_seller = True
    db.session.commit()
    logger.info("User %s switched to freelancer seller", user.id)
    return user, True


def assign_missing_roles() -> int:
    """Give role-less users ``freelancer`` (sellers) or ``client``."""
    updated = 0
    for user in User.query.filter(or_(User.role.is_(None), User.role == "")).all():
        user.role = "freelancer" if user.is_seller else "client"
        user.permissions = []
        updated += 1
    db.session.commit()
    return updated


def create_initial_admin() -> tuple[User, Optional[str]]:
    """Return the existing admin, or create one from ``ADMIN_*`` env vars.

    The second element is the generated password when one was generated.
    """
    email = os.environ.get("ADMIN_EMAIL", "admin@noretmy.com")
    existing = User.query.filter(
        or_(User.email == email, User.role == "admin")
    ).order_by(User.id).first()
    if existing:
        return existing, None

    password = os.environ.get("ADMIN_PASSWORD")
    generated = None
    if not password:
        password = generated = secrets.token_urlsafe(12)
    admin = User(
        email=email,
        username=os.environ.get("ADMIN_USERNAME", "admin"),
        full_name=os.environ.get("ADMIN_FULLNAME", "System Administrator"),
        password_hash=generate_password_hash(password),
        role="admin",
        permissions=list(ADMIN_PERMISSIONS),
        is_verified=True,
        is_seller=False,
        is_company=False,
    )
    db.session.add(admin)
    db.session.commit()
    logger.info("Created initial admin %s", admin.username)
    return admin, generated


def role_statistics() -> list[tuple[Optional[str], int]]:
    return (
        db.session.query(User.role, func.count(User.id))
        .group_by(User.role)
        .order_by(func.count(User.id).desc())
        .all()
    )


def verify_all_users() -> int:
    count = User.query.filter(User.is_verified.is_(False)).update(
        {User.is_verified: True}, synchronize_session=False
    )
    db.session.commit()
    return count
