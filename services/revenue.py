"""Platform revenue ledger."""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import User
from services.auth import first_admin
from utils import safe_decimal

logger = logging.getLogger(__name__)


def credit_platform_fee(amount) -> bool:
    """Add *amount* to the platform admin's total and available revenue.

    Uses a single UPDATE with column arithmetic so concurrent purchases do
    not overwrite each other.  Returns False when nothing was credited.
    """
    fee = safe_decimal(amount, Decimal("0"))
    if fee <= 0:
        return False
    admin = first_admin()
    if admin is None:
        logger.warning("No admin account found; platform fee %s not credited", fee)
        return False
    try:
        User.query.filter_by(id=admin.id).update(
            {
                User.revenue_total: User.revenue_total + fee,
                User.revenue_available: User.revenue_available + fee,
            },
            synchronize_session=False,
        )
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Failed to credit platform fee %s to admin %s: %s", fee, admin.id, e)
        return False
    logger.info("Credited platform fee %s to admin %s", fee, admin.id)
    return True
