"""Utility / helper functions used across the application."""

from __future__ import annotations

import datetime
import logging
import math
from datetime import timezone
from decimal import Decimal, InvalidOperation
from typing import Optional

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Datetime helpers
# ---------------------------------------------------------------------------

def utc_now() -> datetime.datetime:
    """Return current UTC datetime.  Used as SQLAlchemy column default."""
    return datetime.datetime.now(timezone.utc)


def as_utc(value: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def remaining_days(end: Optional[datetime.datetime], now: datetime.datetime) -> int:
    """Whole days left until *end*, rounded up; 0 once *end* has passed."""
    end = as_utc(end)
    if end is None or end <= now:
        return 0
    return math.ceil((end - now).total_seconds() / 86400)


def isoformat(value: Optional[datetime.datetime]) -> Optional[str]:
    value = as_utc(value)
    return value.isoformat() if value else None


# ---------------------------------------------------------------------------
# Safe type conversions
# ---------------------------------------------------------------------------

def safe_int(value, default: int = 0) -> int:
    """Safely convert *value* to ``int``, returning *default* on failure."""
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (ValueError, TypeError):
        logger.warning("Could not convert %r to int, using default %s", value, default)
        return default


def safe_decimal(value, default: Optional[Decimal] = None) -> Optional[Decimal]:
    """Convert *value* to ``Decimal`` via ``str``, returning *default* on failure."""
    if value is None or value == "":
        return default
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        logger.warning("Could not convert %r to Decimal, using default %s", value, default)
        return default
    if not result.is_finite():
        return default
    return result


def parse_bool_flag(value) -> bool:
    """Interpret a legacy boolean flag.

    Imported user records carry seller/company flags as real booleans, as
    the strings ``"true"``/``"false"`` or as 1/0.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1")
    return False


def money(value) -> Optional[float]:
    """Render a Numeric column value for JSON output."""
    if value is None:
        return None
    return float(value)
