"""VAT lookup and promotion price breakdown."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from flask import current_app

from utils import safe_decimal

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# Standard VAT rates by ISO country code
VAT_RATES: dict[str, Decimal] = {
    "AT": Decimal("0.20"), "BE": Decimal("0.21"), "BG": Decimal("0.20"),
    "CY": Decimal("0.19"), "CZ": Decimal("0.21"), "DE": Decimal("0.19"),
    "DK": Decimal("0.25"), "EE": Decimal("0.24"), "ES": Decimal("0.21"),
    "FI": Decimal("0.255"), "FR": Decimal("0.20"), "GB": Decimal("0.20"),
    "GR": Decimal("0.24"), "HR": Decimal("0.25"), "HU": Decimal("0.27"),
    "IE": Decimal("0.23"), "IT": Decimal("0.22"), "LT": Decimal("0.21"),
    "LU": Decimal("0.17"), "LV": Decimal("0.21"), "MT": Decimal("0.18"),
    "NL": Decimal("0.21"), "PL": Decimal("0.23"), "PT": Decimal("0.23"),
    "RO": Decimal("0.21"), "SE": Decimal("0.25"), "SI": Decimal("0.22"),
    "SK": Decimal("0.23"),
}


@dataclass(frozen=True)
class PriceBreakdown:
    base_price: Decimal
    vat_rate: Decimal
    vat_amount: Decimal
    platform_fee: Decimal
    total_price: Decimal

    def to_metadata(self) -> dict[str, str]:
        """Stripe metadata values must be strings."""
        return {
            "vat_rate": str(self.vat_rate),
            "base_amount": str(self.base_price),
            "vat_amount": str(self.vat_amount),
            "platform_fee": str(self.platform_fee),
            "total_amount": str(self.total_price),
        }

    def to_dict(self) -> dict:
        return {
            "base_price": float(self.base_price),
            "vat_rate": float(self.vat_rate),
            "vat_amount": float(self.vat_amount),
            "platform_fee": float(self.platform_fee),
            "total_price": float(self.total_price),
        }


def _pricing_config():
    return current_app.config["PRICING_CONFIG"]


def _cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def get_platform_fee_rate() -> Decimal:
    rate = safe_decimal(_pricing_config().platform_fee_rate, Decimal("0"))
    if rate < 0 or rate >= 1:
        logger.warning("Ignoring out-of-range platform fee rate %s", rate)
        return Decimal("0")
    return rate


def get_vat_rate(user) -> Decimal:
    """VAT rate for *user*, by country, falling back to the configured default."""
    country = (getattr(user, "country", None) or "").upper()
    if country in VAT_RATES:
        return VAT_RATES[country]
    return safe_decimal(_pricing_config().default_vat_rate, Decimal("0"))


def get_price_breakdown(amount, vat_rate) -> Optional[PriceBreakdown]:
    """Split a plan price into base, VAT, platform fee and total.

    Returns ``None`` when the inputs cannot be priced; callers must not
    charge in that case.
    """
    base = safe_decimal(amount)
    rate = safe_decimal(vat_rate)
    if base is None or rate is None:
        logger.error("Cannot price amount=%r vat_rate=%r", amount, vat_rate)
        return None
    if base <= 0 or rate < 0 or rate >= 1:
        logger.error("Price inputs out of range: amount=%s vat_rate=%s", base, rate)
        return None

    base = _cents(base)
    vat_amount = _cents(base * rate)
    platform_fee = _cents(base * get_platform_fee_rate())
    return PriceBreakdown(
        base_price=base,
        vat_rate=rate,
        vat_amount=vat_amount,
        platform_fee=platform_fee,
        total_price=base + vat_amount + platform_fee,
    )
