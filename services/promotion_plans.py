"""Promotion plan catalogue.

Plans are fixed per promotion type; prices are in the platform currency
before VAT and platform fee.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Optional

ALL_GIGS = "all_gigs"
SINGLE_GIG = "single_gig"

# Stripe metadata ``payment_type`` -> promotion type
PAYMENT_TYPES = {
    "monthly_promotion": ALL_GIGS,
    "gig_promotion": SINGLE_GIG,
}


@dataclass(frozen=True)
class PromotionPlan:
    key: str
    name: str
    promotion_type: str
    price: Decimal
    priority: int
    duration_days: int = 30
    description: str = ""

    def to_dict(self) -> dict:
        data = asdict(self)
        data["price"] = float(self.price)
        return data


PROMOTION_PLANS: dict[str, dict[str, PromotionPlan]] = {
    ALL_GIGS: {
        "homepage": PromotionPlan(
            "homepage", "Homepage Spotlight", ALL_GIGS, Decimal("70"), 4,
            description="All gigs featured on the homepage and at the top of search.",
        ),
        "premium": PromotionPlan(
            "premium", "Premium", ALL_GIGS, Decimal("60"), 3,
            description="All gigs ranked above standard listings.",
        ),
        "standard": PromotionPlan(
            "standard", "Standard", ALL_GIGS, Decimal("50"), 2,
            description="All gigs boosted in category listings.",
        ),
        "basic": PromotionPlan(
            "basic", "Basic", ALL_GIGS, Decimal("40"), 1,
            description="Entry-level boost for all gigs.",
        ),
    },
    SINGLE_GIG: {
        "homepage": PromotionPlan(
            "homepage", "Homepage Gig", SINGLE_GIG, Decimal("30"), 3,
            description="One gig featured on the homepage.",
        ),
        "sponsored": PromotionPlan(
            "sponsored", "Sponsored Gig", SINGLE_GIG, Decimal("20"), 2,
            description="One gig shown in sponsored search slots.",
        ),
        "featured": PromotionPlan(
            "featured", "Featured Gig", SINGLE_GIG, Decimal("10"), 1,
            description="One gig highlighted in its category.",
        ),
    },
}


def get_plan(key: Optional[str], promotion_type: str) -> Optional[PromotionPlan]:
    if not key:
        return None
    return PROMOTION_PLANS.get(promotion_type, {}).get(key)


def is_valid_plan_key(key: Optional[str], promotion_type: str) -> bool:
    return get_plan(key, promotion_type) is not None


def list_plans() -> list[dict]:
    """All plans ordered by type, then descending priority."""
    plans = []
    for promotion_type in (ALL_GIGS, SINGLE_GIG):
        ordered = sorted(
            PROMOTION_PLANS[promotion_type].values(),
            key=lambda plan: plan.priority,
            reverse=True,
        )
        plans.extend(plan.to_dict() for plan in ordered)
    return plans


def promotion_type_for_payment(payment_type: Optional[str]) -> Optional[str]:
    return PAYMENT_TYPES.get(payment_type or "")


def payment_type_for_promotion(promotion_type: str) -> str:
    for payment_type, mapped in PAYMENT_TYPES.items():
        if mapped == promotion_type:
            return payment_type
    raise KeyError(promotion_type)
