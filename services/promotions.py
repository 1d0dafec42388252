"""Gig promotion workflow.

Purchases go through two steps: initiation creates a Stripe payment intent
(no promotion record yet), and completion verifies the payment and writes a
``PromotionPurchase``.  Completion is idempotent on the payment intent id, so
the client call and the webhook can both run it.

Older promotions live in the legacy ``Promotion`` table.  Reads, cancel and
delete consult ``PromotionPurchase`` first and fall back to the legacy table;
``backfill_legacy_promotions`` moves the legacy rows across.

Expiry is derived from the date window at read time.  ``expire_stale_promotions``
rewrites the stored status and clears gig flags periodically.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional, Union

from flask import current_app
from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError

from extensions import db
from models import PROMOTION_STATUSES, Job, Promotion, PromotionPurchase, User
from services import stripe_billing
from services.audit import log_action
from services.auth import first_admin
from services.notifications import notify_promotion_activated
from services.pricing import get_price_breakdown, get_vat_rate
from services.promotion_plans import (
    ALL_GIGS,
    SINGLE_GIG,
    PromotionPlan,
    get_plan,
    payment_type_for_promotion,
    promotion_type_for_payment,
)
from services.revenue import credit_platform_fee
from utils import as_utc, isoformat, money, parse_bool_flag, remaining_days, safe_decimal, safe_int, utc_now

logger = logging.getLogger(__name__)

PromotionRecord = Union[PromotionPurchase, Promotion]

NOT_ELIGIBLE_MESSAGE = (
    "Only sellers and companies can purchase promotion plans. "
    "Please become a seller first."
)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class PromotionError(Exception):
    """Base class for promotion failures; carries an HTTP status and payload."""

    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload or {}

    def to_dict(self) -> dict:
        return {"success": False, "error": self.message, **self.payload}


class AuthenticationError(PromotionError):
    status_code = 401


class ValidationError(PromotionError):
    status_code = 400


class InvalidPlanError(PromotionError):
    status_code = 400


class PromotionConflictError(PromotionError):
    status_code = 400


class PaymentNotCompletedError(PromotionError):
    status_code = 400


class NotEligibleError(PromotionError):
    status_code = 403


class OwnershipError(PromotionError):
    status_code = 403


class NotFoundError(PromotionError):
    status_code = 404


class PricingError(PromotionError):
    status_code = 500


class PaymentProviderError(PromotionError):
    status_code = 500


# ---------------------------------------------------------------------------
# Eligibility & scope
# ---------------------------------------------------------------------------

def is_eligible_for_promotion(user) -> bool:
    """Sellers, freelancers, companies and admins may buy promotions."""
    if user is None:
        return False
    role = (getattr(user, "role", None) or "").lower()
    if role in ("freelancer", "seller", "admin"):
        return True
    if parse_bool_flag(getattr(user, "is_seller", None)):
        return True
    if parse_bool_flag(getattr(user, "is_company", None)):
        return True
    return getattr(user, "seller_type", None) == "company"


def scope_key_for(promotion_type: str, user_id: int, gig_id: Optional[int] = None) -> str:
    if promotion_type == SINGLE_GIG:
        return f"gig:{gig_id}"
    return f"seller:{user_id}"


def _require_caller(user) -> User:
    if user is None:
        raise AuthenticationError("You are unauthorized!")
    return user


def _require_eligible(user) -> None:
    if not is_eligible_for_promotion(user):
        raise NotEligibleError(NOT_ELIGIBLE_MESSAGE)


def _get_owned_gig(user: User, gig_id) -> Job:
    gig = db.session.get(Job, safe_int(gig_id))
    if gig is None:
        raise NotFoundError("Gig not found")
    if gig.seller_id != user.id and user.role != "admin":
        raise OwnershipError("You can only promote your own gigs")
    return gig


# ---------------------------------------------------------------------------
# Derived state
# ---------------------------------------------------------------------------

def is_live(record: PromotionRecord, now: datetime) -> bool:
    """Active window is start-inclusive, end-exclusive."""
    start, end = record.starts_at, record.ends_at
    if record.status != "active" or start is None or end is None:
        return False
    return start <= now < end


def effective_status(record: PromotionRecord, now: datetime) -> str:
    if record.status == "active":
        end = record.ends_at
        if end is not None and end <= now:
            return "expired"
    return record.status


def _active_summary(record: PromotionRecord, now: datetime) -> dict:
    return {
        "id": record.public_id,
        "plan": record.plan_key,
        "start_date": isoformat(record.starts_at),
        "end_date": isoformat(record.ends_at),
        "remaining_days": remaining_days(record.ends_at, now),
    }


def _conflict_payload(record: PromotionRecord, now: datetime) -> dict:
    summary = _active_summary(record, now)
    return {"active_promotion": summary, "remaining_days": summary["remaining_days"]}


def _live_purchases(now: datetime):
    return PromotionPurchase.query.filter(
        PromotionPurchase.status == "active",
        PromotionPurchase.activated_at <= now,
        PromotionPurchase.expires_at > now,
    )


def _live_legacy(now: datetime):
    return Promotion.query.filter(
        Promotion.status == "active",
        Promotion.promotion_start_date <= now,
        Promotion.promotion_end_date > now,
    )


def find_active_conflict(
    promotion_type: str,
    user_id: int,
    gig_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Optional[PromotionRecord]:
    """Return a live promotion occupying the same scope, from either table."""
    now = now or utc_now()
    scope = scope_key_for(promotion_type, user_id, gig_id)
    purchase = PromotionPurchase.query.filter(
        PromotionPurchase.scope_key == scope,
        PromotionPurchase.status == "active",
        # an open-ended active row still holds the active-scope index
        or_(PromotionPurchase.expires_at.is_(None), PromotionPurchase.expires_at > now),
    ).first()
    if purchase:
        return purchase

    legacy = Promotion.query.filter(
        Promotion.status == "active",
        or_(Promotion.promotion_end_date.is_(None), Promotion.promotion_end_date > now),
    )
    if promotion_type == SINGLE_GIG:
        legacy = legacy.filter(Promotion.gig_id == gig_id)
    else:
        legacy = legacy.filter(Promotion.user_id == user_id, Promotion.is_for_all.is_(True))
    return legacy.first()


# ---------------------------------------------------------------------------
# Initiation
# ---------------------------------------------------------------------------

def _resolve_plan(plan_key: Optional[str], promotion_type: str) -> PromotionPlan:
    if not plan_key:
        raise ValidationError("Promotion plan is required!")
    plan = get_plan(plan_key, promotion_type)
    if plan is None:
        raise InvalidPlanError("Invalid promotion plan!")
    return plan


def _start_payment(user: User, plan: PromotionPlan, promotion_type: str, gig_id: Optional[int] = None) -> dict:
    breakdown = get_price_breakdown(plan.price, get_vat_rate(user))
    if breakdown is None:
        raise PricingError("Error calculating price breakdown")

    payment_type = payment_type_for_promotion(promotion_type)
    metadata = {
        "promotion_plan": plan.key,
        "user_id": user.id,
        "gig_id": gig_id,
        "is_for_all": "true" if promotion_type == ALL_GIGS else "false",
        **breakdown.to_metadata(),
    }
    response = stripe_billing.create_customer_and_payment_intent(
        breakdown.total_price, user.email, payment_type, metadata
    )
    if not response or not response.get("client_secret"):
        raise PaymentProviderError("Failed to create payment intent.")

    logger.info(
        "User %s started %s payment %s for plan %s (total %s)",
        user.id, payment_type, response.get("payment_intent"), plan.key, breakdown.total_price,
    )
    return {
        "client_secret": response["client_secret"],
        "payment_intent": response.get("payment_intent"),
        "payment_type": payment_type,
        "plan": plan.to_dict(),
        "breakdown": breakdown.to_dict(),
    }


def initiate_all_gigs_promotion(user, plan_key: Optional[str]) -> dict:
    """Create a payment intent for promoting every gig of *user*."""
    _require_caller(user)
    _require_eligible(user)
    plan = _resolve_plan(plan_key, ALL_GIGS)

    now = utc_now()
    conflict = find_active_conflict(ALL_GIGS, user.id, now=now)
    if conflict:
        raise PromotionConflictError(
            "You already have an active promotion plan for all your gigs. "
            "Please wait until it expires before purchasing a new one.",
            payload=_conflict_payload(conflict, now),
        )
    return _start_payment(user, plan, ALL_GIGS)


def initiate_single_gig_promotion(user, gig_id, plan_key: Optional[str]) -> dict:
    """Create a payment intent for promoting one gig."""
    _require_caller(user)
    if not gig_id:
        raise ValidationError("Gig ID is required!")
    if not plan_key:
        raise ValidationError("Promotion plan is required!")
    _require_eligible(user)
    gig = _get_owned_gig(user, gig_id)
    plan = _resolve_plan(plan_key, SINGLE_GIG)

    now = utc_now()
    conflict = find_active_conflict(SINGLE_GIG, user.id, gig.id, now=now)
    if conflict:
        raise PromotionConflictError(
            "This gig already has an active promotion plan. "
            "Only one promotion plan can be active per gig at a time.",
            payload=_conflict_payload(conflict, now),
        )
    return _start_payment(user, plan, SINGLE_GIG, gig_id=gig.id)


# ---------------------------------------------------------------------------
# Completion / activation
# ---------------------------------------------------------------------------

def complete_promotion_purchase(
    user,
    payment_intent_id: Optional[str],
    plan_key: Optional[str],
    gig_id=None,
    payment_type: Optional[str] = None,
) -> tuple[PromotionPurchase, bool]:
    """Verify the payment with Stripe and activate the promotion.

    Returns ``(purchase, created)``; ``created`` is False on replay.
    """
    _require_caller(user)
    if not payment_intent_id:
        raise ValidationError("Payment intent ID is required")
    if not plan_key:
        raise ValidationError("Promotion plan is required")

    intent = stripe_billing.retrieve_payment_intent(payment_intent_id)
    if intent is None:
        raise PaymentProviderError("Could not verify the payment with the payment processor")

    status = intent.get("status")
    if status == "requires_capture":
        intent = stripe_billing.capture_payment_intent(payment_intent_id)
        if intent is None:
            raise PaymentProviderError("Failed to capture the payment")
        status = intent.get("status")
    if status != "succeeded":
        logger.warning("Payment %s not successful: %s", payment_intent_id, status)
        raise PaymentNotCompletedError("Payment not successful", payload={"status": status})

    return activate_purchase(user, intent, plan_key, gig_id, payment_type)


def _check_intent_matches(metadata: dict, user: User, plan_key: str, payment_type: str, gig_id) -> None:
    owner = metadata.get("user_id")
    if owner and str(owner) != str(user.id):
        raise OwnershipError("This payment belongs to another account")
    if metadata.get("promotion_plan") and metadata["promotion_plan"] != plan_key:
        raise ValidationError("Payment does not match the requested promotion plan")
    if metadata.get("payment_type") and metadata["payment_type"] != payment_type:
        raise ValidationError("Payment does not match the requested promotion type")
    if metadata.get("gig_id") and gig_id and safe_int(metadata["gig_id"]) != safe_int(gig_id):
        raise ValidationError("Payment does not match the requested gig")


def _expire_scope(scope: str, now: datetime) -> None:
    """Flip stale active rows of *scope* so the active-scope index admits a new one."""
    count = PromotionPurchase.query.filter(
        PromotionPurchase.scope_key == scope,
        PromotionPurchase.status == "active",
        PromotionPurchase.expires_at <= now,
    ).update({PromotionPurchase.status: "expired"}, synchronize_session=False)
    if count:
        db.session.commit()
        logger.info("Expired %s stale promotion(s) in scope %s", count, scope)


def _propagate_to_jobs(purchase: PromotionPurchase, now: datetime) -> int:
    """Stamp the purchase onto its gigs.

    Gigs already carrying a promotion that outlives this one keep it, so the
    expiry job never clears them before their own end date.
    """
    if purchase.promotion_type == SINGLE_GIG:
        query = Job.query.filter(Job.id == purchase.gig_id)
    else:
        query = Job.query.filter(Job.seller_id == purchase.user_id)
    query = query.filter(or_(
        Job.is_promoted.is_(False),
        Job.promotion_expires_at.is_(None),
        Job.promotion_expires_at <= purchase.expires_at,
    ))
    return query.update(
        {
            Job.is_promoted: True,
            Job.promoted_at: now,
            Job.promotion_expires_at: purchase.expires_at,
            Job.promotion_plan: purchase.plan_key,
            Job.promotion_priority: purchase.plan_priority,
        },
        synchronize_session=False,
    )


def _purchase_for_intent(intent_id: Optional[str]) -> Optional[PromotionPurchase]:
    if not intent_id:
        return None
    return PromotionPurchase.query.filter_by(stripe_payment_intent_id=intent_id).first()


def _replayed(purchase: PromotionPurchase, user: User) -> PromotionPurchase:
    if purchase.user_id != user.id:
        raise OwnershipError("This payment belongs to another account")
    logger.info("Payment %s already activated as %s", purchase.stripe_payment_intent_id, purchase.public_id)
    return purchase


def activate_purchase(
    user: User,
    intent: dict,
    plan_key: Optional[str],
    gig_id=None,
    payment_type: Optional[str] = None,
) -> tuple[PromotionPurchase, bool]:
    """Write the purchase for a succeeded payment intent."""
    intent_id = intent.get("id")
    existing = _purchase_for_intent(intent_id)
    if existing:
        return _replayed(existing, user), False

    metadata = intent.get("metadata") or {}
    payment_type = payment_type or metadata.get("payment_type")
    gig_id = safe_int(gig_id or metadata.get("gig_id")) or None
    promotion_type = promotion_type_for_payment(payment_type)
    if promotion_type is None:
        promotion_type = SINGLE_GIG if gig_id else ALL_GIGS
        payment_type = payment_type_for_promotion(promotion_type)
    _check_intent_matches(metadata, user, plan_key, payment_type, gig_id)

    plan = get_plan(plan_key, promotion_type)
    if plan is None:
        raise InvalidPlanError("Invalid promotion plan")

    gig = None
    if promotion_type == SINGLE_GIG:
        if not gig_id:
            raise ValidationError("Gig ID is required")
        gig = _get_owned_gig(user, gig_id)

    now = utc_now()
    scope = scope_key_for(promotion_type, user.id, gig.id if gig else None)
    _expire_scope(scope, now)
    conflict = find_active_conflict(promotion_type, user.id, gig.id if gig else None, now=now)
    if conflict:
        logger.warning(
            "Payment %s succeeded but scope %s already has active promotion %s",
            intent_id, scope, conflict.public_id,
        )
        raise PromotionConflictError(
            "You already have an active promotion. Please wait until it expires.",
            payload=_conflict_payload(conflict, now),
        )

    amount_minor = intent.get("amount")
    base_amount = safe_decimal(metadata.get("base_amount"), plan.price)
    vat_amount = safe_decimal(metadata.get("vat_amount"), Decimal("0"))
    platform_fee = safe_decimal(metadata.get("platform_fee"), Decimal("0"))
    if amount_minor is not None:
        total_amount = Decimal(int(amount_minor)) / 100
    else:
        total_amount = base_amount + vat_amount + platform_fee

    purchase = PromotionPurchase(
        stripe_payment_intent_id=intent_id,
        user_id=user.id,
        plan_key=plan.key,
        plan_name=plan.name,
        plan_priority=plan.priority,
        promotion_type=promotion_type,
        gig_id=gig.id if gig else None,
        scope_key=scope,
        status="active",
        purchased_at=now,
        activated_at=now,
        expires_at=now + timedelta(days=plan.duration_days),
        base_amount=base_amount,
        vat_rate=safe_decimal(metadata.get("vat_rate"), Decimal("0")),
        vat_amount=vat_amount,
        platform_fee=platform_fee,
        total_amount=total_amount,
        currency=intent.get("currency") or current_app.config["STRIPE_CONFIG"].currency,
        duration_days=plan.duration_days,
    )
    db.session.add(purchase)
    try:
        db.session.flush()
        promoted = _propagate_to_jobs(purchase, now)
        log_action(
            "activate", "promotion_purchase", purchase.public_id,
            f"{plan.key} ({promotion_type}) via {intent_id}", user_id=user.id,
        )
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        replay = _purchase_for_intent(intent_id)
        if replay:
            return _replayed(replay, user), False
        raise PromotionConflictError("You already have an active promotion. Please wait until it expires.")
    logger.info(
        "Activated promotion %s for user %s (%s, %s gig(s) promoted, expires %s)",
        purchase.public_id, user.id, plan.key, promoted, purchase.expires_at,
    )

    # Payment is the source of truth from here on; side effects are best effort.
    credit_platform_fee(purchase.platform_fee)
    try:
        notify_promotion_activated(user, first_admin(), purchase)
    except Exception as e:
        db.session.rollback()
        logger.error("Notifications for promotion %s failed: %s", purchase.public_id, e)

    return purchase, True


def activate_from_webhook(intent: dict) -> Optional[PromotionPurchase]:
    """Activate a promotion from a ``payment_intent.succeeded`` event."""
    metadata = intent.get("metadata") or {}
    payment_type = metadata.get("payment_type")
    if promotion_type_for_payment(payment_type) is None:
        return None
    user = db.session.get(User, safe_int(metadata.get("user_id")))
    if user is None:
        logger.error("Webhook for %s references unknown user %r", intent.get("id"), metadata.get("user_id"))
        return None
    try:
        purchase, created = activate_purchase(
            user, intent, metadata.get("promotion_plan"), metadata.get("gig_id"), payment_type
        )
    except PromotionError as e:
        logger.warning("Webhook activation of %s rejected: %s", intent.get("id"), e.message)
        return None
    logger.info("Webhook processed payment %s (created=%s)", intent.get("id"), created)
    return purchase


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------

def promotion_view(record: PromotionRecord, now: datetime) -> dict:
    """Read model shared by current and legacy records."""
    live = is_live(record, now)
    if isinstance(record, PromotionPurchase):
        source = "current"
        plan_name = record.plan_name
        amount = record.total_amount
    else:
        source = "legacy"
        plan = get_plan(record.promotion_plan, record.promotion_type)
        plan_name = plan.name if plan else record.promotion_plan
        amount = record.amount_paid
    return {
        "id": record.public_id,
        "source": source,
        "promotion_plan": record.plan_key,
        "plan_name": plan_name,
        "promotion_type": record.promotion_type,
        "is_for_all": record.promotion_type == ALL_GIGS,
        "status": "active" if live else effective_status(record, now),
        "is_active": live,
        "start_date": isoformat(record.starts_at),
        "end_date": isoformat(record.ends_at),
        "remaining_days": remaining_days(record.ends_at, now) if live else 0,
        "duration_days": record.duration_days or 30,
        "amount_paid": money(amount),
        "gig": record.gig.summary() if record.gig else None,
        "created_at": isoformat(record.created_at),
    }


def _created_sort_key(record: PromotionRecord):
    return isoformat(record.created_at) or ""


def list_user_promotions(user) -> list[dict]:
    """Every promotion of *user* from both tables, newest first."""
    _require_caller(user)
    now = utc_now()
    records: list[PromotionRecord] = []
    records.extend(PromotionPurchase.query.filter_by(user_id=user.id).all())
    records.extend(Promotion.query.filter_by(user_id=user.id).all())
    records.sort(key=_created_sort_key, reverse=True)
    return [promotion_view(record, now) for record in records]


def list_active_promotions(user) -> list[dict]:
    """Live promotions of *user*, soonest ending first."""
    _require_caller(user)
    now = utc_now()
    records: list[PromotionRecord] = []
    records.extend(_live_purchases(now).filter(PromotionPurchase.user_id == user.id).all())
    records.extend(_live_legacy(now).filter(Promotion.user_id == user.id).all())
    records.sort(key=lambda record: record.ends_at)
    return [promotion_view(record, now) for record in records]


def gig_promotion_status(gig_id) -> dict:
    gig = db.session.get(Job, safe_int(gig_id))
    if gig is None:
        raise NotFoundError("Gig not found")
    now = utc_now()
    record = (
        _live_purchases(now).filter(PromotionPurchase.scope_key == scope_key_for(SINGLE_GIG, gig.seller_id, gig.id)).first()
        or _live_legacy(now).filter(Promotion.gig_id == gig.id).first()
    )
    if record is None:
        return {"has_active_promotion": False}
    return {"has_active_promotion": True, "active_promotion": _active_summary(record, now)}


def _apply_status_filter(query, status: Optional[str], now: datetime):
    """Filter by status, judging active/expired against the date window."""
    if status == "active":
        return query.filter(PromotionPurchase.status == "active", PromotionPurchase.expires_at > now)
    if status == "expired":
        return query.filter(or_(
            PromotionPurchase.status == "expired",
            and_(PromotionPurchase.status == "active", PromotionPurchase.expires_at <= now),
        ))
    if status in PROMOTION_STATUSES:
        return query.filter(PromotionPurchase.status == status)
    return query


def purchase_history(user_id: Optional[int], page=1, limit=20, status: Optional[str] = None) -> dict:
    """Paginated purchases; all users when *user_id* is None."""
    page = max(safe_int(page, 1), 1)
    limit = min(max(safe_int(limit, 20), 1), 100)
    now = utc_now()
    query = PromotionPurchase.query
    if user_id is not None:
        query = query.filter(PromotionPurchase.user_id == user_id)
    query = _apply_status_filter(query, status, now)
    pagination = query.order_by(
        PromotionPurchase.created_at.desc(), PromotionPurchase.id.desc()
    ).paginate(page=page, per_page=limit, error_out=False)

    data = []
    for purchase in pagination.items:
        item = purchase.to_dict()
        item["status"] = effective_status(purchase, now)
        item["is_active"] = is_live(purchase, now)
        item["remaining_days"] = remaining_days(purchase.ends_at, now) if item["is_active"] else 0
        data.append(item)
    return {
        "success": True,
        "data": data,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": pagination.total,
            "pages": pagination.pages,
        },
    }


# ---------------------------------------------------------------------------
# Cancel / delete
# ---------------------------------------------------------------------------

def _find_owned_record(user: User, public_id: Optional[str], verb: str) -> PromotionRecord:
    if not public_id:
        raise ValidationError("Promotion ID is required")
    record = (
        PromotionPurchase.query.filter_by(public_id=public_id).first()
        or Promotion.query.filter_by(public_id=public_id).first()
    )
    if record is None:
        raise NotFoundError("Promotion not found")
    if record.user_id != user.id:
        raise OwnershipError(f"You can only {verb} your own promotions")
    return record


def _clear_job_promotion(record: PromotionRecord) -> int:
    """Undo the gig flags a promotion set, leaving newer promotions alone."""
    if record.promotion_type == SINGLE_GIG:
        query = Job.query.filter(Job.id == record.gig_id)
    else:
        query = Job.query.filter(Job.seller_id == record.user_id)
    return query.filter(
        Job.promotion_plan == record.plan_key,
        Job.promotion_expires_at == record.ends_at,
    ).update(
        {Job.is_promoted: False, Job.promotion_plan: None, Job.promotion_priority: 0},
        synchronize_session=False,
    )


def cancel_promotion(user, public_id: Optional[str]) -> dict:
    """Cancel an active, unexpired promotion owned by *user*."""
    _require_caller(user)
    record = _find_owned_record(user, public_id, "cancel")
    now = utc_now()
    end = record.ends_at
    if record.status != "active" or (end is not None and end <= now):
        current = effective_status(record, now)
        raise ValidationError(
            f"Cannot cancel a promotion with status '{current}'",
            payload={"current_status": current},
        )

    record.status = "cancelled"
    _clear_job_promotion(record)
    log_action("cancel", type(record).__name__.lower(), record.public_id, user_id=user.id)
    db.session.commit()
    logger.info("User %s cancelled promotion %s", user.id, record.public_id)
    return {
        "id": record.public_id,
        "status": record.status,
        "promotion_plan": record.plan_key,
    }


def delete_promotion(user, public_id: Optional[str]) -> None:
    """Delete a non-active (or already expired) promotion owned by *user*."""
    _require_caller(user)
    record = _find_owned_record(user, public_id, "delete")
    now = utc_now()
    end = record.ends_at
    if record.status == "active" and (end is None or end > now):
        raise ValidationError(
            "Cannot delete an active promotion. You can cancel it instead.",
            payload={"suggestion": "Use the cancel endpoint to stop an active promotion"},
        )
    log_action("delete", type(record).__name__.lower(), record.public_id, user_id=user.id)
    db.session.delete(record)
    db.session.commit()
    logger.info("User %s deleted promotion %s", user.id, public_id)


# ---------------------------------------------------------------------------
# Maintenance jobs
# ---------------------------------------------------------------------------

def expire_stale_promotions(now: Optional[datetime] = None) -> int:
    """Mark ended promotions expired and clear their gig flags.

    Should be called periodically (e.g., via cron running the
    ``expire-promotions`` command).
    """
    now = now or utc_now()
    expired = PromotionPurchase.query.filter(
        PromotionPurchase.status == "active",
        PromotionPurchase.expires_at <= now,
    ).update({PromotionPurchase.status: "expired"}, synchronize_session=False)
    expired += Promotion.query.filter(
        Promotion.status == "active",
        Promotion.promotion_end_date <= now,
    ).update({Promotion.status: "expired"}, synchronize_session=False)
    cleared = Job.query.filter(
        Job.is_promoted.is_(True),
        Job.promotion_expires_at <= now,
    ).update(
        {Job.is_promoted: False, Job.promotion_plan: None, Job.promotion_priority: 0},
        synchronize_session=False,
    )
    db.session.commit()
    logger.info("Expired %s promotion(s), cleared %s gig(s)", expired, cleared)
    return expired


def backfill_legacy_promotions() -> tuple[int, int]:
    """Move legacy ``Promotion`` rows into ``PromotionPurchase``.

    Safe to call repeatedly (idempotent).  Returns (migrated, skipped).
    """
    now = utc_now()
    migrated = skipped = 0
    for legacy in Promotion.query.order_by(Promotion.id).all():
        promotion_type = legacy.promotion_type
        if promotion_type == SINGLE_GIG and legacy.gig_id is None:
            logger.warning("Skipping legacy promotion %s: no gig", legacy.public_id)
            skipped += 1
            continue
        scope = scope_key_for(promotion_type, legacy.user_id, legacy.gig_id)
        duration = legacy.duration_days or 30
        starts_at = legacy.starts_at or as_utc(legacy.created_at)
        ends_at = legacy.ends_at
        if ends_at is None and starts_at is not None:
            ends_at = starts_at + timedelta(days=duration)
        status = legacy.status
        if status == "active" and (ends_at is None or ends_at <= now):
            status = "expired"
        if status == "active" and PromotionPurchase.query.filter_by(scope_key=scope, status="active").first():
            logger.warning("Skipping legacy promotion %s: scope %s already active", legacy.public_id, scope)
            skipped += 1
            continue

        plan = get_plan(legacy.promotion_plan, promotion_type)
        amount = legacy.amount_paid if legacy.amount_paid is not None else (plan.price if plan else 0)
        purchase = PromotionPurchase(
            public_id=legacy.public_id,
            user_id=legacy.user_id,
            plan_key=legacy.promotion_plan,
            plan_name=plan.name if plan else legacy.promotion_plan,
            plan_priority=plan.priority if plan else 0,
            promotion_type=promotion_type,
            gig_id=legacy.gig_id if promotion_type == SINGLE_GIG else None,
            scope_key=scope,
            status=status,
            purchased_at=legacy.created_at,
            activated_at=starts_at,
            expires_at=ends_at,
            base_amount=amount,
            total_amount=amount,
            duration_days=duration,
            legacy_promotion_id=legacy.public_id,
            created_at=legacy.created_at,
        )
        db.session.delete(legacy)
        db.session.add(purchase)
        db.session.flush()
        migrated += 1

    db.session.commit()
    logger.info("Backfilled %s legacy promotion(s), skipped %s", migrated, skipped)
    return migrated, skipped
