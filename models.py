"""SQLAlchemy models and role-permission mapping."""

from __future__ import annotations

import uuid

from sqlalchemy import text
from sqlalchemy.types import String, TypeDecorator

from extensions import db
from utils import as_utc, isoformat, money, parse_bool_flag, utc_now

# ---------------------------------------------------------------------------
# Role / Permission mapping
# ---------------------------------------------------------------------------

ADMIN_PERMISSIONS = [
    "user_management",
    "order_management",
    "payment_management",
    "system_settings",
    "analytics_view",
    "content_moderation",
    "seller_management",
    "promotion_management",
]

ROLE_PERMISSIONS: dict[str, set[str]] = {
    "admin": set(ADMIN_PERMISSIONS) | {"manage_all"},
    "freelancer": {"sell", "buy"},
    "seller": {"sell", "buy"},
    "client": {"buy"},
}

VALID_ROLES = list(ROLE_PERMISSIONS.keys())

PROMOTION_STATUSES = ("pending", "active", "expired", "cancelled", "failed")
PROMOTION_TYPES = ("single_gig", "all_gigs")


def _public_id() -> str:
    return uuid.uuid4().hex


class LegacyFlag(TypeDecorator):
    """Boolean stored as text.

    Imported rows hold ``"true"``, ``"false"``, ``"1"`` or ``"0"``; reads map
    them explicitly instead of relying on ``bool()`` of the raw value.
    """

    impl = String(5)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return "true" if parse_bool_flag(value) else "false"

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return parse_bool_flag(value)


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------

class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    username = db.Column(db.String(80), unique=True, nullable=False)
    full_name = db.Column(db.String(120))
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(30), default="client")
    permissions = db.Column(db.JSON, default=list)
    is_seller = db.Column(LegacyFlag, default=False)
    is_company = db.Column(LegacyFlag, default=False)
    seller_type = db.Column(db.String(30))
    country = db.Column(db.String(2))
    is_verified = db.Column(db.Boolean, default=False)
    is_active = db.Column(db.Boolean, default=True)
    revenue_total = db.Column(db.Numeric(12, 2, asdecimal=True), nullable=False, default=0)
    revenue_available = db.Column(db.Numeric(12, 2, asdecimal=True), nullable=False, default=0)
    revenue_pending = db.Column(db.Numeric(12, 2, asdecimal=True), nullable=False, default=0)
    revenue_withdrawn = db.Column(db.Numeric(12, 2, asdecimal=True), nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=utc_now)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now)

    jobs = db.relationship("Job", backref="seller", lazy="dynamic")

    @property
    def display_name(self) -> str:
        return self.username or self.full_name or self.email

    @property
    def revenue(self) -> dict:
        return {
            "total": money(self.revenue_total) or 0.0,
            "available": money(self.revenue_available) or 0.0,
            "pending": money(self.revenue_pending) or 0.0,
            "withdrawn": money(self.revenue_withdrawn) or 0.0,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "username": self.username,
            "full_name": self.full_name,
            "role": self.role,
            "is_seller": bool(self.is_seller),
            "is_company": bool(self.is_company),
            "seller_type": self.seller_type,
            "is_verified": bool(self.is_verified),
        }


# ---------------------------------------------------------------------------
# Job (gig)
# ---------------------------------------------------------------------------

class Job(db.Model):
    """A gig listing; carries denormalized promotion state for listing queries."""
    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    category = db.Column(db.String(120))
    photos = db.Column(db.JSON, default=list)
    is_active = db.Column(db.Boolean, default=True)
    is_promoted = db.Column(db.Boolean, default=False, nullable=False)
    promoted_at = db.Column(db.DateTime)
    promotion_expires_at = db.Column(db.DateTime)
    promotion_plan = db.Column(db.String(40))
    promotion_priority = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=utc_now)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        db.Index("ix_job_promoted", "is_promoted", "promotion_priority"),
    )

    def summary(self) -> dict:
        return {"id": self.id, "title": self.title, "photos": self.photos or []}


# ---------------------------------------------------------------------------
# Promotions
# ---------------------------------------------------------------------------

class Promotion(db.Model):
    """Legacy promotion record, kept readable until backfilled."""
    id = db.Column(db.Integer, primary_key=True)
    public_id = db.Column(db.String(32), unique=True, nullable=False, default=_public_id)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    gig_id = db.Column(db.Integer, db.ForeignKey("job.id"), index=True)
    is_for_all = db.Column(db.Boolean, default=False, nullable=False)
    promotion_plan = db.Column(db.String(40), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="pending")
    promotion_start_date = db.Column(db.DateTime)
    promotion_end_date = db.Column(db.DateTime)
    amount_paid = db.Column(db.Numeric(10, 2, asdecimal=True))
    duration_days = db.Column(db.Integer, default=30)
    created_at = db.Column(db.DateTime, default=utc_now)

    user = db.relationship("User")
    gig = db.relationship("Job")

    # Uniform accessors shared with PromotionPurchase
    @property
    def plan_key(self) -> str:
        return self.promotion_plan

    @property
    def starts_at(self):
        return as_utc(self.promotion_start_date)

    @property
    def ends_at(self):
        return as_utc(self.promotion_end_date)

    @property
    def promotion_type(self) -> str:
        return "all_gigs" if self.is_for_all else "single_gig"


class PromotionPurchase(db.Model):
    """One durable record per paid promotion."""
    id = db.Column(db.Integer, primary_key=True)
    public_id = db.Column(db.String(32), unique=True, nullable=False, default=_public_id)
    stripe_payment_intent_id = db.Column(db.String(120), unique=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    plan_key = db.Column(db.String(40), nullable=False)
    plan_name = db.Column(db.String(120), nullable=False)
    plan_priority = db.Column(db.Integer, nullable=False, default=0)
    promotion_type = db.Column(db.String(20), nullable=False)
    gig_id = db.Column(db.Integer, db.ForeignKey("job.id"), index=True)
    scope_key = db.Column(db.String(60), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="pending")
    purchased_at = db.Column(db.DateTime, default=utc_now)
    activated_at = db.Column(db.DateTime)
    expires_at = db.Column(db.DateTime)
    base_amount = db.Column(db.Numeric(10, 2, asdecimal=True), nullable=False, default=0)
    vat_rate = db.Column(db.Numeric(6, 4, asdecimal=True), nullable=False, default=0)
    vat_amount = db.Column(db.Numeric(10, 2, asdecimal=True), nullable=False, default=0)
    platform_fee = db.Column(db.Numeric(10, 2, asdecimal=True), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(10, 2, asdecimal=True), nullable=False, default=0)
    currency = db.Column(db.String(10), default="usd")
    duration_days = db.Column(db.Integer, nullable=False, default=30)
    legacy_promotion_id = db.Column(db.String(32))
    created_at = db.Column(db.DateTime, default=utc_now)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now)

    user = db.relationship("User")
    gig = db.relationship("Job")

    __table_args__ = (
        # at most one active purchase per gig / per seller-wide scope
        db.Index(
            "uq_promotion_purchase_active_scope",
            "scope_key",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
        db.Index("ix_promotion_purchase_status_expires", "status", "expires_at"),
        db.CheckConstraint(
            "promotion_type IN ('single_gig', 'all_gigs')",
            name="ck_promotion_purchase_type",
        ),
    )

    @property
    def starts_at(self):
        return as_utc(self.activated_at)

    @property
    def ends_at(self):
        return as_utc(self.expires_at)

    def to_dict(self) -> dict:
        return {
            "id": self.public_id,
            "stripe_payment_intent_id": self.stripe_payment_intent_id,
            "user_id": self.user_id,
            "plan_key": self.plan_key,
            "plan_name": self.plan_name,
            "plan_priority": self.plan_priority,
            "promotion_type": self.promotion_type,
            "gig_id": self.gig_id,
            "gig": self.gig.summary() if self.gig else None,
            "status": self.status,
            "purchased_at": isoformat(self.purchased_at),
            "activated_at": isoformat(self.activated_at),
            "expires_at": isoformat(self.expires_at),
            "base_amount": money(self.base_amount),
            "vat_rate": money(self.vat_rate),
            "vat_amount": money(self.vat_amount),
            "platform_fee": money(self.platform_fee),
            "total_amount": money(self.total_amount),
            "currency": self.currency,
            "duration_days": self.duration_days,
            "created_at": isoformat(self.created_at),
        }


# ---------------------------------------------------------------------------
# Notifications & audit
# ---------------------------------------------------------------------------

class Notification(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(40), default="system")
    link = db.Column(db.String(255))
    is_read = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=utc_now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "type": self.type,
            "link": self.link,
            "is_read": bool(self.is_read),
            "created_at": isoformat(self.created_at),
        }


class AuditLog(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"))
    action = db.Column(db.String(80), nullable=False)
    entity_type = db.Column(db.String(80), nullable=False)
    entity_id = db.Column(db.String(64))
    details = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utc_now)

    user = db.relationship("User")

    __table_args__ = (
        db.Index("ix_audit_log_created_at", "created_at"),
        db.Index("ix_audit_log_entity", "entity_type", "entity_id"),
    )
