"""Stripe payment integration service."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import stripe
from flask import current_app

logger = logging.getLogger(__name__)


def _get_stripe():
    """Configure stripe from app config; None when no secret key is set."""
    stripe_cfg = current_app.config["STRIPE_CONFIG"]
    if not stripe_cfg.secret_key:
        logger.warning("STRIPE_SECRET_KEY not configured, Stripe features disabled")
        return None
    stripe.api_key = stripe_cfg.secret_key
    return stripe


def _to_plain(obj) -> dict:
    """Turn a StripeObject into plain nested dicts."""
    if isinstance(obj, dict):
        return obj
    for attr in ("to_dict_recursive", "to_dict"):
        convert = getattr(obj, attr, None)
        if callable(convert):
            return convert()
    return dict(obj)


def to_minor_units(amount) -> int:
    """Currency units -> cents."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _get_or_create_customer(client, email: str) -> Optional[str]:
    if not email:
        return None
    existing = client.Customer.list(email=email, limit=1)
    data = _to_plain(existing).get("data") or []
    if data:
        return data[0]["id"]
    customer = _to_plain(client.Customer.create(email=email))
    return customer["id"]


def create_customer_and_payment_intent(
    amount,
    email: str,
    payment_type: str,
    metadata: dict,
) -> Optional[dict]:
    """Create a PaymentIntent for *amount* (currency units).

    Returns ``{"client_secret": ..., "payment_intent": ...}`` or None.
    """
    client = _get_stripe()
    if not client:
        return None
    currency = current_app.config["STRIPE_CONFIG"].currency
    try:
        customer_id = _get_or_create_customer(client, email)
        intent = _to_plain(client.PaymentIntent.create(
            amount=to_minor_units(amount),
            currency=currency,
            customer=customer_id,
            receipt_email=email or None,
            description=payment_type.replace("_", " "),
            metadata={**{k: str(v) for k, v in metadata.items() if v is not None},
                      "payment_type": payment_type},
            automatic_payment_methods={"enabled": True},
        ))
    except stripe.StripeError as e:
        logger.error("Failed to create payment intent (%s): %s", payment_type, e)
        return None
    logger.info("Created payment intent %s for %s", intent.get("id"), payment_type)
    return {"client_secret": intent.get("client_secret"), "payment_intent": intent.get("id")}


def retrieve_payment_intent(payment_intent_id: str) -> Optional[dict]:
    client = _get_stripe()
    if not client:
        return None
    try:
        return _to_plain(client.PaymentIntent.retrieve(payment_intent_id))
    except stripe.StripeError as e:
        logger.error("Failed to retrieve payment intent %s: %s", payment_intent_id, e)
        return None


def capture_payment_intent(payment_intent_id: str) -> Optional[dict]:
    client = _get_stripe()
    if not client:
        return None
    try:
        intent = _to_plain(client.PaymentIntent.capture(payment_intent_id))
    except stripe.StripeError as e:
        logger.error("Failed to capture payment intent %s: %s", payment_intent_id, e)
        return None
    logger.info("Captured payment intent %s", payment_intent_id)
    return intent


def construct_event(payload: str, sig_header: str) -> Optional[dict]:
    """Verify the webhook signature and return the event, or None."""
    client = _get_stripe()
    if not client:
        return None
    webhook_secret = current_app.config["STRIPE_CONFIG"].webhook_secret
    if not webhook_secret:
        logger.warning("STRIPE_WEBHOOK_SECRET not configured")
        return None
    try:
        event = client.Webhook.construct_event(payload, sig_header, webhook_secret)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.error("Stripe webhook verification failed: %s", e)
        return None
    return _to_plain(event)


def handle_webhook(payload: str, sig_header: str) -> bool:
    """Process a Stripe webhook event. Returns True on success."""
    event = construct_event(payload, sig_header)
    if event is None:
        return False

    event_type = event.get("type", "")
    intent = (event.get("data") or {}).get("object") or {}

    if event_type == "payment_intent.succeeded":
        from services.promotions import activate_from_webhook
        activate_from_webhook(intent)

    elif event_type == "payment_intent.payment_failed":
        logger.info(
            "Payment intent %s failed (%s)",
            intent.get("id"),
            (intent.get("metadata") or {}).get("payment_type", "unknown"),
        )

    return True
