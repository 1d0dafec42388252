"""User/admin notifications: persisted rows, real-time push and email."""

from __future__ import annotations

import logging

import requests
from flask import current_app
from requests.exceptions import RequestException

from extensions import db
from models import Notification

logger = logging.getLogger(__name__)


def create_notification(
    user_id: int,
    title: str,
    message: str,
    type: str = "system",
    link: str = "",
) -> Notification:
    notification = Notification(
        user_id=user_id,
        title=title,
        message=message,
        type=type,
        link=link or None,
    )
    db.session.add(notification)
    db.session.commit()
    return notification


def push_realtime(user_id: int, payload: dict) -> bool:
    """Forward *payload* to the socket gateway on channel ``user_<id>``.

    Returns False when no gateway is configured.
    """
    notify_cfg = current_app.config["NOTIFICATION_CONFIG"]
    if not notify_cfg.realtime_gateway_url:
        return False
    response = requests.post(
        notify_cfg.realtime_gateway_url,
        json={"room": f"user_{user_id}", "event": "notification", "data": payload},
        timeout=notify_cfg.realtime_timeout,
    )
    response.raise_for_status()
    return True


def notify(user_id: int, title: str, message: str, type: str, link: str, realtime: bool = False) -> None:
    """Persist a notification and optionally push it; never raises."""
    try:
        create_notification(user_id, title, message, type=type, link=link)
    except Exception as e:
        db.session.rollback()
        logger.error("Failed to store notification for user %s: %s", user_id, e)
        return
    if not realtime:
        return
    try:
        push_realtime(user_id, {"title": title, "message": message, "type": type, "link": link})
    except RequestException as e:
        logger.warning("Real-time push to user %s failed: %s", user_id, e)


def notify_promotion_activated(user, admin, purchase) -> None:
    """User and admin notifications plus confirmation email for a new purchase."""
    notify(
        user.id,
        "Promotion Activated",
        f'Your "{purchase.plan_name}" promotion is now active!',
        type="payment",
        link="/promote-gigs",
    )
    if admin:
        notify(
            admin.id,
            "New Promotion Purchase",
            f"{user.display_name} purchased {purchase.plan_name} promotion "
            f"(${float(purchase.total_amount):.2f})",
            type="system",
            link="/admin/promotions",
            realtime=True,
        )

    email_cfg = current_app.config["EMAIL_CONFIG"]
    if not email_cfg.enabled:
        return
    from mailer import MailerError, send_promotion_email
    try:
        send_promotion_email(
            email_cfg,
            user.email,
            user.full_name or user.username,
            purchase.plan_name,
            purchase.ends_at,
            purchase.total_amount,
        )
    except MailerError as e:
        logger.warning("Promotion email to user %s not sent: %s", user.id, e)
