"""Configuration loading: YAML file plus environment-variable overrides."""

from __future__ import annotations

import logging
import os
import secrets

import yaml

from config_models import (
    AppConfig,
    EmailConfig,
    NotificationConfig,
    PricingConfig,
    StripeConfig,
)

logger = logging.getLogger(__name__)


def _env_flag(name: str, default) -> bool:
    return os.environ.get(name, str(default)).lower() in ("true", "1", "yes")


def load_config():
    """Load configuration from *config.yaml* with env-var overrides.

    Environment variables take precedence over config.yaml values.
    Returns (AppConfig, EmailConfig, StripeConfig, PricingConfig,
    NotificationConfig, database_uri).
    """
    config_path = os.environ.get("CONFIG_PATH", "config.yaml")
    raw: dict = {}
    if os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}

    app_cfg = raw.get("app", {})
    email_cfg = raw.get("email", {})
    stripe_cfg = raw.get("stripe", {})
    pricing_cfg = raw.get("pricing", {})
    notify_cfg = raw.get("notifications", {})
    db_cfg = raw.get("database", {})

    secret_key = os.environ.get("APP_SECRET_KEY", app_cfg.get("secret_key", ""))
    if not secret_key or secret_key == "change-me":
        secret_key = secrets.token_hex(32)
        logger.warning(
            "Using auto-generated secret key. Set APP_SECRET_KEY env var "
            "or app.secret_key in config.yaml for stable sessions across restarts."
        )

    currency = os.environ.get("APP_CURRENCY", app_cfg.get("base_currency", "USD"))

    return (
        AppConfig(
            name=app_cfg.get("name", "Noretmy"),
            secret_key=secret_key,
            base_currency=currency,
        ),
        EmailConfig(
            enabled=_env_flag("EMAIL_ENABLED", email_cfg.get("enabled", False)),
            smtp_host=os.environ.get("SMTP_HOST", email_cfg.get("smtp_host", "")),
            smtp_port=int(os.environ.get("SMTP_PORT", email_cfg.get("smtp_port", 587))),
            smtp_user=os.environ.get("SMTP_USER", email_cfg.get("smtp_user", "")),
            smtp_password=os.environ.get("SMTP_PASSWORD", email_cfg.get("smtp_password", "")),
            sender=os.environ.get("EMAIL_SENDER", email_cfg.get("sender", "")),
            frontend_url=os.environ.get(
                "FRONTEND_URL", email_cfg.get("frontend_url", "http://localhost:3000")
            ),
        ),
        StripeConfig(
            secret_key=os.environ.get("STRIPE_SECRET_KEY", stripe_cfg.get("secret_key", "")),
            webhook_secret=os.environ.get(
                "STRIPE_WEBHOOK_SECRET", stripe_cfg.get("webhook_secret", "")
            ),
            currency=os.environ.get("STRIPE_CURRENCY", stripe_cfg.get("currency", currency)).lower(),
        ),
        PricingConfig(
            platform_fee_rate=str(os.environ.get(
                "PLATFORM_FEE_RATE", pricing_cfg.get("platform_fee_rate", "0.05")
            )),
            default_vat_rate=str(os.environ.get(
                "DEFAULT_VAT_RATE", pricing_cfg.get("default_vat_rate", "0")
            )),
        ),
        NotificationConfig(
            realtime_gateway_url=os.environ.get(
                "REALTIME_GATEWAY_URL", notify_cfg.get("realtime_gateway_url", "")
            ),
            realtime_timeout=int(os.environ.get(
                "REALTIME_TIMEOUT", notify_cfg.get("realtime_timeout", 5)
            )),
        ),
        os.environ.get("DATABASE_URI", db_cfg.get("uri", "sqlite:///marketplace.db")),
    )


def enable_sqlite_fks(dbapi_conn, _connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
