"""Application factory for the marketplace API."""

from __future__ import annotations

import logging
import os
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask, g, jsonify, session
from sqlalchemy import event

from config import enable_sqlite_fks, load_config
from extensions import csrf, db, limiter
from models import User
from routes import register_blueprints
from services.auth import ensure_admin_user
from services.promotions import PromotionError

load_dotenv()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app():
    """Create and configure the Flask application."""
    app_cfg, email_cfg, stripe_cfg, pricing_cfg, notify_cfg, db_uri = load_config()

    app = Flask(__name__)
    app.config["SQLALCHEMY_DATABASE_URI"] = db_uri
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.secret_key = app_cfg.secret_key
    app.config["APP_CONFIG"] = app_cfg
    app.config["EMAIL_CONFIG"] = email_cfg
    app.config["STRIPE_CONFIG"] = stripe_cfg
    app.config["PRICING_CONFIG"] = pricing_cfg
    app.config["NOTIFICATION_CONFIG"] = notify_cfg

    # Session security
    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    app.config["SESSION_COOKIE_SECURE"] = (
        os.environ.get("FLASK_ENV", "") != "development"
    )
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)

    # Initialize extensions
    csrf.init_app(app)
    limiter.init_app(app)
    db.init_app(app)

    # SQLite foreign key enforcement
    if "sqlite" in db_uri:
        with app.app_context():
            event.listen(db.engine, "connect", enable_sqlite_fks)

    with app.app_context():
        db.create_all()
        ensure_admin_user()

    register_blueprints(app)

    # ------------------------------------------------------------------
    # Request hooks
    # ------------------------------------------------------------------

    @app.before_request
    def load_current_user():
        """Set ``g.current_user`` from the session."""
        g.current_user = None
        user_id = session.get("user_id")
        if not user_id:
            return
        user = db.session.get(User, user_id)
        if user and not user.is_active:
            session.clear()
            return
        g.current_user = user

    # ------------------------------------------------------------------
    # Security headers
    # ------------------------------------------------------------------

    @app.after_request
    def set_security_headers(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "0"
        response.headers["Referrer-Policy"] = (
            "strict-origin-when-cross-origin"
        )
        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; frame-ancestors 'none'"
        )
        if os.environ.get("FLASK_ENV") == "production":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    # ------------------------------------------------------------------
    # Error handlers
    # ------------------------------------------------------------------

    @app.errorhandler(PromotionError)
    def promotion_error(error):
        return jsonify(error.to_dict()), error.status_code

    def _json_error(code: int, message: str):
        return jsonify({"success": False, "error": message}), code

    @app.errorhandler(400)
    def bad_request(_error):
        return _json_error(400, "Bad request")

    @app.errorhandler(401)
    def unauthorized(_error):
        return _json_error(401, "You are unauthorized!")

    @app.errorhandler(403)
    def forbidden(_error):
        return _json_error(403, "You do not have permission for this action.")

    @app.errorhandler(404)
    def not_found(_error):
        return _json_error(404, "Not found")

    @app.errorhandler(405)
    def method_not_allowed(_error):
        return _json_error(405, "Method not allowed")

    @app.errorhandler(429)
    def ratelimit_handler(_error):
        return _json_error(429, "Too many requests. Please try again later.")

    @app.errorhandler(500)
    def server_error(error):
        db.session.rollback()
        logger.error("Unhandled error: %s", getattr(error, "original_exception", error))
        return _json_error(500, "Internal server error")

    return app


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("FLASK_DEBUG", "false").lower() in (
        "true",
        "1",
        "yes",
    )
    host = os.environ.get("FLASK_HOST", "127.0.0.1")
    port = int(os.environ.get("FLASK_PORT", 5000))
    logger.info("Starting application on %s:%s (debug=%s)", host, port, debug_mode)
    app.run(host=host, port=port, debug=debug_mode)
