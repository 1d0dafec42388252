"""Blueprint registration."""

from routes.admin import admin_bp
from routes.auth import auth_bp
from routes.payments import payments_bp
from routes.promotions import promotions_bp

ALL_BLUEPRINTS = [
    auth_bp,
    promotions_bp,
    payments_bp,
    admin_bp,
]


def register_blueprints(app):
    """Register all application blueprints on *app*."""
    for bp in ALL_BLUEPRINTS:
        app.register_blueprint(bp)
