"""Payment processor callbacks."""

from flask import Blueprint, jsonify, request

from extensions import csrf
from services.stripe_billing import handle_webhook

payments_bp = Blueprint("payments", __name__)


# ---------------------------------------------------------------------------
# Stripe webhook
# ---------------------------------------------------------------------------

@payments_bp.route("/webhook/stripe", methods=["POST"])
@csrf.exempt
def webhook_stripe():
    """Handle Stripe webhook events."""
    payload = request.get_data(as_text=True)
    sig_header = request.headers.get("Stripe-Signature", "")
    if handle_webhook(payload, sig_header):
        return jsonify({"status": "ok"}), 200
    return jsonify({"status": "error"}), 400
