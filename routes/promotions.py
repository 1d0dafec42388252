"""Gig promotion API."""

from flask import Blueprint, jsonify, request

from extensions import limiter
from services import promotions
from services.auth import get_current_user, login_required
from services.promotion_plans import list_plans

promotions_bp = Blueprint("promotions", __name__, url_prefix="/api/promotions")


def _payload() -> dict:
    return request.get_json(silent=True) or {}


@promotions_bp.route("/all-gigs", methods=["POST"])
@login_required
@limiter.limit("10 per minute")
def purchase_all_gigs():
    data = _payload()
    result = promotions.initiate_all_gigs_promotion(
        get_current_user(), data.get("promotion_plan")
    )
    return jsonify({"success": True, **result})


@promotions_bp.route("/gig", methods=["POST"])
@login_required
@limiter.limit("10 per minute")
def purchase_single_gig():
    data = _payload()
    result = promotions.initiate_single_gig_promotion(
        get_current_user(), data.get("gig_id"), data.get("promotion_plan")
    )
    return jsonify({"success": True, **result})


@promotions_bp.route("/complete", methods=["POST"])
@login_required
def complete_purchase():
    data = _payload()
    purchase, created = promotions.complete_promotion_purchase(
        get_current_user(),
        data.get("payment_intent_id"),
        data.get("promotion_plan"),
        gig_id=data.get("gig_id"),
        payment_type=data.get("payment_type"),
    )
    message = (
        "Promotion activated successfully" if created
        else "Promotion already activated for this payment"
    )
    return jsonify({
        "success": True,
        "already_active": not created,
        "message": message,
        "purchase": purchase.to_dict(),
    }), 201 if created else 200


@promotions_bp.route("", methods=["GET"])
@login_required
def list_promotions():
    return jsonify({"success": True, "data": promotions.list_user_promotions(get_current_user())})


@promotions_bp.route("/active", methods=["GET"])
@login_required
def active_promotions():
    data = promotions.list_active_promotions(get_current_user())
    return jsonify({"success": True, "count": len(data), "data": data})


@promotions_bp.route("/gig/<int:gig_id>/status", methods=["GET"])
@login_required
def gig_status(gig_id):
    return jsonify({"success": True, **promotions.gig_promotion_status(gig_id)})


@promotions_bp.route("/<public_id>/cancel", methods=["POST"])
@login_required
def cancel(public_id):
    result = promotions.cancel_promotion(get_current_user(), public_id)
    return jsonify({"success": True, "message": "Promotion cancelled successfully", "promotion": result})


@promotions_bp.route("/<public_id>", methods=["DELETE"])
@login_required
def delete(public_id):
    promotions.delete_promotion(get_current_user(), public_id)
    return jsonify({"success": True, "message": "Promotion deleted successfully"})


@promotions_bp.route("/history", methods=["GET"])
@login_required
def history():
    user = get_current_user()
    return jsonify(promotions.purchase_history(
        user.id,
        page=request.args.get("page", 1),
        limit=request.args.get("limit", 20),
        status=request.args.get("status"),
    ))


@promotions_bp.route("/plans", methods=["GET"])
def plans():
    return jsonify({"success": True, "plans": list_plans()})
