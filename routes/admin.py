"""Admin routes: promotion purchases and platform revenue."""

from flask import Blueprint, jsonify, request

from services.auth import first_admin, role_required
from services.promotions import purchase_history

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


@admin_bp.route("/promotions")
@role_required("promotion_management")
def promotions():
    user_id = request.args.get("user_id", type=int)
    return jsonify(purchase_history(
        user_id,
        page=request.args.get("page", 1),
        limit=request.args.get("limit", 20),
        status=request.args.get("status"),
    ))


@admin_bp.route("/revenue")
@role_required("promotion_management")
def revenue():
    admin = first_admin()
    if admin is None:
        return jsonify({"success": False, "error": "No platform admin account"}), 404
    return jsonify({
        "success": True,
        "admin_id": admin.id,
        "revenue": admin.revenue,
    })
