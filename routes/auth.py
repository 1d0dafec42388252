"""Authentication routes."""

from flask import Blueprint, jsonify, request, session
from flask_wtf.csrf import generate_csrf
from sqlalchemy import or_
from werkzeug.security import check_password_hash

from extensions import db, limiter
from models import User
from services.audit import log_action
from services.auth import get_current_user, login_required, user_permissions

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/login", methods=["POST"])
@limiter.limit("5 per minute")
def login():
    data = request.get_json(silent=True) or request.form
    identifier = (data.get("email") or data.get("username") or "").strip()
    password = data.get("password") or ""
    user = None
    if identifier:
        user = User.query.filter(
            or_(User.email == identifier.lower(), User.username == identifier)
        ).first()
    if (
        user
        and user.is_active
        and check_password_hash(user.password_hash, password)
    ):
        session.clear()
        session["user_id"] = user.id
        session.permanent = True
        log_action("login", "user", str(user.id), "user logged in", user_id=user.id)
        db.session.commit()
        return jsonify({"success": True, "user": user.to_dict()})
    return jsonify({"success": False, "error": "Invalid credentials"}), 401


@auth_bp.route("/logout", methods=["POST"])
def logout():
    user = get_current_user()
    if user:
        log_action("logout", "user", str(user.id), "user logged out")
        db.session.commit()
    session.clear()
    return jsonify({"success": True})


@auth_bp.route("/me")
@login_required
def me():
    user = get_current_user()
    return jsonify({
        "success": True,
        "user": user.to_dict(),
        "permissions": sorted(user_permissions(user)),
    })


@auth_bp.route("/csrf-token")
def csrf_token():
    return jsonify({"csrf_token": generate_csrf()})
