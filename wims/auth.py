# wims/auth.py
from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import current_user, login_required, login_user, logout_user

from .extensions import db, limiter, login_manager
from .models import REQUEST_LOGIN, User
from .services import services
from .utils.parsers import clean_str, json_body, parse_bool

auth = Blueprint("auth", __name__)


# =========================================================
# Flask-Login user loader
# =========================================================
@login_manager.user_loader
def load_user(user_id: str):
    try:
        return db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        return None


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "UNAUTHORIZED", "message": "Login required"}), 401


def _session_payload(user: User) -> dict:
    body = {"user": user.to_dict()}
    if user.is_salesman and not user.is_approved:
        body["approvalStatus"] = services().permissions.status_for(user, REQUEST_LOGIN) or "pending"
    return body


# =========================================================
# Login / Logout
# =========================================================
@auth.route("/login", methods=["POST"])
@limiter.limit("5 per minute")
def login():
    data = json_body()
    user = services().users.authenticate(
        data.get("email") or data.get("name"),
        data.get("password"),
        clean_str(data.get("role")),
    )

    login_user(user, remember=parse_bool(data.get("remember")))
    return jsonify(_session_payload(user))


@auth.route("/logout", methods=["POST"])
def logout():
    # Not login_required: logging out twice is harmless.
    logout_user()
    return jsonify({"ok": True})


@auth.route("/signup", methods=["POST"])
@limiter.limit("10 per hour")
def signup():
    data = json_body()
    user = services().users.register_user(
        name=data.get("name"),
        email=data.get("email"),
        phone=data.get("phone"),
        role=data.get("role") or "salesman",
        password=data.get("password"),
        admin_code=data.get("adminCode"),
    )

    login_user(user)
    if user.is_salesman:
        services().permissions.ensure_pending(user, REQUEST_LOGIN, notes="New salesman signup")

    return jsonify(_session_payload(user)), 201


@auth.route("/me", methods=["GET"])
@login_required
def me():
    return jsonify(_session_payload(current_user))
