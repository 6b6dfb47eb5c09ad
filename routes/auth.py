# routes/auth.py
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, current_app

from auth_guard import require_role
from errors import AccountError

__all__ = ["auth_bp"]
auth_bp = Blueprint("auth", __name__)

TEXT = {"Content-Type": "text/plain; charset=utf-8"}


def _accounts():
    return current_app.extensions["accounts"]


def _body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _text_error(e: AccountError):
    return e.message, e.status, TEXT


# -------------------------------------------------------------------
# Middleware
# -------------------------------------------------------------------
@auth_bp.after_request
def add_perf_headers(resp):
    resp.headers["Cache-Control"] = "no-store"
    return resp


@auth_bp.errorhandler(AccountError)
def handle_account_error(e: AccountError):
    if e.status >= 500:
        current_app.logger.error("[auth] %s %s -> %r", request.method, request.path, e)
    return jsonify(e.to_dict()), e.status


# -------------------------------------------------------------------
# Registration OTP
# -------------------------------------------------------------------
@auth_bp.route("/send-otp", methods=["POST"])
def send_otp():
    data = _body()
    _accounts().send_registration_otp(data.get("email"))
    return jsonify(message="OTP sent successfully"), 200


@auth_bp.route("/verify-otp", methods=["POST"])
def verify_otp():
    data = _body()
    _accounts().verify_otp(data.get("email"), data.get("otp"))
    return jsonify(success=True), 200


# -------------------------------------------------------------------
# Register / Login
# -------------------------------------------------------------------
@auth_bp.route("/register", methods=["POST"])
def register():
    data = _body()
    _accounts().register(
        name=data.get("name"),
        email=data.get("email"),
        password=data.get("password"),
    )
    return jsonify(message="User registered successfully"), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Two-phase login on one endpoint.
    Body without ``otp`` -> code emailed, ``requireOtp: true``.
    Body with ``otp``    -> ``{token, name, role, _id}``.
    """
    data = _body()
    result = _accounts().login(
        email=data.get("email"),
        password=data.get("password"),
        otp=data.get("otp"),
    )
    return jsonify(result), 200


# -------------------------------------------------------------------
# Profile (token-based, plain-text errors)
# -------------------------------------------------------------------
@auth_bp.route("/user-profile", methods=["GET"])
@require_role()
def user_profile():
    try:
        profile = _accounts().get_profile(g.user_claims["id"])
    except AccountError as e:
        return _text_error(e)
    return jsonify(profile), 200


@auth_bp.route("/update-profile", methods=["PUT"])
@require_role()
def update_profile():
    data = _body()
    try:
        profile = _accounts().update_profile(
            g.user_claims["id"],
            name=data.get("name"),
            email=data.get("email"),
        )
    except AccountError as e:
        return _text_error(e)
    return jsonify(message="Profile updated successfully", user=profile), 200


# -------------------------------------------------------------------
# Reset password
# -------------------------------------------------------------------
@auth_bp.route("/reset", methods=["POST"])
def reset_password():
    data = _body()
    try:
        _accounts().reset_password(email=data.get("email"), password=data.get("password"))
    except AccountError as e:
        return _text_error(e)
    return "Password has been updated", 200, TEXT
