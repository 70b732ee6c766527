# Overview: Flask API routes for sign-up, sign-in and sign-out.

# backend/stockroom/routes/auth.py
"""
Authentication API routes

Error bodies carry the provider error ``code`` and a user-readable
``error`` message, so the sign-in form can show it and let the user retry.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services.identity_service import (
    AuthError,
    LocalIdentityProvider,
    INVALID_CREDENTIAL,
    USER_NOT_FOUND,
    WRONG_PASSWORD,
    EMAIL_IN_USE,
    INVALID_EMAIL,
    WEAK_PASSWORD,
)
from ..decorators import require_auth, LOGIN_ROUTE


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

AFTER_LOGIN_ROUTE = "/dashboard/products"

_STATUS_BY_CODE = {
    INVALID_CREDENTIAL: 401,
    USER_NOT_FOUND: 401,
    WRONG_PASSWORD: 401,
    EMAIL_IN_USE: 409,
    INVALID_EMAIL: 400,
    WEAK_PASSWORD: 400,
}


def _auth_error_response(e: AuthError):
    body = {"error": e.user_message, "code": e.code}
    if e.code == EMAIL_IN_USE:
        # Existing account: send the form back to sign-in mode
        body["mode"] = "login"
    return jsonify(body), _STATUS_BY_CODE.get(e.code, 500)


def _credentials() -> tuple[str, str]:
    data = request.get_json(silent=True) or {}
    return (data.get("email") or "").strip(), data.get("password") or ""


@auth_bp.post("/signup")
def signup_route():
    """
    Create an account.

    The caller is not signed in by this call; the response points the form
    back to sign-in mode.
    """
    email, password = _credentials()
    if not email or not password:
        return jsonify({"error": "email and password required"}), 400

    try:
        principal = LocalIdentityProvider().sign_up(email, password)
    except AuthError as e:
        if e.code not in _STATUS_BY_CODE:
            current_app.logger.exception("Failed to create account")
        return _auth_error_response(e)

    return jsonify({
        "user": principal.to_dict(),
        "mode": "login",
        "message": "Account created successfully. Please sign in.",
    }), 201


@auth_bp.post("/login")
def login_route():
    """
    Sign in and issue a session token.

    Token must be included in Authorization header for dashboard routes.
    """
    email, password = _credentials()
    if not email or not password:
        return jsonify({"error": "email and password required"}), 400

    identity = LocalIdentityProvider()
    try:
        principal = identity.sign_in(
            email,
            password,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except AuthError as e:
        if e.code not in _STATUS_BY_CODE:
            current_app.logger.exception("Failed to login user")
        return _auth_error_response(e)

    return jsonify({
        "user": principal.to_dict(),
        "token": identity.token,
        "redirect": AFTER_LOGIN_ROUTE,
        "message": "Login successful",
    }), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """
    Revoke the session token and clear the loaded workspace.
    """
    try:
        g.identity.sign_out()
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "message": "Logout successful",
        "redirect": LOGIN_ROUTE,
        "cleared": not (g.workspace.products or g.workspace.sales or g.workspace.notifications),
    }), 200
