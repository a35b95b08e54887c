# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

SECURITY FEATURES:
- Access token returned in the response body, sent back as a Bearer header
- Refresh token delivered only as an HTTP-only cookie
- Refresh rotation removes the old fingerprint before issuing a new pair
- Logout revokes the refresh fingerprint and clears the cookie
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import token_service
from ..validation import validate_user_payload, validate_login_payload, validate_user_patch
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _set_refresh_cookie(response, refresh_token: str):
    config = current_app.config
    response.set_cookie(
        config["REFRESH_COOKIE_NAME"],
        refresh_token,
        max_age=token_service.refresh_token_max_age(),
        httponly=True,
        secure=config["REFRESH_COOKIE_SECURE"],
        samesite=config["REFRESH_COOKIE_SAMESITE"],
        path="/",
    )
    return response


def _clear_refresh_cookie(response):
    config = current_app.config
    response.set_cookie(
        config["REFRESH_COOKIE_NAME"],
        "",
        max_age=-1,
        httponly=True,
        secure=config["REFRESH_COOKIE_SECURE"],
        samesite=config["REFRESH_COOKIE_SAMESITE"],
        path="/",
    )
    return response


def _token_response(pair: token_service.TokenPair, status: int = 200):
    response = jsonify({
        "user": pair.user.to_dict(),
        "success": True,
        "accessToken": pair.access_token,
    })
    response.status_code = status
    return _set_refresh_cookie(response, pair.refresh_token)


@auth_bp.post("/register")
def register_route():
    """
    Create a customer account and sign it in.

    Returns 201 with the user and an access token; the refresh token is set
    as a cookie.
    """
    data = validate_user_payload(request.get_json(silent=True))

    user = auth_service.register_user(
        email=data["email"],
        password=data["password"],
        name=data.get("name"),
    )
    current_app.logger.info("User registered: id=%s", user.id)

    return _token_response(token_service.issue_token_pair(user), 201)


@auth_bp.post("/login")
def login_route():
    """
    Authenticate by email and password.

    SECURITY: Unknown email and wrong password produce the same 401.
    """
    data = validate_login_payload(request.get_json(silent=True))
    user = auth_service.authenticate(data["email"], data["password"])
    return _token_response(token_service.issue_token_pair(user))


@auth_bp.get("/token")
def refresh_token_route():
    """Rotate the refresh cookie and mint a new access token."""
    raw = request.cookies.get(current_app.config["REFRESH_COOKIE_NAME"])
    pair = token_service.rotate_refresh_token(raw)
    return _token_response(pair)


@auth_bp.get("/logout")
def logout_route():
    raw = request.cookies.get(current_app.config["REFRESH_COOKIE_NAME"])
    token_service.revoke_refresh_token(raw)

    response = jsonify({"success": True})
    return _clear_refresh_cookie(response)


@auth_bp.get("/user")
@require_auth
def current_user_route():
    return jsonify({"user": g.current_user.to_dict(), "success": True})


@auth_bp.patch("/me")
@require_auth
def update_me_route():
    """Update own name/email/phone/password. Roles are not self-service."""
    patch = validate_user_patch(request.get_json(silent=True), allow_roles=False)
    user = auth_service.update_user(g.current_user, patch)
    return jsonify({"user": user.to_dict(), "success": True})


@auth_bp.get("/user/roles")
@require_auth
def current_user_roles_route():
    return jsonify(g.current_user.roles)
