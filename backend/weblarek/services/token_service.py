# Overview: Access/refresh JWT issuance, verification, fingerprinting, and rotation.

"""
Token Service

Two signed credentials, each with its own secret:

- Access token: short-lived (ACCESS_TOKEN_EXPIRY, default 1d), claims
  _id/email/sub. Stateless, never persisted.
- Refresh token: long-lived (REFRESH_TOKEN_EXPIRY, default 7d), claims
  _id/sub/jti. Only its fingerprint is stored, through auth_service.

Fingerprint = HMAC-SHA256(refresh secret, raw token), hex. It is deterministic
so the same raw token always maps to the same stored value, and a database
leak exposes no usable token.
"""

import hashlib
import hmac
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

import jwt
from flask import current_app

from ..errors import UnauthorizedError
from ..models import User
from ..time_utils import parse_duration
from . import auth_service

ALGORITHM = "HS256"

TOKEN_EXPIRED = "Token has expired"
AUTH_REQUIRED = "Authorization required"
INVALID_REFRESH_TOKEN = "Invalid refresh token"
REFRESH_USER_NOT_FOUND = "User not found"
REFRESH_TOKEN_REVOKED = "Refresh token has been revoked"


@dataclass
class TokenPair:
    user: User
    access_token: str
    refresh_token: str


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _access_secret() -> str:
    return current_app.config["ACCESS_TOKEN_SECRET"]


def _refresh_secret() -> str:
    return current_app.config["REFRESH_TOKEN_SECRET"]


def refresh_token_max_age() -> int:
    """Refresh lifetime in seconds (also the cookie max-age)."""
    return int(parse_duration(current_app.config["REFRESH_TOKEN_EXPIRY"]).total_seconds())


def fingerprint(raw_token: str) -> str:
    return hmac.new(
        _refresh_secret().encode("utf-8"),
        raw_token.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def issue_access_token(user: User) -> str:
    now = _now()
    payload = {
        "_id": str(user.id),
        "email": user.email,
        "sub": str(user.id),
        "iat": now,
        "exp": now + parse_duration(current_app.config["ACCESS_TOKEN_EXPIRY"]),
    }
    return jwt.encode(payload, _access_secret(), algorithm=ALGORITHM)


def issue_refresh_token(user: User) -> str:
    """
    Mint a refresh token and store its fingerprint on the user.

    jti keeps two tokens minted within the same second distinct, so rotation
    never re-issues the fingerprint it just removed.
    """
    now = _now()
    payload = {
        "_id": str(user.id),
        "sub": str(user.id),
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + parse_duration(current_app.config["REFRESH_TOKEN_EXPIRY"]),
    }
    token = jwt.encode(payload, _refresh_secret(), algorithm=ALGORITHM)
    auth_service.add_refresh_fingerprint(user, fingerprint(token))
    return token


def issue_token_pair(user: User) -> TokenPair:
    return TokenPair(
        user=user,
        access_token=issue_access_token(user),
        refresh_token=issue_refresh_token(user),
    )


def verify_access_token(token: str) -> dict:
    """
    Decode an access token.

    Raises UnauthorizedError("Token has expired") for an expired token and
    UnauthorizedError("Authorization required") for anything else.
    """
    if not token:
        raise UnauthorizedError(AUTH_REQUIRED)
    try:
        payload = jwt.decode(
            token,
            _access_secret(),
            algorithms=[ALGORITHM],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError(TOKEN_EXPIRED)
    except jwt.InvalidTokenError:
        raise UnauthorizedError(AUTH_REQUIRED)
    return payload


def verify_refresh_token(token: str) -> dict:
    if not token:
        raise UnauthorizedError(INVALID_REFRESH_TOKEN)
    try:
        return jwt.decode(
            token,
            _refresh_secret(),
            algorithms=[ALGORITHM],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError(TOKEN_EXPIRED)
    except jwt.InvalidTokenError:
        raise UnauthorizedError(INVALID_REFRESH_TOKEN)


def _user_id_from_claims(payload: dict) -> int | None:
    try:
        return int(payload.get("sub") or payload.get("_id"))
    except (TypeError, ValueError):
        return None


def revoke_refresh_token(raw_token: str) -> User:
    """
    Remove a refresh token's fingerprint from its owner.

    Raises UnauthorizedError when the token is absent or does not verify,
    when its owner no longer exists, or when no stored fingerprint matches
    (already logged out or already rotated).
    """
    payload = verify_refresh_token(raw_token)

    user_id = _user_id_from_claims(payload)
    user = auth_service.get_user(user_id) if user_id is not None else None
    if not user:
        raise UnauthorizedError(REFRESH_USER_NOT_FOUND)

    token_hash = fingerprint(raw_token)
    if not auth_service.has_refresh_fingerprint(user, token_hash):
        raise UnauthorizedError(REFRESH_TOKEN_REVOKED)

    auth_service.remove_refresh_fingerprint(user, token_hash)
    return user


def rotate_refresh_token(raw_token: str) -> TokenPair:
    """
    Exchange a refresh token for a new access/refresh pair.

    The old fingerprint is removed before the new one is appended. Two
    concurrent rotations of the same token are last-writer-wins; the loser
    gets UnauthorizedError once the first has committed.
    """
    user = revoke_refresh_token(raw_token)
    return issue_token_pair(user)
