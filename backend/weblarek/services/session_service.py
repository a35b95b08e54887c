# Overview: Per-request session resolution from a Bearer access token.

"""
Session resolution

Unauthenticated -> (Bearer header + verifiable access token + user exists)
-> Authenticated(user). Any failure short-circuits with an ApiError; there
are no retries.

Access tokens are stateless, so nothing is written here. Revocation only
applies to refresh tokens (token_service.revoke_refresh_token).
"""

from dataclasses import dataclass

from ..errors import ForbiddenError, UnauthorizedError
from ..models import User
from . import auth_service, token_service

BEARER_PREFIX = "Bearer "


@dataclass
class SessionContext:
    """Authenticated caller for the current request."""
    user: User
    claims: dict

    @property
    def user_id(self) -> int:
        return self.user.id

    @property
    def roles(self) -> list[str]:
        return self.user.roles

    @property
    def is_admin(self) -> bool:
        return self.user.is_admin


def extract_bearer_token(auth_header: str | None) -> str:
    if not auth_header or not auth_header.startswith(BEARER_PREFIX):
        raise UnauthorizedError("Invalid token")
    token = auth_header[len(BEARER_PREFIX):].strip()
    if not token:
        raise UnauthorizedError("Invalid token")
    return token


def validate_session(auth_header: str | None) -> SessionContext:
    """
    Resolve the Authorization header into a SessionContext.

    Raises:
        UnauthorizedError: missing/malformed header, bad or expired token
        ForbiddenError: token verifies but its user no longer exists
    """
    token = extract_bearer_token(auth_header)
    claims = token_service.verify_access_token(token)

    try:
        user_id = int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        raise UnauthorizedError(token_service.AUTH_REQUIRED)

    user = auth_service.get_user(user_id)
    if not user:
        raise ForbiddenError("Access denied")

    return SessionContext(user=user, claims=claims)
