# Overview: Credential store; user records, password hashing, roles, refresh fingerprints.

"""
Credential Store

Owns the persisted side of authentication: the user record, its bcrypt
password hash, its role set, and the list of refresh-token fingerprints.
Token minting and verification live in token_service.py; this module never
sees a raw refresh token.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost from BCRYPT_ROUNDS, default 10)
- Minimum 6 characters required
- Failed logins return the same message for unknown email and wrong password
"""

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import ConflictError, NotFoundError, UnauthorizedError
from ..models import User, UserRole, RefreshToken, ROLES, ROLE_CUSTOMER
from ..validation import PASSWORD_MIN_LENGTH, ValidationError

INVALID_CREDENTIALS = "Invalid email or password"
DUPLICATE_EMAIL = "User with this email already exists"


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Cost comes from BCRYPT_ROUNDS (tests lower it to keep the suite fast).
    """
    if not password or len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(f'Minimum length of field "password" is {PASSWORD_MIN_LENGTH}')
    rounds = current_app.config.get("BCRYPT_ROUNDS", 10)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns False for malformed hashes instead of raising.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def get_user(user_id: int) -> User | None:
    return db.session.get(User, user_id)


def get_user_or_404(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def find_by_email(email: str) -> User | None:
    return db.session.query(User).filter(User.email == email).first()


def _ensure_email_free(email: str, *, exclude_user_id: int | None = None) -> None:
    query = db.session.query(User.id).filter(User.email == email)
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    if query.first():
        raise ConflictError(DUPLICATE_EMAIL)


def register_user(email: str, password: str, name: str | None = None, roles=None) -> User:
    """
    Create a new user with a hashed password and the default role set.

    Raises:
        ConflictError: email already registered
        ValidationError: password too short / unknown role
    """
    _ensure_email_free(email)

    user = User(email=email, password_hash=hash_password(password))
    if name:
        user.name = name
    set_roles(user, roles or [ROLE_CUSTOMER])

    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        db.session.rollback()
        raise ConflictError(DUPLICATE_EMAIL)
    return user


def authenticate(email: str, password: str) -> User:
    """
    Find a user by credentials.

    Raises UnauthorizedError with the same message whether the email is
    unknown or the password is wrong.
    """
    user = find_by_email(email)
    if not user:
        raise UnauthorizedError(INVALID_CREDENTIALS)
    if not verify_password(password, user.password_hash):
        raise UnauthorizedError(INVALID_CREDENTIALS)
    return user


def set_roles(user: User, roles) -> None:
    """Replace the user's role set. An empty set is rejected."""
    wanted = set(roles or [])
    if not wanted:
        raise ValidationError("User must have at least one role")
    unknown = wanted - set(ROLES)
    if unknown:
        raise ValidationError(f"Unknown roles: {', '.join(sorted(unknown))}")

    for link in list(user.role_links):
        if link.role not in wanted:
            user.role_links.remove(link)
    existing = {link.role for link in user.role_links}
    for role in sorted(wanted - existing):
        user.role_links.append(UserRole(role=role))


def assign_role(user: User, role: str) -> None:
    set_roles(user, set(user.roles) | {role})
    db.session.commit()


def apply_user_patch(user: User, patch: dict) -> User:
    """
    Apply a validated patch (see validation.validate_user_patch).

    A plaintext password in the patch is re-hashed; the plaintext is never
    stored. Flushes, the caller commits.
    """
    if "email" in patch and patch["email"] != user.email:
        _ensure_email_free(patch["email"], exclude_user_id=user.id)
        user.email = patch["email"]
    if "name" in patch:
        user.name = patch["name"]
    if "phone" in patch:
        user.phone = patch["phone"]
    if "password" in patch:
        user.password_hash = hash_password(patch["password"])
    if "roles" in patch:
        set_roles(user, patch["roles"])
    db.session.flush()
    return user


def update_user(user: User, patch: dict) -> User:
    apply_user_patch(user, patch)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(DUPLICATE_EMAIL)
    return user


# =============================================================================
# REFRESH TOKEN FINGERPRINTS
# =============================================================================

def add_refresh_fingerprint(user: User, fingerprint: str) -> None:
    """Append a fingerprint to the user's list and persist."""
    user.refresh_tokens.append(RefreshToken(token_hash=fingerprint))
    db.session.commit()


def has_refresh_fingerprint(user: User, fingerprint: str) -> bool:
    return any(t.token_hash == fingerprint for t in user.refresh_tokens)


def remove_refresh_fingerprint(user: User, fingerprint: str) -> int:
    """
    Remove every stored entry matching fingerprint and persist.

    Returns the number of entries removed.
    """
    matching = [t for t in user.refresh_tokens if t.token_hash == fingerprint]
    for token in matching:
        user.refresh_tokens.remove(token)
    db.session.commit()
    return len(matching)


def list_refresh_fingerprints(user: User) -> list[str]:
    return [t.token_hash for t in user.refresh_tokens]
