from __future__ import annotations

from ..extensions import db
from weblarek.time_utils import to_utc_z, utcnow

ROLE_CUSTOMER = "customer"
ROLE_ADMIN = "admin"
ROLES = (ROLE_CUSTOMER, ROLE_ADMIN)

DEFAULT_USER_NAME = "Евлампий"


class User(db.Model):
    """
    Customer and staff accounts.

    The password is only ever stored as a bcrypt hash and never serialized.
    Refresh tokens are tracked by fingerprint (RefreshToken rows), not raw value.

    total_amount, order_count, last_order_id and last_order_date are a cache of
    the user's orders; stats_service.recompute_user_stats() is the only writer.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_users_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(30), nullable=False, default=DEFAULT_USER_NAME)
    phone = db.Column(db.String(32), nullable=True)

    # Denormalized order statistics
    total_amount = db.Column(db.Integer, nullable=False, default=0)
    order_count = db.Column(db.Integer, nullable=False, default=0)
    # Plain pointer (no FK) so users and orders do not form a constraint cycle
    last_order_id = db.Column(db.Integer, nullable=True)
    last_order_date = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    role_links = db.relationship(
        "UserRole",
        backref=db.backref("user", lazy=True),
        lazy=True,
        cascade="all, delete-orphan",
    )
    refresh_tokens = db.relationship(
        "RefreshToken",
        backref=db.backref("user", lazy=True),
        lazy=True,
        cascade="all, delete-orphan",
    )
    last_order = db.relationship(
        "Order",
        primaryjoin="foreign(User.last_order_id) == Order.id",
        viewonly=True,
        uselist=False,
    )

    @property
    def roles(self) -> list[str]:
        return sorted(link.role for link in self.role_links)

    def has_role(self, *roles: str) -> bool:
        return any(link.role in roles for link in self.role_links)

    @property
    def is_admin(self) -> bool:
        return self.has_role(ROLE_ADMIN)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "phone": self.phone,
            "totalAmount": self.total_amount,
            "orderCount": self.order_count,
            "lastOrder": self.last_order_id,
            "lastOrderDate": to_utc_z(self.last_order_date) if self.last_order_date else None,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class UserRole(db.Model):
    """User-Role association. A user always holds at least one role."""
    __tablename__ = "user_roles"
    __table_args__ = (
        db.UniqueConstraint("user_id", "role", name="uq_user_roles"),
        db.CheckConstraint("role IN ('customer', 'admin')", name="ck_user_roles_role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = db.Column(db.String(16), nullable=False)

    assigned_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)


class RefreshToken(db.Model):
    """
    Fingerprint of an issued refresh token.

    SECURITY: token_hash is an HMAC of the raw token keyed with the refresh
    secret. Raw refresh tokens are never persisted.
    """
    __tablename__ = "refresh_tokens"
    __table_args__ = (
        db.Index("ix_refresh_tokens_user_hash", "user_id", "token_hash"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = db.Column(db.String(64), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
