from __future__ import annotations

from ..extensions import db
from weblarek.time_utils import to_utc_z, utcnow

STATUS_NEW = "new"
STATUS_DELIVERING = "delivering"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"
ORDER_STATUSES = (STATUS_NEW, STATUS_DELIVERING, STATUS_COMPLETED, STATUS_CANCELLED)

PAYMENT_CARD = "card"
PAYMENT_ONLINE = "online"
PAYMENT_TYPES = (PAYMENT_CARD, PAYMENT_ONLINE)


class Order(db.Model):
    """
    Checkout result.

    order_number is handed out by sequence_service when the order is first
    persisted and never changes afterwards. total_amount equals the sum of the
    referenced product prices at creation time.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_orders_order_number"),
        db.Index("ix_orders_customer_created", "customer_id", "created_at"),
        db.CheckConstraint(
            "status IN ('new', 'delivering', 'completed', 'cancelled')",
            name="ck_orders_status",
        ),
        db.CheckConstraint("payment IN ('card', 'online')", name="ck_orders_payment"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=STATUS_NEW, index=True)
    total_amount = db.Column(db.Integer, nullable=False)
    payment = db.Column(db.String(16), nullable=False)

    customer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    delivery_address = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    comment = db.Column(db.Text, nullable=False, default="")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    customer = db.relationship(
        "User",
        foreign_keys=[customer_id],
        backref=db.backref("orders", lazy=True, order_by="Order.created_at"),
    )
    items = db.relationship(
        "OrderItem",
        backref=db.backref("order", lazy=True),
        lazy=True,
        order_by="OrderItem.position",
        cascade="all, delete-orphan",
    )

    @property
    def products(self) -> list:
        return [item.product for item in self.items if item.product is not None]

    def to_dict(self, *, include_customer: bool = True) -> dict:
        data = {
            "id": self.id,
            "orderNumber": self.order_number,
            "status": self.status,
            "totalAmount": self.total_amount,
            "products": [p.to_dict() for p in self.products],
            "payment": self.payment,
            "deliveryAddress": self.delivery_address,
            "phone": self.phone,
            "email": self.email,
            "comment": self.comment,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if include_customer:
            data["customer"] = self.customer.to_dict() if self.customer else None
        else:
            data["customer"] = self.customer_id
        return data


class OrderItem(db.Model):
    """One basket line. The same product may appear at several positions."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.UniqueConstraint("order_id", "position", name="uq_order_items_position"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    position = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")


class Counter(db.Model):
    """
    Named monotonically increasing counter.

    sequence_value holds the last value handed out. Only
    sequence_service.next_value() may write it.
    """
    __tablename__ = "counters"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_counters_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(32), nullable=False)
    sequence_value = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
