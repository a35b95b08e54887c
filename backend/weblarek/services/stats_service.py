# Overview: Re-derives a user's denormalized order statistics from their orders.

"""
Statistics Recalculator

User.total_amount, order_count, last_order_id and last_order_date are a
cache of the user's orders. recompute_user_stats() is the only writer and
always rebuilds them from scratch, so calling it twice in a row yields the
same values.

Orders count regardless of status: a cancelled order still adds to
order_count and total_amount. Status updates never trigger a recompute.
"""

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Order, User


def aggregate_user_orders(user_id: int) -> dict:
    """Aggregate over all orders with customer_id == user_id."""
    total, count, last_date = (
        db.session.query(
            func.coalesce(func.sum(Order.total_amount), 0),
            func.count(Order.id),
            func.max(Order.created_at),
        )
        .filter(Order.customer_id == user_id)
        .one()
    )

    last_order_id = (
        db.session.query(Order.id)
        .filter(Order.customer_id == user_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(1)
        .scalar()
    )

    if not count:
        return {
            "total_amount": 0,
            "order_count": 0,
            "last_order_id": None,
            "last_order_date": None,
        }

    return {
        "total_amount": int(total),
        "order_count": int(count),
        "last_order_id": last_order_id,
        "last_order_date": last_date,
    }


def recompute_user_stats(user_id: int) -> User | None:
    """
    Rebuild the statistics fields on the user record.

    Flushes only; the caller owns the transaction so the recompute lands in
    the same commit as the order change that triggered it. Returns None if
    the user does not exist.
    """
    db.session.flush()

    user = db.session.get(User, user_id)
    if not user:
        return None

    stats = aggregate_user_orders(user_id)
    user.total_amount = stats["total_amount"]
    user.order_count = stats["order_count"]
    user.last_order_id = stats["last_order_id"]
    user.last_order_date = stats["last_order_date"]

    db.session.flush()
    return user


def recompute_all() -> int:
    """Rebuild statistics for every user and commit. Returns users processed."""
    user_ids = [row[0] for row in db.session.query(User.id).order_by(User.id).all()]
    for user_id in user_ids:
        recompute_user_stats(user_id)
    db.session.commit()
    return len(user_ids)
