# Overview: Admin customer directory; filtered listing, lookup, edit, and deletion.

"""
Customer administration

Customers are User rows. The listing filters on the denormalized statistics
fields (total_amount, order_count, last_order_date) that stats_service keeps
in sync, so no aggregate query runs per request.

delete_customer removes the user's orders explicitly before the user row;
role links and refresh fingerprints go with the user through the ORM cascade.
"""

from __future__ import annotations

from sqlalchemy import or_
from sqlalchemy.orm import aliased

from ..extensions import db
from ..models import Order, User
from . import auth_service
from .pagination import date_arg, int_arg, pagination_block, sort_clause

CUSTOMER_SORT_FIELDS = {
    "createdAt": User.created_at,
    "name": User.name,
    "email": User.email,
    "totalAmount": User.total_amount,
    "orderCount": User.order_count,
    "lastOrderDate": User.last_order_date,
}


def customer_to_dict(user: User) -> dict:
    """User record plus its orders and expanded last order."""
    data = user.to_dict()
    data["roles"] = user.roles
    data["orders"] = [o.to_dict(include_customer=False) for o in user.orders]
    data["lastOrder"] = (
        user.last_order.to_dict(include_customer=False) if user.last_order else None
    )
    return data


def list_customers(args, *, page: int, limit: int) -> dict:
    """
    Filters:
        registrationDateFrom/To, lastOrderDateFrom/To (To bounds are inclusive
        of the whole day), totalAmountFrom/To, orderCountFrom/To, search.
    """
    query = db.session.query(User)

    reg_from = date_arg(args, "registrationDateFrom")
    if reg_from is not None:
        query = query.filter(User.created_at >= reg_from)
    reg_to = date_arg(args, "registrationDateTo", inclusive_end=True)
    if reg_to is not None:
        query = query.filter(User.created_at <= reg_to)

    last_from = date_arg(args, "lastOrderDateFrom")
    if last_from is not None:
        query = query.filter(User.last_order_date >= last_from)
    last_to = date_arg(args, "lastOrderDateTo", inclusive_end=True)
    if last_to is not None:
        query = query.filter(User.last_order_date <= last_to)

    for key, column, op in (
        ("totalAmountFrom", User.total_amount, "ge"),
        ("totalAmountTo", User.total_amount, "le"),
        ("orderCountFrom", User.order_count, "ge"),
        ("orderCountTo", User.order_count, "le"),
    ):
        value = int_arg(args, key)
        if value is None:
            continue
        query = query.filter(column >= value if op == "ge" else column <= value)

    search = args.get("search")
    if search:
        last_order = aliased(Order)
        query = query.outerjoin(last_order, last_order.id == User.last_order_id).filter(
            or_(
                User.name.icontains(search, autoescape=True),
                last_order.delivery_address.icontains(search, autoescape=True),
            )
        )

    total = query.count()
    customers = (
        query.order_by(sort_clause(args, CUSTOMER_SORT_FIELDS), User.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "customers": [customer_to_dict(c) for c in customers],
        "pagination": pagination_block("totalUsers", total, page, limit),
    }


def get_customer(user_id: int) -> User:
    return auth_service.get_user_or_404(user_id)


def update_customer(user_id: int, patch: dict) -> User:
    """Apply a validated admin patch (name, email, phone, password, roles)."""
    user = auth_service.get_user_or_404(user_id)
    return auth_service.update_user(user, patch)


def delete_customer(user_id: int) -> dict:
    """Delete the user with their orders and refresh fingerprints."""
    user = auth_service.get_user_or_404(user_id)
    data = user.to_dict()

    for order in list(user.orders):
        db.session.delete(order)
    db.session.flush()
    db.session.expire(user, ["orders"])

    db.session.delete(user)
    db.session.commit()
    return data
