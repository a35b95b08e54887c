# Overview: Order aggregate; checkout, numbering, status changes, deletion, listings.

"""
Order Aggregate

create_order runs as explicit, ordered steps inside one transaction:
    1. resolve every basket item against the catalog
    2. check the declared total against the sum of resolved prices
    3. take the next order number from the counter
    4. persist the order, recompute the owner's statistics, commit

delete_order removes the order and recomputes the owner's statistics in the
same commit. update_order_status never touches statistics.
"""

from __future__ import annotations

from sqlalchemy import or_, select

from ..extensions import db
from ..errors import BadRequestError, NotFoundError
from ..models import Order, OrderItem, Product, ORDER_STATUSES
from ..validation import ValidationError
from . import sequence_service, stats_service
from .pagination import date_arg, int_arg, pagination_block, sort_clause

INVALID_TOTAL = "Invalid order total"
ORDER_NOT_FOUND = "Order not found"

ORDER_SORT_FIELDS = {
    "createdAt": Order.created_at,
    "orderNumber": Order.order_number,
    "totalAmount": Order.total_amount,
    "status": Order.status,
}


def resolve_basket(items: list[int]) -> list[Product]:
    """
    Resolve basket item ids to products, preserving order and duplicates.

    Raises BadRequestError naming the first unknown id or the first product
    that is not for sale (price is NULL).
    """
    unique_ids = set(items)
    products = {
        p.id: p
        for p in db.session.query(Product).filter(Product.id.in_(unique_ids)).all()
    }

    basket = []
    for item_id in items:
        product = products.get(item_id)
        if product is None:
            raise BadRequestError(f"Product with id {item_id} not found")
        if product.price is None:
            raise BadRequestError(f"Product with id {item_id} is not for sale")
        basket.append(product)
    return basket


def create_order(
    *,
    customer_id: int,
    items: list[int],
    payment: str,
    address: str,
    phone: str,
    email: str,
    total: int,
    comment: str = "",
) -> Order:
    """
    Check out a basket for customer_id.

    Raises:
        BadRequestError: unknown item, item not for sale, or total mismatch
    """
    basket = resolve_basket(items)

    basket_total = sum(p.price for p in basket)
    if basket_total != total:
        raise BadRequestError(INVALID_TOTAL)

    order = Order(
        order_number=sequence_service.next_value(sequence_service.ORDER_SEQUENCE),
        total_amount=total,
        payment=payment,
        customer_id=customer_id,
        delivery_address=address,
        phone=phone,
        email=email,
        comment=comment or "",
    )
    order.items = [
        OrderItem(product_id=product.id, position=position)
        for position, product in enumerate(basket)
    ]

    db.session.add(order)
    db.session.flush()

    stats_service.recompute_user_stats(customer_id)
    db.session.commit()
    return order


def delete_order(order_id: int) -> dict:
    """
    Permanently delete an order and recompute its owner's statistics.

    Returns the serialized order as it was before deletion.
    """
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError(ORDER_NOT_FOUND)

    data = order.to_dict()
    customer_id = order.customer_id

    db.session.delete(order)
    db.session.flush()

    stats_service.recompute_user_stats(customer_id)
    db.session.commit()
    return data


def update_order_status(order_number: int, status: str) -> Order:
    """Change an order's status. Statistics are not recomputed."""
    if status not in ORDER_STATUSES:
        raise ValidationError(
            f"Invalid order status, allowed values: {', '.join(ORDER_STATUSES)}"
        )

    order = get_order_by_number(order_number)
    order.status = status
    db.session.commit()
    return order


def get_order_by_number(order_number: int) -> Order:
    order = db.session.query(Order).filter(Order.order_number == order_number).first()
    if not order:
        raise NotFoundError(ORDER_NOT_FOUND)
    return order


def get_customer_order_by_number(order_number: int, customer_id: int) -> Order:
    """
    Owner-scoped lookup.

    Someone else's order answers NotFoundError, same as a missing one, so
    order numbers of other customers cannot be probed.
    """
    order = get_order_by_number(order_number)
    if order.customer_id != customer_id:
        raise NotFoundError(ORDER_NOT_FOUND)
    return order


# =============================================================================
# LISTINGS
# =============================================================================

def _search_condition(search: str):
    title_match = select(OrderItem.order_id).join(
        Product, Product.id == OrderItem.product_id
    ).where(Product.title.icontains(search, autoescape=True))

    conditions = [Order.id.in_(title_match)]
    stripped = search.strip()
    if stripped.isdigit():
        conditions.append(Order.order_number == int(stripped))
    return or_(*conditions)


def list_orders(args, *, page: int, limit: int) -> dict:
    """
    Admin order listing.

    Filters: status (one value or comma-separated), totalAmountFrom/To,
    orderDateFrom/To, search (product title substring or exact order number).
    """
    query = db.session.query(Order)

    status = args.get("status")
    if status:
        statuses = [s.strip() for s in status.split(",") if s.strip()]
        unknown = [s for s in statuses if s not in ORDER_STATUSES]
        if unknown:
            raise ValidationError(f"Unknown status: {', '.join(unknown)}")
        query = query.filter(Order.status.in_(statuses))

    total_from = int_arg(args, "totalAmountFrom")
    if total_from is not None:
        query = query.filter(Order.total_amount >= total_from)
    total_to = int_arg(args, "totalAmountTo")
    if total_to is not None:
        query = query.filter(Order.total_amount <= total_to)

    date_from = date_arg(args, "orderDateFrom")
    if date_from is not None:
        query = query.filter(Order.created_at >= date_from)
    date_to = date_arg(args, "orderDateTo", inclusive_end=True)
    if date_to is not None:
        query = query.filter(Order.created_at <= date_to)

    search = args.get("search")
    if search:
        query = query.filter(_search_condition(search))

    total = query.count()
    orders = (
        query.order_by(sort_clause(args, ORDER_SORT_FIELDS), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "orders": [o.to_dict() for o in orders],
        "pagination": pagination_block("totalOrders", total, page, limit),
    }


def list_customer_orders(customer_id: int, args, *, page: int, limit: int) -> dict:
    """The caller's own orders, oldest first, with optional search."""
    query = db.session.query(Order).filter(Order.customer_id == customer_id)

    search = args.get("search")
    if search:
        query = query.filter(_search_condition(search))

    total = query.count()
    orders = (
        query.order_by(Order.created_at.asc(), Order.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "orders": [o.to_dict() for o in orders],
        "pagination": pagination_block("totalOrders", total, page, limit),
    }
