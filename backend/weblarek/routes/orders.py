# Overview: Flask API routes for order operations; parses input and returns JSON responses.

"""
Order routes.

Checkout and "my orders" require authentication. Everything that reads or
changes other customers' orders requires the admin role.

SECURITY: /order/me/<number> answers 404 for an order that belongs to
someone else, so order numbers cannot be probed.
"""
from flask import Blueprint, request, g

from ..services import order_service
from ..services.pagination import parse_page_args
from ..models import ROLE_ADMIN
from ..validation import validate_order_payload, validate_order_status, parse_order_number
from ..decorators import require_auth, require_roles

ADMIN_ORDERS_PAGE_SIZE = 10
CUSTOMER_ORDERS_PAGE_SIZE = 5

orders_bp = Blueprint("orders", __name__, url_prefix="/order")


@orders_bp.post("")
@require_auth
def create_order_route():
    """
    Check out a basket.

    Body: items (product ids), payment, email, phone, address, total, comment.
    The total must equal the sum of the item prices exactly.
    """
    data = validate_order_payload(request.get_json(silent=True))

    order = order_service.create_order(
        customer_id=g.current_user.id,
        items=data["items"],
        payment=data["payment"],
        address=data["address"],
        phone=data["phone"],
        email=data["email"],
        total=data["total"],
        comment=data["comment"],
    )
    return order.to_dict()


@orders_bp.get("/all")
@require_auth
@require_roles(ROLE_ADMIN)
def list_orders_route():
    """
    Query params:
    - status, totalAmountFrom, totalAmountTo, orderDateFrom, orderDateTo
    - search: product title substring or order number
    - sortField, sortOrder, page, limit
    """
    page, limit = parse_page_args(request.args, default_limit=ADMIN_ORDERS_PAGE_SIZE)
    return order_service.list_orders(request.args, page=page, limit=limit)


@orders_bp.get("/all/me")
@require_auth
def list_my_orders_route():
    page, limit = parse_page_args(request.args, default_limit=CUSTOMER_ORDERS_PAGE_SIZE)
    return order_service.list_customer_orders(
        g.current_user.id, request.args, page=page, limit=limit
    )


@orders_bp.get("/me/<order_number>")
@require_auth
def get_my_order_route(order_number: str):
    number = parse_order_number(order_number)
    order = order_service.get_customer_order_by_number(number, g.current_user.id)
    return order.to_dict()


@orders_bp.get("/<order_number>")
@require_auth
@require_roles(ROLE_ADMIN)
def get_order_route(order_number: str):
    number = parse_order_number(order_number)
    return order_service.get_order_by_number(number).to_dict()


@orders_bp.patch("/<order_number>")
@require_auth
@require_roles(ROLE_ADMIN)
def update_order_status_route(order_number: str):
    number = parse_order_number(order_number)
    status = validate_order_status(request.get_json(silent=True))
    return order_service.update_order_status(number, status).to_dict()


@orders_bp.delete("/<id:order_id>")
@require_auth
@require_roles(ROLE_ADMIN)
def delete_order_route(order_id: int):
    return order_service.delete_order(order_id)
