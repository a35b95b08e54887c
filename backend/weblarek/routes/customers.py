# Overview: Flask API routes for customer administration; parses input and returns JSON responses.

from flask import Blueprint, request

from ..services import customer_service
from ..services.pagination import parse_page_args
from ..models import User, ROLE_ADMIN
from ..validation import validate_user_patch
from ..decorators import require_auth, require_roles, require_owner

CUSTOMERS_PAGE_SIZE = 10

customers_bp = Blueprint("customers", __name__, url_prefix="/customers")


@customers_bp.get("")
@require_auth
@require_roles(ROLE_ADMIN)
def list_customers_route():
    """
    Query params:
    - registrationDateFrom/To, lastOrderDateFrom/To
    - totalAmountFrom/To, orderCountFrom/To
    - search: customer name or last delivery address
    - sortField (default createdAt), sortOrder (default desc), page, limit
    """
    page, limit = parse_page_args(request.args, default_limit=CUSTOMERS_PAGE_SIZE)
    return customer_service.list_customers(request.args, page=page, limit=limit)


@customers_bp.get("/<id:user_id>")
@require_auth
@require_owner(User, "user_id")
def get_customer_route(user_id: int):
    user = customer_service.get_customer(user_id)
    return customer_service.customer_to_dict(user)


@customers_bp.patch("/<id:user_id>")
@require_auth
@require_roles(ROLE_ADMIN)
def update_customer_route(user_id: int):
    patch = validate_user_patch(request.get_json(silent=True), allow_roles=True)
    user = customer_service.update_customer(user_id, patch)
    return customer_service.customer_to_dict(user)


@customers_bp.delete("/<id:user_id>")
@require_auth
@require_roles(ROLE_ADMIN)
def delete_customer_route(user_id: int):
    return customer_service.delete_customer(user_id)
