# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Catalog routes.

Reading the catalog is public. Writes require the admin role.
"""
from flask import Blueprint, request

from ..services import products_service
from ..services.pagination import parse_page_args
from ..models import Product, ROLE_ADMIN
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    flatten_product_payload,
    enforce_rules_product,
)
from ..decorators import require_auth, require_roles

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "title", "category", "description", "price", "image_file_name", "image_original_name",
    },
    required_on_create={"title", "category", "image_file_name"},
)

PRODUCTS_PAGE_SIZE = 5

products_bp = Blueprint("products", __name__, url_prefix="/product")


@products_bp.get("")
def list_products():
    """
    Paginated catalog.

    Query params:
    - page: int (optional) - page number (1-indexed), default 1
    - limit: int (optional) - items per page (default 5, max 100)
    """
    page, limit = parse_page_args(request.args, default_limit=PRODUCTS_PAGE_SIZE)
    return products_service.list_products(page=page, limit=limit)


@products_bp.post("")
@require_auth
@require_roles(ROLE_ADMIN)
def create_product_route():
    payload = flatten_product_payload(request.get_json(silent=True))

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)

    created = products_service.create_product(patch=patch)
    return created, 201


@products_bp.patch("/<id:product_id>")
@require_auth
@require_roles(ROLE_ADMIN)
def update_product_route(product_id: int):
    """
    Partial update. Omitting price (or sending a falsy one) takes the
    product off sale.
    """
    payload = flatten_product_payload(request.get_json(silent=True))

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)

    return products_service.update_product(product_id=product_id, patch=patch)


@products_bp.delete("/<id:product_id>")
@require_auth
@require_roles(ROLE_ADMIN)
def delete_product_route(product_id: int):
    return products_service.delete_product(product_id=product_id)
