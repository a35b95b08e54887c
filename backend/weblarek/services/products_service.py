# backend/weblarek/services/products_service.py
"""
Products Service

Catalog CRUD plus the image side effects:
- create_product moves the referenced image from the temp dir to the permanent dir
- update_product moves a new image in and deletes the previously stored one
- delete_product deletes the stored image
File side effects are fire-and-forget (see file_service).
"""
from __future__ import annotations
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import ConflictError, NotFoundError
from ..models import Product
from . import file_service
from .pagination import pagination_block

PRODUCT_MUTABLE_FIELDS = {
    "title", "category", "description", "price", "image_file_name", "image_original_name",
}
DUPLICATE_TITLE = "Product with this title already exists"


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _ensure_title_free(title: str, *, exclude_id: int | None = None) -> None:
    query = db.session.query(Product.id).filter(Product.title == title)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise ConflictError(DUPLICATE_TITLE)


def _commit_or_conflict() -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(DUPLICATE_TITLE)


def get_product_or_404(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return product


def list_products(page: int = 1, limit: int = 5) -> dict:
    """Paginated catalog, in insertion order."""
    base_query = db.session.query(Product).order_by(Product.id.asc())

    total = base_query.count()
    products = base_query.offset((page - 1) * limit).limit(limit).all()

    return {
        "items": [p.to_dict() for p in products],
        "pagination": pagination_block("totalProducts", total, page, limit),
    }


def create_product(*, patch: dict) -> dict:
    """
    Create product using a validated patch dict.

    Raises:
        ConflictError: title already used
    """
    _ensure_title_free(patch["title"])

    if patch.get("image_file_name"):
        file_service.move_to_permanent(patch["image_file_name"])

    p = Product()
    apply_product_patch(p, patch)
    db.session.add(p)
    _commit_or_conflict()
    return p.to_dict()


def update_product(*, product_id: int, patch: dict) -> dict:
    """
    Update a product.

    Price semantics follow the storefront admin form: a price that is
    missing or falsy in the update resets the product to "not for sale".
    A new image replaces the stored file (the old one is deleted).
    """
    p = get_product_or_404(product_id)

    if "title" in patch:
        _ensure_title_free(patch["title"], exclude_id=p.id)

    patch = dict(patch)
    if not patch.get("price"):
        patch["price"] = None

    old_image = None
    new_image = patch.get("image_file_name")
    if new_image:
        file_service.move_to_permanent(new_image)
        if new_image != p.image_file_name:
            old_image = p.image_file_name

    apply_product_patch(p, patch)
    _commit_or_conflict()

    if old_image:
        file_service.delete_stored_image(old_image)
    return p.to_dict()


def delete_product(*, product_id: int) -> dict:
    """Delete a product and its stored image. Returns the deleted product."""
    p = get_product_or_404(product_id)
    data = p.to_dict()

    db.session.delete(p)
    db.session.commit()

    file_service.delete_stored_image(data["image"]["fileName"])
    return data
