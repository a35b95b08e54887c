from __future__ import annotations
import re
from datetime import datetime
from weblarek.time_utils import parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta
from werkzeug.routing import IntegerConverter

from .errors import BadRequestError
from .models import ORDER_STATUSES, PAYMENT_TYPES, ROLES


# Keeps prices and totals inside a 32-bit integer column
MAX_PRICE = 999_999_999
# Largest value the database driver can bind as an integer key
MAX_ID = 2 ** 63 - 1

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
PHONE_RE = re.compile(r"^(\+\d+)?(?:\s|-?|\(?\d+\)?)+$")

TITLE_MIN_LENGTH = 2
TITLE_MAX_LENGTH = 30
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 30
PASSWORD_MIN_LENGTH = 6


class ValidationError(BadRequestError):
    """400-level input problem."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        # String input - must be plain digits (with optional leading minus)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            # Reject scientific notation (e.g., "1e15", "1E10")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)")
            # Reject decimal points (e.g., "12.5")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        # Whole floats from JSON ("750.0") are accepted, fractions are not
        if isinstance(value, float):
            if value.is_integer():
                return int(value)
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        # Other types
        raise ValidationError(f"{col.key} must be an integer")

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        # fallback: truthiness
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def _require_dict(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def _clean_email(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError('Field "email" is required')
    email = value.strip()
    if not EMAIL_RE.match(email):
        raise ValidationError('Field "email" must be a valid email address')
    return email


def _clean_name(value: Any) -> str:
    if not isinstance(value, str):
        raise ValidationError('Field "name" must be a string')
    name = value.strip()
    if len(name) < NAME_MIN_LENGTH:
        raise ValidationError(f'Minimum length of field "name" is {NAME_MIN_LENGTH}')
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError(f'Maximum length of field "name" is {NAME_MAX_LENGTH}')
    return name


def _clean_password(value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise ValidationError('Field "password" is required')
    if len(value) < PASSWORD_MIN_LENGTH:
        raise ValidationError(f'Minimum length of field "password" is {PASSWORD_MIN_LENGTH}')
    return value


def _clean_phone(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError('Field "phone" is required')
    phone = value.strip()
    if not PHONE_RE.match(phone):
        raise ValidationError('Field "phone" must be a valid phone number')
    return phone


# =============================================================================
# Users
# =============================================================================

def validate_user_payload(payload: Any) -> dict:
    """Registration body: email + password required, name optional."""
    payload = _require_dict(payload)
    cleaned = {
        "email": _clean_email(payload.get("email")),
        "password": _clean_password(payload.get("password")),
    }
    if payload.get("name") is not None:
        cleaned["name"] = _clean_name(payload["name"])
    return cleaned


def validate_login_payload(payload: Any) -> dict:
    payload = _require_dict(payload)
    password = payload.get("password")
    if not isinstance(password, str) or not password:
        raise ValidationError('Field "password" is required')
    return {"email": _clean_email(payload.get("email")), "password": password}


def validate_user_patch(payload: Any, *, allow_roles: bool = False) -> dict:
    """
    Partial update of a user record. Only provided keys are validated.

    Roles may only be set through the admin customer endpoint (allow_roles).
    """
    payload = _require_dict(payload)
    allowed = {"email", "name", "phone", "password"}
    if allow_roles:
        allowed.add("roles")
    for k in payload.keys():
        if k not in allowed:
            raise ValidationError(f"Field not allowed: {k}")

    patch: dict = {}
    if "email" in payload:
        patch["email"] = _clean_email(payload["email"])
    if "name" in payload:
        patch["name"] = _clean_name(payload["name"])
    if "phone" in payload:
        patch["phone"] = None if payload["phone"] in (None, "") else _clean_phone(payload["phone"])
    if "password" in payload:
        patch["password"] = _clean_password(payload["password"])
    if "roles" in payload:
        roles = payload["roles"]
        if not isinstance(roles, list) or not roles:
            raise ValidationError("roles must be a non-empty list")
        unknown = [r for r in roles if r not in ROLES]
        if unknown:
            raise ValidationError(f"Unknown roles: {', '.join(map(str, unknown))}")
        patch["roles"] = sorted(set(roles))
    return patch


# =============================================================================
# Products
# =============================================================================

def flatten_product_payload(payload: Any) -> dict:
    """
    Map the client's nested image object onto Product columns.

    {"image": {"fileName": ..., "originalName": ...}} ->
    {"image_file_name": ..., "image_original_name": ...}
    """
    payload = dict(_require_dict(payload))
    if "image" in payload:
        image = payload.pop("image")
        if image is not None:
            if not isinstance(image, dict):
                raise ValidationError("image must be an object with fileName and originalName")
            if not image.get("fileName") or not image.get("originalName"):
                raise ValidationError("image.fileName and image.originalName are required")
            payload["image_file_name"] = image["fileName"]
            payload["image_original_name"] = image["originalName"]
    return payload


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "title" in patch:
        title = patch["title"] or ""
        if len(title) < TITLE_MIN_LENGTH:
            raise ValidationError(f'Minimum length of field "title" is {TITLE_MIN_LENGTH}')
        if len(title) > TITLE_MAX_LENGTH:
            raise ValidationError(f'Maximum length of field "title" is {TITLE_MAX_LENGTH}')

    if "price" in patch and patch["price"] is not None:
        price = patch["price"]
        if price < 0:
            raise ValidationError("price must be >= 0")
        if price > MAX_PRICE:
            raise ValidationError(f"price cannot exceed {MAX_PRICE}")


# =============================================================================
# Orders
# =============================================================================

def check_int_range(value: int, field: str) -> int:
    if not -MAX_ID - 1 <= value <= MAX_ID:
        raise ValidationError(f"{field} is out of range")
    return value


def _clean_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return check_int_range(value, field)
    if isinstance(value, float) and value.is_integer():
        return check_int_range(int(value), field)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return check_int_range(int(value.strip()), field)
    raise ValidationError(f"{field} must be an integer")


def validate_order_payload(payload: Any) -> dict:
    """
    Checkout body. Shape only; basket integrity (ids exist, prices, total)
    is checked by order_service.create_order.
    """
    payload = _require_dict(payload)

    items = payload.get("items")
    if not isinstance(items, list) or not items:
        raise ValidationError("No products specified")
    cleaned_items = []
    for item in items:
        try:
            cleaned_items.append(_clean_int(item, "items"))
        except ValidationError:
            raise ValidationError(f"Invalid product id: {item}")

    payment = payload.get("payment")
    if not payment:
        raise ValidationError("Payment method is required")
    if payment not in PAYMENT_TYPES:
        raise ValidationError(
            f"Invalid payment method, allowed values: {', '.join(PAYMENT_TYPES)}"
        )

    address = payload.get("address")
    if not isinstance(address, str) or not address.strip():
        raise ValidationError("Address is required")

    if payload.get("total") is None:
        raise ValidationError("Order total is required")
    total = _clean_int(payload["total"], "total")

    comment = payload.get("comment") or ""
    if not isinstance(comment, str):
        raise ValidationError("comment must be a string")

    return {
        "items": cleaned_items,
        "payment": payment,
        "email": _clean_email(payload.get("email")),
        "phone": _clean_phone(payload.get("phone")),
        "address": address.strip(),
        "total": total,
        "comment": comment,
    }


def validate_order_status(payload: Any) -> str:
    payload = _require_dict(payload)
    status = payload.get("status")
    if status not in ORDER_STATUSES:
        raise ValidationError(
            f"Invalid order status, allowed values: {', '.join(ORDER_STATUSES)}"
        )
    return status


def parse_order_number(value: Any) -> int:
    try:
        number = int(str(value))
    except (TypeError, ValueError):
        raise ValidationError("Invalid order number")
    if number < 1 or number > MAX_ID:
        raise ValidationError("Invalid order number")
    return number


class IdConverter(IntegerConverter):
    """<id:...> URL segment: a positive integer that fits a database key."""

    def __init__(self, map, **kwargs):
        super().__init__(map, min=1, max=MAX_ID)
