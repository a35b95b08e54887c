# Overview: Page/limit parsing and the pagination block shared by list endpoints.

from __future__ import annotations

import math

from ..time_utils import end_of_day, parse_iso_datetime
from ..validation import MAX_ID, ValidationError, check_int_range

MAX_PAGE_SIZE = 100


def parse_page_args(args, *, default_limit: int) -> tuple[int, int]:
    """
    Read page/limit from query args.

    page defaults to 1, limit to default_limit (capped at MAX_PAGE_SIZE).
    """
    try:
        page = int(args.get("page", 1))
        limit = int(args.get("limit", default_limit))
    except (TypeError, ValueError):
        raise ValidationError("page and limit must be integers")
    if page < 1 or limit < 1:
        raise ValidationError("page and limit must be positive")
    if page > MAX_ID // MAX_PAGE_SIZE:
        raise ValidationError("page is out of range")
    return page, min(limit, MAX_PAGE_SIZE)


def pagination_block(total_key: str, total: int, page: int, limit: int) -> dict:
    return {
        total_key: total,
        "totalPages": math.ceil(total / limit) if limit else 0,
        "currentPage": page,
        "pageSize": limit,
    }


def int_arg(args, key: str) -> int | None:
    raw = args.get(key)
    if raw in (None, ""):
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer")
    return check_int_range(value, key)


def date_arg(args, key: str, *, inclusive_end: bool = False):
    """
    Read an ISO-8601 date or datetime.

    With inclusive_end, a bare date ("2024-05-01") is widened to the last
    microsecond of that day.
    """
    raw = args.get(key)
    if not raw:
        return None
    try:
        dt = parse_iso_datetime(raw)
    except ValueError:
        raise ValidationError(f"{key} must be an ISO-8601 date")
    if inclusive_end and "T" not in raw:
        dt = end_of_day(dt)
    return dt


def sort_clause(args, fields: dict, *, default_field: str = "createdAt"):
    """Map sortField/sortOrder onto one of the allowed columns."""
    sort_field = args.get("sortField") or default_field
    sort_order = args.get("sortOrder") or "desc"
    column = fields.get(sort_field)
    if column is None:
        raise ValidationError(f"Unsupported sortField: {sort_field}")
    if sort_order not in ("asc", "desc"):
        raise ValidationError("sortOrder must be 'asc' or 'desc'")
    return column.desc() if sort_order == "desc" else column.asc()
