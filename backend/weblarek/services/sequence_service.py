# Overview: Atomic named counters backing human-readable order numbers.

from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Counter
from .concurrency import run_with_retry

ORDER_SEQUENCE = "order"


class SequenceError(Exception):
    """Raised when a counter cannot be advanced."""


def _increment(name: str) -> int | None:
    stmt = (
        update(Counter)
        .where(Counter.name == name)
        .values(sequence_value=Counter.sequence_value + 1)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        return None
    return db.session.execute(
        select(Counter.sequence_value).where(Counter.name == name)
    ).scalar_one()


def next_value(name: str = ORDER_SEQUENCE) -> int:
    """
    Atomically allocate the next value of counter `name` (first value is 1).

    The increment is a single UPDATE executed by the database, so the row's
    write lock serializes concurrent callers until their transaction ends.
    Callers commit (the value is consumed even if their own insert later
    fails; gaps are allowed, duplicates are not).

    If the counter row does not exist yet it is created (upsert); a unique-key
    race on creation falls back to the increment path.
    """
    def _op() -> int:
        if not name:
            raise SequenceError("counter name is required")

        value = _increment(name)
        if value is not None:
            return value

        # Savepoint so losing the creation race does not discard the caller's work
        try:
            with db.session.begin_nested():
                db.session.add(Counter(name=name, sequence_value=1))
            return 1
        except IntegrityError:
            value = _increment(name)
            if value is None:
                raise SequenceError(f"counter {name!r} could not be created")
            return value

    return run_with_retry(_op)


def current_value(name: str = ORDER_SEQUENCE) -> int:
    """Last value handed out (0 if the counter was never used)."""
    value = db.session.execute(
        select(Counter.sequence_value).where(Counter.name == name)
    ).scalar_one_or_none()
    return value or 0
