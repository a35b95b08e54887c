# Overview: Retry helper for storage-level lock conflicts.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError

from ..extensions import db


def run_with_retry(func, *, attempts: int = 5, backoff_base: float = 0.05):
    """
    Execute a DB operation with retry on lock contention.

    Retries on OperationalError ("database is locked", deadlocks). Each
    attempt starts from a rolled-back session, so func must be safe to
    re-run from scratch.
    """
    for attempt in range(attempts):
        try:
            return func()
        except OperationalError:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
