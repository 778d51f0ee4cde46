# Overview: Row locking and retry helpers shared by every write path.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking to a read that precedes a write.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; the version_id columns on
    Inventory, Ingredient and DailyStats still catch lost updates there.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run one unit of work (which commits itself) with retry on
    concurrency-related failures.

    Retries on OperationalError (deadlocks, busy database) and StaleDataError
    (version conflict). Any other exception rolls the session back and
    propagates unchanged.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
