# Overview: Service-layer operations for concurrency; transaction, locking and retry helpers.

from __future__ import annotations

import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import ConflictError


class ConcurrencyConflict(ConflictError):
    """Raised when an operation keeps losing lock races after all retries."""


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def begin_write_transaction() -> None:
    """
    Take the database write lock at the start of a multi-row write.

    SQLite only: BEGIN IMMEDIATE serializes writers up front instead of
    failing at commit time. Other databases rely on row locks and
    conditional updates.
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Any other exception rolls the session
    back and propagates unchanged.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt < attempts - 1:
                time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
    raise ConcurrencyConflict(
        "Operation lost a concurrent update race; please retry",
        details={"attempts": attempts, "reason": type(last_exc).__name__},
    ) from last_exc
