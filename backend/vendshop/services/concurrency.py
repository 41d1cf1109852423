# Overview: Service-layer helpers for concurrency; write transactions, row locks and retry.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_write_transaction()
    covers it there by taking the database write lock up front.
    """
    return query.with_for_update()


def begin_write_transaction() -> None:
    """
    Start the current unit of work as a write transaction.

    On SQLite this is BEGIN IMMEDIATE, which serialises writers before
    the first read, so a check made inside the transaction cannot go
    stale before the commit. Other databases rely on lock_for_update().
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def _default_attempts() -> int:
    try:
        return int(current_app.config.get("WRITE_RETRY_ATTEMPTS", 3))
    except RuntimeError:
        return 3


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.05):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, lock timeouts) and StaleDataError
    (optimistic locking conflicts). Any other exception rolls the session
    back and propagates unchanged, so a failed operation never leaves
    partial writes behind.
    """
    if attempts is None:
        attempts = _default_attempts()

    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
    if last_exc:
        raise last_exc
