# Overview: Locking, retry and unit-of-work helpers shared by every ledger write.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConcurrencyTimeoutError, PersistenceError
from ..extensions import db


"""
Ledger lock order (authoritative)

1. Wallet rows, ascending customer_id
2. Loyalty earning rows, ascending expires_at
3. Customer rows

Every unit of work that takes more than one of these acquires them in
this order, so a checkout and a redemption for the same customer can
block each other but never deadlock.
"""


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_write() takes the
    database write lock up front instead.
    """
    return query.with_for_update()


def begin_write() -> None:
    """Open the write transaction eagerly on SQLite (BEGIN IMMEDIATE)."""
    if db.engine.dialect.name != "sqlite":
        return
    raw = db.session.connection().connection.dbapi_connection
    if raw is not None and raw.in_transaction:
        return
    db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, lock wait timeouts) and
    StaleDataError (optimistic locking conflicts). When attempts run out
    the failure surfaces as ConcurrencyTimeoutError.
    """
    if attempts is None:
        attempts = current_app.config.get("LEDGER_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("LEDGER_RETRY_BACKOFF", 0.1)

    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise ConcurrencyTimeoutError(
                    "The ledger is busy, please retry",
                    details={"attempts": attempts},
                ) from exc
            time.sleep(backoff_base * (2 ** attempt))
    raise ConcurrencyTimeoutError("The ledger is busy, please retry", details={"attempts": attempts})


def run_unit_of_work(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Run func inside one atomic unit: everything commits or nothing does.

    Any exception rolls the session back before it propagates. Unexpected
    storage errors are reported as PersistenceError.
    """
    def _op():
        begin_write()
        try:
            result = func()
            db.session.commit()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            raise
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceError("Storage failure; no changes were saved") from exc
        except Exception:
            db.session.rollback()
            raise
        return result

    return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
