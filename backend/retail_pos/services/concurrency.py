# Overview: Service-layer helpers for transactions, row locks and retries around the entity store.

from __future__ import annotations

import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import InternalError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_write_transaction()
    serializes writers there instead.
    """
    return query.with_for_update()


def begin_write_transaction() -> None:
    """
    On SQLite, take the database write lock before the first read so that
    check-then-update sequences cannot interleave with another writer.
    """
    if db.engine.dialect.name != "sqlite":
        return
    dbapi_conn = db.session.connection().connection.dbapi_connection
    if not dbapi_conn.in_transaction:
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts).
    """
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
    if last_exc:
        raise last_exc


def run_in_transaction(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run func() as one all-or-nothing unit: commit on success, roll back on
    any exception. Storage errors that survive the retries surface as
    InternalError; business errors propagate unchanged.
    """
    def _op():
        try:
            begin_write_transaction()
            result = func()
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return result

    try:
        return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
    except SQLAlchemyError as exc:
        raise InternalError("Storage operation failed") from exc
