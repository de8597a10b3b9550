# Overview: Row locking, write-transaction setup and retry for the sale/restock paths.

from __future__ import annotations

import logging
import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import LockTimeoutError

logger = logging.getLogger(__name__)

# Substrings drivers use when a lock wait gives up
_LOCK_MARKERS = (
    "database is locked",
    "database table is locked",
    "lock timeout",
    "lock_timeout",
    "could not obtain lock",
    "deadlock",
)


def is_lock_error(exc: BaseException) -> bool:
    if isinstance(exc, StaleDataError):
        return True
    if not isinstance(exc, OperationalError):
        return False
    message = str(getattr(exc, "orig", exc)).lower()
    return any(marker in message for marker in _LOCK_MARKERS)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_write_transaction()
    takes the database write lock up front instead.
    """
    return query.with_for_update()


def begin_write_transaction(session, *, lock_timeout_seconds: float = 5.0) -> None:
    """
    Open the unit of work for a stock mutation.

    SQLite: BEGIN IMMEDIATE grabs the RESERVED lock before the first read,
    so two sales cannot both read the same quantity and then write. Waiting
    is bounded by the connection's busy timeout.
    PostgreSQL: bound the row-lock wait of the FOR UPDATE that follows.
    """
    dialect = session.get_bind().dialect.name
    if dialect == "sqlite":
        raw = session.connection().connection.dbapi_connection
        # Already inside a driver transaction (earlier write in this request)
        if not raw.in_transaction:
            session.execute(text("BEGIN IMMEDIATE"))
    elif dialect == "postgresql":
        ms = int(lock_timeout_seconds * 1000)
        session.execute(text(f"SET LOCAL lock_timeout = '{ms}ms'"))


def run_with_retry(session, func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on lock contention.

    Every failure rolls the session back before the next attempt. Lock
    errors that survive all attempts become LockTimeoutError (HTTP 503,
    retryable); any other exception propagates untouched.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            session.rollback()
            if not is_lock_error(exc):
                raise
            if attempt >= attempts - 1:
                logger.warning("Giving up after %d lock-contended attempts: %s", attempts, exc)
                raise LockTimeoutError(details={"attempts": attempts}) from exc
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            session.rollback()
            raise
