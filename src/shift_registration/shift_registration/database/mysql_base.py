from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, time, timedelta
from typing import Any, Dict, List, Optional, Sequence

import mysql.connector

from ..core.constants import DEFAULT_LOCK_TIMEOUT_SECONDS
from ..core.exceptions import ConflictError
from .connection import DatabaseConnection

ER_DUP_ENTRY = 1062
ER_NO_REFERENCED_ROW = 1452


@contextmanager
def _session(conn_factory: DatabaseConnection, *, dictionary: bool):
    """Pooled connection plus cursor; any exception rolls back before the connection returns to the pool."""

    conn = conn_factory.connect()
    cur = conn.cursor(dictionary=dictionary)
    try:
        yield conn, cur
    except Exception:
        conn.rollback()
        raise
    finally:
        cur.close()
        conn.close()


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    with _session(conn_factory, dictionary=dictionary) as (conn, cur):
        yield conn, cur
        conn.commit()


@contextmanager
def db_transaction(
    conn_factory: DatabaseConnection,
    *,
    lock_names: Sequence[str] = (),
    lock_timeout: int = DEFAULT_LOCK_TIMEOUT_SECONDS,
):
    """One READ COMMITTED transaction guarded by MySQL named locks.

    Locks are taken in the given order before the transaction starts, so every
    read inside the block sees rows committed by the previous lock holder.
    Named locks are session scoped; the pool resets the session when the
    connection is handed back, which releases them.
    """

    with _session(conn_factory, dictionary=True) as (conn, cur):
        for name in lock_names:
            cur.execute("SELECT GET_LOCK(%s, %s) AS acquired", (name, int(lock_timeout)))
            row = cur.fetchone()
            if not row or row.get("acquired") != 1:
                raise ConflictError(f"Another update is in progress ({name}), please retry")
        conn.commit()
        cur.execute("SET TRANSACTION ISOLATION LEVEL READ COMMITTED")
        yield conn, cur
        conn.commit()


def is_integrity_error(exc: BaseException, errno: int) -> bool:
    return isinstance(exc, mysql.connector.errors.IntegrityError) and getattr(exc, "errno", None) == errno


def fetchone(cur) -> Optional[Dict[str, Any]]:
    return cur.fetchone() or None


def fetchall(cur) -> List[Dict[str, Any]]:
    return list(cur.fetchall() or [])


def normalize_mysql_time(value: Any) -> Optional[time]:
    """TIME columns come back as time, timedelta or 'HH:MM[:SS]' depending on the connector."""

    if value is None or isinstance(value, time):
        return value
    if isinstance(value, timedelta):
        return (datetime.min + timedelta(seconds=int(value.total_seconds()) % 86400)).time()
    if isinstance(value, str):
        return time.fromisoformat(value.strip())
    raise TypeError(f"Unsupported TIME value: {value!r}")
