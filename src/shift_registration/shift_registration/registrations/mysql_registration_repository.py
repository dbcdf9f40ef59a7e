from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
from typing import Iterable, Iterator, Optional, Sequence, Set

import mysql.connector

from ..core.constants import DEFAULT_LOCK_TIMEOUT_SECONDS
from ..core.enums import RegistrationStatus
from ..core.exceptions import ConflictError, NotFoundError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    ER_DUP_ENTRY,
    ER_NO_REFERENCED_ROW,
    db_cursor,
    db_transaction,
    fetchall,
    fetchone,
    is_integrity_error,
    normalize_mysql_time,
)
from .model import ShiftRegistration
from .repository import RegistrationRepository, RegistrationTransaction

_COLUMNS = """
    registration_id, user_id, work_shift_id, work_date, status, note, admin_note,
    approved_by, approved_at, rejected_reason, created_at
"""


def _row_to_registration(r: dict) -> ShiftRegistration:
    return ShiftRegistration(
        registration_id=int(r["registration_id"]),
        user_id=int(r["user_id"]),
        work_shift_id=int(r["work_shift_id"]),
        work_date=r["work_date"],
        status=RegistrationStatus(r["status"]),
        created_at=r["created_at"],
        note=r.get("note"),
        admin_note=r.get("admin_note"),
        approved_by=r.get("approved_by"),
        approved_at=r.get("approved_at"),
        rejected_reason=r.get("rejected_reason"),
    )


def _raise_write_error(exc: mysql.connector.Error, *, work_shift_id: int, work_date: date) -> None:
    if is_integrity_error(exc, ER_DUP_ENTRY):
        raise ConflictError(
            f"A registration for shift {work_shift_id} on {work_date.isoformat()} already exists for this user"
        ) from exc
    if is_integrity_error(exc, ER_NO_REFERENCED_ROW):
        raise NotFoundError(f"Unknown user or shift {work_shift_id}") from exc
    raise exc


def _insert(
    cur,
    *,
    user_id: int,
    work_shift_id: int,
    work_date: date,
    status: RegistrationStatus,
    note: Optional[str],
    approved_by: Optional[int],
    approved_at: Optional[datetime],
) -> ShiftRegistration:
    try:
        cur.execute(
            """
            INSERT INTO shift_registrations(user_id, work_shift_id, work_date, status, note, approved_by, approved_at)
            VALUES(%s,%s,%s,%s,%s,%s,%s)
            """,
            (int(user_id), int(work_shift_id), work_date, status.value, note, approved_by, approved_at),
        )
    except mysql.connector.Error as exc:
        _raise_write_error(exc, work_shift_id=work_shift_id, work_date=work_date)

    registration_id = int(cur.lastrowid)
    cur.execute(f"SELECT {_COLUMNS} FROM shift_registrations WHERE registration_id=%s", (registration_id,))
    return _row_to_registration(fetchone(cur))


def _select_active_between(cur, *, user_ids: Iterable[int], start: date, end: date) -> Sequence[ShiftRegistration]:
    ids = sorted({int(i) for i in user_ids})
    if not ids:
        return []
    placeholders = ",".join(["%s"] * len(ids))
    cur.execute(
        f"""
        SELECT {_COLUMNS}
        FROM shift_registrations
        WHERE user_id IN ({placeholders})
          AND work_date BETWEEN %s AND %s
          AND status <> %s
        ORDER BY work_date, work_shift_id, user_id
        """,
        tuple(ids) + (start, end, RegistrationStatus.REJECTED.value),
    )
    return [_row_to_registration(r) for r in fetchall(cur)]


class _MySQLRegistrationTransaction(RegistrationTransaction):
    def __init__(self, cur):
        self._cur = cur

    def list_active_between(self, *, user_ids: Iterable[int], start: date, end: date) -> Sequence[ShiftRegistration]:
        return _select_active_between(self._cur, user_ids=user_ids, start=start, end=end)

    def insert(self, *, user_id, work_shift_id, work_date, status, note=None, approved_by=None, approved_at=None):
        return _insert(
            self._cur,
            user_id=user_id,
            work_shift_id=work_shift_id,
            work_date=work_date,
            status=status,
            note=note,
            approved_by=approved_by,
            approved_at=approved_at,
        )

    def delete_ids(self, registration_ids: Iterable[int]) -> int:
        ids = sorted({int(i) for i in registration_ids})
        if not ids:
            return 0
        placeholders = ",".join(["%s"] * len(ids))
        self._cur.execute(f"DELETE FROM shift_registrations WHERE registration_id IN ({placeholders})", tuple(ids))
        return int(self._cur.rowcount)

    def mark_plan_submitted(self, *, user_id: int, week_start: date, submitted_at: datetime) -> None:
        self._cur.execute(
            """
            INSERT INTO week_plans (user_id, week_start, submitted_at) VALUES (%s, %s, %s)
            ON DUPLICATE KEY UPDATE submitted_at=VALUES(submitted_at)
            """,
            (int(user_id), week_start, submitted_at),
        )

    def list_planned_user_ids(self, *, user_ids: Iterable[int], week_start: date) -> Set[int]:
        ids = sorted({int(i) for i in user_ids})
        if not ids:
            return set()
        placeholders = ",".join(["%s"] * len(ids))
        self._cur.execute(
            f"SELECT user_id FROM week_plans WHERE week_start=%s AND user_id IN ({placeholders})",
            (week_start, *ids),
        )
        return {int(r["user_id"]) for r in fetchall(self._cur)}


class MySQLRegistrationRepository(RegistrationRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, lock_timeout: int = DEFAULT_LOCK_TIMEOUT_SECONDS):
        self._conn_factory = conn_factory
        self._lock_timeout = int(lock_timeout)

    @contextmanager
    def transaction(self, *, lock_names: Sequence[str] = ()) -> Iterator[RegistrationTransaction]:
        with db_transaction(self._conn_factory, lock_names=lock_names, lock_timeout=self._lock_timeout) as (_, cur):
            yield _MySQLRegistrationTransaction(cur)

    def get_by_id(self, registration_id: int) -> Optional[ShiftRegistration]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM shift_registrations WHERE registration_id=%s", (int(registration_id),))
            r = fetchone(cur)
            return _row_to_registration(r) if r else None

    def list_between(self, *, start, end, user_ids=None, statuses=None) -> Sequence[ShiftRegistration]:
        clauses = ["work_date BETWEEN %s AND %s"]
        params: list[object] = [start, end]
        if user_ids is not None:
            ids = sorted({int(i) for i in user_ids})
            if not ids:
                return []
            clauses.append(f"user_id IN ({','.join(['%s'] * len(ids))})")
            params.extend(ids)
        if statuses is not None:
            values = [RegistrationStatus(s).value for s in statuses]
            if not values:
                return []
            clauses.append(f"status IN ({','.join(['%s'] * len(values))})")
            params.extend(values)

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM shift_registrations WHERE {where} ORDER BY work_date, work_shift_id, user_id",
                tuple(params),
            )
            return [_row_to_registration(r) for r in fetchall(cur)]

    def list_rows(self, *, status=None, user_id=None, start=None, end=None, limit: int = 500) -> Sequence[dict]:
        clauses = ["1=1"]
        params: list[object] = []

        if status is not None:
            clauses.append("r.status=%s")
            params.append(RegistrationStatus(status).value)
        if user_id is not None:
            clauses.append("r.user_id=%s")
            params.append(int(user_id))
        if start is not None:
            clauses.append("r.work_date >= %s")
            params.append(start)
        if end is not None:
            clauses.append("r.work_date <= %s")
            params.append(end)

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT r.registration_id, r.user_id, u.full_name AS user_name, u.position_id,
                       r.work_shift_id, s.name AS shift_name, s.start_time, s.end_time,
                       r.work_date, r.status, r.note, r.admin_note,
                       r.approved_by, a.full_name AS approved_by_name, r.approved_at,
                       r.rejected_reason, r.created_at
                FROM shift_registrations r
                JOIN users u ON u.user_id = r.user_id
                JOIN work_shifts s ON s.shift_id = r.work_shift_id
                LEFT JOIN users a ON a.user_id = r.approved_by
                WHERE {where}
                ORDER BY r.work_date ASC, s.start_time ASC, u.user_id ASC
                LIMIT %s
                """,
                tuple(params + [int(limit)]),
            )
            out: list[dict] = []
            for r in fetchall(cur):
                row = _row_to_registration(r).to_dict()
                row.update(
                    {
                        "user_name": r["user_name"],
                        "position_id": r.get("position_id"),
                        "shift_name": r["shift_name"],
                        "shift_start_time": normalize_mysql_time(r["start_time"]).strftime("%H:%M"),
                        "shift_end_time": normalize_mysql_time(r["end_time"]).strftime("%H:%M"),
                        "approved_by_name": r.get("approved_by_name"),
                    }
                )
                out.append(row)
            return out

    def create(self, *, user_id, work_shift_id, work_date, status, note=None, approved_by=None, approved_at=None):
        with db_cursor(self._conn_factory) as (_, cur):
            return _insert(
                cur,
                user_id=user_id,
                work_shift_id=work_shift_id,
                work_date=work_date,
                status=status,
                note=note,
                approved_by=approved_by,
                approved_at=approved_at,
            )

    def decide(self, *, registration_id, expected_status, status, decided_by, decided_at, reason=None) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE shift_registrations
                SET status=%s, approved_by=%s, approved_at=%s, rejected_reason=%s
                WHERE registration_id=%s AND status=%s
                """,
                (
                    RegistrationStatus(status).value,
                    int(decided_by),
                    decided_at,
                    reason,
                    int(registration_id),
                    RegistrationStatus(expected_status).value,
                ),
            )
            return cur.rowcount > 0

    def update(self, *, registration_id, work_shift_id, work_date, note, admin_note) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            try:
                cur.execute(
                    """
                    UPDATE shift_registrations
                    SET work_shift_id=%s, work_date=%s, note=%s, admin_note=%s
                    WHERE registration_id=%s
                    """,
                    (int(work_shift_id), work_date, note, admin_note, int(registration_id)),
                )
            except mysql.connector.Error as exc:
                _raise_write_error(exc, work_shift_id=work_shift_id, work_date=work_date)

    def delete(self, registration_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM shift_registrations WHERE registration_id=%s", (int(registration_id),))
            return cur.rowcount > 0
