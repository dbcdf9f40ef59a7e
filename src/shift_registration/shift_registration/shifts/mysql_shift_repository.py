from __future__ import annotations

from typing import Optional, Sequence

from ..core.constants import DEFAULT_LATE_THRESHOLD_MINUTES
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time
from .model import WorkShift
from .repository import ShiftRepository

_SELECT = """
    SELECT shift_id, name, start_time, end_time, late_threshold, department_id
    FROM work_shifts
"""


def _row_to_shift(r: dict) -> WorkShift:
    return WorkShift(
        shift_id=int(r["shift_id"]),
        name=r["name"],
        start_time=normalize_mysql_time(r["start_time"]),
        end_time=normalize_mysql_time(r["end_time"]),
        late_threshold_minutes=int(r.get("late_threshold") or DEFAULT_LATE_THRESHOLD_MINUTES),
        department_id=int(r["department_id"]) if r.get("department_id") is not None else None,
    )


class MySQLShiftRepository(ShiftRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self) -> Sequence[WorkShift]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " ORDER BY start_time, shift_id")
            return [_row_to_shift(r) for r in fetchall(cur)]

    def get_by_id(self, shift_id: int) -> Optional[WorkShift]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE shift_id=%s", (int(shift_id),))
            r = fetchone(cur)
            return _row_to_shift(r) if r else None
