from __future__ import annotations

from typing import Iterable, Optional, Sequence

from ..core.enums import Role, ScheduleType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import User
from .repository import UserRepository

_SELECT = """
    SELECT user_id, full_name, username, role, department_id, position_id,
           work_schedule_type, is_active
    FROM users
"""


def _row_to_user(row: dict) -> User:
    return User(
        user_id=int(row["user_id"]),
        full_name=row["full_name"],
        username=row["username"],
        role=Role(row["role"]),
        department_id=row.get("department_id"),
        position_id=row.get("position_id"),
        schedule_type=ScheduleType(row.get("work_schedule_type") or ScheduleType.BOTH_SHIFTS.value),
        is_active=bool(row.get("is_active", True)),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE user_id=%s", (int(user_id),))
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def list_by_ids(self, user_ids: Iterable[int]) -> Sequence[User]:
        ids = sorted({int(i) for i in user_ids})
        if not ids:
            return []
        placeholders = ",".join(["%s"] * len(ids))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + f" WHERE user_id IN ({placeholders}) ORDER BY user_id", tuple(ids))
            return [_row_to_user(r) for r in fetchall(cur)]

    def list_by_position(self, position_id: int) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE position_id=%s AND is_active=1 ORDER BY user_id",
                (int(position_id),),
            )
            return [_row_to_user(r) for r in fetchall(cur)]
