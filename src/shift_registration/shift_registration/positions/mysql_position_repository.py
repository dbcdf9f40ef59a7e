from __future__ import annotations

from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import Position
from .repository import PositionRepository


class MySQLPositionRepository(PositionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_ordered(self) -> Sequence[Position]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT position_id, name, department_id, level, display_order
                FROM positions
                ORDER BY display_order ASC, name ASC
                """
            )
            return [
                Position(
                    position_id=int(r["position_id"]),
                    name=r["name"],
                    department_id=r.get("department_id"),
                    level=r.get("level") or "staff_level",
                    display_order=int(r.get("display_order") or 0),
                )
                for r in fetchall(cur)
            ]
