"""Schema/seed helpers for local setup (``scripts/init_db.py`` and AUTO_INIT_DB)."""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

import mysql.connector
from werkzeug.security import generate_password_hash

from ..core.enums import Role, ScheduleType
from .connection import DBConfig

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Quoted literal, statement terminator, or a run of anything else.
_SQL_TOKEN = re.compile(r"'(?:[^'\\]|\\.)*'|\"(?:[^\"\\]|\\.)*\"|;|[^;'\"]+", re.S)
_DB_SELECTION = re.compile(r"(?im)^\s*(?:CREATE\s+DATABASE|USE)\b.*?;\s*$")


@contextmanager
def _raw_cursor(db_config: dict, *, with_database: bool = True, dictionary: bool = False):
    # Plain connection, not the pool: the database may not exist yet.
    config = DBConfig.from_mapping(db_config)
    conn = mysql.connector.connect(
        host=config.host,
        port=config.port,
        user=config.user,
        password=config.password,
        use_pure=True,
        **({"database": config.database} if with_database else {}),
    )
    try:
        cur = conn.cursor(dictionary=dictionary)
        yield cur
        conn.commit()
    finally:
        conn.close()


def split_sql(sql: str) -> Iterator[str]:
    """Yield statements split on ';' outside quoted literals; '--' comment lines are dropped."""

    body = "\n".join(line for line in sql.splitlines() if not line.lstrip().startswith("--"))
    current = []
    for token in _SQL_TOKEN.findall(body):
        if token != ";":
            current.append(token)
            continue
        statement = "".join(current).strip()
        current = []
        if statement:
            yield statement
    statement = "".join(current).strip()
    if statement:
        yield statement


def _run_file(db_config: dict, path: PathLike) -> int:
    # The target database comes from DB_CONFIG, not from the file.
    sql = _DB_SELECTION.sub("", Path(path).read_text(encoding="utf-8"))
    count = 0
    with _raw_cursor(db_config) as cur:
        for statement in split_sql(sql):
            cur.execute(statement)
            count += 1
    return count


def ensure_database_exists(db_config: dict) -> None:
    name = DBConfig.from_mapping(db_config).database
    with _raw_cursor(db_config, with_database=False) as cur:
        cur.execute(f"CREATE DATABASE IF NOT EXISTS `{name}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci")


def apply_schema(db_config: dict, *, schema_path: PathLike) -> None:
    ensure_database_exists(db_config)
    logger.info("Applied %d schema statement(s) from %s", _run_file(db_config, schema_path), schema_path)


def apply_seed_sql(db_config: dict, *, seed_path: PathLike) -> None:
    logger.info("Applied %d seed statement(s) from %s", _run_file(db_config, seed_path), seed_path)


DEMO_USERS = (
    ("Admin Demo", "admin", "admin123", Role.ADMIN, ScheduleType.BOTH_SHIFTS),
    ("Staff Morning", "staff01", "staff123", Role.STAFF, ScheduleType.MORNING_ONLY),
    ("Staff Afternoon", "staff02", "staff123", Role.STAFF, ScheduleType.AFTERNOON_ONLY),
    ("Staff Full", "staff03", "staff123", Role.STAFF, ScheduleType.BOTH_SHIFTS),
)


def ensure_demo_users(db_config: dict) -> None:
    """Upsert one admin and a few Cashier staff, one per schedule type.

    Password hashes are stored for the external login collaborator only.
    """

    with _raw_cursor(db_config, dictionary=True) as cur:
        cur.execute("SELECT department_id FROM departments WHERE name=%s", ("Operations",))
        department = cur.fetchone()
        cur.execute("SELECT position_id FROM positions WHERE name=%s", ("Cashier",))
        position = cur.fetchone()
        if not department or not position:
            raise RuntimeError("Seed catalog missing; apply seed.sql before creating demo users")

        for full_name, username, password, role, schedule_type in DEMO_USERS:
            cur.execute(
                """
                INSERT INTO users (full_name, username, password_hash, role, department_id, position_id, work_schedule_type)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                ON DUPLICATE KEY UPDATE
                    full_name=VALUES(full_name), password_hash=VALUES(password_hash), role=VALUES(role),
                    department_id=VALUES(department_id), position_id=VALUES(position_id),
                    work_schedule_type=VALUES(work_schedule_type), is_active=1
                """,
                (
                    full_name,
                    username,
                    generate_password_hash(password),
                    role.value,
                    department["department_id"],
                    position["position_id"] if role == Role.STAFF else None,
                    schedule_type.value,
                ),
            )
    logger.info("Demo users ready (%d)", len(DEMO_USERS))


def list_tables(db_config: dict) -> list:
    with _raw_cursor(db_config) as cur:
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
