from __future__ import annotations

from pathlib import Path

from src.shift_registration.shift_registration.database.bootstrap import split_sql

REPO_ROOT = Path(__file__).resolve().parents[1]


def test_split_sql_ignores_semicolons_in_literals_and_comments():
    sql = "-- header; comment\nINSERT INTO t VALUES ('a;b');\n\nSELECT 1;SELECT \"x;\""

    assert list(split_sql(sql)) == ["INSERT INTO t VALUES ('a;b')", "SELECT 1", 'SELECT "x;"']


def test_schema_declares_every_table():
    statements = list(split_sql((REPO_ROOT / "database" / "schema.sql").read_text(encoding="utf-8")))
    created = [s.split()[5] for s in statements if s.upper().startswith("CREATE TABLE")]

    assert created == ["departments", "positions", "users", "work_shifts", "shift_registrations", "week_plans", "app_settings"]
