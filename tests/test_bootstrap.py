from __future__ import annotations

from pathlib import Path

from practice_desk.database.bootstrap import _strip_comments, _strip_create_db_and_use, iter_sql_statements

SCHEMA = Path(__file__).resolve().parents[1] / "database" / "schema.sql"


def test_split_respects_quotes():
    sql = "INSERT INTO t VALUES ('a;b'); INSERT INTO t VALUES (\"c;d\");\nSELECT 1"
    assert list(iter_sql_statements(sql)) == [
        "INSERT INTO t VALUES ('a;b')",
        'INSERT INTO t VALUES ("c;d")',
        "SELECT 1",
    ]


def test_split_handles_escaped_quote():
    assert list(iter_sql_statements(r"SELECT 'it\'s; fine'; SELECT 2")) == [r"SELECT 'it\'s; fine'", "SELECT 2"]


def test_create_database_and_use_are_dropped():
    sql = "CREATE DATABASE foo;\nUSE foo;\nCREATE TABLE x (id INT);"
    assert list(iter_sql_statements(_strip_create_db_and_use(sql))) == ["CREATE TABLE x (id INT)"]


def test_schema_creates_every_table():
    statements = list(iter_sql_statements(_strip_comments(SCHEMA.read_text(encoding="utf-8"))))
    tables = {s.split("EXISTS", 1)[1].split("(", 1)[0].strip() for s in statements}
    assert tables == {
        "users",
        "employees",
        "manager_hierarchies",
        "teams",
        "team_members",
        "clients",
        "recurring_tasks",
        "task_completions",
        "client_visits",
        "roster_entries",
    }
