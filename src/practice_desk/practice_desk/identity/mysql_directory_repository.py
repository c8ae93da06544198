from __future__ import annotations

from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .repository import LegacyEmployeeDirectory, ProfileDirectory


class MySQLProfileDirectory(ProfileDirectory):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def ids_for_email(self, email: str) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT user_id FROM users WHERE LOWER(email)=LOWER(%s)", (email,))
            return [str(r["user_id"]) for r in fetchall(cur)]


class MySQLLegacyEmployeeDirectory(LegacyEmployeeDirectory):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def ids_for_email(self, email: str) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT employee_id FROM employees WHERE LOWER(email)=LOWER(%s)", (email,))
            return [str(r["employee_id"]) for r in fetchall(cur)]
