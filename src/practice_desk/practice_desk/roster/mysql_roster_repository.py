from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.enums import RosterTaskType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_date, db_cursor, fetchall
from .model import RosterEntry
from .repository import RosterRepository


class MySQLRosterRepository(RosterRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_entries(
        self,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        user_id: Optional[str] = None,
    ) -> Sequence[RosterEntry]:
        clauses: list[str] = []
        params: list[object] = []
        if start_date:
            clauses.append("COALESCE(task_date, DATE(time_start)) >= %s")
            params.append(start_date)
        if end_date:
            clauses.append("COALESCE(task_date, DATE(time_start)) <= %s")
            params.append(end_date)
        if user_id:
            clauses.append("user_id=%s")
            params.append(str(user_id))

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT entry_id, user_id, user_name, task_type, client_id, client_name,
                       task_detail, task_date, time_start, time_end
                FROM roster_entries
                {where}
                ORDER BY COALESCE(time_start, task_date) ASC
                """,
                tuple(params),
            )
            return [
                RosterEntry(
                    entry_id=str(r["entry_id"]),
                    user_id=str(r["user_id"]),
                    user_name=r.get("user_name") or "",
                    task_type=RosterTaskType(r["task_type"]),
                    client_id=r.get("client_id"),
                    client_name=r.get("client_name"),
                    task_detail=r.get("task_detail"),
                    task_date=as_date(r.get("task_date")),
                    time_start=r.get("time_start"),
                    time_end=r.get("time_end"),
                )
                for r in fetchall(cur)
            ]
