from __future__ import annotations

import uuid
from typing import Optional, Sequence

from ..core.enums import VisitTaskType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_date, db_cursor, fetchall
from .model import NewVisit, VisitFilters, VisitRecord
from .repository import VisitRepository


class MySQLVisitRepository(VisitRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, visit: NewVisit) -> str:
        visit_id = uuid.uuid4().hex
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO client_visits(
                    visit_id, client_id, client_name, employee_id, employee_name, visit_date,
                    task_id, task_title, task_type, arn_number, arn_name, notes, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,NOW())
                """,
                (
                    visit_id,
                    visit.client_id,
                    visit.client_name,
                    visit.employee_id,
                    visit.employee_name,
                    visit.visit_date,
                    visit.source_task_id,
                    visit.task_title,
                    visit.task_type.value,
                    visit.arn_number,
                    visit.arn_name,
                    visit.notes,
                ),
            )
        return visit_id

    def list(self, *, filters: Optional[VisitFilters] = None) -> Sequence[VisitRecord]:
        filters = filters or VisitFilters()
        clauses: list[str] = []
        params: list[object] = []

        if filters.client_id:
            clauses.append("client_id=%s")
            params.append(filters.client_id)
        if filters.employee_id:
            clauses.append("employee_id=%s")
            params.append(filters.employee_id)
        if filters.start_date:
            clauses.append("visit_date >= %s")
            params.append(filters.start_date)
        if filters.end_date:
            clauses.append("visit_date <= %s")
            params.append(filters.end_date)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        limit = f"LIMIT {int(filters.limit)}" if filters.limit else ""
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT visit_id, client_id, client_name, employee_id, employee_name, visit_date,
                       task_id, task_title, task_type, arn_number, arn_name, notes, created_at
                FROM client_visits
                {where}
                ORDER BY visit_date DESC, created_at DESC
                {limit}
                """,
                tuple(params),
            )
            return [
                VisitRecord(
                    visit_id=str(r["visit_id"]),
                    client_id=str(r["client_id"]),
                    client_name=r.get("client_name") or "",
                    employee_id=str(r["employee_id"]),
                    employee_name=r.get("employee_name") or "",
                    visit_date=as_date(r["visit_date"]),
                    source_task_id=str(r.get("task_id") or ""),
                    task_title=r.get("task_title") or "",
                    task_type=VisitTaskType(r.get("task_type") or VisitTaskType.RECURRING.value),
                    arn_number=r.get("arn_number"),
                    arn_name=r.get("arn_name"),
                    notes=r.get("notes"),
                    created_at=r.get("created_at"),
                )
                for r in fetchall(cur)
            ]
