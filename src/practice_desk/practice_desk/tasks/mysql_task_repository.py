from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import RecurrencePattern, TaskPriority, TaskStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_date, db_cursor, dump_json, fetchall, fetchone, load_json
from .model import CompletionHistoryEntry, NewRecurringTask, RecurringTask, TaskFilters, TeamMemberMapping
from .repository import RecurringTaskRepository

_COLUMNS = """
    task_id, title, description, priority, status, recurrence_pattern,
    start_date, end_date, next_occurrence, is_paused, contact_ids, team_id,
    team_member_mappings, requires_arn, completion_history, category_id,
    created_by, created_at, updated_at
"""


def _row_to_task(r: dict) -> RecurringTask:
    return RecurringTask(
        task_id=str(r["task_id"]),
        title=r["title"],
        description=r.get("description") or "",
        priority=TaskPriority(r["priority"]),
        status=TaskStatus(r["status"]),
        recurrence_pattern=RecurrencePattern(r["recurrence_pattern"]),
        start_date=as_date(r["start_date"]),
        end_date=as_date(r.get("end_date")),
        next_occurrence=as_date(r["next_occurrence"]),
        is_paused=bool(r.get("is_paused")),
        contact_ids=tuple(str(c) for c in load_json(r.get("contact_ids"), [])),
        team_id=r.get("team_id"),
        team_member_mappings=tuple(
            TeamMemberMapping.from_dict(m) for m in load_json(r.get("team_member_mappings"), [])
        ),
        requires_arn=bool(r.get("requires_arn")),
        completion_history=tuple(
            CompletionHistoryEntry.from_dict(h) for h in load_json(r.get("completion_history"), [])
        ),
        category_id=r.get("category_id"),
        created_by=str(r.get("created_by") or ""),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


class MySQLRecurringTaskRepository(RecurringTaskRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, task_id: str) -> Optional[RecurringTask]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM recurring_tasks WHERE task_id=%s", (str(task_id),))
            r = fetchone(cur)
            return _row_to_task(r) if r else None

    def list_all(self, *, filters: Optional[TaskFilters] = None) -> Sequence[RecurringTask]:
        filters = filters or TaskFilters()
        clauses: list[str] = []
        params: list[object] = []

        if filters.status is not None:
            clauses.append("status=%s")
            params.append(filters.status.value)
        if filters.priority is not None:
            clauses.append("priority=%s")
            params.append(filters.priority.value)
        if filters.category_id:
            clauses.append("category_id=%s")
            params.append(filters.category_id)
        if filters.is_paused is not None:
            clauses.append("is_paused=%s")
            params.append(1 if filters.is_paused else 0)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM recurring_tasks
                {where}
                ORDER BY next_occurrence ASC, task_id ASC
                """,
                tuple(params),
            )
            return [_row_to_task(r) for r in fetchall(cur)]

    def create(self, *, new: NewRecurringTask, next_occurrence: date, created_by: str, now: datetime) -> str:
        task_id = uuid.uuid4().hex
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO recurring_tasks(
                    task_id, title, description, priority, status, recurrence_pattern,
                    start_date, end_date, next_occurrence, is_paused, contact_ids, team_id,
                    team_member_mappings, requires_arn, completion_history, category_id,
                    created_by, created_at, updated_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,0,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    task_id,
                    new.title,
                    new.description,
                    new.priority.value,
                    new.status.value,
                    new.recurrence_pattern.value,
                    new.start_date,
                    new.end_date,
                    next_occurrence,
                    dump_json(list(new.contact_ids)),
                    new.team_id,
                    dump_json([m.to_dict() for m in new.team_member_mappings]),
                    1 if new.requires_arn else 0,
                    dump_json([]),
                    new.category_id,
                    created_by,
                    now,
                    now,
                ),
            )
        return task_id

    def save(self, task: RecurringTask) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE recurring_tasks
                SET title=%s, description=%s, priority=%s, status=%s, recurrence_pattern=%s,
                    start_date=%s, end_date=%s, next_occurrence=%s, is_paused=%s, contact_ids=%s,
                    team_id=%s, team_member_mappings=%s, requires_arn=%s, completion_history=%s,
                    category_id=%s, updated_at=%s
                WHERE task_id=%s
                """,
                (
                    task.title,
                    task.description,
                    task.priority.value,
                    task.status.value,
                    task.recurrence_pattern.value,
                    task.start_date,
                    task.end_date,
                    task.next_occurrence,
                    1 if task.is_paused else 0,
                    dump_json(list(task.contact_ids)),
                    task.team_id,
                    dump_json([m.to_dict() for m in task.team_member_mappings]),
                    1 if task.requires_arn else 0,
                    dump_json([h.to_dict() for h in task.completion_history]),
                    task.category_id,
                    task.updated_at,
                    task.task_id,
                ),
            )
            # MySQL reports 0 affected rows when nothing changed; check existence instead.
            if cur.rowcount > 0:
                return True
            cur.execute("SELECT 1 AS found FROM recurring_tasks WHERE task_id=%s", (task.task_id,))
            return fetchone(cur) is not None

    def delete(self, task_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM recurring_tasks WHERE task_id=%s", (str(task_id),))
            return cur.rowcount > 0
