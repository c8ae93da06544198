from __future__ import annotations

import uuid
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import CompletionPayload, CompletionRecord
from .repository import CompletionRepository

_COLUMNS = """
    completion_id, recurring_task_id, client_id, period_key, is_completed,
    completed_at, completed_by, arn_number, arn_name, created_at, updated_at
"""


def _row_to_record(r: dict) -> CompletionRecord:
    return CompletionRecord(
        completion_id=str(r["completion_id"]),
        recurring_task_id=str(r["recurring_task_id"]),
        client_id=str(r["client_id"]),
        period_key=r["period_key"],
        is_completed=bool(r["is_completed"]),
        completed_at=r.get("completed_at"),
        completed_by=r.get("completed_by"),
        arn_number=r.get("arn_number"),
        arn_name=r.get("arn_name"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


class MySQLCompletionRepository(CompletionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, *, task_id: str, client_id: str, period_key: str) -> Optional[CompletionRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM task_completions
                WHERE recurring_task_id=%s AND client_id=%s AND period_key=%s
                """,
                (task_id, client_id, period_key),
            )
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def upsert(self, *, task_id: str, client_id: str, period_key: str, payload: CompletionPayload) -> CompletionRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO task_completions(
                    completion_id, recurring_task_id, client_id, period_key, is_completed,
                    completed_at, completed_by, arn_number, arn_name, created_at, updated_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    is_completed=VALUES(is_completed),
                    completed_at=VALUES(completed_at),
                    completed_by=VALUES(completed_by),
                    arn_number=VALUES(arn_number),
                    arn_name=VALUES(arn_name),
                    updated_at=VALUES(updated_at)
                """,
                (
                    uuid.uuid4().hex,
                    task_id,
                    client_id,
                    period_key,
                    1 if payload.is_completed else 0,
                    payload.completed_at,
                    payload.completed_by,
                    payload.arn_number,
                    payload.arn_name,
                    payload.completed_at,
                    payload.completed_at,
                ),
            )

            # On update the generated id is discarded; read the surviving row back.
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM task_completions
                WHERE recurring_task_id=%s AND client_id=%s AND period_key=%s
                """,
                (task_id, client_id, period_key),
            )
            return _row_to_record(fetchone(cur))

    def delete(self, *, task_id: str, client_id: str, period_key: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM task_completions WHERE recurring_task_id=%s AND client_id=%s AND period_key=%s",
                (task_id, client_id, period_key),
            )
            return cur.rowcount > 0

    def list_by_task(self, task_id: str) -> Sequence[CompletionRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM task_completions
                WHERE recurring_task_id=%s
                ORDER BY period_key ASC, client_id ASC
                """,
                (task_id,),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def list_by_client_and_task(self, client_id: str, task_id: str) -> Sequence[CompletionRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM task_completions
                WHERE client_id=%s AND recurring_task_id=%s
                ORDER BY period_key ASC
                """,
                (client_id, task_id),
            )
            return [_row_to_record(r) for r in fetchall(cur)]
