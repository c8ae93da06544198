from __future__ import annotations

import logging
from datetime import date
from typing import Optional, Sequence

from ..core.exceptions import ValidationError
from ..recurrence.calculator import Period, periods_between
from ..tasks.model import RecurringTask
from .model import ClientPeriodStatus, CompletionPayload, CompletionRate, CompletionRecord
from .repository import CompletionRepository

logger = logging.getLogger(__name__)


def due_periods(task: RecurringTask, *, today: date) -> list[Period]:
    """Periods whose boundary date is on or before today (and the task's end date)."""
    until = min(today, task.end_date) if task.end_date else today
    return periods_between(task.start_date, until, task.recurrence_pattern, inclusive=True)


def markable_period_keys(task: RecurringTask, *, today: date) -> frozenset[str]:
    """Keys a completion may be recorded against: every cycle up to the current one, or today if later."""
    until = max(today, task.next_occurrence)
    if task.end_date and task.end_date < until:
        until = max(task.end_date, task.next_occurrence)
    return frozenset(p.key for p in periods_between(task.start_date, until, task.recurrence_pattern, inclusive=True))


class CompletionLedger:
    """Per (task, client, period) completion state.

    The ledger is the source of truth for per-client progress; the task's
    ``completion_history`` is only a summary.
    """

    def __init__(self, completions: CompletionRepository):
        self._completions = completions

    def upsert(
        self,
        task: RecurringTask,
        client_id: str,
        period_key: str,
        payload: CompletionPayload,
    ) -> CompletionRecord:
        if client_id not in task.served_client_ids:
            raise ValidationError(
                f"Client {client_id} is not served by task {task.task_id}",
                {"client_id": [f"not assigned to task {task.task_id} (period {period_key})"]},
            )
        if task.requires_arn and payload.is_completed and not (payload.arn_number or "").strip():
            raise ValidationError(
                f"ARN number is required to complete task {task.task_id} for client {client_id} ({period_key})",
                {"arn_number": ["required for this task"]},
            )

        record = self._completions.upsert(
            task_id=task.task_id,
            client_id=client_id,
            period_key=period_key,
            payload=payload,
        )
        logger.debug("completion upserted task=%s client=%s period=%s", task.task_id, client_id, period_key)
        return record

    def unmark(self, task_id: str, client_id: str, period_key: str) -> bool:
        """Delete the record if present; returns False (not an error) when absent."""
        deleted = self._completions.delete(task_id=task_id, client_id=client_id, period_key=period_key)
        if deleted:
            logger.info("completion removed task=%s client=%s period=%s", task_id, client_id, period_key)
        return deleted

    def get(self, task_id: str, client_id: str, period_key: str) -> Optional[CompletionRecord]:
        return self._completions.get(task_id=task_id, client_id=client_id, period_key=period_key)

    def list_by_task(self, task_id: str) -> Sequence[CompletionRecord]:
        return sorted(self._completions.list_by_task(task_id), key=lambda r: (r.period_key, r.client_id))

    def list_by_client_and_task(self, client_id: str, task_id: str) -> Sequence[CompletionRecord]:
        return sorted(self._completions.list_by_client_and_task(client_id, task_id), key=lambda r: r.period_key)

    def completion_rate(self, task: RecurringTask, *, today: date) -> CompletionRate:
        """completed / (clients x periods already due); future periods never count."""
        clients = set(task.served_client_ids)
        due_keys = {p.key for p in due_periods(task, today=today)}

        completed = sum(
            1
            for r in self._completions.list_by_task(task.task_id)
            if r.is_completed and r.period_key in due_keys and r.client_id in clients
        )
        return CompletionRate(completed=completed, expected=len(clients) * len(due_keys))

    def client_status(self, task: RecurringTask, *, today: date) -> list[ClientPeriodStatus]:
        by_key = {(r.client_id, r.period_key): r for r in self._completions.list_by_task(task.task_id)}
        out: list[ClientPeriodStatus] = []
        for client_id in task.served_client_ids:
            for p in due_periods(task, today=today):
                rec = by_key.get((client_id, p.key))
                out.append(
                    ClientPeriodStatus(
                        client_id=client_id,
                        period_key=p.key,
                        period_label=p.label,
                        is_completed=bool(rec and rec.is_completed),
                        completed_by=rec.completed_by if rec else None,
                        arn_number=rec.arn_number if rec else None,
                    )
                )
        return out
