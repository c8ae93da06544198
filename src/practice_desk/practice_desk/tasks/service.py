from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Iterable, Mapping, Optional, Sequence

from ..common.datetime_utils import Clock
from ..common.validators import optional_text
from ..completions.model import ClientPeriodStatus, CompletionPayload, CompletionRate
from ..completions.service import CompletionLedger, markable_period_keys
from ..core.constants import DEFAULT_TASK_LIST_LIMIT
from ..core.exceptions import DependencyError, NotFoundError, ValidationError
from ..cycles.orchestrator import CycleCompletionOrchestrator, CycleOutcome
from ..identity.model import Principal
from .access import TaskAccessPolicy
from .model import RecurringTask, TaskFilters
from .repository import RecurringTaskRepository
from .validation import STRUCTURAL_FIELDS, apply_patch, changed_fields, parse_new_task

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntryResult:
    client_id: str
    period_key: str
    success: bool
    action: str
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "client_id": self.client_id,
            "period_key": self.period_key,
            "success": self.success,
            "action": self.action,
            "error": self.error,
        }


@dataclass(frozen=True)
class BulkResult:
    task_id: str
    results: tuple[EntryResult, ...]

    @property
    def has_failures(self) -> bool:
        return any(not r.success for r in self.results)

    def to_dict(self) -> dict:
        return {
            "task_id": self.task_id,
            "results": [r.to_dict() for r in self.results],
            "succeeded": sum(1 for r in self.results if r.success),
            "failed": sum(1 for r in self.results if not r.success),
        }


@dataclass(frozen=True)
class CompletionReport:
    task: RecurringTask
    rate: CompletionRate
    statuses: tuple[ClientPeriodStatus, ...]

    def to_dict(self) -> dict:
        return {
            "task_id": self.task.task_id,
            "title": self.task.title,
            "completion": self.rate.to_dict(),
            "clients": [
                {
                    "client_id": s.client_id,
                    "period_key": s.period_key,
                    "period_label": s.period_label,
                    "is_completed": s.is_completed,
                    "completed_by": s.completed_by,
                    "arn_number": s.arn_number,
                }
                for s in self.statuses
            ],
        }


def _matches_search(task: RecurringTask, search: Optional[str]) -> bool:
    needle = (search or "").strip().lower()
    if not needle:
        return True
    return needle in task.title.lower() or needle in (task.description or "").lower()


def is_due(task: RecurringTask, today: date) -> bool:
    return not task.is_paused and not task.is_exhausted and task.next_occurrence <= today


class RecurringTaskService:
    def __init__(
        self,
        tasks: RecurringTaskRepository,
        ledger: CompletionLedger,
        access: TaskAccessPolicy,
        cycles: CycleCompletionOrchestrator,
        clock: Clock,
    ):
        self._tasks = tasks
        self._ledger = ledger
        self._access = access
        self._cycles = cycles
        self._clock = clock

    def _load(self, task_id: str) -> RecurringTask:
        task = self._tasks.get_by_id(task_id)
        if not task:
            raise NotFoundError("RecurringTask", task_id)
        return task

    def create_recurring_task(self, principal: Principal, payload: Mapping[str, Any]) -> RecurringTask:
        TaskAccessPolicy.ensure_can_author(principal)
        new = parse_new_task(payload)
        now = self._clock.now()
        task_id = self._tasks.create(
            new=new,
            next_occurrence=new.next_occurrence or new.start_date,
            created_by=principal.subject_id,
            now=now,
        )
        logger.info("task %s created by %s (%s)", task_id, principal.subject_id, new.recurrence_pattern.value)
        return self._load(task_id)

    def update_recurring_task(self, principal: Principal, task_id: str, patch: Mapping[str, Any]) -> RecurringTask:
        TaskAccessPolicy.ensure_can_author(principal)
        fields = changed_fields(patch)
        task = self._load(task_id)
        scope = self._access.scope_for(principal)
        if fields & STRUCTURAL_FIELDS:
            self._access.ensure_can_restructure(scope, task)
        else:
            self._access.ensure_can_view(scope, task)

        updated = replace(apply_patch(task, patch), updated_at=self._clock.now())
        if not self._tasks.save(updated):
            raise NotFoundError("RecurringTask", task_id)
        logger.info("task %s updated by %s: %s", task_id, principal.subject_id, ", ".join(sorted(fields)))
        return updated

    def get_task(self, principal: Principal, task_id: str) -> RecurringTask:
        task = self._load(task_id)
        self._access.ensure_can_view(self._access.scope_for(principal), task)
        return task

    def list_visible_tasks(self, principal: Principal, filters: Optional[TaskFilters] = None) -> list[RecurringTask]:
        filters = filters or TaskFilters()
        scope = self._access.scope_for(principal)
        tasks = self._access.filter_visible(scope, self._tasks.list_all(filters=filters))

        today = self._clock.today()
        out = [
            t
            for t in tasks
            if _matches_search(t, filters.search) and (not filters.due_only or is_due(t, today))
        ]
        out.sort(key=lambda t: (t.next_occurrence, t.task_id))
        return out[: filters.limit or DEFAULT_TASK_LIST_LIMIT]

    def pause_task(self, principal: Principal, task_id: str) -> RecurringTask:
        return self._cycles.pause(task_id, principal)

    def resume_task(self, principal: Principal, task_id: str) -> RecurringTask:
        return self._cycles.resume(task_id, principal)

    def complete_cycle(
        self,
        principal: Principal,
        task_id: str,
        *,
        arn_number: Optional[str] = None,
        arn_name: Optional[str] = None,
    ) -> CycleOutcome:
        return self._cycles.complete_cycle(task_id, principal, arn_number=arn_number, arn_name=arn_name)

    def stop_task(self, principal: Principal, task_id: str) -> RecurringTask:
        """Pause for good and cap the end date at today; history is kept."""
        TaskAccessPolicy.ensure_can_author(principal)
        task = self._load(task_id)
        self._access.ensure_can_restructure(self._access.scope_for(principal), task)

        today = self._clock.today()
        end_date = task.end_date
        if today > task.start_date and (end_date is None or end_date > today):
            end_date = today
        updated = replace(task, is_paused=True, end_date=end_date, updated_at=self._clock.now())
        self._tasks.save(updated)
        logger.info("task %s stopped by %s (end_date=%s)", task_id, principal.subject_id, end_date)
        return updated

    def delete_task(self, principal: Principal, task_id: str) -> None:
        TaskAccessPolicy.ensure_can_author(principal)
        task = self._load(task_id)
        self._access.ensure_can_restructure(self._access.scope_for(principal), task)

        today = self._clock.today()
        stopped = task.is_paused and (
            not task.completion_history or (task.end_date is not None and task.end_date <= today)
        )
        if not (task.is_exhausted or stopped):
            raise ValidationError.for_field(
                "option",
                f"Task {task_id} still has future occurrences; stop it instead of deleting",
            )
        if not self._tasks.delete(task_id):
            raise NotFoundError("RecurringTask", task_id)
        logger.info("task %s deleted by %s", task_id, principal.subject_id)

    def bulk_set_completion(
        self,
        task_id: str,
        principal: Principal,
        entries: Iterable[Any],
    ) -> BulkResult:
        task = self._load(task_id)
        scope = self._access.scope_for(principal)
        self._access.ensure_can_complete(scope, task)

        now = self._clock.now()
        valid_keys = markable_period_keys(task, today=now.date())
        results: list[EntryResult] = []
        for entry in entries:
            if not isinstance(entry, Mapping):
                results.append(EntryResult("", "", False, "skipped", "each completion must be an object"))
                continue
            client_id = str(entry.get("client_id") or "").strip()
            key = str(entry.get("period_key") or "").strip()
            if not client_id or not key:
                results.append(EntryResult(client_id, key, False, "skipped", "client_id and period_key are required"))
                continue

            try:
                if entry.get("is_completed", True):
                    if key not in valid_keys:
                        raise ValidationError.for_field(
                            "period_key",
                            f"{key} is not a {task.recurrence_pattern.value} period of task {task.task_id}",
                        )
                    payload = CompletionPayload(
                        completed_by=scope.identities.primary,
                        completed_at=now,
                        is_completed=True,
                        arn_number=optional_text(entry.get("arn_number"), "arn_number"),
                        arn_name=optional_text(entry.get("arn_name"), "arn_name"),
                    )
                    self._ledger.upsert(task, client_id, key, payload)
                    results.append(EntryResult(client_id, key, True, "completed"))
                else:
                    removed = self._ledger.unmark(task.task_id, client_id, key)
                    results.append(EntryResult(client_id, key, True, "unmarked" if removed else "unchanged"))
            except (ValidationError, DependencyError) as e:
                logger.warning("completion entry failed task=%s client=%s period=%s: %s", task_id, client_id, key, e)
                results.append(EntryResult(client_id, key, False, "failed", str(e)))
            except Exception as e:
                logger.exception("completion entry crashed task=%s client=%s period=%s", task_id, client_id, key)
                results.append(EntryResult(client_id, key, False, "failed", str(e)))

        return BulkResult(task_id=task.task_id, results=tuple(results))

    def list_completions(self, principal: Principal, task_id: str, client_id: Optional[str] = None) -> Sequence:
        task = self.get_task(principal, task_id)
        if client_id:
            return self._ledger.list_by_client_and_task(client_id, task.task_id)
        return self._ledger.list_by_task(task.task_id)

    def completion_report(self, principal: Principal, task_id: str, today: Optional[date] = None) -> CompletionReport:
        task = self.get_task(principal, task_id)
        today = today or self._clock.today()
        return CompletionReport(
            task=task,
            rate=self._ledger.completion_rate(task, today=today),
            statuses=tuple(self._ledger.client_status(task, today=today)),
        )
