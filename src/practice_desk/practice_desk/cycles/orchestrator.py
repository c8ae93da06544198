"""Completing one cycle of a recurring task.

The sequence is: check access, write the ledger for every served client,
advance (or exhaust) the task, then fan visits out to mapped employees.
Ledger writes are mandatory; visits are best effort and never block the task
from advancing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Optional

from ..clients.repository import ClientDirectory
from ..common.datetime_utils import Clock
from ..common.validators import optional_text
from ..completions.model import CompletionPayload, CompletionRecord
from ..completions.service import CompletionLedger
from ..core.constants import DEFAULT_VISIT_RETRY_ATTEMPTS
from ..core.enums import TaskStatus, VisitTaskType
from ..core.exceptions import DependencyError, DomainError, NotFoundError, ValidationError
from ..identity.model import Principal
from ..recurrence.calculator import next_boundary, period_key
from ..tasks.access import TaskAccessPolicy
from ..tasks.model import CompletionHistoryEntry, RecurringTask
from ..tasks.repository import RecurringTaskRepository
from ..visits.model import NewVisit, VisitFailure, VisitRecord
from ..visits.repository import VisitRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CycleOutcome:
    task: RecurringTask
    period_key: str
    completions: tuple[CompletionRecord, ...]
    visits_created: tuple[str, ...]
    visit_failures: tuple[VisitFailure, ...]

    @property
    def exhausted(self) -> bool:
        return self.task.is_exhausted

    def to_dict(self) -> dict:
        return {
            "task": self.task.to_dict(),
            "period_key": self.period_key,
            "completions": [c.to_dict() for c in self.completions],
            "visits_created": list(self.visits_created),
            "visit_failures": [f.to_dict() for f in self.visit_failures],
        }


def advance(task: RecurringTask) -> RecurringTask:
    """Move ``next_occurrence`` one cycle on, or exhaust the task at its end date."""
    nxt = next_boundary(task.next_occurrence, task.recurrence_pattern, anchor_day=task.start_date.day)
    if task.end_date is not None and nxt > task.end_date:
        return replace(task, status=TaskStatus.COMPLETED)
    return replace(task, next_occurrence=nxt, status=TaskStatus.PENDING)


class CycleCompletionOrchestrator:
    def __init__(
        self,
        tasks: RecurringTaskRepository,
        ledger: CompletionLedger,
        visits: VisitRepository,
        clients: ClientDirectory,
        access: TaskAccessPolicy,
        clock: Clock,
        *,
        visit_retry_attempts: int = DEFAULT_VISIT_RETRY_ATTEMPTS,
    ):
        self._tasks = tasks
        self._ledger = ledger
        self._visits = visits
        self._clients = clients
        self._access = access
        self._clock = clock
        self._visit_retry_attempts = max(0, int(visit_retry_attempts))

    def _load(self, task_id: str) -> RecurringTask:
        task = self._tasks.get_by_id(task_id)
        if not task:
            raise NotFoundError("RecurringTask", task_id)
        return task

    def complete_cycle(
        self,
        task_id: str,
        principal: Principal,
        arn_number: Optional[str] = None,
        arn_name: Optional[str] = None,
    ) -> CycleOutcome:
        task = self._load(task_id)
        scope = self._access.scope_for(principal)
        self._access.ensure_can_complete(scope, task)

        if task.is_paused:
            raise ValidationError.for_field("is_paused", f"Task {task.task_id} is paused; resume it before completing")
        if task.is_exhausted:
            raise ValidationError.for_field("status", f"Task {task.task_id} has no further occurrences")

        arn_number = optional_text(arn_number, "arn_number")
        arn_name = optional_text(arn_name, "arn_name")
        key = period_key(task.next_occurrence, task.recurrence_pattern)
        if task.requires_arn and not arn_number:
            raise ValidationError(
                f"ARN number is required to complete task {task.task_id} ({key})",
                {"arn_number": ["required for this task"]},
            )

        now = self._clock.now()
        completed_by = scope.identities.primary
        payload = CompletionPayload(
            completed_by=completed_by,
            completed_at=now,
            is_completed=True,
            arn_number=arn_number,
            arn_name=arn_name,
        )
        # Any failure here propagates before the task moves on; re-running is idempotent.
        completions = tuple(self._ledger.upsert(task, cid, key, payload) for cid in task.served_client_ids)

        history = CompletionHistoryEntry(
            completed_on=now,
            completed_by=completed_by,
            period_key=key,
            arn_number=arn_number,
            arn_name=arn_name,
        )
        updated = replace(
            advance(task),
            completion_history=task.completion_history + (history,),
            updated_at=now,
        )
        if not self._tasks.save(updated):
            raise NotFoundError("RecurringTask", task.task_id)

        if updated.is_exhausted:
            logger.info("task %s exhausted after %s", task.task_id, key)
        else:
            logger.info("task %s completed %s, next occurrence %s", task.task_id, key, updated.next_occurrence)

        created, failures = self._emit_visits(task, key, now.date(), arn_number, arn_name)
        return CycleOutcome(
            task=updated,
            period_key=key,
            completions=completions,
            visits_created=created,
            visit_failures=failures,
        )

    def _emit_visits(
        self,
        task: RecurringTask,
        key: str,
        visit_date: date,
        arn_number: Optional[str],
        arn_name: Optional[str],
    ) -> tuple[tuple[str, ...], tuple[VisitFailure, ...]]:
        results = [
            self._emit_one(task, key, visit_date, mapping.user_id, mapping.user_name, client_id, arn_number, arn_name)
            for mapping in task.team_member_mappings
            for client_id in mapping.client_ids
        ]
        created = tuple(r for r in results if isinstance(r, str))
        failures = tuple(r for r in results if isinstance(r, VisitFailure))
        if failures:
            logger.warning(
                "task %s period %s: %d of %d visits failed", task.task_id, key, len(failures), len(results)
            )
        return created, failures

    def _emit_one(
        self,
        task: RecurringTask,
        key: str,
        visit_date: date,
        employee_id: str,
        employee_name: str,
        client_id: str,
        arn_number: Optional[str],
        arn_name: Optional[str],
    ):
        attempts = 1 + self._visit_retry_attempts
        last_error: Optional[Exception] = None
        for attempt in range(1, attempts + 1):
            try:
                visit = NewVisit(
                    client_id=client_id,
                    client_name=self._clients.name_for_client(client_id),
                    employee_id=employee_id,
                    employee_name=employee_name,
                    visit_date=visit_date,
                    source_task_id=task.task_id,
                    task_title=task.title,
                    task_type=VisitTaskType.RECURRING,
                    arn_number=arn_number,
                    arn_name=arn_name,
                    notes=f"Recurring task completed for {key}",
                )
                return self._visits.create(visit)
            except DependencyError as e:
                last_error = e
                logger.debug("visit attempt %d/%d failed task=%s client=%s: %s", attempt, attempts, task.task_id, client_id, e)
            except DomainError as e:
                last_error = e
                break
            except Exception as e:
                # unexpected collaborator failure: record it, no retry
                logger.exception("visit write crashed task=%s client=%s", task.task_id, client_id)
                last_error = e
                break

        logger.warning(
            "visit not recorded task=%s employee=%s client=%s period=%s: %s",
            task.task_id,
            employee_id,
            client_id,
            key,
            last_error,
        )
        return VisitFailure(employee_id=employee_id, client_id=client_id, period_key=key, reason=str(last_error))

    def pause(self, task_id: str, principal: Principal) -> RecurringTask:
        task = self._load(task_id)
        self._access.ensure_can_restructure(self._access.scope_for(principal), task)
        if task.is_paused:
            return task
        updated = replace(task, is_paused=True, updated_at=self._clock.now())
        self._tasks.save(updated)
        logger.info("task %s paused by %s", task_id, principal.subject_id)
        return updated

    def resume(self, task_id: str, principal: Principal) -> RecurringTask:
        """Resume in place: the cycle that was due when paused is due again, no catch-up."""
        task = self._load(task_id)
        self._access.ensure_can_restructure(self._access.scope_for(principal), task)
        if not task.is_paused:
            return task
        status = task.status if task.is_exhausted else TaskStatus.PENDING
        updated = replace(task, is_paused=False, status=status, updated_at=self._clock.now())
        self._tasks.save(updated)
        logger.info("task %s resumed by %s", task_id, principal.subject_id)
        return updated
