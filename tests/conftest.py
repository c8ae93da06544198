from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from types import SimpleNamespace
from typing import Optional

import pytest

from practice_desk.common.datetime_utils import FixedClock
from practice_desk.completions.model import CompletionRecord
from practice_desk.container import assemble
from practice_desk.core.enums import RecurrencePattern, Role, TaskPriority, TaskStatus
from practice_desk.core.exceptions import NotFoundError
from practice_desk.identity.model import Principal
from practice_desk.tasks.model import RecurringTask, TaskFilters, TeamMemberMapping
from practice_desk.visits.model import VisitFilters, VisitRecord


class InMemoryTasks:
    def __init__(self, tasks=()):
        self._tasks: dict[str, RecurringTask] = {t.task_id: t for t in tasks}
        self._seq = 0

    def add(self, task: RecurringTask) -> RecurringTask:
        self._tasks[task.task_id] = task
        return task

    def get_by_id(self, task_id):
        return self._tasks.get(task_id)

    def list_all(self, *, filters: Optional[TaskFilters] = None):
        filters = filters or TaskFilters()
        out = list(self._tasks.values())
        if filters.status is not None:
            out = [t for t in out if t.status == filters.status]
        if filters.priority is not None:
            out = [t for t in out if t.priority == filters.priority]
        if filters.category_id:
            out = [t for t in out if t.category_id == filters.category_id]
        if filters.is_paused is not None:
            out = [t for t in out if t.is_paused == filters.is_paused]
        return sorted(out, key=lambda t: (t.next_occurrence, t.task_id))

    def create(self, *, new, next_occurrence, created_by, now):
        self._seq += 1
        task_id = f"task-{self._seq}"
        self._tasks[task_id] = RecurringTask(
            task_id=task_id,
            title=new.title,
            description=new.description,
            priority=new.priority,
            status=new.status,
            recurrence_pattern=new.recurrence_pattern,
            start_date=new.start_date,
            end_date=new.end_date,
            next_occurrence=next_occurrence,
            created_by=created_by,
            contact_ids=new.contact_ids,
            team_id=new.team_id,
            team_member_mappings=new.team_member_mappings,
            requires_arn=new.requires_arn,
            category_id=new.category_id,
            created_at=now,
            updated_at=now,
        )
        return task_id

    def save(self, task):
        if task.task_id not in self._tasks:
            return False
        self._tasks[task.task_id] = task
        return True

    def delete(self, task_id):
        return self._tasks.pop(task_id, None) is not None


class InMemoryCompletions:
    def __init__(self):
        self.records: dict[tuple[str, str, str], CompletionRecord] = {}
        self._seq = 0

    def get(self, *, task_id, client_id, period_key):
        return self.records.get((task_id, client_id, period_key))

    def upsert(self, *, task_id, client_id, period_key, payload):
        key = (task_id, client_id, period_key)
        existing = self.records.get(key)
        if existing:
            rec = replace(
                existing,
                is_completed=payload.is_completed,
                completed_at=payload.completed_at,
                completed_by=payload.completed_by,
                arn_number=payload.arn_number,
                arn_name=payload.arn_name,
                updated_at=payload.completed_at,
            )
        else:
            self._seq += 1
            rec = CompletionRecord(
                completion_id=f"cmp-{self._seq}",
                recurring_task_id=task_id,
                client_id=client_id,
                period_key=period_key,
                is_completed=payload.is_completed,
                completed_at=payload.completed_at,
                completed_by=payload.completed_by,
                arn_number=payload.arn_number,
                arn_name=payload.arn_name,
                created_at=payload.completed_at,
                updated_at=payload.completed_at,
            )
        self.records[key] = rec
        return rec

    def delete(self, *, task_id, client_id, period_key):
        return self.records.pop((task_id, client_id, period_key), None) is not None

    def list_by_task(self, task_id):
        return sorted((r for r in self.records.values() if r.recurring_task_id == task_id), key=lambda r: r.period_key)

    def list_by_client_and_task(self, client_id, task_id):
        return [r for r in self.list_by_task(task_id) if r.client_id == client_id]


class InMemoryVisits:
    def __init__(self, visits=()):
        self.visits: list[VisitRecord] = list(visits)

    def create(self, visit):
        visit_id = f"visit-{len(self.visits) + 1}"
        self.visits.append(
            VisitRecord(
                visit_id=visit_id,
                client_id=visit.client_id,
                client_name=visit.client_name,
                employee_id=visit.employee_id,
                employee_name=visit.employee_name,
                visit_date=visit.visit_date,
                source_task_id=visit.source_task_id,
                task_title=visit.task_title,
                task_type=visit.task_type,
                arn_number=visit.arn_number,
                arn_name=visit.arn_name,
                notes=visit.notes,
            )
        )
        return visit_id

    def list(self, *, filters: Optional[VisitFilters] = None):
        filters = filters or VisitFilters()
        out = [
            v
            for v in self.visits
            if (not filters.client_id or v.client_id == filters.client_id)
            and (not filters.employee_id or v.employee_id == filters.employee_id)
            and (not filters.start_date or v.visit_date >= filters.start_date)
            and (not filters.end_date or v.visit_date <= filters.end_date)
        ]
        out.sort(key=lambda v: v.visit_date, reverse=True)
        return out[: filters.limit] if filters.limit else out


class InMemoryRoster:
    def __init__(self, entries=()):
        self.entries = list(entries)

    def list_entries(self, *, start_date=None, end_date=None, user_id=None):
        return [e for e in self.entries if not user_id or e.user_id == user_id]


class InMemoryClients:
    def __init__(self, names: Optional[dict[str, str]] = None):
        self.names = dict(names or {})

    def name_for_client(self, client_id):
        if client_id not in self.names:
            raise NotFoundError("Client", client_id)
        return self.names[client_id]


class EmailDirectory:
    def __init__(self, ids_by_email: Optional[dict[str, list[str]]] = None):
        self.ids_by_email = {k.lower(): v for k, v in (ids_by_email or {}).items()}

    def ids_for_email(self, email):
        return list(self.ids_by_email.get(email.lower(), []))


class InMemoryTeams:
    def __init__(self, teams_by_member: Optional[dict[str, set[str]]] = None):
        self.teams_by_member = dict(teams_by_member or {})

    def teams_for_member(self, identifiers):
        out: set[str] = set()
        for i in identifiers:
            out |= self.teams_by_member.get(i, set())
        return out


class InMemoryHierarchy:
    def __init__(self, employees_by_manager: Optional[dict[str, set[str]]] = None):
        self.employees_by_manager = dict(employees_by_manager or {})

    def employees_for_manager(self, manager_id):
        return set(self.employees_by_manager.get(manager_id, set()))


def make_task(**overrides) -> RecurringTask:
    values = dict(
        task_id="T",
        title="BAS lodgement",
        description="Quarterly activity statement",
        priority=TaskPriority.MEDIUM,
        status=TaskStatus.PENDING,
        recurrence_pattern=RecurrencePattern.QUARTERLY,
        start_date=date(2025, 1, 1),
        next_occurrence=date(2025, 1, 1),
        created_by="u-manager",
    )
    values.update(overrides)
    if "next_occurrence" not in overrides:
        values["next_occurrence"] = values["start_date"]
    return RecurringTask(**values)


def mapping(user_id: str, *client_ids: str, user_name: str = "") -> TeamMemberMapping:
    return TeamMemberMapping(user_id=user_id, user_name=user_name or user_id.upper(), client_ids=tuple(client_ids))


@pytest.fixture
def task_factory():
    return make_task


@pytest.fixture
def admin():
    return Principal(subject_id="u-admin", email="admin@example.com", role=Role.ADMIN, name="Admin")


@pytest.fixture
def manager():
    return Principal(subject_id="u-manager", email="manager@example.com", role=Role.MANAGER, name="Maya")


@pytest.fixture
def employee():
    return Principal(subject_id="u1", email="u1@example.com", role=Role.EMPLOYEE, name="Una")


@pytest.fixture
def build_world():
    """Container over in-memory repositories, pinned to ``now``."""

    def _build(
        *,
        now: datetime = datetime(2025, 2, 15, 9, 30),
        tasks=(),
        client_names: Optional[dict[str, str]] = None,
        clients=None,
        profiles: Optional[dict[str, list[str]]] = None,
        employees: Optional[dict[str, list[str]]] = None,
        teams: Optional[dict[str, set[str]]] = None,
        hierarchy: Optional[dict[str, set[str]]] = None,
        visits=(),
        roster=(),
        visit_retry_attempts: int = 1,
    ):
        world = SimpleNamespace(
            tasks=InMemoryTasks(tasks),
            completions=InMemoryCompletions(),
            visits=InMemoryVisits(visits),
            roster=InMemoryRoster(roster),
            clients=clients or InMemoryClients(client_names or {"c1": "Acme Pty Ltd", "c2": "Bright Trust", "c3": "Cove Cafe"}),
            clock=FixedClock(now),
        )
        world.container = assemble(
            tasks_repo=world.tasks,
            completions_repo=world.completions,
            visits_repo=world.visits,
            roster_repo=world.roster,
            clients_repo=world.clients,
            profiles=EmailDirectory(profiles),
            employees=EmailDirectory(employees),
            teams=InMemoryTeams(teams),
            hierarchy=InMemoryHierarchy(hierarchy),
            clock=world.clock,
            visit_retry_attempts=visit_retry_attempts,
        )
        return world

    return _build


@pytest.fixture
def mapping_factory():
    return mapping
