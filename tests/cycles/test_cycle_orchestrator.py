from __future__ import annotations

from datetime import date, datetime

import pytest

from practice_desk.core.enums import RecurrencePattern, Role, TaskStatus, VisitTaskType
from practice_desk.core.exceptions import AuthorizationError, DependencyError, NotFoundError, ValidationError
from practice_desk.identity.model import Principal


class FlakyClients:
    """Client lookup that fails for selected ids, a fixed number of times (None: always)."""

    def __init__(self, names, failures):
        self.names = names
        self.failures = dict(failures)
        self.calls = []

    def name_for_client(self, client_id):
        self.calls.append(client_id)
        if client_id in self.failures:
            remaining = self.failures[client_id]
            if remaining is None or remaining > 0:
                if remaining is not None:
                    self.failures[client_id] = remaining - 1
                raise DependencyError("clients", f"lookup failed for {client_id}")
        return self.names[client_id]


def _complete(world, principal, task_id="T", **kwargs):
    return world.container.cycle_orchestrator.complete_cycle(task_id, principal, **kwargs)


def test_quarterly_end_to_end(build_world, task_factory, mapping_factory, employee):
    world = build_world(
        now=datetime(2025, 2, 15, 9, 30),
        tasks=[task_factory(team_member_mappings=(mapping_factory("u1", "c1", "c2"),))],
    )

    outcome = _complete(world, employee)

    assert outcome.period_key == "2025-Q1"
    for client_id in ("c1", "c2"):
        rec = world.completions.get(task_id="T", client_id=client_id, period_key="2025-Q1")
        assert rec.is_completed
        assert rec.completed_by == "u1"

    assert [(v.employee_id, v.client_id) for v in world.visits.visits] == [("u1", "c1"), ("u1", "c2")]
    assert all(v.visit_date == date(2025, 2, 15) for v in world.visits.visits)
    assert all(v.task_type == VisitTaskType.RECURRING for v in world.visits.visits)
    assert world.visits.visits[0].client_name == "Acme Pty Ltd"

    saved = world.tasks.get_by_id("T")
    assert saved.next_occurrence == date(2025, 4, 1)
    assert saved.status == TaskStatus.PENDING
    assert [h.period_key for h in saved.completion_history] == ["2025-Q1"]
    assert outcome.task == saved
    assert outcome.visit_failures == ()


def test_second_completion_advances_one_more_step(build_world, task_factory, mapping_factory, employee):
    world = build_world(tasks=[task_factory(team_member_mappings=(mapping_factory("u1", "c1", "c2"),))])

    _complete(world, employee)
    assert world.tasks.get_by_id("T").next_occurrence == date(2025, 4, 1)

    second = _complete(world, employee)
    assert second.period_key == "2025-Q2"
    assert world.tasks.get_by_id("T").next_occurrence == date(2025, 7, 1)
    assert len(world.completions.records) == 4
    assert world.completions.get(task_id="T", client_id="c1", period_key="2025-Q1").is_completed


def test_one_failing_visit_does_not_block_the_others(build_world, task_factory, mapping_factory, admin):
    clients = FlakyClients({"c1": "Acme", "c2": "Bright", "c3": "Cove"}, {"c2": None})
    world = build_world(
        clients=clients,
        tasks=[
            task_factory(
                team_member_mappings=(
                    mapping_factory("u1", "c1"),
                    mapping_factory("u2", "c2"),
                    mapping_factory("u3", "c3"),
                )
            )
        ],
    )

    outcome = _complete(world, admin)

    assert len(outcome.visits_created) == 2
    assert [(v.employee_id, v.client_id) for v in world.visits.visits] == [("u1", "c1"), ("u3", "c3")]
    assert [(f.employee_id, f.client_id, f.period_key) for f in outcome.visit_failures] == [("u2", "c2", "2025-Q1")]
    assert clients.calls.count("c2") == 2
    assert world.tasks.get_by_id("T").next_occurrence == date(2025, 4, 1)


class ExplodingClients:
    def __init__(self, names, broken):
        self.names = names
        self.broken = broken
        self.calls = []

    def name_for_client(self, client_id):
        self.calls.append(client_id)
        if client_id == self.broken:
            raise RuntimeError("client lookup exploded")
        return self.names[client_id]


def test_unexpected_lookup_error_is_contained(build_world, task_factory, mapping_factory, admin):
    clients = ExplodingClients({"c1": "Acme", "c3": "Cove"}, broken="c2")
    world = build_world(
        clients=clients,
        tasks=[
            task_factory(
                team_member_mappings=(
                    mapping_factory("u1", "c1"),
                    mapping_factory("u2", "c2"),
                    mapping_factory("u3", "c3"),
                )
            )
        ],
    )

    outcome = _complete(world, admin)

    assert [(v.employee_id, v.client_id) for v in world.visits.visits] == [("u1", "c1"), ("u3", "c3")]
    assert [(f.client_id, f.reason) for f in outcome.visit_failures] == [("c2", "client lookup exploded")]
    assert clients.calls.count("c2") == 1
    assert world.tasks.get_by_id("T").next_occurrence == date(2025, 4, 1)


def test_transient_visit_failure_is_retried(build_world, task_factory, mapping_factory, admin):
    clients = FlakyClients({"c1": "Acme"}, {"c1": 1})
    world = build_world(clients=clients, tasks=[task_factory(team_member_mappings=(mapping_factory("u1", "c1"),))])

    outcome = _complete(world, admin)
    assert len(outcome.visits_created) == 1
    assert outcome.visit_failures == ()


def test_unknown_client_is_reported_not_raised(build_world, task_factory, mapping_factory, admin):
    world = build_world(
        client_names={"c1": "Acme"},
        tasks=[task_factory(team_member_mappings=(mapping_factory("u1", "c1", "c404"),))],
    )

    outcome = _complete(world, admin)
    assert len(outcome.visits_created) == 1
    assert "c404" in outcome.visit_failures[0].reason


def test_no_visits_without_mappings(build_world, task_factory, admin):
    world = build_world(tasks=[task_factory(contact_ids=("c1", "c2"))])

    outcome = _complete(world, admin)
    assert outcome.visits_created == ()
    assert len(outcome.completions) == 2
    assert world.visits.visits == []


def test_exhausts_at_end_date(build_world, task_factory, admin):
    world = build_world(
        tasks=[
            task_factory(
                contact_ids=("c1",),
                next_occurrence=date(2025, 10, 1),
                end_date=date(2025, 12, 31),
            )
        ]
    )

    outcome = _complete(world, admin)
    saved = world.tasks.get_by_id("T")
    assert outcome.period_key == "2025-Q4"
    assert saved.status == TaskStatus.COMPLETED
    assert saved.next_occurrence == date(2025, 10, 1)
    assert saved.is_exhausted and outcome.exhausted

    with pytest.raises(ValidationError):
        _complete(world, admin)


def test_boundary_on_end_date_still_runs(build_world, task_factory, admin):
    world = build_world(
        tasks=[
            task_factory(
                recurrence_pattern=RecurrencePattern.MONTHLY,
                contact_ids=("c1",),
                end_date=date(2025, 2, 1),
            )
        ]
    )
    _complete(world, admin)
    saved = world.tasks.get_by_id("T")
    assert saved.next_occurrence == date(2025, 2, 1)
    assert saved.status == TaskStatus.PENDING


def test_arn_required_blocks_before_any_write(build_world, task_factory, admin):
    world = build_world(tasks=[task_factory(contact_ids=("c1",), requires_arn=True)])

    with pytest.raises(ValidationError) as exc:
        _complete(world, admin)
    assert "arn_number" in exc.value.fields
    assert world.completions.records == {}
    assert world.tasks.get_by_id("T").next_occurrence == date(2025, 1, 1)

    outcome = _complete(world, admin, arn_number="ARN-55", arn_name="Q1 BAS")
    assert outcome.completions[0].arn_number == "ARN-55"
    assert world.tasks.get_by_id("T").completion_history[0].arn_name == "Q1 BAS"


def test_paused_task_cannot_be_completed(build_world, task_factory, admin):
    world = build_world(tasks=[task_factory(contact_ids=("c1",), is_paused=True)])
    with pytest.raises(ValidationError):
        _complete(world, admin)


def test_employee_needs_visibility(build_world, task_factory):
    world = build_world(tasks=[task_factory(contact_ids=("c1",))])
    stranger = Principal(subject_id="u9", email="u9@example.com", role=Role.EMPLOYEE)

    with pytest.raises(AuthorizationError):
        _complete(world, stranger)


def test_employee_matched_through_legacy_id(build_world, task_factory):
    world = build_world(
        tasks=[task_factory(contact_ids=("c1",), team_id="t-7")],
        employees={"u9@example.com": ["emp-9"]},
        teams={"emp-9": {"t-7"}},
    )
    worker = Principal(subject_id="u9", email="u9@example.com", role=Role.EMPLOYEE)

    outcome = _complete(world, worker)
    assert outcome.completions[0].completed_by == "u9"


def test_missing_task(build_world, admin):
    world = build_world()
    with pytest.raises(NotFoundError):
        _complete(world, admin, task_id="nope")


def test_pause_and_resume_in_place(build_world, task_factory, manager, employee):
    world = build_world(
        now=datetime(2025, 9, 1, 8, 0),
        tasks=[task_factory(contact_ids=("c1",), status=TaskStatus.IN_PROGRESS)],
    )
    cycles = world.container.cycle_orchestrator

    with pytest.raises(AuthorizationError):
        cycles.pause("T", employee)

    assert cycles.pause("T", manager).is_paused
    resumed = cycles.resume("T", manager)
    assert not resumed.is_paused
    assert resumed.status == TaskStatus.PENDING
    assert resumed.next_occurrence == date(2025, 1, 1)
