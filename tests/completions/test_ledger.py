from __future__ import annotations

from datetime import date, datetime

import pytest

from practice_desk.completions.model import CompletionPayload
from practice_desk.completions.service import CompletionLedger, due_periods
from practice_desk.core.enums import RecurrencePattern
from practice_desk.core.exceptions import ValidationError


@pytest.fixture
def ledger_world(build_world):
    world = build_world()
    return world, CompletionLedger(world.completions)


def _payload(by="u1", *, arn=None, done=True):
    return CompletionPayload(completed_by=by, completed_at=datetime(2025, 2, 15, 9, 0), is_completed=done, arn_number=arn)


def test_upsert_twice_keeps_one_record_with_latest_actor(ledger_world, task_factory):
    world, ledger = ledger_world
    task = task_factory(contact_ids=("c1",))

    first = ledger.upsert(task, "c1", "2025-Q1", _payload("u1"))
    second = ledger.upsert(task, "c1", "2025-Q1", _payload("u2"))

    assert len(world.completions.records) == 1
    assert second.completion_id == first.completion_id
    assert ledger.get("T", "c1", "2025-Q1").completed_by == "u2"


def test_upsert_rejects_client_not_served(ledger_world, task_factory):
    _, ledger = ledger_world
    task = task_factory(contact_ids=("c1",))
    with pytest.raises(ValidationError) as exc:
        ledger.upsert(task, "c9", "2025-Q1", _payload())
    assert "client_id" in exc.value.fields


def test_upsert_accepts_mapped_client(ledger_world, task_factory, mapping_factory):
    _, ledger = ledger_world
    task = task_factory(team_member_mappings=(mapping_factory("u1", "c2"),))
    assert ledger.upsert(task, "c2", "2025-Q1", _payload()).is_completed


def test_arn_required(ledger_world, task_factory):
    _, ledger = ledger_world
    task = task_factory(contact_ids=("c1",), requires_arn=True)
    with pytest.raises(ValidationError) as exc:
        ledger.upsert(task, "c1", "2025-Q1", _payload(arn="  "))
    assert "arn_number" in exc.value.fields

    rec = ledger.upsert(task, "c1", "2025-Q1", _payload(arn="ARN-1"))
    assert rec.arn_number == "ARN-1"


def test_unmark_absent_is_noop(ledger_world, task_factory):
    _, ledger = ledger_world
    task = task_factory(contact_ids=("c1",))
    assert ledger.unmark("T", "c1", "2025-Q1") is False

    ledger.upsert(task, "c1", "2025-Q1", _payload())
    assert ledger.unmark("T", "c1", "2025-Q1") is True
    assert ledger.get("T", "c1", "2025-Q1") is None


def test_lists_are_ordered_by_period(ledger_world, task_factory):
    _, ledger = ledger_world
    task = task_factory(contact_ids=("c1", "c2"))
    for key in ("2025-Q3", "2025-Q1", "2025-Q2"):
        ledger.upsert(task, "c1", key, _payload())
    ledger.upsert(task, "c2", "2025-Q2", _payload())

    assert [r.period_key for r in ledger.list_by_client_and_task("c1", "T")] == ["2025-Q1", "2025-Q2", "2025-Q3"]
    assert [(r.period_key, r.client_id) for r in ledger.list_by_task("T")][:2] == [("2025-Q1", "c1"), ("2025-Q2", "c1")]


def test_completion_rate_counts_only_due_periods(ledger_world, task_factory):
    _, ledger = ledger_world
    task = task_factory(
        recurrence_pattern=RecurrencePattern.MONTHLY,
        start_date=date(2025, 1, 1),
        contact_ids=("c1", "c2"),
    )
    today = date(2025, 5, 15)
    assert len(due_periods(task, today=today)) == 5

    ledger.upsert(task, "c1", "2025-01", _payload())
    ledger.upsert(task, "c1", "2025-02", _payload())
    ledger.upsert(task, "c2", "2025-03", _payload())
    ledger.upsert(task, "c2", "2025-04", _payload(done=False))
    ledger.upsert(task, "c1", "2025-06", _payload())

    rate = ledger.completion_rate(task, today=today)
    assert (rate.completed, rate.expected) == (3, 10)
    assert rate.rate == pytest.approx(30.0)


def test_completion_rate_stops_at_end_date(ledger_world, task_factory):
    _, ledger = ledger_world
    task = task_factory(
        recurrence_pattern=RecurrencePattern.MONTHLY,
        start_date=date(2025, 1, 1),
        end_date=date(2025, 3, 1),
        contact_ids=("c1",),
    )
    rate = ledger.completion_rate(task, today=date(2025, 12, 1))
    assert rate.expected == 3


def test_completion_rate_nothing_due(ledger_world, task_factory):
    _, ledger = ledger_world
    task = task_factory(start_date=date(2026, 1, 1), contact_ids=("c1",))
    rate = ledger.completion_rate(task, today=date(2025, 12, 1))
    assert rate.expected == 0
    assert rate.rate == 0.0


def test_client_status_matrix(ledger_world, task_factory):
    _, ledger = ledger_world
    task = task_factory(contact_ids=("c1", "c2"))
    ledger.upsert(task, "c2", "2025-Q1", _payload("u7"))

    statuses = ledger.client_status(task, today=date(2025, 4, 2))
    assert [(s.client_id, s.period_key, s.is_completed) for s in statuses] == [
        ("c1", "2025-Q1", False),
        ("c1", "2025-Q2", False),
        ("c2", "2025-Q1", True),
        ("c2", "2025-Q2", False),
    ]
    assert statuses[2].completed_by == "u7"
