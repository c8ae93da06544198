from __future__ import annotations

from practice_desk.core.enums import AssignmentRule
from practice_desk.identity.model import IdentitySet
from practice_desk.tasks import visibility


def test_each_rule_in_isolation(task_factory, mapping_factory):
    ids = IdentitySet("u1", ["emp-3"])
    direct = task_factory(task_id="direct", contact_ids=("emp-3",))
    team = task_factory(task_id="team", team_id="t-1")
    mapped = task_factory(task_id="mapped", team_member_mappings=(mapping_factory("u1", "c1"),))

    assert visibility.matched_rules(direct, ids, []) == {AssignmentRule.DIRECT}
    assert visibility.matched_rules(team, ids, ["t-1"]) == {AssignmentRule.TEAM}
    assert visibility.matched_rules(mapped, ids, []) == {AssignmentRule.MAPPING}


def test_mapping_alone_is_enough(task_factory, mapping_factory):
    task = task_factory(contact_ids=(), team_id=None, team_member_mappings=(mapping_factory("u1", "c1", "c2"),))
    ids = IdentitySet("u1")

    assert not visibility.matches_direct(task, ids, frozenset())
    assert not visibility.matches_team(task, ids, frozenset())
    assert visibility.visible_tasks([task], ids, []) == [task]


def test_visible_is_union_and_preserves_order(task_factory, mapping_factory):
    ids = IdentitySet("u1", ["legacy-9"])
    tasks = [
        task_factory(task_id="a", team_member_mappings=(mapping_factory("legacy-9", "c1"),)),
        task_factory(task_id="b"),
        task_factory(task_id="c", team_id="t-2"),
        task_factory(task_id="d", contact_ids=("u1",), team_id="t-2"),
    ]

    visible, hidden = visibility.partition(tasks, ids, {"t-2"})
    assert [t.task_id for t in visible] == ["a", "c", "d"]
    assert [t.task_id for t in hidden] == ["b"]
    assert visibility.matched_rules(tasks[3], ids, {"t-2"}) == {AssignmentRule.DIRECT, AssignmentRule.TEAM}


def test_same_snapshot_same_result(task_factory):
    ids = IdentitySet("u1")
    tasks = [task_factory(task_id=str(i), contact_ids=("u1",) if i % 2 else ()) for i in range(6)]
    assert visibility.visible_tasks(tasks, ids, []) == visibility.visible_tasks(tasks, ids, [])
