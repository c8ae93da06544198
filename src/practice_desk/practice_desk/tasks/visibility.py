"""Which recurring tasks a non-privileged principal may see.

A task reaches an employee through any of three independent mechanisms, and
any single match is enough:

* DIRECT  - one of the principal's ids is in ``contact_ids``
* TEAM    - the task's team is one of the principal's teams
* MAPPING - the principal has an entry in ``team_member_mappings``

All functions are pure; the same snapshot always yields the same subset.
"""

from __future__ import annotations

from typing import Callable, Iterable, Sequence

from ..core.enums import AssignmentRule
from ..identity.model import IdentitySet
from .model import RecurringTask


def matches_direct(task: RecurringTask, identities: IdentitySet, team_ids: frozenset[str]) -> bool:
    return identities.intersects(task.contact_ids)


def matches_team(task: RecurringTask, identities: IdentitySet, team_ids: frozenset[str]) -> bool:
    return task.team_id is not None and task.team_id in team_ids


def matches_mapping(task: RecurringTask, identities: IdentitySet, team_ids: frozenset[str]) -> bool:
    return any(m.user_id in identities for m in task.team_member_mappings)


RULES: dict[AssignmentRule, Callable[[RecurringTask, IdentitySet, frozenset[str]], bool]] = {
    AssignmentRule.DIRECT: matches_direct,
    AssignmentRule.TEAM: matches_team,
    AssignmentRule.MAPPING: matches_mapping,
}


def matched_rules(task: RecurringTask, identities: IdentitySet, team_ids: Iterable[str]) -> frozenset[AssignmentRule]:
    teams = frozenset(team_ids)
    return frozenset(rule for rule, predicate in RULES.items() if predicate(task, identities, teams))


def is_visible(task: RecurringTask, identities: IdentitySet, team_ids: Iterable[str]) -> bool:
    teams = frozenset(team_ids)
    return any(predicate(task, identities, teams) for predicate in RULES.values())


def visible_tasks(
    tasks: Sequence[RecurringTask],
    identities: IdentitySet,
    team_ids: Iterable[str],
) -> list[RecurringTask]:
    """Input order is preserved."""
    teams = frozenset(team_ids)
    return [t for t in tasks if is_visible(t, identities, teams)]


def partition(
    tasks: Sequence[RecurringTask],
    identities: IdentitySet,
    team_ids: Iterable[str],
) -> tuple[list[RecurringTask], list[RecurringTask]]:
    teams = frozenset(team_ids)
    visible: list[RecurringTask] = []
    hidden: list[RecurringTask] = []
    for t in tasks:
        (visible if is_visible(t, identities, teams) else hidden).append(t)
    return visible, hidden
