from __future__ import annotations

from typing import Iterable, Protocol


class TeamMembershipRepository(Protocol):
    def teams_for_member(self, identifiers: Iterable[str]) -> set[str]:
        """Ids of teams where any of ``identifiers`` is a member or the leader."""

        raise NotImplementedError


class ManagerHierarchyRepository(Protocol):
    def employees_for_manager(self, manager_id: str) -> set[str]:
        raise NotImplementedError
