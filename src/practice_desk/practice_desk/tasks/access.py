"""Who may see and who may edit a recurring task."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from ..core.exceptions import AuthorizationError
from ..identity.model import IdentitySet, Principal
from ..identity.resolver import IdentityResolver
from ..teams.repository import ManagerHierarchyRepository, TeamMembershipRepository
from . import visibility
from .model import RecurringTask

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessScope:
    """Everything needed to evaluate visibility, computed once per request."""

    principal: Principal
    identities: IdentitySet
    team_ids: frozenset[str]
    managed_ids: frozenset[str] = frozenset()


class TaskAccessPolicy:
    def __init__(
        self,
        resolver: IdentityResolver,
        teams: TeamMembershipRepository,
        hierarchy: ManagerHierarchyRepository,
    ):
        self._resolver = resolver
        self._teams = teams
        self._hierarchy = hierarchy

    def scope_for(self, principal: Principal) -> AccessScope:
        identities = self._resolver.resolve(principal)
        try:
            team_ids = frozenset(self._teams.teams_for_member(identities))
        except Exception as e:
            logger.warning("team lookup failed for %s: %s", principal.subject_id, e)
            team_ids = frozenset()

        managed: frozenset[str] = frozenset()
        if principal.is_manager:
            managed = frozenset(self._hierarchy.employees_for_manager(principal.subject_id))
        return AccessScope(principal=principal, identities=identities, team_ids=team_ids, managed_ids=managed)

    @staticmethod
    def can_view(scope: AccessScope, task: RecurringTask) -> bool:
        if scope.principal.is_admin:
            return True
        if scope.principal.is_manager and (
            task.created_by in scope.identities or task.created_by in scope.managed_ids
        ):
            return True
        return visibility.is_visible(task, scope.identities, scope.team_ids)

    def filter_visible(self, scope: AccessScope, tasks: Sequence[RecurringTask]) -> list[RecurringTask]:
        if scope.principal.is_admin:
            return list(tasks)
        return [t for t in tasks if self.can_view(scope, t)]

    def ensure_can_view(self, scope: AccessScope, task: RecurringTask) -> None:
        if not self.can_view(scope, task):
            raise AuthorizationError(f"Task {task.task_id} is not assigned to {scope.principal.subject_id}")

    def ensure_can_complete(self, scope: AccessScope, task: RecurringTask) -> None:
        """Anyone who can see a task may complete it; admins see everything."""
        self.ensure_can_view(scope, task)

    @staticmethod
    def ensure_can_author(principal: Principal) -> None:
        if not principal.is_privileged:
            raise AuthorizationError("Only admins and managers can manage recurring tasks")

    def ensure_can_restructure(self, scope: AccessScope, task: RecurringTask) -> None:
        """Schedule and assignment changes: the creator, an admin, or the creator's manager."""
        principal = scope.principal
        self.ensure_can_author(principal)
        if principal.is_admin or task.created_by in scope.identities or task.created_by in scope.managed_ids:
            return
        raise AuthorizationError(
            f"Only the creator of task {task.task_id}, their manager or an admin can change its schedule or assignees"
        )
