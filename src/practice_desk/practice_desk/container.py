from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .clients.mysql_client_repository import MySQLClientDirectory
from .clients.repository import ClientDirectory
from .common.datetime_utils import Clock, SystemClock
from .completions.mysql_completion_repository import MySQLCompletionRepository
from .completions.repository import CompletionRepository
from .completions.service import CompletionLedger
from .core.constants import DEFAULT_VISIT_RETRY_ATTEMPTS
from .cycles.orchestrator import CycleCompletionOrchestrator
from .database.connection import DBConfig, DatabaseConnection
from .identity.mysql_directory_repository import MySQLLegacyEmployeeDirectory, MySQLProfileDirectory
from .identity.repository import LegacyEmployeeDirectory, ProfileDirectory
from .identity.resolver import IdentityResolver
from .roster.mysql_roster_repository import MySQLRosterRepository
from .roster.repository import RosterRepository
from .tasks.access import TaskAccessPolicy
from .tasks.mysql_task_repository import MySQLRecurringTaskRepository
from .tasks.repository import RecurringTaskRepository
from .tasks.service import RecurringTaskService
from .teams.mysql_team_repository import MySQLManagerHierarchyRepository, MySQLTeamMembershipRepository
from .teams.repository import ManagerHierarchyRepository, TeamMembershipRepository
from .visits.mysql_visit_repository import MySQLVisitRepository
from .visits.repository import VisitRepository
from .visits.service import VisitAggregator


@dataclass(frozen=True)
class Container:
    tasks_repo: RecurringTaskRepository
    completions_repo: CompletionRepository
    visits_repo: VisitRepository
    roster_repo: RosterRepository
    clients_repo: ClientDirectory

    clock: Clock
    identity_resolver: IdentityResolver
    access_policy: TaskAccessPolicy
    completion_ledger: CompletionLedger
    cycle_orchestrator: CycleCompletionOrchestrator
    recurring_task_service: RecurringTaskService
    visit_aggregator: VisitAggregator

    conn: Optional[DatabaseConnection] = None


def assemble(
    *,
    tasks_repo: RecurringTaskRepository,
    completions_repo: CompletionRepository,
    visits_repo: VisitRepository,
    roster_repo: RosterRepository,
    clients_repo: ClientDirectory,
    profiles: ProfileDirectory,
    employees: LegacyEmployeeDirectory,
    teams: TeamMembershipRepository,
    hierarchy: ManagerHierarchyRepository,
    clock: Optional[Clock] = None,
    visit_retry_attempts: int = DEFAULT_VISIT_RETRY_ATTEMPTS,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Wire services over any set of repositories (MySQL in the app, fakes in tests)."""
    clock = clock or SystemClock()

    identity_resolver = IdentityResolver(profiles, employees)
    access_policy = TaskAccessPolicy(identity_resolver, teams, hierarchy)
    completion_ledger = CompletionLedger(completions_repo)
    cycle_orchestrator = CycleCompletionOrchestrator(
        tasks_repo,
        completion_ledger,
        visits_repo,
        clients_repo,
        access_policy,
        clock,
        visit_retry_attempts=visit_retry_attempts,
    )
    recurring_task_service = RecurringTaskService(
        tasks_repo,
        completion_ledger,
        access_policy,
        cycle_orchestrator,
        clock,
    )
    visit_aggregator = VisitAggregator(visits_repo, roster_repo, tasks_repo)

    return Container(
        tasks_repo=tasks_repo,
        completions_repo=completions_repo,
        visits_repo=visits_repo,
        roster_repo=roster_repo,
        clients_repo=clients_repo,
        clock=clock,
        identity_resolver=identity_resolver,
        access_policy=access_policy,
        completion_ledger=completion_ledger,
        cycle_orchestrator=cycle_orchestrator,
        recurring_task_service=recurring_task_service,
        visit_aggregator=visit_aggregator,
        conn=conn,
    )


def build_container(*, db_config: dict, visit_retry_attempts: int = DEFAULT_VISIT_RETRY_ATTEMPTS) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_settings(db_config))

    return assemble(
        tasks_repo=MySQLRecurringTaskRepository(conn),
        completions_repo=MySQLCompletionRepository(conn),
        visits_repo=MySQLVisitRepository(conn),
        roster_repo=MySQLRosterRepository(conn),
        clients_repo=MySQLClientDirectory(conn),
        profiles=MySQLProfileDirectory(conn),
        employees=MySQLLegacyEmployeeDirectory(conn),
        teams=MySQLTeamMembershipRepository(conn),
        hierarchy=MySQLManagerHierarchyRepository(conn),
        visit_retry_attempts=visit_retry_attempts,
        conn=conn,
    )
