from __future__ import annotations

from typing import Iterable

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, in_clause
from .repository import ManagerHierarchyRepository, TeamMembershipRepository


class MySQLTeamMembershipRepository(TeamMembershipRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def teams_for_member(self, identifiers: Iterable[str]) -> set[str]:
        ids = sorted({str(i) for i in identifiers})
        if not ids:
            return set()

        placeholders = in_clause(ids)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT tm.team_id FROM team_members tm WHERE tm.member_id IN ({placeholders})
                UNION
                SELECT t.team_id FROM teams t WHERE t.leader_id IN ({placeholders})
                """,
                tuple(ids) + tuple(ids),
            )
            return {str(r["team_id"]) for r in fetchall(cur)}


class MySQLManagerHierarchyRepository(ManagerHierarchyRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def employees_for_manager(self, manager_id: str) -> set[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT employee_id FROM manager_hierarchies WHERE manager_id=%s", (str(manager_id),))
            return {str(r["employee_id"]) for r in fetchall(cur)}
