"""Reporting over client visits.

Two sources feed the monthly report: visits recorded when a mapped recurring
cycle was completed, and single-client roster entries whose task detail names
a recurring task that currently has team member mappings.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import replace
from datetime import date
from typing import Iterable, Optional, Sequence

from ..core.enums import RosterTaskType
from ..recurrence.calculator import month_key
from ..roster.model import RosterEntry
from ..roster.repository import RosterRepository
from ..tasks.repository import RecurringTaskRepository
from .model import ClientMonthlyReport, MonthlyVisits, ReportVisit, VisitFilters, VisitRecord, VisitStats
from .repository import VisitRepository

logger = logging.getLogger(__name__)

CSV_FIELDS = [
    "client_id",
    "client_name",
    "month",
    "date",
    "employee_id",
    "employee_name",
    "task_title",
    "task_type",
    "source",
    "start_time",
    "end_time",
]


def month_name(key: str) -> str:
    year, month = key.split("-")
    return date(int(year), int(month), 1).strftime("%B %Y")


def _client_matches(name: Optional[str], search: Optional[str]) -> bool:
    needle = (search or "").strip().lower()
    return not needle or needle in (name or "").lower()


def _without_limit(filters: VisitFilters) -> VisitFilters:
    """Aggregations always read every matching visit."""
    return replace(filters, limit=None)


def _in_range(d: Optional[date], filters: VisitFilters) -> bool:
    if d is None:
        return False
    if filters.start_date and d < filters.start_date:
        return False
    if filters.end_date and d > filters.end_date:
        return False
    return True


class VisitAggregator:
    def __init__(self, visits: VisitRepository, roster: RosterRepository, tasks: RecurringTaskRepository):
        self._visits = visits
        self._roster = roster
        self._tasks = tasks

    def list_visits(self, filters: Optional[VisitFilters] = None) -> list[VisitRecord]:
        filters = filters or VisitFilters()
        records = self._visits.list(filters=filters)
        return [
            v
            for v in records
            if _client_matches(v.client_name, filters.search) and _in_range(v.visit_date, filters)
        ]

    def _mapped_task_titles(self) -> set[str]:
        return {t.title for t in self._tasks.list_all() if t.has_mappings}

    def _roster_visits(self, filters: VisitFilters) -> list[tuple[str, str, ReportVisit]]:
        titles = self._mapped_task_titles()
        if not titles:
            return []

        entries: Iterable[RosterEntry] = self._roster.list_entries(
            start_date=filters.start_date,
            end_date=filters.end_date,
            user_id=filters.employee_id,
        )
        out: list[tuple[str, str, ReportVisit]] = []
        for e in entries:
            if e.task_type != RosterTaskType.SINGLE or not e.client_id or e.task_detail not in titles:
                continue
            if filters.client_id and e.client_id != filters.client_id:
                continue
            visit_date = e.effective_date
            if not _in_range(visit_date, filters) or not _client_matches(e.client_name, filters.search):
                continue
            out.append(
                (
                    str(e.client_id),
                    e.client_name or "",
                    ReportVisit(
                        visit_date=visit_date,
                        employee_id=e.user_id,
                        employee_name=e.user_name,
                        task_title=e.task_detail or "",
                        task_type=e.task_type.value,
                        source="roster",
                        start_time=e.time_start.strftime("%H:%M") if e.time_start else None,
                        end_time=e.time_end.strftime("%H:%M") if e.time_end else None,
                    ),
                )
            )
        return out

    def monthly_report(self, filters: Optional[VisitFilters] = None) -> list[ClientMonthlyReport]:
        filters = filters or VisitFilters()

        rows: list[tuple[str, str, ReportVisit]] = [
            (
                v.client_id,
                v.client_name,
                ReportVisit(
                    visit_date=v.visit_date,
                    employee_id=v.employee_id,
                    employee_name=v.employee_name,
                    task_title=v.task_title,
                    task_type=v.task_type.value,
                    source="visit",
                ),
            )
            for v in self.list_visits(_without_limit(filters))
        ]
        rows.extend(self._roster_visits(filters))

        names: dict[str, str] = {}
        grouped: dict[str, dict[str, list[ReportVisit]]] = {}
        for client_id, client_name, visit in rows:
            if client_name and not names.get(client_id):
                names[client_id] = client_name
            names.setdefault(client_id, "")
            grouped.setdefault(client_id, {}).setdefault(month_key(visit.visit_date), []).append(visit)

        reports: list[ClientMonthlyReport] = []
        for client_id, months in grouped.items():
            monthly = [
                MonthlyVisits(
                    month=key,
                    month_name=month_name(key),
                    visits=sorted(months[key], key=lambda v: (v.visit_date, v.start_time or "")),
                )
                for key in sorted(months, reverse=True)
            ]
            reports.append(ClientMonthlyReport(client_id=client_id, client_name=names[client_id], monthly_data=monthly))

        reports.sort(key=lambda r: (r.client_name.lower(), r.client_id))
        logger.debug("monthly report: %d clients, %d visits", len(reports), len(rows))
        return reports

    def visit_stats(self, filters: Optional[VisitFilters] = None) -> VisitStats:
        visits = self.list_visits(_without_limit(filters or VisitFilters()))

        by_client = Counter(v.client_id for v in visits)
        by_employee = Counter(v.employee_id for v in visits)
        client_names = {v.client_id: v.client_name for v in visits}
        employee_names = {v.employee_id: v.employee_name for v in visits}

        return VisitStats(
            total_visits=len(visits),
            unique_clients=len(by_client),
            unique_employees=len(by_employee),
            visits_by_client=[
                {"client_id": cid, "client_name": client_names[cid], "count": n}
                for cid, n in sorted(by_client.items(), key=lambda kv: (-kv[1], client_names[kv[0]].lower()))
            ],
            visits_by_employee=[
                {"employee_id": eid, "employee_name": employee_names[eid], "count": n}
                for eid, n in sorted(by_employee.items(), key=lambda kv: (-kv[1], employee_names[kv[0]].lower()))
            ],
        )

    @staticmethod
    def csv_rows(reports: Sequence[ClientMonthlyReport]) -> list[dict]:
        """One row per visit, in report order."""
        return [
            {
                "client_id": r.client_id,
                "client_name": r.client_name,
                "month": m.month,
                "date": v.visit_date.isoformat(),
                "employee_id": v.employee_id,
                "employee_name": v.employee_name,
                "task_title": v.task_title,
                "task_type": v.task_type,
                "source": v.source,
                "start_time": v.start_time or "",
                "end_time": v.end_time or "",
            }
            for r in reports
            for m in r.monthly_data
            for v in m.visits
        ]
