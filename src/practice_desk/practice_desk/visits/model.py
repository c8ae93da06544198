from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import VisitTaskType


@dataclass(frozen=True)
class NewVisit:
    client_id: str
    client_name: str
    employee_id: str
    employee_name: str
    visit_date: date
    source_task_id: str
    task_title: str
    task_type: VisitTaskType = VisitTaskType.RECURRING
    arn_number: Optional[str] = None
    arn_name: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class VisitRecord:
    """A client visit; created as a side effect of completing a mapped cycle."""

    visit_id: str
    client_id: str
    client_name: str
    employee_id: str
    employee_name: str
    visit_date: date
    source_task_id: str
    task_title: str
    task_type: VisitTaskType
    arn_number: Optional[str] = None
    arn_name: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.visit_id,
            "client_id": self.client_id,
            "client_name": self.client_name,
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
            "visit_date": self.visit_date.isoformat(),
            "task_id": self.source_task_id,
            "task_title": self.task_title,
            "task_type": self.task_type.value,
            "arn_number": self.arn_number,
            "arn_name": self.arn_name,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class VisitFilters:
    client_id: Optional[str] = None
    employee_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    search: Optional[str] = None
    limit: Optional[int] = None


@dataclass(frozen=True)
class VisitFailure:
    employee_id: str
    client_id: str
    period_key: str
    reason: str

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "client_id": self.client_id,
            "period_key": self.period_key,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ReportVisit:
    """One line of the monthly report, whichever source it came from."""

    visit_date: date
    employee_id: str
    employee_name: str
    task_title: str
    task_type: str
    source: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "date": self.visit_date.isoformat(),
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
            "task_title": self.task_title,
            "task_type": self.task_type,
            "source": self.source,
            "start_time": self.start_time,
            "end_time": self.end_time,
        }


@dataclass(frozen=True)
class MonthlyVisits:
    month: str
    month_name: str
    visits: list[ReportVisit] = field(default_factory=list)

    @property
    def total_visits(self) -> int:
        return len(self.visits)

    def to_dict(self) -> dict:
        return {
            "month": self.month,
            "month_name": self.month_name,
            "visits": [v.to_dict() for v in self.visits],
            "total_visits": self.total_visits,
        }


@dataclass(frozen=True)
class ClientMonthlyReport:
    client_id: str
    client_name: str
    monthly_data: list[MonthlyVisits] = field(default_factory=list)

    @property
    def total_visits(self) -> int:
        return sum(m.total_visits for m in self.monthly_data)

    def to_dict(self) -> dict:
        return {
            "client_id": self.client_id,
            "client_name": self.client_name,
            "monthly_data": [m.to_dict() for m in self.monthly_data],
            "total_visits": self.total_visits,
        }


@dataclass(frozen=True)
class VisitStats:
    total_visits: int
    unique_clients: int
    unique_employees: int
    visits_by_client: list[dict]
    visits_by_employee: list[dict]

    def to_dict(self) -> dict:
        return {
            "total_visits": self.total_visits,
            "unique_clients": self.unique_clients,
            "unique_employees": self.unique_employees,
            "visits_by_client": self.visits_by_client,
            "visits_by_employee": self.visits_by_employee,
        }
