"""
Domain Data Transfer Objects.

Immutable value objects that cross the service/selector boundary.  Services
and selectors return these, never ORM instances, so callers cannot mutate
persistent state by accident.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from hr_kernel.domain.changes import FieldChange


@dataclass(frozen=True)
class PersonRef:
    """The minimum validation needs to know about an employee."""

    id: UUID
    is_active: bool
    salary: Decimal


@dataclass(frozen=True)
class EmployeeInfo:
    id: UUID
    first_name: str
    last_name: str
    email: str
    phone: str | None
    date_of_birth: date | None
    hire_date: date
    department_id: UUID
    manager_id: UUID | None
    job_title: str
    salary: Decimal
    is_active: bool
    version: int

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass(frozen=True)
class DepartmentInfo:
    id: UUID
    name: str
    head_id: UUID | None
    budget: Decimal | None
    location: str | None


@dataclass(frozen=True)
class ProjectInfo:
    id: UUID
    name: str
    description: str | None
    start_date: date
    end_date: date | None
    budget: Decimal | None
    status: str
    department_id: UUID


@dataclass(frozen=True)
class PerformanceReviewInfo:
    id: UUID
    employee_id: UUID
    reviewer_id: UUID
    review_date: date
    period_start: date
    period_end: date
    overall_rating: int
    technical_skills: int
    communication: int
    teamwork: int
    leadership: int
    comments: str | None = None
    goals: str | None = None

    @property
    def composite_score(self) -> Decimal:
        """Mean of the five ratings."""
        total = (
            self.overall_rating
            + self.technical_skills
            + self.communication
            + self.teamwork
            + self.leadership
        )
        return Decimal(total) / Decimal(5)


@dataclass(frozen=True)
class SalaryRecordInfo:
    """
    One realised salary transition.

    previous_salary is None only for the record seeded at hire.
    """

    id: UUID
    employee_id: UUID
    sequence: int
    previous_salary: Decimal | None
    new_salary: Decimal
    change_date: date
    reason: str
    approver_id: UUID | None
    created_by: str
    created_at: datetime | None = None

    @property
    def is_initial(self) -> bool:
        return self.previous_salary is None


@dataclass(frozen=True)
class AuditEntryInfo:
    id: int
    entity_type: str
    record_id: str
    action: str
    changes: tuple[FieldChange, ...]
    actor: str
    occurred_at: datetime

    def change_for(self, field_name: str) -> FieldChange | None:
        for change in self.changes:
            if change.field == field_name:
                return change
        return None


@dataclass(frozen=True)
class AuditPage:
    """One page of a newest-first audit query."""

    entries: tuple[AuditEntryInfo, ...]
    total_count: int
    total_pages: int
    page: int
    page_size: int


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DepartmentSalarySummary:
    department_id: UUID
    department_name: str
    headcount: int
    total_salary: Decimal
    average_salary: Decimal | None
    min_salary: Decimal | None
    max_salary: Decimal | None
    budget: Decimal | None
    budget_variance: Decimal | None
    budget_utilization_percent: Decimal | None
    budget_status: str


@dataclass(frozen=True)
class SalaryPercentiles:
    department_id: UUID | None
    p25: Decimal | None
    p50: Decimal | None
    p75: Decimal | None
    p90: Decimal | None


@dataclass(frozen=True)
class TopPerformer:
    employee_id: UUID
    full_name: str
    department_id: UUID
    job_title: str
    average_score: Decimal
    review_count: int


@dataclass(frozen=True)
class BonusGuidance:
    """Derived bonus suggestion; computing it never mutates anything."""

    employee_id: UUID
    year: int
    review_count: int
    average_score: Decimal | None
    years_of_service: int
    performance_bonus_percent: Decimal
    service_bonus_percent: Decimal
    total_bonus_percent: Decimal
    base_salary: Decimal
    bonus_amount: Decimal
    notes: tuple[str, ...] = field(default=())
