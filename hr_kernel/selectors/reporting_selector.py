"""
Module: hr_kernel.selectors.reporting_selector
Responsibility: Compensation and performance reports: department salary
    summaries against budget, salary percentiles, top performers, an
    employee's performance percentile and bonus guidance.
Architecture position: Kernel > Selectors.  Arithmetic lives in
    domain/compensation.py; this module only loads rows and groups them.

Invariants enforced:
    - Only active employees count towards headcount, payroll and rankings.
    - Aggregation runs in Python over loaded rows so PostgreSQL and SQLite
      produce identical Decimal results.
    - Nothing here writes.  Bonus guidance is advice; salaries only change
      through SalaryChangeService.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import select

from hr_kernel.domain.compensation import (
    CENT,
    budget_status,
    budget_utilization_percent,
    percent_rank,
    percentile_cont,
    performance_bonus_percent,
    service_bonus_percent,
)
from hr_kernel.domain.dtos import (
    BonusGuidance,
    DepartmentSalarySummary,
    SalaryPercentiles,
    TopPerformer,
)
from hr_kernel.domain.values import RATING_FIELDS
from hr_kernel.exceptions import (
    DepartmentNotFoundError,
    EmployeeNotFoundError,
    InactiveEntityError,
)
from hr_kernel.models.department import Department
from hr_kernel.models.employee import Employee
from hr_kernel.models.performance_review import PerformanceReview
from hr_kernel.selectors.base import BaseSelector

_SCORE_PLACES = Decimal("0.0001")


def _composite(review: PerformanceReview) -> Decimal:
    return Decimal(sum(getattr(review, name) for name in RATING_FIELDS)) / Decimal(
        len(RATING_FIELDS)
    )


def _mean(values: list[Decimal]) -> Decimal:
    return (sum(values, Decimal(0)) / Decimal(len(values))).quantize(
        _SCORE_PLACES, rounding=ROUND_HALF_UP
    )


class ReportingSelector(BaseSelector[Employee]):
    """Read-only compensation and performance reports."""

    # ------------------------------------------------------------------
    # Salary
    # ------------------------------------------------------------------

    def _active_salaries(self, department_id: UUID | None = None) -> list[tuple[UUID, Decimal]]:
        stmt = select(Employee.department_id, Employee.salary).where(
            Employee.is_active.is_(True)
        )
        if department_id is not None:
            stmt = stmt.where(Employee.department_id == department_id)
        return [(row[0], row[1]) for row in self.session.execute(stmt).all()]

    def department_salary_summaries(
        self, department_id: UUID | None = None
    ) -> list[DepartmentSalarySummary]:
        """
        Payroll per department, ordered by department name.

        Departments without active employees are included with a zero
        total so their budget still shows up.
        """
        stmt = select(Department).order_by(Department.name)
        if department_id is not None:
            stmt = stmt.where(Department.id == department_id)
        departments = list(self.session.execute(stmt).scalars())
        if department_id is not None and not departments:
            raise DepartmentNotFoundError(str(department_id))

        by_department: dict[UUID, list[Decimal]] = defaultdict(list)
        for dept_id, salary in self._active_salaries(department_id):
            by_department[dept_id].append(salary)

        summaries = []
        for department in departments:
            salaries = by_department.get(department.id, [])
            total = sum(salaries, Decimal("0.00"))
            average = (
                (total / len(salaries)).quantize(CENT, rounding=ROUND_HALF_UP)
                if salaries
                else None
            )
            summaries.append(
                DepartmentSalarySummary(
                    department_id=department.id,
                    department_name=department.name,
                    headcount=len(salaries),
                    total_salary=total,
                    average_salary=average,
                    min_salary=min(salaries) if salaries else None,
                    max_salary=max(salaries) if salaries else None,
                    budget=department.budget,
                    budget_variance=(
                        department.budget - total if department.budget is not None else None
                    ),
                    budget_utilization_percent=budget_utilization_percent(
                        total, department.budget
                    ),
                    budget_status=budget_status(total, department.budget).value,
                )
            )
        return summaries

    def salary_percentiles(self, department_id: UUID | None = None) -> SalaryPercentiles:
        """25th/50th/75th/90th salary percentiles of active employees."""
        salaries = [salary for _, salary in self._active_salaries(department_id)]
        return SalaryPercentiles(
            department_id=department_id,
            p25=percentile_cont(salaries, Decimal("0.25")),
            p50=percentile_cont(salaries, Decimal("0.50")),
            p75=percentile_cont(salaries, Decimal("0.75")),
            p90=percentile_cont(salaries, Decimal("0.90")),
        )

    # ------------------------------------------------------------------
    # Performance
    # ------------------------------------------------------------------

    def _scores_by_employee(
        self,
        department_id: UUID | None = None,
        since: date | None = None,
    ) -> dict[UUID, tuple[Employee, list[Decimal]]]:
        stmt = (
            select(Employee, PerformanceReview)
            .join(PerformanceReview, PerformanceReview.employee_id == Employee.id)
            .where(Employee.is_active.is_(True))
        )
        if department_id is not None:
            stmt = stmt.where(Employee.department_id == department_id)
        if since is not None:
            stmt = stmt.where(PerformanceReview.review_date >= since)

        grouped: dict[UUID, tuple[Employee, list[Decimal]]] = {}
        for employee, review in self.session.execute(stmt).all():
            grouped.setdefault(employee.id, (employee, []))[1].append(_composite(review))
        return grouped

    def top_performers(
        self,
        limit: int = 10,
        department_id: UUID | None = None,
        since: date | None = None,
    ) -> list[TopPerformer]:
        """
        Active employees ranked by average composite review score.

        Ties go to the employee with more reviews, then by name.
        """
        performers = [
            TopPerformer(
                employee_id=employee.id,
                full_name=employee.full_name,
                department_id=employee.department_id,
                job_title=employee.job_title,
                average_score=_mean(scores),
                review_count=len(scores),
            )
            for employee, scores in self._scores_by_employee(department_id, since).values()
        ]
        performers.sort(key=lambda p: (-p.average_score, -p.review_count, p.full_name))
        return performers[: max(limit, 0)]

    def performance_percentile(self, employee_id: UUID) -> Decimal | None:
        """
        Percentile rank (0..100) of the employee's average score among all
        reviewed active employees.  None when the employee has no reviews.
        """
        if self.session.get(Employee, employee_id) is None:
            raise EmployeeNotFoundError(str(employee_id))
        averages = {
            emp_id: _mean(scores)
            for emp_id, (_, scores) in self._scores_by_employee().items()
        }
        if employee_id not in averages:
            return None
        return percent_rank(averages[employee_id], list(averages.values()))

    def bonus_guidance(
        self,
        employee_id: UUID,
        year: int | None = None,
        as_of: date | None = None,
    ) -> BonusGuidance:
        """
        Suggested bonus for ``year`` from that year's reviews and tenure.

        Args:
            employee_id: Active employee.
            year: Review year (default: the current year).
            as_of: Date tenure is measured at (default: today).

        Raises:
            EmployeeNotFoundError / InactiveEntityError.
        """
        employee = self.session.get(Employee, employee_id)
        if employee is None:
            raise EmployeeNotFoundError(str(employee_id))
        if not employee.is_active:
            raise InactiveEntityError("Employee", str(employee_id))

        today = self._clock.today()
        year = year or today.year
        as_of = as_of or today

        reviews = list(
            self.session.execute(
                select(PerformanceReview).where(
                    PerformanceReview.employee_id == employee_id,
                    PerformanceReview.review_date >= date(year, 1, 1),
                    PerformanceReview.review_date <= date(year, 12, 31),
                )
            ).scalars()
        )
        notes: list[str] = []
        average = _mean([_composite(r) for r in reviews]) if reviews else None
        if average is None:
            notes.append(f"no performance reviews in {year}")

        years = employee.years_of_service(as_of)
        perf_pct = performance_bonus_percent(average)
        service_pct = service_bonus_percent(years)
        total_pct = perf_pct + service_pct
        amount = (employee.salary * total_pct / Decimal(100)).quantize(
            CENT, rounding=ROUND_HALF_UP
        )

        return BonusGuidance(
            employee_id=employee.id,
            year=year,
            review_count=len(reviews),
            average_score=average,
            years_of_service=years,
            performance_bonus_percent=perf_pct,
            service_bonus_percent=service_pct,
            total_bonus_percent=total_pct,
            base_salary=employee.salary,
            bonus_amount=amount,
            notes=tuple(notes),
        )
