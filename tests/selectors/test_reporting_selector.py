"""ReportingSelector: payroll summaries, rankings and bonus guidance."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from hr_kernel.exceptions import (
    DepartmentNotFoundError,
    EmployeeNotFoundError,
    InactiveEntityError,
)
from hr_kernel.models.employee import Employee
from hr_kernel.selectors.reporting_selector import ReportingSelector
from tests.conftest import TEST_ACTOR

GOOD = dict(overall_rating=4, technical_skills=5, communication=4, teamwork=3, leadership=4)
EXCELLENT = dict(overall_rating=5, technical_skills=5, communication=5, teamwork=5, leadership=5)


@pytest.fixture
def reports(session, deterministic_clock):
    return ReportingSelector(session, deterministic_clock)


@pytest.fixture
def reviewed(review_service, employee, manager):
    """E1 averages 4.0, M1 averages 5.0, both reviewed in Q1 2024."""
    review_service.create_review(
        employee.id, manager.id, date(2024, 4, 5), date(2024, 1, 1), date(2024, 3, 31),
        GOOD, acting_user=TEST_ACTOR,
    )
    review_service.create_review(
        manager.id, employee.id, date(2024, 4, 5), date(2024, 1, 1), date(2024, 3, 31),
        EXCELLENT, acting_user=TEST_ACTOR,
    )


class TestDepartmentSummaries:
    def test_totals_and_budget(self, reports, create_department, department, employee, manager):
        create_department(name="Archive", budget=None)
        summaries = reports.department_salary_summaries()

        assert [s.department_name for s in summaries] == ["Archive", "Engineering"]
        archive, engineering = summaries

        assert archive.headcount == 0
        assert archive.total_salary == Decimal("0")
        assert archive.average_salary is None
        assert archive.budget_status == "No Budget Set"

        assert engineering.headcount == 2
        assert engineering.total_salary == Decimal("200000.00")
        assert engineering.average_salary == Decimal("100000.00")
        assert engineering.min_salary == Decimal("80000.00")
        assert engineering.max_salary == Decimal("120000.00")
        assert engineering.budget_variance == Decimal("800000.00")
        assert engineering.budget_utilization_percent == Decimal("20.00")
        assert engineering.budget_status == "Under Budget"

    def test_inactive_employees_excluded(
        self, reports, employee_service, department, employee, manager
    ):
        employee_service.deactivate_employee(employee.id, acting_user=TEST_ACTOR)
        (summary,) = reports.department_salary_summaries(department.id)
        assert summary.headcount == 1
        assert summary.total_salary == Decimal("120000.00")

    def test_unknown_department(self, reports):
        with pytest.raises(DepartmentNotFoundError):
            reports.department_salary_summaries(uuid4())

    def test_percentiles(self, reports, department, employee, manager):
        result = reports.salary_percentiles(department.id)
        assert result.p25 == Decimal("90000.00")
        assert result.p50 == Decimal("100000.00")
        assert result.p90 == Decimal("116000.00")


class TestPerformance:
    def test_top_performers_ranked(self, reports, reviewed, employee, manager):
        ranked = reports.top_performers()
        assert [p.employee_id for p in ranked] == [manager.id, employee.id]
        assert ranked[0].average_score == Decimal("5")
        assert ranked[1].average_score == Decimal("4")
        assert ranked[1].review_count == 1

    def test_top_performers_limit_and_since(self, reports, reviewed, manager):
        assert [p.employee_id for p in reports.top_performers(limit=1)] == [manager.id]
        assert reports.top_performers(since=date(2024, 5, 1)) == []

    def test_performance_percentile(self, reports, reviewed, employee, manager, create_employee):
        unreviewed = create_employee()
        assert reports.performance_percentile(employee.id) == Decimal("0.00")
        assert reports.performance_percentile(manager.id) == Decimal("100.00")
        assert reports.performance_percentile(unreviewed.id) is None
        with pytest.raises(EmployeeNotFoundError):
            reports.performance_percentile(uuid4())


class TestBonusGuidance:
    def test_bonus_from_reviews_and_tenure(self, reports, reviewed, employee):
        guidance = reports.bonus_guidance(employee.id)
        assert guidance.year == 2024
        assert guidance.review_count == 1
        assert guidance.years_of_service == 4
        assert guidance.performance_bonus_percent == Decimal("12")
        assert guidance.service_bonus_percent == Decimal("1.0")
        assert guidance.bonus_amount == Decimal("10400.00")
        assert guidance.notes == ()

    def test_year_without_reviews(self, reports, reviewed, employee):
        guidance = reports.bonus_guidance(employee.id, year=2023)
        assert guidance.average_score is None
        assert guidance.performance_bonus_percent == Decimal("0")
        assert guidance.notes == ("no performance reviews in 2023",)

    def test_guidance_does_not_change_salary(self, session, reports, reviewed, employee):
        reports.bonus_guidance(employee.id)
        assert session.get(Employee, employee.id).salary == Decimal("80000.00")

    def test_inactive_employee(self, reports, employee_service, employee):
        employee_service.deactivate_employee(employee.id, acting_user=TEST_ACTOR)
        with pytest.raises(InactiveEntityError):
            reports.bonus_guidance(employee.id)
