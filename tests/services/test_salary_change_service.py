"""
SalaryChangeService: validate, write employee + history + audit together.

Every test runs inside one uncommitted session; the conftest rolls it back.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from hr_kernel.exceptions import (
    EmployeeNotFoundError,
    InactiveEntityError,
    InvalidReferenceError,
    InvalidValueError,
    NoChangeError,
    OutOfPolicyRangeError,
)
from hr_kernel.models.audit_entry import AuditEntry
from hr_kernel.models.employee import Employee
from hr_kernel.models.salary_record import SalaryRecord
from tests.conftest import TEST_ACTOR, TEST_NOW


def _count(session, model, **filters):
    stmt = select(func.count()).select_from(model)
    for name, value in filters.items():
        stmt = stmt.where(getattr(model, name) == value)
    return session.execute(stmt).scalar_one()


def _salary_audits(session, employee_id):
    entries = session.execute(
        select(AuditEntry).where(
            AuditEntry.entity_type == "Employee",
            AuditEntry.record_id == str(employee_id),
            AuditEntry.action == "UPDATE",
        )
    ).scalars()
    return [e for e in entries if any(c["field"] == "salary" for c in e.changes)]


class TestSuccessfulChange:
    def test_writes_salary_history_and_audit(self, session, salary_service, employee, manager):
        record = salary_service.change_salary(
            employee.id, Decimal("90000"), "Promotion", manager.id, acting_user=TEST_ACTOR
        )

        assert record.previous_salary == Decimal("80000.00")
        assert record.new_salary == Decimal("90000.00")
        assert record.reason == "Promotion"
        assert record.approver_id == manager.id
        assert record.change_date == TEST_NOW.date()
        assert record.created_by == TEST_ACTOR
        assert record.sequence == 2

        assert session.get(Employee, employee.id).salary == Decimal("90000.00")

        audits = _salary_audits(session, employee.id)
        assert len(audits) == 1
        assert audits[0].actor == TEST_ACTOR
        assert audits[0].changes == [
            {"field": "salary", "old_value": "80000.00", "new_value": "90000.00"}
        ]

    def test_sequence_increments_per_employee(self, salary_service, employee):
        first = salary_service.change_salary(
            employee.id, "88000", "Merit", acting_user=TEST_ACTOR
        )
        second = salary_service.change_salary(
            employee.id, "92000", "Market adjustment", acting_user=TEST_ACTOR
        )
        assert (first.sequence, second.sequence) == (2, 3)
        assert second.previous_salary == first.new_salary

    def test_effective_date_overrides_today(self, salary_service, employee):
        record = salary_service.change_salary(
            employee.id, "85000", "Backdated", acting_user=TEST_ACTOR,
            effective_date=date(2024, 5, 1),
        )
        assert record.change_date == date(2024, 5, 1)

    def test_approver_is_optional(self, salary_service, employee):
        record = salary_service.change_salary(employee.id, "85000", "COLA", acting_user=TEST_ACTOR)
        assert record.approver_id is None

    def test_logs_salary_changed(self, captured_logs, salary_service, employee):
        salary_service.change_salary(employee.id, "85000", "COLA", acting_user=TEST_ACTOR)
        events = [r for r in captured_logs() if r["message"] == "salary_changed"]
        assert len(events) == 1
        assert events[0]["employee_id"] == str(employee.id)
        assert events[0]["new_salary"] == "85000.00"


class TestRejectedChange:
    """Rejections write nothing at all."""

    def _assert_untouched(self, session, employee_id, salary="80000.00"):
        assert session.get(Employee, employee_id).salary == Decimal(salary)
        assert _count(session, SalaryRecord, employee_id=employee_id) == 1
        assert _salary_audits(session, employee_id) == []

    def test_out_of_policy(self, session, salary_service, employee):
        with pytest.raises(OutOfPolicyRangeError) as exc_info:
            salary_service.change_salary(employee.id, "200000", "Too much", acting_user=TEST_ACTOR)
        assert exc_info.value.percent_change == "150.00"
        self._assert_untouched(session, employee.id)

    def test_no_change(self, session, salary_service, employee):
        with pytest.raises(NoChangeError):
            salary_service.change_salary(employee.id, "80000", "Same", acting_user=TEST_ACTOR)
        self._assert_untouched(session, employee.id)

    def test_negative_amount(self, session, salary_service, employee):
        with pytest.raises(InvalidValueError):
            salary_service.change_salary(employee.id, "-5", "Typo", acting_user=TEST_ACTOR)
        self._assert_untouched(session, employee.id)

    def test_unknown_employee(self, salary_service):
        with pytest.raises(EmployeeNotFoundError):
            salary_service.change_salary(uuid4(), "85000", "Ghost", acting_user=TEST_ACTOR)

    def test_unknown_approver(self, session, salary_service, employee):
        with pytest.raises(InvalidReferenceError):
            salary_service.change_salary(
                employee.id, "85000", "Merit", uuid4(), acting_user=TEST_ACTOR
            )
        self._assert_untouched(session, employee.id)

    def test_inactive_employee(self, session, salary_service, employee):
        session.get(Employee, employee.id).is_active = False
        session.flush()
        with pytest.raises(InactiveEntityError):
            salary_service.change_salary(employee.id, "85000", "Merit", acting_user=TEST_ACTOR)

    def test_blank_reason(self, session, salary_service, employee):
        with pytest.raises(InvalidValueError) as exc_info:
            salary_service.change_salary(employee.id, "85000", "   ", acting_user=TEST_ACTOR)
        assert exc_info.value.field == "reason"
        self._assert_untouched(session, employee.id)

    def test_blank_actor(self, salary_service, employee):
        with pytest.raises(InvalidValueError):
            salary_service.change_salary(employee.id, "85000", "Merit", acting_user="")

    def test_rejection_is_logged(self, captured_logs, salary_service, employee):
        with pytest.raises(NoChangeError):
            salary_service.change_salary(employee.id, "80000", "Same", acting_user=TEST_ACTOR)
        events = [r for r in captured_logs() if r["message"] == "salary_change_rejected"]
        assert events and events[0]["error_code"] == "NO_CHANGE"


class TestInitialSalary:
    def test_hire_seeds_initial_record(self, session, employee):
        records = session.execute(
            select(SalaryRecord).where(SalaryRecord.employee_id == employee.id)
        ).scalars().all()
        assert len(records) == 1
        initial = records[0]
        assert initial.previous_salary is None
        assert initial.new_salary == Decimal("80000.00")
        assert initial.change_date == employee.hire_date
        assert initial.reason == "Initial salary"
        assert initial.sequence == 1
