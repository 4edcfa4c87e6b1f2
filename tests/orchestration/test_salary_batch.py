"""apply_batch: per-item outcomes, isolation, ordering."""

import json
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from hr_kernel.exceptions import InvalidValueError
from hr_kernel.models.employee import Employee
from hr_kernel.models.salary_record import SalaryRecord
from hr_kernel.services.salary_change_service import SalaryChangeService
from hr_services.batch_types import BatchItemStatus, SalaryAdjustment
from tests.conftest import TEST_ACTOR


@pytest.fixture
def staff(session, create_employee, manager):
    """E1 (80,000) and E2 (60,000) reporting to M1, committed."""
    e1 = create_employee(salary=Decimal("80000"), first_name="Evan", manager_id=manager.id)
    e2 = create_employee(salary=Decimal("60000"), first_name="Erin", manager_id=manager.id)
    session.commit()
    session.close()
    return e1, e2, manager


def _salary(session_factory, employee_id):
    sess = session_factory()
    try:
        return sess.get(Employee, employee_id).salary
    finally:
        sess.close()


def _record_count(session_factory, employee_id):
    sess = session_factory()
    try:
        return len(
            sess.execute(
                select(SalaryRecord).where(SalaryRecord.employee_id == employee_id)
            ).scalars().all()
        )
    finally:
        sess.close()


class TestApplyBatch:
    def test_one_failure_does_not_affect_the_other(self, orchestrator, session_factory, staff):
        e1, e2, _ = staff
        run = orchestrator.apply_batch(
            [
                {"EmployeeID": str(e1.id), "NewSalary": 95000, "Reason": "Merit"},
                {"EmployeeID": str(e2.id), "NewSalary": -5, "Reason": "Typo"},
            ],
            acting_user=TEST_ACTOR,
        )

        assert (run.total, run.succeeded, run.failed) == (2, 1, 1)
        ok, bad = run.items
        assert ok.status is BatchItemStatus.SUCCEEDED
        assert ok.salary_record.new_salary == Decimal("95000.00")
        assert ok.attempts == 1
        assert bad.status is BatchItemStatus.FAILED
        assert bad.error_kind == "InvalidValue"
        assert bad.details["field"] == "new_salary"

        assert _salary(session_factory, e1.id) == Decimal("95000.00")
        assert _salary(session_factory, e2.id) == Decimal("60000.00")
        assert _record_count(session_factory, e2.id) == 1

    def test_results_in_input_order(self, orchestrator, staff):
        e1, e2, _ = staff
        items = [
            SalaryAdjustment(0, e2.id, "61000", "Merit"),
            SalaryAdjustment(1, e1.id, "81000", "Merit"),
            SalaryAdjustment(2, e2.id, "62000", "Second step"),
            SalaryAdjustment(3, uuid4(), "50000", "Ghost"),
        ]
        run = orchestrator.apply_batch(items, acting_user=TEST_ACTOR)

        assert [r.index for r in run.items] == [0, 1, 2, 3]
        assert [r.status for r in run.items] == [
            BatchItemStatus.SUCCEEDED,
            BatchItemStatus.SUCCEEDED,
            BatchItemStatus.SUCCEEDED,
            BatchItemStatus.FAILED,
        ]
        assert run.items[3].error_kind == "NotFound"

    def test_same_employee_items_apply_in_order(self, orchestrator, session_factory, staff):
        e1, _, _ = staff
        run = orchestrator.apply_batch(
            [
                SalaryAdjustment(0, e1.id, "84000", "Step 1"),
                SalaryAdjustment(1, e1.id, "88000", "Step 2"),
            ],
            acting_user=TEST_ACTOR,
        )
        first, second = run.items
        assert second.salary_record.previous_salary == first.salary_record.new_salary
        assert _salary(session_factory, e1.id) == Decimal("88000.00")

    def test_batch_approver_used_when_item_has_none(self, orchestrator, staff):
        e1, _, manager = staff
        run = orchestrator.apply_batch(
            [SalaryAdjustment(0, e1.id, "85000", "Merit")],
            acting_user=TEST_ACTOR,
            approver_id=manager.id,
        )
        assert run.items[0].salary_record.approver_id == manager.id

    def test_malformed_items_fail_individually(self, orchestrator, staff):
        e1, _, _ = staff
        payload = json.dumps(
            [
                {"employee_id": "not-a-uuid", "new_salary": 1, "reason": "x"},
                "just a string",
                {"employee_id": str(e1.id), "new_salary": 82000, "reason": "Merit"},
            ]
        )
        run = orchestrator.apply_batch(payload, acting_user=TEST_ACTOR)
        assert [r.status for r in run.items] == [
            BatchItemStatus.FAILED,
            BatchItemStatus.FAILED,
            BatchItemStatus.SUCCEEDED,
        ]
        assert run.items[0].details["field"] == "employee_id"
        assert run.items[0].attempts == 0

    def test_oversized_amount_fails_only_its_item(self, orchestrator, session_factory, staff):
        e1, _, manager = staff
        run = orchestrator.apply_batch(
            [
                {"EmployeeID": str(manager.id), "NewSalary": 130000, "Reason": "Merit"},
                {"EmployeeID": str(e1.id), "NewSalary": "1e30", "Reason": "Typo"},
            ],
            acting_user=TEST_ACTOR,
        )
        assert (run.succeeded, run.failed) == (1, 1)
        assert run.items[1].error_kind == "InvalidValue"
        assert run.items[1].details["field"] == "new_salary"
        assert _salary(session_factory, manager.id) == Decimal("130000.00")
        assert _salary(session_factory, e1.id) == Decimal("80000.00")

    def test_unexpected_error_is_reported_per_item(
        self, monkeypatch, orchestrator, session_factory, staff
    ):
        e1, e2, _ = staff
        real = SalaryChangeService.change_salary

        def crash_for_e2(self, employee_id, *args, **kwargs):
            if employee_id == e2.id:
                raise RuntimeError("unexpected")
            return real(self, employee_id, *args, **kwargs)

        monkeypatch.setattr(SalaryChangeService, "change_salary", crash_for_e2)
        run = orchestrator.apply_batch(
            [SalaryAdjustment(0, e1.id, "85000", "Merit"), SalaryAdjustment(1, e2.id, "61000", "Merit")],
            acting_user=TEST_ACTOR,
        )
        assert [r.status for r in run.items] == [
            BatchItemStatus.SUCCEEDED,
            BatchItemStatus.FAILED,
        ]
        assert run.items[1].error_kind == "PersistenceFailure"
        assert _salary(session_factory, e1.id) == Decimal("85000.00")
        assert _salary(session_factory, e2.id) == Decimal("60000.00")

    def test_payload_not_a_list(self, orchestrator):
        with pytest.raises(InvalidValueError):
            orchestrator.apply_batch('{"EmployeeID": "x"}', acting_user=TEST_ACTOR)

    def test_empty_batch(self, orchestrator):
        run = orchestrator.apply_batch([], acting_user=TEST_ACTOR)
        assert run.total == 0

    def test_logs_batch_lifecycle(self, orchestrator, staff, captured_logs):
        e1, e2, _ = staff
        orchestrator.apply_batch(
            [SalaryAdjustment(0, e1.id, "85000", "Merit"), SalaryAdjustment(1, e2.id, "0", "Bad")],
            acting_user=TEST_ACTOR,
        )
        logs = captured_logs()
        completed = [r for r in logs if r["message"] == "salary_batch_completed"]
        assert len(completed) == 1
        assert completed[0]["succeeded"] == 1
        assert completed[0]["failed"] == 1
        assert "batch_id" in completed[0]
        failed = [r for r in logs if r["message"] == "salary_batch_item_failed"]
        assert failed[0]["batch_id"] == completed[0]["batch_id"]
