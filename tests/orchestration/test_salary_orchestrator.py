"""
SalaryChangeOrchestrator: committed salary changes, retries, error mapping.

These tests commit the seed data so the orchestrator's own sessions see it,
and read results back through fresh sessions.
"""

from dataclasses import replace
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from hr_config import ConcurrencySettings
from hr_kernel.exceptions import (
    ConcurrentModificationError,
    EmployeeNotFoundError,
    InvalidValueError,
    NoChangeError,
    OutOfPolicyRangeError,
    PersistenceFailureError,
)
from hr_kernel.models.audit_entry import AuditEntry
from hr_kernel.models.employee import Employee
from hr_kernel.models.salary_record import SalaryRecord
from hr_kernel.services.audit_recorder import AuditRecorder
from hr_kernel.services.salary_change_service import SalaryChangeService
from hr_services.salary_orchestrator import SalaryChangeOrchestrator, is_retryable_conflict
from tests.conftest import TEST_ACTOR


@pytest.fixture
def committed(session, employee, manager):
    """E1 (80,000) reporting to M1, committed."""
    session.commit()
    session.close()
    return employee, manager


def _read(session_factory, fn):
    sess = session_factory()
    try:
        return fn(sess)
    finally:
        sess.close()


def _salary(session_factory, employee_id):
    return _read(session_factory, lambda s: s.get(Employee, employee_id).salary)


def _records(session_factory, employee_id):
    return _read(
        session_factory,
        lambda s: s.execute(
            select(SalaryRecord)
            .where(SalaryRecord.employee_id == employee_id)
            .order_by(SalaryRecord.sequence)
        ).scalars().all(),
    )


def _salary_audit_count(session_factory, employee_id):
    entries = _read(
        session_factory,
        lambda s: s.execute(
            select(AuditEntry).where(
                AuditEntry.record_id == str(employee_id), AuditEntry.action == "UPDATE"
            )
        ).scalars().all(),
    )
    return sum(1 for e in entries if any(c["field"] == "salary" for c in e.changes))


class TestChangeSalaryFlow:
    def test_raise_then_no_op_then_out_of_band(self, orchestrator, session_factory, committed):
        employee, manager = committed

        record = orchestrator.change_salary(
            employee.id, Decimal("90000"), "Promotion", manager.id, acting_user=TEST_ACTOR
        )
        assert record.previous_salary == Decimal("80000.00")
        assert record.new_salary == Decimal("90000.00")
        assert _salary(session_factory, employee.id) == Decimal("90000.00")
        assert _salary_audit_count(session_factory, employee.id) == 1

        with pytest.raises(NoChangeError):
            orchestrator.change_salary(
                employee.id, Decimal("90000"), "Again", manager.id, acting_user=TEST_ACTOR
            )

        with pytest.raises(OutOfPolicyRangeError) as exc_info:
            orchestrator.change_salary(
                employee.id, Decimal("200000"), "Huge", manager.id, acting_user=TEST_ACTOR
            )
        assert exc_info.value.percent_change == "122.22"

        assert _salary(session_factory, employee.id) == Decimal("90000.00")
        records = _records(session_factory, employee.id)
        assert [r.new_salary for r in records] == [Decimal("80000.00"), Decimal("90000.00")]
        assert _salary_audit_count(session_factory, employee.id) == 1

    def test_unknown_employee(self, orchestrator, committed):
        with pytest.raises(EmployeeNotFoundError):
            orchestrator.change_salary(uuid4(), "1000", "Ghost", acting_user=TEST_ACTOR)

    @pytest.mark.parametrize("amount", ["1e30", Decimal("1e30"), "10000000000000000"])
    def test_amount_beyond_column_capacity_rejected(
        self, orchestrator, session_factory, committed, amount
    ):
        employee, _ = committed
        with pytest.raises(InvalidValueError) as exc_info:
            orchestrator.change_salary(employee.id, amount, "Typo", acting_user=TEST_ACTOR)
        assert exc_info.value.field == "new_salary"
        assert _salary(session_factory, employee.id) == Decimal("80000.00")
        assert len(_records(session_factory, employee.id)) == 1

    def test_policy_comes_from_config(self, session_factory, hr_config, deterministic_clock):
        orch = SalaryChangeOrchestrator(session_factory, config=hr_config, clock=deterministic_clock)
        assert orch.policy.max_percent_change == Decimal("50")
        assert orch.policy.min_percent_change == Decimal("-25")


class TestStorageErrors:
    @pytest.fixture
    def fast_config(self, hr_config):
        return replace(
            hr_config,
            concurrency=ConcurrencySettings(
                max_retries=2, batch_max_workers=2, retry_backoff_seconds=0
            ),
        )

    def test_conflict_exhausts_retries(
        self, monkeypatch, session_factory, fast_config, deterministic_clock, committed,
        captured_logs,
    ):
        employee, _ = committed
        calls = []

        def always_stale(self, *args, **kwargs):
            calls.append(1)
            raise StaleDataError("row version changed")

        monkeypatch.setattr(SalaryChangeService, "change_salary", always_stale)
        orch = SalaryChangeOrchestrator(session_factory, config=fast_config, clock=deterministic_clock)

        with pytest.raises(ConcurrentModificationError) as exc_info:
            orch.change_salary(employee.id, "85000", "Merit", acting_user=TEST_ACTOR)

        assert exc_info.value.attempts == 3
        assert len(calls) == 3
        messages = [r["message"] for r in captured_logs()]
        assert messages.count("salary_change_retry") == 2
        assert "salary_change_conflict_exhausted" in messages

    def test_transient_conflict_then_success(
        self, monkeypatch, session_factory, fast_config, deterministic_clock, committed
    ):
        employee, _ = committed
        real = SalaryChangeService.change_salary
        calls = []

        def flaky(self, *args, **kwargs):
            calls.append(1)
            if len(calls) == 1:
                raise StaleDataError("row version changed")
            return real(self, *args, **kwargs)

        monkeypatch.setattr(SalaryChangeService, "change_salary", flaky)
        orch = SalaryChangeOrchestrator(session_factory, config=fast_config, clock=deterministic_clock)

        record = orch.change_salary(employee.id, "85000", "Merit", acting_user=TEST_ACTOR)
        assert record.new_salary == Decimal("85000.00")
        assert len(_records(session_factory, employee.id)) == 2

    def test_other_database_error_is_persistence_failure(
        self, monkeypatch, session_factory, fast_config, deterministic_clock, committed
    ):
        employee, _ = committed

        def broken(self, *args, **kwargs):
            raise OperationalError("INSERT ...", {}, Exception("disk I/O error"))

        monkeypatch.setattr(SalaryChangeService, "change_salary", broken)
        orch = SalaryChangeOrchestrator(session_factory, config=fast_config, clock=deterministic_clock)

        with pytest.raises(PersistenceFailureError) as exc_info:
            orch.change_salary(employee.id, "85000", "Merit", acting_user=TEST_ACTOR)
        assert exc_info.value.operation == "change_salary"
        assert _salary(session_factory, employee.id) == Decimal("80000.00")

    def test_audit_write_failure_rolls_back_salary_and_history(
        self, monkeypatch, session_factory, fast_config, deterministic_clock, committed
    ):
        employee, _ = committed
        audit_total = _read(session_factory, lambda s: len(s.execute(select(AuditEntry)).all()))

        def failing_audit(self, *args, **kwargs):
            raise SQLAlchemyError("audit insert failed")

        monkeypatch.setattr(AuditRecorder, "record_changes", failing_audit)
        orch = SalaryChangeOrchestrator(session_factory, config=fast_config, clock=deterministic_clock)

        with pytest.raises(PersistenceFailureError):
            orch.change_salary(employee.id, "85000", "Merit", acting_user=TEST_ACTOR)

        assert _salary(session_factory, employee.id) == Decimal("80000.00")
        assert len(_records(session_factory, employee.id)) == 1
        assert (
            _read(session_factory, lambda s: len(s.execute(select(AuditEntry)).all()))
            == audit_total
        )


class TestIsRetryableConflict:
    def test_stale_data(self):
        assert is_retryable_conflict(StaleDataError("x"))

    def test_sqlite_locked(self):
        assert is_retryable_conflict(
            OperationalError("UPDATE ...", {}, Exception("database is locked"))
        )

    def test_postgres_serialization_failure(self):
        class PgError(Exception):
            pgcode = "40001"

        assert is_retryable_conflict(OperationalError("UPDATE ...", {}, PgError("could not serialize")))

    def test_other_errors(self):
        assert not is_retryable_conflict(
            OperationalError("UPDATE ...", {}, Exception("disk I/O error"))
        )
        assert not is_retryable_conflict(ValueError("nope"))
