"""Salary history and audit entries cannot be edited or removed."""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from hr_kernel.db.immutability import unregister_immutability_listeners
from hr_kernel.exceptions import ImmutabilityViolationError
from hr_kernel.models.audit_entry import AuditEntry
from hr_kernel.models.salary_record import SalaryRecord
from tests.conftest import TEST_ACTOR


def _initial_record(session, employee_id):
    return session.execute(
        select(SalaryRecord).where(SalaryRecord.employee_id == employee_id)
    ).scalar_one()


class TestSalaryRecordImmutability:
    def test_update_rejected(self, session, employee):
        record = _initial_record(session, employee.id)
        record.new_salary = Decimal("1.00")
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "SalaryRecord"

    def test_delete_rejected(self, session, employee):
        session.delete(_initial_record(session, employee.id))
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_rejection_logged(self, session, employee, captured_logs):
        record = _initial_record(session, employee.id)
        record.reason = "rewritten"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        assert any(r["message"] == "immutability_violation_blocked" for r in captured_logs())


class TestAuditEntryImmutability:
    def test_update_rejected(self, session, audit_recorder):
        info = audit_recorder.record("Widget", uuid4(), "INSERT", None, {"n": 1}, actor=TEST_ACTOR)
        entry = session.get(AuditEntry, info.id)
        entry.actor = "someone.else@example.com"
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "AuditEntry"

    def test_delete_rejected(self, session, audit_recorder):
        info = audit_recorder.record("Widget", uuid4(), "INSERT", None, {"n": 1}, actor=TEST_ACTOR)
        session.delete(session.get(AuditEntry, info.id))
        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestListenerRegistration:
    def test_unregistered_listeners_allow_edits(self, session, employee):
        unregister_immutability_listeners()
        record = _initial_record(session, employee.id)
        record.reason = "test-only correction"
        session.flush()
        assert _initial_record(session, employee.id).reason == "test-only correction"
