"""
SalaryChangeService -- the only code path through which a salary changes.

Responsibility:
    Validate a proposed salary, then, inside the caller's transaction:
      1. update Employee.salary (and updated_at / updated_by),
      2. append one SalaryRecord (old, new, date, reason, approver),
      3. append one AuditEntry (UPDATE, Employee, salary old -> new).

    The same service seeds the first SalaryRecord at hire and applies the
    salary part of a general employee update, so every entry point shares
    one set of rules.

Architecture position:
    Kernel > Services -- flush-only.  Transaction ownership, retries and
    batch fan-out live in hr_services.salary_orchestrator.

Invariants enforced:
    - Every gate in domain.validation.validate_salary_change passes before
      the first write is flushed.
    - Exactly one SalaryRecord per realised change; sequence = max + 1 per
      employee.
    - The Employee row is read with SELECT ... FOR UPDATE (PostgreSQL) and
      populate_existing, so validation sees the committed salary; the
      version column turns any stale write into StaleDataError.
    - Audit is mandatory: a failing AuditRecorder write propagates.

Failure modes:
    - EmployeeNotFoundError, InactiveEntityError, InvalidValueError,
      InvalidReferenceError, NoChangeError, OutOfPolicyRangeError.
    - StaleDataError / OperationalError from the flush (the orchestrator
      maps them to ConcurrentModificationError).

Audit relevance:
    Salary history and the salary audit entry are written together or not
    at all.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from hr_kernel.domain.changes import FieldChange
from hr_kernel.domain.clock import Clock
from hr_kernel.domain.dtos import SalaryRecordInfo
from hr_kernel.domain.policy import DEFAULT_SALARY_POLICY, SalaryPolicy
from hr_kernel.domain.validation import (
    require_positive_amount,
    require_text,
    validate_salary_change,
)
from hr_kernel.exceptions import HrKernelError
from hr_kernel.logging_config import get_logger
from hr_kernel.models.audit_entry import AuditAction
from hr_kernel.models.employee import Employee
from hr_kernel.models.salary_record import SalaryRecord
from hr_kernel.services.audit_recorder import AuditRecorder
from hr_kernel.services.base import BaseService, load_person, person_ref

logger = get_logger("services.salary_change")

INITIAL_SALARY_REASON = "Initial salary"


@dataclass(frozen=True)
class PreparedSalaryChange:
    """A salary change that passed every gate and is ready to apply."""

    employee_id: UUID
    previous_salary: Decimal
    new_salary: Decimal
    percent_change: Decimal
    reason: str
    approver_id: UUID | None


class SalaryChangeService(BaseService[SalaryRecord]):
    """
    Validate and apply salary changes.

    Non-goals:
        - Does NOT commit, roll back or retry.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        policy: SalaryPolicy | None = None,
        audit_recorder: AuditRecorder | None = None,
    ):
        super().__init__(session, clock)
        self._policy = policy or DEFAULT_SALARY_POLICY
        self._audit = audit_recorder or AuditRecorder(session, self._clock)

    @property
    def policy(self) -> SalaryPolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def change_salary(
        self,
        employee_id: UUID,
        new_salary: Any,
        reason: str,
        approver_id: UUID | None = None,
        *,
        acting_user: str,
        effective_date: date | None = None,
    ) -> SalaryRecordInfo:
        """
        Change one employee's salary.

        Args:
            employee_id: Target employee.
            new_salary: Proposed salary (Decimal, int or numeric string).
            reason: Free-text reason stored on the history record.
            approver_id: Optional approving employee.
            acting_user: Who is making the change.
            effective_date: change_date of the history record (default: today).

        Returns:
            The appended SalaryRecord as a DTO.
        """
        actor = require_text("acting_user", acting_user, max_length=100)
        employee = self._load_for_update(employee_id)
        prepared = self.prepare(employee_id, employee, new_salary, reason, approver_id)
        return self.apply(
            employee, prepared, acting_user=actor, effective_date=effective_date
        )

    def prepare(
        self,
        employee_id: UUID,
        employee: Employee | None,
        new_salary: Any,
        reason: str,
        approver_id: UUID | None = None,
    ) -> PreparedSalaryChange:
        """Run every gate without writing anything."""
        try:
            amount, pct = validate_salary_change(
                employee_id,
                person_ref(employee),
                new_salary,
                self._policy,
                approver_id=approver_id,
                approver=load_person(self.session, approver_id),
            )
            text = require_text("reason", reason, max_length=500)
        except HrKernelError as exc:
            logger.warning(
                "salary_change_rejected",
                extra={
                    "employee_id": str(employee_id),
                    "error_code": exc.code,
                    "error_kind": exc.kind,
                    "requested_salary": str(new_salary),
                },
            )
            raise

        return PreparedSalaryChange(
            employee_id=employee.id,
            previous_salary=employee.salary,
            new_salary=amount,
            percent_change=pct,
            reason=text,
            approver_id=approver_id,
        )

    def apply(
        self,
        employee: Employee,
        prepared: PreparedSalaryChange,
        *,
        acting_user: str,
        effective_date: date | None = None,
    ) -> SalaryRecordInfo:
        """Write a prepared change: employee row, history, audit."""
        now = self._clock.now()
        employee.salary = prepared.new_salary
        employee.updated_at = now
        employee.updated_by = acting_user
        # Version check happens here; a stale row raises before history is added.
        self.session.flush()

        record = self._append_record(
            employee_id=employee.id,
            previous_salary=prepared.previous_salary,
            new_salary=prepared.new_salary,
            change_date=effective_date or now.date(),
            reason=prepared.reason,
            approver_id=prepared.approver_id,
            acting_user=acting_user,
        )

        self._audit.record_changes(
            "Employee",
            employee.id,
            AuditAction.UPDATE,
            [FieldChange.of("salary", prepared.previous_salary, prepared.new_salary)],
            actor=acting_user,
        )

        logger.info(
            "salary_changed",
            extra={
                "employee_id": str(employee.id),
                "salary_record_id": str(record.id),
                "sequence": record.sequence,
                "previous_salary": str(prepared.previous_salary),
                "new_salary": str(prepared.new_salary),
                "percent_change": str(round(prepared.percent_change, 2)),
                "approver_id": str(prepared.approver_id) if prepared.approver_id else None,
            },
        )
        return record.to_dto()

    def record_initial_salary(
        self,
        employee: Employee,
        *,
        acting_user: str,
        reason: str = INITIAL_SALARY_REASON,
    ) -> SalaryRecordInfo:
        """
        Seed the first history record for a new hire.

        previous_salary is NULL and the change is dated on the hire date.
        There is no prior value, so the no-op and policy-band gates do not
        apply; the amount must still be positive.
        """
        amount = require_positive_amount("salary", employee.salary)
        record = self._append_record(
            employee_id=employee.id,
            previous_salary=None,
            new_salary=amount,
            change_date=employee.hire_date,
            reason=reason,
            approver_id=None,
            acting_user=acting_user,
        )
        logger.info(
            "initial_salary_recorded",
            extra={
                "employee_id": str(employee.id),
                "salary_record_id": str(record.id),
                "new_salary": str(amount),
            },
        )
        return record.to_dto()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load_for_update(self, employee_id: UUID) -> Employee | None:
        stmt = (
            select(Employee)
            .where(Employee.id == employee_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def _next_sequence(self, employee_id: UUID) -> int:
        stmt = select(func.coalesce(func.max(SalaryRecord.sequence), 0)).where(
            SalaryRecord.employee_id == employee_id
        )
        return int(self.session.execute(stmt).scalar_one()) + 1

    def _append_record(
        self,
        employee_id: UUID,
        previous_salary: Decimal | None,
        new_salary: Decimal,
        change_date: date,
        reason: str,
        approver_id: UUID | None,
        acting_user: str,
    ) -> SalaryRecord:
        record = SalaryRecord(
            employee_id=employee_id,
            sequence=self._next_sequence(employee_id),
            previous_salary=previous_salary,
            new_salary=new_salary,
            change_date=change_date,
            reason=reason,
            approver_id=approver_id,
            created_at=self._clock.now(),
            created_by=acting_user,
        )
        self.session.add(record)
        self.session.flush()
        return record
