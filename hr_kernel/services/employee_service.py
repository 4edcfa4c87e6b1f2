"""
EmployeeService -- employee lifecycle: hire, update, soft delete.

Responsibility:
    Creates employees (seeding the first SalaryRecord through
    SalaryChangeService), applies partial updates (routing any salary change
    through the same service and its gates), and soft-deletes employees.

Architecture position:
    Kernel > Services -- flush-only, called inside the caller's transaction.

Invariants enforced:
    - Every field is validated before the first write of the call.
    - email unique; department exists; manager is an active employee and
      the management chain stays acyclic.
    - A salary change made through update_employee obeys the full salary
      policy; there is no second, looser path.
    - Soft delete only: is_active is cleared, rows are never removed.  It is
      refused while the employee has active direct reports or heads a
      department.

Audit relevance:
    INSERT on hire (full snapshot), UPDATE with the changed fields, DELETE
    with is_active True -> False on soft delete.
"""

from __future__ import annotations

from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from hr_kernel.domain.clock import Clock
from hr_kernel.domain.dtos import EmployeeInfo
from hr_kernel.domain.policy import SalaryPolicy
from hr_kernel.domain.validation import (
    DEFAULT_MAX_MANAGER_DEPTH,
    check_manager_chain,
    require_active_employee,
    require_active_reference,
    require_positive_amount,
    require_text,
    to_money,
    validate_date_of_birth,
    validate_email,
    validate_hire_date,
)
from hr_kernel.exceptions import (
    DepartmentNotFoundError,
    DuplicateValueError,
    EmployeeHasDependentsError,
    EmployeeNotFoundError,
    InactiveEntityError,
)
from hr_kernel.logging_config import get_logger
from hr_kernel.models.audit_entry import AuditAction
from hr_kernel.models.department import Department
from hr_kernel.models.employee import Employee
from hr_kernel.services.audit_recorder import AuditRecorder
from hr_kernel.services.base import UNSET, BaseService, load_person
from hr_kernel.services.salary_change_service import SalaryChangeService

logger = get_logger("services.employee")

DEFAULT_UPDATE_SALARY_REASON = "Employee record update"

_AUDITED_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "date_of_birth",
    "hire_date",
    "department_id",
    "manager_id",
    "job_title",
    "salary",
    "is_active",
)


def _snapshot(employee: Employee, fields=_AUDITED_FIELDS) -> dict[str, Any]:
    return {name: getattr(employee, name) for name in fields}


class EmployeeService(BaseService[Employee]):
    """
    Service for the employee lifecycle.

    All public methods return EmployeeInfo DTOs, not ORM entities.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        policy: SalaryPolicy | None = None,
        audit_recorder: AuditRecorder | None = None,
        salary_service: SalaryChangeService | None = None,
        max_manager_depth: int = DEFAULT_MAX_MANAGER_DEPTH,
    ):
        super().__init__(session, clock)
        self._audit = audit_recorder or AuditRecorder(session, self._clock)
        self._salary = salary_service or SalaryChangeService(
            session, self._clock, policy=policy, audit_recorder=self._audit
        )
        self._max_manager_depth = max_manager_depth

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _get_by_id(self, employee_id: UUID, for_update: bool = False) -> Employee:
        stmt = select(Employee).where(Employee.id == employee_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        employee = self.session.execute(stmt).scalar_one_or_none()
        if employee is None:
            raise EmployeeNotFoundError(str(employee_id))
        return employee

    def _require_department(self, department_id: UUID) -> None:
        if self.session.get(Department, department_id) is None:
            raise DepartmentNotFoundError(str(department_id))

    def _require_unique_email(self, email: str, exclude_id: UUID | None = None) -> None:
        stmt = select(Employee.id).where(func.lower(Employee.email) == email)
        if exclude_id is not None:
            stmt = stmt.where(Employee.id != exclude_id)
        if self.session.execute(stmt).first() is not None:
            raise DuplicateValueError("Employee", "email", email)

    def _manager_of(self, employee_id: UUID) -> UUID | None:
        return self.session.execute(
            select(Employee.manager_id).where(Employee.id == employee_id)
        ).scalar_one_or_none()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_employee(
        self,
        first_name: str,
        last_name: str,
        email: str,
        hire_date: date,
        department_id: UUID,
        job_title: str,
        salary: Any,
        *,
        acting_user: str,
        phone: str | None = None,
        date_of_birth: date | None = None,
        manager_id: UUID | None = None,
    ) -> EmployeeInfo:
        """
        Hire an employee.

        Writes the Employee row, the initial SalaryRecord (previous salary
        NULL, dated on the hire date, reason "Initial salary") and an INSERT
        audit entry, all in the caller's transaction.

        Raises:
            InvalidValueError: blank names, malformed email, non-positive
                salary, future hire date, date of birth not in the past.
            DuplicateValueError: email already in use.
            DepartmentNotFoundError: unknown department.
            InvalidReferenceError: manager missing or inactive.
        """
        actor = require_text("acting_user", acting_user, max_length=100)
        today = self._clock.today()

        first = require_text("first_name", first_name, max_length=50)
        last = require_text("last_name", last_name, max_length=50)
        address = validate_email(email)
        self._require_unique_email(address)
        self._require_department(department_id)
        if manager_id is not None:
            require_active_reference(
                "manager_id", manager_id, load_person(self.session, manager_id)
            )
        amount = require_positive_amount("salary", salary)
        validate_hire_date(hire_date, today)
        validate_date_of_birth(date_of_birth, today)
        title = require_text("job_title", job_title, max_length=100)

        employee = Employee(
            first_name=first,
            last_name=last,
            email=address,
            phone=require_text("phone", phone, max_length=20) if phone and phone.strip() else None,
            date_of_birth=date_of_birth,
            hire_date=hire_date,
            department_id=department_id,
            manager_id=manager_id,
            job_title=title,
            salary=amount,
            is_active=True,
            created_by=actor,
        )
        self.session.add(employee)
        self.session.flush()

        self._salary.record_initial_salary(employee, acting_user=actor)
        self._audit.record(
            "Employee", employee.id, AuditAction.INSERT,
            None, _snapshot(employee),
            actor=actor,
        )

        logger.info(
            "employee_created",
            extra={
                "employee_id": str(employee.id),
                "department_id": str(department_id),
                "manager_id": str(manager_id) if manager_id else None,
            },
        )
        return employee.to_dto()

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update_employee(
        self,
        employee_id: UUID,
        *,
        acting_user: str,
        first_name: str | None = None,
        last_name: str | None = None,
        email: str | None = None,
        phone: str | None = None,
        department_id: UUID | None = None,
        manager_id: UUID | None | Any = UNSET,
        job_title: str | None = None,
        salary: Any = None,
        salary_reason: str | None = None,
        approver_id: UUID | None = None,
    ) -> EmployeeInfo:
        """
        Partially update an employee.

        Only supplied fields change.  ``manager_id=None`` clears the manager;
        leaving it out keeps it.  A salary that differs from the current one
        goes through SalaryChangeService (history record, salary audit
        entry, full policy band); an equal salary is simply not a change.

        Raises:
            EmployeeNotFoundError, InactiveEntityError, InvalidValueError,
            DuplicateValueError, DepartmentNotFoundError,
            InvalidReferenceError, CyclicManagementError, and any salary
            gate error.
        """
        actor = require_text("acting_user", acting_user, max_length=100)
        employee = self._get_by_id(employee_id, for_update=True)
        if not employee.is_active:
            raise InactiveEntityError("Employee", str(employee_id))

        updates: dict[str, Any] = {}
        if first_name is not None:
            updates["first_name"] = require_text("first_name", first_name, max_length=50)
        if last_name is not None:
            updates["last_name"] = require_text("last_name", last_name, max_length=50)
        if email is not None:
            address = validate_email(email)
            if address != employee.email:
                self._require_unique_email(address, exclude_id=employee.id)
            updates["email"] = address
        if phone is not None:
            updates["phone"] = (
                require_text("phone", phone, max_length=20) if phone.strip() else None
            )
        if department_id is not None:
            self._require_department(department_id)
            updates["department_id"] = department_id
        if manager_id is not UNSET:
            if manager_id is not None:
                check_manager_chain(
                    employee.id, manager_id, self._manager_of, self._max_manager_depth
                )
                require_active_reference(
                    "manager_id", manager_id, load_person(self.session, manager_id)
                )
            updates["manager_id"] = manager_id
        if job_title is not None:
            updates["job_title"] = require_text("job_title", job_title, max_length=100)

        prepared_salary = None
        if salary is not None and to_money("salary", salary) != employee.salary:
            prepared_salary = self._salary.prepare(
                employee.id,
                employee,
                salary,
                salary_reason or DEFAULT_UPDATE_SALARY_REASON,
                approver_id,
            )

        # All gates passed; start writing.
        before = _snapshot(employee, tuple(updates))
        changed = {k: v for k, v in updates.items() if before[k] != v}
        if changed:
            for name, value in changed.items():
                setattr(employee, name, value)
            employee.updated_at = self._clock.now()
            employee.updated_by = actor
            self.session.flush()
            self._audit.record(
                "Employee", employee.id, AuditAction.UPDATE,
                {k: before[k] for k in changed}, changed,
                actor=actor,
            )

        if prepared_salary is not None:
            self._salary.apply(employee, prepared_salary, acting_user=actor)

        if changed or prepared_salary is not None:
            logger.info(
                "employee_updated",
                extra={
                    "employee_id": str(employee.id),
                    "changed_fields": sorted(changed)
                    + (["salary"] if prepared_salary is not None else []),
                },
            )
        return employee.to_dto()

    # ------------------------------------------------------------------
    # Soft delete
    # ------------------------------------------------------------------

    def deactivate_employee(self, employee_id: UUID, *, acting_user: str) -> EmployeeInfo:
        """
        Soft-delete an employee (clear is_active).

        Raises:
            EmployeeNotFoundError: unknown employee.
            InactiveEntityError: already inactive.
            EmployeeHasDependentsError: has active direct reports or heads
                a department.
        """
        actor = require_text("acting_user", acting_user, max_length=100)
        employee = self._get_by_id(employee_id, for_update=True)
        require_active_employee(employee_id, load_person(self.session, employee.id))

        active_reports = self.session.execute(
            select(func.count(Employee.id)).where(
                Employee.manager_id == employee.id,
                Employee.is_active.is_(True),
            )
        ).scalar_one()
        headed = self.session.execute(
            select(func.count(Department.id)).where(Department.head_id == employee.id)
        ).scalar_one()
        if active_reports or headed:
            raise EmployeeHasDependentsError(str(employee.id), active_reports, headed)

        employee.is_active = False
        employee.updated_at = self._clock.now()
        employee.updated_by = actor
        self.session.flush()

        self._audit.record(
            "Employee", employee.id, AuditAction.DELETE,
            {"is_active": True}, {"is_active": False},
            actor=actor,
        )
        logger.info("employee_deactivated", extra={"employee_id": str(employee.id)})
        return employee.to_dto()
