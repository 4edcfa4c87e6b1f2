"""
Module: hr_kernel.selectors.employee_selector
Responsibility: Employee lookups and reporting-hierarchy reads.
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from sqlalchemy import select

from hr_kernel.domain.dtos import EmployeeInfo
from hr_kernel.domain.validation import DEFAULT_MAX_MANAGER_DEPTH
from hr_kernel.exceptions import EmployeeNotFoundError
from hr_kernel.models.employee import Employee
from hr_kernel.selectors.base import BaseSelector


class EmployeeSelector(BaseSelector[Employee]):
    """Selector for employees and the management hierarchy."""

    def _require(self, employee_id: UUID) -> Employee:
        employee = self.session.get(Employee, employee_id)
        if employee is None:
            raise EmployeeNotFoundError(str(employee_id))
        return employee

    def get(self, employee_id: UUID) -> EmployeeInfo:
        return self._require(employee_id).to_dto()

    def list_active(self, department_id: UUID | None = None) -> list[EmployeeInfo]:
        stmt = select(Employee).where(Employee.is_active.is_(True))
        if department_id is not None:
            stmt = stmt.where(Employee.department_id == department_id)
        stmt = stmt.order_by(Employee.last_name, Employee.first_name)
        return [e.to_dto() for e in self.session.execute(stmt).scalars()]

    def direct_reports(self, manager_id: UUID, include_inactive: bool = False) -> list[EmployeeInfo]:
        """Employees whose manager is ``manager_id``, by name."""
        self._require(manager_id)
        stmt = select(Employee).where(Employee.manager_id == manager_id)
        if not include_inactive:
            stmt = stmt.where(Employee.is_active.is_(True))
        stmt = stmt.order_by(Employee.last_name, Employee.first_name)
        return [e.to_dto() for e in self.session.execute(stmt).scalars()]

    def reporting_chain(
        self, employee_id: UUID, max_depth: int = DEFAULT_MAX_MANAGER_DEPTH
    ) -> list[EmployeeInfo]:
        """
        Managers above ``employee_id``, nearest first.

        The walk stops after ``max_depth`` levels; the manager chain is kept
        acyclic on write, the cap only bounds the read.
        """
        employee = self._require(employee_id)
        chain: list[EmployeeInfo] = []
        seen = {employee.id}
        manager_id = employee.manager_id
        while manager_id is not None and len(chain) < max_depth and manager_id not in seen:
            manager = self._require(manager_id)
            chain.append(manager.to_dto())
            seen.add(manager.id)
            manager_id = manager.manager_id
        return chain
