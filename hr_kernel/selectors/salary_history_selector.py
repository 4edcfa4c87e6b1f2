"""
Module: hr_kernel.selectors.salary_history_selector
Responsibility: Read-only access to an employee's salary history.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - History is returned newest first (highest sequence first); the
      per-employee sequence gives a total order even when two changes share
      a change_date.
"""

from uuid import UUID

from sqlalchemy import select

from hr_kernel.domain.dtos import SalaryRecordInfo
from hr_kernel.exceptions import EmployeeNotFoundError
from hr_kernel.models.employee import Employee
from hr_kernel.models.salary_record import SalaryRecord
from hr_kernel.selectors.base import BaseSelector


class SalaryHistorySelector(BaseSelector[SalaryRecord]):
    """Selector for salary history."""

    def for_employee(self, employee_id: UUID) -> list[SalaryRecordInfo]:
        """
        All salary records of one employee, newest first.

        Raises:
            EmployeeNotFoundError: unknown employee.  An employee that exists
                always has at least the record seeded at hire.
        """
        exists = self.session.execute(
            select(Employee.id).where(Employee.id == employee_id)
        ).first()
        if exists is None:
            raise EmployeeNotFoundError(str(employee_id))

        records = self.session.execute(
            select(SalaryRecord)
            .where(SalaryRecord.employee_id == employee_id)
            .order_by(SalaryRecord.sequence.desc())
        ).scalars()
        return [r.to_dto() for r in records]

    def latest(self, employee_id: UUID) -> SalaryRecordInfo | None:
        record = self.session.execute(
            select(SalaryRecord)
            .where(SalaryRecord.employee_id == employee_id)
            .order_by(SalaryRecord.sequence.desc())
            .limit(1)
        ).scalar_one_or_none()
        return record.to_dto() if record is not None else None
