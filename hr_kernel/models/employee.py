"""
Module: hr_kernel.models.employee
Responsibility: ORM persistence for employees, the subject of every salary
    change.
Architecture position: Kernel > Models.  May import from db/base.py; to_dto()
    imports domain/dtos.py lazily.  MUST NOT import from services/,
    selectors/, or outer layers.

Invariants enforced:
    - email is unique (uq_employee_email).
    - salary > 0 (ck_employee_salary_positive).
    - manager_id != id (ck_employee_not_self_managed).  Longer cycles are
      rejected by the bounded chain walk in domain/validation.py.
    - version is a SQLAlchemy version counter: every UPDATE is issued as
      ``... WHERE id = :id AND version = :expected`` and a mismatch raises
      StaleDataError.  Two transactions can therefore never both apply a
      salary change computed against the same stale salary.

Failure modes:
    - IntegrityError on duplicate email.
    - StaleDataError when a concurrent transaction already bumped version.

Audit relevance:
    Employee.salary is only ever written by SalaryChangeService.  Rows are
    soft-deleted (is_active = False), never physically removed, so every
    SalaryRecord and AuditEntry keeps a valid subject.
"""

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from hr_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from hr_kernel.domain.dtos import EmployeeInfo


class Employee(TrackedBase):
    """
    A person employed by the organisation.

    Guarantees:
        - salary is a positive Numeric(18, 2).
        - is_active is cleared on soft delete; rows are never removed.
        - version increases by one on every flushed UPDATE.

    Non-goals:
        - Does NOT validate salary changes; SalaryChangeService does.
    """

    __tablename__ = "employees"

    __table_args__ = (
        UniqueConstraint("email", name="uq_employee_email"),
        CheckConstraint("salary > 0", name="ck_employee_salary_positive"),
        CheckConstraint(
            "manager_id IS NULL OR manager_id <> id",
            name="ck_employee_not_self_managed",
        ),
        Index("idx_employee_department", "department_id"),
        Index("idx_employee_manager", "manager_id"),
        Index("idx_employee_active", "is_active"),
    )

    first_name: Mapped[str] = mapped_column(String(50), nullable=False)

    last_name: Mapped[str] = mapped_column(String(50), nullable=False)

    email: Mapped[str] = mapped_column(String(100), nullable=False)

    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)

    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)

    hire_date: Mapped[date] = mapped_column(Date, nullable=False)

    department_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("departments.id"),
        nullable=False,
    )

    # Weak back-reference up the management chain
    manager_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("employees.id"),
        nullable=True,
    )

    job_title: Mapped[str] = mapped_column(String(100), nullable=False)

    salary: Mapped[Decimal] = mapped_column(nullable=False)

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def years_of_service(self, as_of: date) -> int:
        """Whole years between hire_date and as_of."""
        years = as_of.year - self.hire_date.year
        if (as_of.month, as_of.day) < (self.hire_date.month, self.hire_date.day):
            years -= 1
        return max(years, 0)

    def to_dto(self) -> "EmployeeInfo":
        from hr_kernel.domain.dtos import EmployeeInfo

        return EmployeeInfo(
            id=self.id,
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            phone=self.phone,
            date_of_birth=self.date_of_birth,
            hire_date=self.hire_date,
            department_id=self.department_id,
            manager_id=self.manager_id,
            job_title=self.job_title,
            salary=self.salary,
            is_active=self.is_active,
            version=self.version,
        )

    def __repr__(self) -> str:
        return f"<Employee {self.email} active={self.is_active}>"
