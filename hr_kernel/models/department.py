"""
Module: hr_kernel.models.department
Responsibility: ORM persistence for organisational departments.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - name is unique (uq_department_name).
    - budget, when present, is positive (ck_department_budget_positive).

Audit relevance:
    Department creation and updates write AuditEntry rows through
    DepartmentService.  A department head cannot be soft-deleted while
    heading the department.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from hr_kernel.db.base import TrackedBase, UUIDString


class Department(TrackedBase):
    """
    A department employees and projects belong to.

    Guarantees:
        - name is unique across all departments.
        - head_id references an Employee; the reference is a plain pointer,
          it is not ownership.
    """

    __tablename__ = "departments"

    __table_args__ = (
        UniqueConstraint("name", name="uq_department_name"),
        CheckConstraint(
            "budget IS NULL OR budget > 0",
            name="ck_department_budget_positive",
        ),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Employees reference departments too; the cycle is broken with use_alter.
    head_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("employees.id", use_alter=True, name="fk_department_head"),
        nullable=True,
    )

    budget: Mapped[Decimal | None] = mapped_column(nullable=True)

    location: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<Department {self.name}>"
