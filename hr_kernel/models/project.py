"""
Module: hr_kernel.models.project
Responsibility: ORM persistence for department projects.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - budget, when present, is positive.
    - end_date, when present, is on or after start_date.
    - status is one of ProjectStatus.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hr_kernel.db.base import TrackedBase, UUIDString
from hr_kernel.domain.values import ProjectStatus


class Project(TrackedBase):
    """A project owned by a department."""

    __tablename__ = "projects"

    __table_args__ = (
        CheckConstraint(
            "budget IS NULL OR budget > 0",
            name="ck_project_budget_positive",
        ),
        CheckConstraint(
            "end_date IS NULL OR end_date >= start_date",
            name="ck_project_dates",
        ),
        Index("idx_project_department", "department_id"),
        Index("idx_project_status", "status"),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)

    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    budget: Mapped[Decimal | None] = mapped_column(nullable=True)

    status: Mapped[ProjectStatus] = mapped_column(
        String(20),
        nullable=False,
        default=ProjectStatus.PLANNING,
    )

    department_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("departments.id"),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Project {self.name} {self.status}>"
