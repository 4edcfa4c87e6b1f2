"""
Module: hr_kernel.models.salary_record
Responsibility: ORM persistence for salary history.  One row per realised
    salary transition of one employee.
Architecture position: Kernel > Models.  May import from db/base.py; to_dto()
    imports domain/ lazily.

Invariants enforced:
    - Exactly one SalaryRecord per realised salary change (written only by
      SalaryChangeService, in the same transaction as the Employee update).
    - (employee_id, sequence) is unique; sequence is 1-based and gapless per
      employee, so history is totally ordered even within one day.
    - new_salary > 0; previous_salary is NULL only on the initial record
      (sequence 1) and positive otherwise.
    - Append-only: db/immutability.py rejects UPDATE and DELETE.

Failure modes:
    - IntegrityError on a duplicate (employee_id, sequence), which can only
      happen if two transactions bypass the Employee version check.
    - ImmutabilityViolationError on any ORM update/delete attempt.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from hr_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from hr_kernel.domain.dtos import SalaryRecordInfo


class SalaryRecord(Base):
    """
    Immutable salary history entry.

    Guarantees:
        - previous_salary is None iff this is the employee's first record.
        - Never updated or deleted once flushed.
    """

    __tablename__ = "salary_records"

    __table_args__ = (
        UniqueConstraint(
            "employee_id", "sequence", name="uq_salary_record_sequence"
        ),
        CheckConstraint("new_salary > 0", name="ck_salary_record_new_positive"),
        CheckConstraint(
            "previous_salary IS NULL OR previous_salary > 0",
            name="ck_salary_record_previous_positive",
        ),
        Index("idx_salary_record_employee", "employee_id"),
        Index("idx_salary_record_change_date", "change_date"),
    )

    employee_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("employees.id"), nullable=False
    )

    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    previous_salary: Mapped[Decimal | None] = mapped_column(nullable=True)

    new_salary: Mapped[Decimal] = mapped_column(nullable=False)

    change_date: Mapped[date] = mapped_column(Date, nullable=False)

    reason: Mapped[str] = mapped_column(Text, nullable=False)

    approver_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("employees.id"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    created_by: Mapped[str] = mapped_column(String(100), nullable=False)

    @property
    def is_initial(self) -> bool:
        return self.previous_salary is None

    def to_dto(self) -> "SalaryRecordInfo":
        """Convert ORM model to frozen domain DTO."""
        from hr_kernel.domain.dtos import SalaryRecordInfo

        return SalaryRecordInfo(
            id=self.id,
            employee_id=self.employee_id,
            sequence=self.sequence,
            previous_salary=self.previous_salary,
            new_salary=self.new_salary,
            change_date=self.change_date,
            reason=self.reason,
            approver_id=self.approver_id,
            created_by=self.created_by,
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        return (
            f"<SalaryRecord {self.employee_id}#{self.sequence} "
            f"{self.previous_salary} -> {self.new_salary}>"
        )
