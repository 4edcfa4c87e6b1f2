"""
Module: hr_kernel.models.performance_review
Responsibility: ORM persistence for performance reviews.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - reviewer_id != employee_id.
    - period_end >= period_start.
    - every rating is an integer from 1 to 5.

Audit relevance:
    Reviews feed the bonus and raise guidance reports.  They never mutate
    salaries; a raise always goes through SalaryChangeService.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from hr_kernel.db.base import TrackedBase, UUIDString
from hr_kernel.domain.values import RATING_FIELDS


def _rating_check(name: str) -> CheckConstraint:
    return CheckConstraint(
        f"{name} BETWEEN 1 AND 5", name=f"ck_review_{name}_range"
    )


class PerformanceReview(TrackedBase):
    """A review of one employee by another, covering a date period."""

    __tablename__ = "performance_reviews"

    __table_args__ = (
        CheckConstraint("reviewer_id <> employee_id", name="ck_review_not_self"),
        CheckConstraint("period_end >= period_start", name="ck_review_period"),
        *(_rating_check(name) for name in RATING_FIELDS),
        Index("idx_review_employee", "employee_id"),
        Index("idx_review_date", "review_date"),
    )

    employee_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("employees.id"), nullable=False
    )

    reviewer_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("employees.id"), nullable=False
    )

    review_date: Mapped[date] = mapped_column(Date, nullable=False)

    period_start: Mapped[date] = mapped_column(Date, nullable=False)

    period_end: Mapped[date] = mapped_column(Date, nullable=False)

    overall_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    technical_skills: Mapped[int] = mapped_column(Integer, nullable=False)
    communication: Mapped[int] = mapped_column(Integer, nullable=False)
    teamwork: Mapped[int] = mapped_column(Integer, nullable=False)
    leadership: Mapped[int] = mapped_column(Integer, nullable=False)

    comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    goals: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def ratings(self) -> dict[str, int]:
        return {name: getattr(self, name) for name in RATING_FIELDS}

    def __repr__(self) -> str:
        return f"<PerformanceReview {self.employee_id} {self.review_date}>"
