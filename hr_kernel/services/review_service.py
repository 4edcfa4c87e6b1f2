"""
ReviewService -- record performance reviews.

Invariants enforced:
    - employee and reviewer are active employees, and differ.
    - five ratings, each an integer 1..5.
    - period_end >= period_start, review_date >= period_end.
    - review periods for one employee never overlap.

Audit relevance:
    INSERT audit entry per review.  Reviews never change a salary.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from uuid import UUID

from sqlalchemy import select

from hr_kernel.domain.dtos import PerformanceReviewInfo
from hr_kernel.domain.validation import (
    periods_overlap,
    require_active_employee,
    require_active_reference,
    require_text,
    validate_ratings,
    validate_review_dates,
)
from hr_kernel.domain.values import RATING_FIELDS
from hr_kernel.exceptions import InvalidValueError
from hr_kernel.logging_config import get_logger
from hr_kernel.models.audit_entry import AuditAction
from hr_kernel.models.performance_review import PerformanceReview
from hr_kernel.services.audit_recorder import AuditRecorder
from hr_kernel.services.base import BaseService, load_person

logger = get_logger("services.review")


def review_to_dto(review: PerformanceReview) -> PerformanceReviewInfo:
    return PerformanceReviewInfo(
        id=review.id,
        employee_id=review.employee_id,
        reviewer_id=review.reviewer_id,
        review_date=review.review_date,
        period_start=review.period_start,
        period_end=review.period_end,
        comments=review.comments,
        goals=review.goals,
        **review.ratings,
    )


class ReviewService(BaseService[PerformanceReview]):
    """Performance review workflow.  Flush-only."""

    def __init__(self, session, clock=None, audit_recorder: AuditRecorder | None = None):
        super().__init__(session, clock)
        self._audit = audit_recorder or AuditRecorder(session, self._clock)

    def create_review(
        self,
        employee_id: UUID,
        reviewer_id: UUID,
        review_date: date,
        period_start: date,
        period_end: date,
        ratings: Mapping[str, int],
        *,
        acting_user: str,
        comments: str | None = None,
        goals: str | None = None,
    ) -> PerformanceReviewInfo:
        """
        Record a review of ``employee_id`` by ``reviewer_id``.

        Raises:
            EmployeeNotFoundError / InactiveEntityError: bad subject.
            InvalidReferenceError: reviewer missing or inactive.
            InvalidValueError: self-review, bad rating, bad dates, or a
                period overlapping an existing review of the same employee.
        """
        actor = require_text("acting_user", acting_user, max_length=100)
        require_active_employee(employee_id, load_person(self.session, employee_id))
        if reviewer_id == employee_id:
            raise InvalidValueError("reviewer_id", reviewer_id, "an employee cannot review themselves")
        require_active_reference("reviewer_id", reviewer_id, load_person(self.session, reviewer_id))
        clean_ratings = validate_ratings(ratings)
        validate_review_dates(review_date, period_start, period_end)

        existing = self.session.execute(
            select(PerformanceReview.period_start, PerformanceReview.period_end).where(
                PerformanceReview.employee_id == employee_id
            )
        ).all()
        for start, end in existing:
            if periods_overlap(period_start, period_end, start, end):
                raise InvalidValueError(
                    "period_start",
                    period_start,
                    f"overlaps an existing review period {start.isoformat()}..{end.isoformat()}",
                )

        review = PerformanceReview(
            employee_id=employee_id,
            reviewer_id=reviewer_id,
            review_date=review_date,
            period_start=period_start,
            period_end=period_end,
            comments=comments,
            goals=goals,
            created_by=actor,
            **clean_ratings,
        )
        self.session.add(review)
        self.session.flush()

        snapshot = {
            "employee_id": employee_id,
            "reviewer_id": reviewer_id,
            "review_date": review_date,
            "period_start": period_start,
            "period_end": period_end,
            **{name: clean_ratings[name] for name in RATING_FIELDS},
        }
        self._audit.record(
            "PerformanceReview", review.id, AuditAction.INSERT, None, snapshot, actor=actor
        )
        logger.info(
            "performance_review_created",
            extra={
                "review_id": str(review.id),
                "employee_id": str(employee_id),
                "reviewer_id": str(reviewer_id),
                "overall_rating": clean_ratings["overall_rating"],
            },
        )
        return review_to_dto(review)
