"""
Module: hr_kernel.selectors.audit_log_selector
Responsibility: Filtered, paginated reads of the audit log.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Newest first; entries written in the same instant are ordered by
      insertion (the integer primary key), newest first.
    - Page numbers below 1 become 1.  Page sizes outside 1..max_page_size
      fall back to the default page size.
    - With no explicit window the query covers the last
      ``default_window_days`` days up to now.

Audit relevance:
    The canonical read path for "who changed what, when".
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from math import ceil

from sqlalchemy import func, select

from hr_kernel.domain.clock import Clock
from hr_kernel.domain.dtos import AuditEntryInfo, AuditPage
from hr_kernel.exceptions import InvalidValueError
from hr_kernel.models.audit_entry import AuditAction, AuditEntry
from hr_kernel.selectors.base import BaseSelector

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100
DEFAULT_WINDOW_DAYS = 30


def _window_start(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def _window_end(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.max, tzinfo=timezone.utc)


class AuditLogSelector(BaseSelector[AuditEntry]):
    """
    Selector for the audit log.

    A bare ``date`` bound covers the whole day; a ``datetime`` bound is used
    as given.  Both bounds are inclusive.
    """

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
        default_window_days: int = DEFAULT_WINDOW_DAYS,
    ):
        super().__init__(session, clock)
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size
        self._default_window_days = default_window_days

    def _page_size(self, page_size: int | None) -> int:
        if page_size is None or page_size < 1 or page_size > self._max_page_size:
            return self._default_page_size
        return page_size

    def query(
        self,
        start: date | datetime | None = None,
        end: date | datetime | None = None,
        entity_type: str | None = None,
        action: AuditAction | str | None = None,
        actor: str | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> AuditPage:
        """
        Filter and paginate the audit log.

        Args:
            start: Inclusive lower bound (default: now - window).
            end: Inclusive upper bound (default: now).
            entity_type: Exact entity type, e.g. "Employee".
            action: INSERT, UPDATE or DELETE.
            actor: Case-insensitive substring of the acting user.
            page: 1-based page number.
            page_size: Entries per page.

        Returns:
            AuditPage with the page's entries and overall counts.
        """
        now = self._clock.now()
        start_at = _window_start(start) if start is not None else now - timedelta(
            days=self._default_window_days
        )
        end_at = _window_end(end) if end is not None else now

        page = max(page or 1, 1)
        size = self._page_size(page_size)

        conditions = [AuditEntry.occurred_at >= start_at, AuditEntry.occurred_at <= end_at]
        if entity_type:
            conditions.append(AuditEntry.entity_type == entity_type)
        if action:
            try:
                conditions.append(AuditEntry.action == AuditAction(action).value)
            except ValueError:
                raise InvalidValueError("action", action, "must be INSERT, UPDATE or DELETE")
        if actor:
            conditions.append(
                func.lower(AuditEntry.actor).contains(actor.lower(), autoescape=True)
            )

        total = self.session.execute(
            select(func.count(AuditEntry.id)).where(*conditions)
        ).scalar_one()

        entries = self.session.execute(
            select(AuditEntry)
            .where(*conditions)
            .order_by(AuditEntry.occurred_at.desc(), AuditEntry.id.desc())
            .offset((page - 1) * size)
            .limit(size)
        ).scalars()

        return AuditPage(
            entries=tuple(e.to_dto() for e in entries),
            total_count=total,
            total_pages=ceil(total / size) if total else 0,
            page=page,
            page_size=size,
        )

    def history_for(self, entity_type: str, record_id) -> list[AuditEntryInfo]:
        """Every entry for one entity, oldest first, regardless of age."""
        entries = self.session.execute(
            select(AuditEntry)
            .where(
                AuditEntry.entity_type == entity_type,
                AuditEntry.record_id == str(record_id),
            )
            .order_by(AuditEntry.occurred_at, AuditEntry.id)
        ).scalars()
        return [e.to_dto() for e in entries]
