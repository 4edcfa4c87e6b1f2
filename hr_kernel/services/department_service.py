"""
DepartmentService -- create and update departments.

Invariants enforced:
    - name non-blank and unique (case-insensitive).
    - budget, when given, is a positive amount.
    - head, when given, is an active employee.

Audit relevance:
    INSERT on create, UPDATE with the changed fields on update.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import func, select

from hr_kernel.domain.dtos import DepartmentInfo
from hr_kernel.domain.validation import (
    require_active_reference,
    require_positive_amount,
    require_text,
)
from hr_kernel.exceptions import DepartmentNotFoundError, DuplicateValueError
from hr_kernel.logging_config import get_logger
from hr_kernel.models.audit_entry import AuditAction
from hr_kernel.models.department import Department
from hr_kernel.services.audit_recorder import AuditRecorder
from hr_kernel.services.base import UNSET, BaseService, load_person

logger = get_logger("services.department")

_AUDITED_FIELDS = ("name", "head_id", "budget", "location")


def department_to_dto(department: Department) -> DepartmentInfo:
    return DepartmentInfo(
        id=department.id,
        name=department.name,
        head_id=department.head_id,
        budget=department.budget,
        location=department.location,
    )


class DepartmentService(BaseService[Department]):
    """Department workflows.  Flush-only."""

    def __init__(self, session, clock=None, audit_recorder: AuditRecorder | None = None):
        super().__init__(session, clock)
        self._audit = audit_recorder or AuditRecorder(session, self._clock)

    def _require_unique_name(self, name: str, exclude_id: UUID | None = None) -> None:
        stmt = select(Department.id).where(func.lower(Department.name) == name.lower())
        if exclude_id is not None:
            stmt = stmt.where(Department.id != exclude_id)
        if self.session.execute(stmt).first() is not None:
            raise DuplicateValueError("Department", "name", name)

    def _check_head(self, head_id: UUID | None) -> None:
        if head_id is not None:
            require_active_reference("head_id", head_id, load_person(self.session, head_id))

    def create_department(
        self,
        name: str,
        *,
        acting_user: str,
        head_id: UUID | None = None,
        budget: Any = None,
        location: str | None = None,
    ) -> DepartmentInfo:
        actor = require_text("acting_user", acting_user, max_length=100)
        clean_name = require_text("name", name, max_length=100)
        self._require_unique_name(clean_name)
        self._check_head(head_id)
        amount = require_positive_amount("budget", budget) if budget is not None else None

        department = Department(
            name=clean_name,
            head_id=head_id,
            budget=amount,
            location=location.strip() if location else None,
            created_by=actor,
        )
        self.session.add(department)
        self.session.flush()

        self._audit.record(
            "Department", department.id, AuditAction.INSERT,
            None, {f: getattr(department, f) for f in _AUDITED_FIELDS},
            actor=actor,
        )
        logger.info(
            "department_created",
            extra={"department_id": str(department.id), "department_name": clean_name},
        )
        return department_to_dto(department)

    def update_department(
        self,
        department_id: UUID,
        *,
        acting_user: str,
        name: str | None = None,
        head_id: UUID | None | Any = UNSET,
        budget: Any = UNSET,
        location: str | None = None,
    ) -> DepartmentInfo:
        """
        Partially update a department.

        ``head_id`` and ``budget`` accept None to clear them; omit them to
        leave them unchanged.
        """
        actor = require_text("acting_user", acting_user, max_length=100)
        department = self.session.get(Department, department_id)
        if department is None:
            raise DepartmentNotFoundError(str(department_id))

        updates: dict[str, Any] = {}
        if name is not None:
            clean_name = require_text("name", name, max_length=100)
            self._require_unique_name(clean_name, exclude_id=department.id)
            updates["name"] = clean_name
        if head_id is not UNSET:
            self._check_head(head_id)
            updates["head_id"] = head_id
        if budget is not UNSET:
            updates["budget"] = (
                require_positive_amount("budget", budget) if budget is not None else None
            )
        if location is not None:
            updates["location"] = location.strip() or None

        before = {k: getattr(department, k) for k in updates}
        changed = {k: v for k, v in updates.items() if before[k] != v}
        if not changed:
            return department_to_dto(department)

        for field_name, value in changed.items():
            setattr(department, field_name, value)
        department.updated_at = self._clock.now()
        department.updated_by = actor
        self.session.flush()

        self._audit.record(
            "Department", department.id, AuditAction.UPDATE,
            {k: before[k] for k in changed}, changed,
            actor=actor,
        )
        logger.info(
            "department_updated",
            extra={"department_id": str(department.id), "changed_fields": sorted(changed)},
        )
        return department_to_dto(department)
