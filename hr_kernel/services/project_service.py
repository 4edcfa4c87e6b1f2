"""
ProjectService -- create and update department projects.

Invariants enforced:
    - name non-blank; department exists.
    - end_date on or after start_date; budget positive when given.
    - status is a ProjectStatus value.

Audit relevance:
    INSERT on create, UPDATE with the changed fields on update.
"""

from __future__ import annotations

from datetime import date
from typing import Any
from uuid import UUID

from hr_kernel.domain.dtos import ProjectInfo
from hr_kernel.domain.validation import (
    require_positive_amount,
    require_text,
    validate_date_order,
    validate_project_status,
)
from hr_kernel.domain.values import ProjectStatus
from hr_kernel.exceptions import DepartmentNotFoundError, ProjectNotFoundError
from hr_kernel.logging_config import get_logger
from hr_kernel.models.audit_entry import AuditAction
from hr_kernel.models.department import Department
from hr_kernel.models.project import Project
from hr_kernel.services.audit_recorder import AuditRecorder
from hr_kernel.services.base import UNSET, BaseService

logger = get_logger("services.project")

_AUDITED_FIELDS = (
    "name",
    "description",
    "start_date",
    "end_date",
    "budget",
    "status",
    "department_id",
)


def project_to_dto(project: Project) -> ProjectInfo:
    return ProjectInfo(
        id=project.id,
        name=project.name,
        description=project.description,
        start_date=project.start_date,
        end_date=project.end_date,
        budget=project.budget,
        status=ProjectStatus(project.status).value,
        department_id=project.department_id,
    )


class ProjectService(BaseService[Project]):
    """Project workflows.  Flush-only."""

    def __init__(self, session, clock=None, audit_recorder: AuditRecorder | None = None):
        super().__init__(session, clock)
        self._audit = audit_recorder or AuditRecorder(session, self._clock)

    def _require_department(self, department_id: UUID) -> None:
        if self.session.get(Department, department_id) is None:
            raise DepartmentNotFoundError(str(department_id))

    def create_project(
        self,
        name: str,
        department_id: UUID,
        start_date: date,
        *,
        acting_user: str,
        description: str | None = None,
        end_date: date | None = None,
        budget: Any = None,
        status: str | ProjectStatus = ProjectStatus.PLANNING,
    ) -> ProjectInfo:
        actor = require_text("acting_user", acting_user, max_length=100)
        clean_name = require_text("name", name, max_length=100)
        self._require_department(department_id)
        validate_date_order("start_date", start_date, "end_date", end_date)
        amount = require_positive_amount("budget", budget) if budget is not None else None
        project_status = validate_project_status(status)

        project = Project(
            name=clean_name,
            description=description,
            start_date=start_date,
            end_date=end_date,
            budget=amount,
            status=project_status.value,
            department_id=department_id,
            created_by=actor,
        )
        self.session.add(project)
        self.session.flush()

        self._audit.record(
            "Project", project.id, AuditAction.INSERT,
            None, {f: getattr(project, f) for f in _AUDITED_FIELDS},
            actor=actor,
        )
        logger.info(
            "project_created",
            extra={
                "project_id": str(project.id),
                "department_id": str(department_id),
                "status": project_status.value,
            },
        )
        return project_to_dto(project)

    def update_project(
        self,
        project_id: UUID,
        *,
        acting_user: str,
        name: str | None = None,
        description: str | None = None,
        start_date: date | None = None,
        end_date: date | None | Any = UNSET,
        budget: Any = UNSET,
        status: str | ProjectStatus | None = None,
        department_id: UUID | None = None,
    ) -> ProjectInfo:
        actor = require_text("acting_user", acting_user, max_length=100)
        project = self.session.get(Project, project_id)
        if project is None:
            raise ProjectNotFoundError(str(project_id))

        updates: dict[str, Any] = {}
        if name is not None:
            updates["name"] = require_text("name", name, max_length=100)
        if description is not None:
            updates["description"] = description.strip() or None
        if start_date is not None:
            updates["start_date"] = start_date
        if end_date is not UNSET:
            updates["end_date"] = end_date
        if budget is not UNSET:
            updates["budget"] = (
                require_positive_amount("budget", budget) if budget is not None else None
            )
        if status is not None:
            updates["status"] = validate_project_status(status).value
        if department_id is not None:
            self._require_department(department_id)
            updates["department_id"] = department_id

        validate_date_order(
            "start_date",
            updates.get("start_date", project.start_date),
            "end_date",
            updates.get("end_date", project.end_date),
        )

        before = {k: getattr(project, k) for k in updates}
        changed = {k: v for k, v in updates.items() if before[k] != v}
        if not changed:
            return project_to_dto(project)

        for field_name, value in changed.items():
            setattr(project, field_name, value)
        project.updated_at = self._clock.now()
        project.updated_by = actor
        self.session.flush()

        self._audit.record(
            "Project", project.id, AuditAction.UPDATE,
            {k: before[k] for k in changed}, changed,
            actor=actor,
        )
        logger.info(
            "project_updated",
            extra={"project_id": str(project.id), "changed_fields": sorted(changed)},
        )
        return project_to_dto(project)
