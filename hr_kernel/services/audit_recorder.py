"""
AuditRecorder -- generic before/after capture for any mutated entity.

Responsibility:
    Writes one AuditEntry per logical mutation, carrying a structured field
    diff (``[{field, old_value, new_value}]``), the explicit acting user and
    a clock timestamp.

Architecture position:
    Kernel > Services -- called by SalaryChangeService, EmployeeService,
    DepartmentService, ProjectService and ReviewService inside their
    callers' transactions.

Invariants enforced:
    - Not best-effort: a failed audit write propagates to the caller, so the
      enclosing transaction rolls back together with the mutation it
      describes.  There is no try/except-and-continue path here.
    - Append-only: entries are only ever added (see db/immutability.py).
    - The actor is always an explicit argument, never ambient state.

Failure modes:
    - InvalidValueError for an unknown action or a blank actor.
    - SQLAlchemyError from the flush, re-raised unchanged.

Audit relevance:
    This IS the audit writer.  Reads go through AuditLogSelector.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from hr_kernel.domain.changes import (
    FieldChange,
    changes_to_json,
    diff_snapshots,
)
from hr_kernel.domain.dtos import AuditEntryInfo
from hr_kernel.domain.validation import require_text
from hr_kernel.exceptions import InvalidValueError
from hr_kernel.logging_config import get_logger
from hr_kernel.models.audit_entry import AuditAction, AuditEntry
from hr_kernel.services.base import BaseService

logger = get_logger("services.audit_recorder")


def _as_snapshot(value: Any) -> Mapping[str, Any] | None:
    if value is None or isinstance(value, Mapping):
        return value
    return {"value": value}


class AuditRecorder(BaseService[AuditEntry]):
    """
    Append structured audit entries within the caller's transaction.

    Non-goals:
        - Does NOT commit.  Does NOT read the log (see AuditLogSelector).
    """

    def record(
        self,
        entity_type: str,
        record_id: Any,
        action: AuditAction | str,
        old_value: Any = None,
        new_value: Any = None,
        *,
        actor: str,
    ) -> AuditEntryInfo:
        """
        Record one mutation from before/after values.

        ``old_value`` / ``new_value`` are usually field snapshots (mappings);
        the recorder stores only the fields that differ.  A bare scalar is
        recorded as the single field ``value``.

        Args:
            entity_type: e.g. "Employee".
            record_id: Primary key of the mutated row.
            action: INSERT, UPDATE or DELETE.
            old_value: State before (None for INSERT).
            new_value: State after (None for DELETE).
            actor: Explicit acting user.
        """
        changes = diff_snapshots(_as_snapshot(old_value), _as_snapshot(new_value))
        return self.record_changes(entity_type, record_id, action, changes, actor=actor)

    def record_changes(
        self,
        entity_type: str,
        record_id: Any,
        action: AuditAction | str,
        changes: Iterable[FieldChange],
        *,
        actor: str,
    ) -> AuditEntryInfo:
        """Record one mutation from an explicit list of field changes."""
        try:
            audit_action = AuditAction(action)
        except ValueError:
            raise InvalidValueError("action", action, "must be INSERT, UPDATE or DELETE")
        acting_user = require_text("actor", actor, max_length=100)
        entity = require_text("entity_type", entity_type, max_length=50)
        payload = changes_to_json(changes)

        entry = AuditEntry(
            entity_type=entity,
            record_id=str(record_id),
            action=audit_action.value,
            changes=payload,
            actor=acting_user,
            occurred_at=self._clock.now(),
        )
        self.session.add(entry)
        try:
            self.session.flush()
        except SQLAlchemyError:
            logger.error(
                "audit_entry_write_failed",
                extra={
                    "entity_type": entity,
                    "record_id": str(record_id),
                    "action": audit_action.value,
                },
                exc_info=True,
            )
            raise

        logger.info(
            "audit_entry_recorded",
            extra={
                "audit_entry_id": entry.id,
                "entity_type": entity,
                "record_id": str(record_id),
                "action": audit_action.value,
                "changed_fields": [c["field"] for c in payload],
            },
        )
        return entry.to_dto()
