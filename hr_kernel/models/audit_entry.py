"""
Module: hr_kernel.models.audit_entry
Responsibility: ORM persistence for the generic audit trail.  Records who
    changed which fields of which entity, and when.
Architecture position: Kernel > Models.  May import from db/base.py; to_dto()
    imports domain/ lazily.

Invariants enforced:
    - Append-only: db/immutability.py rejects UPDATE and DELETE.
    - id is a monotonically increasing integer, so "newest first" is a total
      order even when several entries share one occurred_at.
    - changes is a structured list of {"field", "old_value", "new_value"}
      dicts with JSON-safe scalar values.

Audit relevance:
    This is the audit trail.  Rows are written by AuditRecorder inside the
    caller's transaction; if the write fails the whole mutation rolls back.
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import JSON, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from hr_kernel.db.base import Base

if TYPE_CHECKING:
    from hr_kernel.domain.dtos import AuditEntryInfo


class AuditAction(str, Enum):
    """Kinds of audited mutation."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class AuditEntry(Base):
    """
    One audited mutation of one entity.

    Guarantees:
        - Never updated or deleted once flushed.
        - record_id is the string form of the target's primary key.
    """

    __tablename__ = "audit_entries"

    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "record_id"),
        Index("idx_audit_action", "action"),
        Index("idx_audit_occurred", "occurred_at"),
        Index("idx_audit_actor", "actor"),
    )

    # Insertion-ordered key instead of the UUID used elsewhere
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)

    record_id: Mapped[str] = mapped_column(String(36), nullable=False)

    action: Mapped[AuditAction] = mapped_column(String(10), nullable=False)

    changes: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    actor: Mapped[str] = mapped_column(String(100), nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    def to_dto(self) -> "AuditEntryInfo":
        """Decode the stored change list into FieldChange values."""
        from hr_kernel.domain.changes import changes_from_json
        from hr_kernel.domain.dtos import AuditEntryInfo

        return AuditEntryInfo(
            id=self.id,
            entity_type=self.entity_type,
            record_id=self.record_id,
            action=AuditAction(self.action).value,
            changes=changes_from_json(self.changes),
            actor=self.actor,
            occurred_at=self.occurred_at,
        )

    def __repr__(self) -> str:
        return f"<AuditEntry {self.action} on {self.entity_type}:{self.record_id}>"
