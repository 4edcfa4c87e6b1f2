"""
Structured field diffs for the audit trail.

An audit payload is a list of ``FieldChange`` values, never a delimited
string.  Values are normalized to JSON-safe scalars so an entry read back
from storage compares equal to the one that was written:

    Decimal  -> "90000.00"   (string, scale preserved)
    date     -> "2024-06-03" (ISO 8601)
    datetime -> ISO 8601
    UUID     -> canonical string
    Enum     -> its value

Pure functions, zero I/O.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

JsonScalar = str | int | float | bool | None


def to_json_safe(value: Any) -> JsonScalar:
    """Normalize one field value for storage in an audit entry."""
    if isinstance(value, Enum):
        return to_json_safe(value.value)
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    return str(value)


@dataclass(frozen=True)
class FieldChange:
    """One field of one entity going from old_value to new_value."""

    field: str
    old_value: JsonScalar = None
    new_value: JsonScalar = None

    @classmethod
    def of(cls, field: str, old: Any, new: Any) -> FieldChange:
        return cls(field=field, old_value=to_json_safe(old), new_value=to_json_safe(new))

    def to_dict(self) -> dict[str, JsonScalar]:
        return {
            "field": self.field,
            "old_value": self.old_value,
            "new_value": self.new_value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FieldChange:
        return cls(
            field=data["field"],
            old_value=data.get("old_value"),
            new_value=data.get("new_value"),
        )


def diff_snapshots(
    old: Mapping[str, Any] | None,
    new: Mapping[str, Any] | None,
) -> tuple[FieldChange, ...]:
    """
    Field-level diff between two snapshots.

    - INSERT (old is None): every non-None field of ``new``.
    - DELETE (new is None): every non-None field of ``old``.
    - UPDATE: only fields whose normalized value differs.

    Fields keep the order they first appear in ``old`` then ``new``.
    """
    old = old or {}
    new = new or {}
    fields: list[str] = list(old.keys())
    fields.extend(k for k in new.keys() if k not in old)

    changes = []
    for name in fields:
        before = to_json_safe(old.get(name))
        after = to_json_safe(new.get(name))
        if before != after:
            changes.append(FieldChange(field=name, old_value=before, new_value=after))
    return tuple(changes)


def changes_to_json(changes: Iterable[FieldChange]) -> list[dict[str, JsonScalar]]:
    return [c.to_dict() for c in changes]


def changes_from_json(data: Iterable[Mapping[str, Any]] | None) -> tuple[FieldChange, ...]:
    return tuple(FieldChange.from_dict(d) for d in (data or ()))
