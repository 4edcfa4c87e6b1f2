"""
hr_services.batch_types -- Frozen dataclasses for salary adjustment batches.

ZERO I/O.  Frozen dataclasses with an enum status and tuples for
immutable collections.

Also parses the external adjustment payload, a JSON list of objects in
either of two spellings:

    [{"EmployeeID": "...", "NewSalary": 95000, "Reason": "..."}]
    [{"employee_id": "...", "new_salary": 95000, "reason": "..."}]

A malformed item never aborts the batch; it becomes a SalaryAdjustment
carrying its parse error, and later a failed BatchItemResult.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import UUID

from hr_kernel.domain.dtos import SalaryRecordInfo
from hr_kernel.exceptions import HrKernelError, InvalidValueError


class BatchItemStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class SalaryAdjustment:
    """One requested change in a batch, in submission order."""

    index: int
    employee_id: UUID | None
    new_salary: Any
    reason: str | None
    approver_id: UUID | None = None
    parse_error: InvalidValueError | None = None


@dataclass(frozen=True)
class BatchItemResult:
    """Outcome of a single batch item."""

    index: int
    employee_id: UUID | None
    status: BatchItemStatus
    salary_record: SalaryRecordInfo | None = None
    error_kind: str | None = None
    error_code: str | None = None
    message: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    attempts: int = 0

    @classmethod
    def failure(
        cls, adjustment: SalaryAdjustment, exc: HrKernelError, attempts: int = 0
    ) -> BatchItemResult:
        return cls(
            index=adjustment.index,
            employee_id=adjustment.employee_id,
            status=BatchItemStatus.FAILED,
            error_kind=exc.kind,
            error_code=exc.code,
            message=str(exc),
            details=exc.details(),
            attempts=attempts,
        )


@dataclass(frozen=True)
class BatchRunResult:
    """Result of a whole batch: per-item results in input order plus counts."""

    batch_id: str
    items: tuple[BatchItemResult, ...]
    duration_ms: int = 0

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def succeeded(self) -> int:
        return sum(1 for i in self.items if i.status == BatchItemStatus.SUCCEEDED)

    @property
    def failed(self) -> int:
        return sum(1 for i in self.items if i.status == BatchItemStatus.FAILED)


_KEY_SPELLINGS = {
    "employee_id": ("EmployeeID", "employee_id", "employeeId"),
    "new_salary": ("NewSalary", "new_salary", "newSalary"),
    "reason": ("Reason", "reason"),
    "approver_id": ("ApproverID", "approver_id", "approverId"),
}


def _pick(item: Mapping[str, Any], name: str) -> Any:
    for key in _KEY_SPELLINGS[name]:
        if key in item:
            return item[key]
    return None


def _parse_uuid(field_name: str, value: Any) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise InvalidValueError(field_name, value, "must be a UUID")


def _parse_item(index: int, item: Any) -> SalaryAdjustment:
    if not isinstance(item, Mapping):
        return SalaryAdjustment(
            index=index,
            employee_id=None,
            new_salary=None,
            reason=None,
            parse_error=InvalidValueError("adjustment", item, "must be an object"),
        )

    raw_employee = _pick(item, "employee_id")
    raw_approver = _pick(item, "approver_id")
    employee_id = None
    try:
        if raw_employee is None:
            raise InvalidValueError("employee_id", None, "is required")
        employee_id = _parse_uuid("employee_id", raw_employee)
        approver_id = (
            _parse_uuid("approver_id", raw_approver) if raw_approver is not None else None
        )
    except InvalidValueError as exc:
        return SalaryAdjustment(
            index=index,
            employee_id=employee_id,
            new_salary=_pick(item, "new_salary"),
            reason=_pick(item, "reason"),
            parse_error=exc,
        )

    return SalaryAdjustment(
        index=index,
        employee_id=employee_id,
        new_salary=_pick(item, "new_salary"),
        reason=_pick(item, "reason"),
        approver_id=approver_id,
    )


def parse_adjustment_payload(payload: str | bytes | Sequence[Any]) -> tuple[SalaryAdjustment, ...]:
    """
    Turn a JSON document (or an already-decoded list) into adjustments.

    Raises:
        InvalidValueError: the payload as a whole is not a JSON list.  Item
            level problems are carried on the returned adjustments instead.
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError:
            raise InvalidValueError("adjustments", "<unparseable>", "is not valid JSON")
    if isinstance(payload, Mapping) or not isinstance(payload, Sequence):
        raise InvalidValueError("adjustments", type(payload).__name__, "must be a list")
    return tuple(_parse_item(i, item) for i, item in enumerate(payload))
