"""
Request and response models for the HTTP binding.

Wire names are camelCase; Python names stay snake_case.  Money travels as a
decimal string in responses so no precision is lost.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from hr_kernel.domain.dtos import AuditEntryInfo, SalaryRecordInfo
from hr_services.batch_types import BatchItemResult, BatchRunResult


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class SalaryChangeRequest(CamelModel):
    """Body of POST /salary-changes."""

    employee_id: UUID
    new_salary: Decimal
    reason: str = Field(..., max_length=500)
    approver_id: Optional[UUID] = None


class SalaryAdjustmentsRequest(CamelModel):
    """
    Body of POST /salary-adjustments.

    Items are kept as raw objects so one malformed item becomes a failed
    result instead of rejecting the whole request.
    """

    adjustments: List[Any]
    approver_id: Optional[UUID] = None
    effective_date: Optional[date] = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class SalaryRecordResponse(CamelModel):
    id: UUID
    employee_id: UUID
    sequence: int
    previous_salary: Optional[Decimal]
    new_salary: Decimal
    change_date: date
    reason: str
    approver_id: Optional[UUID]
    created_by: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_info(cls, info: SalaryRecordInfo) -> SalaryRecordResponse:
        return cls(
            id=info.id,
            employee_id=info.employee_id,
            sequence=info.sequence,
            previous_salary=info.previous_salary,
            new_salary=info.new_salary,
            change_date=info.change_date,
            reason=info.reason,
            approver_id=info.approver_id,
            created_by=info.created_by,
            created_at=info.created_at,
        )


class SalaryChangeResponse(CamelModel):
    salary_record: SalaryRecordResponse


class FieldChangeResponse(CamelModel):
    field: str
    old_value: Any = None
    new_value: Any = None


class AuditEntryResponse(CamelModel):
    id: int
    entity_type: str
    record_id: str
    action: str
    changes: List[FieldChangeResponse]
    actor: str
    occurred_at: datetime

    @classmethod
    def from_info(cls, info: AuditEntryInfo) -> AuditEntryResponse:
        return cls(
            id=info.id,
            entity_type=info.entity_type,
            record_id=info.record_id,
            action=info.action,
            changes=[
                FieldChangeResponse(
                    field=c.field, old_value=c.old_value, new_value=c.new_value
                )
                for c in info.changes
            ],
            actor=info.actor,
            occurred_at=info.occurred_at,
        )


class AuditLogResponse(CamelModel):
    items: List[AuditEntryResponse]
    total_count: int
    total_pages: int
    page: int
    page_size: int


class BatchItemResponse(CamelModel):
    index: int
    employee_id: Optional[UUID]
    status: str
    salary_record: Optional[SalaryRecordResponse] = None
    error_kind: Optional[str] = None
    message: Optional[str] = None
    details: dict = Field(default_factory=dict)

    @classmethod
    def from_result(cls, result: BatchItemResult) -> BatchItemResponse:
        return cls(
            index=result.index,
            employee_id=result.employee_id,
            status=result.status.value,
            salary_record=(
                SalaryRecordResponse.from_info(result.salary_record)
                if result.salary_record is not None
                else None
            ),
            error_kind=result.error_kind,
            message=result.message,
            details=result.details,
        )


class SalaryAdjustmentsResponse(CamelModel):
    batch_id: str
    results: List[BatchItemResponse]
    succeeded: int
    failed: int

    @classmethod
    def from_run(cls, run: BatchRunResult) -> SalaryAdjustmentsResponse:
        return cls(
            batch_id=run.batch_id,
            results=[BatchItemResponse.from_result(r) for r in run.items],
            succeeded=run.succeeded,
            failed=run.failed,
        )


class ErrorResponse(CamelModel):
    error_kind: str
    message: str
    details: dict = Field(default_factory=dict)
