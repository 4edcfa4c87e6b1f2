from datetime import date
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from hr_api.deps import get_acting_user, get_clock, get_config, get_db, get_orchestrator
from hr_api.schemas import (
    AuditEntryResponse,
    AuditLogResponse,
    SalaryAdjustmentsRequest,
    SalaryAdjustmentsResponse,
    SalaryChangeRequest,
    SalaryChangeResponse,
    SalaryRecordResponse,
)
from hr_config import HrConfig
from hr_kernel.domain.clock import Clock
from hr_kernel.selectors.audit_log_selector import AuditLogSelector
from hr_kernel.selectors.salary_history_selector import SalaryHistorySelector
from hr_services.salary_orchestrator import SalaryChangeOrchestrator

router = APIRouter()


@router.post(
    "/salary-changes",
    response_model=SalaryChangeResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_salary_change(
    body: SalaryChangeRequest,
    acting_user: str = Depends(get_acting_user),
    orchestrator: SalaryChangeOrchestrator = Depends(get_orchestrator),
) -> Any:
    """
    Change one employee's salary.
    """
    record = orchestrator.change_salary(
        body.employee_id,
        body.new_salary,
        body.reason,
        body.approver_id,
        acting_user=acting_user,
    )
    return SalaryChangeResponse(salary_record=SalaryRecordResponse.from_info(record))


@router.get(
    "/employees/{employee_id}/salary-history",
    response_model=list[SalaryRecordResponse],
)
def read_salary_history(
    employee_id: UUID,
    db: Session = Depends(get_db),
) -> Any:
    """
    Salary history of one employee, newest first.
    """
    records = SalaryHistorySelector(db).for_employee(employee_id)
    return [SalaryRecordResponse.from_info(r) for r in records]


@router.get("/audit-log", response_model=AuditLogResponse)
def read_audit_log(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    entity_type: Optional[str] = Query(None, alias="entityType"),
    action: Optional[str] = Query(None),
    actor: Optional[str] = Query(None),
    page: int = Query(1),
    page_size: Optional[int] = Query(None, alias="pageSize"),
    db: Session = Depends(get_db),
    config: HrConfig = Depends(get_config),
    clock: Clock = Depends(get_clock),
) -> Any:
    """
    Filtered, paginated audit log, newest first.
    """
    selector = AuditLogSelector(
        db,
        clock,
        default_page_size=config.audit_query.default_page_size,
        max_page_size=config.audit_query.max_page_size,
        default_window_days=config.audit_query.default_window_days,
    )
    result = selector.query(
        start=start_date,
        end=end_date,
        entity_type=entity_type,
        action=action,
        actor=actor,
        page=page,
        page_size=page_size,
    )
    return AuditLogResponse(
        items=[AuditEntryResponse.from_info(e) for e in result.entries],
        total_count=result.total_count,
        total_pages=result.total_pages,
        page=result.page,
        page_size=result.page_size,
    )


@router.post("/salary-adjustments", response_model=SalaryAdjustmentsResponse)
def apply_salary_adjustments(
    body: SalaryAdjustmentsRequest,
    acting_user: str = Depends(get_acting_user),
    orchestrator: SalaryChangeOrchestrator = Depends(get_orchestrator),
) -> Any:
    """
    Apply a batch of salary adjustments; each item succeeds or fails alone.
    """
    run = orchestrator.apply_batch(
        body.adjustments,
        acting_user=acting_user,
        approver_id=body.approver_id,
        effective_date=body.effective_date,
    )
    return SalaryAdjustmentsResponse.from_run(run)
