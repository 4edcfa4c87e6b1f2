"""Application services: transaction ownership, retries and batches."""

from hr_services.batch_types import (
    BatchItemResult,
    BatchItemStatus,
    BatchRunResult,
    SalaryAdjustment,
    parse_adjustment_payload,
)
from hr_services.salary_orchestrator import SalaryChangeOrchestrator

__all__ = [
    "BatchItemResult",
    "BatchItemStatus",
    "BatchRunResult",
    "SalaryAdjustment",
    "SalaryChangeOrchestrator",
    "parse_adjustment_payload",
]
