"""Selectors for the HR kernel (read side)."""

from hr_kernel.selectors.audit_log_selector import AuditLogSelector
from hr_kernel.selectors.base import BaseSelector
from hr_kernel.selectors.employee_selector import EmployeeSelector
from hr_kernel.selectors.reporting_selector import ReportingSelector
from hr_kernel.selectors.salary_history_selector import SalaryHistorySelector

__all__ = [
    "AuditLogSelector",
    "BaseSelector",
    "EmployeeSelector",
    "ReportingSelector",
    "SalaryHistorySelector",
]
