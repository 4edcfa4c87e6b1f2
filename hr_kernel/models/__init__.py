"""Domain models for the HR kernel."""

from hr_kernel.models.audit_entry import AuditAction, AuditEntry
from hr_kernel.models.department import Department
from hr_kernel.models.employee import Employee
from hr_kernel.models.performance_review import RATING_FIELDS, PerformanceReview
from hr_kernel.models.project import Project, ProjectStatus
from hr_kernel.models.salary_record import SalaryRecord

__all__ = [
    "AuditAction",
    "AuditEntry",
    "Department",
    "Employee",
    "PerformanceReview",
    "Project",
    "ProjectStatus",
    "RATING_FIELDS",
    "SalaryRecord",
]
