"""Services for the HR kernel (write side)."""

from hr_kernel.services.audit_recorder import AuditRecorder
from hr_kernel.services.department_service import DepartmentService
from hr_kernel.services.employee_service import EmployeeService
from hr_kernel.services.project_service import ProjectService
from hr_kernel.services.review_service import ReviewService
from hr_kernel.services.salary_change_service import (
    PreparedSalaryChange,
    SalaryChangeService,
)

__all__ = [
    "AuditRecorder",
    "DepartmentService",
    "EmployeeService",
    "PreparedSalaryChange",
    "ProjectService",
    "ReviewService",
    "SalaryChangeService",
]
