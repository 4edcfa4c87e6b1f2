"""
Typed Exception Hierarchy for the HR Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every rejected mutation must give the caller a structured reason: a machine
kind, a human message, and the offending values (for example the computed
percentage of a salary change).  Callers and the HTTP layer must never parse
message strings to decide what happened.

Every exception therefore has:
  1. A typed class (catch by type, not message)
  2. A ``code`` class attribute (machine-readable, stable, API-safe)
  3. A ``kind`` class attribute (the coarse error family the API exposes)
  4. Structured attributes, collected by ``details()``

Example:
    try:
        orchestrator.change_salary(employee_id, Decimal("200000"), ...)
    except OutOfPolicyRangeError as e:
        render_form_error(e.kind, str(e), e.details())   # percent_change etc.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    HrKernelError (base)
    |
    +-- NotFoundError
    |   +-- EmployeeNotFoundError
    |   +-- DepartmentNotFoundError
    |   +-- ProjectNotFoundError
    |
    +-- ValidationError
    |   +-- InactiveEntityError
    |   +-- InvalidValueError
    |   +-- InvalidReferenceError
    |   +-- NoChangeError
    |   +-- OutOfPolicyRangeError
    |   +-- CyclicManagementError
    |
    +-- ConflictError
    |   +-- DuplicateValueError
    |   +-- EmployeeHasDependentsError
    |
    +-- ConcurrentModificationError
    +-- PersistenceFailureError
    +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Kind                   | Code                        | When Raised
-----------------------|-----------------------------|-------------------------------
NotFound               | EMPLOYEE_NOT_FOUND          | Employee ID doesn't exist
                       | DEPARTMENT_NOT_FOUND        | Department ID doesn't exist
                       | PROJECT_NOT_FOUND           | Project ID doesn't exist
InactiveEntity         | INACTIVE_ENTITY             | Target employee is inactive
InvalidValue           | INVALID_VALUE               | Bad field value (salary <= 0, ...)
InvalidReference       | INVALID_REFERENCE           | Approver/manager/head unusable
NoChange               | NO_CHANGE                   | New salary equals current salary
OutOfPolicyRange       | OUT_OF_POLICY_RANGE         | Percent change outside band
CyclicManagement       | CYCLIC_MANAGEMENT           | Manager chain would loop
Conflict               | DUPLICATE_VALUE             | Unique field already taken
                       | EMPLOYEE_HAS_DEPENDENTS     | Soft delete blocked
ConcurrentModification | CONCURRENT_MODIFICATION     | Version/lock conflict persisted
PersistenceFailure     | PERSISTENCE_FAILURE         | Storage or audit write failed
Immutability           | IMMUTABILITY_VIOLATION      | History/audit row modification

===============================================================================
"""

from __future__ import annotations

from typing import Any


class HrKernelError(Exception):
    """
    Base exception for all HR kernel errors.

    All subclasses must define ``code`` and ``kind`` class attributes.
    """

    code: str = "HR_KERNEL_ERROR"
    kind: str = "Error"

    def details(self) -> dict[str, Any]:
        """Structured attributes of this error, safe to serialize."""
        return {
            k: v for k, v in vars(self).items() if not k.startswith("_")
        }


# Lookup errors


class NotFoundError(HrKernelError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"
    kind: str = "NotFound"


class EmployeeNotFoundError(NotFoundError):
    """Employee with given ID was not found."""

    code: str = "EMPLOYEE_NOT_FOUND"

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(f"Employee not found: {employee_id}")


class DepartmentNotFoundError(NotFoundError):
    """Department with given ID was not found."""

    code: str = "DEPARTMENT_NOT_FOUND"

    def __init__(self, department_id: str):
        self.department_id = department_id
        super().__init__(f"Department not found: {department_id}")


class ProjectNotFoundError(NotFoundError):
    """Project with given ID was not found."""

    code: str = "PROJECT_NOT_FOUND"

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project not found: {project_id}")


# Validation errors (raised before anything is written)


class ValidationError(HrKernelError):
    """Base exception for rejected mutations."""

    code: str = "VALIDATION_ERROR"
    kind: str = "ValidationError"


class InactiveEntityError(ValidationError):
    """The targeted employee exists but is no longer active."""

    code: str = "INACTIVE_ENTITY"
    kind: str = "InactiveEntity"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} {entity_id} is inactive")


class InvalidValueError(ValidationError):
    """A field value violates a field-level or cross-field constraint."""

    code: str = "INVALID_VALUE"
    kind: str = "InvalidValue"

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = None if value is None else str(value)
        self.reason = reason
        super().__init__(f"Invalid value for {field} ({value!r}): {reason}")


class InvalidReferenceError(ValidationError):
    """
    A reference to another employee cannot be used.

    Raised for a missing or inactive approver, manager, department head
    or reviewer.
    """

    code: str = "INVALID_REFERENCE"
    kind: str = "InvalidReference"

    def __init__(self, field: str, referenced_id: str, reason: str):
        self.field = field
        self.referenced_id = referenced_id
        self.reason = reason
        super().__init__(f"Invalid {field} {referenced_id}: {reason}")


class NoChangeError(ValidationError):
    """The requested salary equals the current salary."""

    code: str = "NO_CHANGE"
    kind: str = "NoChange"

    def __init__(self, employee_id: str, salary: str):
        self.employee_id = employee_id
        self.salary = salary
        super().__init__(
            f"Salary for employee {employee_id} is already {salary}"
        )


class OutOfPolicyRangeError(ValidationError):
    """
    Percentage change lies outside the configured policy band.

    Carries the computed percentage so a form can show it directly.
    """

    code: str = "OUT_OF_POLICY_RANGE"
    kind: str = "OutOfPolicyRange"

    def __init__(
        self,
        employee_id: str,
        current_salary: str,
        new_salary: str,
        percent_change: str,
        min_percent_change: str,
        max_percent_change: str,
    ):
        self.employee_id = employee_id
        self.current_salary = current_salary
        self.new_salary = new_salary
        self.percent_change = percent_change
        self.min_percent_change = min_percent_change
        self.max_percent_change = max_percent_change
        super().__init__(
            f"Salary change of {percent_change}% for employee {employee_id} "
            f"is outside the allowed range "
            f"[{min_percent_change}%, {max_percent_change}%]"
        )


class CyclicManagementError(ValidationError):
    """Assigning the manager would create a loop in the management chain."""

    code: str = "CYCLIC_MANAGEMENT"
    kind: str = "CyclicManagement"

    def __init__(self, employee_id: str, manager_id: str, depth: int):
        self.employee_id = employee_id
        self.manager_id = manager_id
        self.depth = depth
        super().__init__(
            f"Assigning manager {manager_id} to employee {employee_id} "
            f"would create a management cycle (walked {depth} levels)"
        )


# Conflict errors


class ConflictError(HrKernelError):
    """Base exception for state conflicts."""

    code: str = "CONFLICT"
    kind: str = "Conflict"


class DuplicateValueError(ConflictError):
    """A unique field value is already in use."""

    code: str = "DUPLICATE_VALUE"

    def __init__(self, entity_type: str, field: str, value: str):
        self.entity_type = entity_type
        self.field = field
        self.value = value
        super().__init__(f"{entity_type} with {field}={value!r} already exists")


class EmployeeHasDependentsError(ConflictError):
    """
    Soft delete blocked.

    The employee still has active direct reports or heads a department.
    """

    code: str = "EMPLOYEE_HAS_DEPENDENTS"

    def __init__(
        self,
        employee_id: str,
        active_reports: int,
        headed_departments: int,
    ):
        self.employee_id = employee_id
        self.active_reports = active_reports
        self.headed_departments = headed_departments
        super().__init__(
            f"Employee {employee_id} cannot be deactivated: "
            f"{active_reports} active direct report(s), "
            f"heads {headed_departments} department(s)"
        )


# Transaction errors


class ConcurrentModificationError(HrKernelError):
    """The row changed underneath us and retries were exhausted."""

    code: str = "CONCURRENT_MODIFICATION"
    kind: str = "ConcurrentModification"

    def __init__(self, entity_type: str, entity_id: str, attempts: int = 1):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.attempts = attempts
        super().__init__(
            f"Concurrent modification of {entity_type} {entity_id} "
            f"after {attempts} attempt(s)"
        )


class PersistenceFailureError(HrKernelError):
    """The storage layer (including the audit write) failed; nothing was kept."""

    code: str = "PERSISTENCE_FAILURE"
    kind: str = "PersistenceFailure"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Persistence failure during {operation}: {reason}")


class ImmutabilityViolationError(HrKernelError):
    """
    Attempted to modify or delete an append-only record.

    SalaryRecord and AuditEntry rows are immutable after insert.
    """

    code: str = "IMMUTABILITY_VIOLATION"
    kind: str = "Immutability"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
