"""
Validation -- pure checks run before any mutation is applied.

Responsibility:
    Field-level and cross-field constraints for salary changes, employee
    records, departments, projects and performance reviews.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Callers load what the
    checks need (PersonRef snapshots, a manager lookup callable) and pass it
    in.  Nothing here touches a Session.

Invariants enforced:
    - salary > 0 and no-op changes rejected.
    - percentage change inside the SalaryPolicy band (inclusive).
    - approver / manager / head / reviewer references are active employees.
    - manager chain acyclic (bounded walk).
    - hire_date <= today, date_of_birth < today.

Failure modes:
    Every check raises a typed ValidationError subclass (or NotFound) from
    hr_kernel.exceptions carrying the offending values.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from hr_kernel.domain.dtos import PersonRef
from hr_kernel.domain.policy import SalaryPolicy
from hr_kernel.domain.values import RATING_FIELDS, ProjectStatus
from hr_kernel.exceptions import (
    CyclicManagementError,
    EmployeeNotFoundError,
    InactiveEntityError,
    InvalidReferenceError,
    InvalidValueError,
    NoChangeError,
    OutOfPolicyRangeError,
)

CENT = Decimal("0.01")
MAX_MONEY = Decimal(10) ** 16
DEFAULT_MAX_MANAGER_DEPTH = 10

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]{2,}$")


# ---------------------------------------------------------------------------
# Scalars
# ---------------------------------------------------------------------------


def to_money(field: str, value: Any) -> Decimal:
    """
    Coerce a numeric input to a Decimal with two decimal places.

    Floats go through ``str`` so 0.1 stays 0.10.  Non-numeric, NaN,
    infinite and out-of-range inputs raise InvalidValueError.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidValueError(field, value, "a numeric amount is required")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidValueError(field, value, "not a number")
    if not amount.is_finite():
        raise InvalidValueError(field, value, "not a finite number")
    # Numeric(18, 2) holds 16 integer digits
    if abs(amount) >= MAX_MONEY:
        raise InvalidValueError(field, value, f"must be below {MAX_MONEY:,}")
    try:
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidValueError(field, value, "not a representable amount")


def require_positive_amount(field: str, value: Any) -> Decimal:
    amount = to_money(field, value)
    if amount <= 0:
        raise InvalidValueError(field, value, "must be greater than zero")
    return amount


def require_text(field: str, value: str | None, max_length: int | None = None) -> str:
    """Non-blank, stripped, optionally length-capped."""
    if value is None or not str(value).strip():
        raise InvalidValueError(field, value, "is required")
    text = str(value).strip()
    if max_length is not None and len(text) > max_length:
        raise InvalidValueError(field, value, f"must be at most {max_length} characters")
    return text


def validate_email(email: str | None) -> str:
    address = require_text("email", email, max_length=100).lower()
    if not _EMAIL_RE.match(address):
        raise InvalidValueError("email", email, "is not a valid email address")
    return address


def validate_hire_date(hire_date: date, today: date) -> date:
    if hire_date > today:
        raise InvalidValueError("hire_date", hire_date, "cannot be in the future")
    return hire_date


def validate_date_of_birth(date_of_birth: date | None, today: date) -> date | None:
    if date_of_birth is not None and date_of_birth >= today:
        raise InvalidValueError("date_of_birth", date_of_birth, "must be in the past")
    return date_of_birth


# ---------------------------------------------------------------------------
# Salary changes
# ---------------------------------------------------------------------------


def percent_change(old: Decimal, new: Decimal) -> Decimal:
    """(new - old) / old * 100, exact to Decimal context precision."""
    return (new - old) / old * Decimal(100)


def _display_percent(pct: Decimal) -> str:
    return str(pct.quantize(CENT, rounding=ROUND_HALF_UP))


def require_active_employee(employee_id: UUID, employee: PersonRef | None) -> PersonRef:
    if employee is None:
        raise EmployeeNotFoundError(str(employee_id))
    if not employee.is_active:
        raise InactiveEntityError("Employee", str(employee_id))
    return employee


def require_active_reference(
    field: str,
    referenced_id: UUID,
    person: PersonRef | None,
) -> PersonRef:
    """An approver / manager / head / reviewer must be an active employee."""
    if person is None:
        raise InvalidReferenceError(field, str(referenced_id), "employee does not exist")
    if not person.is_active:
        raise InvalidReferenceError(field, str(referenced_id), "employee is inactive")
    return person


def validate_salary_change(
    employee_id: UUID,
    employee: PersonRef | None,
    new_salary: Any,
    policy: SalaryPolicy,
    approver_id: UUID | None = None,
    approver: PersonRef | None = None,
) -> tuple[Decimal, Decimal]:
    """
    Run every salary-change gate, in order.

    1. employee exists and is active
    2. new salary is a positive amount
    3. approver, when given, is an existing active employee
    4. new salary differs from the current one
    5. percentage change lies inside the policy band

    Returns:
        (new_salary as Decimal(.01), percent change)
    """
    subject = require_active_employee(employee_id, employee)
    amount = require_positive_amount("new_salary", new_salary)

    if approver_id is not None:
        require_active_reference("approver_id", approver_id, approver)

    current = to_money("salary", subject.salary)
    if amount == current:
        raise NoChangeError(str(employee_id), str(current))

    pct = percent_change(current, amount)
    if not policy.allows(pct):
        raise OutOfPolicyRangeError(
            employee_id=str(employee_id),
            current_salary=str(current),
            new_salary=str(amount),
            percent_change=_display_percent(pct),
            min_percent_change=str(policy.min_percent_change),
            max_percent_change=str(policy.max_percent_change),
        )
    return amount, pct


# ---------------------------------------------------------------------------
# Hierarchy
# ---------------------------------------------------------------------------


def check_manager_chain(
    employee_id: UUID,
    proposed_manager_id: UUID | None,
    manager_of: Callable[[UUID], UUID | None],
    max_depth: int = DEFAULT_MAX_MANAGER_DEPTH,
) -> None:
    """
    Reject a manager assignment that would loop the management chain.

    Walks upward from the proposed manager, one ``manager_of`` lookup per
    level, and fails if the walk reaches ``employee_id`` or does not end
    within ``max_depth`` levels.  A new hire has no reports yet and needs
    no walk.
    """
    if proposed_manager_id is None:
        return
    if proposed_manager_id == employee_id:
        raise InvalidValueError(
            "manager_id", proposed_manager_id, "an employee cannot manage themselves"
        )

    current: UUID | None = proposed_manager_id
    depth = 0
    while current is not None:
        current = manager_of(current)
        depth += 1
        if current is None:
            return
        if current == employee_id or depth >= max_depth:
            raise CyclicManagementError(str(employee_id), str(proposed_manager_id), depth)


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


def validate_project_status(status: str | ProjectStatus) -> ProjectStatus:
    try:
        return ProjectStatus(status)
    except ValueError:
        allowed = ", ".join(s.value for s in ProjectStatus)
        raise InvalidValueError("status", status, f"must be one of: {allowed}")


def validate_date_order(
    start_field: str, start: date, end_field: str, end: date | None
) -> None:
    if end is not None and end < start:
        raise InvalidValueError(end_field, end, f"must be on or after {start_field}")


# ---------------------------------------------------------------------------
# Performance reviews
# ---------------------------------------------------------------------------


def validate_ratings(ratings: Mapping[str, Any]) -> dict[str, int]:
    """All five ratings present, integral, 1..5."""
    cleaned: dict[str, int] = {}
    for name in RATING_FIELDS:
        value = ratings.get(name)
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidValueError(name, value, "rating must be an integer")
        if not 1 <= value <= 5:
            raise InvalidValueError(name, value, "rating must be between 1 and 5")
        cleaned[name] = value
    return cleaned


def validate_review_dates(
    review_date: date,
    period_start: date,
    period_end: date,
) -> None:
    validate_date_order("period_start", period_start, "period_end", period_end)
    if review_date < period_end:
        raise InvalidValueError(
            "review_date", review_date, "must be on or after the end of the review period"
        )


def periods_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Inclusive date ranges share at least one day."""
    return a_start <= b_end and b_start <= a_end
