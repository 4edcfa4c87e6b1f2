"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for every
    write-side service.  Services receive a SQLAlchemy ``Session`` and use
    ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    Transaction boundaries: services flush within the caller's transaction
    and never commit or roll back themselves.  The caller (an hr_services
    orchestrator, session_scope(), or a test) owns commit/rollback, which is
    what makes "salary update + history record + audit entry" atomic.

Failure modes:
    - A subclass calling ``session.commit()`` would break that atomicity.
"""

from abc import ABC
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from hr_kernel.db.base import Base
from hr_kernel.domain.clock import Clock, SystemClock
from hr_kernel.domain.dtos import PersonRef
from hr_kernel.models.employee import Employee

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.
        - All timestamps come from the injected clock.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self._clock = clock or SystemClock()


class _Unset:
    """Marker for "argument not supplied" where None is a meaningful value."""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()


def person_ref(employee: Employee | None) -> PersonRef | None:
    """Snapshot the fields validation needs, or None for a missing row."""
    if employee is None:
        return None
    return PersonRef(id=employee.id, is_active=employee.is_active, salary=employee.salary)


def load_person(session: Session, employee_id: UUID | None) -> PersonRef | None:
    if employee_id is None:
        return None
    return person_ref(session.get(Employee, employee_id))
