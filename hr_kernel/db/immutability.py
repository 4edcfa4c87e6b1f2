"""
ORM-Level Append-Only Enforcement for history and audit rows.

===============================================================================
WHY THIS EXISTS
===============================================================================

Salary history and the audit trail are evidence.  Once a SalaryRecord or an
AuditEntry has been written it may never be changed or removed by normal
application flows; corrections are new salary changes, which produce new
records.

SQLAlchemy fires mapper events before UPDATE/DELETE SQL is emitted:

    session.flush()
         |
         v
    [before_update] --> _reject_update() --> ImmutabilityViolationError
         |
    [before_delete] --> _reject_delete() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

The raise aborts the flush, and the caller's transaction rolls back.

This is append-only protection only.  Business validation of salary changes
lives in exactly one place (the salary change service); there is no second
trigger-style enforcer for those rules.

===============================================================================
USAGE
===============================================================================

Called once at application startup:

    from hr_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()

Tests that deliberately tamper with rows may unregister them:

    unregister_immutability_listeners()
"""

from sqlalchemy import event

from hr_kernel.exceptions import ImmutabilityViolationError
from hr_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _blocked(target, operation: str):
    entity_type = type(target).__name__
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    return ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=f"{entity_type} rows are append-only and cannot be "
        f"{'modified' if operation == 'UPDATE' else 'deleted'}",
    )


def _reject_update(mapper, connection, target):
    raise _blocked(target, "UPDATE")


def _reject_delete(mapper, connection, target):
    raise _blocked(target, "DELETE")


def _append_only_models():
    from hr_kernel.models.audit_entry import AuditEntry
    from hr_kernel.models.salary_record import SalaryRecord

    return (SalaryRecord, AuditEntry)


def register_immutability_listeners() -> None:
    """
    Register append-only listeners on SalaryRecord and AuditEntry.

    Safe to call more than once.
    """
    for model in _append_only_models():
        if not event.contains(model, "before_update", _reject_update):
            event.listen(model, "before_update", _reject_update)
        if not event.contains(model, "before_delete", _reject_delete):
            event.listen(model, "before_delete", _reject_delete)


def unregister_immutability_listeners() -> None:
    """
    Remove the append-only listeners.

    WARNING: tests only.
    """
    for model in _append_only_models():
        if event.contains(model, "before_update", _reject_update):
            event.remove(model, "before_update", _reject_update)
        if event.contains(model, "before_delete", _reject_delete):
            event.remove(model, "before_delete", _reject_delete)
