"""
SalaryChangeOrchestrator -- transaction owner for salary changes.

Responsibility:
    Opens one session per change, runs the flush-only SalaryChangeService,
    commits, and translates storage errors:

      * validation errors (HrKernelError)      -> rolled back, re-raised
      * StaleDataError / lock or serialisation -> retried with fresh state,
        then ConcurrentModificationError
      * any other SQLAlchemyError              -> PersistenceFailureError

    Batches run each item in its own transaction.  Items for different
    employees run concurrently on a thread pool; items for one employee run
    one after another, in submission order.

Architecture position:
    Services layer -- above hr_kernel, below hr_api.  This is the only
    place salary transactions are committed.

Invariants enforced:
    - Nothing is written for a rejected change: validation runs before the
      first flush, and the session is rolled back on every error path.
    - A salary change is never double-applied: every retry re-reads the
      employee and re-validates against the committed salary.
    - Each worker thread uses its own Session.
"""

from __future__ import annotations

import time
import uuid
from collections import defaultdict
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Any, Callable
from uuid import UUID

from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from hr_config import HrConfig, get_active_config
from hr_config.bridges import build_salary_policy
from hr_kernel.domain.clock import Clock, SystemClock
from hr_kernel.domain.dtos import SalaryRecordInfo
from hr_kernel.domain.policy import SalaryPolicy
from hr_kernel.exceptions import (
    ConcurrentModificationError,
    HrKernelError,
    PersistenceFailureError,
)
from hr_kernel.logging_config import LogContext, get_logger
from hr_kernel.services.salary_change_service import SalaryChangeService
from hr_services.batch_types import (
    BatchItemResult,
    BatchItemStatus,
    BatchRunResult,
    SalaryAdjustment,
    parse_adjustment_payload,
)

logger = get_logger("services.salary_orchestrator")

# PostgreSQL: lock_not_available, serialization_failure, deadlock_detected
_RETRYABLE_PGCODES = frozenset({"55P03", "40001", "40P01"})
_RETRYABLE_MESSAGES = ("database is locked", "database table is locked")


def is_retryable_conflict(exc: BaseException) -> bool:
    """True for errors caused by a competing writer on the same rows."""
    if isinstance(exc, StaleDataError):
        return True
    if isinstance(exc, (OperationalError, DBAPIError)):
        pgcode = getattr(exc.orig, "pgcode", None)
        if pgcode in _RETRYABLE_PGCODES:
            return True
        text = str(exc.orig).lower()
        return any(m in text for m in _RETRYABLE_MESSAGES)
    return False


class SalaryChangeOrchestrator:
    """
    Commit salary changes, one transaction per change.

    Args:
        session_factory: Callable returning a new Session (a sessionmaker).
        config: HR configuration; defaults to the packaged defaults.
        clock: Time source for every service this orchestrator builds.
        policy: Overrides the band from ``config``.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        config: HrConfig | None = None,
        clock: Clock | None = None,
        policy: SalaryPolicy | None = None,
    ):
        self._session_factory = session_factory
        self._config = config or get_active_config()
        self._clock = clock or SystemClock()
        self._policy = policy or build_salary_policy(self._config)
        self._max_retries = self._config.concurrency.max_retries
        self._max_workers = self._config.concurrency.batch_max_workers
        self._backoff = self._config.concurrency.retry_backoff_seconds

    @property
    def policy(self) -> SalaryPolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Single change
    # ------------------------------------------------------------------

    def change_salary(
        self,
        employee_id: UUID,
        new_salary: Any,
        reason: str,
        approver_id: UUID | None = None,
        *,
        acting_user: str,
        effective_date: date | None = None,
    ) -> SalaryRecordInfo:
        """
        Change a salary and commit.

        Raises:
            EmployeeNotFoundError, InactiveEntityError, InvalidValueError,
            InvalidReferenceError, NoChangeError, OutOfPolicyRangeError:
                rejected; nothing was written.
            ConcurrentModificationError: still conflicting after
                ``max_retries`` retries.
            PersistenceFailureError: the database failed.
        """
        record, _ = self._change_with_retry(
            employee_id, new_salary, reason, approver_id, acting_user, effective_date
        )
        return record

    def _change_with_retry(
        self,
        employee_id: UUID,
        new_salary: Any,
        reason: str,
        approver_id: UUID | None,
        acting_user: str,
        effective_date: date | None,
    ) -> tuple[SalaryRecordInfo, int]:
        attempt = 0
        with LogContext.bind(actor=acting_user, employee_id=employee_id):
            while True:
                attempt += 1
                session = self._session_factory()
                try:
                    service = SalaryChangeService(session, self._clock, policy=self._policy)
                    record = service.change_salary(
                        employee_id,
                        new_salary,
                        reason,
                        approver_id,
                        acting_user=acting_user,
                        effective_date=effective_date,
                    )
                    session.commit()
                    return record, attempt
                except HrKernelError:
                    session.rollback()
                    raise
                except SQLAlchemyError as exc:
                    session.rollback()
                    if not is_retryable_conflict(exc):
                        logger.error(
                            "salary_change_persistence_failed",
                            extra={"attempt": attempt},
                            exc_info=True,
                        )
                        raise PersistenceFailureError("change_salary", str(exc)) from exc
                    if attempt > self._max_retries:
                        logger.warning(
                            "salary_change_conflict_exhausted",
                            extra={"attempts": attempt},
                        )
                        raise ConcurrentModificationError(
                            "Employee", str(employee_id), attempts=attempt
                        ) from exc
                    logger.info(
                        "salary_change_retry",
                        extra={"attempt": attempt, "error_type": type(exc).__name__},
                    )
                    if self._backoff:
                        time.sleep(self._backoff * attempt)
                finally:
                    session.close()

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    def apply_batch(
        self,
        adjustments: Sequence[SalaryAdjustment] | Sequence[dict] | str | bytes,
        *,
        acting_user: str,
        approver_id: UUID | None = None,
        effective_date: date | None = None,
    ) -> BatchRunResult:
        """
        Apply many salary changes, each independently.

        A failing item never affects another: every item has its own
        transaction and its own result.  ``approver_id`` applies to items
        that do not name their own approver.

        Returns:
            BatchRunResult with one BatchItemResult per input, in input order.

        Raises:
            InvalidValueError: the payload as a whole is not a list.
        """
        if (
            isinstance(adjustments, (str, bytes))
            or not isinstance(adjustments, Sequence)
            or not all(isinstance(a, SalaryAdjustment) for a in adjustments)
        ):
            items = parse_adjustment_payload(adjustments)
        else:
            items = tuple(adjustments)

        batch_id = str(uuid.uuid4())
        started = time.monotonic()
        results: dict[int, BatchItemResult] = {}

        runnable: dict[UUID, list[SalaryAdjustment]] = defaultdict(list)
        for item in items:
            if item.parse_error is not None:
                results[item.index] = BatchItemResult.failure(item, item.parse_error)
            else:
                runnable[item.employee_id].append(item)

        with LogContext.bind(batch_id=batch_id, actor=acting_user):
            logger.info(
                "salary_batch_started",
                extra={"item_count": len(items), "employee_count": len(runnable)},
            )

            def run_group(group: list[SalaryAdjustment]) -> list[BatchItemResult]:
                with LogContext.bind(batch_id=batch_id):
                    return [
                        self._run_item(item, acting_user, approver_id, effective_date)
                        for item in group
                    ]

            if runnable:
                workers = max(1, min(self._max_workers, len(runnable)))
                with ThreadPoolExecutor(max_workers=workers) as pool:
                    for group_results in pool.map(run_group, runnable.values()):
                        for result in group_results:
                            results[result.index] = result

            run = BatchRunResult(
                batch_id=batch_id,
                items=tuple(results[i] for i in sorted(results)),
                duration_ms=int((time.monotonic() - started) * 1000),
            )
            logger.info(
                "salary_batch_completed",
                extra={
                    "item_count": run.total,
                    "succeeded": run.succeeded,
                    "failed": run.failed,
                    "duration_ms": run.duration_ms,
                },
            )
        return run

    def _run_item(
        self,
        item: SalaryAdjustment,
        acting_user: str,
        approver_id: UUID | None,
        effective_date: date | None,
    ) -> BatchItemResult:
        try:
            record, attempts = self._change_with_retry(
                item.employee_id,
                item.new_salary,
                item.reason,
                item.approver_id or approver_id,
                acting_user,
                effective_date,
            )
        except HrKernelError as exc:
            logger.info(
                "salary_batch_item_failed",
                extra={
                    "item_index": item.index,
                    "employee_id": str(item.employee_id),
                    "error_code": exc.code,
                },
            )
            attempts = getattr(exc, "attempts", 1)
            return BatchItemResult.failure(item, exc, attempts=attempts)
        except Exception as exc:
            logger.error(
                "salary_batch_item_crashed",
                extra={
                    "item_index": item.index,
                    "employee_id": str(item.employee_id),
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )
            failure = PersistenceFailureError("change_salary", f"{type(exc).__name__}: {exc}")
            return BatchItemResult.failure(item, failure, attempts=1)

        return BatchItemResult(
            index=item.index,
            employee_id=item.employee_id,
            status=BatchItemStatus.SUCCEEDED,
            salary_record=record,
            attempts=attempts,
        )
