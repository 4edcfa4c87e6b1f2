"""
Pytest fixtures for the HR kernel test suite.

Provides:
- A file-backed SQLite database per test (or DATABASE_URL when set)
- Sessions, a session factory and a deterministic clock
- Wired services and seed-data factories
- Structured log capture

Environment Variables:
- DATABASE_URL: database to run against instead of a temporary SQLite
  file.  Tables are dropped and recreated around every test.
"""

import json
import logging
import os
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from hr_config import get_active_config
from hr_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from hr_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from hr_kernel.domain.clock import DeterministicClock
from hr_kernel.domain.policy import SalaryPolicy
from hr_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from hr_kernel.services.audit_recorder import AuditRecorder
from hr_kernel.services.department_service import DepartmentService
from hr_kernel.services.employee_service import EmployeeService
from hr_kernel.services.project_service import ProjectService
from hr_kernel.services.review_service import ReviewService
from hr_kernel.services.salary_change_service import SalaryChangeService
from hr_services.salary_orchestrator import SalaryChangeOrchestrator

TEST_ACTOR = "hr.admin@example.com"

# Monday 3 June 2024, noon UTC
TEST_NOW = datetime(2024, 6, 3, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture hr_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, salary_service):
            salary_service.change_salary(...)
            logs = captured_logs()
            assert any(r["message"] == "salary_changed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("hr_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "postgres: mark test as requiring PostgreSQL")
    config.addinivalue_line(
        "markers", "slow_locks: mark test as potentially waiting for DB locks"
    )


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def db_engine(tmp_path):
    """
    Engine for one test.

    A file (not :memory:) so concurrency tests get real per-thread
    connections and real locking.
    """
    url = os.environ.get("DATABASE_URL") or f"sqlite:///{tmp_path / 'hr_test.db'}"
    eng = init_engine_from_url(url, echo=False, pool_size=20, max_overflow=10)
    if os.environ.get("DATABASE_URL"):
        drop_tables(eng)
    create_tables(eng)
    register_immutability_listeners()
    yield eng
    unregister_immutability_listeners()
    if os.environ.get("DATABASE_URL"):
        drop_tables(eng)
    reset_engine()


@pytest.fixture
def session_factory(db_engine):
    return get_session_factory()


@pytest.fixture
def session(session_factory):
    """A session for the test body; rolled back and closed afterwards."""
    sess = session_factory()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def deterministic_clock():
    return DeterministicClock(TEST_NOW)


@pytest.fixture
def hr_config():
    return get_active_config()


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def audit_recorder(session, deterministic_clock):
    return AuditRecorder(session, deterministic_clock)


@pytest.fixture
def salary_service(session, deterministic_clock, audit_recorder):
    return SalaryChangeService(
        session, deterministic_clock, policy=SalaryPolicy(), audit_recorder=audit_recorder
    )


@pytest.fixture
def employee_service(session, deterministic_clock, audit_recorder, salary_service):
    return EmployeeService(
        session,
        deterministic_clock,
        audit_recorder=audit_recorder,
        salary_service=salary_service,
    )


@pytest.fixture
def department_service(session, deterministic_clock, audit_recorder):
    return DepartmentService(session, deterministic_clock, audit_recorder=audit_recorder)


@pytest.fixture
def project_service(session, deterministic_clock, audit_recorder):
    return ProjectService(session, deterministic_clock, audit_recorder=audit_recorder)


@pytest.fixture
def review_service(session, deterministic_clock, audit_recorder):
    return ReviewService(session, deterministic_clock, audit_recorder=audit_recorder)


@pytest.fixture
def orchestrator(session_factory, hr_config, deterministic_clock):
    return SalaryChangeOrchestrator(session_factory, config=hr_config, clock=deterministic_clock)


# =============================================================================
# Seed data factories
# =============================================================================


@pytest.fixture
def create_department(department_service):
    """Factory: create a department (flushed, not committed)."""

    def _create(name=None, budget=None, head_id=None, location="HQ"):
        return department_service.create_department(
            name or f"Dept {uuid4().hex[:8]}",
            acting_user=TEST_ACTOR,
            budget=budget,
            head_id=head_id,
            location=location,
        )

    return _create


@pytest.fixture
def department(create_department):
    return create_department(name="Engineering", budget=Decimal("1000000"))


@pytest.fixture
def create_employee(employee_service, department):
    """Factory: hire an employee (flushed, not committed)."""

    def _create(
        salary=Decimal("80000"),
        first_name="Test",
        last_name=None,
        email=None,
        department_id=None,
        manager_id=None,
        hire_date=date(2020, 1, 6),
        job_title="Engineer",
    ):
        suffix = uuid4().hex[:8]
        return employee_service.create_employee(
            first_name=first_name,
            last_name=last_name or f"Person{suffix}",
            email=email or f"person.{suffix}@example.com",
            hire_date=hire_date,
            department_id=department_id or department.id,
            job_title=job_title,
            salary=salary,
            acting_user=TEST_ACTOR,
            manager_id=manager_id,
        )

    return _create


@pytest.fixture
def manager(create_employee):
    """M1: an active manager who can approve changes."""
    return create_employee(
        salary=Decimal("120000"), first_name="Maria", last_name="Manager", job_title="Manager"
    )


@pytest.fixture
def employee(create_employee, manager):
    """E1: an active employee earning 80,000 who reports to M1."""
    return create_employee(
        salary=Decimal("80000"), first_name="Evan", last_name="Employee", manager_id=manager.id
    )
