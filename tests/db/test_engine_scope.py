"""Engine lifecycle and session_scope commit / rollback."""

import pytest
from sqlalchemy import select

from hr_kernel.db.engine import get_engine, reset_engine, session_scope
from hr_kernel.models.department import Department
from hr_kernel.services.department_service import DepartmentService
from tests.conftest import TEST_ACTOR


def _department_names(session_factory):
    sess = session_factory()
    try:
        return sess.execute(select(Department.name)).scalars().all()
    finally:
        sess.close()


class TestSessionScope:
    def test_commits_on_success(self, session_factory, deterministic_clock):
        with session_scope(session_factory) as sess:
            DepartmentService(sess, deterministic_clock).create_department(
                "Operations", acting_user=TEST_ACTOR
            )
        assert _department_names(session_factory) == ["Operations"]

    def test_rolls_back_on_error(self, session_factory, deterministic_clock, captured_logs):
        with pytest.raises(RuntimeError):
            with session_scope(session_factory) as sess:
                DepartmentService(sess, deterministic_clock).create_department(
                    "Operations", acting_user=TEST_ACTOR
                )
                raise RuntimeError("boom")
        assert _department_names(session_factory) == []
        assert any(r["message"] == "transaction_rolled_back" for r in captured_logs())


class TestEngineLifecycle:
    def test_uninitialized_engine_raises(self, db_engine):
        assert get_engine() is db_engine
        reset_engine()
        with pytest.raises(RuntimeError):
            get_engine()

    def test_sqlite_enforces_foreign_keys(self, db_engine):
        if db_engine.dialect.name != "sqlite":
            pytest.skip("sqlite only")
        with db_engine.connect() as conn:
            assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1
