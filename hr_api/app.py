"""
FastAPI application factory.

The app holds no global state: the session factory, configuration, clock
and orchestrator are passed in (or built from the packaged defaults) and
kept on ``app.state``.
"""

from __future__ import annotations

import uuid
from typing import Callable, Optional

from fastapi import FastAPI, Request
from sqlalchemy.orm import Session

from hr_api.errors import register_exception_handlers
from hr_api.routes import router
from hr_config import HrConfig, get_active_config
from hr_kernel import __version__
from hr_kernel.db.immutability import register_immutability_listeners
from hr_kernel.domain.clock import Clock, SystemClock
from hr_kernel.logging_config import LogContext, configure_logging
from hr_services.salary_orchestrator import SalaryChangeOrchestrator


def create_app(
    session_factory: Callable[[], Session],
    config: Optional[HrConfig] = None,
    clock: Optional[Clock] = None,
    orchestrator: Optional[SalaryChangeOrchestrator] = None,
) -> FastAPI:
    """
    Build the HTTP application.

    Args:
        session_factory: sessionmaker bound to the HR database.
        config: HR configuration (default: packaged defaults).
        clock: Time source (default: system clock).
        orchestrator: Prebuilt orchestrator; built from the other
            arguments when omitted.
    """
    configure_logging()
    register_immutability_listeners()
    config = config or get_active_config()
    clock = clock or SystemClock()

    app = FastAPI(
        title="HR Salary & Audit API",
        description="Salary changes, salary history and the audit log",
        version=__version__,
    )
    app.state.session_factory = session_factory
    app.state.config = config
    app.state.clock = clock
    app.state.orchestrator = orchestrator or SalaryChangeOrchestrator(
        session_factory, config=config, clock=clock
    )

    @app.middleware("http")
    async def bind_request_context(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        with LogContext.bind(request_id=request_id):
            response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    register_exception_handlers(app)
    app.include_router(router)
    return app
