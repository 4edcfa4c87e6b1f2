"""Request dependencies: per-request session, acting user, wired services."""

from typing import Generator, Optional

from fastapi import Header, Request
from sqlalchemy.orm import Session

from hr_config import HrConfig
from hr_kernel.domain.clock import Clock
from hr_kernel.exceptions import InvalidValueError
from hr_services.salary_orchestrator import SalaryChangeOrchestrator

ACTING_USER_HEADER = "X-Acting-User"


def get_db(request: Request) -> Generator[Session, None, None]:
    """Read-only session for the duration of one request."""
    session = request.app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


def get_orchestrator(request: Request) -> SalaryChangeOrchestrator:
    return request.app.state.orchestrator


def get_config(request: Request) -> HrConfig:
    return request.app.state.config


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_acting_user(
    x_acting_user: Optional[str] = Header(None, alias=ACTING_USER_HEADER),
) -> str:
    """
    The caller's identity, taken from the ``X-Acting-User`` header.

    Raises:
        InvalidValueError: header missing or blank.
    """
    if x_acting_user is None or not x_acting_user.strip():
        raise InvalidValueError(ACTING_USER_HEADER, x_acting_user, "header is required")
    return x_acting_user.strip()
