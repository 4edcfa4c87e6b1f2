"""
Exception handlers: map the kernel's error kinds onto HTTP status codes.

Every error body has the same shape: ``{errorKind, message, details}``.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from hr_kernel.exceptions import HrKernelError
from hr_kernel.logging_config import get_logger

logger = get_logger("api.errors")

_LOCATION_PREFIXES = ("body", "query", "path", "header")

STATUS_BY_KIND: dict[str, int] = {
    "NotFound": 404,
    "InactiveEntity": 422,
    "InvalidValue": 422,
    "InvalidReference": 422,
    "NoChange": 422,
    "OutOfPolicyRange": 422,
    "CyclicManagement": 422,
    "ValidationError": 422,
    "Conflict": 409,
    "ConcurrentModification": 409,
    "Immutability": 409,
    "PersistenceFailure": 503,
}


def error_body(kind: str, message: str, details: dict | None = None) -> dict:
    return {
        "errorKind": kind,
        "message": message,
        "details": jsonable_encoder(details or {}),
    }


async def hr_error_handler(request: Request, exc: HrKernelError) -> JSONResponse:
    status_code = STATUS_BY_KIND.get(exc.kind, 500)
    log = logger.warning if status_code < 500 else logger.error
    log(
        "request_failed",
        extra={
            "path": request.url.path,
            "method": request.method,
            "status_code": status_code,
            "error_code": exc.code,
            "error_kind": exc.kind,
        },
    )
    return JSONResponse(
        status_code=status_code,
        content=error_body(exc.kind, str(exc), exc.details()),
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = jsonable_encoder(exc.errors())
    first = errors[0] if errors else {}
    field_path = ".".join(
        str(p) for p in first.get("loc", ()) if p not in _LOCATION_PREFIXES
    )
    return JSONResponse(
        status_code=422,
        content=error_body(
            "InvalidValue",
            f"Invalid value for {field_path or 'request'}: {first.get('msg', 'invalid request')}",
            {"field": field_path, "errors": errors},
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(HrKernelError, hr_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
