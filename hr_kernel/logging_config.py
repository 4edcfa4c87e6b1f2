"""
Structured JSON logging for the HR kernel.

Every record under the ``hr_kernel`` namespace is written as one JSON object
per line: timestamp, level, logger, message, the fields bound in LogContext,
any ``extra`` fields, and for exceptions their code, kind and details.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from types import MappingProxyType
from typing import Any
from uuid import UUID

_LOGGER_PREFIX = "hr_kernel"

_EMPTY: Mapping[str, str] = MappingProxyType({})
_context: ContextVar[Mapping[str, str]] = ContextVar("hr_log_context", default=_EMPTY)


class LogContext:
    """Fields attached to every log line emitted in the current context."""

    FIELDS = frozenset({"correlation_id", "request_id", "actor", "employee_id", "batch_id"})

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def clear() -> None:
        _context.set(_EMPTY)

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[None]:
        """
        Add fields for the duration of the block; the previous values come
        back on exit.  Values are stringified, None values and unknown
        names are ignored.
        """
        merged = dict(_context.get())
        merged.update(
            (name, str(value))
            for name, value in fields.items()
            if value is not None and name in cls.FIELDS
        )
        token = _context.set(MappingProxyType(merged))
        try:
            yield
        finally:
            _context.reset(token)


_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "taskName",
}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    return repr(obj)


class StructuredFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED:
                payload.setdefault(key, value)

        exc = record.exc_info[1] if record.exc_info else None
        if exc is not None:
            payload["exc_type"] = type(exc).__name__
            payload["exc_message"] = str(exc)
            for attr in ("code", "kind"):
                if hasattr(exc, attr):
                    payload[f"exc_{attr}"] = getattr(exc, attr)
            details = getattr(exc, "details", None)
            if callable(details):
                payload.update({f"exc_{k}": v for k, v in details().items()})
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Logger named ``hr_kernel.<name>``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


def _structured_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if isinstance(h.formatter, StructuredFormatter)]


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach a JSON handler to the hr_kernel logger.  Later calls are no-ops."""
    root = logging.getLogger(_LOGGER_PREFIX)
    if _structured_handlers(root):
        return
    handler = handler or logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False


def reset_logging() -> None:
    """Remove the handlers configure_logging installed."""
    root = logging.getLogger(_LOGGER_PREFIX)
    for handler in _structured_handlers(root):
        root.removeHandler(handler)
    root.setLevel(logging.WARNING)
