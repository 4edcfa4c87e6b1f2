"""HTTP/JSON binding for salary changes, salary history and the audit log."""

from hr_api.app import create_app

__all__ = ["create_app"]
