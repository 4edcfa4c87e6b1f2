"""
Configuration Loader (``hr_config.loader``).

Responsibility
--------------
Loads the HR policy YAML document and parses it into the frozen
dataclasses of ``hr_config.schema``.  Runtime callers go through
``hr_config.get_active_config()``.

Invariants enforced
-------------------
* Missing sections and keys fall back to the schema defaults; unknown
  keys are rejected so a typo cannot silently fall back.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from hr_config.schema import (
    AuditQuerySettings,
    ConcurrencySettings,
    HierarchySettings,
    HrConfig,
    SalaryPolicyDef,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _section(data: dict[str, Any], name: str, allowed: set[str]) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"{name} must be a mapping, got {type(section).__name__}")
    unknown = set(section) - allowed
    if unknown:
        raise ValueError(f"Unknown keys in {name}: {', '.join(sorted(unknown))}")
    return section


def _decimal(section: str, key: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"{section}.{key} must be a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{section}.{key} must be a number, got {value!r}")


def _int(section: str, key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{section}.{key} must be an integer, got {value!r}")
    return value


def parse_salary_policy(data: dict[str, Any]) -> SalaryPolicyDef:
    section = _section(data, "salary_policy", {"min_percent_change", "max_percent_change"})
    defaults = SalaryPolicyDef()
    return SalaryPolicyDef(
        min_percent_change=_decimal(
            "salary_policy", "min_percent_change",
            section.get("min_percent_change", defaults.min_percent_change),
        ),
        max_percent_change=_decimal(
            "salary_policy", "max_percent_change",
            section.get("max_percent_change", defaults.max_percent_change),
        ),
    )


def parse_concurrency(data: dict[str, Any]) -> ConcurrencySettings:
    section = _section(
        data, "concurrency", {"max_retries", "batch_max_workers", "retry_backoff_seconds"}
    )
    defaults = ConcurrencySettings()
    backoff = section.get("retry_backoff_seconds", defaults.retry_backoff_seconds)
    if isinstance(backoff, bool) or not isinstance(backoff, (int, float)):
        raise ValueError(f"concurrency.retry_backoff_seconds must be a number, got {backoff!r}")
    return ConcurrencySettings(
        max_retries=_int(
            "concurrency", "max_retries", section.get("max_retries", defaults.max_retries)
        ),
        batch_max_workers=_int(
            "concurrency", "batch_max_workers",
            section.get("batch_max_workers", defaults.batch_max_workers),
        ),
        retry_backoff_seconds=float(backoff),
    )


def parse_audit_query(data: dict[str, Any]) -> AuditQuerySettings:
    keys = {"default_page_size", "max_page_size", "default_window_days"}
    section = _section(data, "audit_query", keys)
    defaults = AuditQuerySettings()
    return AuditQuerySettings(
        **{
            key: _int("audit_query", key, section.get(key, getattr(defaults, key)))
            for key in keys
        }
    )


def parse_hierarchy(data: dict[str, Any]) -> HierarchySettings:
    section = _section(data, "hierarchy", {"max_manager_depth"})
    return HierarchySettings(
        max_manager_depth=_int(
            "hierarchy", "max_manager_depth",
            section.get("max_manager_depth", HierarchySettings().max_manager_depth),
        ),
    )


def parse_config(data: dict[str, Any]) -> HrConfig:
    """
    Parse a whole configuration document.

    Raises:
        ValueError: unknown top-level sections or invalid values.
    """
    allowed = {"config_id", "version", "salary_policy", "concurrency", "audit_query", "hierarchy"}
    unknown = set(data) - allowed
    if unknown:
        raise ValueError(f"Unknown configuration sections: {', '.join(sorted(unknown))}")

    return HrConfig(
        config_id=str(data.get("config_id", "hr-default")),
        version=_int("config", "version", data.get("version", 1)),
        salary_policy=parse_salary_policy(data),
        concurrency=parse_concurrency(data),
        audit_query=parse_audit_query(data),
        hierarchy=parse_hierarchy(data),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """Compute a deterministic SHA-256 checksum of a configuration dict."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
