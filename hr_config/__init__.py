"""
hr_config -- single public entrypoint for HR policy configuration.

Responsibility:
    Provides the way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``HrConfig``.

Architecture position:
    Configuration -- sits above ``hr_kernel`` and below ``hr_services`` /
    ``hr_api``.  The kernel never imports from ``hr_config``;
    ``hr_config.bridges`` translates sections into kernel inputs.

Failure modes:
    - ``FileNotFoundError`` -- the requested file does not exist.
    - ``ValueError`` -- unknown keys or invalid values (for example a
      salary band with min >= max).

Audit relevance:
    Every successful ``get_active_config()`` call emits an
    ``HR_CONFIG_TRACE`` log entry with the config id, version and checksum,
    tying every salary decision to the band that governed it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from hr_config.loader import load_yaml_file, parse_config
from hr_config.schema import (
    AuditQuerySettings,
    ConcurrencySettings,
    HierarchySettings,
    HrConfig,
    SalaryPolicyDef,
)

_logger = logging.getLogger("hr_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | str | None = None) -> HrConfig:
    """
    Load and validate the HR configuration.

    Args:
        config_path: YAML file to load.  Defaults to the ``defaults.yaml``
            shipped with this package.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the document fails validation.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = parse_config(load_yaml_file(path))

    _logger.info(
        "HR_CONFIG_TRACE",
        extra={
            "trace_type": "HR_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "config_path": str(path),
            "min_percent_change": str(config.salary_policy.min_percent_change),
            "max_percent_change": str(config.salary_policy.max_percent_change),
        },
    )
    return config


__all__ = [
    "AuditQuerySettings",
    "ConcurrencySettings",
    "DEFAULT_CONFIG_PATH",
    "HierarchySettings",
    "HrConfig",
    "SalaryPolicyDef",
    "get_active_config",
]
