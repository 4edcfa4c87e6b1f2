"""
Configuration Schema (``hr_config.schema``).

Frozen dataclasses for every section of the HR policy YAML document.  The
kernel never sees these types directly; ``hr_config.bridges`` turns them
into kernel inputs (``SalaryPolicy``).

Invariants enforced
-------------------
* Every section is a frozen dataclass; a loaded configuration is immutable.
* Bounds are checked in ``__post_init__`` so an invalid document fails at
  load time rather than at the first salary change.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class SalaryPolicyDef:
    """Allowed percentage change band for one salary change (inclusive)."""

    min_percent_change: Decimal = Decimal("-25")
    max_percent_change: Decimal = Decimal("50")

    def __post_init__(self) -> None:
        if self.min_percent_change <= Decimal("-100"):
            raise ValueError(
                f"salary_policy.min_percent_change must be above -100, "
                f"got {self.min_percent_change}"
            )
        if self.min_percent_change >= self.max_percent_change:
            raise ValueError(
                f"salary_policy.min_percent_change ({self.min_percent_change}) must be "
                f"below max_percent_change ({self.max_percent_change})"
            )


@dataclass(frozen=True)
class ConcurrencySettings:
    max_retries: int = 3
    batch_max_workers: int = 4
    retry_backoff_seconds: float = 0.05

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"concurrency.max_retries must be >= 0, got {self.max_retries}")
        if self.batch_max_workers < 1:
            raise ValueError(
                f"concurrency.batch_max_workers must be >= 1, got {self.batch_max_workers}"
            )
        if self.retry_backoff_seconds < 0:
            raise ValueError("concurrency.retry_backoff_seconds must be >= 0")


@dataclass(frozen=True)
class AuditQuerySettings:
    default_page_size: int = 50
    max_page_size: int = 100
    default_window_days: int = 30

    def __post_init__(self) -> None:
        if self.max_page_size < 1:
            raise ValueError("audit_query.max_page_size must be >= 1")
        if not 1 <= self.default_page_size <= self.max_page_size:
            raise ValueError(
                "audit_query.default_page_size must lie between 1 and max_page_size"
            )
        if self.default_window_days < 1:
            raise ValueError("audit_query.default_window_days must be >= 1")


@dataclass(frozen=True)
class HierarchySettings:
    max_manager_depth: int = 10

    def __post_init__(self) -> None:
        if self.max_manager_depth < 1:
            raise ValueError("hierarchy.max_manager_depth must be >= 1")


@dataclass(frozen=True)
class HrConfig:
    """The complete, validated HR policy configuration."""

    config_id: str
    version: int
    salary_policy: SalaryPolicyDef = field(default_factory=SalaryPolicyDef)
    concurrency: ConcurrencySettings = field(default_factory=ConcurrencySettings)
    audit_query: AuditQuerySettings = field(default_factory=AuditQuerySettings)
    hierarchy: HierarchySettings = field(default_factory=HierarchySettings)
    checksum: str = ""
