"""
Config -> Kernel bridges.

Convert ``HrConfig`` sections into kernel inputs.  They live here because
the kernel never imports hr_config.
"""

from __future__ import annotations

from hr_config.schema import HrConfig
from hr_kernel.domain.policy import SalaryPolicy


def build_salary_policy(config: HrConfig) -> SalaryPolicy:
    return SalaryPolicy(
        min_percent_change=config.salary_policy.min_percent_change,
        max_percent_change=config.salary_policy.max_percent_change,
    )
