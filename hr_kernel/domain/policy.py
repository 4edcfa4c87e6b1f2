"""
Salary policy band.

Defined once, passed in.  The kernel never reads configuration itself;
``hr_config`` builds a SalaryPolicy from the deployment's YAML file and hands
it to the services.
"""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class SalaryPolicy:
    """
    Allowed percentage change for one salary mutation, inclusive.

    Guarantees:
        - min_percent_change < max_percent_change.
        - min_percent_change > -100 (a salary can never reach zero).
    """

    min_percent_change: Decimal = Decimal("-25")
    max_percent_change: Decimal = Decimal("50")

    def __post_init__(self) -> None:
        lo = Decimal(str(self.min_percent_change))
        hi = Decimal(str(self.max_percent_change))
        if lo <= Decimal("-100"):
            raise ValueError(
                f"min_percent_change must be greater than -100, got {lo}"
            )
        if lo >= hi:
            raise ValueError(
                f"min_percent_change ({lo}) must be below "
                f"max_percent_change ({hi})"
            )
        object.__setattr__(self, "min_percent_change", lo)
        object.__setattr__(self, "max_percent_change", hi)

    def allows(self, percent_change: Decimal) -> bool:
        return self.min_percent_change <= percent_change <= self.max_percent_change


DEFAULT_SALARY_POLICY = SalaryPolicy()
