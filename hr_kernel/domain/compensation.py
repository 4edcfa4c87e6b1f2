"""
Compensation arithmetic for the reporting layer.

Pure functions, zero I/O.  Everything here is derived guidance; nothing
in this module changes a salary.

Bands:

    average review score   performance bonus
    >= 4.5                 15 %
    >= 4.0                 12 %
    >= 3.5                  8 %
    >= 3.0                  5 %
    otherwise               0 %

    years of service       service bonus
    >= 10                  2.0 %
    >= 5                   1.5 %
    >= 2                   1.0 %
    otherwise              0 %
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

from hr_kernel.domain.values import BudgetStatus

CENT = Decimal("0.01")

PERFORMANCE_BONUS_BANDS: tuple[tuple[Decimal, Decimal], ...] = (
    (Decimal("4.5"), Decimal("15")),
    (Decimal("4.0"), Decimal("12")),
    (Decimal("3.5"), Decimal("8")),
    (Decimal("3.0"), Decimal("5")),
)

SERVICE_BONUS_BANDS: tuple[tuple[int, Decimal], ...] = (
    (10, Decimal("2.0")),
    (5, Decimal("1.5")),
    (2, Decimal("1.0")),
)


def performance_bonus_percent(average_score: Decimal | None) -> Decimal:
    if average_score is None:
        return Decimal("0")
    for threshold, percent in PERFORMANCE_BONUS_BANDS:
        if average_score >= threshold:
            return percent
    return Decimal("0")


def service_bonus_percent(years_of_service: int) -> Decimal:
    for threshold, percent in SERVICE_BONUS_BANDS:
        if years_of_service >= threshold:
            return percent
    return Decimal("0")


def percentile_cont(values: Sequence[Decimal], fraction: Decimal) -> Decimal | None:
    """
    Continuous percentile with linear interpolation between closest ranks.

    Same result as SQL ``PERCENTILE_CONT(fraction) WITHIN GROUP (ORDER BY x)``.
    Returns None for an empty input.
    """
    if not values:
        return None
    ordered = sorted(values)
    position = Decimal(len(ordered) - 1) * fraction
    lower = int(position)
    upper = min(lower + 1, len(ordered) - 1)
    weight = position - lower
    result = ordered[lower] + (ordered[upper] - ordered[lower]) * weight
    return result.quantize(CENT, rounding=ROUND_HALF_UP)


def percent_rank(value: Decimal, population: Sequence[Decimal]) -> Decimal:
    """
    Share of the population strictly below ``value``, as 0..100.

    Same result as SQL ``PERCENT_RANK()``; a single-member population is 0.
    """
    if len(population) <= 1:
        return Decimal("0")
    below = sum(1 for v in population if v < value)
    rank = Decimal(below) / Decimal(len(population) - 1) * Decimal(100)
    return rank.quantize(CENT, rounding=ROUND_HALF_UP)


def budget_status(total_salary: Decimal, budget: Decimal | None) -> BudgetStatus:
    if budget is None:
        return BudgetStatus.NOT_SET
    if total_salary < budget:
        return BudgetStatus.UNDER
    if total_salary > budget:
        return BudgetStatus.OVER
    return BudgetStatus.ON


def budget_utilization_percent(
    total_salary: Decimal, budget: Decimal | None
) -> Decimal | None:
    if budget is None or budget == 0:
        return None
    return (total_salary / budget * Decimal(100)).quantize(CENT, rounding=ROUND_HALF_UP)
