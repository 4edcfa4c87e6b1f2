"""
Value vocabulary shared by models, validation and reporting.

Pure definitions, zero I/O.  Models import these; nothing here imports
models.
"""

from enum import Enum


class ProjectStatus(str, Enum):
    """Project lifecycle status."""

    PLANNING = "Planning"
    ACTIVE = "Active"
    COMPLETED = "Completed"
    ON_HOLD = "On Hold"
    CANCELLED = "Cancelled"


class BudgetStatus(str, Enum):
    """Department payroll against budget."""

    UNDER = "Under Budget"
    OVER = "Over Budget"
    ON = "On Budget"
    NOT_SET = "No Budget Set"


# The five integer ratings of a performance review, each 1..5
RATING_FIELDS = (
    "overall_rating",
    "technical_skills",
    "communication",
    "teamwork",
    "leadership",
)
