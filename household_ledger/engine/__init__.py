"""Allocation engine and dashboard reports."""

from household_ledger.engine.allocation import (
    calculate_financials,
    goal_contributions_total,
    shared_expenses_total,
)
from household_ledger.engine.reports import (
    category_breakdown,
    daily_spending,
    goal_progress,
    household_overview,
    recent_activity,
)

__all__ = [
    "calculate_financials",
    "category_breakdown",
    "daily_spending",
    "goal_contributions_total",
    "goal_progress",
    "household_overview",
    "recent_activity",
    "shared_expenses_total",
]
