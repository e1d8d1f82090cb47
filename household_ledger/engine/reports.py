"""
Dashboard Reports

Deterministic views over a ledger snapshot: household totals, spending
by category, spending per day and the recent activity feed.
Rendering is someone else's job; these return plain models.
"""

import calendar
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from household_ledger.engine.allocation import ZERO, goal_contributions_total
from household_ledger.models.financials import (
    ActivityItem,
    CategoryTotal,
    DailySpending,
    HouseholdOverview,
    UserFinancials,
)
from household_ledger.models.records import Expense, ExpenseCategory, Goal, Income


HUNDRED = Decimal("100")


def _percent_of(part: Decimal, whole: Decimal) -> Optional[Decimal]:
    # No income means no meaningful ratio
    if whole == 0:
        return None
    return part / whole * HUNDRED


def household_overview(
    financials: Sequence[UserFinancials],
    expenses: Sequence[Expense],
    goals: Sequence[Goal],
) -> HouseholdOverview:
    """
    Combined position of the household.

    Unlike the per-person figures, total_spent counts every expense
    including savings transfers: it is all money that left the accounts.
    """
    total_income = sum((f.total_income for f in financials), ZERO)
    total_spent = sum((e.amount for e in expenses), ZERO)
    total_goals = goal_contributions_total(goals)

    return HouseholdOverview(
        total_income=total_income,
        total_spent=total_spent,
        total_goal_contribution=total_goals,
        leftover=total_income - total_spent - total_goals,
        spent_ratio=_percent_of(total_spent, total_income),
        savings_ratio=_percent_of(total_goals, total_income),
    )


def category_breakdown(expenses: Iterable[Expense]) -> list[CategoryTotal]:
    """Total per category, largest first. Categories with no spending are omitted."""
    totals: dict[ExpenseCategory, Decimal] = defaultdict(lambda: ZERO)
    for expense in expenses:
        totals[expense.category] += expense.amount

    rows = [CategoryTotal(category=c, total=t) for c, t in totals.items()]
    rows.sort(key=lambda row: row.total, reverse=True)
    return rows


def daily_spending(
    expenses: Iterable[Expense],
    year: int,
    month: int,
) -> list[DailySpending]:
    """
    Spending for every day of the given month.

    Days without expenses are present with a zero amount.
    """
    days_in_month = calendar.monthrange(year, month)[1]
    amounts = [ZERO] * days_in_month

    for expense in expenses:
        created = expense.created_at
        if created.year == year and created.month == month:
            amounts[created.day - 1] += expense.amount

    return [
        DailySpending(day=date(year, month, index + 1), amount=amount)
        for index, amount in enumerate(amounts)
    ]


def recent_activity(
    incomes: Iterable[Income],
    expenses: Iterable[Expense],
    goals: Iterable[Goal],
    limit: int = 50,
) -> list[ActivityItem]:
    """Merge incomes, expenses and goal creations, newest first."""
    items = [
        ActivityItem(
            kind="income",
            record_id=i.id,
            title=i.title,
            created_at=i.created_at,
            amount=i.amount,
        )
        for i in incomes
    ]
    items.extend(
        ActivityItem(
            kind="expense",
            record_id=e.id,
            title=e.title,
            created_at=e.created_at,
            amount=e.amount,
        )
        for e in expenses
    )
    items.extend(
        ActivityItem(
            kind="goal",
            record_id=g.id,
            title=g.title,
            created_at=g.created_at,
            amount=g.target_amount,
        )
        for g in goals
    )

    items.sort(key=lambda item: item.created_at, reverse=True)
    return items[:limit]


def goal_progress(goal: Goal) -> Decimal:
    """Percent of target reached. Can exceed 100."""
    return goal.current_amount / goal.target_amount * HUNDRED
