"""
Computed Financial Summaries

Output shapes of the allocation engine and the dashboard reports.
None of these are stored; they are recomputed from a ledger snapshot.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from household_ledger.models.records import ExpenseCategory


class UserFinancials(BaseModel):
    """
    One person's position for the period.

    disposable_income is allowed to be negative: that is how
    overspending shows up.
    """
    model_config = ConfigDict(frozen=True)

    user_id: UUID
    total_income: Decimal
    share_of_shared_expenses: Decimal
    individual_expenses: Decimal
    share_of_goals: Decimal
    disposable_income: Decimal

    @property
    def is_overspent(self) -> bool:
        return self.disposable_income < 0


class HouseholdOverview(BaseModel):
    """Combined totals for the whole household."""
    model_config = ConfigDict(frozen=True)

    total_income: Decimal
    total_spent: Decimal
    total_goal_contribution: Decimal
    leftover: Decimal

    # Percent of household income; None when there is no income to divide by
    spent_ratio: Optional[Decimal] = None
    savings_ratio: Optional[Decimal] = None


class CategoryTotal(BaseModel):
    """Spending in one category."""
    model_config = ConfigDict(frozen=True)

    category: ExpenseCategory
    total: Decimal

    @property
    def label(self) -> str:
        return self.category.value.capitalize()


class DailySpending(BaseModel):
    """Spending on one calendar day."""
    model_config = ConfigDict(frozen=True)

    day: date
    amount: Decimal = Field(default=Decimal("0"))


class ActivityItem(BaseModel):
    """One row of the recent activity feed."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["income", "expense", "goal"]
    record_id: UUID
    title: str
    created_at: datetime
    # Incomes and expenses carry their amount, goals their target
    amount: Decimal

    @property
    def sign(self) -> str:
        if self.kind == "income":
            return "+"
        if self.kind == "expense":
            return "-"
        return ""
