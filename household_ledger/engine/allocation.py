"""
Allocation Engine

Turns a ledger snapshot into each person's "safe to spend" figure:

    disposable = income - shared/N - own personal expenses - goals/N

where N is the number of people splitting shared costs.

DESIGN DECISION: This is a pure function. No I/O, no hidden state,
nothing is mutated, and nothing is clamped. A negative result is a
meaningful answer (the person is overspending), not an error.

Savings-transfer expenses are left out of both expense sums.
Their money is accounted for in the goal balance they fund.
"""

from decimal import Decimal
from typing import Iterable, Optional, Sequence

from household_ledger.models.financials import UserFinancials
from household_ledger.models.records import Expense, Goal, Income, User


ZERO = Decimal("0")


def _consumption(expenses: Iterable[Expense]) -> list[Expense]:
    return [e for e in expenses if not e.is_savings_transfer]


def shared_expenses_total(expenses: Iterable[Expense]) -> Decimal:
    """Sum of every shared expense, whoever paid it."""
    return sum((e.amount for e in _consumption(expenses) if e.is_shared), ZERO)


def goal_contributions_total(goals: Iterable[Goal]) -> Decimal:
    """Sum of the monthly pledges of every goal."""
    return sum((g.monthly_contribution for g in goals), ZERO)


def calculate_financials(
    users: Sequence[User],
    incomes: Sequence[Income],
    expenses: Sequence[Expense],
    goals: Sequence[Goal],
    split_between: Optional[int] = None,
) -> list[UserFinancials]:
    """
    Compute one UserFinancials per user, in the order users were given.

    Args:
        users: Household members
        incomes: All incomes for the household
        expenses: All expenses for the household
        goals: All goals for the household
        split_between: How many people share joint costs.
                       Defaults to the number of users, which is 2 for
                       the usual couple.

    Returns:
        List of per-user summaries (empty when there are no users)

    Raises:
        ValueError: split_between is given and is less than 1
    """
    if split_between is not None and split_between < 1:
        raise ValueError(f"split_between must be at least 1, got {split_between}")

    if not users:
        return []

    parties = split_between if split_between is not None else len(users)

    share_of_shared = shared_expenses_total(expenses) / parties
    share_of_goals = goal_contributions_total(goals) / parties
    personal = [e for e in _consumption(expenses) if not e.is_shared]

    results = []
    for user in users:
        total_income = sum(
            (i.amount for i in incomes if i.user_id == user.id), ZERO
        )
        individual = sum(
            (e.amount for e in personal if e.payer_id == user.id), ZERO
        )

        results.append(UserFinancials(
            user_id=user.id,
            total_income=total_income,
            share_of_shared_expenses=share_of_shared,
            individual_expenses=individual,
            share_of_goals=share_of_goals,
            disposable_income=total_income - share_of_shared - individual - share_of_goals,
        ))

    return results
