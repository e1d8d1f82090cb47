"""
Ledger Snapshot

The complete state one caller holds for one household. Mutations never
change a snapshot; they return the next one.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from household_ledger.models.records import (
    Expense,
    Goal,
    Household,
    Income,
    User,
)


class LedgerState(BaseModel):
    """Immutable snapshot of users, incomes, expenses and goals."""
    model_config = ConfigDict(frozen=True)

    users: tuple[User, ...] = ()
    incomes: tuple[Income, ...] = ()
    expenses: tuple[Expense, ...] = ()
    goals: tuple[Goal, ...] = ()

    # None means the NoHousehold state
    current_household: Optional[Household] = None

    @property
    def has_household(self) -> bool:
        return self.current_household is not None

    @property
    def household_id(self) -> Optional[UUID]:
        return self.current_household.id if self.current_household else None

    def find_goal(self, goal_id: UUID) -> Optional[Goal]:
        for goal in self.goals:
            if goal.id == goal_id:
                return goal
        return None

    def find_user(self, user_id: UUID) -> Optional[User]:
        for user in self.users:
            if user.id == user_id:
                return user
        return None

    def replace_goal(self, goal: Goal) -> 'LedgerState':
        """Return a snapshot where the goal with goal.id is swapped for goal."""
        goals = tuple(goal if g.id == goal.id else g for g in self.goals)
        return self.model_copy(update={"goals": goals})
