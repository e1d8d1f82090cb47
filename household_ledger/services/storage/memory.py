"""
In-Memory Storage Implementation

Keeps every collection in process memory. Used when Google Sheets is
not configured and as the backend for tests.

Records are stored as the frozen models themselves, so a caller can
never mutate what was stored.
"""

from decimal import Decimal
from typing import Optional, TypeVar
from uuid import UUID

from household_ledger.models.records import (
    Expense,
    Goal,
    Household,
    Income,
    User,
)
from household_ledger.services.storage.interface import (
    HouseholdStorageInterface,
    LedgerStorageInterface,
    NotFoundError,
)
from household_ledger.services.storage.join_codes import (
    generate_join_code,
    normalize_join_code,
)


T = TypeVar("T", Income, Expense, Goal, User)


def _scoped(records: list[T], household_id: Optional[UUID]) -> list[T]:
    if household_id is None:
        return list(records)
    return [r for r in records if r.household_id == household_id]


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Ledger collections held in lists, in insertion order."""

    def __init__(self):
        self.users: list[User] = []
        self.incomes: list[Income] = []
        self.expenses: list[Expense] = []
        self.goals: list[Goal] = []

    async def insert_user(self, user: User) -> bool:
        self.users.append(user)
        return True

    async def insert_income(self, income: Income) -> bool:
        self.incomes.append(income)
        return True

    async def insert_expense(self, expense: Expense) -> bool:
        self.expenses.append(expense)
        return True

    async def delete_expense(self, expense_id: UUID) -> bool:
        for idx, expense in enumerate(self.expenses):
            if expense.id == expense_id:
                del self.expenses[idx]
                return True
        return False

    async def insert_goal(self, goal: Goal) -> bool:
        self.goals.append(goal)
        return True

    async def update_goal_amount(self, goal_id: UUID, amount: Decimal) -> bool:
        for idx, goal in enumerate(self.goals):
            if goal.id == goal_id:
                self.goals[idx] = goal.with_amount(amount)
                return True
        raise NotFoundError(f"Goal not found: {goal_id}")

    async def list_users(self, household_id: Optional[UUID] = None) -> list[User]:
        return _scoped(self.users, household_id)

    async def list_incomes(self, household_id: Optional[UUID] = None) -> list[Income]:
        return _scoped(self.incomes, household_id)

    async def list_expenses(self, household_id: Optional[UUID] = None) -> list[Expense]:
        return _scoped(self.expenses, household_id)

    async def list_goals(self, household_id: Optional[UUID] = None) -> list[Goal]:
        return _scoped(self.goals, household_id)


class InMemoryHouseholdStorage(HouseholdStorageInterface):
    """
    Households held in a dict keyed by join code.

    Shares the user list of a ledger storage so that joining a household
    updates the same user records the ledger lists.
    """

    def __init__(
        self,
        ledger_storage: Optional[InMemoryLedgerStorage] = None,
        code_length: int = 6,
    ):
        self._ledger = ledger_storage or InMemoryLedgerStorage()
        self._code_length = code_length
        self.households: dict[str, Household] = {}

    async def create_household(self, name: str) -> Household:
        code = generate_join_code(self._code_length)
        while code in self.households:
            code = generate_join_code(self._code_length)

        household = Household(name=name, code=code)
        self.households[code] = household
        return household

    async def find_household_by_code(self, code: str) -> Optional[Household]:
        return self.households.get(normalize_join_code(code))

    async def update_user_household(self, user_id: UUID, household_id: UUID) -> bool:
        users = self._ledger.users
        for idx, user in enumerate(users):
            if user.id == user_id:
                users[idx] = user.model_copy(update={"household_id": household_id})
                return True
        raise NotFoundError(f"User not found: {user_id}")
