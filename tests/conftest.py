"""Shared fixtures: the Alex & Sam household and storage doubles."""

from decimal import Decimal
from types import SimpleNamespace
from typing import Optional
from uuid import UUID

import pytest

from household_ledger.config.settings import LedgerSettings
from household_ledger.events import EventLogger
from household_ledger.models import (
    Expense,
    ExpenseCategory,
    Goal,
    Household,
    Income,
    LedgerEvent,
    LedgerState,
    User,
)
from household_ledger.orchestrator import HouseholdService, LedgerService
from household_ledger.services.storage import (
    InMemoryHouseholdStorage,
    InMemoryLedgerStorage,
    PersistenceError,
)


class RecordingEventLogger(EventLogger):
    """Keeps every event so tests can assert on what was logged."""

    def __init__(self):
        super().__init__("tests")
        self.events: list[LedgerEvent] = []

    def log(self, event: LedgerEvent) -> LedgerEvent:
        self.events.append(event)
        return event

    def types(self) -> list[str]:
        return [e.event_type.value for e in self.events]


class FlakyLedgerStorage(InMemoryLedgerStorage):
    """In-memory storage that fails the operations named in fail_on."""

    def __init__(self, fail_on: Optional[set[str]] = None):
        super().__init__()
        self.fail_on = fail_on or set()

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise PersistenceError(f"store unavailable during {operation}")

    async def insert_user(self, user):
        self._maybe_fail("insert_user")
        return await super().insert_user(user)

    async def insert_income(self, income):
        self._maybe_fail("insert_income")
        return await super().insert_income(income)

    async def insert_expense(self, expense):
        self._maybe_fail("insert_expense")
        return await super().insert_expense(expense)

    async def delete_expense(self, expense_id):
        self._maybe_fail("delete_expense")
        return await super().delete_expense(expense_id)

    async def insert_goal(self, goal):
        self._maybe_fail("insert_goal")
        return await super().insert_goal(goal)

    async def update_goal_amount(self, goal_id, amount):
        self._maybe_fail("update_goal_amount")
        return await super().update_goal_amount(goal_id, amount)


class FakeWorksheet:
    """Enough of gspread.Worksheet for the storage backend."""

    def __init__(self, columns: list[str]):
        self.rows: list[list[str]] = [list(columns)]

    def append_row(self, row, value_input_option=None):
        self.rows.append([str(v) for v in row])

    def get_all_values(self):
        return [list(r) for r in self.rows]

    def update_cell(self, row, col, value):
        self.rows[row - 1][col - 1] = str(value)

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:
    """Stands in for GoogleSheetsClient without touching the network."""

    def __init__(self):
        self.settings = SimpleNamespace(
            users_sheet_name="Users",
            incomes_sheet_name="Incomes",
            expenses_sheet_name="Expenses",
            goals_sheet_name="Goals",
            households_sheet_name="Households",
        )
        self.sheets: dict[str, FakeWorksheet] = {}

    def get_worksheet(self, title, columns):
        if title not in self.sheets:
            self.sheets[title] = FakeWorksheet(columns)
        return self.sheets[title]


def make_expense(
    title: str,
    amount: str,
    payer: User,
    shared: bool,
    category: ExpenseCategory = ExpenseCategory.OTHER,
    goal: Optional[Goal] = None,
    household_id: Optional[UUID] = None,
) -> Expense:
    return Expense(
        title=title,
        amount=Decimal(amount),
        payer_id=payer.id,
        is_shared=shared,
        category=category,
        linked_goal_id=goal.id if goal else None,
        household_id=household_id,
    )


@pytest.fixture
def settings() -> LedgerSettings:
    return LedgerSettings(household_scoping=True, dangling_goal_policy="warn")


@pytest.fixture
def household() -> Household:
    return Household(name="Alex & Sam", code="HOME42")


@pytest.fixture
def alex(household) -> User:
    return User(name="Alex", email="alex@example.com", household_id=household.id)


@pytest.fixture
def sam(household) -> User:
    return User(name="Sam", email="sam@example.com", household_id=household.id)


@pytest.fixture
def new_car() -> Goal:
    return Goal(
        title="New Car",
        target_amount=Decimal("15000"),
        current_amount=Decimal("5000"),
        monthly_contribution=Decimal("400"),
    )


@pytest.fixture
def summer_trip() -> Goal:
    return Goal(
        title="Summer Trip",
        target_amount=Decimal("3000"),
        current_amount=Decimal("1200"),
        monthly_contribution=Decimal("200"),
    )


@pytest.fixture
def sample_state(alex, sam, new_car, summer_trip, household) -> LedgerState:
    """The two-person household from the worked example."""
    return LedgerState(
        users=(alex, sam),
        incomes=(
            Income(title="Salary", amount=Decimal("5000"), user_id=alex.id, is_recurring=True),
            Income(title="Salary", amount=Decimal("4200"), user_id=sam.id, is_recurring=True),
        ),
        expenses=(
            make_expense("Rent", "2000", alex, True, ExpenseCategory.HOUSING),
            make_expense("Groceries", "600", sam, True, ExpenseCategory.FOOD),
            make_expense("Netflix", "15", alex, True, ExpenseCategory.ENTERTAINMENT),
            make_expense("Gym", "50", alex, False),
            make_expense("Books", "30", sam, False),
        ),
        goals=(new_car, summer_trip),
        current_household=household,
    )


@pytest.fixture
def events() -> RecordingEventLogger:
    return RecordingEventLogger()


@pytest.fixture
def storage(sample_state) -> FlakyLedgerStorage:
    """Storage already holding the sample ledger."""
    store = FlakyLedgerStorage()
    store.users.extend(sample_state.users)
    store.incomes.extend(sample_state.incomes)
    store.expenses.extend(sample_state.expenses)
    store.goals.extend(sample_state.goals)
    return store


@pytest.fixture
def service(storage, events, settings) -> LedgerService:
    return LedgerService(storage, event_logger=events, settings=settings)


@pytest.fixture
def household_service(storage, events) -> HouseholdService:
    return HouseholdService(InMemoryHouseholdStorage(storage), storage, event_logger=events)
