"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the shared storage backend because:
1. Both partners can view the ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (fine for one household)
- No transactions (the ledger service compensates instead)
- Limited query capabilities (we filter in Python)
- Last write wins when two people edit at once

Each record collection lives in its own worksheet with a header row.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional, TypeVar
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from household_ledger.config import get_settings
from household_ledger.config.settings import GoogleSheetsSettings
from household_ledger.models.records import (
    Expense,
    ExpenseCategory,
    Goal,
    Household,
    Income,
    User,
)
from household_ledger.services.storage.interface import (
    ConnectionError,
    HouseholdStorageInterface,
    LedgerStorageInterface,
    NotFoundError,
    PersistenceError,
)
from household_ledger.services.storage.join_codes import (
    generate_join_code,
    normalize_join_code,
)


USER_COLUMNS = ["id", "name", "email", "household_id"]

INCOME_COLUMNS = [
    "id",
    "created_at",
    "title",
    "amount",
    "user_id",
    "is_recurring",
    "household_id",
]

EXPENSE_COLUMNS = [
    "id",
    "created_at",
    "title",
    "amount",
    "payer_id",
    "is_shared",
    "category",
    "linked_goal_id",
    "household_id",
]

GOAL_COLUMNS = [
    "id",
    "created_at",
    "title",
    "target_amount",
    "current_amount",
    "monthly_contribution",
    "deadline",
    "household_id",
]

HOUSEHOLD_COLUMNS = ["id", "name", "code", "created_at"]

T = TypeVar("T")


def _cell_getter(row: list) -> Callable[..., str]:
    """Return a safe_get(index) accessor that tolerates short rows."""
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default
    return safe_get


def _opt_uuid(value: str) -> Optional[UUID]:
    return UUID(value) if value else None


def _opt_str(value: Optional[UUID]) -> str:
    return str(value) if value else ""


def _bool(value: str) -> bool:
    return value.strip().lower() == "true"


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for connecting.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        """Get a worksheet, creating it with a header row if missing."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet


# =============================================================================
# ROW CONVERSION
# =============================================================================

def user_to_row(user: User) -> list:
    return [str(user.id), user.name, user.email, _opt_str(user.household_id)]


def row_to_user(row: list) -> User:
    safe_get = _cell_getter(row)
    return User(
        id=UUID(safe_get(0)),
        name=safe_get(1),
        email=safe_get(2),
        household_id=_opt_uuid(safe_get(3)),
    )


def income_to_row(income: Income) -> list:
    return [
        str(income.id),
        income.created_at.isoformat(),
        income.title,
        str(income.amount),
        str(income.user_id),
        str(income.is_recurring),
        _opt_str(income.household_id),
    ]


def row_to_income(row: list) -> Income:
    safe_get = _cell_getter(row)
    return Income(
        id=UUID(safe_get(0)),
        created_at=datetime.fromisoformat(safe_get(1)),
        title=safe_get(2),
        amount=Decimal(safe_get(3)),
        user_id=UUID(safe_get(4)),
        is_recurring=_bool(safe_get(5)),
        household_id=_opt_uuid(safe_get(6)),
    )


def expense_to_row(expense: Expense) -> list:
    return [
        str(expense.id),
        expense.created_at.isoformat(),
        expense.title,
        str(expense.amount),
        str(expense.payer_id),
        str(expense.is_shared),
        expense.category.value,
        _opt_str(expense.linked_goal_id),
        _opt_str(expense.household_id),
    ]


def row_to_expense(row: list) -> Expense:
    safe_get = _cell_getter(row)
    return Expense(
        id=UUID(safe_get(0)),
        created_at=datetime.fromisoformat(safe_get(1)),
        title=safe_get(2),
        amount=Decimal(safe_get(3)),
        payer_id=UUID(safe_get(4)),
        is_shared=_bool(safe_get(5)),
        category=ExpenseCategory(safe_get(6, "other")),
        linked_goal_id=_opt_uuid(safe_get(7)),
        household_id=_opt_uuid(safe_get(8)),
    )


def goal_to_row(goal: Goal) -> list:
    return [
        str(goal.id),
        goal.created_at.isoformat(),
        goal.title,
        str(goal.target_amount),
        str(goal.current_amount),
        str(goal.monthly_contribution),
        goal.deadline.isoformat() if goal.deadline else "",
        _opt_str(goal.household_id),
    ]


def row_to_goal(row: list) -> Goal:
    safe_get = _cell_getter(row)
    return Goal(
        id=UUID(safe_get(0)),
        created_at=datetime.fromisoformat(safe_get(1)),
        title=safe_get(2),
        target_amount=Decimal(safe_get(3)),
        current_amount=Decimal(safe_get(4, "0")),
        monthly_contribution=Decimal(safe_get(5, "0")),
        deadline=date.fromisoformat(safe_get(6)) if safe_get(6) else None,
        household_id=_opt_uuid(safe_get(7)),
    )


def household_to_row(household: Household) -> list:
    return [
        str(household.id),
        household.name,
        household.code,
        household.created_at.isoformat(),
    ]


def row_to_household(row: list) -> Household:
    safe_get = _cell_getter(row)
    return Household(
        id=UUID(safe_get(0)),
        name=safe_get(1),
        code=safe_get(2),
        created_at=datetime.fromisoformat(safe_get(3)),
    )


# =============================================================================
# STORAGE
# =============================================================================

class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of the ledger collections.

    One worksheet per collection, one record per row.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _sheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        return self._client.get_worksheet(title, columns)

    def _users_sheet(self) -> gspread.Worksheet:
        return self._sheet(self._client.settings.users_sheet_name, USER_COLUMNS)

    def _incomes_sheet(self) -> gspread.Worksheet:
        return self._sheet(self._client.settings.incomes_sheet_name, INCOME_COLUMNS)

    def _expenses_sheet(self) -> gspread.Worksheet:
        return self._sheet(self._client.settings.expenses_sheet_name, EXPENSE_COLUMNS)

    def _goals_sheet(self) -> gspread.Worksheet:
        return self._sheet(self._client.settings.goals_sheet_name, GOAL_COLUMNS)

    @staticmethod
    def _append(sheet_getter: Callable[[], gspread.Worksheet], row: list, what: str) -> bool:
        try:
            sheet_getter().append_row(row, value_input_option="RAW")
            return True
        except Exception as e:
            raise PersistenceError(f"Failed to save {what}: {e}")

    @staticmethod
    def _read_all(
        sheet_getter: Callable[[], gspread.Worksheet],
        converter: Callable[[list], T],
        household_column: Optional[int],
        household_id: Optional[UUID],
        what: str,
    ) -> list[T]:
        try:
            all_rows = sheet_getter().get_all_values()[1:]  # Skip header
        except Exception as e:
            raise PersistenceError(f"Failed to list {what}: {e}")

        records = []
        for row in all_rows:
            if not row or not row[0]:  # Skip empty rows
                continue
            if household_id is not None and household_column is not None:
                if _cell_getter(row)(household_column) != str(household_id):
                    continue
            try:
                records.append(converter(row))
            except Exception as e:
                raise PersistenceError(f"Malformed {what} row {row[0]}: {e}")
        return records

    async def insert_user(self, user: User) -> bool:
        return self._append(self._users_sheet, user_to_row(user), "user")

    async def insert_income(self, income: Income) -> bool:
        return self._append(self._incomes_sheet, income_to_row(income), "income")

    async def insert_expense(self, expense: Expense) -> bool:
        return self._append(self._expenses_sheet, expense_to_row(expense), "expense")

    async def delete_expense(self, expense_id: UUID) -> bool:
        try:
            sheet = self._expenses_sheet()
            all_rows = sheet.get_all_values()

            for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is header
                if row and row[0] == str(expense_id):
                    sheet.delete_rows(idx)
                    return True

            return False
        except Exception as e:
            raise PersistenceError(f"Failed to delete expense: {e}")

    async def insert_goal(self, goal: Goal) -> bool:
        return self._append(self._goals_sheet, goal_to_row(goal), "goal")

    async def update_goal_amount(self, goal_id: UUID, amount: Decimal) -> bool:
        column = GOAL_COLUMNS.index("current_amount") + 1
        try:
            sheet = self._goals_sheet()
            all_rows = sheet.get_all_values()

            for idx, row in enumerate(all_rows[1:], start=2):
                if row and row[0] == str(goal_id):
                    sheet.update_cell(idx, column, str(amount))
                    return True

            raise NotFoundError(f"Goal not found: {goal_id}")
        except NotFoundError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to update goal: {e}")

    async def list_users(self, household_id: Optional[UUID] = None) -> list[User]:
        return self._read_all(
            self._users_sheet, row_to_user,
            USER_COLUMNS.index("household_id"), household_id, "users",
        )

    async def list_incomes(self, household_id: Optional[UUID] = None) -> list[Income]:
        return self._read_all(
            self._incomes_sheet, row_to_income,
            INCOME_COLUMNS.index("household_id"), household_id, "incomes",
        )

    async def list_expenses(self, household_id: Optional[UUID] = None) -> list[Expense]:
        return self._read_all(
            self._expenses_sheet, row_to_expense,
            EXPENSE_COLUMNS.index("household_id"), household_id, "expenses",
        )

    async def list_goals(self, household_id: Optional[UUID] = None) -> list[Goal]:
        return self._read_all(
            self._goals_sheet, row_to_goal,
            GOAL_COLUMNS.index("household_id"), household_id, "goals",
        )


class GoogleSheetsHouseholdStorage(HouseholdStorageInterface):
    """Google Sheets implementation of household records."""

    def __init__(
        self,
        client: Optional[GoogleSheetsClient] = None,
        code_length: int = 6,
    ):
        self._client = client or GoogleSheetsClient()
        self._code_length = code_length

    def _households_sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(
            self._client.settings.households_sheet_name, HOUSEHOLD_COLUMNS
        )

    def _users_sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(
            self._client.settings.users_sheet_name, USER_COLUMNS
        )

    async def create_household(self, name: str) -> Household:
        try:
            sheet = self._households_sheet()
            taken = {row[2] for row in sheet.get_all_values()[1:] if len(row) > 2}

            code = generate_join_code(self._code_length)
            while code in taken:
                code = generate_join_code(self._code_length)

            household = Household(name=name, code=code)
            sheet.append_row(household_to_row(household), value_input_option="RAW")
            return household
        except Exception as e:
            raise PersistenceError(f"Failed to create household: {e}")

    async def find_household_by_code(self, code: str) -> Optional[Household]:
        wanted = normalize_join_code(code)
        try:
            all_rows = self._households_sheet().get_all_values()[1:]
        except Exception as e:
            raise PersistenceError(f"Failed to look up household: {e}")

        for row in all_rows:
            if len(row) > 2 and row[2] == wanted:
                return row_to_household(row)
        return None

    async def update_user_household(self, user_id: UUID, household_id: UUID) -> bool:
        column = USER_COLUMNS.index("household_id") + 1
        try:
            sheet = self._users_sheet()
            all_rows = sheet.get_all_values()

            for idx, row in enumerate(all_rows[1:], start=2):
                if row and row[0] == str(user_id):
                    sheet.update_cell(idx, column, str(household_id))
                    return True

            raise NotFoundError(f"User not found: {user_id}")
        except NotFoundError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to update user household: {e}")
