"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing and offline use
3. Keep ledger logic decoupled from storage implementation

The interface is intentionally simple - insert, select-all and the two
updates the ledger needs. It is not an ORM.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional
from uuid import UUID

from household_ledger.models.records import (
    Expense,
    Goal,
    Household,
    Income,
    User,
)


class LedgerStorageInterface(ABC):
    """
    Abstract interface for the four ledger record collections.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods. Every list method accepts an optional
    household_id filter; None returns every record.
    """

    @abstractmethod
    async def insert_user(self, user: User) -> bool:
        """
        Save a new user.

        Raises:
            PersistenceError: If save fails
        """

    @abstractmethod
    async def insert_income(self, income: Income) -> bool:
        """Save a new income."""

    @abstractmethod
    async def insert_expense(self, expense: Expense) -> bool:
        """Save a new expense."""

    @abstractmethod
    async def delete_expense(self, expense_id: UUID) -> bool:
        """
        Remove a stored expense.

        Only used to undo an expense whose goal funding could not be
        written. Returns False if there was nothing to delete.
        """

    @abstractmethod
    async def insert_goal(self, goal: Goal) -> bool:
        """Save a new goal."""

    @abstractmethod
    async def update_goal_amount(self, goal_id: UUID, amount: Decimal) -> bool:
        """
        Set a goal's current_amount.

        Raises:
            PersistenceError: If update fails
            NotFoundError: If goal doesn't exist
        """

    @abstractmethod
    async def list_users(self, household_id: Optional[UUID] = None) -> list[User]:
        pass

    @abstractmethod
    async def list_incomes(self, household_id: Optional[UUID] = None) -> list[Income]:
        pass

    @abstractmethod
    async def list_expenses(self, household_id: Optional[UUID] = None) -> list[Expense]:
        pass

    @abstractmethod
    async def list_goals(self, household_id: Optional[UUID] = None) -> list[Goal]:
        pass


class HouseholdStorageInterface(ABC):
    """
    Abstract interface for household grouping records.

    Households are created and looked up here; users are associated
    with one by updating their household_id.
    """

    @abstractmethod
    async def create_household(self, name: str) -> Household:
        """
        Create a household with a freshly generated join code.

        Returns:
            The stored household
        """

    @abstractmethod
    async def find_household_by_code(self, code: str) -> Optional[Household]:
        """
        Look up a household by join code.

        Returns:
            The household if found, None otherwise
        """

    @abstractmethod
    async def update_user_household(self, user_id: UUID, household_id: UUID) -> bool:
        """
        Associate a user with a household.

        Raises:
            NotFoundError: If user doesn't exist
        """


class PersistenceError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(PersistenceError):
    """Referenced record not found in storage (or in the ledger)."""
    pass


class ConnectionError(PersistenceError):
    """Could not connect to storage backend."""
    pass
