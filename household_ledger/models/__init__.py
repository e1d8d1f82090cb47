"""
Data Models Package

This package contains all Pydantic models used in the Household Ledger.
All data flowing through the system must conform to these schemas.
"""

from household_ledger.models.records import (
    Expense,
    ExpenseCategory,
    Goal,
    Household,
    Income,
    User,
)
from household_ledger.models.ledger import LedgerState
from household_ledger.models.financials import (
    ActivityItem,
    CategoryTotal,
    DailySpending,
    HouseholdOverview,
    UserFinancials,
)
from household_ledger.models.events import (
    EventSeverity,
    LedgerEvent,
    LedgerEventBuilder,
    LedgerEventType,
)
from household_ledger.models.validation import ValidationIssue, ValidationResult

__all__ = [
    # Records
    "Expense",
    "ExpenseCategory",
    "Goal",
    "Household",
    "Income",
    "User",
    "LedgerState",
    # Computed summaries
    "ActivityItem",
    "CategoryTotal",
    "DailySpending",
    "HouseholdOverview",
    "UserFinancials",
    # Events
    "EventSeverity",
    "LedgerEvent",
    "LedgerEventBuilder",
    "LedgerEventType",
    # Validation
    "ValidationIssue",
    "ValidationResult",
]
