"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the shared backend; the in-memory backend serves tests
and offline use.
"""

from household_ledger.services.storage.interface import (
    ConnectionError,
    HouseholdStorageInterface,
    LedgerStorageInterface,
    NotFoundError,
    PersistenceError,
)
from household_ledger.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsHouseholdStorage,
    GoogleSheetsLedgerStorage,
)
from household_ledger.services.storage.join_codes import (
    generate_join_code,
    normalize_join_code,
)
from household_ledger.services.storage.memory import (
    InMemoryHouseholdStorage,
    InMemoryLedgerStorage,
)

__all__ = [
    # Interfaces
    "HouseholdStorageInterface",
    "LedgerStorageInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "PersistenceError",
    # Google Sheets implementation
    "GoogleSheetsClient",
    "GoogleSheetsHouseholdStorage",
    "GoogleSheetsLedgerStorage",
    # In-memory implementation
    "InMemoryHouseholdStorage",
    "InMemoryLedgerStorage",
    # Join codes
    "generate_join_code",
    "normalize_join_code",
]
