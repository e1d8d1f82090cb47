"""Services package."""

from household_ledger.services.storage import (
    ConnectionError,
    GoogleSheetsClient,
    GoogleSheetsHouseholdStorage,
    GoogleSheetsLedgerStorage,
    HouseholdStorageInterface,
    InMemoryHouseholdStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    NotFoundError,
    PersistenceError,
)

__all__ = [
    "ConnectionError",
    "GoogleSheetsClient",
    "GoogleSheetsHouseholdStorage",
    "GoogleSheetsLedgerStorage",
    "HouseholdStorageInterface",
    "InMemoryHouseholdStorage",
    "InMemoryLedgerStorage",
    "LedgerStorageInterface",
    "NotFoundError",
    "PersistenceError",
]
