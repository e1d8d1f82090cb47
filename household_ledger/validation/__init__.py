"""Record validation package."""

from household_ledger.validation.validator import (
    RECORD_REJECTED,
    RecordValidator,
    ValidationError,
)

__all__ = ["RECORD_REJECTED", "RecordValidator", "ValidationError"]
