"""
Ledger Event Models

Every ledger mutation, household transition and failure produces a
LedgerEvent that is written to the structured log.

DESIGN DECISION: Events are log records, not a stored history.
The ledger is never rebuilt from them.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from household_ledger.models.records import utc_now


class LedgerEventType(str, Enum):
    """Types of events we log."""
    # Records admitted
    USER_ADDED = "user_added"
    INCOME_ADDED = "income_added"
    EXPENSE_ADDED = "expense_added"
    GOAL_ADDED = "goal_added"
    GOAL_UPDATED = "goal_updated"

    # Goal funding linkage
    GOAL_FUNDED = "goal_funded"
    GOAL_FUNDING_SKIPPED = "goal_funding_skipped"
    EXPENSE_COMPENSATED = "expense_compensated"

    # Household state machine
    HOUSEHOLD_CREATED = "household_created"
    HOUSEHOLD_JOINED = "household_joined"
    HOUSEHOLD_NOT_FOUND = "household_not_found"
    LEDGER_LOADED = "ledger_loaded"

    # Failures
    VALIDATION_FAILED = "validation_failed"
    SCOPE_VIOLATION = "scope_violation"
    PERSISTENCE_FAILED = "persistence_failed"


class EventSeverity(str, Enum):
    """Severity level for ledger events."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LedgerEvent(BaseModel):
    """A single logged event."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    event_type: LedgerEventType
    severity: EventSeverity = EventSeverity.INFO

    # What record is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of record (e.g., 'expense', 'goal', 'household')"
    )
    entity_id: Optional[UUID] = None
    household_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=500,
    )
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "household_id": str(self.household_id) if self.household_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class LedgerEventBuilder:
    """
    Helper class to build events with common patterns.

    Usage:
        event = LedgerEventBuilder.record_added("income", income.id, household_id)
        event = LedgerEventBuilder.goal_funded(goal.id, expense.id, expense.amount, household_id)
    """

    _ADDED = {
        "user": LedgerEventType.USER_ADDED,
        "income": LedgerEventType.INCOME_ADDED,
        "expense": LedgerEventType.EXPENSE_ADDED,
        "goal": LedgerEventType.GOAL_ADDED,
    }

    @staticmethod
    def record_added(
        entity_type: str,
        entity_id: UUID,
        household_id: Optional[UUID] = None,
        details: Optional[dict] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventBuilder._ADDED[entity_type],
            entity_type=entity_type,
            entity_id=entity_id,
            household_id=household_id,
            description=f"{entity_type.capitalize()} added",
            details=details or {},
        )

    @staticmethod
    def goal_updated(
        goal_id: UUID,
        previous_amount: Decimal,
        new_amount: Decimal,
        household_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.GOAL_UPDATED,
            entity_type="goal",
            entity_id=goal_id,
            household_id=household_id,
            description=f"Goal amount set to {new_amount}",
            details={
                "previous_amount": str(previous_amount),
                "new_amount": str(new_amount),
            },
        )

    @staticmethod
    def goal_funded(
        goal_id: UUID,
        expense_id: UUID,
        amount: Decimal,
        household_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.GOAL_FUNDED,
            entity_type="goal",
            entity_id=goal_id,
            household_id=household_id,
            description=f"Goal funded with {amount} from a savings expense",
            details={
                "expense_id": str(expense_id),
                "amount": str(amount),
            },
        )

    @staticmethod
    def goal_funding_skipped(
        expense_id: UUID,
        goal_id: UUID,
        household_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.GOAL_FUNDING_SKIPPED,
            severity=EventSeverity.WARNING,
            entity_type="expense",
            entity_id=expense_id,
            household_id=household_id,
            description="Savings expense recorded but its goal does not exist",
            details={
                "linked_goal_id": str(goal_id),
            },
        )

    @staticmethod
    def expense_compensated(
        expense_id: UUID,
        reason: str,
        succeeded: bool,
        household_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.EXPENSE_COMPENSATED,
            severity=EventSeverity.WARNING if succeeded else EventSeverity.ERROR,
            entity_type="expense",
            entity_id=expense_id,
            household_id=household_id,
            description=(
                "Stored expense removed after goal funding failed"
                if succeeded
                else "Could not remove stored expense after goal funding failed"
            ),
            error_message=reason,
            details={"compensated": succeeded},
        )

    @staticmethod
    def household_created(household_id: UUID, name: str, code: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.HOUSEHOLD_CREATED,
            entity_type="household",
            entity_id=household_id,
            household_id=household_id,
            description=f"Household created: {name}",
            details={"code": code},
        )

    @staticmethod
    def household_joined(household_id: UUID, user_id: UUID) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.HOUSEHOLD_JOINED,
            entity_type="household",
            entity_id=household_id,
            household_id=household_id,
            description="User joined household",
            details={"user_id": str(user_id)},
        )

    @staticmethod
    def household_not_found(code: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.HOUSEHOLD_NOT_FOUND,
            severity=EventSeverity.WARNING,
            entity_type="household",
            description="No household matches the join code",
            details={"code": code},
        )

    @staticmethod
    def ledger_loaded(household_id: UUID, counts: dict[str, int]) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.LEDGER_LOADED,
            entity_type="household",
            entity_id=household_id,
            household_id=household_id,
            description="Ledger loaded from storage",
            details=counts,
        )

    @staticmethod
    def validation_failed(
        entity_type: str,
        issues: list[dict],
        entity_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.VALIDATION_FAILED,
            severity=EventSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Validation failed with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def scope_violation(operation: str, message: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.SCOPE_VIOLATION,
            severity=EventSeverity.WARNING,
            description=f"Rejected {operation}: no household context",
            error_message=message,
            details={"operation": operation},
        )

    @staticmethod
    def persistence_failed(
        operation: str,
        error_message: str,
        household_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.PERSISTENCE_FAILED,
            severity=EventSeverity.ERROR,
            household_id=household_id,
            description=f"Storage failed during {operation}",
            error_message=error_message,
            details={"operation": operation},
        )
