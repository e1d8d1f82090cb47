"""
Ledger Record Models

These models define the strict schemas for every record a household
keeps: people, their income, expenses and savings goals.
They are designed to:
1. Enforce domain constraints at construction time
2. Be immutable once admitted to the ledger
3. Be serializable for storage and logging

DESIGN DECISION: Records are frozen. The one field that legitimately
changes (a goal's accumulated balance) is changed by building a new
Goal with model_copy, never by mutating the admitted one.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ExpenseCategory(str, Enum):
    """
    Supported expense categories.

    SAVINGS is special: such an expense is a transfer into a goal,
    not consumption, and must name the goal it funds.
    """
    HOUSING = "housing"
    FOOD = "food"
    TRANSPORT = "transport"
    ENTERTAINMENT = "entertainment"
    UTILITIES = "utilities"
    SAVINGS = "savings"
    OTHER = "other"


# =============================================================================
# RECORDS
# =============================================================================

class User(BaseModel):
    """A household member."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    email: str = Field(
        default="",
        max_length=254,
    )
    household_id: Optional[UUID] = Field(
        default=None,
        description="Household this user currently belongs to"
    )


class Income(BaseModel):
    """
    Money coming in for one earner.

    Immutable after creation.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(default_factory=utc_now)
    title: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Amount received"
    )
    user_id: UUID = Field(
        ...,
        description="Earner"
    )
    is_recurring: bool = False
    household_id: Optional[UUID] = None


class Expense(BaseModel):
    """
    Money going out.

    A shared expense is split evenly across the household; a personal
    one is charged entirely to its payer. A SAVINGS expense moves money
    into the goal named by linked_goal_id.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(default_factory=utc_now)
    title: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Amount paid"
    )
    payer_id: UUID = Field(
        ...,
        description="Who paid"
    )
    is_shared: bool = False
    category: ExpenseCategory = ExpenseCategory.OTHER
    linked_goal_id: Optional[UUID] = Field(
        default=None,
        description="Goal funded by this expense (savings only)"
    )
    household_id: Optional[UUID] = None

    @model_validator(mode='after')
    def validate_goal_link(self) -> 'Expense':
        """A savings transfer must say which goal it funds."""
        if self.category == ExpenseCategory.SAVINGS and self.linked_goal_id is None:
            raise ValueError("Savings expenses must be linked to a goal")
        return self

    @property
    def is_savings_transfer(self) -> bool:
        return self.category == ExpenseCategory.SAVINGS


class Goal(BaseModel):
    """
    A savings target.

    current_amount only grows in this design (there is no withdrawal)
    and may run past target_amount.
    monthly_contribution is a pledge; it is never applied automatically.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(default_factory=utc_now)
    title: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    target_amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
    )
    current_amount: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        decimal_places=2,
    )
    monthly_contribution: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        decimal_places=2,
    )
    deadline: Optional[date] = None
    household_id: Optional[UUID] = None

    def with_amount(self, amount: Decimal) -> 'Goal':
        """Return a copy with current_amount replaced (validated)."""
        return Goal.model_validate({**self.model_dump(), "current_amount": amount})


class Household(BaseModel):
    """
    The group sharing one ledger.

    Owned by the household collaborator; the ledger only uses its id
    as a scoping key and shows its join code.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(
        ...,
        min_length=1,
        max_length=120,
    )
    code: str = Field(
        ...,
        min_length=4,
        max_length=32,
        description="Short join token"
    )
    created_at: datetime = Field(default_factory=utc_now)
