"""
Ledger Orchestrator

Ties storage, validation and logging together and defines every way
the ledger can change:
1. Record admission (users, incomes, expenses, goals, goal amounts)
2. Household selection (create or join, then load)

DESIGN DECISION: Every operation takes the caller's current LedgerState
and returns the next one. Nothing here holds ledger data between calls.

The orchestrator enforces the boundaries:
- Storage is written first; the new snapshot is built only after the
  write is acknowledged, so a failure leaves the caller's state as it was
- Income, expense and goal mutations need an active household
  (when household scoping is on) and are stamped with it
- A savings expense and the goal funding it are written together, or
  the expense is removed again
- Every outcome is logged; every failure is raised and kept in last_error
"""

from decimal import Decimal, InvalidOperation
from typing import Awaitable, Optional, TypeVar, Union
from uuid import UUID

import structlog

from household_ledger.config import get_settings
from household_ledger.config.settings import LedgerSettings
from household_ledger.engine import (
    calculate_financials,
    household_overview,
    recent_activity,
)
from household_ledger.events import EventLogger
from household_ledger.models.events import LedgerEvent, LedgerEventBuilder
from household_ledger.models.financials import (
    ActivityItem,
    HouseholdOverview,
    UserFinancials,
)
from household_ledger.models.ledger import LedgerState
from household_ledger.models.records import (
    Expense,
    Goal,
    Household,
    Income,
    User,
)
from household_ledger.models.validation import ValidationResult
from household_ledger.services.storage import (
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
from household_ledger.validation import RecordValidator, ValidationError


T = TypeVar("T")
R = TypeVar("R", User, Income, Expense, Goal)

Amount = Union[Decimal, int, str]


class ScopeError(Exception):
    """A mutation needs a household that is not (or already) selected."""
    pass


class _FlowBase:
    """Shared failure bookkeeping for the flows below."""

    def __init__(self, event_logger: Optional[EventLogger] = None):
        self._events = event_logger or EventLogger()
        self.last_error: Optional[str] = None

    def _emit(self, event: LedgerEvent) -> None:
        self._events.log(event)

    def _fail(self, error: Exception, event: LedgerEvent) -> Exception:
        self.last_error = str(error)
        self._emit(event)
        return error

    def _succeed(self, event: LedgerEvent) -> None:
        self.last_error = None
        self._emit(event)

    async def _persist(
        self,
        operation: str,
        call: Awaitable[T],
        household_id: Optional[UUID] = None,
    ) -> T:
        try:
            return await call
        except PersistenceError as e:
            raise self._fail(
                e,
                LedgerEventBuilder.persistence_failed(operation, str(e), household_id),
            )


class LedgerService(_FlowBase):
    """
    The only writer of ledger state.

    Flow for every mutation:
    1. Gate → household must be selected (income/expense/goal)
    2. Stamp → record takes the active household id
    3. Validate → semantic checks against the snapshot
    4. Persist → storage must acknowledge
    5. Return → the next snapshot

    Calls made one after another by one caller are applied in that order.
    Concurrent writers are not coordinated; the store keeps the last write.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        validator: Optional[RecordValidator] = None,
        event_logger: Optional[EventLogger] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        super().__init__(event_logger)
        self._storage = storage
        self._settings = settings or get_settings().ledger
        self._validator = validator or RecordValidator(self._settings)

    @property
    def settings(self) -> LedgerSettings:
        return self._settings

    # -------------------------------------------------------------------------
    # Gating and validation
    # -------------------------------------------------------------------------

    def _require_household(self, state: LedgerState, operation: str) -> Optional[UUID]:
        """
        Return the household id to stamp on new records.

        None when household scoping is off.
        """
        if not self._settings.household_scoping:
            return None
        if state.current_household is None:
            error = ScopeError(f"Cannot {operation.replace('_', ' ')}: no household selected")
            raise self._fail(
                error,
                LedgerEventBuilder.scope_violation(operation, str(error)),
            )
        return state.current_household.id

    @staticmethod
    def _stamp(record: R, household_id: Optional[UUID]) -> R:
        if household_id is None:
            return record
        return record.model_copy(update={"household_id": household_id})

    def _check(self, result: ValidationResult) -> ValidationResult:
        try:
            return self._validator.ensure_valid(result)
        except ValidationError as e:
            issues = [
                {"field": i.field, "type": i.issue_type, "message": i.message}
                for i in result.issues
            ]
            raise self._fail(
                e,
                LedgerEventBuilder.validation_failed(
                    result.entity_type, issues, result.entity_id,
                ),
            )

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def add_user(self, state: LedgerState, user: User) -> LedgerState:
        """
        Add a household member. Allowed with or without a household.

        With a household selected (and scoping on) the user joins it,
        so a reload finds them among the members.
        """
        household_id = state.household_id if self._settings.household_scoping else None
        user = self._stamp(user, household_id)

        await self._persist("add_user", self._storage.insert_user(user), household_id)

        self._succeed(LedgerEventBuilder.record_added("user", user.id, household_id))
        return state.model_copy(update={"users": state.users + (user,)})

    async def add_income(self, state: LedgerState, income: Income) -> LedgerState:
        household_id = self._require_household(state, "add_income")
        income = self._stamp(income, household_id)
        result = self._check(self._validator.validate_income(income, state))

        await self._persist("add_income", self._storage.insert_income(income), household_id)

        self._succeed(LedgerEventBuilder.record_added(
            "income", income.id, household_id,
            details={"amount": str(income.amount), "warnings": result.warnings},
        ))
        return state.model_copy(update={"incomes": state.incomes + (income,)})

    async def add_expense(self, state: LedgerState, expense: Expense) -> LedgerState:
        """
        Record an expense, funding its goal if it is a savings transfer.

        When the linked goal does not exist, dangling_goal_policy decides:
        'warn' records the expense without funding anything and logs a
        warning, 'reject' raises NotFoundError before anything is stored.

        If the goal update fails after the expense was stored, the
        expense is deleted again and the error is raised.
        """
        household_id = self._require_household(state, "add_expense")
        expense = self._stamp(expense, household_id)
        result = self._check(self._validator.validate_expense(expense, state))

        goal = None
        if expense.is_savings_transfer:
            goal = state.find_goal(expense.linked_goal_id)
            if goal is None and self._settings.dangling_goal_policy == "reject":
                error = NotFoundError(f"Goal not found: {expense.linked_goal_id}")
                raise self._fail(
                    error,
                    LedgerEventBuilder.validation_failed(
                        "expense",
                        [{"field": "linked_goal_id", "type": "unknown_reference",
                          "message": str(error)}],
                        expense.id,
                    ),
                )

        await self._persist("add_expense", self._storage.insert_expense(expense), household_id)
        next_state = state.model_copy(update={"expenses": state.expenses + (expense,)})

        if goal is not None:
            try:
                next_state = await self.update_goal(
                    next_state, goal.id, goal.current_amount + expense.amount,
                )
            except PersistenceError as e:
                await self._compensate(expense, e, household_id)
                raise
            self._emit(LedgerEventBuilder.goal_funded(
                goal.id, expense.id, expense.amount, household_id,
            ))
        elif expense.is_savings_transfer:
            self._emit(LedgerEventBuilder.goal_funding_skipped(
                expense.id, expense.linked_goal_id, household_id,
            ))

        self._succeed(LedgerEventBuilder.record_added(
            "expense", expense.id, household_id,
            details={
                "amount": str(expense.amount),
                "category": expense.category.value,
                "is_shared": expense.is_shared,
                "warnings": result.warnings,
            },
        ))
        # A skipped funding is still worth showing to the caller
        if expense.is_savings_transfer and goal is None:
            self.last_error = "Savings expense recorded, but its goal was not found"
        return next_state

    async def _compensate(
        self,
        expense: Expense,
        cause: PersistenceError,
        household_id: Optional[UUID],
    ) -> None:
        try:
            await self._storage.delete_expense(expense.id)
        except PersistenceError as e:
            self._emit(LedgerEventBuilder.expense_compensated(
                expense.id, str(e), succeeded=False, household_id=household_id,
            ))
            message = (
                f"{cause}; the expense {expense.id} is stored without its goal "
                f"funding and could not be removed: {e}"
            )
            self.last_error = message
            raise PersistenceError(message) from e

        self._emit(LedgerEventBuilder.expense_compensated(
            expense.id, str(cause), succeeded=True, household_id=household_id,
        ))
        self.last_error = str(cause)

    async def add_goal(self, state: LedgerState, goal: Goal) -> LedgerState:
        """Add a goal; current_amount is kept exactly as supplied."""
        household_id = self._require_household(state, "add_goal")
        goal = self._stamp(goal, household_id)
        result = self._check(self._validator.validate_goal(goal, state))

        await self._persist("add_goal", self._storage.insert_goal(goal), household_id)

        self._succeed(LedgerEventBuilder.record_added(
            "goal", goal.id, household_id,
            details={"target_amount": str(goal.target_amount), "warnings": result.warnings},
        ))
        return state.model_copy(update={"goals": state.goals + (goal,)})

    async def update_goal(
        self,
        state: LedgerState,
        goal_id: UUID,
        new_amount: Amount,
    ) -> LedgerState:
        """Set a goal's current_amount to new_amount (absolute, not a delta)."""
        household_id = self._require_household(state, "update_goal")
        try:
            amount = Decimal(str(new_amount))
            if not amount.is_finite():
                raise InvalidOperation(new_amount)
        except InvalidOperation:
            error = ValidationError(f"Invalid goal amount: {new_amount!r}")
            raise self._fail(
                error,
                LedgerEventBuilder.validation_failed(
                    "goal",
                    [{"field": "current_amount", "type": "invalid_value",
                      "message": str(error)}],
                    goal_id,
                ),
            )
        self._check(self._validator.validate_goal_amount(goal_id, amount))

        goal = state.find_goal(goal_id)
        if goal is None:
            error = NotFoundError(f"Goal not found: {goal_id}")
            raise self._fail(
                error,
                LedgerEventBuilder.persistence_failed("update_goal", str(error), household_id),
            )

        await self._persist(
            "update_goal",
            self._storage.update_goal_amount(goal_id, amount),
            household_id,
        )

        self._succeed(LedgerEventBuilder.goal_updated(
            goal_id, goal.current_amount, amount, household_id,
        ))
        return state.replace_goal(goal.with_amount(amount))

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    def summarize(
        self,
        state: LedgerState,
        split_between: Optional[int] = None,
    ) -> list[UserFinancials]:
        """
        Run the allocation engine over a snapshot.

        Costs are split among the members of the selected household only;
        users in the snapshot that belong elsewhere are left out.
        """
        return calculate_financials(
            self.members(state), state.incomes, state.expenses, state.goals,
            split_between=split_between,
        )

    def members(self, state: LedgerState) -> list[User]:
        """Users who share this ledger's costs."""
        if not self._settings.household_scoping or state.current_household is None:
            return list(state.users)
        return [u for u in state.users if u.household_id == state.household_id]

    def overview(self, state: LedgerState) -> HouseholdOverview:
        return household_overview(self.summarize(state), state.expenses, state.goals)

    def activity(self, state: LedgerState, limit: Optional[int] = None) -> list[ActivityItem]:
        return recent_activity(
            state.incomes, state.expenses, state.goals,
            limit=limit or self._settings.recent_activity_limit,
        )


class HouseholdService(_FlowBase):
    """
    Household selection.

    States: NoHousehold → HouseholdSelected. Creating or joining moves
    forward; there is no way back (no "leave household").
    """

    def __init__(
        self,
        household_storage: HouseholdStorageInterface,
        ledger_storage: LedgerStorageInterface,
        event_logger: Optional[EventLogger] = None,
    ):
        super().__init__(event_logger)
        self._households = household_storage
        self._ledger = ledger_storage

    def _require_no_household(self, state: LedgerState, operation: str) -> None:
        if state.current_household is not None:
            error = ScopeError(
                f"Cannot {operation.replace('_', ' ')}: "
                f"already in household {state.current_household.name!r}"
            )
            raise self._fail(error, LedgerEventBuilder.scope_violation(operation, str(error)))

    @staticmethod
    def _assign(state: LedgerState, user_id: UUID, household: Household) -> LedgerState:
        users = tuple(
            u.model_copy(update={"household_id": household.id}) if u.id == user_id else u
            for u in state.users
        )
        return state.model_copy(update={"users": users, "current_household": household})

    async def create_household(
        self,
        state: LedgerState,
        name: str,
        user_id: Optional[UUID] = None,
    ) -> LedgerState:
        """Create a household (the store generates its join code) and select it."""
        self._require_no_household(state, "create_household")

        household = await self._persist(
            "create_household", self._households.create_household(name),
        )
        if user_id is not None:
            await self._persist(
                "create_household",
                self._households.update_user_household(user_id, household.id),
                household.id,
            )

        self._succeed(LedgerEventBuilder.household_created(
            household.id, household.name, household.code,
        ))
        return self._assign(state, user_id, household)

    async def join_household(
        self,
        state: LedgerState,
        user_id: UUID,
        code: str,
    ) -> LedgerState:
        """
        Join an existing household by its code and select it.

        Raises:
            NotFoundError: No household has this code (nothing changes)
        """
        self._require_no_household(state, "join_household")

        household = await self._persist(
            "join_household", self._households.find_household_by_code(code),
        )
        if household is None:
            error = NotFoundError(f"No household found for code {code!r}")
            raise self._fail(error, LedgerEventBuilder.household_not_found(code))

        await self._persist(
            "join_household",
            self._households.update_user_household(user_id, household.id),
            household.id,
        )

        self._succeed(LedgerEventBuilder.household_joined(household.id, user_id))
        return self._assign(state, user_id, household)

    async def load_ledger(self, household: Household) -> LedgerState:
        """Read every record of a household into a fresh snapshot."""
        users = await self._persist(
            "load_ledger", self._ledger.list_users(household.id), household.id,
        )
        incomes = await self._persist(
            "load_ledger", self._ledger.list_incomes(household.id), household.id,
        )
        expenses = await self._persist(
            "load_ledger", self._ledger.list_expenses(household.id), household.id,
        )
        goals = await self._persist(
            "load_ledger", self._ledger.list_goals(household.id), household.id,
        )

        state = LedgerState(
            users=tuple(users),
            incomes=tuple(incomes),
            expenses=tuple(expenses),
            goals=tuple(goals),
            current_household=household,
        )
        self._succeed(LedgerEventBuilder.ledger_loaded(household.id, {
            "users": len(users),
            "incomes": len(incomes),
            "expenses": len(expenses),
            "goals": len(goals),
        }))
        return state


def create_app_components(
    use_storage: bool = True,
    settings: Optional[LedgerSettings] = None,
) -> tuple[LedgerService, HouseholdService, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use Google Sheets storage.
                    Set to False (or leave Sheets unconfigured) to keep
                    everything in memory.

    Returns:
        (ledger_service, household_service, sheets_client)
    """
    settings = settings or get_settings().ledger
    event_logger = EventLogger()
    sheets_client = None

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            ledger_storage = GoogleSheetsLedgerStorage(sheets_client)
            household_storage = GoogleSheetsHouseholdStorage(
                sheets_client, code_length=settings.join_code_length,
            )
        except Exception as e:
            structlog.get_logger(__name__).warning(
                "storage_not_configured", error=str(e),
            )
            sheets_client = None
            use_storage = False

    if not use_storage:
        memory = InMemoryLedgerStorage()
        ledger_storage = memory
        household_storage = InMemoryHouseholdStorage(
            memory, code_length=settings.join_code_length,
        )

    ledger_service = LedgerService(
        ledger_storage,
        event_logger=event_logger,
        settings=settings,
    )
    household_service = HouseholdService(
        household_storage,
        ledger_storage,
        event_logger=event_logger,
    )

    return ledger_service, household_service, sheets_client
