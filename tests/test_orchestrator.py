"""Flow tests for the ledger and household services (in-memory storage)."""

from decimal import Decimal
from uuid import uuid4

import pytest

from household_ledger.config.settings import LedgerSettings
from household_ledger.models import (
    EventSeverity,
    ExpenseCategory,
    Goal,
    Income,
    LedgerState,
    User,
)
from household_ledger.orchestrator import (
    HouseholdService,
    LedgerService,
    ScopeError,
    create_app_components,
)
from household_ledger.services.storage import (
    InMemoryHouseholdStorage,
    InMemoryLedgerStorage,
    NotFoundError,
    PersistenceError,
)
from household_ledger.validation import ValidationError

from tests.conftest import FlakyLedgerStorage, RecordingEventLogger, make_expense


def _no_household(state: LedgerState) -> LedgerState:
    return state.model_copy(update={"current_household": None})


class TestAddRecords:

    @pytest.mark.asyncio
    async def test_add_user_without_household(self, service, storage):
        user = User(name="Robin")
        state = await service.add_user(LedgerState(), user)
        assert state.users == (user,)
        assert storage.users[-1] == user
        assert service.last_error is None

    @pytest.mark.asyncio
    async def test_add_income_is_stamped(self, service, storage, sample_state, alex, household):
        income = Income(title="Bonus", amount=Decimal("300"), user_id=alex.id)
        state = await service.add_income(sample_state, income)

        assert len(state.incomes) == 3
        assert state.incomes[-1].household_id == household.id
        assert storage.incomes[-1].household_id == household.id
        assert len(sample_state.incomes) == 2

    @pytest.mark.asyncio
    async def test_add_goal_keeps_current_amount(self, service, sample_state, household):
        goal = Goal(title="Sofa", target_amount=Decimal("900"), current_amount=Decimal("120"))
        state = await service.add_goal(sample_state, goal)
        added = state.find_goal(goal.id)
        assert added.current_amount == Decimal("120")
        assert added.household_id == household.id

    @pytest.mark.asyncio
    async def test_add_plain_expense(self, service, events, sample_state, sam):
        expense = make_expense("Pizza", "25", sam, True, ExpenseCategory.FOOD)
        state = await service.add_expense(sample_state, expense)
        assert state.expenses[-1].id == expense.id
        assert state.goals == sample_state.goals
        assert events.types() == ["expense_added"]

    @pytest.mark.asyncio
    async def test_non_savings_goal_link_is_ignored(self, service, sample_state, alex, new_car):
        expense = make_expense("Tyres", "80", alex, False, ExpenseCategory.TRANSPORT, goal=new_car)
        state = await service.add_expense(sample_state, expense)
        assert state.find_goal(new_car.id).current_amount == Decimal("5000")


class TestGoalFunding:
    """A savings expense moves its amount into the linked goal."""

    @pytest.mark.asyncio
    async def test_single_transfer(self, service, storage, events, sample_state, alex, new_car):
        expense = make_expense("Car fund", "200", alex, False, ExpenseCategory.SAVINGS, goal=new_car)
        state = await service.add_expense(sample_state, expense)

        assert state.find_goal(new_car.id).current_amount == Decimal("5200")
        assert storage.goals[0].current_amount == Decimal("5200")
        assert expense.id in {e.id for e in storage.expenses}
        assert events.types() == ["goal_updated", "goal_funded", "expense_added"]
        assert service.last_error is None

    @pytest.mark.asyncio
    async def test_sequential_transfers_accumulate(self, service, sample_state, alex, sam, new_car):
        first = make_expense("Car fund", "200", alex, False, ExpenseCategory.SAVINGS, goal=new_car)
        second = make_expense("Car fund", "150.25", sam, True, ExpenseCategory.SAVINGS, goal=new_car)

        state = await service.add_expense(sample_state, first)
        state = await service.add_expense(state, second)

        assert state.find_goal(new_car.id).current_amount == Decimal("5350.25")

    @pytest.mark.asyncio
    async def test_transfer_leaves_allocation_unchanged(self, service, sample_state, alex, new_car):
        before = service.summarize(sample_state)
        expense = make_expense("Car fund", "200", alex, True, ExpenseCategory.SAVINGS, goal=new_car)
        state = await service.add_expense(sample_state, expense)
        assert service.summarize(state) == before

    @pytest.mark.asyncio
    async def test_dangling_goal_warns(self, service, storage, events, sample_state, alex):
        orphan = Goal(title="Gone", target_amount=Decimal("100"))
        expense = make_expense("Fund", "20", alex, False, ExpenseCategory.SAVINGS, goal=orphan)
        state = await service.add_expense(sample_state, expense)

        assert state.expenses[-1].id == expense.id
        assert storage.expenses[-1].id == expense.id
        assert state.goals == sample_state.goals
        assert "goal_funding_skipped" in events.types()
        skipped = events.events[events.types().index("goal_funding_skipped")]
        assert skipped.severity == EventSeverity.WARNING
        assert service.last_error == "Savings expense recorded, but its goal was not found"

    @pytest.mark.asyncio
    async def test_dangling_goal_rejected(self, storage, events, sample_state, alex):
        service = LedgerService(
            storage,
            event_logger=events,
            settings=LedgerSettings(dangling_goal_policy="reject"),
        )
        orphan = Goal(title="Gone", target_amount=Decimal("100"))
        expense = make_expense("Fund", "20", alex, False, ExpenseCategory.SAVINGS, goal=orphan)

        with pytest.raises(NotFoundError):
            await service.add_expense(sample_state, expense)
        assert len(storage.expenses) == len(sample_state.expenses)
        assert events.types() == ["validation_failed"]
        assert service.last_error.startswith("Goal not found")

    @pytest.mark.asyncio
    async def test_failed_goal_update_removes_expense(self, events, settings, sample_state, alex, new_car):
        storage = FlakyLedgerStorage(fail_on={"update_goal_amount"})
        storage.goals.extend(sample_state.goals)
        service = LedgerService(storage, event_logger=events, settings=settings)
        expense = make_expense("Car fund", "200", alex, False, ExpenseCategory.SAVINGS, goal=new_car)

        with pytest.raises(PersistenceError, match="update_goal_amount"):
            await service.add_expense(sample_state, expense)

        assert storage.expenses == []
        assert storage.goals[0].current_amount == Decimal("5000")
        assert events.types() == ["persistence_failed", "expense_compensated"]
        assert events.events[-1].details == {"compensated": True}
        assert "update_goal_amount" in service.last_error

    @pytest.mark.asyncio
    async def test_failed_compensation_is_reported(self, events, settings, sample_state, alex, new_car):
        storage = FlakyLedgerStorage(fail_on={"update_goal_amount", "delete_expense"})
        storage.goals.extend(sample_state.goals)
        service = LedgerService(storage, event_logger=events, settings=settings)
        expense = make_expense("Car fund", "200", alex, False, ExpenseCategory.SAVINGS, goal=new_car)

        with pytest.raises(PersistenceError, match="could not be removed"):
            await service.add_expense(sample_state, expense)

        assert [e.id for e in storage.expenses] == [expense.id]
        assert events.events[-1].severity == EventSeverity.ERROR
        assert str(expense.id) in service.last_error


class TestUpdateGoal:

    @pytest.mark.asyncio
    async def test_sets_absolute_amount(self, service, storage, sample_state, new_car):
        state = await service.update_goal(sample_state, new_car.id, "7000")
        assert state.find_goal(new_car.id).current_amount == Decimal("7000")
        assert storage.goals[0].current_amount == Decimal("7000")
        assert sample_state.find_goal(new_car.id).current_amount == Decimal("5000")

    @pytest.mark.asyncio
    async def test_zero_is_allowed(self, service, sample_state, summer_trip):
        state = await service.update_goal(sample_state, summer_trip.id, 0)
        assert state.find_goal(summer_trip.id).current_amount == Decimal("0")

    @pytest.mark.asyncio
    async def test_negative_amount_rejected(self, service, storage, events, sample_state, new_car):
        with pytest.raises(ValidationError):
            await service.update_goal(sample_state, new_car.id, Decimal("-1"))
        assert storage.goals[0].current_amount == Decimal("5000")
        assert events.types() == ["validation_failed"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["abc", "", "NaN", "Infinity"])
    async def test_non_numeric_amount_rejected(self, service, storage, events, sample_state, new_car, raw):
        with pytest.raises(ValidationError, match="Invalid goal amount"):
            await service.update_goal(sample_state, new_car.id, raw)
        assert storage.goals[0].current_amount == Decimal("5000")
        assert events.types() == ["validation_failed"]
        assert service.last_error == f"Invalid goal amount: {raw!r}"

    @pytest.mark.asyncio
    async def test_unknown_goal(self, service, sample_state):
        with pytest.raises(NotFoundError):
            await service.update_goal(sample_state, uuid4(), Decimal("10"))


class TestHouseholdScope:
    """Income, expense and goal changes need a selected household."""

    @pytest.mark.asyncio
    async def test_mutations_refused_without_household(self, service, storage, events, sample_state, alex, new_car):
        state = _no_household(sample_state)
        counts = (len(storage.incomes), len(storage.expenses), len(storage.goals))

        with pytest.raises(ScopeError):
            await service.add_income(state, Income(title="x", amount=Decimal("1"), user_id=alex.id))
        with pytest.raises(ScopeError):
            await service.add_expense(state, make_expense("x", "1", alex, True))
        with pytest.raises(ScopeError):
            await service.add_goal(state, Goal(title="x", target_amount=Decimal("1")))
        with pytest.raises(ScopeError):
            await service.update_goal(state, new_car.id, Decimal("1"))

        assert (len(storage.incomes), len(storage.expenses), len(storage.goals)) == counts
        assert storage.goals[0].current_amount == Decimal("5000")
        assert set(events.types()) == {"scope_violation"}
        assert "no household selected" in service.last_error

    @pytest.mark.asyncio
    async def test_scoping_off(self, storage, events, alex):
        service = LedgerService(
            storage, event_logger=events, settings=LedgerSettings(household_scoping=False),
        )
        state = await service.add_income(
            LedgerState(users=(alex,)),
            Income(title="Salary", amount=Decimal("10"), user_id=alex.id),
        )
        assert state.incomes[0].household_id is None


class TestMembership:
    """Costs are split among the selected household's members only."""

    @pytest.mark.asyncio
    async def test_add_user_joins_selected_household(self, service, storage, sample_state, household):
        robin = User(name="Robin")
        state = await service.add_user(sample_state, robin)
        assert state.users[-1].household_id == household.id
        assert storage.users[-1].household_id == household.id
        assert len(service.summarize(state)) == 3

    @pytest.mark.asyncio
    async def test_add_user_not_stamped_when_scoping_off(self, storage, sample_state):
        service = LedgerService(storage, settings=LedgerSettings(household_scoping=False))
        state = await service.add_user(sample_state, User(name="Robin"))
        assert state.users[-1].household_id is None

    @pytest.mark.asyncio
    async def test_user_added_after_create_survives_reload(self):
        storage = InMemoryLedgerStorage()
        households = HouseholdService(InMemoryHouseholdStorage(storage), storage)
        ledger = LedgerService(storage, settings=LedgerSettings())
        jo, kim = User(name="Jo"), User(name="Kim")

        state = await ledger.add_user(LedgerState(), jo)
        state = await households.create_household(state, "Flat", user_id=jo.id)
        state = await ledger.add_user(state, kim)
        state = await ledger.add_income(
            state, Income(title="Salary", amount=Decimal("3000"), user_id=kim.id),
        )
        state = await ledger.add_expense(state, make_expense("Rent", "2000", jo, True))

        loaded = await households.load_ledger(state.current_household)

        assert [u.id for u in loaded.users] == [jo.id, kim.id]
        assert ledger.summarize(loaded) == ledger.summarize(state)
        assert [r.share_of_shared_expenses for r in ledger.summarize(loaded)] == [
            Decimal("1000"), Decimal("1000"),
        ]

    @pytest.mark.asyncio
    async def test_non_members_left_out_of_split(self):
        storage = InMemoryLedgerStorage()
        households = HouseholdService(InMemoryHouseholdStorage(storage), storage)
        ledger = LedgerService(storage, settings=LedgerSettings())
        jo, kim = User(name="Jo"), User(name="Kim")

        state = await ledger.add_user(LedgerState(), jo)
        state = await ledger.add_user(state, kim)
        state = await households.create_household(state, "Flat", user_id=jo.id)
        state = await ledger.add_expense(state, make_expense("Rent", "2000", jo, True))

        assert ledger.members(state) == [state.users[0]]
        (result,) = ledger.summarize(state)
        assert result.user_id == jo.id
        assert result.share_of_shared_expenses == Decimal("2000")

        loaded = await households.load_ledger(state.current_household)
        assert ledger.summarize(loaded) == ledger.summarize(state)


class TestFailures:

    @pytest.mark.asyncio
    async def test_insert_failure_keeps_state(self, events, settings, sample_state, sam):
        storage = FlakyLedgerStorage(fail_on={"insert_expense"})
        service = LedgerService(storage, event_logger=events, settings=settings)

        with pytest.raises(PersistenceError):
            await service.add_expense(sample_state, make_expense("Pizza", "25", sam, True))

        assert storage.expenses == []
        assert events.types() == ["persistence_failed"]
        assert service.last_error == "store unavailable during insert_expense"

    @pytest.mark.asyncio
    async def test_success_clears_last_error(self, events, settings, sample_state, alex):
        storage = FlakyLedgerStorage(fail_on={"insert_income"})
        service = LedgerService(storage, event_logger=events, settings=settings)
        income = Income(title="Bonus", amount=Decimal("1"), user_id=alex.id)

        with pytest.raises(PersistenceError):
            await service.add_income(sample_state, income)
        assert service.last_error is not None

        storage.fail_on.clear()
        await service.add_income(sample_state, income)
        assert service.last_error is None


class TestReadSide:

    def test_summarize(self, service, sample_state):
        alex_result, sam_result = service.summarize(sample_state)
        assert alex_result.disposable_income == Decimal("3342.5")
        assert sam_result.disposable_income == Decimal("2562.5")

    def test_overview(self, service, sample_state):
        assert service.overview(sample_state).leftover == Decimal("5905")

    def test_activity_uses_configured_limit(self, storage, sample_state):
        service = LedgerService(storage, settings=LedgerSettings(recent_activity_limit=3))
        assert len(service.activity(sample_state)) == 3
        assert len(service.activity(sample_state, limit=5)) == 5


class TestHouseholdService:

    @pytest.mark.asyncio
    async def test_create_selects_household(self, household_service, storage, events, alex, sam):
        state = await household_service.create_household(
            LedgerState(users=(alex, sam)), "Our Flat", user_id=alex.id,
        )

        assert state.has_household
        assert state.current_household.name == "Our Flat"
        assert len(state.current_household.code) == 6
        assert state.users[0].household_id == state.household_id
        assert state.users[1].household_id != state.household_id
        assert storage.users[0].household_id == state.household_id
        assert events.types() == ["household_created"]

    @pytest.mark.asyncio
    async def test_join_by_code(self, household_service, storage, alex, sam):
        created = await household_service.create_household(
            LedgerState(users=(alex, sam)), "Our Flat", user_id=alex.id,
        )
        code = created.current_household.code

        joined = await household_service.join_household(
            LedgerState(users=(alex, sam)), sam.id, f" {code.lower()} ",
        )
        assert joined.household_id == created.household_id
        assert storage.users[1].household_id == created.household_id

    @pytest.mark.asyncio
    async def test_join_unknown_code(self, household_service, events, sam):
        state = LedgerState(users=(sam,))
        with pytest.raises(NotFoundError):
            await household_service.join_household(state, sam.id, "NOPE99")
        assert events.types() == ["household_not_found"]
        assert "NOPE99" in household_service.last_error

    @pytest.mark.asyncio
    async def test_already_selected(self, household_service, sample_state, alex):
        with pytest.raises(ScopeError):
            await household_service.create_household(sample_state, "Second", user_id=alex.id)
        with pytest.raises(ScopeError):
            await household_service.join_household(sample_state, alex.id, "HOME42")

    @pytest.mark.asyncio
    async def test_load_ledger_is_scoped(self, alex, sam):
        storage = InMemoryLedgerStorage()
        events = RecordingEventLogger()
        households = HouseholdService(InMemoryHouseholdStorage(storage), storage, event_logger=events)
        ledger = LedgerService(storage, event_logger=events, settings=LedgerSettings())

        state = await ledger.add_user(LedgerState(), alex)
        state = await ledger.add_user(state, sam)
        state = await households.create_household(state, "Our Flat", user_id=alex.id)
        state = await ledger.add_income(
            state, Income(title="Salary", amount=Decimal("5000"), user_id=alex.id),
        )
        state = await ledger.add_expense(state, make_expense("Rent", "2000", alex, True))
        await storage.insert_income(Income(title="Elsewhere", amount=Decimal("1"), user_id=uuid4()))

        loaded = await households.load_ledger(state.current_household)

        assert [u.id for u in loaded.users] == [alex.id]
        assert [i.title for i in loaded.incomes] == ["Salary"]
        assert [e.title for e in loaded.expenses] == ["Rent"]
        assert loaded.goals == ()
        assert loaded.current_household == state.current_household
        assert events.events[-1].details["incomes"] == 1


class TestCreateAppComponents:

    def test_in_memory(self):
        ledger, households, client = create_app_components(
            use_storage=False, settings=LedgerSettings(join_code_length=8),
        )
        assert isinstance(ledger, LedgerService)
        assert isinstance(households, HouseholdService)
        assert client is None
        assert ledger.settings.join_code_length == 8

    @pytest.mark.asyncio
    async def test_in_memory_components_share_storage(self, alex):
        ledger, households, _ = create_app_components(use_storage=False, settings=LedgerSettings())
        state = await ledger.add_user(LedgerState(), alex)
        state = await households.create_household(state, "Flat", user_id=alex.id)

        assert len(state.current_household.code) == 6
        loaded = await households.load_ledger(state.current_household)
        assert [u.id for u in loaded.users] == [alex.id]
