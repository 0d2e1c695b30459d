"""
End-to-end flows through a fully wired store.
"""
import asyncio

import pytest

from redux_essentials.app import create_store
from redux_essentials.config import StoreConfig
from redux_essentials.core.state.action_types import (
    FAILURE_TYPES,
    deposit,
    edit_transaction,
    remove_transaction,
    retry,
    withdraw,
)
from redux_essentials.core.state.builder import StoreBuilder
from redux_essentials.core.state.reducer import default_reducer
from redux_essentials.effects import (
    InMemoryNavigator,
    RecordingTelemetry,
    Screen,
    ValidationEffect,
    Validator,
    parse_amount,
)
from redux_essentials.types import AtmState, Transaction, TransactionKind


class GatedValidator(Validator):
    """Resolves each amount only when its gate is opened."""

    def __init__(self):
        super().__init__(latency=0)
        self.gates = {}
        self.started = asyncio.Event()

    def gate(self, amount_text):
        return self.gates.setdefault(amount_text, asyncio.Event())

    async def validate(self, amount_text):
        gate = self.gate(amount_text)
        if len(self.gates) >= 2:
            self.started.set()
        await gate.wait()
        return self._check(amount_text)

    def _check(self, amount_text):
        return parse_amount(amount_text)


@pytest.fixture
def config():
    return StoreConfig(validation_latency=0)


class TestScenarios:
    """User-level flows."""

    @pytest.mark.asyncio
    async def test_deposit_from_zero(self, config):
        store = create_store(config, telemetry=RecordingTelemetry())

        store.dispatch(deposit("100"))
        await store.drain()

        state = store.get_snapshot()
        assert state.balance == 100
        assert not state.error
        assert not state.loading
        assert len(state.ledger) == 1
        assert state.ledger[0].kind == TransactionKind.INCOME
        assert state.ledger[0].amount == 100

    @pytest.mark.asyncio
    async def test_withdrawal(self, config):
        store = create_store(config.with_overrides(initial_balance=100),
                             telemetry=RecordingTelemetry())

        store.dispatch(withdraw("40"))
        await store.drain()

        state = store.get_snapshot()
        assert state.balance == 60
        assert state.ledger[-1].kind == TransactionKind.EXPENSE
        assert state.ledger[-1].amount == 40

    @pytest.mark.asyncio
    async def test_invalid_deposit_then_retry(self, config):
        store = create_store(config, telemetry=RecordingTelemetry())

        store.dispatch(deposit("abc"))
        await store.drain()

        state = store.get_snapshot()
        assert state.error
        assert state.balance == 0

        store.dispatch(retry())
        await store.drain()

        state = store.get_snapshot()
        assert not state.error
        assert not state.loading
        assert state.balance == 0

    @pytest.mark.asyncio
    async def test_remove_only_transaction(self):
        state = AtmState(
            balance=100,
            transactions=(Transaction("T", 100, TransactionKind.INCOME, "Deposit"),),
        )
        store = (
            StoreBuilder()
            .with_state(state)
            .with_reducer(default_reducer())
            .build()
        )

        store.dispatch(remove_transaction("T"))
        await store.drain()

        assert store.get_snapshot().balance == 0
        assert store.get_snapshot().ledger == ()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("release_order", [("30", "12"), ("12", "30")])
    async def test_concurrent_deposits_do_not_lose_updates(self, release_order):
        validator = GatedValidator()
        store = StoreBuilder().with_effect(ValidationEffect(validator)).build()

        store.dispatch(deposit("12"))
        store.dispatch(deposit("30"))
        await asyncio.wait_for(validator.started.wait(), timeout=1)

        assert store.get_snapshot().loading
        assert store.get_snapshot().pending == 2

        for amount in release_order:
            validator.gate(amount).set()
            await asyncio.sleep(0)
        await store.drain()

        state = store.get_snapshot()
        assert state.balance == 42
        assert not state.loading
        assert sorted(t.amount for t in state.ledger) == [12, 30]


class TestProperties:
    """Cross-cutting guarantees on a wired store."""

    @pytest.mark.asyncio
    async def test_retry_when_idle_changes_nothing(self, config):
        store = create_store(config, telemetry=RecordingTelemetry())
        before = store.get_snapshot()

        store.dispatch(retry())
        await store.drain()

        assert store.get_snapshot() is before

    @pytest.mark.asyncio
    @pytest.mark.parametrize("request_factory", [deposit, withdraw])
    async def test_remove_restores_balance(self, config, request_factory):
        store = create_store(config.with_overrides(initial_balance=50),
                             telemetry=RecordingTelemetry())

        store.dispatch(request_factory("20"))
        await store.drain()
        transaction_id = store.get_snapshot().ledger[-1].id

        store.dispatch(remove_transaction(transaction_id))
        await store.drain()

        assert store.get_snapshot().balance == 50

    @pytest.mark.asyncio
    async def test_transaction_ids_unique(self, config):
        store = create_store(config, telemetry=RecordingTelemetry())

        for i in range(25):
            store.dispatch(deposit(str(i)))
        await store.drain()

        ids = [t.id for t in store.get_snapshot().ledger]
        assert len(ids) == 25
        assert len(set(ids)) == 25

    @pytest.mark.asyncio
    async def test_error_and_loading_exclusive_on_stream(self, config):
        store = create_store(config, telemetry=RecordingTelemetry())
        seen = []
        store.subscribe(lambda state, action: seen.append(state))

        for amount in ["5", "x", "7", "", "3"]:
            store.dispatch(deposit(amount))
        await store.drain()
        store.dispatch(retry())
        await store.drain()

        assert seen
        assert all(not (s.error and s.loading) for s in seen)
        assert not store.get_snapshot().error

    @pytest.mark.asyncio
    async def test_overdraft_rejected(self, config):
        store = create_store(config.with_overrides(initial_balance=10),
                             telemetry=RecordingTelemetry())

        store.dispatch(withdraw("11"))
        await store.drain()

        assert store.get_snapshot().error
        assert store.get_snapshot().balance == 10

    @pytest.mark.asyncio
    async def test_error_entered_only_through_failures(self, config):
        store = create_store(config.with_overrides(initial_balance=10),
                             telemetry=RecordingTelemetry())
        entered_error = []
        previous = [store.get_snapshot()]

        def record(state, action):
            if state.error and not previous[0].error:
                entered_error.append(action.action_type)
            previous[0] = state

        store.subscribe(record)

        for request in [withdraw("11"), retry(), deposit("x"), retry(),
                        withdraw("4"), withdraw("7"), retry(), deposit("3")]:
            store.dispatch(request)
            await store.drain()

        assert entered_error
        assert set(entered_error) <= FAILURE_TYPES
        assert store.get_snapshot().balance == 9

    @pytest.mark.asyncio
    async def test_overdraft_allowed_by_config(self, config):
        store = create_store(
            config.with_overrides(initial_balance=10, allow_overdraft=True),
            telemetry=RecordingTelemetry(),
        )

        store.dispatch(withdraw("11"))
        await store.drain()

        assert store.get_snapshot().balance == -1

    @pytest.mark.asyncio
    async def test_tracking_sees_requests(self, config):
        telemetry = RecordingTelemetry()
        store = create_store(config, telemetry=telemetry)

        store.dispatch(deposit("1"))
        store.dispatch(withdraw("1"))
        await store.drain()

        assert len(telemetry.records) == 2

    @pytest.mark.asyncio
    async def test_edit_navigates_when_navigator_given(self, config):
        navigator = InMemoryNavigator()
        store = create_store(config, navigator=navigator, telemetry=RecordingTelemetry())

        store.dispatch(deposit("9"))
        await store.drain()
        store.dispatch(edit_transaction(store.get_snapshot().ledger[0].id))
        await store.drain()

        assert navigator.current.screen == Screen.TRANSACTION

    def test_stats_list_effects_in_order(self, config):
        store = create_store(config, navigator=InMemoryNavigator(),
                             telemetry=RecordingTelemetry())
        assert store.stats()["effects"] == ["tracking", "validation", "navigation"]

    def test_tracking_can_be_disabled(self, config):
        store = create_store(config.with_overrides(tracking=False))
        assert store.stats()["effects"] == ["validation"]
