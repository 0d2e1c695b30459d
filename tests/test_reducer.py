"""
Tests for the pure reducers.

Reducers must be total, deterministic and never mutate their input.
"""
import pytest

from redux_essentials.types import AtmState, Transaction, TransactionKind, Status, initial_state
from redux_essentials.core.state.action_types import (
    Action,
    ActionType,
    deposit,
    deposit_failed,
    deposit_succeeded,
    edit_transaction,
    remove_transaction,
    retry,
    validating,
    withdraw,
    withdrawal_failed,
    withdrawal_succeeded,
)
from redux_essentials.core.state.reducer import (
    combine_reducers,
    default_reducer,
    ledger_reducer,
    make_ledger_reducer,
    reduce_actions,
    reduce_state,
    status_reducer,
)


@pytest.fixture
def reducer():
    return default_reducer()


@pytest.fixture
def funded_state():
    """Balance 100 backed by one income transaction."""
    return AtmState(
        balance=100,
        transactions=(Transaction("T", 100, TransactionKind.INCOME, "Deposit"),),
    )


class TestDeposit:
    """Deposit outcomes."""

    def test_succeeded_adds_balance_and_income(self, reducer):
        state = reducer(deposit_succeeded(100, "t1"), initial_state())

        assert state.balance == 100
        assert len(state.ledger) == 1
        assert state.ledger[0].kind == TransactionKind.INCOME
        assert state.ledger[0].amount == 100
        assert not state.error
        assert not state.loading

    def test_succeeded_clears_loading(self, reducer):
        loading = reducer(validating(ActionType.DEPOSIT), initial_state())
        assert loading.loading

        state = reducer(deposit_succeeded(5, "t1"), loading)
        assert not state.loading
        assert state.pending == 0

    def test_failed_sets_error_and_keeps_balance(self, reducer, funded_state):
        state = reducer(deposit_failed("bad"), funded_state)

        assert state.error
        assert not state.loading
        assert state.balance == 100
        assert state.ledger == funded_state.ledger

    def test_duplicate_transaction_id_is_ignored(self, reducer):
        once = reducer(deposit_succeeded(10, "dup"), initial_state())
        twice = reducer(deposit_succeeded(10, "dup"), once)

        assert twice == once
        assert twice.balance == 10

    def test_duplicate_id_still_clears_loading(self, reducer):
        state = reducer(deposit_succeeded(5, "same"), initial_state())
        state = reducer(validating(), state)
        state = reducer(deposit_succeeded(7, "same"), state)

        assert not state.loading
        assert state.pending == 0
        assert state.balance == 5
        assert len(state.ledger) == 1

    def test_malformed_amount_is_ignored(self, reducer):
        state = initial_state()
        bad = Action(ActionType.DEPOSIT_SUCCEEDED, {"amount": -5, "transaction_id": "x"})
        assert reducer(bad, state) == state

    def test_malformed_outcome_still_clears_loading(self, reducer):
        state = reducer(validating(), initial_state())
        bad = Action(ActionType.DEPOSIT_SUCCEEDED, {"amount": "5", "transaction_id": "x"})
        state = reducer(bad, state)

        assert not state.loading
        assert state.balance == 0
        assert state.ledger == ()

    def test_absent_ledger_only_moves_balance(self, reducer):
        state = AtmState(balance=0, transactions=None)
        new_state = reducer(deposit_succeeded(7, "t1"), state)

        assert new_state.balance == 7
        assert new_state.transactions is None


class TestWithdrawal:
    """Withdrawal outcomes and overdraft policy."""

    def test_succeeded_subtracts_and_records_expense(self, reducer, funded_state):
        state = reducer(withdrawal_succeeded(40, "w1"), funded_state)

        assert state.balance == 60
        assert state.ledger[-1].kind == TransactionKind.EXPENSE
        assert state.ledger[-1].amount == 40

    def test_overdraft_never_recorded_by_default(self, reducer, funded_state):
        state = reducer(validating(), funded_state)
        state = reducer(withdrawal_succeeded(150, "w1"), state)

        assert not state.error
        assert not state.loading
        assert state.balance == 100
        assert len(state.ledger) == 1

    def test_withdraw_entire_balance_allowed(self, reducer, funded_state):
        state = reducer(withdrawal_succeeded(100, "w1"), funded_state)
        assert state.balance == 0
        assert not state.error

    def test_overdraft_allowed_when_configured(self, funded_state):
        reducer = default_reducer(allow_overdraft=True)
        state = reducer(withdrawal_succeeded(150, "w1"), funded_state)

        assert state.balance == -50
        assert not state.error

    def test_failed_sets_error(self, reducer, funded_state):
        state = reducer(withdrawal_failed(), funded_state)
        assert state.error
        assert state.balance == 100


class TestStatus:
    """Loading/error state machine."""

    def test_validating_sets_loading(self, reducer):
        state = reducer(validating(), initial_state())
        assert state.loading
        assert state.status == Status.LOADING

    def test_validating_in_error_state_counts_without_loading(self, reducer):
        state = reducer(validating(), AtmState(error=True))

        assert state.error
        assert not state.loading
        assert state.pending == 1

    def test_retry_clears_error(self, reducer):
        state = reducer(retry(), AtmState(balance=5, error=True))
        assert not state.error
        assert not state.loading
        assert state.balance == 5

    def test_retry_when_idle_is_identity(self, reducer):
        state = initial_state()
        assert reducer(retry(), state) is state

    def test_retry_keeps_in_flight_count(self, reducer):
        state = reducer(validating(), initial_state())
        state = reducer(validating(), state)
        state = reducer(deposit_failed(), state)
        state = reducer(retry(), state)

        assert not state.error
        assert not state.loading
        assert state.pending == 1

        # A new request, then the older outcome lands first
        state = reducer(validating(), state)
        state = reducer(deposit_succeeded(4, "old"), state)
        assert state.loading
        assert state.pending == 1

        state = reducer(deposit_succeeded(6, "new"), state)
        assert not state.loading
        assert state.balance == 10

    def test_loading_stays_while_validations_pending(self, reducer):
        state = reducer(validating(), initial_state())
        state = reducer(validating(), state)
        state = reducer(deposit_succeeded(1, "a"), state)

        assert state.loading
        assert state.pending == 1

        state = reducer(deposit_succeeded(2, "b"), state)
        assert not state.loading
        assert state.balance == 3

    def test_late_success_keeps_error_flag(self, reducer):
        state = reducer(validating(), initial_state())
        state = reducer(validating(), state)
        state = reducer(deposit_failed(), state)
        state = reducer(deposit_succeeded(10, "late"), state)

        assert state.error
        assert not state.loading
        assert state.balance == 10

    def test_error_and_loading_never_both_true(self, reducer):
        actions = [
            validating(), validating(), deposit_failed(), validating(),
            deposit_succeeded(3, "a"), retry(), validating(),
            withdrawal_failed(), deposit_succeeded(1, "b"), retry(),
        ]
        state = initial_state()
        for action in actions:
            state = reducer(action, state)
            assert not (state.error and state.loading)


class TestRemoveTransaction:
    """Ledger removal reverses the balance effect."""

    def test_remove_income(self, reducer, funded_state):
        state = reducer(remove_transaction("T"), funded_state)
        assert state.balance == 0
        assert state.ledger == ()

    def test_remove_expense_adds_back(self, reducer, funded_state):
        state = reducer(withdrawal_succeeded(40, "W"), funded_state)
        state = reducer(remove_transaction("W"), state)

        assert state.balance == 100
        assert [t.id for t in state.ledger] == ["T"]

    def test_remove_missing_is_noop(self, reducer, funded_state):
        assert reducer(remove_transaction("nope"), funded_state) is funded_state

    @pytest.mark.parametrize("make_outcome", [deposit_succeeded, withdrawal_succeeded])
    def test_round_trip_restores_balance(self, reducer, funded_state, make_outcome):
        after = reducer(make_outcome(30, "rt"), funded_state)
        restored = reducer(remove_transaction("rt"), after)
        assert restored.balance == funded_state.balance


class TestPurity:
    """Reducers are deterministic and side-effect free."""

    @pytest.mark.parametrize("action", [
        deposit("5"),
        withdraw("5"),
        edit_transaction("T"),
        validating(),
        deposit_succeeded(5, "x"),
        withdrawal_succeeded(5, "y"),
        deposit_failed(),
        retry(),
        remove_transaction("T"),
    ])
    def test_same_input_same_output(self, reducer, funded_state, action):
        snapshot = funded_state.to_dict()

        first = reducer(action, funded_state)
        second = reducer(action, funded_state)

        assert first == second
        assert funded_state.to_dict() == snapshot

    @pytest.mark.parametrize("action", [deposit("5"), withdraw("9"), edit_transaction("T")])
    def test_requests_are_identity(self, reducer, funded_state, action):
        assert reducer(action, funded_state) is funded_state

    def test_composition_order_does_not_matter(self, funded_state):
        forward = combine_reducers(ledger_reducer, status_reducer)
        backward = combine_reducers(status_reducer, ledger_reducer)
        actions = [validating(), deposit_succeeded(5, "a"), deposit_failed(), retry(),
                   withdrawal_succeeded(20, "b"), remove_transaction("T")]

        assert reduce_actions(funded_state, actions, forward) == \
            reduce_actions(funded_state, actions, backward)

    def test_reduce_state_uses_default_reducer(self):
        state = reduce_state(initial_state(), deposit_succeeded(9, "a"))
        assert state.balance == 9

    def test_ledger_reducer_factory_respects_overdraft(self):
        strict = make_ledger_reducer(allow_overdraft=False)
        state = strict(withdrawal_succeeded(1, "x"), initial_state())
        assert state.balance == 0
        assert not state.error


class TestStateModel:
    """AtmState helpers."""

    def test_to_dict_roundtrip(self, funded_state):
        restored = AtmState.from_dict(funded_state.to_dict())
        assert restored == funded_state

    def test_status_values(self):
        assert AtmState().status == Status.IDLE
        assert AtmState(loading=True).status == Status.LOADING
        assert AtmState(error=True).status == Status.ERROR
