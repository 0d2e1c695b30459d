"""
Pure reducers for account state transitions.

Each reducer is a dispatch table keyed by action type. Reducers are
action-disjoint and are folded left-to-right over the same action, so
composition order does not change the result. Unknown actions pass the
state through unchanged.
"""
from __future__ import annotations

import logging
from functools import partial
from typing import Any, Callable, Dict, FrozenSet, Iterable, Optional

from .action_types import Action, ActionType
from ...types import AtmState, Transaction, TransactionKind

logger = logging.getLogger(__name__)

Reducer = Callable[[Action, AtmState], AtmState]
Handler = Callable[[AtmState, Dict[str, Any]], AtmState]


def _amount(payload: Dict[str, Any]) -> Optional[int]:
    """Validated amount from a payload, None when unusable."""
    amount = payload.get("amount")
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        return None
    return amount


def _settled(state: AtmState, **changes: Any) -> AtmState:
    """Close one in-flight validation and recompute the loading flag."""
    pending = max(0, state.pending - 1)
    error = changes.pop("error", state.error)
    return state.with_changes(
        pending=pending,
        loading=pending > 0 and not error,
        error=error,
        **changes,
    )


# Ledger handlers

def _record(
    state: AtmState,
    payload: Dict[str, Any],
    kind: TransactionKind,
) -> AtmState:
    amount = _amount(payload)
    transaction_id = payload.get("transaction_id")
    # Unusable outcomes still close their validation
    if amount is None or not transaction_id:
        logger.debug(f"Ignoring {kind.value} with malformed payload: {payload}")
        return _settled(state)
    if state.find_transaction(transaction_id) is not None:
        logger.debug(f"Transaction {transaction_id} already recorded")
        return _settled(state)

    txn = Transaction(
        id=transaction_id,
        amount=amount,
        kind=kind,
        description=payload.get("description", ""),
    )
    # An absent ledger stays absent; only the balance moves
    transactions = None if state.transactions is None else state.transactions + (txn,)
    return _settled(
        state,
        balance=state.balance + txn.signed_amount,
        transactions=transactions,
    )


def _handle_deposit_succeeded(state: AtmState, payload: Dict[str, Any]) -> AtmState:
    return _record(state, payload, TransactionKind.INCOME)


def _handle_withdrawal_succeeded(
    state: AtmState,
    payload: Dict[str, Any],
    allow_overdraft: bool = False,
) -> AtmState:
    amount = _amount(payload)
    if not allow_overdraft and amount is not None and amount > state.balance:
        # The validation effect rejects overdrafts before they get here
        logger.warning(
            f"Withdrawal of {amount} exceeds balance {state.balance}, not recorded"
        )
        return _settled(state)
    return _record(state, payload, TransactionKind.EXPENSE)


def _handle_remove_transaction(state: AtmState, payload: Dict[str, Any]) -> AtmState:
    txn = state.find_transaction(payload.get("transaction_id", ""))
    if txn is None:
        return state

    return state.with_changes(
        balance=state.balance - txn.signed_amount,
        transactions=tuple(t for t in state.ledger if t.id != txn.id),
    )


# Status handlers

def _handle_validating(state: AtmState, payload: Dict[str, Any]) -> AtmState:
    # Counted even in the error state so every outcome has a matching start
    return state.with_changes(
        pending=state.pending + 1,
        loading=not state.error,
    )


def _handle_failed(state: AtmState, payload: Dict[str, Any]) -> AtmState:
    return _settled(state, error=True)


def _handle_retry(state: AtmState, payload: Dict[str, Any]) -> AtmState:
    if not state.error and not state.loading:
        return state
    # Validations still in flight keep their count
    return state.with_changes(error=False, loading=False)


def table_reducer(handlers: Dict[ActionType, Handler]) -> Reducer:
    """Build a reducer from a dispatch table; unknown actions are identity."""
    def reducer(action: Action, state: AtmState) -> AtmState:
        handler = handlers.get(action.action_type)
        if handler is None:
            return state
        return handler(state, action.payload)

    reducer.handled_types = frozenset(handlers)  # type: ignore[attr-defined]
    return reducer


def make_ledger_reducer(allow_overdraft: bool = False) -> Reducer:
    """Balance and ledger changes: succeeded outcomes and removals."""
    return table_reducer({
        ActionType.DEPOSIT_SUCCEEDED: _handle_deposit_succeeded,
        ActionType.WITHDRAWAL_SUCCEEDED: partial(
            _handle_withdrawal_succeeded, allow_overdraft=allow_overdraft,
        ),
        ActionType.REMOVE_TRANSACTION: _handle_remove_transaction,
    })


status_reducer: Reducer = table_reducer({
    ActionType.VALIDATING: _handle_validating,
    ActionType.DEPOSIT_FAILED: _handle_failed,
    ActionType.WITHDRAWAL_FAILED: _handle_failed,
    ActionType.RETRY: _handle_retry,
})

ledger_reducer: Reducer = make_ledger_reducer()


def handled_types(reducer: Reducer) -> FrozenSet[ActionType]:
    return getattr(reducer, "handled_types", frozenset())


def combine_reducers(*reducers: Reducer) -> Reducer:
    """Fold several reducers left-to-right over the same action."""
    known = frozenset().union(*(handled_types(r) for r in reducers))

    def combined(action: Action, state: AtmState) -> AtmState:
        if known and action.action_type not in known:
            logger.debug(f"No reducer for action: {action.action_type.value}")
        for reducer in reducers:
            state = reducer(action, state)
        return state

    combined.handled_types = known  # type: ignore[attr-defined]
    return combined


def default_reducer(allow_overdraft: bool = False) -> Reducer:
    """The standard ledger + status reducer pair."""
    return combine_reducers(make_ledger_reducer(allow_overdraft), status_reducer)


def reduce_state(
    state: AtmState,
    action: Action,
    reducer: Optional[Reducer] = None,
) -> AtmState:
    """Apply one action to produce a new state."""
    return (reducer or default_reducer())(action, state)


def reduce_actions(
    initial_state: AtmState,
    actions: Iterable[Action],
    reducer: Optional[Reducer] = None,
) -> AtmState:
    """Apply a sequence of actions to get the final state."""
    reducer = reducer or default_reducer()
    state = initial_state
    for action in actions:
        state = reducer(action, state)
    return state
