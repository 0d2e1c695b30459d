"""
Action types for the dispatch pipeline.

Every intent and every outcome is represented as an action. Actions are
facts, not commands: reducers and side-effects decide what they mean.
Each action is consumed once by the pipeline and then discarded.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class ActionType(str, Enum):
    """Closed set of actions understood by the pipeline."""

    # Raw user requests (consumed by the validation effect)
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"

    # Validation outcomes
    VALIDATING = "validating"
    DEPOSIT_SUCCEEDED = "deposit_succeeded"
    DEPOSIT_FAILED = "deposit_failed"
    WITHDRAWAL_SUCCEEDED = "withdrawal_succeeded"
    WITHDRAWAL_FAILED = "withdrawal_failed"

    # Error recovery
    RETRY = "retry"

    # Ledger operations
    REMOVE_TRANSACTION = "remove_transaction"
    EDIT_TRANSACTION = "edit_transaction"


REQUEST_TYPES = frozenset({ActionType.DEPOSIT, ActionType.WITHDRAWAL})
FAILURE_TYPES = frozenset({ActionType.DEPOSIT_FAILED, ActionType.WITHDRAWAL_FAILED})


@dataclass(frozen=True)
class Action:
    """
    Immutable action flowing through the dispatch chain.

    Attributes:
        action_type: Which variant this is
        payload: Variant-specific data
        timestamp: When the action was created (ISO format)
        source: What created this action (for debugging)
    """
    action_type: ActionType
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())
    source: str = "unknown"

    @property
    def is_request(self) -> bool:
        return self.action_type in REQUEST_TYPES

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary for logging."""
        return {
            "action_type": self.action_type.value,
            "payload": dict(self.payload),
            "timestamp": self.timestamp,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Action":
        """Deserialize from dictionary."""
        return cls(
            action_type=ActionType(data["action_type"]),
            payload=data.get("payload", {}),
            timestamp=data.get("timestamp", datetime.now().isoformat()),
            source=data.get("source", "unknown"),
        )


# Action factory functions

def deposit(amount: str, description: str = "") -> Action:
    """User asked to deposit the raw amount text."""
    return Action(
        action_type=ActionType.DEPOSIT,
        payload={"amount": amount, "description": description},
        source="deposit",
    )


def withdraw(amount: str, description: str = "") -> Action:
    """User asked to withdraw the raw amount text."""
    return Action(
        action_type=ActionType.WITHDRAWAL,
        payload={"amount": amount, "description": description},
        source="withdraw",
    )


def validating(request: Optional[ActionType] = None) -> Action:
    """A request entered validation."""
    return Action(
        action_type=ActionType.VALIDATING,
        payload={"request": request.value if request else None},
        source="validation",
    )


def deposit_succeeded(amount: int, transaction_id: str, description: str = "") -> Action:
    """A deposit passed validation."""
    return Action(
        action_type=ActionType.DEPOSIT_SUCCEEDED,
        payload={
            "amount": amount,
            "transaction_id": transaction_id,
            "description": description,
        },
        source="validation",
    )


def deposit_failed(reason: str = "") -> Action:
    """A deposit was rejected."""
    return Action(
        action_type=ActionType.DEPOSIT_FAILED,
        payload={"reason": reason},
        source="validation",
    )


def withdrawal_succeeded(amount: int, transaction_id: str, description: str = "") -> Action:
    """A withdrawal passed validation."""
    return Action(
        action_type=ActionType.WITHDRAWAL_SUCCEEDED,
        payload={
            "amount": amount,
            "transaction_id": transaction_id,
            "description": description,
        },
        source="validation",
    )


def withdrawal_failed(reason: str = "") -> Action:
    """A withdrawal was rejected."""
    return Action(
        action_type=ActionType.WITHDRAWAL_FAILED,
        payload={"reason": reason},
        source="validation",
    )


def retry() -> Action:
    """Leave the error state without replaying the failed request."""
    return Action(action_type=ActionType.RETRY, source="retry")


def remove_transaction(transaction_id: str) -> Action:
    """Remove a ledger entry and reverse its balance effect."""
    return Action(
        action_type=ActionType.REMOVE_TRANSACTION,
        payload={"transaction_id": transaction_id},
        source="remove_transaction",
    )


def edit_transaction(transaction_id: str) -> Action:
    """Open a ledger entry for editing."""
    return Action(
        action_type=ActionType.EDIT_TRANSACTION,
        payload={"transaction_id": transaction_id},
        source="edit_transaction",
    )
