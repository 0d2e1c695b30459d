from __future__ import annotations
from dataclasses import dataclass, asdict, replace
from enum import Enum
from typing import Optional, Tuple, Dict, Any


class TransactionKind(str, Enum):
    """Direction of a ledger entry."""
    INCOME = "income"
    EXPENSE = "expense"


class Status(str, Enum):
    """What the presentation layer should render for a State."""
    IDLE = "idle"
    LOADING = "loading"
    ERROR = "error"


@dataclass(frozen=True)
class Transaction:
    """
    A recorded balance change.

    Attributes:
        id: Unique opaque identifier
        amount: Non-negative amount
        kind: INCOME for deposits, EXPENSE for withdrawals
        description: Free text shown in the ledger
    """
    id: str
    amount: int
    kind: TransactionKind
    description: str = ""

    @property
    def signed_amount(self) -> int:
        """Effect this transaction had on the balance."""
        return self.amount if self.kind == TransactionKind.INCOME else -self.amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "amount": self.amount,
            "kind": self.kind.value,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        return cls(
            id=data["id"],
            amount=int(data["amount"]),
            kind=TransactionKind(data["kind"]),
            description=data.get("description", ""),
        )


@dataclass(frozen=True)
class AtmState:
    """
    Immutable snapshot of the account.

    Attributes:
        balance: Current balance, unbounded integer
        transactions: Ordered ledger, None when the ledger is not tracked
        error: Last validation failed and has not been retried
        loading: A validation is in flight
        pending: Number of validations in flight
    """
    balance: int = 0
    transactions: Optional[Tuple[Transaction, ...]] = ()
    error: bool = False
    loading: bool = False
    pending: int = 0

    @property
    def ledger(self) -> Tuple[Transaction, ...]:
        """Ledger as a tuple, empty when absent."""
        return self.transactions or ()

    @property
    def status(self) -> Status:
        if self.error:
            return Status.ERROR
        if self.loading:
            return Status.LOADING
        return Status.IDLE

    def find_transaction(self, transaction_id: str) -> Optional[Transaction]:
        for txn in self.ledger:
            if txn.id == transaction_id:
                return txn
        return None

    def with_changes(self, **changes: Any) -> "AtmState":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize state to a dictionary for logging and the HTTP surface."""
        data = asdict(self)
        data["transactions"] = (
            None if self.transactions is None
            else [t.to_dict() for t in self.transactions]
        )
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AtmState":
        """Deserialize state from a dictionary."""
        raw = data.get("transactions", [])
        return cls(
            balance=int(data.get("balance", 0)),
            transactions=None if raw is None else tuple(Transaction.from_dict(t) for t in raw),
            error=bool(data.get("error", False)),
            loading=bool(data.get("loading", False)),
            pending=int(data.get("pending", 0)),
        )


def initial_state(balance: int = 0) -> AtmState:
    """Idle state with an empty ledger."""
    return AtmState(balance=balance, transactions=(), error=False, loading=False)
