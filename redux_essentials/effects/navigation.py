"""
Screen transitions triggered by ledger actions.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from ..core.state.action_types import Action, ActionType
from ..core.state.middleware import Dispatch, SideEffect
from ..types import AtmState

logger = logging.getLogger(__name__)


class Screen(str, Enum):
    ATM = "atm"
    TRANSACTION = "transaction"


@dataclass(frozen=True)
class Destination:
    screen: Screen
    transaction_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {"screen": self.screen.value, "transaction_id": self.transaction_id}


class Navigator(ABC):
    """Owns routing; only receives screen-selection requests."""

    @abstractmethod
    def go_to(self, screen: Screen, transaction_id: Optional[str] = None) -> None:
        ...


class InMemoryNavigator(Navigator):
    """
    Navigator that records where the user is.

    Used by the CLI and the HTTP surface, which render the current
    destination themselves.
    """

    def __init__(self):
        self.history: List[Destination] = [Destination(Screen.ATM)]

    @property
    def current(self) -> Destination:
        return self.history[-1]

    def go_to(self, screen: Screen, transaction_id: Optional[str] = None) -> None:
        destination = Destination(screen, transaction_id)
        self.history.append(destination)
        logger.info(f"Navigated to {screen.value}" + (
            f" ({transaction_id})" if transaction_id else ""
        ))

    def back(self) -> Destination:
        if len(self.history) > 1:
            self.history.pop()
        return self.current


class NavigationEffect(SideEffect):
    """Opens the transaction screen for edit-transaction actions."""

    name = "navigation"

    def __init__(self, navigator: Navigator):
        self.navigator = navigator

    async def handle(self, action: Action, dispatch: Dispatch, state: AtmState) -> bool:
        if action.action_type == ActionType.EDIT_TRANSACTION:
            transaction_id = action.payload.get("transaction_id")
            if state.find_transaction(transaction_id) is None:
                logger.info(f"Edit requested for unknown transaction {transaction_id}")
            else:
                self.navigator.go_to(Screen.TRANSACTION, transaction_id)
        return False
