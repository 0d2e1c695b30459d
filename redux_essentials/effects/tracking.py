"""
Telemetry for raw user requests.

The tracking effect never changes control flow: every action is
forwarded, and telemetry gets no way back into the dispatch chain.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List, Tuple

from ..core.state.action_types import Action
from ..core.state.middleware import Dispatch, SideEffect
from ..logging_config import get_logger
from ..types import AtmState

logger = logging.getLogger(__name__)


class Telemetry(ABC):
    """Receives read-only notifications of user requests."""

    @abstractmethod
    def track(self, action: Action, state: AtmState) -> None:
        ...


class LoggingTelemetry(Telemetry):
    """Writes one structured log event per request."""

    def __init__(self):
        self._log = get_logger("redux_essentials.telemetry", subsystem="tracking")

    def track(self, action: Action, state: AtmState) -> None:
        self._log.event(
            action.action_type.value,
            f"User requested {action.action_type.value}",
            amount=action.payload.get("amount"),
            balance=state.balance,
            status=state.status.value,
        )


class RecordingTelemetry(Telemetry):
    """Keeps every notification in memory."""

    def __init__(self):
        self.records: List[Tuple[Action, AtmState]] = []

    def track(self, action: Action, state: AtmState) -> None:
        self.records.append((action, state))


class TrackingEffect(SideEffect):
    """Observes raw requests and forwards every action unchanged."""

    name = "tracking"

    def __init__(self, telemetry: Telemetry = None):
        self.telemetry = telemetry or LoggingTelemetry()

    async def handle(self, action: Action, dispatch: Dispatch, state: AtmState) -> bool:
        if action.is_request:
            try:
                self.telemetry.track(action, state)
            except Exception as e:
                logger.warning(f"Telemetry error: {e}")
        return False
