"""
Amount validation with simulated latency.

The validation effect turns a raw deposit/withdrawal request into
``validating`` followed by ``succeeded(amount)`` or ``failed``.
Invalid input always produces an explicit failure; amounts are never
silently coerced to zero.
"""
from __future__ import annotations

import asyncio
import logging
import random
import re
import time
import uuid
from abc import ABC, abstractmethod
from typing import Callable, Optional

from ..core.state.action_types import (
    Action,
    ActionType,
    deposit_failed,
    deposit_succeeded,
    validating,
    withdrawal_failed,
    withdrawal_succeeded,
)
from ..core.state.middleware import Dispatch, SideEffect, StateGetter
from ..logging_config import get_logger
from ..types import AtmState

logger = logging.getLogger(__name__)
slog = get_logger(__name__, subsystem="validation")

_AMOUNT_RE = re.compile(r"[0-9]+")


def parse_amount(text: Optional[str]) -> Optional[int]:
    """
    Parse a non-negative integer literal.

    Only ASCII digits are accepted, surrounding whitespace is ignored.

    Returns:
        The amount, or None for blank or non-numeric input
    """
    if text is None:
        return None
    stripped = str(text).strip()
    if not _AMOUNT_RE.fullmatch(stripped):
        return None
    return int(stripped)


class Validator(ABC):
    """Asynchronous amount check with a fixed simulated latency."""

    def __init__(self, latency: float = 1.0):
        if latency < 0:
            raise ValueError("latency must be >= 0")
        self.latency = latency

    async def validate(self, amount_text: str) -> Optional[int]:
        """
        Validate a raw amount.

        Returns:
            The validated amount, or None if invalid
        """
        await asyncio.sleep(self.latency)
        return self._check(amount_text)

    @abstractmethod
    def _check(self, amount_text: str) -> Optional[int]:
        ...


class StrictValidator(Validator):
    """Accepts every well-formed non-negative integer."""

    def _check(self, amount_text: str) -> Optional[int]:
        return parse_amount(amount_text)


class RandomValidator(Validator):
    """
    Models an unreliable remote check.

    Well-formed amounts pass with probability ``success_rate``,
    malformed input always fails.
    """

    def __init__(
        self,
        latency: float = 1.0,
        success_rate: float = 0.5,
        rng: Optional[random.Random] = None,
    ):
        super().__init__(latency)
        if not 0.0 <= success_rate <= 1.0:
            raise ValueError("success_rate must be between 0 and 1")
        self.success_rate = success_rate
        self.rng = rng or random.Random()

    def _check(self, amount_text: str) -> Optional[int]:
        amount = parse_amount(amount_text)
        if amount is None:
            return None
        if self.rng.random() >= self.success_rate:
            logger.info("Remote check rejected the transaction")
            return None
        return amount


def new_transaction_id() -> str:
    return uuid.uuid4().hex


class ValidationEffect(SideEffect):
    """
    Consumes deposit/withdrawal requests and emits their outcome.

    Requests that arrive while the store is in the error state are
    consumed and ignored; the user has to retry first. Unless overdraft
    is allowed, a withdrawal larger than the latest balance is emitted
    as a failure.
    """

    name = "validation"

    def __init__(
        self,
        validator: Optional[Validator] = None,
        id_factory: Callable[[], str] = new_transaction_id,
        allow_overdraft: bool = False,
    ):
        self.validator = validator or StrictValidator()
        self.id_factory = id_factory
        self.allow_overdraft = allow_overdraft
        self._get_state: Optional[StateGetter] = None

    def attach(self, get_state: StateGetter) -> None:
        self._get_state = get_state

    async def handle(self, action: Action, dispatch: Dispatch, state: AtmState) -> bool:
        if not action.is_request:
            return False

        if state.error:
            logger.info(
                f"Ignoring {action.action_type.value} request while in error state"
            )
            return True

        is_deposit = action.action_type == ActionType.DEPOSIT
        amount_text = action.payload.get("amount", "")
        description = action.payload.get("description") or (
            "Deposit" if is_deposit else "Withdrawal"
        )

        await dispatch(validating(action.action_type))

        t0 = time.perf_counter()
        try:
            amount = await self.validator.validate(amount_text)
        except Exception as e:
            logger.warning(f"Validator error for {amount_text!r}: {e}")
            amount = None
        slog.latency(
            "validation",
            (time.perf_counter() - t0) * 1000,
            action_type=action.action_type.value,
        )

        if amount is None:
            reason = f"rejected amount: {amount_text!r}"
            await dispatch(deposit_failed(reason) if is_deposit else withdrawal_failed(reason))
            return True

        if is_deposit:
            await dispatch(deposit_succeeded(amount, self.id_factory(), description))
            return True

        # No await between this read and the reduce of the outcome
        latest = self._get_state() if self._get_state else state
        if not self.allow_overdraft and amount > latest.balance:
            await dispatch(withdrawal_failed(
                f"insufficient funds: {amount} > {latest.balance}"
            ))
            return True
        await dispatch(withdrawal_succeeded(amount, self.id_factory(), description))
        return True
