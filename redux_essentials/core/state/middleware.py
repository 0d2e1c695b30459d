"""
Side-effect chain composed around the reducer.

Each side-effect sees an action before everything configured after it.
It can let the action fall through, observe it and forward it, or consume
it and emit new actions through ``dispatch``. Emitted actions re-enter the
whole chain from the top and finish before ``await dispatch(...)`` returns.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Sequence

from .action_types import Action
from ...types import AtmState

logger = logging.getLogger(__name__)

Dispatch = Callable[[Action], Awaitable[None]]
ChainHandler = Callable[[Action], Awaitable[None]]
StateGetter = Callable[[], AtmState]


class SideEffect(ABC):
    """
    Asynchronous handler wrapped around the reducer.

    Subclasses implement ``handle`` and return True to consume the action
    (inner effects and the reducer never see it) or False to forward it.
    """

    name: str = "effect"

    @abstractmethod
    async def handle(
        self,
        action: Action,
        dispatch: Dispatch,
        state: AtmState,
    ) -> bool:
        """
        React to an action.

        Args:
            action: The action travelling down the chain
            dispatch: Re-enters the complete chain with a new action
            state: Snapshot of the state when this handler was invoked

        Returns:
            True if the action was consumed
        """

    def attach(self, get_state: StateGetter) -> None:
        """Called once by the owning store with its latest-state getter."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


def _wrap(
    effect: SideEffect,
    inner: ChainHandler,
    dispatch: Dispatch,
    get_state: StateGetter,
) -> ChainHandler:
    async def handler(action: Action) -> None:
        consumed = await effect.handle(action, dispatch, get_state())
        if consumed:
            logger.debug(f"{effect.name} consumed {action.action_type.value}")
            return
        await inner(action)

    return handler


def compose_chain(
    effects: Sequence[SideEffect],
    innermost: ChainHandler,
    dispatch: Dispatch,
    get_state: StateGetter,
) -> ChainHandler:
    """
    Right-fold the effects around the innermost handler.

    The first effect in ``effects`` becomes the outermost handler.

    Args:
        effects: Effects in configuration order
        innermost: Handler that runs the reducer
        dispatch: Entry point handed to effects for re-entry
        get_state: Returns the latest published state
    """
    handler = innermost
    for effect in reversed(effects):
        handler = _wrap(effect, handler, dispatch, get_state)
    return handler
