"""
Builder for a fully wired Store.

Reducers and side-effects are fixed when build() is called; the store
composes the chain once and never changes it afterwards.
"""
from __future__ import annotations

import asyncio
from typing import List, Optional

from .middleware import SideEffect
from .reducer import Reducer, combine_reducers, default_reducer
from .store import Store
from ...types import AtmState, initial_state


class StoreBuilder:
    """
    Collects the store's static configuration.

    Example:
        >>> store = (
        ...     StoreBuilder()
        ...     .with_state(initial_state(100))
        ...     .with_effect(ValidationEffect(StrictValidator()))
        ...     .with_effect(TrackingEffect())
        ...     .build()
        ... )
    """

    def __init__(self):
        self._state: AtmState = initial_state()
        self._reducers: List[Reducer] = []
        self._effects: List[SideEffect] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._max_in_flight = 64
        self._built = False

    def with_state(self, state: AtmState) -> "StoreBuilder":
        self._state = state
        return self

    def with_reducer(self, reducer: Reducer) -> "StoreBuilder":
        """Add a reducer; reducers fold in the order they are added."""
        self._reducers.append(reducer)
        return self

    def with_effect(self, effect: SideEffect) -> "StoreBuilder":
        """Add a side-effect; the first one added sees actions first."""
        self._effects.append(effect)
        return self

    def with_loop(self, loop: asyncio.AbstractEventLoop) -> "StoreBuilder":
        self._loop = loop
        return self

    def with_max_in_flight(self, max_in_flight: int) -> "StoreBuilder":
        if max_in_flight < 1:
            raise ValueError("max_in_flight must be at least 1")
        self._max_in_flight = max_in_flight
        return self

    def build(self) -> Store:
        if self._built:
            raise RuntimeError("StoreBuilder.build() may only be called once")
        self._built = True

        reducer = combine_reducers(*self._reducers) if self._reducers else default_reducer()
        return Store(
            state=self._state,
            reducer=reducer,
            effects=self._effects,
            loop=self._loop,
            max_in_flight=self._max_in_flight,
        )
