"""
Account store with an asynchronous side-effect chain.

The store is the single writer for the account state.
All writes go through dispatch(), all reads through get_snapshot()
or observe().

Lost updates are prevented by:
- Folding the reducer over the latest published state under a lock
- Publishing each new state as one atomic replacement
- Handing out immutable snapshots only
"""
from __future__ import annotations

import asyncio
import logging
import threading
from typing import AsyncIterator, Callable, Dict, List, Optional, Sequence, Set, Tuple

from .action_types import Action
from .middleware import SideEffect, compose_chain
from .reducer import Reducer, default_reducer
from ...types import AtmState, initial_state

logger = logging.getLogger(__name__)

Subscriber = Callable[[AtmState, Action], None]


class Store:
    """
    Owner of the account state and the single dispatch entry point.

    dispatch(action) schedules the composed chain as an asyncio task and
    returns immediately. Side-effects may suspend (simulated I/O) and
    re-enter the chain; the reducer fold runs innermost.

    Features:
    - Thread-safe state replacement
    - Observable state stream (observe) and sync subscribers
    - Bounded in-flight dispatches (newest dropped on overflow)
    - Counters for diagnostics

    Example:
        >>> store = Store(initial_state(), effects=[ValidationEffect(...)])
        >>> store.dispatch(deposit("100"))
        >>> await store.drain()
        >>> store.get_snapshot().balance
        100
    """

    def __init__(
        self,
        state: Optional[AtmState] = None,
        reducer: Optional[Reducer] = None,
        effects: Sequence[SideEffect] = (),
        loop: Optional[asyncio.AbstractEventLoop] = None,
        max_in_flight: int = 64,
    ):
        """
        Initialize the store.

        Args:
            state: Starting state (idle, balance 0 by default)
            reducer: Reducer fold applied innermost
            effects: Side-effects, outermost first
            loop: Event loop to schedule on when dispatch is called
                from a thread without a running loop
            max_in_flight: Max concurrently running dispatches
        """
        self._state = state if state is not None else initial_state()
        self._reducer = reducer or default_reducer()
        self._effects: Tuple[SideEffect, ...] = tuple(effects)
        self._loop = loop
        self._max_in_flight = max_in_flight
        self._lock = threading.RLock()
        self._seq = 0

        self._tasks: Set[asyncio.Task] = set()
        self._in_flight = 0
        self._counters: Dict[str, int] = {
            "dispatched": 0,
            "applied": 0,
            "published": 0,
            "dropped": 0,
            "failed": 0,
        }

        self._subscribers: List[Subscriber] = []
        self._observers: List[Tuple[asyncio.AbstractEventLoop, asyncio.Queue]] = []

        for effect in self._effects:
            effect.attach(self.get_snapshot)

        self._chain = compose_chain(
            self._effects,
            self._reduce,
            self._run_chain,
            self.get_snapshot,
        )

    @property
    def effects(self) -> Tuple[SideEffect, ...]:
        return self._effects

    @property
    def state(self) -> AtmState:
        return self.get_snapshot()

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Schedule cross-thread dispatches on this loop."""
        self._loop = loop

    def dispatch(self, action: Action) -> bool:
        """
        Dispatch an action through the chain without waiting for it.

        This is the ONLY way to modify state.

        Args:
            action: The action to dispatch

        Returns:
            True if scheduled, False if dropped because too many
            dispatches are already in flight
        """
        with self._lock:
            if self._in_flight >= self._max_in_flight:
                self._counters["dropped"] += 1
                logger.warning(
                    f"Dropped {action.action_type.value}: "
                    f"{self._in_flight} dispatches in flight (max={self._max_in_flight})"
                )
                return False
            self._in_flight += 1
            self._counters["dispatched"] += 1

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is not None and (self._loop is None or self._loop is running):
            self._spawn(action)
        elif self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._spawn, action)
        else:
            with self._lock:
                self._in_flight -= 1
                self._counters["dispatched"] -= 1
            raise RuntimeError(
                "Store.dispatch needs a running event loop or a loop bound with bind_loop()"
            )
        return True

    def _spawn(self, action: Action) -> None:
        task = asyncio.get_running_loop().create_task(self._execute(action))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _execute(self, action: Action) -> None:
        """Run one dispatch to completion; failures never escape the task."""
        try:
            await self._chain(action)
        except Exception:
            with self._lock:
                self._counters["failed"] += 1
            logger.exception(f"Dispatch of {action.action_type.value} failed")
        finally:
            with self._lock:
                self._in_flight -= 1

    async def _run_chain(self, action: Action) -> None:
        """Re-entry point handed to side-effects."""
        await self._chain(action)

    async def _reduce(self, action: Action) -> None:
        """Innermost handler: fold the reducer over the latest state."""
        self._apply(action)

    def _apply(self, action: Action) -> bool:
        """Apply an action to the latest state; True if a new state was published."""
        with self._lock:
            old_state = self._state
            new_state = self._reducer(action, old_state)
            self._counters["applied"] += 1

            if new_state == old_state:
                logger.debug(f"Action {action.action_type.value} left state unchanged")
                return False

            self._seq += 1
            self._state = new_state
            self._counters["published"] += 1
            logger.debug(f"Applied action: {action.action_type.value} seq={self._seq}")

            for sub in list(self._subscribers):
                try:
                    sub(new_state, action)
                except Exception as e:
                    logger.warning(f"Subscriber error: {e}")

            for entry in list(self._observers):
                self._push(entry, new_state)

            return True

    def _push(
        self,
        entry: Tuple[asyncio.AbstractEventLoop, asyncio.Queue],
        state: AtmState,
    ) -> None:
        loop, queue = entry
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            queue.put_nowait(state)
            return
        try:
            loop.call_soon_threadsafe(queue.put_nowait, state)
        except RuntimeError:
            logger.warning("Observer loop is closed, removing observer")
            self._observers.remove(entry)

    def get_snapshot(self) -> AtmState:
        """
        Get the current state.

        States are immutable, so the returned object is safe to use
        without locks.
        """
        with self._lock:
            return self._state

    async def observe(self) -> AsyncIterator[AtmState]:
        """
        Live state stream.

        Yields the current state first, then every state published
        afterwards, in publish order.
        """
        queue: asyncio.Queue = asyncio.Queue()
        entry = (asyncio.get_running_loop(), queue)
        with self._lock:
            queue.put_nowait(self._state)
            self._observers.append(entry)
        try:
            while True:
                yield await queue.get()
        finally:
            with self._lock:
                if entry in self._observers:
                    self._observers.remove(entry)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Subscribe to state changes.

        Args:
            callback: Called with (new_state, action) after each publish

        Returns:
            Unsubscribe function
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    async def drain(self) -> None:
        """
        Wait until no dispatch is in flight.

        Must be awaited on the loop the store schedules on, and not from
        inside a side-effect.
        """
        current = asyncio.current_task()
        while True:
            running = [t for t in self._tasks if t is not current and not t.done()]
            if running:
                await asyncio.gather(*running, return_exceptions=True)
                continue
            with self._lock:
                in_flight = self._in_flight - (1 if current in self._tasks else 0)
            if in_flight <= 0:
                return
            # Cross-thread dispatches not yet spawned on the loop
            await asyncio.sleep(0.001)

    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    def stats(self) -> dict:
        """Get dispatch statistics."""
        with self._lock:
            return {
                **self._counters,
                "in_flight": self._in_flight,
                "max_in_flight": self._max_in_flight,
                "seq": self._seq,
                "effects": [e.name for e in self._effects],
            }
