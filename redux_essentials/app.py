"""
Composition root: builds the store from a StoreConfig.

Effect order is tracking, validation, navigation. Tracking sits
outermost because validation consumes the raw requests it reports on.
"""
from __future__ import annotations

import asyncio
import logging
import random
from typing import Optional

from .config import StoreConfig
from .core.state.builder import StoreBuilder
from .core.state.reducer import default_reducer
from .core.state.store import Store
from .effects.navigation import Navigator, NavigationEffect
from .effects.tracking import Telemetry, TrackingEffect
from .effects.validation import RandomValidator, StrictValidator, ValidationEffect, Validator
from .types import initial_state

logger = logging.getLogger(__name__)


def build_validator(config: StoreConfig) -> Validator:
    if config.validator == "random":
        return RandomValidator(
            latency=config.validation_latency,
            success_rate=config.success_rate,
            rng=random.Random(config.random_seed),
        )
    return StrictValidator(latency=config.validation_latency)


def create_store(
    config: Optional[StoreConfig] = None,
    navigator: Optional[Navigator] = None,
    telemetry: Optional[Telemetry] = None,
    loop: Optional[asyncio.AbstractEventLoop] = None,
) -> Store:
    """
    Build the application's store.

    Args:
        config: Store configuration (defaults if None)
        navigator: Receives screen requests; navigation is off without one
        telemetry: Receives raw requests (structured logging by default)
        loop: Loop for dispatches made from other threads
    """
    config = config or StoreConfig()

    builder = (
        StoreBuilder()
        .with_state(initial_state(config.initial_balance))
        .with_reducer(default_reducer(allow_overdraft=config.allow_overdraft))
        .with_max_in_flight(config.max_in_flight)
    )
    if config.tracking:
        builder.with_effect(TrackingEffect(telemetry))
    builder.with_effect(ValidationEffect(
        build_validator(config), allow_overdraft=config.allow_overdraft,
    ))
    if navigator is not None:
        builder.with_effect(NavigationEffect(navigator))
    if loop is not None:
        builder.with_loop(loop)

    store = builder.build()
    logger.info(
        f"Store ready: validator={config.validator} "
        f"latency={config.validation_latency}s effects={[e.name for e in store.effects]}"
    )
    return store
