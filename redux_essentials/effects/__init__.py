"""
Side-effects wrapped around the reducer.

- validation: turns raw requests into validated outcomes
- tracking: telemetry for raw requests
- navigation: screen transitions for ledger edits
"""
from .validation import (
    Validator,
    StrictValidator,
    RandomValidator,
    ValidationEffect,
    parse_amount,
)
from .tracking import Telemetry, LoggingTelemetry, RecordingTelemetry, TrackingEffect
from .navigation import (
    Screen,
    Destination,
    Navigator,
    InMemoryNavigator,
    NavigationEffect,
)

__all__ = [
    "Validator",
    "StrictValidator",
    "RandomValidator",
    "ValidationEffect",
    "parse_amount",
    "Telemetry",
    "LoggingTelemetry",
    "RecordingTelemetry",
    "TrackingEffect",
    "Screen",
    "Destination",
    "Navigator",
    "InMemoryNavigator",
    "NavigationEffect",
]
