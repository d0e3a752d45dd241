"""
Runtime state package for the weather telemetry bot.

Everything the relay remembers between messages lives here:

    from weather_bot.runtime_state import (
        MeasurementStore, SubscriberRegistry, StateGateway,
    )

    store = MeasurementStore()
    registry = SubscriberRegistry()
    gateway = StateGateway(settings.state_path)
    gateway.restore(store, registry)     # once, at startup
    ...
    gateway.save(store, registry)        # after every mutation
"""

from .measurements import MeasurementStore
from .persistence import PersistedState, StateGateway
from .subscribers import RequestQueue, SubscriberId, SubscriberRegistry

__all__ = [
    "MeasurementStore",
    "PersistedState",
    "RequestQueue",
    "StateGateway",
    "SubscriberId",
    "SubscriberRegistry",
]
