"""In-process publish/subscribe for registry changes and clock ticks.

Public API:
    EventBus -- synchronous, single-threaded publish/subscribe register
    Subscription -- handle returned by EventBus.subscribe()
    HostClock -- periodic hostDate publisher
"""

from pvdbridge.events.bus import EventBus, Listener, Subscription
from pvdbridge.events.clock import HostClock, iso_timestamp

__all__ = ["EventBus", "HostClock", "Listener", "Subscription", "iso_timestamp"]
