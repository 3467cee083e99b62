"""Synchronous publish/subscribe register keyed by event name.

Listeners are plain callables taking the event payload. Delivery happens
inline, in subscription order, on the caller's thread (the event loop).
Every subscribe() returns a Subscription that the owner must release,
which is how per-connection listeners are torn down on disconnect.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


class Subscription:
    """Handle tying one listener to one event name on one bus."""

    def __init__(self, bus: EventBus, name: str, listener: Listener) -> None:
        self._bus = bus
        self.name = name
        self.listener = listener

    @property
    def active(self) -> bool:
        return self._bus._find(self.name, self.listener) is not None

    def cancel(self) -> None:
        """Release the listener. Safe to call more than once."""
        self._bus.unsubscribe(self)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        self.cancel()

    def __repr__(self) -> str:
        return f"Subscription(name={self.name!r}, active={self.active})"


class EventBus:
    """Publish/subscribe register shared by the registry and the clients.

    Example usage::

        bus = EventBus()
        sub = bus.subscribe("pvdList", print)
        bus.publish("pvdList", ["router1"])
        sub.cancel()
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[Subscription]] = {}

    def subscribe(self, name: str, listener: Listener) -> Subscription:
        """Register ``listener`` for ``name``.

        Subscribing the same listener twice to the same name returns the
        existing handle instead of registering a duplicate.
        """
        name = _key(name)
        existing = self._find(name, listener)
        if existing is not None:
            return existing
        subscription = Subscription(self, name, listener)
        self._subscriptions.setdefault(name, []).append(subscription)
        logger.debug("Subscribed to %s (%d listeners)", name, self.listener_count(name))
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subs = self._subscriptions.get(subscription.name)
        if not subs or subscription not in subs:
            return
        subs.remove(subscription)
        if not subs:
            del self._subscriptions[subscription.name]
        logger.debug(
            "Unsubscribed from %s (%d listeners)",
            subscription.name, self.listener_count(subscription.name),
        )

    def publish(self, name: str, payload: Any) -> int:
        """Deliver ``payload`` to every current listener of ``name``.

        Listeners added while this call is delivering do not receive the
        payload, and listeners removed meanwhile are skipped. A listener
        that raises is logged and does not stop delivery.

        Returns:
            Number of listeners the payload was delivered to.
        """
        name = _key(name)
        delivered = 0
        current = self._subscriptions.get(name, [])
        for subscription in list(current):
            if subscription not in current:
                continue
            try:
                subscription.listener(payload)
            except Exception:
                logger.exception("Listener for %s failed", name)
                continue
            delivered += 1
        return delivered

    def listener_count(self, name: str | None = None) -> int:
        if name is None:
            return sum(len(subs) for subs in self._subscriptions.values())
        return len(self._subscriptions.get(_key(name), ()))

    def _find(self, name: str, listener: Listener) -> Subscription | None:
        for subscription in self._subscriptions.get(name, ()):
            if subscription.listener == listener:
                return subscription
        return None


def _key(name: Any) -> str:
    # EventName members and their plain string values address the same channel
    return getattr(name, "value", name)
