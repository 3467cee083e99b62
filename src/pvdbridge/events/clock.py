"""Periodic host-time publisher.

Browsers display the bridge host's clock; every tick publishes the
current UTC time as a hostDate event for whoever is subscribed.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable

from pvdbridge.domain.models import EventName
from pvdbridge.events.bus import EventBus

logger = logging.getLogger(__name__)

DEFAULT_CLOCK_INTERVAL = 5.0


def iso_timestamp(moment: datetime | None = None) -> str:
    """Format ``moment`` as ISO-8601 UTC with milliseconds, e.g. 2017-05-01T12:00:00.000Z."""
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class HostClock:
    """Publishes hostDate on a fixed interval for the lifetime of the process."""

    def __init__(
        self,
        bus: EventBus,
        interval: float = DEFAULT_CLOCK_INTERVAL,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._bus = bus
        self._interval = interval
        self._sleep = sleep
        self._now = now or (lambda: datetime.now(timezone.utc))

    @property
    def interval(self) -> float:
        return self._interval

    def tick(self) -> str:
        """Publish the current host time once and return it."""
        stamp = iso_timestamp(self._now())
        self._bus.publish(EventName.HOST_DATE, stamp)
        return stamp

    async def run(self) -> None:
        """Tick immediately, then every ``interval`` seconds until cancelled."""
        logger.debug("Host clock started (interval=%.1fs)", self._interval)
        while True:
            self.tick()
            await self._sleep(self._interval)
