"""In-memory registry of provisioning domains.

The registry is the single source of truth for which PvDs exist, their
latest attributes, and the most recent full list received from pvdd.
List and attribute updates are published on the Event Bus; deletions
are not (browsers learn about them from the next list).
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from pvdbridge.domain.models import EventName, PvdRecord, RegistrySnapshot
from pvdbridge.events.bus import EventBus

logger = logging.getLogger(__name__)


class PvdRegistry:
    """Mapping of PvD id to PvdRecord plus the current PvD list."""

    def __init__(self, bus: EventBus) -> None:
        self._bus = bus
        self._records: dict[str, PvdRecord] = {}
        self._current_list: list[str] = []

    def __contains__(self, pvd_id: object) -> bool:
        return pvd_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    @property
    def current_list(self) -> list[str]:
        return list(self._current_list)

    def get(self, pvd_id: str) -> PvdRecord | None:
        return self._records.get(pvd_id)

    def register(self, pvd_id: str) -> bool:
        """Create an empty record for ``pvd_id``.

        Returns:
            True if the PvD was new, False if it was already registered.
        """
        if pvd_id in self._records:
            return False
        self._records[pvd_id] = PvdRecord(id=pvd_id)
        logger.debug("Registered PvD %s", pvd_id)
        return True

    def unregister(self, pvd_id: str) -> bool:
        """Drop ``pvd_id``. Returns False if it was not registered."""
        if self._records.pop(pvd_id, None) is None:
            return False
        logger.debug("Unregistered PvD %s", pvd_id)
        return True

    def set_attributes(self, pvd_id: str, attributes: Any) -> bool:
        """Replace the attributes of a registered PvD and publish them.

        Unknown ids are ignored: only a list message creates records.
        """
        if pvd_id not in self._records:
            logger.debug("Ignoring attributes for unknown PvD %s", pvd_id)
            return False
        record = PvdRecord(id=pvd_id, attributes=attributes)
        self._records[pvd_id] = record
        self._bus.publish(EventName.PVD_ATTRIBUTES, record)
        return True

    def replace_list(self, pvd_ids: Iterable[str]) -> None:
        """Replace the current list and publish it, even if unchanged."""
        self._current_list = list(pvd_ids)
        self._bus.publish(EventName.PVD_LIST, list(self._current_list))

    def snapshot(self) -> RegistrySnapshot:
        return RegistrySnapshot(
            records=tuple(self._records.values()),
            current_list=tuple(self._current_list),
        )
