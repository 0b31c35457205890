"""Collaborator interfaces for the roster, event and incident stores.

The association engine only talks to these protocols. The in-memory
implementations back the command line tool and the tests; a deployment
wires in adapters for its hosted database instead.
"""

import dataclasses
import logging
from datetime import datetime
from typing import Iterable, Optional, Protocol, Sequence

from fleetmatch import AssociationError, DriverNameRecord, Incident, SystemName, VehicleEvent
from fleetmatch.sources import system_from_source

log = logging.getLogger(__name__)


class PersistenceError(AssociationError):
    """A write to an external store failed."""


class DriverRoster(Protocol):
    async def fetch_active_name_records(self) -> list[DriverNameRecord]:
        """All name mappings of drivers whose status is active."""
        ...


class EventStore(Protocol):
    async def fetch_unassociated_events(
        self, sources: Sequence[SystemName], limit: int,
    ) -> list[VehicleEvent]:
        """Events with a driver name but no resolved driver, newest first."""
        ...

    async def update_event_driver(
        self, event_id: str, driver_id: str, updated_at: datetime,
    ) -> None:
        """Attach a resolved driver to an event."""
        ...

    async def count_events(
        self,
        associated: Optional[bool] = None,
        updated_since: Optional[datetime] = None,
    ) -> int:
        """Count events, optionally only (un)associated or recently updated."""
        ...


class IncidentStore(Protocol):
    async def create_incident(self, incident: Incident) -> None:
        ...


class InMemoryDriverRoster:
    """Roster backed by a list of name records."""

    def __init__(self, records: Iterable[DriverNameRecord] = ()) -> None:
        self.records = list(records)
        self.fetch_count = 0

    async def fetch_active_name_records(self) -> list[DriverNameRecord]:
        self.fetch_count += 1
        return [r for r in self.records if r.is_active]


class InMemoryEventStore:
    """Event store keyed by event id."""

    def __init__(self, events: Iterable[VehicleEvent] = ()) -> None:
        self._events: dict[str, VehicleEvent] = {e.id: e for e in events}

    def get(self, event_id: str) -> Optional[VehicleEvent]:
        return self._events.get(event_id)

    def events(self) -> list[VehicleEvent]:
        return list(self._events.values())

    async def fetch_unassociated_events(
        self, sources: Sequence[SystemName], limit: int,
    ) -> list[VehicleEvent]:
        wanted = set(sources)
        matches = [
            e for e in self._events.values()
            if e.driver_name and e.driver_id is None
            and system_from_source(e.source) in wanted
        ]
        matches.sort(
            key=lambda e: e.occurred_at.timestamp() if e.occurred_at else float('-inf'),
            reverse=True,
        )
        return matches[:limit]

    async def update_event_driver(
        self, event_id: str, driver_id: str, updated_at: datetime,
    ) -> None:
        event = self._events.get(event_id)
        if event is None:
            raise PersistenceError(f"Event {event_id} does not exist")
        self._events[event_id] = dataclasses.replace(
            event, driver_id=driver_id, updated_at=updated_at,
        )
        log.debug("Event %s associated with driver %s", event_id, driver_id)

    async def count_events(
        self,
        associated: Optional[bool] = None,
        updated_since: Optional[datetime] = None,
    ) -> int:
        count = 0
        for e in self._events.values():
            if associated is not None and (e.driver_id is not None) != associated:
                continue
            if updated_since is not None and (e.updated_at is None or e.updated_at < updated_since):
                continue
            count += 1
        return count


class InMemoryIncidentStore:
    """Collects created incidents in a list."""

    def __init__(self) -> None:
        self.incidents: list[Incident] = []

    async def create_incident(self, incident: Incident) -> None:
        self.incidents.append(incident)
