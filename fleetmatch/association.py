"""Association of driver-safety events with roster drivers.

Each event's free-text driver name is resolved against the cached roster,
the chosen driver is written back to the event store and, for
safety-relevant event types, an incident is raised. Failures are isolated
per event: they end up in the event's result, never in the caller.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Sequence

from fleetmatch import AssociationError, Incident, SystemName, VehicleEvent
from fleetmatch.cache import DriverRecordCache
from fleetmatch.matching import DEFAULT_MINIMUM_CONFIDENCE, find_best_match
from fleetmatch.sources import (
    incident_severity_for,
    incident_source_for,
    incident_type_for,
    is_safety_event,
    system_from_source,
)
from fleetmatch.stores import DriverRoster, EventStore, IncidentStore, PersistenceError

log = logging.getLogger(__name__)

HIGH_CONFIDENCE = 0.9
MEDIUM_CONFIDENCE = 0.7
DEFAULT_BATCH_SIZE = 100
DEFAULT_SWEEP_LIMIT = 1000
DEFAULT_SWEEP_SOURCES = (SystemName.GUARDIAN, SystemName.LYTX)
RECENT_WINDOW = timedelta(hours=24)


class NoDriverNameError(AssociationError):
    def __init__(self) -> None:
        super().__init__('No driver name provided in event')


class NoReferenceDataError(AssociationError):
    def __init__(self) -> None:
        super().__init__('No driver records available for matching')


@dataclass
class AssociationOptions:
    """Tuning knobs for association runs."""

    minimum_confidence: float = DEFAULT_MINIMUM_CONFIDENCE
    require_exact_match: bool = False
    create_incidents: bool = True
    update_existing_associations: bool = False
    batch_size: int = DEFAULT_BATCH_SIZE


@dataclass
class AlternativeDriver:
    """Runner-up driver reported alongside an association."""

    driver_id: str
    confidence: float
    matched_name: str


@dataclass
class EventAssociationResult:
    """Outcome of associating one event."""

    event_id: str
    driver_id: Optional[str] = None
    confidence: float = 0.0
    matched_name: Optional[str] = None
    matched_system: Optional[SystemName] = None
    association_method: str = 'unmatched'  # exact_match, fuzzy_match, manual_override, unmatched
    alternative_matches: list[AlternativeDriver] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class BatchAssociationResult:
    """Per-event results plus counters of a batch run.

    Every event lands in exactly one of ``successful``, ``failed`` or
    ``unmatched``; successful events are further split by confidence tier.
    """

    total_events: int = 0
    successful: int = 0
    failed: int = 0
    high_confidence: int = 0
    medium_confidence: int = 0
    low_confidence: int = 0
    unmatched: int = 0
    results: list[EventAssociationResult] = field(default_factory=list)
    errors: list[tuple[str, str]] = field(default_factory=list)  # (event id, error)

    def record(self, result: EventAssociationResult) -> None:
        """Add one event's result to the counters."""
        self.results.append(result)
        if result.error:
            self.failed += 1
            self.errors.append((result.event_id, result.error))
        elif result.driver_id:
            self.successful += 1
            if result.confidence >= HIGH_CONFIDENCE:
                self.high_confidence += 1
            elif result.confidence >= MEDIUM_CONFIDENCE:
                self.medium_confidence += 1
            else:
                self.low_confidence += 1
        else:
            self.unmatched += 1


@dataclass
class AssociationStats:
    """Aggregate association figures for operational dashboards."""

    total_events: int
    associated_events: int
    unassociated_events: int
    association_rate: float   # Percent
    recent_associations: int  # Associated within the last 24 hours


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DriverEventAssociation:
    """Resolves event driver names to roster drivers.

    Args:
        roster: Source of active driver name records.
        event_store: Store the resolved driver ids are written to.
        incident_store: Store incidents are created in.
        cache: Roster snapshot cache; one is built around ``roster`` if omitted.
        now: Wall clock used for ``updated_at`` stamps and statistics.
    """

    def __init__(
        self,
        roster: DriverRoster,
        event_store: EventStore,
        incident_store: IncidentStore,
        cache: Optional[DriverRecordCache] = None,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.roster = roster
        self.event_store = event_store
        self.incident_store = incident_store
        self.cache = cache or DriverRecordCache(roster.fetch_active_name_records)
        self._now = now

    async def associate_event(
        self,
        event: VehicleEvent,
        options: Optional[AssociationOptions] = None,
    ) -> EventAssociationResult:
        """Associate a single event with a driver.

        No match above the threshold leaves the result ``unmatched`` without
        an error. Any failure is reported in ``result.error``; a failed write
        keeps the match decision in the result.

        The driver is written back before the incident is created. If the
        incident insert fails, the event is already associated and is no
        longer picked up by ``process_unassociated_events``; callers must
        raise the incident for results whose ``driver_id`` and ``error`` are
        both set, e.g. with ``build_incident``.
        """
        options = options or AssociationOptions()
        result = EventAssociationResult(event_id=event.id)
        try:
            await self._associate(event, options, result)
        except AssociationError as exc:
            log.warning("Event %s not associated: %s", event.id, exc)
            result.error = str(exc)
        except Exception as exc:
            log.exception("Unexpected error associating event %s", event.id)
            result.error = str(exc) or type(exc).__name__
        return result

    async def _associate(
        self,
        event: VehicleEvent,
        options: AssociationOptions,
        result: EventAssociationResult,
    ) -> None:
        if not event.driver_name or not event.driver_name.strip():
            raise NoDriverNameError()

        records = await self.cache.get()
        if not records:
            raise NoReferenceDataError()

        if options.require_exact_match:
            system = system_from_source(event.source)
            wanted = event.driver_name.strip().lower()
            exact = next(
                (r for r in records
                 if r.system_name == system and r.mapped_name.strip().lower() == wanted),
                None,
            )
            if exact is None:
                return
            result.driver_id = exact.driver_id
            result.confidence = 1.0
            result.matched_name = exact.mapped_name
            result.matched_system = exact.system_name
            result.association_method = 'exact_match'
        else:
            match = find_best_match(event.driver_name, records, options.minimum_confidence)
            if match is None:
                return
            result.driver_id = match.driver_id
            result.confidence = match.confidence
            result.matched_name = match.matched_name
            result.matched_system = match.matched_system
            result.association_method = (
                'exact_match' if match.confidence >= HIGH_CONFIDENCE else 'fuzzy_match'
            )
            result.alternative_matches = [
                AlternativeDriver(alt.driver_id, alt.confidence, alt.matched_name)
                for alt in match.alternative_matches
            ]

        # Leave existing associations alone unless asked to overwrite them
        if options.update_existing_associations or event.driver_id is None:
            await self._write_association(event.id, result.driver_id)

        if options.create_incidents and is_safety_event(event.event_type):
            await self._create_incident(event, result.driver_id)

    async def _write_association(self, event_id: str, driver_id: str) -> None:
        try:
            await self.event_store.update_event_driver(event_id, driver_id, self._now())
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError(
                f"Failed to update driver association for event {event_id}: {exc}"
            ) from exc

    async def _create_incident(self, event: VehicleEvent, driver_id: str) -> None:
        incident = build_incident(event, driver_id)
        try:
            await self.incident_store.create_incident(incident)
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError(
                f"Failed to create incident for event {event.id}: {exc}"
            ) from exc
        log.info(
            "Incident '%s' raised for driver %s from event %s",
            incident.incident_type, driver_id, event.id,
        )

    async def batch_associate(
        self,
        events: Sequence[VehicleEvent],
        options: Optional[AssociationOptions] = None,
    ) -> BatchAssociationResult:
        """Associate many events, ``batch_size`` at a time.

        Events within a batch are processed concurrently; batches run one
        after another. Results are returned in input order.

        Raises:
            ValueError: If the batch size is not positive.
        """
        options = options or AssociationOptions()
        if options.batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {options.batch_size}")

        batch = BatchAssociationResult(total_events=len(events))
        for start in range(0, len(events), options.batch_size):
            chunk = events[start:start + options.batch_size]
            results = await asyncio.gather(
                *(self.associate_event(event, options) for event in chunk)
            )
            for result in results:
                batch.record(result)

        log.info(
            "Association finished: %d events, %d associated, %d unmatched, %d failed",
            batch.total_events, batch.successful, batch.unmatched, batch.failed,
        )
        return batch

    async def process_unassociated_events(
        self,
        options: Optional[AssociationOptions] = None,
        sources: Sequence[SystemName] = DEFAULT_SWEEP_SOURCES,
        limit: int = DEFAULT_SWEEP_LIMIT,
    ) -> BatchAssociationResult:
        """Associate stored events that have a driver name but no driver."""
        events = await self.event_store.fetch_unassociated_events(sources, limit)
        log.info("%d unassociated events fetched", len(events))
        return await self.batch_associate(events, options)

    async def manual_association(self, event_id: str, driver_id: str) -> EventAssociationResult:
        """Link an event to a driver chosen by a person, bypassing matching."""
        try:
            await self._write_association(event_id, driver_id)
        except PersistenceError as exc:
            log.warning("Manual association of event %s failed: %s", event_id, exc)
            return EventAssociationResult(event_id=event_id, error=str(exc))
        return EventAssociationResult(
            event_id=event_id,
            driver_id=driver_id,
            confidence=1.0,
            association_method='manual_override',
        )

    async def association_stats(self) -> AssociationStats:
        """Aggregate association counts across the event store."""
        since = self._now() - RECENT_WINDOW
        total, associated, recent = await asyncio.gather(
            self.event_store.count_events(),
            self.event_store.count_events(associated=True),
            self.event_store.count_events(associated=True, updated_since=since),
        )
        rate = associated / total * 100 if total else 0.0
        return AssociationStats(
            total_events=total,
            associated_events=associated,
            unassociated_events=total - associated,
            association_rate=rate,
            recent_associations=recent,
        )

    def clear_cache(self) -> None:
        """Drop the roster snapshot so the next association refetches it."""
        self.cache.clear()


def build_incident(event: VehicleEvent, driver_id: str) -> Incident:
    """Derive an incident record from a safety-relevant event."""
    system = system_from_source(event.source)
    return Incident(
        driver_id=driver_id,
        vehicle_id=event.vehicle_id,
        incident_type=incident_type_for(event.event_type),
        source_system=incident_source_for(system),
        external_incident_id=event.event_id,
        incident_date=event.occurred_at,
        description=f"{event.event_type} event detected by {event.source}",
        severity=incident_severity_for(event.severity),
        location=event.location,
        latitude=event.latitude,
        longitude=event.longitude,
    )
