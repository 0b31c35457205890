"""Core module for fleetmatch."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class AssociationError(Exception):
    """An event could not be associated."""


class SystemName(str, Enum):
    """External systems a driver name or event can originate from."""

    STANDARD = 'Standard'
    HOURS = 'Hours'
    MYOB = 'MYOB'
    MTDATA = 'MtData'
    SMARTFUEL = 'SmartFuel'
    LYTX = 'LYTX'
    GUARDIAN = 'Guardian'
    UNKNOWN = 'Unknown'


@dataclass(frozen=True)
class DriverNameRecord:
    """One spelling of a driver's name as used by one external system."""

    driver_id: str
    system_name: SystemName
    mapped_name: str
    first_name: str = ''
    last_name: str = ''
    is_active: bool = True


@dataclass
class AlternativeMatch:
    """Runner-up candidate for a name match."""

    driver_id: str
    confidence: float
    matched_name: str
    matched_system: SystemName


@dataclass
class NameMatchResult:
    """Best candidate driver for a free-text name."""

    driver_id: str
    confidence: float     # 0.0 – 1.0
    matched_name: str
    matched_system: SystemName
    alternative_matches: list[AlternativeMatch] = field(default_factory=list)


@dataclass
class VehicleEvent:
    """Safety/telemetry event as reported by a source system."""

    id: str
    driver_name: str
    source: str
    event_type: str
    occurred_at: Optional[datetime] = None
    vehicle_id: Optional[str] = None
    event_id: Optional[str] = None    # Id in the source system
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    severity: Optional[str] = None
    driver_id: Optional[str] = None   # Resolved driver, None until associated
    updated_at: Optional[datetime] = None


@dataclass
class Incident:
    """Follow-up record raised for a safety-relevant event."""

    driver_id: str
    vehicle_id: Optional[str]
    incident_type: str
    source_system: str
    external_incident_id: Optional[str]
    incident_date: Optional[datetime]
    description: str
    severity: str
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    status: str = 'Open'
    training_required: bool = False
