"""Source-system resolution and incident vocabulary mapping.

The tables below mirror the controlled vocabularies of the incident table
and are plain configuration data.
"""

import re
from typing import Optional

from fleetmatch import SystemName

_SEPARATOR_RE = re.compile(r'[\s_\-./]+')

# Folded source tag -> system
SOURCE_ALIASES: dict[str, SystemName] = {
    'standard': SystemName.STANDARD,
    'hours': SystemName.HOURS,
    'myob': SystemName.MYOB,
    'mtdata': SystemName.MTDATA,
    'smartfuel': SystemName.SMARTFUEL,
    'lytx': SystemName.LYTX,
    'drivecam': SystemName.LYTX,
    'guardian': SystemName.GUARDIAN,
}

SAFETY_EVENT_TYPES = (
    'harsh_acceleration',
    'harsh_braking',
    'harsh_cornering',
    'speeding',
    'following_too_close',
    'safety_violation',
    'fuel_theft',
    'unauthorized_access',
)

# First matching keyword wins
INCIDENT_TYPE_RULES: list[tuple[tuple[str, ...], str]] = [
    (('safety', 'violation'), 'Safety Event'),
    (('speeding', 'traffic'), 'Traffic Violation'),
    (('damage', 'collision'), 'Equipment Damage'),
    (('policy',), 'Policy Violation'),
]
DEFAULT_INCIDENT_TYPE = 'Safety Event'

INCIDENT_SOURCES: dict[SystemName, str] = {
    SystemName.LYTX: 'LYTX',
    SystemName.GUARDIAN: 'Guardian',
}
DEFAULT_INCIDENT_SOURCE = 'Manual'

SEVERITIES = ('Low', 'Medium', 'High', 'Critical')
DEFAULT_SEVERITY = 'Medium'


def _fold(value: str) -> str:
    return _SEPARATOR_RE.sub('_', value.strip().lower()).strip('_')


def system_from_source(source: Optional[str]) -> SystemName:
    """Resolve a free-text source tag to a system.

    Case, whitespace and separators are ignored (``Mt Data``, ``MTDATA`` and
    ``mt-data`` all resolve to MtData). Unrecognized tags resolve to
    ``SystemName.UNKNOWN``.
    """
    if not source:
        return SystemName.UNKNOWN
    return SOURCE_ALIASES.get(_fold(source).replace('_', ''), SystemName.UNKNOWN)


def is_safety_event(event_type: Optional[str]) -> bool:
    """Check whether an event type warrants an incident record."""
    if not event_type:
        return False
    folded = _fold(event_type)
    return any(kind in folded for kind in SAFETY_EVENT_TYPES)


def incident_type_for(event_type: Optional[str]) -> str:
    """Map an event type onto the incident type vocabulary."""
    lowered = (event_type or '').lower()
    for keywords, incident_type in INCIDENT_TYPE_RULES:
        if any(k in lowered for k in keywords):
            return incident_type
    return DEFAULT_INCIDENT_TYPE


def incident_source_for(system: SystemName) -> str:
    """Map a source system onto the incident source vocabulary."""
    return INCIDENT_SOURCES.get(system, DEFAULT_INCIDENT_SOURCE)


def incident_severity_for(severity: Optional[str]) -> str:
    """Map an event severity onto the incident severity vocabulary."""
    if not severity:
        return DEFAULT_SEVERITY
    lowered = severity.strip().lower()
    for value in SEVERITIES:
        if value.lower() == lowered:
            return value
    return DEFAULT_SEVERITY
