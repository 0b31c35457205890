"""CSV readers for roster name mappings and vehicle events.

Exports come from several portals, so the readers detect encoding and
delimiter, normalize headers and whitespace, accept the date formats seen
in those exports and skip rows they cannot interpret.
"""

import csv
import io
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Optional

from fleetmatch import DriverNameRecord, SystemName, VehicleEvent
from fleetmatch.sources import system_from_source

log = logging.getLogger(__name__)

# Matches any sequence of whitespace (including Unicode whitespace like U+2006)
_WHITESPACE_RE = re.compile(r'\s+')

MAPPING_COLUMNS = {'driver_id', 'system_name', 'mapped_name'}
EVENT_COLUMNS = {'id', 'driver_name', 'source', 'event_type'}

# Tried in order after ISO-8601; day-first as used by the AU portals
TIMESTAMP_FORMATS = (
    '%Y-%m-%d %H:%M:%S',
    '%Y-%m-%d %H:%M',
    '%Y-%m-%d',
    '%d/%m/%Y %H:%M:%S',
    '%d/%m/%Y %H:%M',
    '%d/%m/%Y %I:%M:%S %p',
    '%d/%m/%Y %I:%M %p',
    '%d/%m/%Y',
    '%d-%m-%Y %H:%M:%S',
    '%d-%m-%Y %H:%M',
    '%d-%m-%Y',
)


def detect_encoding(path: Path) -> str:
    """Detect file encoding by checking for BOM bytes.

    Args:
        path: Path to the CSV file.

    Returns:
        Encoding string suitable for open().
    """
    with open(path, 'rb') as f:
        bom = f.read(2)
    if bom == b'\xff\xfe':
        return 'utf-16-le'
    return 'utf-8-sig'


def normalize_whitespace(value: str) -> str:
    """Collapse any whitespace run into a single space and strip the ends."""
    return _WHITESPACE_RE.sub(' ', value).strip()


def normalize_header(value: str) -> str:
    """Turn a header like ``Driver Name`` into ``driver_name``."""
    return normalize_whitespace(value).lower().replace(' ', '_').replace('-', '_')


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a timestamp in any of the supported export formats.

    Args:
        value: Raw cell value.

    Returns:
        Parsed datetime, or None for a blank cell.

    Raises:
        ValueError: If the value matches no supported format.
    """
    if value is None or not value.strip():
        return None
    text = value.strip()
    try:
        return datetime.fromisoformat(text.replace('Z', '+00:00'))
    except ValueError:
        pass
    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(f"Unrecognized timestamp: {text!r}")


def _parse_float(value: Optional[str]) -> Optional[float]:
    if value is None or not value.strip():
        return None
    return float(value)


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    return value if value else None


def _read_rows(path: str | Path, required_cols: set[str]) -> list[tuple[int, dict[str, str]]]:
    """Read a CSV export into cleaned row dicts keyed by normalized header.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is empty or required columns are missing.
    """
    path = Path(path)
    encoding = detect_encoding(path)

    with open(path, 'r', encoding=encoding, newline='') as f:
        content = f.read()

    # Strip BOM if present
    content = content.lstrip('\ufeff')
    first_line = content.split('\n', 1)[0]
    delimiter = '\t' if '\t' in first_line else ','

    reader = csv.DictReader(io.StringIO(content), delimiter=delimiter)
    if reader.fieldnames is None:
        raise ValueError(f"File {path} is empty or has no header row.")
    actual_cols = {normalize_header(c) for c in reader.fieldnames}
    missing = required_cols - actual_cols
    if missing:
        raise ValueError(
            f"Missing columns in {path}: {', '.join(sorted(missing))}"
        )

    rows = []
    for row_num, row in enumerate(reader, start=2):
        cleaned = {normalize_header(k): normalize_whitespace(v or '')
                   for k, v in row.items() if k is not None}
        rows.append((row_num, cleaned))
    return rows


def read_driver_mappings(path: str | Path) -> list[DriverNameRecord]:
    """Read roster name mappings from a CSV export.

    Required columns are ``driver_id``, ``system_name`` and ``mapped_name``;
    ``first_name``, ``last_name`` and ``status`` are optional. A missing
    status counts as active.

    Args:
        path: Path to the CSV file.

    Returns:
        List of DriverNameRecord, inactive drivers included.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If required columns are missing.
    """
    records: list[DriverNameRecord] = []
    for row_num, row in _read_rows(path, MAPPING_COLUMNS):
        if not row.get('driver_id') or not row.get('mapped_name'):
            log.warning("Row %d in %s skipped: driver_id or mapped_name empty", row_num, path)
            continue
        system = system_from_source(row.get('system_name'))
        if system is SystemName.UNKNOWN:
            log.warning("Row %d in %s: unknown system %r", row_num, path, row.get('system_name'))
        status = row.get('status', '')
        records.append(DriverNameRecord(
            driver_id=row['driver_id'],
            system_name=system,
            mapped_name=row['mapped_name'],
            first_name=row.get('first_name', ''),
            last_name=row.get('last_name', ''),
            is_active=not status or status.lower() == 'active',
        ))

    log.info("%d name mappings read from %s", len(records), path)
    return records


def read_vehicle_events(path: str | Path) -> list[VehicleEvent]:
    """Read vehicle events from a CSV export.

    Required columns are ``id``, ``driver_name``, ``source`` and
    ``event_type``. Optional columns fill the remaining event fields; blank
    cells become None. Rows with unparseable timestamps or coordinates are
    skipped.

    Args:
        path: Path to the CSV file.

    Returns:
        List of VehicleEvent.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If required columns are missing.
    """
    events: list[VehicleEvent] = []
    for row_num, row in _read_rows(path, EVENT_COLUMNS):
        if not row.get('id'):
            log.warning("Row %d in %s skipped: id empty", row_num, path)
            continue
        try:
            event = VehicleEvent(
                id=row['id'],
                driver_name=row.get('driver_name', ''),
                source=row.get('source', ''),
                event_type=row.get('event_type', ''),
                occurred_at=parse_timestamp(row.get('occurred_at')),
                vehicle_id=_blank_to_none(row.get('vehicle_id')),
                event_id=_blank_to_none(row.get('event_id')),
                location=_blank_to_none(row.get('location')),
                latitude=_parse_float(row.get('latitude')),
                longitude=_parse_float(row.get('longitude')),
                severity=_blank_to_none(row.get('severity')),
                driver_id=_blank_to_none(row.get('driver_id')),
            )
        except ValueError as exc:
            log.warning("Row %d in %s skipped: %s", row_num, path, exc)
            continue
        events.append(event)

    log.info("%d events read from %s", len(events), path)
    return events
