"""Report generation for association results (CSV, HTML, summary)."""

import csv
import logging
from pathlib import Path
from typing import Optional, Sequence

from jinja2 import Environment, FileSystemLoader

from fleetmatch import Incident, VehicleEvent
from fleetmatch.association import AssociationStats, BatchAssociationResult, EventAssociationResult

log = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent / 'templates'

CSV_COLUMNS = [
    'Event_ID',
    'External_ID',
    'Source',
    'Event_Type',
    'Occurred_At',
    'Vehicle_ID',
    'Driver_Name',
    'Driver_ID',
    'Matched_Name',
    'Matched_System',
    'Confidence',
    'Method',
    'Alternatives',
    'Error',
]

INCIDENT_COLUMNS = [
    'Driver_ID',
    'Vehicle_ID',
    'Incident_Type',
    'Source_System',
    'External_Incident_ID',
    'Incident_Date',
    'Location',
    'Latitude',
    'Longitude',
    'Description',
    'Severity',
    'Status',
]


def _format_datetime(value) -> str:
    return value.isoformat(sep=' ') if value else ''


def _result_to_row(event: VehicleEvent, result: EventAssociationResult) -> dict:
    """Convert an event and its association result to a flat dict."""
    alternatives = '; '.join(
        f'{alt.matched_name} ({alt.driver_id}, {alt.confidence:.2f})'
        for alt in result.alternative_matches
    )
    return {
        'Event_ID': event.id,
        'External_ID': event.event_id or '',
        'Source': event.source,
        'Event_Type': event.event_type,
        'Occurred_At': _format_datetime(event.occurred_at),
        'Vehicle_ID': event.vehicle_id or '',
        'Driver_Name': event.driver_name,
        'Driver_ID': result.driver_id or '',
        'Matched_Name': result.matched_name or '',
        'Matched_System': result.matched_system.value if result.matched_system else '',
        'Confidence': f'{result.confidence:.4f}',
        'Method': result.association_method,
        'Alternatives': alternatives,
        'Error': result.error or '',
        # Row class for highlighting in HTML
        '_status': _status(result),
    }


def _status(result: EventAssociationResult) -> str:
    if result.error:
        return 'failed'
    if result.driver_id:
        return result.association_method
    return 'unmatched'


def _rows(events: Sequence[VehicleEvent], batch: BatchAssociationResult) -> list[dict]:
    by_id = {e.id: e for e in events}
    return [
        _result_to_row(by_id[r.event_id], r)
        for r in batch.results if r.event_id in by_id
    ]


def write_csv_report(
    events: Sequence[VehicleEvent],
    batch: BatchAssociationResult,
    output_path: Path,
) -> None:
    """Write association results as a CSV report.

    Uses UTF-8 with BOM (utf-8-sig) and semicolon delimiter so the file
    opens cleanly in Excel.

    Args:
        events: The events that were associated.
        batch: Batch result for those events.
        output_path: Path for the output CSV file.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    rows = _rows(events, batch)
    with open(output_path, 'w', newline='', encoding='utf-8-sig') as f:
        writer = csv.DictWriter(
            f, fieldnames=CSV_COLUMNS, delimiter=';', extrasaction='ignore',
        )
        writer.writeheader()
        writer.writerows(rows)

    log.info("CSV report written: %s (%d rows)", output_path, len(rows))


def write_incidents_csv(incidents: Sequence[Incident], output_path: Path) -> None:
    """Write created incidents as a CSV file."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', newline='', encoding='utf-8-sig') as f:
        writer = csv.DictWriter(f, fieldnames=INCIDENT_COLUMNS, delimiter=';')
        writer.writeheader()
        for incident in incidents:
            writer.writerow({
                'Driver_ID': incident.driver_id,
                'Vehicle_ID': incident.vehicle_id or '',
                'Incident_Type': incident.incident_type,
                'Source_System': incident.source_system,
                'External_Incident_ID': incident.external_incident_id or '',
                'Incident_Date': _format_datetime(incident.incident_date),
                'Location': incident.location or '',
                'Latitude': '' if incident.latitude is None else incident.latitude,
                'Longitude': '' if incident.longitude is None else incident.longitude,
                'Description': incident.description,
                'Severity': incident.severity,
                'Status': incident.status,
            })

    log.info("Incident CSV written: %s (%d incidents)", output_path, len(incidents))


def write_html_report(
    events: Sequence[VehicleEvent],
    batch: BatchAssociationResult,
    output_path: Path,
    title: str = '',
    stats: Optional[AssociationStats] = None,
) -> None:
    """Write association results as an HTML report using Jinja2.

    Args:
        events: The events that were associated.
        batch: Batch result for those events.
        output_path: Path for the output HTML file.
        title: Report title, usually the event file name.
        stats: Store-wide association statistics to show alongside.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=True,
    )
    template = env.get_template('report.html')

    html = template.render(
        title=title,
        rows=_rows(events, batch),
        counts=compute_counts(batch),
        stats=stats,
        columns=CSV_COLUMNS,
    )

    output_path.write_text(html, encoding='utf-8')
    log.info("HTML report written: %s", output_path)


def compute_counts(batch: BatchAssociationResult) -> dict:
    """Summary counters of a batch run, including method breakdown."""
    methods = [r.association_method for r in batch.results if not r.error]
    return {
        'total': batch.total_events,
        'successful': batch.successful,
        'failed': batch.failed,
        'unmatched': batch.unmatched,
        'high': batch.high_confidence,
        'medium': batch.medium_confidence,
        'low': batch.low_confidence,
        'exact': methods.count('exact_match'),
        'fuzzy': methods.count('fuzzy_match'),
    }


def print_summary(
    batch: BatchAssociationResult,
    stats: Optional[AssociationStats] = None,
    title: str = '',
) -> None:
    """Print a summary of an association run to stdout."""
    counts = compute_counts(batch)

    print(f"\n=== Association report: {title} ===")
    print(f"Events processed:          {counts['total']:>5}")
    print(f"Associated:                {counts['successful']:>5}")
    print(f"  - exact matches:         {counts['exact']:>5}")
    print(f"  - fuzzy matches:         {counts['fuzzy']:>5}")
    print(f"  - high confidence:       {counts['high']:>5}")
    print(f"  - medium confidence:     {counts['medium']:>5}")
    print(f"  - low confidence:        {counts['low']:>5}")
    print(f"Unmatched:                 {counts['unmatched']:>5}")
    print(f"Failed:                    {counts['failed']:>5}")
    if stats is not None:
        print("---")
        print(f"Events in store:           {stats.total_events:>5}")
        print(f"Associated in store:       {stats.associated_events:>5}")
        print(f"Association rate:          {stats.association_rate:>5.1f}%")
        print(f"Associated last 24h:       {stats.recent_associations:>5}")
    for event_id, error in batch.errors:
        print(f"! {event_id}: {error}")
    print()
