"""associate – CLI tool to link driver-safety events to roster drivers."""

import argparse
import asyncio
import logging
from pathlib import Path

from fleetmatch.association import AssociationOptions, DriverEventAssociation
from fleetmatch.matching import DEFAULT_MINIMUM_CONFIDENCE
from fleetmatch.reader import read_driver_mappings, read_vehicle_events
from fleetmatch.reporter import (
    print_summary,
    write_csv_report,
    write_html_report,
    write_incidents_csv,
)
from fleetmatch.stores import InMemoryDriverRoster, InMemoryEventStore, InMemoryIncidentStore


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        description='Associate LYTX/Guardian events with drivers by fuzzy name matching.',
        prog='associate.py',
    )
    parser.add_argument(
        '--drivers', required=True, type=Path,
        help='CSV export of driver name mappings',
    )
    parser.add_argument(
        '--events', required=True, type=Path,
        help='CSV export of vehicle events',
    )
    parser.add_argument(
        '--output', required=True, type=Path,
        help='Path for the association report (CSV)',
    )
    parser.add_argument(
        '--html', action='store_true',
        help='Also write an HTML report next to the CSV',
    )
    parser.add_argument(
        '--incidents-output', type=Path,
        help='Path for a CSV of the incidents raised',
    )
    parser.add_argument(
        '--summary', action='store_true',
        help='Print a summary to stdout',
    )
    parser.add_argument(
        '--min-confidence', type=float, default=DEFAULT_MINIMUM_CONFIDENCE,
        help=f'Minimum match confidence (default: {DEFAULT_MINIMUM_CONFIDENCE})',
    )
    parser.add_argument(
        '--require-exact', action='store_true',
        help='Only accept exact same-system name matches',
    )
    parser.add_argument(
        '--no-incidents', action='store_true',
        help='Do not raise incidents for safety events',
    )
    parser.add_argument(
        '--update-existing', action='store_true',
        help='Overwrite drivers already attached to events',
    )
    parser.add_argument(
        '--batch-size', type=int, default=100,
        help='Events processed concurrently per batch (default: 100)',
    )
    parser.add_argument(
        '--unassociated-only', action='store_true',
        help='Only process Guardian/LYTX events without a driver',
    )
    parser.add_argument(
        '-v', '--verbose', action='store_true',
        help='Debug logging',
    )
    return parser


async def run(args: argparse.Namespace) -> None:
    """Load the exports, associate the events and write the reports."""
    roster = InMemoryDriverRoster(read_driver_mappings(args.drivers))
    events = read_vehicle_events(args.events)
    event_store = InMemoryEventStore(events)
    incident_store = InMemoryIncidentStore()
    engine = DriverEventAssociation(roster, event_store, incident_store)

    options = AssociationOptions(
        minimum_confidence=args.min_confidence,
        require_exact_match=args.require_exact,
        create_incidents=not args.no_incidents,
        update_existing_associations=args.update_existing,
        batch_size=args.batch_size,
    )

    if args.unassociated_only:
        batch = await engine.process_unassociated_events(options)
    else:
        batch = await engine.batch_associate(events, options)
    stats = await engine.association_stats()

    write_csv_report(events, batch, args.output)
    if args.html:
        write_html_report(
            events, batch, args.output.with_suffix('.html'), args.events.stem, stats,
        )
    if args.incidents_output:
        write_incidents_csv(incident_store.incidents, args.incidents_output)
    if args.summary:
        print_summary(batch, stats, args.events.name)


def main() -> None:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(levelname)s: %(message)s',
    )

    if not 0.0 <= args.min_confidence <= 1.0:
        parser.error('--min-confidence must be between 0 and 1.')
    if args.batch_size < 1:
        parser.error('--batch-size must be at least 1.')

    asyncio.run(run(args))


if __name__ == '__main__':
    main()
