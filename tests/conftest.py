"""Shared test fixtures."""

from pathlib import Path

import pytest

from fleetmatch.reader import read_driver_mappings, read_vehicle_events


DATA_DIR = Path(__file__).resolve().parent.parent / 'data'


@pytest.fixture(scope='session')
def data_dir() -> Path:
    """Path to the data directory."""
    return DATA_DIR


@pytest.fixture(scope='session')
def driver_mappings():
    """All name mappings from driver_name_mappings.csv."""
    return read_driver_mappings(DATA_DIR / 'driver_name_mappings.csv')


@pytest.fixture
def vehicle_events():
    """All events from vehicle_events.csv (fresh per test, events are mutable)."""
    return read_vehicle_events(DATA_DIR / 'vehicle_events.csv')
