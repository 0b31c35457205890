"""Tests for fleetmatch.reader module."""

from datetime import datetime, timedelta, timezone

import pytest

from fleetmatch import DriverNameRecord, SystemName, VehicleEvent
from fleetmatch.reader import (
    detect_encoding,
    normalize_header,
    normalize_whitespace,
    parse_timestamp,
    read_driver_mappings,
    read_vehicle_events,
)


class TestDetectEncoding:
    """Tests for encoding detection."""

    def test_utf16le_bom(self, tmp_path):
        f = tmp_path / 'test.csv'
        f.write_bytes('\ufeffdriver_id'.encode('utf-16-le'))
        assert detect_encoding(f) == 'utf-16-le'

    def test_utf8_fallback(self, tmp_path):
        f = tmp_path / 'test.csv'
        f.write_text('hello', encoding='utf-8')
        assert detect_encoding(f) == 'utf-8-sig'


class TestNormalizeWhitespace:
    """Tests for whitespace normalization."""

    def test_strips_leading_trailing(self):
        assert normalize_whitespace('  hello  ') == 'hello'

    def test_collapses_multiple_spaces(self):
        assert normalize_whitespace('  Juan  Carlos ') == 'Juan Carlos'

    def test_unicode_whitespace(self):
        # U+2006 = Six-Per-Em Space
        assert normalize_whitespace('a\u2006b') == 'a b'

    def test_header(self):
        assert normalize_header(' Driver  Name ') == 'driver_name'
        assert normalize_header('Event-Type') == 'event_type'


class TestParseTimestamp:
    """Tests for multi-format timestamp parsing."""

    def test_iso_with_z(self):
        assert parse_timestamp('2025-03-04T06:15:00Z') == datetime(
            2025, 3, 4, 6, 15, tzinfo=timezone.utc)

    def test_iso_with_offset(self):
        value = parse_timestamp('2025-03-06T08:00:00+08:00')
        assert value.utcoffset() == timedelta(hours=8)

    def test_space_separated(self):
        assert parse_timestamp('2025-03-05 22:10:00') == datetime(2025, 3, 5, 22, 10)

    def test_day_first(self):
        assert parse_timestamp('04/03/2025 07:30') == datetime(2025, 3, 4, 7, 30)

    def test_twelve_hour_clock(self):
        assert parse_timestamp('05/03/2025 11:02:15 PM') == datetime(2025, 3, 5, 23, 2, 15)

    def test_date_only(self):
        assert parse_timestamp('17/11/2024') == datetime(2024, 11, 17)

    def test_blank(self):
        assert parse_timestamp('') is None
        assert parse_timestamp(None) is None

    def test_garbage_raises(self):
        with pytest.raises(ValueError, match='Unrecognized timestamp'):
            parse_timestamp('not a date')


class TestReadDriverMappings:
    """Tests for reading roster name mappings."""

    def test_count(self, driver_mappings):
        # One row without a driver id is skipped
        assert len(driver_mappings) == 9

    def test_record_types(self, driver_mappings):
        r = driver_mappings[0]
        assert isinstance(r, DriverNameRecord)
        assert r.driver_id == 'd1'
        assert r.system_name is SystemName.STANDARD
        assert r.mapped_name == 'Michael Smith'
        assert r.is_active is True

    def test_quoted_comma_name(self, driver_mappings):
        names = {r.mapped_name for r in driver_mappings}
        assert "O'Connor, Sarah" in names

    def test_inactive_driver(self, driver_mappings):
        inactive = [r.driver_id for r in driver_mappings if not r.is_active]
        assert inactive == ['d4']

    def test_missing_status_means_active(self, tmp_path):
        f = tmp_path / 'mappings.csv'
        f.write_text('driver_id,system_name,mapped_name\nd1,LYTX,Mike Smith\n', encoding='utf-8')
        assert read_driver_mappings(f)[0].is_active is True

    def test_tab_delimited_utf16(self, tmp_path):
        f = tmp_path / 'mappings.csv'
        content = '\ufeffDriver ID\tSystem Name\tMapped Name\nd7\tGuardian\tLÖF  Anders\n'
        f.write_bytes(content.encode('utf-16-le'))
        records = read_driver_mappings(f)
        assert records == [DriverNameRecord('d7', SystemName.GUARDIAN, 'LÖF Anders')]

    def test_unknown_system(self, tmp_path):
        f = tmp_path / 'mappings.csv'
        f.write_text('driver_id,system_name,mapped_name\nd1,Samsara,Mike Smith\n', encoding='utf-8')
        assert read_driver_mappings(f)[0].system_name is SystemName.UNKNOWN

    def test_missing_file_raises(self):
        with pytest.raises(FileNotFoundError):
            read_driver_mappings('nonexistent.csv')

    def test_missing_columns_raises(self, tmp_path):
        f = tmp_path / 'bad.csv'
        f.write_text('driver_id,name\nd1,Mike\n', encoding='utf-8')
        with pytest.raises(ValueError, match='Missing columns'):
            read_driver_mappings(f)

    def test_empty_file_raises(self, tmp_path):
        f = tmp_path / 'empty.csv'
        f.write_text('', encoding='utf-8')
        with pytest.raises(ValueError, match='empty'):
            read_driver_mappings(f)


class TestReadVehicleEvents:
    """Tests for reading vehicle events."""

    def test_count(self, vehicle_events):
        # The row with an unparseable timestamp is skipped
        assert len(vehicle_events) == 6
        assert 'e7' not in {e.id for e in vehicle_events}

    def test_event_fields(self, vehicle_events):
        e = vehicle_events[0]
        assert isinstance(e, VehicleEvent)
        assert e.id == 'e1'
        assert e.event_id == 'LX-1001'
        assert e.driver_name == 'Michael Smith'
        assert e.source == 'Lytx'
        assert e.latitude == pytest.approx(-30.7489)
        assert e.longitude == pytest.approx(121.4658)
        assert e.driver_id is None

    def test_blank_cells_become_none(self, vehicle_events):
        e = {ev.id: ev for ev in vehicle_events}['e3']
        assert e.latitude is None
        assert e.longitude is None

    def test_blank_driver_name_kept(self, vehicle_events):
        e = {ev.id: ev for ev in vehicle_events}['e5']
        assert e.driver_name == ''

    def test_existing_driver_id(self, vehicle_events):
        e = {ev.id: ev for ev in vehicle_events}['e6']
        assert e.driver_id == 'd1'

    def test_mixed_date_formats(self, vehicle_events):
        by_id = {ev.id: ev for ev in vehicle_events}
        assert by_id['e2'].occurred_at == datetime(2025, 3, 4, 7, 30)
        assert by_id['e4'].occurred_at == datetime(2025, 3, 5, 23, 2, 15)

    def test_bad_coordinate_row_skipped(self, tmp_path):
        f = tmp_path / 'events.csv'
        f.write_text(
            'id,driver_name,source,event_type,latitude\n'
            'a,Mike Smith,Lytx,Speeding,north\n'
            'b,Mike Smith,Lytx,Speeding,-31.5\n',
            encoding='utf-8',
        )
        assert [e.id for e in read_vehicle_events(f)] == ['b']

    def test_missing_columns_raises(self, tmp_path):
        f = tmp_path / 'bad.csv'
        f.write_text('id,driver\n1,Mike\n', encoding='utf-8')
        with pytest.raises(ValueError, match='Missing columns'):
            read_vehicle_events(f)
