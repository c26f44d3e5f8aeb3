"""
Unit tests for tabular ingestion.

Tests:
1. Delimited text parsing (trimming, padding, blank lines)
2. Station construction (numbering, ids, NaN filtering, custom stations)
3. Incident categorisation and date filtering

Run with: python -m pytest station_planner/_tests/test_ingest.py -v
"""

import pytest

from station_planner.ingest import (
    build_stations,
    categorize_incident_type,
    create_custom_station,
    extract_station_number,
    filter_incidents_by_date_range,
    format_display_name,
    parse_delimited_text,
    process_incidents,
    serialize_records,
)
from station_planner.models import (
    ApparatusType,
    IncidentCategory,
    StationSource,
)


# ═══════════════════════════════════════════════════════════════════════════
# TABULAR PARSER
# ═══════════════════════════════════════════════════════════════════════════


class TestParseDelimitedText:
    """Test header-keyed parsing of station/incident text."""

    def test_values_and_headers_are_trimmed(self):
        """Whitespace around headers and values is removed."""
        records = parse_delimited_text(" id , name \n 1 , Alpha \n")
        assert records == [{"id": "1", "name": "Alpha"}]

    def test_short_rows_are_padded(self):
        """Missing trailing values become empty strings."""
        records = parse_delimited_text("a,b,c\n1,2\n")
        assert records == [{"a": "1", "b": "2", "c": ""}]

    def test_header_only_gives_no_records(self):
        """A file with only a header row has no records."""
        assert parse_delimited_text("a,b,c\n") == []
        assert parse_delimited_text("") == []

    def test_blank_lines_are_skipped(self):
        """Blank lines between rows do not produce records."""
        records = parse_delimited_text("a,b\n1,2\n\n3,4\n")
        assert [r["a"] for r in records] == ["1", "3"]

    def test_round_trip_on_clean_data(self):
        """Serialising then parsing clean records gives them back."""
        records = [{"id": "1", "lat": "10.0"}, {"id": "2", "lat": "11.5"}]
        assert parse_delimited_text(serialize_records(records)) == records

    def test_alternate_delimiter(self):
        """A non-comma delimiter is honoured."""
        records = parse_delimited_text("a;b\n1;2", delimiter=";")
        assert records == [{"a": "1", "b": "2"}]


# ═══════════════════════════════════════════════════════════════════════════
# STATION FACTORY
# ═══════════════════════════════════════════════════════════════════════════


class TestStationNumbering:
    """Test station number extraction and display names."""

    def test_first_digit_run(self):
        assert extract_station_number("Stn 01") == 1
        assert extract_station_number("Station 12 North 3") == 12
        assert extract_station_number("Headquarters") is None

    def test_display_name_is_zero_padded(self):
        assert format_display_name(1) == "Station 01"
        assert format_display_name(23) == "Station 23"
        assert format_display_name(105) == "Station 105"


class TestBuildStations:
    """Test station construction from parsed rows."""

    def test_rows_with_missing_coordinates_are_dropped(self, stations_csv):
        """Exactly the row without a latitude is excluded."""
        batch = build_stations(parse_delimited_text(stations_csv))
        assert [s.id for s in batch.stations] == ["S1", "S2"]
        assert batch.dropped == 1
        assert "S3" not in batch.counts

    def test_apparatus_synthesized_from_counts(self, stations_csv):
        """Engine_ID=2, Truck=1 gives two engines and one ladder."""
        batch = build_stations(parse_delimited_text(stations_csv))
        s1 = batch.stations[0]
        types = [a.type for a in s1.apparatus]
        assert types.count(ApparatusType.ENGINE) == 2
        assert types.count(ApparatusType.LADDER) == 1
        assert [a.name for a in s1.apparatus] == ["Engine 01-1", "Engine 01-2", "Truck 01"]
        assert batch.counts["S1"]["Engine_ID"] == 2
        assert batch.counts["S1"]["Truck"] == 1
        assert batch.counts["S1"]["Medic"] == 0

    def test_defaults_without_optional_columns(self):
        """Missing id and address columns fall back to generated values."""
        records = parse_delimited_text("Facility Name,lat,lon\nFirehouse,1.0,2.0\n")
        batch = build_stations(records)
        station = batch.stations[0]
        assert station.id == "station-0"
        assert station.station_number == 1
        assert station.address == "Address not available"
        assert [a.id for a in station.apparatus] == ["engine-station-0", "ambulance-station-0"]

    def test_non_numeric_coordinates_are_dropped(self):
        records = parse_delimited_text("id,lat,lon\na,abc,2\nb,1,2\n")
        batch = build_stations(records)
        assert [s.id for s in batch.stations] == ["b"]

    def test_max_stations_applied_before_filtering(self):
        """Only the first max_stations rows are considered."""
        lines = ["id,lat,lon"] + [f"s{i},1.0,2.0" for i in range(5)]
        batch = build_stations(parse_delimited_text("\n".join(lines)), max_stations=3)
        assert len(batch.stations) == 3

    def test_optimized_stations(self):
        """Optimized rows get offset numbers, fixed address and defaults."""
        records = parse_delimited_text("lat,lon\n1.0,2.0\n3.0,4.0\n")
        batch = build_stations(records, source=StationSource.OPTIMIZED)
        first, second = batch.stations
        assert first.id == "new-station-0"
        assert first.station_number == 40
        assert second.station_number == 41
        assert first.address == "New Optimized Station"
        assert first.source is StationSource.OPTIMIZED
        assert batch.counts[first.id]["Engine_ID"] == 1
        assert batch.counts[first.id]["Medic"] == 1


class TestCustomStation:
    """Test map-click station creation."""

    def test_numbered_after_existing(self, stations_csv):
        existing = build_stations(parse_delimited_text(stations_csv)).stations
        station = create_custom_station(10.123456789, 20.5, existing, "custom-station-1")
        assert station.name == "Station 3"
        assert station.display_name == "Station 03"
        assert station.service_zone == "Custom"
        assert station.address == "10.123457, 20.500000"
        assert station.source is StationSource.CUSTOM

    def test_first_custom_station(self):
        station = create_custom_station(0.0, 0.0, [], "custom-station-1")
        assert station.station_number == 1


# ═══════════════════════════════════════════════════════════════════════════
# INCIDENTS
# ═══════════════════════════════════════════════════════════════════════════

INCIDENTS_CSV = (
    "incident_id,incident_type,lat,lon,datetime,category\n"
    "i1,EMS & Rescue,1.0,2.0,2024-01-10 08:00:00,Medical\n"
    "i2,Good Intent Call,1.0,2.0,2024-01-31 23:30:00,Other\n"
    "i3,Structure Fire,1.0,2.0,2024-02-01 00:00:01,Fire\n"
    "i4,Structure Fire,1.0,2.0,,Fire\n"
    "i5,Vehicle Fire,,2.0,2024-01-15,Fire\n"
)


class TestIncidents:
    """Test incident typing and date filtering."""

    def test_categories(self):
        assert categorize_incident_type("EMS & Rescue") is IncidentCategory.EMS
        assert categorize_incident_type("Good Intent Call") is IncidentCategory.WARNING
        assert categorize_incident_type("Structure Fire") is IncidentCategory.FIRE
        assert categorize_incident_type("") is IncidentCategory.FIRE

    def test_rows_without_coordinates_are_dropped(self):
        incidents = process_incidents(parse_delimited_text(INCIDENTS_CSV))
        assert [i.id for i in incidents] == ["i1", "i2", "i3", "i4"]

    def test_end_date_includes_whole_day(self):
        """An incident late on the end date is kept; the next day is not."""
        incidents = process_incidents(parse_delimited_text(INCIDENTS_CSV))
        kept = filter_incidents_by_date_range(incidents, "2024-01-01", "2024-01-31")
        assert [i.id for i in kept] == ["i1", "i2", "i4"]

    def test_start_date(self):
        incidents = process_incidents(parse_delimited_text(INCIDENTS_CSV))
        kept = filter_incidents_by_date_range(incidents, start="2024-01-20")
        assert [i.id for i in kept] == ["i2", "i3", "i4"]

    def test_no_range_keeps_everything(self):
        incidents = process_incidents(parse_delimited_text(INCIDENTS_CSV))
        assert filter_incidents_by_date_range(incidents) == incidents
