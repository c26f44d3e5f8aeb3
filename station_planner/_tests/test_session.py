"""
End-to-end tests for the planning session.

Tests:
1. Load station CSV + zones, drag a station into a zone
2. Custom stations, deletion and apparatus edits flowing into the payload
3. Dispatch policy switching and incident loading
4. Optimized stations merged onto existing ones; superseded loads dropped
5. Coordinates stay inside WGS84 bounds after edits

Run with: python -m pytest station_planner/_tests/test_session.py -v
"""

import json
import math

import pytest

from conftest import StubResponse, StubSession
from station_planner.config_types import AppConfig, FilePathsConfig
from station_planner.data_loader import DataLoader
from station_planner.models import ApparatusType
from station_planner.session import PlannerSession


@pytest.fixture
def data_dir(tmp_path, stations_csv, zone_a_collection):
    (tmp_path / "stations.csv").write_text(stations_csv, encoding="utf-8")
    (tmp_path / "zones.geojson").write_text(json.dumps(zone_a_collection), encoding="utf-8")
    (tmp_path / "incidents.csv").write_text(
        "incident_id,incident_type,lat,lon,datetime,category\n"
        "i1,EMS & Rescue,10.0,20.0,2024-03-01 10:00:00,Medical\n"
        "i2,Structure Fire,10.1,20.1,2024-04-01 10:00:00,Fire\n",
        encoding="utf-8",
    )
    return tmp_path


@pytest.fixture
def session(data_dir, fake_clock):
    config = AppConfig(file_paths=FilePathsConfig(data_dir=str(data_dir)))
    session = PlannerSession(config, clock=fake_clock)
    assert session.load_stations("stations.csv")
    assert session.load_zones("zones.geojson")
    return session


class TestEndToEnd:
    """CSV row S1 plus ZoneA around (10, 20)."""

    def test_loaded_station(self, session):
        station = session.registry.get("S1")
        assert station.station_number == 1
        assert station.display_name == "Station 01"
        assert station.service_zone is None

        types = [a.type for a in station.apparatus]
        assert types.count(ApparatusType.ENGINE) == 2
        assert types.count(ApparatusType.LADDER) == 1

        counts = session.ledger.counts("S1")
        assert counts["Engine_ID"] == 2
        assert counts["Truck"] == 1
        assert sum(counts.values()) == 3

    def test_drag_into_zone_under_zone_policy(self, session):
        session.set_dispatch_policy("firebeats")
        marker_id = session.markers.marker_for_station("S1").marker_id
        session.markers.drag_start(marker_id)
        result = session.markers.drag_end(marker_id, 10.0, 20.0)

        assert result.zone_changed
        assert session.registry.get("S1").service_zone == "ZoneA"

    def test_drag_under_nearest_policy_keeps_zone(self, session):
        marker_id = session.markers.marker_for_station("S1").marker_id
        session.markers.drag_start(marker_id)
        session.markers.drag_end(marker_id, 10.0, 20.0)
        assert session.registry.get("S1").service_zone is None


class TestStationEdits:
    """Test custom stations, deletion and apparatus edits."""

    def test_add_custom_station(self, session):
        station = session.add_custom_station(10.25, 20.25)
        assert station.id == "custom-station-1"
        assert station.display_name == "Station 03"
        assert session.ledger.counts(station.id)["Engine_ID"] == 1
        assert session.markers.marker_for_station(station.id) is not None

    def test_delete_through_marker_callback(self, session):
        marker_id = session.markers.marker_for_station("S2").marker_id
        assert session.markers.request_delete(marker_id)
        assert "S2" not in session.registry
        assert "S2" not in session.ledger
        assert session.delete_station("S2") is False

    def test_zone_update_through_popup(self, session):
        marker_id = session.markers.marker_for_station("S1").marker_id
        session.markers.request_zone_update(marker_id, "ZoneA")
        assert session.registry.get("S1").service_zone == "ZoneA"

    def test_apparatus_edit_reaches_registry_and_payload(self, session):
        assert session.change_apparatus_count("S1", "Medic", delta=1) == 1
        station = session.registry.get("S1")
        assert any(a.name == "Medic 01" for a in station.apparatus)

        payload = session.stations_payload()
        s1 = next(s for s in payload["stations"] if s["id"] == "S1")
        assert s1["apparatus"] == [
            {"type": "Engine", "count": 2},
            {"type": "Truck", "count": 1},
            {"type": "Medic", "count": 1},
        ]
        assert s1["name"] == "Station 01"

    def test_apparatus_view_marks_modified(self, session):
        session.change_apparatus_count("S1", "Truck", count=3)
        view = session.station_apparatus("S1")
        truck = next(c for c in view["counts"] if c["key"] == "Truck")
        engine = next(c for c in view["counts"] if c["key"] == "Engine_ID")
        assert truck == {"key": "Truck", "label": "Truck", "count": 3, "original": 1, "modified": True}
        assert not engine["modified"]

    def test_apparatus_edit_errors(self, session):
        assert session.change_apparatus_count("missing", "Medic", delta=1) is None
        with pytest.raises(KeyError):
            session.change_apparatus_count("S1", "Spaceship", delta=1)
        with pytest.raises(ValueError):
            session.change_apparatus_count("S1", "Medic")

    def test_popup_selects_station(self, session):
        marker_id = session.markers.marker_for_station("S1").marker_id
        session.markers.open_popup(marker_id)
        assert session.selected_station_id == "S1"
        session.markers.close_popup(marker_id)
        assert session.selected_station_id is None


class TestPolicyAndIncidents:
    """Test dispatch policy switching and incidents."""

    def test_unknown_policy(self, session):
        with pytest.raises(ValueError):
            session.set_dispatch_policy("teleport")
        assert session.policy.id == "nearest"

    def test_payload_reports_policy(self, session):
        session.set_dispatch_policy("firebeats")
        payload = session.stations_payload()
        assert payload["dispatchPolicy"] == "firebeats"
        assert payload["serviceZoneSource"] == "zones.geojson"

    def test_load_incidents_with_date_range(self, session):
        assert session.load_incidents("incidents.csv", start="2024-03-01", end="2024-03-31")
        assert [i.id for i in session.incidents] == ["i1"]
        assert len(session.incident_markers()) == 1

    def test_reload_resets_counts(self, session):
        session.change_apparatus_count("S1", "Medic", delta=2)
        assert session.load_stations("stations.csv")
        assert session.ledger.modified_keys("S1") == []



class TestOptimizedStations:
    """Optimized rows are appended to the existing stations."""

    def test_merged_onto_existing(self, session, data_dir):
        (data_dir / "optimized.csv").write_text("lat,lon\n10.2,20.2\n", encoding="utf-8")
        assert session.load_optimized_stations("optimized.csv")

        assert [s.id for s in session.registry] == ["S1", "S2", "new-station-0"]
        new_station = session.registry.get("new-station-0")
        assert new_station.display_name == "Station 40"
        assert session.ledger.counts("new-station-0")["Engine_ID"] == 1
        assert session.ledger.counts("S1")["Engine_ID"] == 2

    def test_explicit_existing_source(self, data_dir, fake_clock):
        (data_dir / "optimized.csv").write_text("lat,lon\n10.2,20.2\n", encoding="utf-8")
        config = AppConfig(file_paths=FilePathsConfig(data_dir=str(data_dir)))
        fresh = PlannerSession(config, clock=fake_clock)

        assert not fresh.load_optimized_stations("optimized.csv")
        assert fresh.load_optimized_stations("optimized.csv", existing_source="stations.csv")
        assert len(fresh.registry) == 3

    def test_missing_optimized_file_keeps_existing(self, session):
        session.change_apparatus_count("S1", "Medic", delta=1)
        assert session.load_optimized_stations("missing.csv")
        assert [s.id for s in session.registry] == ["S1", "S2"]
        assert session.ledger.modified_keys("S1") == []

    def test_missing_existing_file_changes_nothing(self, session, data_dir):
        (data_dir / "optimized.csv").write_text("lat,lon\n10.2,20.2\n", encoding="utf-8")
        assert not session.load_optimized_stations("optimized.csv", existing_source="gone.csv")
        assert [s.id for s in session.registry] == ["S1", "S2"]


class TestSupersededStationLoads:
    """A slower station load never overwrites a newer one of either kind."""

    def test_slow_existing_load_loses_to_newer_optimized_load(self, fake_clock):
        slow_url = "https://example.org/slow.csv"
        base_url = "https://example.org/base.csv"
        fast_url = "https://example.org/fast.csv"
        session = None

        class RacingSession(StubSession):
            def get(self, url, timeout=None):
                if url == slow_url:
                    assert session.load_optimized_stations(fast_url, existing_source=base_url)
                return super().get(url, timeout)

        http = RacingSession(
            {
                slow_url: StubResponse("StationID,Stations,lat,lon\nOLD,Station 7,10.0,20.0\n"),
                base_url: StubResponse("StationID,Stations,lat,lon\nBASE,Station 1,10.0,20.0\n"),
                fast_url: StubResponse("StationID,lat,lon\nNEW,10.2,20.2\n"),
            }
        )
        session = PlannerSession(loader=DataLoader(http=http), clock=fake_clock)

        assert not session.load_stations(slow_url)
        assert [s.id for s in session.registry] == ["BASE", "NEW"]
        assert "OLD" not in session.ledger
        assert session.existing_source == base_url

    def test_clear_discards_in_flight_load(self, fake_clock):
        slow_url = "https://example.org/slow.csv"
        session = None

        class ClearingSession(StubSession):
            def get(self, url, timeout=None):
                session.clear()
                return super().get(url, timeout)

        http = ClearingSession(
            {slow_url: StubResponse("StationID,Stations,lat,lon\nOLD,Station 7,10.0,20.0\n")}
        )
        session = PlannerSession(loader=DataLoader(http=http), clock=fake_clock)

        assert not session.load_stations(slow_url)
        assert len(session.registry) == 0


class TestCoordinateBounds:
    """Stations never hold non-finite or out-of-range coordinates."""

    @pytest.mark.parametrize(
        "lat, lon",
        [(500.0, 20.0), (10.0, 9000.0), (math.nan, 20.0), (10.0, math.inf)],
    )
    def test_custom_station_rejected(self, session, lat, lon):
        with pytest.raises(ValueError):
            session.add_custom_station(lat, lon)
        assert len(session.registry) == 2
        assert "custom-station-1" not in session.ledger

    def test_drop_at_nan_is_ignored(self, session):
        session.set_dispatch_policy("firebeats")
        marker_id = session.markers.marker_for_station("S1").marker_id
        assert session.markers.drag_start(marker_id)

        assert session.markers.drag_end(marker_id, math.nan, 20.0) is None
        station = session.registry.get("S1")
        assert (station.lat, station.lon) == (10.0, 20.0)

        marker = session.markers.marker_for_station("S1")
        assert marker.marker_id == marker_id
        assert session.markers.drag_start(marker_id)
