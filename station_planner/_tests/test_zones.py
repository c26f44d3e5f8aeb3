"""
Unit tests for zone geometry and zone assignment.

Tests:
1. Ray casting on the unit square (inside, outside, vertex determinism)
2. Zone name resolution priority and fallback
3. Store loading (Polygon, MultiPolygon, skipped features, files)
4. Assignment engine (first match, policy gating, stability)

Run with: python -m pytest station_planner/_tests/test_zones.py -v
"""

import json

import pytest

from conftest import feature_collection, square_feature
from station_planner.dispatch_policies import get_dispatch_policy
from station_planner.models import Station
from station_planner.zones import (
    ZoneAssignmentEngine,
    ZoneGeometryStore,
    point_in_polygon,
    resolve_zone_name,
)

UNIT_SQUARE = [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)]


def make_station(zone=None):
    return Station(
        id="S1",
        name="Stn 01",
        address="123 Main St",
        lat=0.5,
        lon=0.5,
        station_number=1,
        display_name="Station 01",
        service_zone=zone,
    )


# ═══════════════════════════════════════════════════════════════════════════
# POINT IN POLYGON
# ═══════════════════════════════════════════════════════════════════════════


class TestPointInPolygon:
    """Test the ray casting predicate."""

    def test_inside_unit_square(self):
        assert point_in_polygon(0.5, 0.5, UNIT_SQUARE)

    def test_outside_unit_square(self):
        assert not point_in_polygon(1.5, 1.5, UNIT_SQUARE)
        assert not point_in_polygon(-0.1, 0.5, UNIT_SQUARE)

    def test_vertex_is_deterministic(self):
        """A point on a vertex gets the same answer every time."""
        first = point_in_polygon(0.0, 0.0, UNIT_SQUARE)
        assert all(point_in_polygon(0.0, 0.0, UNIT_SQUARE) == first for _ in range(10))

    def test_degenerate_polygons(self):
        assert not point_in_polygon(0.0, 0.0, [])
        assert not point_in_polygon(0.5, 0.5, [(0.0, 0.0), (1.0, 1.0)])

    def test_closing_vertex_optional(self):
        closed = UNIT_SQUARE + [UNIT_SQUARE[0]]
        assert point_in_polygon(0.5, 0.5, closed)
        assert not point_in_polygon(1.5, 0.5, closed)

    def test_concave_polygon(self):
        """U shape: the notch between the arms is outside."""
        u_shape = [(0, 0), (3, 0), (3, 3), (2, 3), (2, 1), (1, 1), (1, 3), (0, 3)]
        assert point_in_polygon(0.5, 2.0, u_shape)
        assert not point_in_polygon(1.5, 2.0, u_shape)


# ═══════════════════════════════════════════════════════════════════════════
# ZONE NAMES
# ═══════════════════════════════════════════════════════════════════════════


class TestResolveZoneName:
    """Test the property priority list and fallback."""

    def test_priority_order(self):
        props = {"ID": "7", "FIREBEAT": "Beat 12", "name": "North"}
        assert resolve_zone_name(props) == "North"
        assert resolve_zone_name({"ID": "7", "FIREBEAT": "Beat 12"}) == "Beat 12"

    def test_empty_values_are_skipped(self):
        assert resolve_zone_name({"name": "", "NAME": None, "BEAT": "B3"}) == "B3"

    def test_fallback_uses_fid(self):
        assert resolve_zone_name({"other": "x"}, fid=42) == "Zone 42"
        assert resolve_zone_name({}) == "Zone unknown"

    def test_custom_priority(self):
        assert resolve_zone_name({"district": "D1", "name": "N"}, ["district"]) == "D1"


# ═══════════════════════════════════════════════════════════════════════════
# ZONE STORE
# ═══════════════════════════════════════════════════════════════════════════


class TestZoneGeometryStore:
    """Test loading zones into the store."""

    def test_geojson_vertices_are_lat_lon(self, zone_a_collection):
        store = ZoneGeometryStore()
        assert store.load_geojson(zone_a_collection) == 1
        polygon = store.polygons[0]
        assert (9.0, 19.0) in polygon.vertices
        assert (11.0, 21.0) in polygon.vertices
        assert len(polygon.vertices) == 4

    def test_multipolygon_parts_share_properties(self):
        feature = {
            "type": "Feature",
            "properties": {"name": "Islands"},
            "geometry": {
                "type": "MultiPolygon",
                "coordinates": [
                    [[[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]]],
                    [[[5, 5], [6, 5], [6, 6], [5, 6], [5, 5]]],
                ],
            },
        }
        store = ZoneGeometryStore()
        assert store.load_geojson(feature_collection(feature)) == 2
        assert all(p.properties["name"] == "Islands" for p in store.polygons)

    def test_non_polygon_features_are_skipped(self, zone_a_collection):
        point = {
            "type": "Feature",
            "properties": {"name": "Depot"},
            "geometry": {"type": "Point", "coordinates": [0, 0]},
        }
        empty = {"type": "Feature", "properties": {}, "geometry": None}
        collection = feature_collection(point, empty, *zone_a_collection["features"])
        store = ZoneGeometryStore()
        assert store.load_geojson(collection) == 1
        assert store.polygons[0].feature_index == 2

    def test_load_replaces_previous_zones(self, zone_a_collection, two_zone_collection):
        store = ZoneGeometryStore()
        store.load_geojson(zone_a_collection)
        store.load_geojson(two_zone_collection)
        assert store.zone_names(["FIREBEAT"]) == ["West", "East"]

    def test_invalid_input_leaves_store_unchanged(self, zone_a_collection):
        store = ZoneGeometryStore()
        store.load_geojson(zone_a_collection)
        with pytest.raises(ValueError):
            store.load_geojson({"type": "Feature"})
        assert len(store) == 1

    def test_bounds_and_center(self, zone_a_collection):
        store = ZoneGeometryStore()
        assert store.bounds() is None
        store.load_geojson(zone_a_collection)
        assert store.bounds() == (19.0, 9.0, 21.0, 11.0)
        assert store.center() == (10.0, 20.0)

    def test_load_file(self, tmp_path, two_zone_collection):
        """Files are read through geopandas."""
        path = tmp_path / "beats.geojson"
        path.write_text(json.dumps(two_zone_collection), encoding="utf-8")
        store = ZoneGeometryStore()
        assert store.load_file(path) == 2
        assert store.source == "beats.geojson"
        assert len(store.to_geodataframe()) == 2

    def test_clear(self, zone_a_collection):
        store = ZoneGeometryStore()
        store.load_geojson(zone_a_collection)
        store.clear()
        assert not store
        assert store.to_geojson()["features"] == []


# ═══════════════════════════════════════════════════════════════════════════
# ASSIGNMENT ENGINE
# ═══════════════════════════════════════════════════════════════════════════


class TestZoneAssignmentEngine:
    """Test point-to-zone lookup and drag assignment."""

    @pytest.fixture
    def engine(self, two_zone_collection):
        store = ZoneGeometryStore()
        store.load_geojson(two_zone_collection)
        return ZoneAssignmentEngine(store)

    def test_find_zone(self, engine):
        assert engine.find_zone(0.5, 0.5) == "West"
        assert engine.find_zone(0.5, 1.5) == "East"
        assert engine.find_zone(5.0, 5.0) is None

    def test_overlap_resolves_to_first_loaded(self):
        store = ZoneGeometryStore()
        store.load_geojson(
            feature_collection(
                square_feature(0, 0, 2, 2, {"name": "Big"}),
                square_feature(0, 0, 1, 1, {"name": "Small"}),
            )
        )
        assert ZoneAssignmentEngine(store).find_zone(0.5, 0.5) == "Big"

    def test_assignment_requires_zone_policy(self, engine):
        station = make_station()
        nearest = get_dispatch_policy("nearest")
        firebeats = get_dispatch_policy("firebeats")
        assert engine.assign_after_drag(station, 0.5, 0.5, nearest) is None
        assert engine.assign_after_drag(station, 0.5, 0.5, firebeats) == "West"

    def test_outside_all_zones_means_no_assignment(self, engine):
        station = make_station(zone="West")
        firebeats = get_dispatch_policy("firebeats")
        assert engine.assign_after_drag(station, 9.0, 9.0, firebeats) is None

    def test_no_zones_loaded(self):
        engine = ZoneAssignmentEngine(ZoneGeometryStore())
        firebeats = get_dispatch_policy("firebeats")
        assert engine.assign_after_drag(make_station(), 0.5, 0.5, firebeats) is None
