"""
Shared fixtures for station planner tests.

Run with: python -m pytest station_planner/_tests -v
"""

import pytest
import requests


STATIONS_CSV = (
    "StationID,Stations,Address,lat,lon,Engine_ID,Truck,Medic\n"
    "S1,Stn 01,123 Main St,10.0,20.0,2,1,0\n"
    "S2,Stn 02,9 Oak Ave,10.5,20.5,1,0,1\n"
    "S3,Stn 03,No Coordinates Rd,,20.5,1,0,0\n"
)


def square_feature(min_lon, min_lat, max_lon, max_lat, properties=None, fid=None):
    """GeoJSON Polygon feature for an axis-aligned box ([lon, lat] order)."""
    feature = {
        "type": "Feature",
        "properties": properties or {},
        "geometry": {
            "type": "Polygon",
            "coordinates": [
                [
                    [min_lon, min_lat],
                    [max_lon, min_lat],
                    [max_lon, max_lat],
                    [min_lon, max_lat],
                    [min_lon, min_lat],
                ]
            ],
        },
    }
    if fid is not None:
        feature["id"] = fid
    return feature


class StubResponse:
    def __init__(self, text, status_code=200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class StubSession:
    """Stands in for requests.Session; records requested URLs."""

    def __init__(self, responses):
        self.responses = responses
        self.requested = []

    def get(self, url, timeout=None):
        self.requested.append(url)
        response = self.responses.get(url)
        if response is None:
            raise requests.ConnectionError(f"no route to {url}")
        return response


def feature_collection(*features):
    return {"type": "FeatureCollection", "features": list(features)}


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def stations_csv():
    return STATIONS_CSV


@pytest.fixture
def zone_a_collection():
    """ZoneA covers lat 9..11, lon 19..21 (around station S1)."""
    return feature_collection(square_feature(19.0, 9.0, 21.0, 11.0, {"name": "ZoneA"}))


@pytest.fixture
def two_zone_collection():
    """West zone lon 0..1, east zone lon 1..2, both lat 0..1."""
    return feature_collection(
        square_feature(0.0, 0.0, 1.0, 1.0, {"FIREBEAT": "West"}),
        square_feature(1.0, 0.0, 2.0, 1.0, {"FIREBEAT": "East"}),
    )


@pytest.fixture
def fake_clock():
    return FakeClock()
