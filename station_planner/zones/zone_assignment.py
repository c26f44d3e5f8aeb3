"""
Zone assignment: which service zone contains a point.

Planar ray casting over (lat, lon) loops. Coordinates are treated as plain
Cartesian values (no projection, no antimeridian handling), which is fine
at city scale.
"""

import logging
import math
from typing import Any, Mapping, Optional, Sequence, Tuple

from station_planner.config_types import DEFAULT_NAME_PRIORITY
from station_planner.models import Station, ZonePolygon
from station_planner.zones.zone_store import ZoneGeometryStore

logger = logging.getLogger(__name__)

Vertex = Tuple[float, float]


def point_in_polygon(lat: float, lon: float, vertices: Sequence[Vertex]) -> bool:
    """
    Even-odd ray casting test.

    For each edge (V[i], V[j]), j being the previous vertex, the inside flag
    toggles when the edge straddles lon and the point lies below the edge's
    lat at that lon. Points exactly on a vertex or edge get whatever answer
    this arithmetic gives, which is the same on every call.

    Args:
        lat, lon: Query point
        vertices: Closed loop of (lat, lon) pairs (closure implied)

    Returns:
        True if the point is inside; always False for fewer than 3 vertices
    """
    n = len(vertices)
    if n < 3:
        return False

    inside = False
    j = n - 1
    for i in range(n):
        lat_i, lon_i = vertices[i]
        lat_j, lon_j = vertices[j]
        if (lon_i > lon) != (lon_j > lon) and (
            lat < (lat_j - lat_i) * (lon - lon_i) / (lon_j - lon_i) + lat_i
        ):
            inside = not inside
        j = i
    return inside


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return str(value).strip() == ""


def resolve_zone_name(
    properties: Mapping[str, Any],
    priority: Sequence[str] = DEFAULT_NAME_PRIORITY,
    fid: Optional[Any] = None,
) -> str:
    """
    Zone name from the first non-empty property in priority order.

    Falls back to "Zone {fid}", or "Zone unknown" without a feature id.
    """
    for key in priority:
        value = properties.get(key)
        if not _is_blank(value):
            return str(value).strip()
    if _is_blank(fid):
        return "Zone unknown"
    return f"Zone {fid}"


class ZoneAssignmentEngine:
    """
    Point-to-zone lookup over a ZoneGeometryStore.

    Overlapping zones resolve to the first polygon in load order.
    """

    def __init__(
        self, store: ZoneGeometryStore, priority: Sequence[str] = DEFAULT_NAME_PRIORITY
    ) -> None:
        self.store = store
        self.priority = tuple(priority)

    def find_containing_polygon(self, lat: float, lon: float) -> Optional[ZonePolygon]:
        for polygon in self.store.polygons:
            if point_in_polygon(lat, lon, polygon.vertices):
                return polygon
        return None

    def find_zone(self, lat: float, lon: float) -> Optional[str]:
        """Name of the first zone containing (lat, lon), or None."""
        polygon = self.find_containing_polygon(lat, lon)
        if polygon is None:
            return None
        return resolve_zone_name(polygon.properties, self.priority, polygon.fid)

    def assign_after_drag(self, station: Station, lat: float, lon: float, policy) -> Optional[str]:
        """
        Zone for a station dropped at (lat, lon).

        Args:
            station: Station being moved
            lat, lon: Drop position
            policy: Active DispatchPolicy

        Returns:
            The containing zone's name, or None when the policy does not use
            service zones or no zone contains the point. None means "keep the
            station's current service_zone".
        """
        if not policy.requires_service_zones:
            return None
        if not self.store:
            logger.debug(f"No zones loaded, {station.id} keeps zone {station.service_zone!r}")
            return None

        zone = self.find_zone(lat, lon)
        if zone is None:
            logger.info(
                f"Station {station.id} dropped outside all zones, "
                f"keeping {station.service_zone!r}"
            )
        return zone
