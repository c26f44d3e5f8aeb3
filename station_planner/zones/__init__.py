"""Service-zone geometry and point-to-zone assignment."""

from .zone_store import ZoneGeometryStore
from .zone_assignment import ZoneAssignmentEngine, point_in_polygon, resolve_zone_name

__all__ = [
    "ZoneGeometryStore",
    "ZoneAssignmentEngine",
    "point_in_polygon",
    "resolve_zone_name",
]
