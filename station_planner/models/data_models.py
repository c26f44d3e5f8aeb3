"""
Typed data models for stations, apparatus, incidents and zones.

Architectural Overview:
=======================
Immutable dataclasses for the station planner's domain. The registry never
mutates a Station in place: edits produce a new instance via
dataclasses.replace() and the whole station tuple is swapped.

Key Interactions:
-----------------
- Input: Station factory and incident processing build instances from CSV rows
- Output: as_dict() provides the camelCase payload consumed by the map
  frontend and the simulation client
- Navigation: Use VS Code outline (Ctrl+Shift+O) for quick navigation

MODIFICATION POINT: Add new ApparatusType values here for new unit classes
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Optional, Dict, Any, Tuple, Mapping


# ═══════════════════════════════════════════════════════════════════════════
# 🏷️ ENUMS SECTION
# ═══════════════════════════════════════════════════════════════════════════


class ApparatusType(Enum):
    """Unit class of an apparatus."""

    ENGINE = "Engine"
    LADDER = "Ladder"
    RESCUE = "Rescue"
    AMBULANCE = "Ambulance"
    CHIEF = "Chief"

    @classmethod
    def from_string(cls, s: str) -> "ApparatusType":
        """Convert string to ApparatusType, with fallback to ENGINE."""
        for member in cls:
            if member.value == s:
                return member
        return cls.ENGINE


class ApparatusStatus(Enum):
    """Availability of an apparatus."""

    AVAILABLE = "Available"
    OUT_OF_SERVICE = "Out of Service"
    IN_USE = "In Use"

    @classmethod
    def from_string(cls, s: str) -> "ApparatusStatus":
        """Convert string to ApparatusStatus, with fallback to AVAILABLE."""
        for member in cls:
            if member.value == s:
                return member
        return cls.AVAILABLE


class IncidentCategory(Enum):
    """Icon category of an incident type."""

    EMS = "ems"
    WARNING = "warning"
    FIRE = "fire"


class StationSource(Enum):
    """Which station file a row came from.

    EXISTING rows carry apparatus count columns; OPTIMIZED rows are new
    stations proposed by the placement optimizer and get default apparatus.
    """

    EXISTING = "existing"
    OPTIMIZED = "optimized"
    CUSTOM = "custom"


# ═══════════════════════════════════════════════════════════════════════════
# 🚒 APPARATUS & STATION SECTION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Apparatus:
    """A single unit housed at exactly one station."""

    id: str
    type: ApparatusType
    name: str
    status: ApparatusStatus = ApparatusStatus.AVAILABLE
    crew: int = 1

    def as_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-ready dict with enum values as strings."""
        return {
            "id": self.id,
            "type": self.type.value,
            "name": self.name,
            "status": self.status.value,
            "crew": self.crew,
        }


@dataclass(frozen=True)
class Station:
    """Immutable station entity.

    Identity is ``id``: it is stable across position and zone edits and is
    never reassigned after deletions.

    Usage Examples:
    ---------------
    ```python
    moved = dataclasses.replace(station, lat=10.5, lon=20.5)
    payload = moved.as_dict()
    ```
    """

    id: str
    name: str
    address: str
    lat: float
    lon: float
    station_number: int
    display_name: str
    apparatus: Tuple[Apparatus, ...] = ()
    service_zone: Optional[str] = None
    source: StationSource = StationSource.EXISTING

    @property
    def position(self) -> Tuple[float, float]:
        """(lat, lon) tuple."""
        return (self.lat, self.lon)

    def as_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase payload used by collaborators.

        ``serviceZone`` is only included when set, matching the optional
        field of the frontend Station type.
        """
        result = {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "lat": self.lat,
            "lon": self.lon,
            "stationNumber": self.station_number,
            "displayName": self.display_name,
            "apparatus": [a.as_dict() for a in self.apparatus],
        }
        if self.service_zone is not None:
            result["serviceZone"] = self.service_zone
        return result


# ═══════════════════════════════════════════════════════════════════════════
# 🔥 INCIDENT SECTION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Incident:
    """Read-only historical or synthetic incident."""

    id: str
    incident_type: str
    lat: float
    lon: float
    datetime: str
    category: str
    incident_type_category: IncidentCategory

    def as_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase payload used by the map frontend."""
        return {
            "id": self.id,
            "incidentType": self.incident_type,
            "lat": self.lat,
            "lon": self.lon,
            "datetime": self.datetime,
            "category": self.category,
            "incidentTypeCategory": self.incident_type_category.value,
        }


# ═══════════════════════════════════════════════════════════════════════════
# 🗺️ ZONE SECTION
# ═══════════════════════════════════════════════════════════════════════════


def _freeze_properties(properties: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(properties or {}))


@dataclass(frozen=True)
class ZonePolygon:
    """Closed boundary loop of one service zone.

    Attributes:
        vertices: (lat, lon) pairs in ring order; closing vertex optional
        properties: Read-only copy of the source feature's property bag
        feature_index: Position of the source feature in the loaded collection
        fid: Feature id from the source, if any
    """

    vertices: Tuple[Tuple[float, float], ...]
    properties: Mapping[str, Any] = field(default_factory=dict)
    feature_index: int = 0
    fid: Optional[Any] = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "vertices", tuple((float(a), float(b)) for a, b in self.vertices)
        )
        object.__setattr__(self, "properties", _freeze_properties(self.properties))

    def __hash__(self) -> int:
        return hash((self.vertices, self.feature_index))
