"""Data models package for typed station, apparatus, incident and zone data."""

from .data_models import (
    Apparatus,
    ApparatusStatus,
    ApparatusType,
    Incident,
    IncidentCategory,
    Station,
    StationSource,
    ZonePolygon,
)

from .apparatus_catalog import (
    APPARATUS_CATALOG,
    APPARATUS_KEYS,
    DEFAULT_APPARATUS_COUNTS,
    ApparatusKind,
    default_counts,
    empty_counts,
    get_kind,
    require_kind,
)

__all__ = [
    # Domain models
    "Apparatus",
    "ApparatusStatus",
    "ApparatusType",
    "Incident",
    "IncidentCategory",
    "Station",
    "StationSource",
    "ZonePolygon",
    # Apparatus catalog
    "APPARATUS_CATALOG",
    "APPARATUS_KEYS",
    "DEFAULT_APPARATUS_COUNTS",
    "ApparatusKind",
    "default_counts",
    "empty_counts",
    "get_kind",
    "require_kind",
]
