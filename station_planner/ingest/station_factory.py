#!/usr/bin/env python3
"""
Station Factory - raw station rows to Station entities

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Map header-keyed CSV rows to typed Station objects, derive
the station number and display name, attach apparatus, and drop rows that
have no usable coordinates.

Key Features:
1. Station number from the first digit run of the name column
2. Fallback ids ("station-{i}" / "new-station-{i}")
3. Apparatus from count columns, or defaults when the row has none
4. Silent exclusion of rows with NaN / out-of-range coordinates

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence
import logging
import re

import numpy as np

from station_planner.ingest.apparatus_ledger import (
    ApparatusCounts,
    default_apparatus,
    extract_apparatus_counts,
    has_apparatus_columns,
    synthesize_apparatus,
)
from station_planner.models import (
    Apparatus,
    Station,
    StationSource,
    default_counts,
)

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════
# 🔧 CONSTANTS
# ═══════════════════════════════════════════════════════════════════════════

NAME_COLUMNS = ("Stations", "Facility Name", "name")
ID_COLUMNS = ("StationID", "id")
ADDRESS_COLUMN = "Address"
MISSING_ADDRESS = "Address not available"
OPTIMIZED_ADDRESS = "New Optimized Station"

# Optimized stations without a number in their name are numbered from 40
OPTIMIZED_NUMBER_OFFSET = 40

_DIGITS = re.compile(r"(\d+)")
_STATION_N = re.compile(r"Station (\d+)", re.IGNORECASE)

# ═══════════════════════════════════════════════════════════════════════════
# 📦 DATA CONTAINERS
# ═══════════════════════════════════════════════════════════════════════════


@dataclass
class StationBatch:
    """Result of building stations from a station file.

    Attributes:
        stations: Stations with valid coordinates, in file order
        counts: Apparatus counts per kept station id
        dropped: Rows excluded for unusable coordinates
    """

    stations: List[Station] = field(default_factory=list)
    counts: Dict[str, ApparatusCounts] = field(default_factory=dict)
    dropped: int = 0


# ═══════════════════════════════════════════════════════════════════════════
# 🔢 FIELD HELPERS
# ═══════════════════════════════════════════════════════════════════════════


def extract_station_number(text: Optional[str]) -> Optional[int]:
    """First run of digits in text ("Station 07" -> 7), or None."""
    if not text:
        return None
    match = _DIGITS.search(text)
    return int(match.group(1)) if match else None


def station_number_hint(record: Mapping[str, str], index: int, offset: int = 1) -> int:
    """
    Station number for a row: first digit run in a name-like column,
    else index + offset.
    """
    for column in NAME_COLUMNS:
        number = extract_station_number(record.get(column))
        if number is not None:
            return number
    return index + offset


def format_display_name(station_number: int) -> str:
    """Display name: "Station " + number zero-padded to two digits."""
    return f"Station {str(station_number).zfill(2)}"


def parse_coordinate(value: Optional[str]) -> float:
    """Parse a coordinate cell; anything unparseable becomes NaN."""
    if value is None:
        return float("nan")
    try:
        return float(str(value).strip())
    except ValueError:
        return float("nan")


def has_valid_coordinates(lat: float, lon: float) -> bool:
    """Finite and within WGS84 bounds."""
    if np.isnan(lat) or np.isnan(lon):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0


def _first_value(record: Mapping[str, str], columns: Sequence[str]) -> str:
    for column in columns:
        value = record.get(column)
        if value:
            return value
    return ""


def station_id_for(record: Mapping[str, str], index: int, source: StationSource) -> str:
    """Explicit id column, else "station-{index}" ("new-station-{index}" for optimized rows)."""
    prefix = "new-station" if source is StationSource.OPTIMIZED else "station"
    return _first_value(record, ID_COLUMNS) or f"{prefix}-{index}"


# ═══════════════════════════════════════════════════════════════════════════
# 🏗️ STATION CONSTRUCTION
# ═══════════════════════════════════════════════════════════════════════════


def create_station(
    record: Mapping[str, str],
    index: int,
    station_number: int,
    apparatus: Iterable[Apparatus] = (),
    source: StationSource = StationSource.EXISTING,
) -> Station:
    """
    Build a Station from one raw row.

    Args:
        record: Header-keyed row
        index: Row position in the file (used for fallback ids)
        station_number: Pre-parsed number (see station_number_hint)
        apparatus: Apparatus to attach
        source: Which station file the row came from

    Returns:
        Station; coordinates may be NaN, callers filter those out
    """
    station_id = station_id_for(record, index, source)
    name = _first_value(record, NAME_COLUMNS) or f"Station {station_number}"

    if source is StationSource.OPTIMIZED:
        address = OPTIMIZED_ADDRESS
    else:
        address = record.get(ADDRESS_COLUMN) or MISSING_ADDRESS

    return Station(
        id=station_id,
        name=name,
        address=address,
        lat=parse_coordinate(record.get("lat")),
        lon=parse_coordinate(record.get("lon")),
        station_number=station_number,
        display_name=format_display_name(station_number),
        apparatus=tuple(apparatus),
        service_zone=None,
        source=source,
    )


def build_stations(
    records: Sequence[Mapping[str, str]],
    max_stations: int = 100,
    source: StationSource = StationSource.EXISTING,
) -> StationBatch:
    """
    Build stations and apparatus counts from parsed station rows.

    Existing-station rows with apparatus columns get apparatus synthesized
    from their counts. Optimized rows, and rows without any count column,
    get one engine and one ambulance.

    Args:
        records: Parsed rows in file order
        max_stations: Rows considered (applied before coordinate filtering)
        source: EXISTING or OPTIMIZED

    Returns:
        StationBatch with kept stations, counts and the dropped-row count
    """
    batch = StationBatch()
    offset = OPTIMIZED_NUMBER_OFFSET if source is StationSource.OPTIMIZED else 1

    for index, record in enumerate(records[:max_stations]):
        station_number = station_number_hint(record, index, offset)

        station_id = station_id_for(record, index, source)
        if source is StationSource.EXISTING and has_apparatus_columns(record):
            counts = extract_apparatus_counts(record)
            apparatus = synthesize_apparatus(counts, station_id, station_number)
        else:
            counts = default_counts()
            apparatus = default_apparatus(station_id, station_number)

        station = create_station(record, index, station_number, apparatus, source)

        if not has_valid_coordinates(station.lat, station.lon):
            batch.dropped += 1
            logger.debug(
                f"Skipping row {index} ({station.name}): "
                f"lat={record.get('lat')!r}, lon={record.get('lon')!r}"
            )
            continue

        batch.stations.append(station)
        batch.counts[station.id] = counts

    if batch.dropped:
        logger.warning(
            f"⚠️ Dropped {batch.dropped} station row(s) without usable coordinates"
        )
    logger.info(f"Built {len(batch.stations)} {source.value} station(s)")
    return batch


def next_station_number(stations: Iterable[Station]) -> int:
    """One more than the highest "Station N" number among existing stations."""
    numbers = []
    for station in stations:
        match = _STATION_N.search(station.name) or _STATION_N.search(station.display_name)
        numbers.append(int(match.group(1)) if match else 0)
    return (max(numbers) if numbers else 0) + 1


def create_custom_station(
    lat: float, lon: float, existing: Iterable[Station], station_id: str
) -> Station:
    """
    Station added by clicking the map.

    Args:
        lat, lon: Click position
        existing: Stations already in the registry (for numbering)
        station_id: Id to give the new station

    Returns:
        Station in the "Custom" service zone with default apparatus

    Raises:
        ValueError: If lat/lon are not finite WGS84 coordinates
    """
    if not has_valid_coordinates(lat, lon):
        raise ValueError(f"Invalid custom station position: {lat}, {lon}")
    station_number = next_station_number(existing)
    return Station(
        id=station_id,
        name=f"Station {station_number}",
        address=f"{lat:.6f}, {lon:.6f}",
        lat=float(lat),
        lon=float(lon),
        station_number=station_number,
        display_name=format_display_name(station_number),
        apparatus=tuple(default_apparatus(station_id, station_number)),
        service_zone="Custom",
        source=StationSource.CUSTOM,
    )
