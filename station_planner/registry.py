#!/usr/bin/env python3
"""
Station Registry - authoritative station collection

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Own the current list of stations. Markers, popups and the
REST layer only read from it and ask it for changes.

Key Features:
1. Immutable snapshots: every mutation swaps in a new tuple
2. Observer notifications (onStationsChange) with unsubscribe handles
3. batch() to coalesce several mutations into one notification
4. Idempotent delete

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

from contextlib import contextmanager
from dataclasses import replace
from typing import Callable, Iterable, Iterator, List, Optional, Tuple
import logging

from station_planner.models import Apparatus, Station
from station_planner.ingest.station_factory import has_valid_coordinates

logger = logging.getLogger(__name__)

StationsListener = Callable[[Tuple[Station, ...]], None]


class StationRegistry:
    """
    Ordered, id-unique collection of Stations.

    Readers get the current tuple; it never changes in place, so a snapshot
    taken before a mutation stays valid.
    """

    def __init__(self, stations: Iterable[Station] = ()) -> None:
        self._stations: Tuple[Station, ...] = tuple(stations)
        self._listeners: List[StationsListener] = []
        self._batch_depth = 0
        self._pending = False

    # ═══════════════════════════════════════════════════════════════════════
    # 🔔 OBSERVERS
    # ═══════════════════════════════════════════════════════════════════════

    def subscribe(self, listener: StationsListener) -> Callable[[], None]:
        """Register an onStationsChange listener; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @contextmanager
    def batch(self) -> Iterator["StationRegistry"]:
        """
        Deliver at most one notification for all mutations in the block.

        Nested batches notify when the outermost one exits.
        """
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._pending:
                self._pending = False
                self._notify()

    def _changed(self) -> None:
        if self._batch_depth:
            self._pending = True
        else:
            self._notify()

    def _notify(self) -> None:
        snapshot = self._stations
        for listener in list(self._listeners):
            listener(snapshot)

    # ═══════════════════════════════════════════════════════════════════════
    # ✏️ MUTATIONS
    # ═══════════════════════════════════════════════════════════════════════

    def load(self, stations: Iterable[Station]) -> None:
        """Replace every station."""
        self._stations = tuple(stations)
        logger.info(f"Registry loaded with {len(self._stations)} station(s)")
        self._changed()

    def add(self, station: Station) -> Station:
        """
        Append a station.

        Raises:
            ValueError: If a station with the same id already exists
        """
        if station.id in self:
            raise ValueError(f"Station id already registered: {station.id}")
        self._stations = self._stations + (station,)
        logger.info(f"➕ Added station {station.id} ({station.display_name})")
        self._changed()
        return station

    def _replace_station(self, station_id: str, **changes) -> Optional[Station]:
        updated: Optional[Station] = None
        new_stations = []
        for station in self._stations:
            if station.id == station_id:
                updated = replace(station, **changes)
                new_stations.append(updated)
            else:
                new_stations.append(station)
        if updated is None:
            logger.debug(f"Ignoring update for unknown station {station_id}")
            return None
        self._stations = tuple(new_stations)
        self._changed()
        return updated

    def update_position(self, station_id: str, lat: float, lon: float) -> Optional[Station]:
        """
        Move a station. Returns the updated station, or None if unknown.

        Raises:
            ValueError: If lat/lon are not finite WGS84 coordinates
        """
        if not has_valid_coordinates(lat, lon):
            raise ValueError(f"Invalid coordinates for {station_id}: {lat}, {lon}")
        return self._replace_station(station_id, lat=float(lat), lon=float(lon))

    def update_zone(self, station_id: str, zone: Optional[str]) -> Optional[Station]:
        """Set a station's service zone. Returns the updated station, or None if unknown."""
        return self._replace_station(station_id, service_zone=zone)

    def update_apparatus(
        self, station_id: str, apparatus: Iterable[Apparatus]
    ) -> Optional[Station]:
        """Replace a station's apparatus list (after a count edit)."""
        return self._replace_station(station_id, apparatus=tuple(apparatus))

    def delete(self, station_id: str) -> bool:
        """
        Remove a station.

        Returns:
            True if a station was removed; deleting an unknown id is a no-op
        """
        remaining = tuple(s for s in self._stations if s.id != station_id)
        if len(remaining) == len(self._stations):
            logger.debug(f"Delete of unknown station {station_id} ignored")
            return False
        self._stations = remaining
        logger.info(f"🗑️ Deleted station {station_id}")
        self._changed()
        return True

    # ═══════════════════════════════════════════════════════════════════════
    # 📤 QUERIES
    # ═══════════════════════════════════════════════════════════════════════

    @property
    def stations(self) -> Tuple[Station, ...]:
        return self._stations

    def get(self, station_id: str) -> Optional[Station]:
        for station in self._stations:
            if station.id == station_id:
                return station
        return None

    def __len__(self) -> int:
        return len(self._stations)

    def __iter__(self) -> Iterator[Station]:
        return iter(self._stations)

    def __contains__(self, station_id: object) -> bool:
        return any(station.id == station_id for station in self._stations)
