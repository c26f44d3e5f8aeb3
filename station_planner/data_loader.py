#!/usr/bin/env python3
"""
Station Planner - Data Loader

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Fetch station, incident and zone sources (HTTP(S) URLs or
local files) and hand back parsed records or a populated zone store. This
is the only module that performs I/O.

Key Features:
1. requests for remote sources, pathlib for local files
2. Relative paths resolved against the configured data directory
3. In-memory text cache per resolved source
4. Per-kind load sequence numbers: a response is applied only if no newer
   load of the same kind was issued while it was in flight. Existing and
   optimized station loads share one kind since both replace the registry
5. Failures are logged and reported as None / False; nothing is retried

Navigation Guide:
- LoadKind / LoadTicket: sequence bookkeeping
- DataLoader.load_station_records / load_incident_records: CSV sources
- DataLoader.load_zones: GeoJSON or any geopandas-readable file

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import json
import logging
import threading

import geopandas as gpd
import requests

from station_planner.ingest.tabular_parser import parse_delimited_text
from station_planner.zones.zone_store import CRS_WGS84, ZoneGeometryStore

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════
# 🔧 CONSTANTS
# ═══════════════════════════════════════════════════════════════════════════

GEOJSON_SUFFIXES = (".json", ".geojson")

Source = Union[str, Path]


class LoadKind(Enum):
    # Every load that replaces the station registry (existing and optimized)
    STATIONS = "stations"
    INCIDENTS = "incidents"
    ZONES = "zones"


@dataclass(frozen=True)
class LoadTicket:
    """Sequence number issued when a load of one kind starts."""

    kind: LoadKind
    sequence: int


def is_remote(source: Source) -> bool:
    return isinstance(source, str) and source.lower().startswith(("http://", "https://"))


# ═══════════════════════════════════════════════════════════════════════════
# 📂 DATA LOADER
# ═══════════════════════════════════════════════════════════════════════════


class DataLoader:
    """
    Fetch and parse planner data sources.

    Thread-safe for the sequence bookkeeping only; the Flask dev server may
    serve overlapping requests, which is what makes stale responses possible.
    """

    def __init__(
        self,
        data_dir: Source = "data",
        timeout_s: float = 20.0,
        delimiter: str = ",",
        http: Optional[requests.Session] = None,
    ) -> None:
        """
        Initialize data loader.

        Args:
            data_dir: Base directory for relative local sources
            timeout_s: Timeout for remote fetches
            delimiter: Field separator for tabular sources
            http: requests session (a new one is created when omitted)
        """
        self.data_dir = Path(data_dir)
        self.timeout_s = timeout_s
        self.delimiter = delimiter
        self.http = http or requests.Session()

        self._cache: Dict[str, str] = {}
        self._latest: Dict[LoadKind, int] = {kind: 0 for kind in LoadKind}
        self._lock = threading.Lock()

    # ═══════════════════════════════════════════════════════════════════════
    # 🔢 SEQUENCING
    # ═══════════════════════════════════════════════════════════════════════

    def begin(self, kind: LoadKind) -> LoadTicket:
        """Issue the next sequence number for a kind; older tickets become stale."""
        with self._lock:
            self._latest[kind] += 1
            return LoadTicket(kind=kind, sequence=self._latest[kind])

    def is_current(self, ticket: LoadTicket) -> bool:
        with self._lock:
            return self._latest[ticket.kind] == ticket.sequence

    def _check_current(self, ticket: LoadTicket, source: Source) -> bool:
        if self.is_current(ticket):
            return True
        logger.info(
            f"⏭️ Discarding stale {ticket.kind.value} response #{ticket.sequence} from {source}"
        )
        return False

    # ═══════════════════════════════════════════════════════════════════════
    # 📥 RAW FETCH
    # ═══════════════════════════════════════════════════════════════════════

    def resolve_path(self, source: Source) -> Path:
        """Local path for a source; relative paths fall back to data_dir."""
        path = Path(source)
        if path.is_absolute() or path.exists():
            return path
        return self.data_dir / path

    def fetch_text(self, source: Source, use_cache: bool = True) -> str:
        """
        Read a source as text.

        Raises:
            requests.RequestException: Remote fetch failed or returned an error status
            OSError: Local file unreadable
        """
        key = str(source) if is_remote(source) else str(self.resolve_path(source))
        if use_cache and key in self._cache:
            logger.debug(f"Using cached text for {key}")
            return self._cache[key]

        if is_remote(source):
            response = self.http.get(str(source), timeout=self.timeout_s)
            response.raise_for_status()
            text = response.text
        else:
            text = Path(key).read_text(encoding="utf-8-sig")

        self._cache[key] = text
        return text

    def clear_cache(self) -> None:
        self._cache.clear()

    # ═══════════════════════════════════════════════════════════════════════
    # 📄 TABULAR SOURCES
    # ═══════════════════════════════════════════════════════════════════════

    def _load_records(
        self,
        kind: LoadKind,
        source: Source,
        use_cache: bool,
        ticket: Optional[LoadTicket] = None,
    ) -> Optional[List[Dict[str, str]]]:
        ticket = ticket or self.begin(kind)
        try:
            text = self.fetch_text(source, use_cache=use_cache)
        except (requests.RequestException, OSError) as e:
            logger.error(f"❌ Failed to load {kind.value} from {source}: {e}")
            return None

        if not self._check_current(ticket, source):
            return None

        records = parse_delimited_text(text, self.delimiter)
        logger.info(f"📂 Loaded {len(records)} {kind.value} row(s) from {source}")
        return records

    def load_station_records(
        self,
        source: Source,
        use_cache: bool = True,
        ticket: Optional[LoadTicket] = None,
    ) -> Optional[List[Dict[str, str]]]:
        """
        Station rows from a CSV source.

        Args:
            source: URL or path
            use_cache: Reuse previously fetched text
            ticket: STATIONS ticket shared by several fetches of one load;
                a new one is issued when omitted

        Returns:
            Parsed rows, or None if the fetch failed or was superseded
        """
        return self._load_records(LoadKind.STATIONS, source, use_cache, ticket)

    def load_incident_records(
        self, source: Source, use_cache: bool = True
    ) -> Optional[List[Dict[str, str]]]:
        """Incident rows from a CSV source, or None."""
        return self._load_records(LoadKind.INCIDENTS, source, use_cache)

    # ═══════════════════════════════════════════════════════════════════════
    # 🗺️ ZONES
    # ═══════════════════════════════════════════════════════════════════════

    def read_zone_collection(self, source: Source, use_cache: bool = True) -> Dict[str, Any]:
        """
        Zone source as a GeoJSON FeatureCollection in WGS84.

        GeoJSON (remote, or local .json/.geojson) is parsed directly; other
        local formats go through geopandas.
        """
        if is_remote(source) or str(source).lower().endswith(GEOJSON_SUFFIXES):
            return json.loads(self.fetch_text(source, use_cache=use_cache))

        gdf = gpd.read_file(self.resolve_path(source))
        if gdf.crs is not None and gdf.crs.to_epsg() != 4326:
            logger.info(f"🔄 Reprojecting zones from {gdf.crs} to WGS84 (EPSG:4326)")
            gdf = gdf.to_crs(CRS_WGS84)
        return gdf.__geo_interface__

    def load_zones(
        self, store: ZoneGeometryStore, source: Source, use_cache: bool = True
    ) -> bool:
        """
        Replace the store's zones with a zone source.

        On any failure the store keeps its previous zones.

        Returns:
            True if the store was updated
        """
        ticket = self.begin(LoadKind.ZONES)
        try:
            collection = self.read_zone_collection(source, use_cache=use_cache)
        except Exception as e:
            logger.error(f"❌ Failed to load zones from {source}: {e}")
            return False

        if not self._check_current(ticket, source):
            return False

        try:
            store.load_geojson(collection, source=str(source))
        except ValueError as e:
            logger.error(f"❌ Zone source {source} is not a FeatureCollection: {e}")
            return False
        return True
