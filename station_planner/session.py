#!/usr/bin/env python3
"""
Station Planner - Planning Session

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Wire loader, registry, apparatus ledger, zone store, zone
engine and marker synchronizer into one planning session, and expose the
operations the REST layer calls.

Ownership:
- StationRegistry: the station list (only it mutates stations)
- ApparatusLedger: current/original counts and apparatus lists
- ZoneGeometryStore + ZoneAssignmentEngine: service zones
- MarkerSynchronizer: markers, following the registry

Event wiring:
- registry change   -> markers.sync()
- ledger change     -> registry.update_apparatus() (popups show live units)
- marker delete     -> delete_station()
- marker zone pick  -> update_service_zone()
- popup open/close  -> selected_station_id (apparatus manager panel)

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

from typing import Any, Dict, List, Optional
import logging
import threading

from station_planner.config_types import AppConfig
from station_planner.data_loader import DataLoader, LoadKind, LoadTicket, Source
from station_planner.dispatch_policies import (
    DEFAULT_POLICY_ID,
    DISPATCH_POLICIES,
    DispatchPolicy,
    get_dispatch_policy,
)
from station_planner.ingest.apparatus_ledger import ApparatusLedger
from station_planner.ingest.incident_processing import (
    DateLike,
    filter_incidents_by_date_range,
    process_incidents,
)
from station_planner.ingest.station_factory import (
    StationBatch,
    build_stations,
    create_custom_station,
)
from station_planner.markers.marker_sync import (
    IncidentMarker,
    MarkerCallbacks,
    MarkerSynchronizer,
)
from station_planner.models import (
    APPARATUS_CATALOG,
    Apparatus,
    Incident,
    Station,
    StationSource,
    default_counts,
)
from station_planner.registry import StationRegistry
from station_planner.zones.zone_assignment import ZoneAssignmentEngine
from station_planner.zones.zone_store import ZoneGeometryStore

logger = logging.getLogger(__name__)


def _resolve_policy(policy_id: str) -> DispatchPolicy:
    policy = get_dispatch_policy(policy_id)
    if policy is None:
        logger.warning(f"⚠️ Unknown dispatch policy {policy_id!r}, using {DEFAULT_POLICY_ID}")
        policy = get_dispatch_policy(DEFAULT_POLICY_ID)
    return policy


class PlannerSession:
    """
    One user's station-planning state.

    Args:
        app_config: Typed configuration (AppConfig.from_dict(CONFIG))
        loader: DataLoader; built from app_config when omitted
        clock: Time source for marker tooltips (defaults to time.monotonic)
    """

    def __init__(
        self,
        app_config: Optional[AppConfig] = None,
        loader: Optional[DataLoader] = None,
        clock=None,
    ) -> None:
        self.config = app_config or AppConfig()
        self.loader = loader or DataLoader(
            data_dir=self.config.file_paths.data_path,
            timeout_s=self.config.ingestion.request_timeout_s,
            delimiter=self.config.ingestion.delimiter,
        )

        self.registry = StationRegistry()
        self.ledger = ApparatusLedger()
        self.zone_store = ZoneGeometryStore()
        self.zone_engine = ZoneAssignmentEngine(
            self.zone_store, self.config.zones.name_priority
        )
        self.policy = _resolve_policy(self.config.default_policy)

        self.incidents: List[Incident] = []
        self.selected_station_id: Optional[str] = None
        self._custom_counter = 0
        self.existing_source: Optional[Source] = None
        self._apply_lock = threading.Lock()

        callbacks = MarkerCallbacks(
            on_delete=self.delete_station,
            on_zone_update=self.update_service_zone,
            on_popup_open=self._select_station,
            on_popup_close=self._deselect_station,
        )
        sync_kwargs: Dict[str, Any] = {}
        if clock is not None:
            sync_kwargs["clock"] = clock
        self.markers = MarkerSynchronizer(
            self.registry,
            self.zone_engine,
            self.policy,
            callbacks=callbacks,
            draggable=self.config.markers.draggable,
            config=self.config.markers,
            **sync_kwargs,
        )
        self.ledger.subscribe(self._on_apparatus_change)

    # ═══════════════════════════════════════════════════════════════════════
    # 🔔 EVENT HANDLERS
    # ═══════════════════════════════════════════════════════════════════════

    def _on_apparatus_change(self, station_id: str, apparatus: List[Apparatus]) -> None:
        self.registry.update_apparatus(station_id, apparatus)

    def _select_station(self, station_id: str) -> None:
        self.selected_station_id = station_id

    def _deselect_station(self, station_id: str) -> None:
        if self.selected_station_id == station_id:
            self.selected_station_id = None

    # ═══════════════════════════════════════════════════════════════════════
    # 📥 LOADING
    # ═══════════════════════════════════════════════════════════════════════

    def _build_batch(
        self, records: List[Dict[str, str]], station_source: StationSource, source: Source
    ) -> StationBatch:
        batch = build_stations(
            records, max_stations=self.config.ingestion.max_stations, source=station_source
        )
        logger.info(f"🚒 {len(batch.stations)} {station_source.value} station(s) from {source}")
        return batch

    def _replace_stations(self, ticket: LoadTicket, batches: List[StationBatch]) -> bool:
        """
        Swap in a new station set if the ticket is still the latest station load.

        The currency check and the swap happen under one lock, so a load
        that started later is always applied after this one.
        """
        with self._apply_lock:
            if not self.loader.is_current(ticket):
                logger.info(f"⏭️ Discarding superseded station load #{ticket.sequence}")
                return False

            self.ledger.reset()
            stations: List[Station] = []
            for batch in batches:
                for station in batch.stations:
                    if station.id in self.ledger:
                        logger.warning(f"⚠️ Duplicate station id {station.id}, keeping the first")
                        continue
                    self.ledger.register(
                        station.id,
                        batch.counts[station.id],
                        station.station_number,
                        list(station.apparatus),
                    )
                    stations.append(station)
            self.selected_station_id = None
            self.registry.load(stations)
        return True

    def load_stations(self, source: Source) -> bool:
        """Replace all stations with an existing-station CSV source."""
        ticket = self.loader.begin(LoadKind.STATIONS)
        records = self.loader.load_station_records(source, ticket=ticket)
        if records is None:
            return False
        batch = self._build_batch(records, StationSource.EXISTING, source)
        if not self._replace_stations(ticket, [batch]):
            return False
        self.existing_source = source
        return True

    def load_optimized_stations(
        self, optimized_source: Source, existing_source: Optional[Source] = None
    ) -> bool:
        """
        Existing stations plus the optimizer's new stations.

        If the optimized source cannot be loaded, the existing stations are
        loaded alone.

        Args:
            optimized_source: CSV of new station positions
            existing_source: Existing-station CSV; defaults to the last one loaded

        Returns:
            True if the registry was replaced
        """
        existing_source = existing_source or self.existing_source
        if existing_source is None:
            logger.error("❌ Optimized stations need an existing-station source")
            return False

        ticket = self.loader.begin(LoadKind.STATIONS)
        existing = self.loader.load_station_records(existing_source, ticket=ticket)
        if existing is None:
            return False
        batches = [self._build_batch(existing, StationSource.EXISTING, existing_source)]

        optimized = self.loader.load_station_records(optimized_source, ticket=ticket)
        if optimized is not None:
            batches.append(
                self._build_batch(optimized, StationSource.OPTIMIZED, optimized_source)
            )
        elif self.loader.is_current(ticket):
            logger.warning(
                f"⚠️ Optimized stations from {optimized_source} unavailable, "
                f"using existing stations only"
            )
        else:
            return False

        if not self._replace_stations(ticket, batches):
            return False
        self.existing_source = existing_source
        return True

    def load_zones(self, source: Source) -> bool:
        """Replace service zones; the previous zones stay on failure."""
        loaded = self.loader.load_zones(self.zone_store, source)
        if loaded:
            # Zone pickers in popups list the new zones
            self.markers.sync()
        return loaded

    def load_incidents(
        self,
        source: Source,
        start: Optional[DateLike] = None,
        end: Optional[DateLike] = None,
    ) -> bool:
        """Replace the incident overlay, optionally narrowed to a date window."""
        records = self.loader.load_incident_records(source)
        if records is None:
            return False
        incidents = process_incidents(records)
        self.incidents = filter_incidents_by_date_range(incidents, start, end)
        logger.info(f"🔥 {len(self.incidents)} incident(s) on the map")
        return True

    def clear(self) -> None:
        """Drop stations, counts, zones and incidents."""
        # In-flight station loads must not repopulate the cleared registry
        ticket = self.loader.begin(LoadKind.STATIONS)
        self.zone_store.clear()
        self.incidents = []
        self.existing_source = None
        self._replace_stations(ticket, [])

    # ═══════════════════════════════════════════════════════════════════════
    # ✏️ STATION EDITS
    # ═══════════════════════════════════════════════════════════════════════

    def _next_custom_id(self) -> str:
        while True:
            self._custom_counter += 1
            station_id = f"custom-station-{self._custom_counter}"
            if station_id not in self.registry:
                return station_id

    def add_custom_station(self, lat: float, lon: float) -> Station:
        """Add a station at a clicked map position."""
        station = create_custom_station(
            lat, lon, self.registry.stations, self._next_custom_id()
        )
        self.ledger.register(
            station.id, default_counts(), station.station_number, list(station.apparatus)
        )
        return self.registry.add(station)

    def delete_station(self, station_id: str) -> bool:
        """Remove a station and its counts. Unknown ids are a no-op."""
        removed = self.registry.delete(station_id)
        self.ledger.remove(station_id)
        if self.selected_station_id == station_id:
            self.selected_station_id = None
        return removed

    def update_service_zone(self, station_id: str, zone: Optional[str]) -> Optional[Station]:
        """Set a station's service zone by hand (popup zone picker)."""
        updated = self.registry.update_zone(station_id, zone)
        if updated is not None:
            logger.info(f"Station {station_id} service zone set to {zone!r}")
        return updated

    def change_apparatus_count(
        self,
        station_id: str,
        key: str,
        delta: Optional[int] = None,
        count: Optional[int] = None,
    ) -> Optional[int]:
        """
        Edit one apparatus count.

        Args:
            station_id: Station to edit
            key: Catalog key ("Engine_ID", "Medic", ...)
            delta: Signed change, or
            count: Absolute value (clamped at zero)

        Returns:
            The stored count, or None for an unknown station

        Raises:
            KeyError: Unknown catalog key
            ValueError: Neither or both of delta/count given
        """
        if (delta is None) == (count is None):
            raise ValueError("Give exactly one of delta or count")
        if station_id not in self.registry:
            return None
        if count is not None:
            return self.ledger.set_count(station_id, key, count)
        return self.ledger.increment(station_id, key, delta)

    # ═══════════════════════════════════════════════════════════════════════
    # 🚒 DISPATCH POLICY
    # ═══════════════════════════════════════════════════════════════════════

    def set_dispatch_policy(self, policy_id: str) -> DispatchPolicy:
        """
        Switch dispatch policy.

        Raises:
            ValueError: Unknown policy id
        """
        policy = get_dispatch_policy(policy_id)
        if policy is None:
            known = ", ".join(p.id for p in DISPATCH_POLICIES)
            raise ValueError(f"Unknown dispatch policy {policy_id!r} (known: {known})")
        self.policy = policy
        self.markers.set_policy(policy)
        logger.info(f"🚒 Dispatch policy set to {policy.id}")
        return policy

    # ═══════════════════════════════════════════════════════════════════════
    # 📤 OUTPUT
    # ═══════════════════════════════════════════════════════════════════════

    def station_apparatus(self, station_id: str) -> Optional[Dict[str, Any]]:
        """Apparatus manager view of one station, or None if unknown."""
        station = self.registry.get(station_id)
        if station is None:
            return None
        modified = set(self.ledger.modified_keys(station_id))
        original = self.ledger.original_counts(station_id)
        counts = self.ledger.counts(station_id)
        return {
            "stationId": station_id,
            "displayName": station.display_name,
            "apparatus": [a.as_dict() for a in self.ledger.apparatus(station_id)],
            "counts": [
                {
                    "key": kind.key,
                    "label": kind.label,
                    "count": counts.get(kind.key, 0),
                    "original": original.get(kind.key, 0),
                    "modified": kind.key in modified,
                }
                for kind in APPARATUS_CATALOG
            ],
        }

    def incident_markers(self) -> List[IncidentMarker]:
        return self.markers.build_incident_markers(self.incidents)

    def stations_payload(self) -> Dict[str, Any]:
        """
        Stations merged with live apparatus counts, for the simulation run.

        Apparatus is summarised as [{"type": label, "count": n}] for every
        kind with a positive count.
        """
        stations = []
        for station in self.registry:
            counts = self.ledger.counts(station.id)
            stations.append(
                {
                    "id": station.id,
                    "name": station.display_name,
                    "lat": station.lat,
                    "lon": station.lon,
                    "apparatus": [
                        {"type": kind.label, "count": counts[kind.key]}
                        for kind in APPARATUS_CATALOG
                        if counts.get(kind.key, 0) > 0
                    ],
                    "serviceZone": station.service_zone,
                }
            )
        return {
            "dispatchPolicy": self.policy.id,
            "serviceZoneSource": (
                self.zone_store.source if self.policy.requires_service_zones else None
            ),
            "stations": stations,
        }
