#!/usr/bin/env python3
"""
Marker Synchronizer - station markers as a projection of the registry

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Keep one map marker per registry station, drive the marker
interaction state machine, and turn marker gestures (drag, popup, delete,
zone pick) into registry operations or injected callbacks.

Marker states:

    UNRENDERED --sync--> RENDERED --drag_start--> DRAGGING --drag_end--> RENDERED
                         RENDERED --open_popup--> POPUP_OPEN --close_popup--> RENDERED

Key Features:
1. Rebuild-all on every registry change (marker ids are regenerated)
2. Drag end = position update + zone assignment in one registry batch
3. "Assigned to: X" tooltip with a fixed lifetime, tracked per station
4. Popup html regenerated from the registry each time a popup opens
5. Callback injection (MarkerCallbacks) instead of page-global handlers

Data flow is one-directional: markers never hold station state of their
own beyond what the last sync() copied out of the registry.

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
import itertools
import logging
import time

from station_planner.config_types import MarkerConfig
from station_planner.dispatch_policies import DispatchPolicy
from station_planner.ingest.station_factory import has_valid_coordinates
from station_planner.markers.popups import (
    assigned_tooltip_text,
    incident_icon_html,
    incident_popup_html,
    station_icon_html,
    station_popup_html,
    zone_policy_popup_html,
)
from station_planner.models import Incident, Station
from station_planner.registry import StationRegistry
from station_planner.zones.zone_assignment import ZoneAssignmentEngine

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


# ═══════════════════════════════════════════════════════════════════════════
# 📦 TYPES
# ═══════════════════════════════════════════════════════════════════════════


class MarkerState(Enum):
    UNRENDERED = "unrendered"
    RENDERED = "rendered"
    DRAGGING = "dragging"
    POPUP_OPEN = "popup_open"


@dataclass
class MarkerCallbacks:
    """
    Handlers for marker-originated requests.

    Attributes:
        on_delete: (station_id) -> None, from the popup delete button
        on_zone_update: (station_id, zone or None) -> None, from the zone picker
        on_popup_open: (station_id) -> None, e.g. open the apparatus manager
        on_popup_close: (station_id) -> None
        on_tooltip: (station_id, text, seconds) -> None, when a tooltip is shown
    """

    on_delete: Optional[Callable[[str], None]] = None
    on_zone_update: Optional[Callable[[str, Optional[str]], None]] = None
    on_popup_open: Optional[Callable[[str], None]] = None
    on_popup_close: Optional[Callable[[str], None]] = None
    on_tooltip: Optional[Callable[[str, str, float], None]] = None


@dataclass
class StationMarker:
    marker_id: str
    station_id: str
    lat: float
    lon: float
    icon_html: str
    popup_html: str
    draggable: bool
    state: MarkerState = MarkerState.UNRENDERED
    cursor: str = ""
    z_index: Optional[int] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "markerId": self.marker_id,
            "stationId": self.station_id,
            "lat": self.lat,
            "lon": self.lon,
            "iconHtml": self.icon_html,
            "popupHtml": self.popup_html,
            "draggable": self.draggable,
            "state": self.state.value,
            "cursor": self.cursor,
            "zIndex": self.z_index,
        }


@dataclass(frozen=True)
class Tooltip:
    station_id: str
    text: str
    expires_at: float

    def as_dict(self) -> Dict[str, Any]:
        return {"stationId": self.station_id, "text": self.text, "expiresAt": self.expires_at}


@dataclass(frozen=True)
class DragResult:
    """
    Outcome of a completed drag.

    Attributes:
        station: Station as stored after the drag
        previous_zone: service_zone before the drag
        zone_changed: True if zone assignment changed service_zone
        tooltip: Tooltip shown for the change, if any
        marker_id: Id of the station's marker after the rebuild
    """

    station: Station
    previous_zone: Optional[str]
    zone_changed: bool
    tooltip: Optional[Tooltip] = None
    marker_id: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "station": self.station.as_dict(),
            "previousZone": self.previous_zone,
            "zoneChanged": self.zone_changed,
            "tooltip": self.tooltip.as_dict() if self.tooltip else None,
            "markerId": self.marker_id,
        }


@dataclass(frozen=True)
class IncidentMarker:
    incident_id: str
    lat: float
    lon: float
    icon_html: str
    popup_html: str
    radius: int
    fill_color: str

    def as_dict(self) -> Dict[str, Any]:
        return {
            "incidentId": self.incident_id,
            "lat": self.lat,
            "lon": self.lon,
            "iconHtml": self.icon_html,
            "popupHtml": self.popup_html,
            "radius": self.radius,
            "fillColor": self.fill_color,
        }


# ═══════════════════════════════════════════════════════════════════════════
# 🗺️ SYNCHRONIZER
# ═══════════════════════════════════════════════════════════════════════════


class MarkerSynchronizer:
    """
    Projects StationRegistry contents onto station markers.

    Subscribes to the registry on construction; call detach() to stop.
    Requests naming an unknown marker id (including ids from before the last
    rebuild) or arriving in the wrong state are logged and ignored.
    """

    def __init__(
        self,
        registry: StationRegistry,
        zone_engine: ZoneAssignmentEngine,
        policy: DispatchPolicy,
        callbacks: Optional[MarkerCallbacks] = None,
        draggable: bool = True,
        config: Optional[MarkerConfig] = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self.registry = registry
        self.zone_engine = zone_engine
        self.policy = policy
        self.callbacks = callbacks or MarkerCallbacks()
        self.draggable = draggable
        self.config = config or MarkerConfig()
        self._clock = clock

        self._markers: Dict[str, StationMarker] = {}
        self._by_station: Dict[str, str] = {}
        self._tooltips: Dict[str, Tooltip] = {}
        self._generation = itertools.count(1)
        self._current_generation = 0

        self._unsubscribe: Optional[Callable[[], None]] = registry.subscribe(self.sync)

    def detach(self) -> None:
        """Stop following the registry and drop all markers."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._markers.clear()
        self._by_station.clear()

    # ═══════════════════════════════════════════════════════════════════════
    # 🔄 RENDERING
    # ═══════════════════════════════════════════════════════════════════════

    def sync(self, stations: Optional[Iterable[Station]] = None) -> None:
        """
        Tear down every marker and rebuild from the registry.

        Args:
            stations: Snapshot delivered by the registry; read from the
                registry when omitted
        """
        if stations is None:
            stations = self.registry.stations

        self._current_generation = next(self._generation)
        markers: Dict[str, StationMarker] = {}
        by_station: Dict[str, str] = {}
        for station in stations:
            marker = self._build_marker(station)
            markers[marker.marker_id] = marker
            by_station[station.id] = marker.marker_id

        self._markers = markers
        self._by_station = by_station
        # Tooltips of deleted stations go with their markers
        self._tooltips = {k: v for k, v in self._tooltips.items() if k in by_station}
        logger.debug(f"Rebuilt {len(markers)} station marker(s), generation {self._current_generation}")

    def _build_marker(self, station: Station) -> StationMarker:
        return StationMarker(
            marker_id=f"marker-{self._current_generation}-{station.id}",
            station_id=station.id,
            lat=station.lat,
            lon=station.lon,
            icon_html=station_icon_html(
                station, self.config.icon_size_px, self.config.icon_color
            ),
            popup_html=self._popup_for(station),
            draggable=self.draggable,
            state=MarkerState.RENDERED,
            cursor=self.config.idle_cursor if self.draggable else "",
            z_index=None,
        )

    def _popup_for(self, station: Station) -> str:
        if self.policy.requires_service_zones:
            names = self.zone_engine.store.zone_names(self.zone_engine.priority)
            return zone_policy_popup_html(station, names)
        return station_popup_html(station)

    def set_policy(self, policy: DispatchPolicy) -> None:
        """Switch dispatch policy; popups are rebuilt for the new variant."""
        self.policy = policy
        self.sync()

    # ═══════════════════════════════════════════════════════════════════════
    # 🔍 LOOKUP
    # ═══════════════════════════════════════════════════════════════════════

    @property
    def markers(self) -> List[StationMarker]:
        return list(self._markers.values())

    def get_marker(self, marker_id: str) -> Optional[StationMarker]:
        return self._markers.get(marker_id)

    def marker_for_station(self, station_id: str) -> Optional[StationMarker]:
        marker_id = self._by_station.get(station_id)
        return self._markers.get(marker_id) if marker_id else None

    def _require(
        self, marker_id: str, expected: Tuple[MarkerState, ...], action: str
    ) -> Optional[StationMarker]:
        marker = self._markers.get(marker_id)
        if marker is None:
            logger.warning(f"⚠️ {action}: unknown or stale marker {marker_id}, ignoring")
            return None
        if marker.state not in expected:
            logger.warning(
                f"⚠️ {action}: marker {marker_id} is {marker.state.value}, ignoring"
            )
            return None
        return marker

    # ═══════════════════════════════════════════════════════════════════════
    # ✋ DRAGGING
    # ═══════════════════════════════════════════════════════════════════════

    def drag_start(self, marker_id: str) -> bool:
        """RENDERED -> DRAGGING with grabbing cursor and raised z-index."""
        marker = self._require(marker_id, (MarkerState.RENDERED,), "drag_start")
        if marker is None:
            return False
        if not marker.draggable:
            logger.warning(f"⚠️ drag_start: marker {marker_id} is not draggable")
            return False
        marker.state = MarkerState.DRAGGING
        marker.cursor = self.config.drag_cursor
        marker.z_index = self.config.drag_z_index
        return True

    def drag_end(self, marker_id: str, lat: float, lon: float) -> Optional[DragResult]:
        """
        DRAGGING -> RENDERED; store the new position and, under a zone-based
        policy, the zone containing it.

        Position and zone are written inside one registry batch, so
        observers see a single change. A drop outside every zone keeps the
        current service_zone. A drop at non-finite or out-of-range coordinates
        is ignored and the station keeps its position.

        Args:
            marker_id: Marker being dropped
            lat, lon: Drop position

        Returns:
            DragResult, or None if the request was ignored
        """
        marker = self._require(marker_id, (MarkerState.DRAGGING,), "drag_end")
        if marker is None:
            return None
        marker.state = MarkerState.RENDERED
        marker.cursor = self.config.idle_cursor
        marker.z_index = None

        station = self.registry.get(marker.station_id)
        if station is None:
            logger.warning(f"⚠️ drag_end: station {marker.station_id} no longer exists")
            return None
        if not has_valid_coordinates(lat, lon):
            logger.warning(f"⚠️ drag_end: ignoring drop of {marker.station_id} at ({lat}, {lon})")
            return None

        previous_zone = station.service_zone
        with self.registry.batch():
            updated = self.registry.update_position(station.id, lat, lon)
            zone = self.zone_engine.assign_after_drag(station, lat, lon, self.policy)
            if zone is not None and zone != previous_zone:
                updated = self.registry.update_zone(station.id, zone)

        zone_changed = zone is not None and zone != previous_zone
        tooltip = self._show_tooltip(station.id, zone) if zone_changed else None
        if zone_changed:
            logger.info(f"📍 Station {station.id} assigned to zone {zone}")

        new_marker = self.marker_for_station(station.id)
        return DragResult(
            station=updated,
            previous_zone=previous_zone,
            zone_changed=zone_changed,
            tooltip=tooltip,
            marker_id=new_marker.marker_id if new_marker else None,
        )

    # ═══════════════════════════════════════════════════════════════════════
    # 💬 TOOLTIPS
    # ═══════════════════════════════════════════════════════════════════════

    def _show_tooltip(self, station_id: str, zone: str) -> Tooltip:
        seconds = self.config.tooltip_seconds
        tooltip = Tooltip(
            station_id=station_id,
            text=assigned_tooltip_text(zone),
            expires_at=self._clock() + seconds,
        )
        self._tooltips[station_id] = tooltip
        if self.callbacks.on_tooltip:
            self.callbacks.on_tooltip(station_id, tooltip.text, seconds)
        return tooltip

    def active_tooltips(self) -> List[Tooltip]:
        """Tooltips still showing; expired ones are removed."""
        now = self._clock()
        self._tooltips = {k: t for k, t in self._tooltips.items() if t.expires_at > now}
        return list(self._tooltips.values())

    # ═══════════════════════════════════════════════════════════════════════
    # 🪟 POPUPS
    # ═══════════════════════════════════════════════════════════════════════

    def open_popup(self, marker_id: str) -> Optional[str]:
        """
        RENDERED -> POPUP_OPEN.

        Returns:
            Popup html built from the registry's current station, or None if
            the request was ignored
        """
        marker = self._require(marker_id, (MarkerState.RENDERED,), "open_popup")
        if marker is None:
            return None
        station = self.registry.get(marker.station_id)
        if station is None:
            logger.warning(f"⚠️ open_popup: station {marker.station_id} no longer exists")
            return None

        marker.popup_html = self._popup_for(station)
        marker.state = MarkerState.POPUP_OPEN
        if self.callbacks.on_popup_open:
            self.callbacks.on_popup_open(station.id)
        return marker.popup_html

    def close_popup(self, marker_id: str) -> bool:
        """POPUP_OPEN -> RENDERED."""
        marker = self._require(marker_id, (MarkerState.POPUP_OPEN,), "close_popup")
        if marker is None:
            return False
        marker.state = MarkerState.RENDERED
        if self.callbacks.on_popup_close:
            self.callbacks.on_popup_close(marker.station_id)
        return True

    # ═══════════════════════════════════════════════════════════════════════
    # 📨 POPUP REQUESTS
    # ═══════════════════════════════════════════════════════════════════════

    def request_delete(self, marker_id: str) -> bool:
        """Forward a delete click to callbacks.on_delete."""
        marker = self._require(marker_id, tuple(MarkerState), "request_delete")
        if marker is None:
            return False
        if self.callbacks.on_delete is None:
            logger.warning("⚠️ request_delete: no delete handler installed")
            return False
        self.callbacks.on_delete(marker.station_id)
        return True

    def request_zone_update(self, marker_id: str, zone: Optional[str]) -> bool:
        """Forward a zone pick to callbacks.on_zone_update ("" clears the zone)."""
        marker = self._require(marker_id, tuple(MarkerState), "request_zone_update")
        if marker is None:
            return False
        if self.callbacks.on_zone_update is None:
            logger.warning("⚠️ request_zone_update: no zone handler installed")
            return False
        self.callbacks.on_zone_update(marker.station_id, zone or None)
        return True

    # ═══════════════════════════════════════════════════════════════════════
    # 🔥 INCIDENT OVERLAY
    # ═══════════════════════════════════════════════════════════════════════

    def build_incident_markers(self, incidents: Iterable[Incident]) -> List[IncidentMarker]:
        """Non-interactive incident markers, one per incident."""
        return [
            IncidentMarker(
                incident_id=incident.id,
                lat=incident.lat,
                lon=incident.lon,
                icon_html=incident_icon_html(incident),
                popup_html=incident_popup_html(incident),
                radius=self.config.incident_radius_px,
                fill_color=self.config.incident_fill_color,
            )
            for incident in incidents
        ]
