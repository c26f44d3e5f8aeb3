"""Station and incident markers: state machine, rendering and popups."""

from .marker_sync import (
    DragResult,
    IncidentMarker,
    MarkerCallbacks,
    MarkerState,
    MarkerSynchronizer,
    StationMarker,
    Tooltip,
)
from .popups import (
    assigned_tooltip_text,
    incident_icon_html,
    incident_popup_html,
    station_icon_html,
    station_popup_html,
    zone_policy_popup_html,
)

__all__ = [
    "DragResult",
    "IncidentMarker",
    "MarkerCallbacks",
    "MarkerState",
    "MarkerSynchronizer",
    "StationMarker",
    "Tooltip",
    "assigned_tooltip_text",
    "incident_icon_html",
    "incident_popup_html",
    "station_icon_html",
    "station_popup_html",
    "zone_policy_popup_html",
]
