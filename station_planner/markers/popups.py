#!/usr/bin/env python3
"""
Marker HTML Generators

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Generate HTML strings for station and incident markers.
Pure functions that return HTML strings; no registry or map state.

Generators:
- Station icon (numbered circle)
- Station popup (detailed, or zone-policy variant with a zone picker)
- Incident icon and popup
- "Assigned to" tooltip text

Popup buttons carry data-action / data-station-id attributes. The page
routes those clicks to the synchronizer's request_delete and
request_zone_update; nothing is registered on the global window object.

Navigation Guide:
- Use VS Code outline (Ctrl+Shift+O) to jump between functions
"""

from html import escape
from typing import Optional, Sequence

from station_planner.models import (
    ApparatusStatus,
    Incident,
    IncidentCategory,
    Station,
)


# ===========================================================================
# STYLING CONSTANTS
# ===========================================================================

POPUP_STYLE = "font-family: Arial, sans-serif; max-width: 240px;"
MUTED_STYLE = "color: #666; font-size: 12px;"
SECTION_STYLE = "margin-top: 6px; font-size: 12px;"
BUTTON_STYLE = (
    "margin-top: 8px; padding: 4px 8px; border: none; border-radius: 4px; "
    "color: white; font-size: 12px; cursor: pointer;"
)

STATUS_COLORS = {
    ApparatusStatus.AVAILABLE: "#16a34a",
    ApparatusStatus.IN_USE: "#d97706",
    ApparatusStatus.OUT_OF_SERVICE: "#dc2626",
}

INCIDENT_ICONS = {
    IncidentCategory.EMS: "🚑",
    IncidentCategory.WARNING: "⚠️",
    IncidentCategory.FIRE: "🔥",
}

UNASSIGNED_ZONE_LABEL = "Not assigned"


# ===========================================================================
# STATION ICON
# ===========================================================================


def station_icon_html(station: Station, size_px: int = 32, color: str = "#dc2626") -> str:
    """Numbered circle for a station marker."""
    return (
        f'<div style="background-color: {color}; width: {size_px}px; '
        f"height: {size_px}px; border-radius: 50%; border: 2px solid white; "
        f"display: flex; align-items: center; justify-content: center; "
        f"color: white; font-weight: bold; font-size: 11px; "
        f'font-family: Arial, sans-serif; box-shadow: 0 2px 4px rgba(0,0,0,0.2);">'
        f"{station.station_number}"
        f"</div>"
    )


# ===========================================================================
# STATION POPUPS
# ===========================================================================


def _apparatus_list_html(station: Station) -> str:
    if not station.apparatus:
        return f'<div style="{SECTION_STYLE}"><i>No apparatus</i></div>'

    rows = []
    for item in station.apparatus:
        color = STATUS_COLORS.get(item.status, "#666")
        rows.append(
            f'<li style="margin: 2px 0;">'
            f'<span style="display: inline-block; width: 8px; height: 8px; '
            f'border-radius: 50%; background-color: {color}; margin-right: 6px;"></span>'
            f"{escape(item.name)} "
            f'<span style="{MUTED_STYLE}">({escape(item.status.value)})</span>'
            f"</li>"
        )
    return (
        f'<div style="{SECTION_STYLE}"><b>Apparatus ({len(station.apparatus)})</b>'
        f'<ul style="margin: 4px 0; padding-left: 14px; list-style: none;">'
        f"{''.join(rows)}</ul></div>"
    )


def _delete_button_html(station: Station) -> str:
    return (
        f'<button type="button" data-action="delete-station" '
        f'data-station-id="{escape(station.id, quote=True)}" '
        f'style="{BUTTON_STYLE} background-color: #dc2626;">Delete Station</button>'
    )


def _popup_header_html(station: Station) -> str:
    return (
        f"<b>{escape(station.display_name)}</b><br>"
        f'<span style="{MUTED_STYLE}">{escape(station.address)}</span>'
    )


def station_popup_html(station: Station) -> str:
    """
    Detailed popup: name, address, apparatus with status, delete button.

    Used when the dispatch policy does not use service zones.
    """
    return (
        f'<div style="{POPUP_STYLE}">'
        f"{_popup_header_html(station)}"
        f"{_apparatus_list_html(station)}"
        f"{_delete_button_html(station)}"
        f"</div>"
    )


def zone_policy_popup_html(station: Station, zone_names: Sequence[str] = ()) -> str:
    """
    Popup for zone-based dispatch: adds the current service zone and a
    picker to set it by hand.

    Args:
        station: Station to describe
        zone_names: Selectable zone names (from the loaded zones)
    """
    current = station.service_zone
    options = [f'<option value="">{UNASSIGNED_ZONE_LABEL}</option>']
    names = list(zone_names)
    if current and current not in names:
        names.insert(0, current)
    for name in names:
        selected = " selected" if name == current else ""
        options.append(
            f'<option value="{escape(name, quote=True)}"{selected}>{escape(name)}</option>'
        )

    zone_label = escape(current) if current else UNASSIGNED_ZONE_LABEL
    return (
        f'<div style="{POPUP_STYLE}">'
        f"{_popup_header_html(station)}"
        f'<div style="{SECTION_STYLE}"><b>Service Zone:</b> {zone_label}</div>'
        f'<select data-action="update-zone" '
        f'data-station-id="{escape(station.id, quote=True)}" '
        f'style="margin-top: 4px; width: 100%; font-size: 12px;">'
        f"{''.join(options)}</select>"
        f"{_apparatus_list_html(station)}"
        f"{_delete_button_html(station)}"
        f"</div>"
    )


def assigned_tooltip_text(zone: str) -> str:
    return f"Assigned to: {zone}"


# ===========================================================================
# INCIDENTS
# ===========================================================================


def incident_icon_html(incident: Incident) -> str:
    icon = INCIDENT_ICONS.get(incident.incident_type_category, INCIDENT_ICONS[IncidentCategory.FIRE])
    return (
        '<div style="display: flex; align-items: center; justify-content: center; '
        f'font-size: 16px;">{icon}</div>'
    )


def incident_popup_html(incident: Incident, category_label: Optional[str] = None) -> str:
    """Incident type, timestamp and category."""
    category = category_label if category_label is not None else incident.category
    return (
        f'<div style="font-family: Arial, sans-serif; max-width: 200px;">'
        f"<b>{escape(incident.incident_type)}</b><br>"
        f'<span style="{MUTED_STYLE}">{escape(incident.datetime)}</span><br>'
        f'<span style="{MUTED_STYLE}">Category: {escape(category)}</span>'
        f"</div>"
    )
