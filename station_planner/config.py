#!/usr/bin/env python3
"""
Station Planner - Configuration

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Centralized configuration for the station placement engine.
Single source of truth for data locations, ingestion limits, zone naming,
marker behaviour, dispatch policy and the REST server.

Configuration Sections:
1. file_paths: Data and log locations
2. ingestion: Tabular parsing and station limits
3. zones: Zone naming priority list
4. markers: Marker icon, drag feedback and tooltip settings
5. dispatch: Default dispatch policy
6. server: Flask host/port

Navigation Guide:
- Use VS Code outline (Ctrl+Shift+O) to jump between sections
"""

import os
from typing import Dict, Any, TypeVar, Callable, Optional

T = TypeVar("T")


def _env_or_default(
    key: str, default: T, type_fn: Optional[Callable[[str], T]] = None
) -> T:
    """
    Get value from environment variable or use default.

    Args:
        key: Environment variable name (e.g., "PLANNER_MAX_STATIONS")
        default: Default value if env var not set
        type_fn: Optional type conversion function (e.g., float, int)

    Returns:
        Value from environment (converted) or default

    Example:
        >>> _env_or_default("PLANNER_TOOLTIP_SECONDS", 2.0, float)
        2.0  # If env var not set
    """
    val = os.getenv(key)
    if val is not None:
        if type_fn is not None:
            return type_fn(val)
        return val  # type: ignore
    return default


def _env_bool(key: str, default: bool) -> bool:
    """
    Get boolean value from environment variable.

    Treats "true", "1", "yes" as True (case-insensitive).
    Any other value or unset returns default.
    """
    val = os.getenv(key)
    if val is None:
        return default
    return val.lower() in ("true", "1", "yes")


# ═══════════════════════════════════════════════════════════════════════════
# 🔧 ENVIRONMENT VARIABLE OVERRIDES
# ═══════════════════════════════════════════════════════════════════════════
# PLANNER_DATA_DIR         - directory served as the data root (default: "data")
# PLANNER_LOG_DIR          - log directory (default: "logs")
# PLANNER_MAX_STATIONS     - int, rows taken from a station file (default: 100)
# PLANNER_TOOLTIP_SECONDS  - float, "Assigned to" tooltip lifetime (default: 2.0)
# PLANNER_DRAGGABLE        - "true" or "false" (default: "true")
# PLANNER_DEFAULT_POLICY   - dispatch policy id (default: "nearest")
# PLANNER_HOST / PLANNER_PORT - Flask bind address
# ═══════════════════════════════════════════════════════════════════════════

# ═══════════════════════════════════════════════════════════════════════════
# ⚙️ MASTER CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════

CONFIG: Dict[str, Any] = {
    # ═══════════════════════════════════════════════════════════════════════
    # 📁 FILE PATHS
    # ═══════════════════════════════════════════════════════════════════════
    "file_paths": {
        # Relative station/incident/zone sources are resolved against this
        "data_dir": _env_or_default("PLANNER_DATA_DIR", "data"),
        "log_dir": _env_or_default("PLANNER_LOG_DIR", "logs"),
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 📥 INGESTION
    # ═══════════════════════════════════════════════════════════════════════
    "ingestion": {
        # Station files are truncated to this many rows before filtering
        "max_stations": _env_or_default("PLANNER_MAX_STATIONS", 100, int),
        "delimiter": ",",
        # Seconds before a remote fetch is abandoned
        "request_timeout_s": 20.0,
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 🗺️ SERVICE ZONES
    # ═══════════════════════════════════════════════════════════════════════
    "zones": {
        # Property names tried in order when naming a containing zone.
        # FIREBEAT/BEAT cover the fire-beat boundary files.
        "name_priority": [
            "name",
            "NAME",
            "Name",
            "FIREBEAT",
            "BEAT",
            "beat",
            "zone_id",
            "ZONE_ID",
            "id",
            "ID",
            "zone_name",
        ],
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 📍 STATION MARKERS
    # ═══════════════════════════════════════════════════════════════════════
    "markers": {
        "draggable": _env_bool("PLANNER_DRAGGABLE", True),
        "icon_size_px": 32,
        "icon_color": "#dc2626",
        "drag_cursor": "grabbing",
        "idle_cursor": "grab",
        "drag_z_index": 1000,
        "tooltip_seconds": _env_or_default("PLANNER_TOOLTIP_SECONDS", 2.0, float),
        # Incident overlay circle markers
        "incident_radius_px": 6,
        "incident_fill_color": "#fbbf24",
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 🚒 DISPATCH
    # ═══════════════════════════════════════════════════════════════════════
    "dispatch": {
        "default_policy": _env_or_default("PLANNER_DEFAULT_POLICY", "nearest"),
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 🌐 SERVER
    # ═══════════════════════════════════════════════════════════════════════
    "server": {
        "host": _env_or_default("PLANNER_HOST", "127.0.0.1"),
        "port": _env_or_default("PLANNER_PORT", 5052, int),
    },
}
