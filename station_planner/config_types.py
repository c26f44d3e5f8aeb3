"""
═══════════════════════════════════════════════════════════════════════════════
📋 UNIFIED CONFIGURATION TYPES
═══════════════════════════════════════════════════════════════════════════════

ARCHITECTURAL OVERVIEW
----------------------
Responsibility: Typed, frozen views over the CONFIG dictionary.

Usage:
    from station_planner.config import CONFIG
    from station_planner.config_types import AppConfig

    app_config = AppConfig.from_dict(CONFIG)
    app_config.markers.tooltip_seconds

For Navigation: Use VS Code outline (Ctrl+Shift+O)

NAVIGATION GUIDE
----------------
# ═════ 1. FILE PATHS CONFIGURATION
# ═════ 2. INGESTION CONFIGURATION
# ═════ 3. ZONE NAMING CONFIGURATION
# ═════ 4. MARKER CONFIGURATION
# ═════ 5. SERVER CONFIGURATION
# ═════ 6. APP CONFIG (MASTER FACADE)

═══════════════════════════════════════════════════════════════════════════════
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, Tuple

DEFAULT_NAME_PRIORITY: Tuple[str, ...] = (
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
)


# ═══════════════════════════════════════════════════════════════════════════════
# 📁 1. FILE PATHS CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class FilePathsConfig:
    """
    File path configuration.

    Attributes:
        data_dir: Root directory for relative station/incident/zone sources.
        log_dir: Directory for log files.
    """

    data_dir: str = "data"
    log_dir: str = "logs"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FilePathsConfig":
        """Create FilePathsConfig from CONFIG['file_paths'] dictionary."""
        return cls(
            data_dir=d.get("data_dir", "data"),
            log_dir=d.get("log_dir", "logs"),
        )

    @property
    def data_path(self) -> Path:
        """Get data directory as Path object."""
        return Path(self.data_dir)

    @property
    def log_path(self) -> Path:
        """Get log directory as Path object."""
        return Path(self.log_dir)


# ═══════════════════════════════════════════════════════════════════════════════
# 📥 2. INGESTION CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class IngestionConfig:
    """
    Tabular ingestion settings.

    Attributes:
        max_stations: Rows taken from a station file before NaN filtering.
        delimiter: Column delimiter for station/incident text.
        request_timeout_s: Timeout for remote fetches.
    """

    max_stations: int = 100
    delimiter: str = ","
    request_timeout_s: float = 20.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "IngestionConfig":
        """Create IngestionConfig from CONFIG['ingestion'] dictionary."""
        return cls(
            max_stations=d.get("max_stations", 100),
            delimiter=d.get("delimiter", ","),
            request_timeout_s=d.get("request_timeout_s", 20.0),
        )

    def __post_init__(self) -> None:
        """Validate ingestion limits."""
        if self.max_stations < 0:
            raise ValueError(f"max_stations must be >= 0, got {self.max_stations}")
        if len(self.delimiter) != 1:
            raise ValueError(f"delimiter must be one character, got {self.delimiter!r}")


# ═══════════════════════════════════════════════════════════════════════════════
# 🗺️ 3. ZONE NAMING CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ZoneNamingConfig:
    """
    Zone name resolution settings.

    Attributes:
        name_priority: Property names tried in order for a zone's display name.
    """

    name_priority: Tuple[str, ...] = DEFAULT_NAME_PRIORITY

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ZoneNamingConfig":
        """Create ZoneNamingConfig from CONFIG['zones'] dictionary."""
        return cls(
            name_priority=tuple(d.get("name_priority", DEFAULT_NAME_PRIORITY)),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# 📍 4. MARKER CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class MarkerConfig:
    """
    Station marker styling and interaction settings.

    Attributes:
        draggable: Whether station markers accept drag events.
        icon_size_px: Marker icon box size in pixels.
        icon_color: Station icon background colour.
        drag_cursor: Cursor while a marker is dragged.
        idle_cursor: Cursor for a draggable marker at rest.
        drag_z_index: Stacking order while dragging.
        tooltip_seconds: Lifetime of the "Assigned to" tooltip.
        incident_radius_px: Incident circle marker radius.
        incident_fill_color: Incident circle marker fill.
    """

    draggable: bool = True
    icon_size_px: int = 32
    icon_color: str = "#dc2626"
    drag_cursor: str = "grabbing"
    idle_cursor: str = "grab"
    drag_z_index: int = 1000
    tooltip_seconds: float = 2.0
    incident_radius_px: int = 6
    incident_fill_color: str = "#fbbf24"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MarkerConfig":
        """Create MarkerConfig from CONFIG['markers'] dictionary."""
        return cls(
            draggable=d.get("draggable", True),
            icon_size_px=d.get("icon_size_px", 32),
            icon_color=d.get("icon_color", "#dc2626"),
            drag_cursor=d.get("drag_cursor", "grabbing"),
            idle_cursor=d.get("idle_cursor", "grab"),
            drag_z_index=d.get("drag_z_index", 1000),
            tooltip_seconds=d.get("tooltip_seconds", 2.0),
            incident_radius_px=d.get("incident_radius_px", 6),
            incident_fill_color=d.get("incident_fill_color", "#fbbf24"),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# 🌐 5. SERVER CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ServerConfig:
    """Flask bind address."""

    host: str = "127.0.0.1"
    port: int = 5052

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ServerConfig":
        """Create ServerConfig from CONFIG['server'] dictionary."""
        return cls(host=d.get("host", "127.0.0.1"), port=d.get("port", 5052))


# ═══════════════════════════════════════════════════════════════════════════════
# 🎛️ 6. APP CONFIG (MASTER FACADE)
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class AppConfig:
    """
    Master configuration object for the station planner.

    Create it once at startup using AppConfig.from_dict(CONFIG) and pass it
    to the session.

    Attributes:
        default_policy: Dispatch policy id active at startup.
        file_paths: File path configuration.
        ingestion: Tabular ingestion settings.
        zones: Zone naming settings.
        markers: Marker settings.
        server: Flask settings.
    """

    default_policy: str = "nearest"
    file_paths: FilePathsConfig = field(default_factory=FilePathsConfig)
    ingestion: IngestionConfig = field(default_factory=IngestionConfig)
    zones: ZoneNamingConfig = field(default_factory=ZoneNamingConfig)
    markers: MarkerConfig = field(default_factory=MarkerConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "AppConfig":
        """
        Create AppConfig from the CONFIG dictionary.

        Args:
            config_dict: The CONFIG dictionary from config.py.

        Returns:
            AppConfig instance with all settings populated.
        """
        return cls(
            default_policy=config_dict.get("dispatch", {}).get(
                "default_policy", "nearest"
            ),
            file_paths=FilePathsConfig.from_dict(config_dict.get("file_paths", {})),
            ingestion=IngestionConfig.from_dict(config_dict.get("ingestion", {})),
            zones=ZoneNamingConfig.from_dict(config_dict.get("zones", {})),
            markers=MarkerConfig.from_dict(config_dict.get("markers", {})),
            server=ServerConfig.from_dict(config_dict.get("server", {})),
        )


def get_frontend_config(app_config: AppConfig) -> Dict[str, Any]:
    """
    Get configuration for the map frontend.

    Returns a dict suitable for JSON serialization.
    """
    markers = app_config.markers
    return {
        "markers": {
            "draggable": markers.draggable,
            "iconSize": [markers.icon_size_px, markers.icon_size_px],
            "iconAnchor": [markers.icon_size_px // 2, markers.icon_size_px // 2],
            "tooltipMs": int(markers.tooltip_seconds * 1000),
        },
        "incidents": {
            "radius": markers.incident_radius_px,
            "fillColor": markers.incident_fill_color,
        },
        "zoneNamePriority": list(app_config.zones.name_priority),
        "defaultPolicy": app_config.default_policy,
    }
