#!/usr/bin/env python3
"""
Station Planner - Flask Server

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: REST surface over one PlannerSession for the map client.
Loading, station edits, marker gestures, apparatus counts and the
simulation payload are all exposed as JSON endpoints.

Key Interactions:
- PlannerSession owns all state; routes translate JSON to session calls
- Marker gestures arrive by marker id; stale ids are ignored (409)
- Errors follow one shape: {"error": message} with 400/404/409/500

Navigation Guide:
- ROUTES: config, loading, stations, markers, apparatus, dispatch, payload
- STARTUP: setup_logging, initialize_services, main

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
import logging
import sys

from flask import Flask, jsonify, request
from flask_cors import CORS

from station_planner.config import CONFIG
from station_planner.config_types import AppConfig, get_frontend_config
from station_planner.dispatch_policies import DISPATCH_POLICIES
from station_planner.ingest.station_factory import has_valid_coordinates
from station_planner.session import PlannerSession

# ═══════════════════════════════════════════════════════════════════════════
# 🌐 FLASK APPLICATION
# ═══════════════════════════════════════════════════════════════════════════

app = Flask(__name__)
CORS(app)

# Global session - initialized on startup
session: Optional[PlannerSession] = None
app_config: AppConfig = AppConfig.from_dict(CONFIG)

logger = logging.getLogger(__name__)


def _not_initialized():
    return jsonify({"error": "Server not initialized"}), 500


def _error(message: str, status: int):
    return jsonify({"error": message}), status


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _lat_lon(data: Dict[str, Any]) -> Tuple[float, float]:
    """lat/lon from a request body; "lng" is accepted for lon."""
    lon = data.get("lon", data.get("lng"))
    if "lat" not in data or lon is None:
        raise ValueError("Missing lat/lon in request body")
    try:
        lat, lon = float(data["lat"]), float(lon)
    except (TypeError, ValueError):
        raise ValueError("lat/lon must be numbers")
    if not has_valid_coordinates(lat, lon):
        raise ValueError(f"lat/lon out of range: {lat}, {lon}")
    return lat, lon


# ═══════════════════════════════════════════════════════════════════════════
# 🛣️ API ROUTES - CONFIG & LOADING
# ═══════════════════════════════════════════════════════════════════════════


@app.route("/api/config")
def get_config():
    """Frontend settings plus the available dispatch policies."""
    config = get_frontend_config(app_config)
    config["dispatchPolicies"] = [p.as_dict() for p in DISPATCH_POLICIES]
    if session is not None:
        config["activePolicy"] = session.policy.id
    return jsonify(config)


@app.route("/api/load", methods=["POST"])
def load_source():
    """
    Load a data source into the session.

    Request Body:
        {
            "kind": "stations" | "optimized_stations" | "zones" | "incidents",
            "source": str,            # URL or path (relative to the data dir)
            "existing": str,          # optimized_stations only; defaults to the
                                      # last existing-station source
            "start": str, "end": str  # incidents only, optional
        }
    """
    if session is None:
        return _not_initialized()

    data = _json_body()
    kind = data.get("kind")
    source = data.get("source")
    if not kind or not source:
        return _error("Missing kind/source in request body", 400)

    if kind == "stations":
        loaded = session.load_stations(source)
    elif kind == "optimized_stations":
        loaded = session.load_optimized_stations(source, data.get("existing"))
    elif kind == "zones":
        loaded = session.load_zones(source)
    elif kind == "incidents":
        try:
            loaded = session.load_incidents(source, data.get("start"), data.get("end"))
        except ValueError as e:
            return _error(f"Invalid date range: {e}", 400)
    else:
        return _error(f"Unknown source kind: {kind}", 400)

    if not loaded:
        return _error(f"Failed to load {kind} from {source}", 502)
    return jsonify(
        {
            "success": True,
            "kind": kind,
            "stations": len(session.registry),
            "zones": len(session.zone_store),
            "incidents": len(session.incidents),
        }
    )


# ═══════════════════════════════════════════════════════════════════════════
# 🚒 API ROUTES - STATIONS
# ═══════════════════════════════════════════════════════════════════════════


@app.route("/api/stations")
def get_stations():
    if session is None:
        return _not_initialized()
    return jsonify({"stations": [s.as_dict() for s in session.registry]})


@app.route("/api/stations", methods=["POST"])
def add_station():
    """
    Add a custom station at a clicked position.

    Request Body:
        {"lat": float, "lon": float}
    """
    if session is None:
        return _not_initialized()
    try:
        lat, lon = _lat_lon(_json_body())
    except ValueError as e:
        return _error(str(e), 400)

    station = session.add_custom_station(lat, lon)
    return jsonify({"success": True, "station": station.as_dict()}), 201


@app.route("/api/stations/<station_id>", methods=["DELETE"])
def delete_station(station_id: str):
    """Delete a station. Deleting an unknown id succeeds with deleted=false."""
    if session is None:
        return _not_initialized()
    removed = session.delete_station(station_id)
    return jsonify({"success": True, "deleted": removed, "count": len(session.registry)})


@app.route("/api/stations/<station_id>/zone", methods=["POST"])
def update_station_zone(station_id: str):
    """
    Set a station's service zone by hand.

    Request Body:
        {"zone": str | null}
    """
    if session is None:
        return _not_initialized()
    data = _json_body()
    if "zone" not in data:
        return _error("Missing zone in request body", 400)

    zone = data["zone"]
    if zone is not None and not isinstance(zone, str):
        return _error("zone must be a string or null", 400)

    station = session.update_service_zone(station_id, zone or None)
    if station is None:
        return _error(f"Unknown station: {station_id}", 404)
    return jsonify({"success": True, "station": station.as_dict()})


@app.route("/api/zones")
def get_zones():
    """Loaded zone boundaries as a GeoJSON FeatureCollection."""
    if session is None:
        return _not_initialized()
    return jsonify(session.zone_store.to_geojson())


@app.route("/api/incidents")
def get_incidents():
    """Incident overlay markers."""
    if session is None:
        return _not_initialized()
    return jsonify(
        {
            "incidents": [i.as_dict() for i in session.incidents],
            "markers": [m.as_dict() for m in session.incident_markers()],
        }
    )


# ═══════════════════════════════════════════════════════════════════════════
# 📍 API ROUTES - MARKERS
# ═══════════════════════════════════════════════════════════════════════════


@app.route("/api/markers")
def get_markers():
    """Station markers plus the tooltips still showing."""
    if session is None:
        return _not_initialized()
    return jsonify(
        {
            "markers": [m.as_dict() for m in session.markers.markers],
            "tooltips": [t.as_dict() for t in session.markers.active_tooltips()],
        }
    )


@app.route("/api/markers/<marker_id>/drag", methods=["POST"])
def drag_marker(marker_id: str):
    """
    Complete a drag gesture: drag start then drop at lat/lon.

    Request Body:
        {"lat": float, "lon": float}

    Returns:
        DragResult JSON; 409 when the marker id is stale or busy.
    """
    if session is None:
        return _not_initialized()
    try:
        lat, lon = _lat_lon(_json_body())
    except ValueError as e:
        return _error(str(e), 400)

    if not session.markers.drag_start(marker_id):
        return _error(f"Marker {marker_id} cannot be dragged", 409)
    result = session.markers.drag_end(marker_id, lat, lon)
    if result is None:
        return _error(f"Drag of marker {marker_id} was ignored", 409)
    return jsonify({"success": True, **result.as_dict()})


@app.route("/api/markers/<marker_id>/popup", methods=["POST"])
def open_marker_popup(marker_id: str):
    if session is None:
        return _not_initialized()
    html = session.markers.open_popup(marker_id)
    if html is None:
        return _error(f"Popup for marker {marker_id} cannot be opened", 409)
    return jsonify({"markerId": marker_id, "html": html})


@app.route("/api/markers/<marker_id>/popup", methods=["DELETE"])
def close_marker_popup(marker_id: str):
    if session is None:
        return _not_initialized()
    if not session.markers.close_popup(marker_id):
        return _error(f"Popup for marker {marker_id} is not open", 409)
    return jsonify({"success": True})


# ═══════════════════════════════════════════════════════════════════════════
# 🧰 API ROUTES - APPARATUS
# ═══════════════════════════════════════════════════════════════════════════


@app.route("/api/stations/<station_id>/apparatus")
def get_station_apparatus(station_id: str):
    if session is None:
        return _not_initialized()
    details = session.station_apparatus(station_id)
    if details is None:
        return _error(f"Unknown station: {station_id}", 404)
    return jsonify(details)


@app.route("/api/stations/<station_id>/apparatus", methods=["POST"])
def change_station_apparatus(station_id: str):
    """
    Edit one apparatus count.

    Request Body:
        {"key": "Engine_ID", "delta": 1}  or  {"key": "Engine_ID", "count": 3}
    """
    if session is None:
        return _not_initialized()
    data = _json_body()
    key = data.get("key")
    if not key:
        return _error("Missing key in request body", 400)

    try:
        delta = int(data["delta"]) if data.get("delta") is not None else None
        count = int(data["count"]) if data.get("count") is not None else None
        stored = session.change_apparatus_count(station_id, key, delta=delta, count=count)
    except KeyError:
        return _error(f"Unknown apparatus key: {key}", 400)
    except (TypeError, ValueError) as e:
        return _error(str(e), 400)

    if stored is None:
        return _error(f"Unknown station: {station_id}", 404)
    return jsonify({"success": True, "key": key, "count": stored, **session.station_apparatus(station_id)})


# ═══════════════════════════════════════════════════════════════════════════
# 📡 API ROUTES - DISPATCH & PAYLOAD
# ═══════════════════════════════════════════════════════════════════════════


@app.route("/api/dispatch-policy", methods=["POST"])
def set_dispatch_policy():
    """
    Switch dispatch policy.

    Request Body:
        {"policy": "nearest" | "firebeats"}
    """
    if session is None:
        return _not_initialized()
    policy_id = _json_body().get("policy")
    if not policy_id:
        return _error("Missing policy in request body", 400)
    try:
        policy = session.set_dispatch_policy(policy_id)
    except ValueError as e:
        return _error(str(e), 400)
    return jsonify({"success": True, "policy": policy.as_dict()})


@app.route("/api/payload")
def get_payload():
    """Stations merged with live apparatus counts."""
    if session is None:
        return _not_initialized()
    return jsonify(session.stations_payload())


# ═══════════════════════════════════════════════════════════════════════════
# 🚀 STARTUP
# ═══════════════════════════════════════════════════════════════════════════


def setup_logging(log_dir: Path, level: int = logging.INFO) -> Path:
    """
    Configure root logging with file and console handlers.

    Returns:
        Path of the log file for this run
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / f"planner_{datetime.now().strftime('%m%d_%H%M')}.log"

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    # File handler
    fh = logging.FileHandler(log_path, encoding="utf-8")
    fh.setLevel(level)
    fh.setFormatter(
        logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
        )
    )

    # Console handler
    ch = logging.StreamHandler(sys.stdout)
    ch.setLevel(level)
    ch.setFormatter(logging.Formatter("%(message)s"))

    root.addHandler(fh)
    root.addHandler(ch)
    return log_path


def initialize_services(
    config: Optional[AppConfig] = None,
    stations: Optional[str] = None,
    zones: Optional[str] = None,
    incidents: Optional[str] = None,
) -> bool:
    """
    Create the global session and load any startup sources.

    Returns:
        True if the session exists and every given source loaded.
    """
    global session, app_config

    if config is not None:
        app_config = config
    logger.info(f"🚀 Initializing planner session (data dir: {app_config.file_paths.data_dir})")
    session = PlannerSession(app_config)

    ok = True
    if stations:
        ok = session.load_stations(stations) and ok
    if zones:
        ok = session.load_zones(zones) and ok
    if incidents:
        ok = session.load_incidents(incidents) and ok

    logger.info(
        f"✅ {len(session.registry)} station(s), {len(session.zone_store)} zone polygon(s), "
        f"{len(session.incidents)} incident(s)"
    )
    return ok


def main() -> None:
    """Main entry point - initialize and start server."""
    import argparse

    parser = argparse.ArgumentParser(description="Station placement planner server")
    parser.add_argument("--stations", help="Station CSV (URL or path)")
    parser.add_argument("--zones", help="Service zone file (GeoJSON, shapefile, ...)")
    parser.add_argument("--incidents", help="Incident CSV (URL or path)")
    parser.add_argument("--host", default=app_config.server.host)
    parser.add_argument("--port", type=int, default=app_config.server.port)
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug output")
    args = parser.parse_args()

    log_path = setup_logging(
        app_config.file_paths.log_path, logging.DEBUG if args.verbose else logging.INFO
    )
    logger.info(f"📝 Logging to {log_path}")

    if not initialize_services(
        stations=args.stations, zones=args.zones, incidents=args.incidents
    ):
        logger.warning("⚠️ Some startup sources failed to load; continuing with what loaded")

    logger.info(f"🌐 Starting server at http://{args.host}:{args.port}")
    app.run(host=args.host, port=args.port, debug=False)


if __name__ == "__main__":
    main()
