"""
Zone geometry store for service-zone boundaries.

═══════════════════════════════════════════════════════════════════════════════
ARCHITECTURAL OVERVIEW
═══════════════════════════════════════════════════════════════════════════════

Responsibility: Hold the loaded service-zone polygons as ZonePolygon loops
for the assignment engine, and the source FeatureCollection for the map.

Key Features:
- GeoJSON FeatureCollection input (features with rings + property bag)
- Any OGR-readable file via geopandas (shapefile, GeoPackage, GeoJSON)
- Polygon and MultiPolygon outer rings, (lat, lon) vertex order
- Wholesale replacement on every load; linear scan, no spatial index

For Navigation: Use VS Code outline (Ctrl+Shift+O)

═══════════════════════════════════════════════════════════════════════════════
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import geopandas as gpd
from shapely.geometry import MultiPolygon, Polygon, shape
from shapely.geometry.base import BaseGeometry

from station_planner.models import ZonePolygon

logger = logging.getLogger(__name__)

CRS_WGS84 = "EPSG:4326"

EMPTY_COLLECTION: Dict[str, Any] = {"type": "FeatureCollection", "features": []}


# ═══════════════════════════════════════════════════════════════════════════════
# 🔷 GEOMETRY HELPERS
# ═══════════════════════════════════════════════════════════════════════════════


def _polygon_parts(geom: BaseGeometry) -> List[Polygon]:
    """Areal parts of a geometry (Polygon, MultiPolygon, or a collection of them)."""
    if geom is None or geom.is_empty:
        return []
    if isinstance(geom, Polygon):
        return [geom]
    if isinstance(geom, MultiPolygon):
        return list(geom.geoms)
    if hasattr(geom, "geoms"):
        parts: List[Polygon] = []
        for sub in geom.geoms:
            parts.extend(_polygon_parts(sub))
        return parts
    return []


def _ring_vertices(polygon: Polygon) -> Tuple[Tuple[float, float], ...]:
    """Outer ring as (lat, lon) pairs, without the repeated closing vertex."""
    coords = list(polygon.exterior.coords)
    if len(coords) > 1 and coords[0] == coords[-1]:
        coords = coords[:-1]
    # GeoJSON order is (lon, lat[, z])
    return tuple((float(c[1]), float(c[0])) for c in coords)


def _feature_fid(feature: Mapping[str, Any], properties: Mapping[str, Any]) -> Optional[Any]:
    if feature.get("id") is not None:
        return feature["id"]
    for key in ("fid", "FID", "OBJECTID"):
        if properties.get(key) is not None:
            return properties[key]
    return None


# ═══════════════════════════════════════════════════════════════════════════════
# 🗺️ ZONE GEOMETRY STORE
# ═══════════════════════════════════════════════════════════════════════════════


class ZoneGeometryStore:
    """
    Queryable set of service-zone polygons.

    Each Polygon feature contributes one ZonePolygon (its outer ring); each
    part of a MultiPolygon contributes one ZonePolygon carrying the feature's
    properties. Polygons keep load order, which decides overlapping matches.
    """

    def __init__(self) -> None:
        self._polygons: Tuple[ZonePolygon, ...] = ()
        self._feature_collection: Dict[str, Any] = dict(EMPTY_COLLECTION)
        self._zones_gdf: gpd.GeoDataFrame = gpd.GeoDataFrame()
        self._source: Optional[str] = None

    # ═══════════════════════════════════════════════════════════════════════
    # 📥 LOADING
    # ═══════════════════════════════════════════════════════════════════════

    def load_geojson(
        self, feature_collection: Mapping[str, Any], source: Optional[str] = None
    ) -> int:
        """
        Replace all zones with the features of a GeoJSON FeatureCollection.

        Args:
            feature_collection: {"type": "FeatureCollection", "features": [...]}
            source: Label for logging (file name or URL)

        Returns:
            Number of ZonePolygon loops loaded

        Raises:
            ValueError: If the input is not a FeatureCollection-like mapping
        """
        if not isinstance(feature_collection, Mapping):
            raise ValueError("Zone source must be a GeoJSON object")
        features = feature_collection.get("features")
        if not isinstance(features, (list, tuple)):
            raise ValueError("Zone source has no 'features' array")

        polygons: List[ZonePolygon] = []
        geometries: List[BaseGeometry] = []
        properties_list: List[Dict[str, Any]] = []

        for feature_index, feature in enumerate(features):
            if not isinstance(feature, Mapping):
                logger.warning(f"Zone feature {feature_index} is not an object, skipping")
                continue
            raw_properties = feature.get("properties")
            properties = dict(raw_properties) if isinstance(raw_properties, Mapping) else {}
            geometry = feature.get("geometry")
            if not geometry:
                logger.warning(f"Zone feature {feature_index} has no geometry, skipping")
                continue
            try:
                geom = shape(geometry)
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Zone feature {feature_index} has invalid geometry: {e}")
                continue

            parts = _polygon_parts(geom)
            if not parts:
                logger.warning(
                    f"Zone feature {feature_index} is {geom.geom_type}, not a polygon; skipping"
                )
                continue

            fid = _feature_fid(feature, properties)
            for part in parts:
                polygons.append(
                    ZonePolygon(
                        vertices=_ring_vertices(part),
                        properties=properties,
                        feature_index=feature_index,
                        fid=fid,
                    )
                )
            geometries.append(geom)
            properties_list.append(properties)

        self._polygons = tuple(polygons)
        self._feature_collection = dict(feature_collection)
        self._zones_gdf = (
            gpd.GeoDataFrame(properties_list, geometry=geometries, crs=CRS_WGS84)
            if geometries
            else gpd.GeoDataFrame()
        )
        self._source = source

        logger.info(
            f"📍 Loaded {len(self._polygons)} zone polygon(s) from "
            f"{len(geometries)} feature(s)" + (f" ({source})" if source else "")
        )
        return len(self._polygons)

    def load_file(self, path: Union[str, Path]) -> int:
        """
        Replace all zones with the contents of a vector file.

        Reprojects to WGS84 when the file declares another CRS.

        Args:
            path: GeoJSON, shapefile or any other format geopandas can read

        Returns:
            Number of ZonePolygon loops loaded
        """
        gdf = gpd.read_file(path)
        if gdf.crs is not None and gdf.crs.to_epsg() != 4326:
            logger.info(f"🔄 Reprojecting zones from {gdf.crs} to WGS84 (EPSG:4326)")
            gdf = gdf.to_crs(CRS_WGS84)
        return self.load_geojson(gdf.__geo_interface__, source=Path(path).name)

    def clear(self) -> None:
        """Remove all zones."""
        self._polygons = ()
        self._feature_collection = dict(EMPTY_COLLECTION)
        self._zones_gdf = gpd.GeoDataFrame()
        self._source = None

    # ═══════════════════════════════════════════════════════════════════════
    # 📤 PUBLIC API
    # ═══════════════════════════════════════════════════════════════════════

    @property
    def polygons(self) -> Tuple[ZonePolygon, ...]:
        """All zone loops in load order."""
        return self._polygons

    @property
    def source(self) -> Optional[str]:
        return self._source

    def __len__(self) -> int:
        return len(self._polygons)

    def __iter__(self) -> Iterator[ZonePolygon]:
        return iter(self._polygons)

    def __bool__(self) -> bool:
        return bool(self._polygons)

    def to_geojson(self) -> Dict[str, Any]:
        """Source FeatureCollection for map display."""
        return self._feature_collection

    def to_geodataframe(self) -> gpd.GeoDataFrame:
        """Loaded features as a GeoDataFrame (WGS84)."""
        return self._zones_gdf.copy()

    def bounds(self) -> Optional[Tuple[float, float, float, float]]:
        """(min_lon, min_lat, max_lon, max_lat) of all zones, or None when empty."""
        if self._zones_gdf.empty:
            return None
        total = self._zones_gdf.total_bounds
        return (float(total[0]), float(total[1]), float(total[2]), float(total[3]))

    def center(self) -> Optional[Tuple[float, float]]:
        """(lat, lon) centre of the zone bounds, for initial map view."""
        bounds = self.bounds()
        if bounds is None:
            return None
        return ((bounds[1] + bounds[3]) / 2.0, (bounds[0] + bounds[2]) / 2.0)

    def zone_names(self, priority: Sequence[str]) -> List[str]:
        """Distinct resolved zone names in load order (for zone pickers)."""
        from station_planner.zones.zone_assignment import resolve_zone_name

        names: List[str] = []
        for polygon in self._polygons:
            name = resolve_zone_name(polygon.properties, priority, polygon.fid)
            if name not in names:
                names.append(name)
        return names
