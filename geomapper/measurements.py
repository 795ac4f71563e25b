"""Geodesic length and area of drawn elements (GeoJSON, WGS84)."""

import math
from dataclasses import dataclass

from pyproj import Geod
from shapely.errors import ShapelyError
from shapely.geometry import (
    LineString, MultiLineString, MultiPoint, MultiPolygon, Point, Polygon, shape,
)

from .gazetteer import closest_place

GEOD = Geod(ellps="WGS84")


@dataclass
class Measurements:
    element_type: str                 # point, line or polygon
    center: tuple[float, float]       # (lon, lat)
    location: str
    length_m: float | None = None
    area_m2: float | None = None
    perimeter_m: float | None = None

    def to_dict(self) -> dict:
        out = {
            "type": self.element_type,
            "center": {"lon": self.center[0], "lat": self.center[1]},
            "location": self.location,
        }
        if self.length_m is not None:
            out["length"] = self.length_m
            out["length_km"] = f"{self.length_m / 1000:.3f}"
        if self.area_m2 is not None:
            out["area"] = self.area_m2
            out["area_hectares"] = f"{self.area_m2 / 10000:.4f}"
        if self.perimeter_m is not None:
            out["perimeter"] = self.perimeter_m
            out["perimeter_km"] = f"{self.perimeter_m / 1000:.3f}"
        return out


def path_length(coords) -> float:
    """Geodesic length in metres of a path of (lon, lat) vertices on WGS84."""
    coords = list(coords)
    if len(coords) < 2:
        return 0.0
    lons = [c[0] for c in coords]
    lats = [c[1] for c in coords]
    return GEOD.line_length(lons, lats)


def ring_area(coords) -> float:
    """Geodesic area of a ring on the WGS84 ellipsoid, square metres."""
    coords = list(coords)
    if len(coords) < 3:
        return 0.0
    area, _ = GEOD.polygon_area_perimeter([c[0] for c in coords], [c[1] for c in coords])
    return abs(area)


def polygon_area(poly: Polygon) -> float:
    area = ring_area(poly.exterior.coords)
    for hole in poly.interiors:
        area -= ring_area(hole.coords)
    return max(area, 0.0)


def circle_area(radius_m: float) -> float:
    return math.pi * radius_m * radius_m


def measure_geometry(geojson: dict, radius: float | None = None) -> Measurements:
    """Measure a GeoJSON geometry or Feature in WGS84.

    A Point with a ``radius`` (argument or ``properties.radius``) is a drawn
    circle and is measured as a polygon.
    """
    if geojson.get("type") == "Feature":
        props = geojson.get("properties") or {}
        if radius is None and props.get("radius") is not None:
            radius = float(props["radius"])
        geojson = geojson.get("geometry") or {}

    try:
        geom = shape(geojson)
    except (KeyError, TypeError, ValueError, AttributeError, ShapelyError) as exc:
        raise ValueError(f"Invalid GeoJSON geometry: {exc}") from exc
    if geom.is_empty:
        raise ValueError("Geometry is empty")

    if isinstance(geom, Point):
        center = (geom.x, geom.y)
    else:
        minx, miny, maxx, maxy = geom.bounds
        center = ((minx + maxx) / 2.0, (miny + maxy) / 2.0)
    location = closest_place(center[1], center[0]).label

    if isinstance(geom, (Point, MultiPoint)):
        if radius is not None and isinstance(geom, Point):
            if radius < 0:
                raise ValueError("radius must not be negative")
            return Measurements("polygon", center, location,
                                area_m2=circle_area(radius),
                                perimeter_m=2 * math.pi * radius)
        return Measurements("point", center, location)

    if isinstance(geom, LineString):
        return Measurements("line", center, location, length_m=path_length(geom.coords))
    if isinstance(geom, MultiLineString):
        length = sum(path_length(part.coords) for part in geom.geoms)
        return Measurements("line", center, location, length_m=length)

    if isinstance(geom, Polygon):
        parts = [geom]
    elif isinstance(geom, MultiPolygon):
        parts = list(geom.geoms)
    else:
        raise ValueError(f"Unsupported geometry type: {geom.geom_type}")
    return Measurements(
        "polygon", center, location,
        area_m2=sum(polygon_area(p) for p in parts),
        perimeter_m=sum(path_length(p.exterior.coords) for p in parts),
    )
