"""Export pipeline: a selection drawn on the basemap -> georeferencing artifacts.

The map UI hands over the selection's extent in Web Mercator metres and the
pixel size of the rendered raster.  The pipeline works out the centre in
WGS84 and in the target grid, the display scale, the world file and the
projection file text.  Bundling the files is left to the caller.
"""

import logging
from dataclasses import dataclass, field

from .gazetteer import closest_place
from .measurements import Measurements, measure_geometry
from .prj import projection_text
from .projection import lambert_zone_for
from .scale import format_scale, scale_from_resolution, scale_from_zoom
from .transformer import (
    CoordinateTransformer, Extent, Point, format_point, safe_transform,
)
from .worldfile import build_world_file, package_filenames, validate_raster_dimensions

logger = logging.getLogger(__name__)

BASEMAP_CRS = "Web-Mercator"
GEOGRAPHIC_CRS = "WGS84"


@dataclass
class ExportRequest:
    extent: Extent                    # Web Mercator metres
    width: int                        # rendered raster, pixels
    height: int
    zoom: float | None = None
    resolution: float | None = None   # basemap metres per pixel
    target_crs: str | None = None     # None: Lambert zone of the centre
    basename: str = "export"


@dataclass
class ExportPackage:
    target_crs: str
    x: str
    y: str
    lon: str
    lat: str
    scale: str
    extent: Extent
    world_file: str
    projection: str
    location: str
    filenames: dict[str, str]
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "crs": self.target_crs,
            "x": self.x,
            "y": self.y,
            "lon": self.lon,
            "lat": self.lat,
            "scale": self.scale,
            "extent": self.extent.to_dict(),
            "world_file": self.world_file,
            "projection": self.projection,
            "location": self.location,
            "filenames": self.filenames,
            "warnings": self.warnings,
        }


class Exporter:
    def __init__(self, transformer: CoordinateTransformer):
        self.transformer = transformer
        self.registry = transformer.registry

    def _scale(self, request: ExportRequest, lat: float) -> float:
        if request.resolution is not None:
            return scale_from_resolution(request.resolution, lat)
        if request.zoom is not None:
            return scale_from_zoom(request.zoom, lat)
        # Resolution of the rendered raster itself
        return scale_from_resolution(request.extent.width / request.width, lat)

    def export(self, request: ExportRequest) -> ExportPackage:
        """Build the georeferencing artifacts for one selection.

        Raises:
            InvalidRasterDimensions: before any transformation when the raster
                size is invalid or above the ceiling.
            UnknownCRS: for an unregistered target.
            ProjectionError: when the selection cannot be transformed.
        """
        validate_raster_dimensions(request.width, request.height)
        if request.extent.width <= 0 or request.extent.height <= 0:
            raise ValueError("Selection has no area")

        cx, cy = request.extent.center
        center = self.transformer.transform(Point(cx, cy, BASEMAP_CRS),
                                            BASEMAP_CRS, GEOGRAPHIC_CRS)
        lon_str, lat_str = format_point(center, geographic=True)

        target_id = request.target_crs or lambert_zone_for(center.y)
        target = self.registry.get(target_id)

        warnings = []
        projected = safe_transform(self.transformer, center, GEOGRAPHIC_CRS, target_id)
        if not projected.ok:
            logger.warning("Centre of selection could not be projected to %s: %s",
                           target_id, projected.error)
            warnings.append(f"Centre coordinates unavailable in {target_id}: {projected.error}")
        x_str, y_str = projected.formatted(target.is_geographic)

        # World file from the transformed corners
        target_extent = self.transformer.transform_extent(
            request.extent, BASEMAP_CRS, target_id, densify=0)
        params = build_world_file(target_extent, request.width, request.height)

        scale = format_scale(self._scale(request, center.y))
        location = closest_place(center.y, center.x).label

        logger.info("Export %s: %dx%d px in %s, scale %s, %s",
                    request.basename, request.width, request.height,
                    target_id, scale, location)

        return ExportPackage(
            target_crs=target_id,
            x=x_str,
            y=y_str,
            lon=lon_str,
            lat=lat_str,
            scale=scale,
            extent=target_extent,
            world_file=params.to_text(target.is_geographic),
            projection=projection_text(target),
            location=location,
            filenames=package_filenames(request.basename),
            warnings=warnings,
        )

    def describe_element(self, geojson: dict, radius: float | None = None) -> dict:
        """Measurements and display coordinates of a drawn element (WGS84 GeoJSON)."""
        measured: Measurements = measure_geometry(geojson, radius=radius)
        lon, lat = measured.center
        zone = lambert_zone_for(lat)

        result = measured.to_dict()
        result["zone"] = zone
        result["coordinates"] = {"wgs84": f"{lat:.6f}, {lon:.6f}"}

        projected = safe_transform(self.transformer, Point(lon, lat, GEOGRAPHIC_CRS),
                                   GEOGRAPHIC_CRS, zone)
        x, y = projected.formatted(geographic=False)
        result["coordinates"]["maroc"] = f"{x}, {y}"
        if not projected.ok:
            logger.warning("Element at (%s, %s) could not be projected to %s: %s",
                           lat, lon, zone, projected.error)
            result["warnings"] = [projected.error]
        return result
