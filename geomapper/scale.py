"""Map resolution, zoom level and cartographic scale conversions."""

import math

from .errors import UndefinedAtPole

EARTH_RADIUS = 6378137.0          # Web Mercator sphere, metres
TILE_SIZE = 256                   # pixels per tile edge
STANDARD_PIXEL_SIZE = 0.000264583333  # metres per pixel at 96 DPI


def _cos_lat(lat: float) -> float:
    if not math.isfinite(lat) or abs(lat) >= 90.0:
        raise UndefinedAtPole(lat)
    return math.cos(math.radians(lat))


def scale_from_resolution(resolution: float, lat: float) -> float:
    """Scale denominator for a basemap resolution (m/px) at a latitude."""
    if not (math.isfinite(resolution) and resolution > 0):
        raise ValueError(f"resolution must be positive, got {resolution}")
    return resolution * _cos_lat(lat) / STANDARD_PIXEL_SIZE


def resolution_from_scale(scale: float, lat: float) -> float:
    """Basemap resolution (m/px) that displays ``1:scale`` at a latitude."""
    if not (math.isfinite(scale) and scale > 0):
        raise ValueError(f"scale must be positive, got {scale}")
    return scale * STANDARD_PIXEL_SIZE / _cos_lat(lat)


def mercator_resolution(zoom: float) -> float:
    """Nominal Web Mercator metres per pixel at a zoom level (equator)."""
    if not math.isfinite(zoom):
        raise ValueError(f"zoom must be finite, got {zoom}")
    try:
        resolution = 2 * math.pi * EARTH_RADIUS / (TILE_SIZE * 2 ** zoom)
    except (OverflowError, ZeroDivisionError):
        raise ValueError(f"zoom {zoom} is out of range") from None
    if not resolution > 0 or not math.isfinite(resolution):
        raise ValueError(f"zoom {zoom} is out of range")
    return resolution


def ground_resolution(zoom: float, lat: float) -> float:
    """True ground metres per pixel at a zoom level and latitude."""
    return _cos_lat(lat) * mercator_resolution(zoom)


def scale_from_zoom(zoom: float, lat: float) -> float:
    return scale_from_resolution(mercator_resolution(zoom), lat)


def zoom_for_scale(scale: float, lat: float) -> float:
    """Continuous zoom level at which the map shows ``1:scale``."""
    resolution = resolution_from_scale(scale, lat)
    try:
        zoom = math.log2(2 * math.pi * EARTH_RADIUS / (TILE_SIZE * resolution))
    except (OverflowError, ZeroDivisionError, ValueError):
        raise ValueError(f"scale {scale} is out of range") from None
    if not math.isfinite(zoom):
        raise ValueError(f"scale {scale} is out of range")
    return zoom


def format_scale(ratio: float) -> str:
    """Render a scale denominator as ``1:N``."""
    if ratio <= 0 or not math.isfinite(ratio):
        raise ValueError(f"scale must be a positive finite number, got {ratio}")
    return f"1:{round(ratio)}"
