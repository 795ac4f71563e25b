"""Point and extent transformation between registered coordinate systems.

Every transformation goes through geographic WGS84 (lon, lat):

    source projected -> source geographic -> [datum shift] -> target geographic
    -> target projected

Geographic coordinates of a definition without ``towgs84`` are taken as
WGS84 coordinates, the way the web basemap treats them.
"""

import math
from dataclasses import dataclass, replace

from pyproj import CRS, Transformer
from pyproj.exceptions import ProjError

from .errors import ProjectionError
from .projection import CRSDefinition, ProjectionRegistry

WGS84_GEOGRAPHIC = "+proj=longlat +datum=WGS84 +no_defs"
_MAX_ITERATIONS = 15
_TOLERANCE = 1e-12

GEOGRAPHIC_DECIMALS = 6
PROJECTED_DECIMALS = 2


@dataclass(frozen=True)
class Point:
    x: float   # easting or longitude
    y: float   # northing or latitude
    crs: str | None = None


@dataclass(frozen=True)
class Extent:
    minx: float
    miny: float
    maxx: float
    maxy: float

    def __post_init__(self):
        if self.minx > self.maxx or self.miny > self.maxy:
            raise ValueError(
                f"Invalid extent ({self.minx}, {self.miny}, {self.maxx}, {self.maxy}): "
                f"min must not exceed max")

    @classmethod
    def from_bounds(cls, bounds) -> "Extent":
        """Build from a ``(minx, miny, maxx, maxy)`` sequence such as shapely bounds."""
        minx, miny, maxx, maxy = (float(v) for v in bounds)
        return cls(minx, miny, maxx, maxy)

    @property
    def width(self) -> float:
        return self.maxx - self.minx

    @property
    def height(self) -> float:
        return self.maxy - self.miny

    @property
    def center(self) -> tuple[float, float]:
        return ((self.minx + self.maxx) / 2.0, (self.miny + self.maxy) / 2.0)

    def corners(self) -> list[tuple[float, float]]:
        """Return (x, y) corners clockwise from the top-left."""
        return [
            (self.minx, self.maxy),
            (self.maxx, self.maxy),
            (self.maxx, self.miny),
            (self.minx, self.miny),
        ]

    def to_dict(self) -> dict:
        return {"minx": self.minx, "miny": self.miny,
                "maxx": self.maxx, "maxy": self.maxy}


class _OutOfDomain(ValueError):
    pass


# ---------------------------------------------------------------------------
# Ellipsoid helpers shared by Mercator and Lambert
# ---------------------------------------------------------------------------

def _m(phi: float, e2: float) -> float:
    sin_phi = math.sin(phi)
    return math.cos(phi) / math.sqrt(1 - e2 * sin_phi ** 2)


def _t(phi: float, e: float) -> float:
    sin_phi = math.sin(phi)
    return math.tan(math.pi / 4 - phi / 2) / (
        (1 - e * sin_phi) / (1 + e * sin_phi)
    ) ** (e / 2)


def _phi_from_t(t: float, e: float) -> float:
    """Invert the isometric-latitude term by fixed-point iteration."""
    phi = math.pi / 2 - 2 * math.atan(t)
    for _ in range(_MAX_ITERATIONS):
        es = e * math.sin(phi)
        nxt = math.pi / 2 - 2 * math.atan(t * ((1 - es) / (1 + es)) ** (e / 2))
        if abs(nxt - phi) < _TOLERANCE:
            return nxt
        phi = nxt
    raise _OutOfDomain("latitude iteration did not converge")


def _wrap(lam: float) -> float:
    """Normalise a longitude difference in radians to [-pi, pi]."""
    if -math.pi <= lam <= math.pi:
        return lam
    return (lam + math.pi) % (2 * math.pi) - math.pi


def _check_geographic(lon: float, lat: float, open_poles: bool) -> None:
    if not (math.isfinite(lon) and math.isfinite(lat)):
        raise _OutOfDomain("non-finite coordinate")
    if open_poles and abs(lat) >= 90.0:
        raise _OutOfDomain(f"latitude {lat} is at or beyond a pole")
    if abs(lat) > 90.0:
        raise _OutOfDomain(f"latitude {lat} is outside [-90, 90]")


# ---------------------------------------------------------------------------
# Projections
# ---------------------------------------------------------------------------

class _Mercator:
    """Mercator on a sphere (Web Mercator) or an ellipsoid."""

    def __init__(self, crs: CRSDefinition):
        self.a = crs.ellipsoid.a
        self.e = crs.ellipsoid.e
        self.k0 = crs.k_0
        self.lam0 = math.radians(crs.lon_0)
        self.x0 = crs.x_0
        self.y0 = crs.y_0

    def forward(self, lon: float, lat: float) -> tuple[float, float]:
        _check_geographic(lon, lat, open_poles=True)
        phi = math.radians(lat)
        lam = _wrap(math.radians(lon) - self.lam0)
        x = self.x0 + self.a * self.k0 * lam
        y = self.y0 - self.a * self.k0 * math.log(_t(phi, self.e))
        return x, y

    def inverse(self, x: float, y: float) -> tuple[float, float]:
        if not (math.isfinite(x) and math.isfinite(y)):
            raise _OutOfDomain("non-finite coordinate")
        t = math.exp(-(y - self.y0) / (self.a * self.k0))
        if self.e == 0:
            phi = math.pi / 2 - 2 * math.atan(t)
        else:
            phi = _phi_from_t(t, self.e)
        lon = math.degrees((x - self.x0) / (self.a * self.k0) + self.lam0)
        return lon, math.degrees(phi)


class _LambertCone:
    """Lambert conformal conic, one or two standard parallels."""

    def __init__(self, crs: CRSDefinition):
        ell = crs.ellipsoid
        self.a = ell.a
        self.e = ell.e
        self.k0 = crs.k_0
        self.lam0 = math.radians(crs.lon_0)
        self.x0 = crs.x_0
        self.y0 = crs.y_0

        phi0 = math.radians(crs.lat_0)
        phi1 = math.radians(crs.lat_1)
        phi2 = math.radians(crs.lat_2 if crs.lat_2 is not None else crs.lat_1)

        m1 = _m(phi1, ell.e2)
        t1 = _t(phi1, self.e)
        if abs(phi1 - phi2) > 1e-10:
            m2 = _m(phi2, ell.e2)
            t2 = _t(phi2, self.e)
            self.n = math.log(m1 / m2) / math.log(t1 / t2)
        else:
            self.n = math.sin(phi1)
        if self.n == 0:
            raise ValueError(f"{crs.id}: standard parallels give a degenerate cone")
        self.F = m1 / (self.n * t1 ** self.n)
        self.rho0 = self._rho(phi0)

    def _rho(self, phi: float) -> float:
        return self.a * self.k0 * self.F * _t(phi, self.e) ** self.n

    def forward(self, lon: float, lat: float) -> tuple[float, float]:
        _check_geographic(lon, lat, open_poles=True)
        rho = self._rho(math.radians(lat))
        theta = self.n * _wrap(math.radians(lon) - self.lam0)
        x = self.x0 + rho * math.sin(theta)
        y = self.y0 + self.rho0 - rho * math.cos(theta)
        return x, y

    def inverse(self, x: float, y: float) -> tuple[float, float]:
        if not (math.isfinite(x) and math.isfinite(y)):
            raise _OutOfDomain("non-finite coordinate")
        dx = x - self.x0
        dy = self.rho0 - (y - self.y0)
        if self.n < 0:
            dx, dy = -dx, -dy
        rho = math.copysign(math.hypot(dx, dy), self.n)
        if rho == 0:
            return math.degrees(self.lam0), math.copysign(90.0, self.n)
        theta = math.atan2(dx, dy)
        t = (rho / (self.a * self.k0 * self.F)) ** (1 / self.n)
        phi = _phi_from_t(t, self.e)
        lon = math.degrees(theta / self.n + self.lam0)
        return lon, math.degrees(phi)


# ---------------------------------------------------------------------------
# Datum shift
# ---------------------------------------------------------------------------

class _DatumShift:
    """WGS84 <-> local geographic legs of a definition with ``towgs84``."""

    def __init__(self, crs: CRSDefinition):
        local = CRS.from_proj4(crs.proj4(geographic=True))
        self._to_wgs84 = Transformer.from_crs(local, WGS84_GEOGRAPHIC, always_xy=True)
        self._from_wgs84 = Transformer.from_crs(WGS84_GEOGRAPHIC, local, always_xy=True)

    @staticmethod
    def _run(transformer: Transformer, lon: float, lat: float) -> tuple[float, float]:
        try:
            return transformer.transform(lon, lat, errcheck=True)
        except ProjError as exc:
            raise _OutOfDomain(f"datum shift failed: {exc}") from exc

    def to_wgs84(self, lon: float, lat: float) -> tuple[float, float]:
        return self._run(self._to_wgs84, lon, lat)

    def from_wgs84(self, lon: float, lat: float) -> tuple[float, float]:
        return self._run(self._from_wgs84, lon, lat)


def _same_datum(a: CRSDefinition, b: CRSDefinition) -> bool:
    if a.towgs84 is None and b.towgs84 is None:
        return True
    return a.towgs84 == b.towgs84 and a.ellipsoid == b.ellipsoid


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

class CoordinateTransformer:
    """Transforms points between the definitions of an injected registry."""

    def __init__(self, registry: ProjectionRegistry):
        if not registry.frozen:
            raise ValueError("CoordinateTransformer needs a frozen registry")
        self.registry = registry
        self._projections: dict[str, _Mercator | _LambertCone] = {
            crs.id: _LambertCone(crs) if crs.projection == "lcc" else _Mercator(crs)
            for crs in registry if not crs.is_geographic
        }
        self._shifts: dict[str, _DatumShift] = {
            crs.id: _DatumShift(crs) for crs in registry if crs.towgs84 is not None
        }

    def _projection(self, crs: CRSDefinition):
        return self._projections[crs.id]

    def _to_geographic(self, crs: CRSDefinition, x: float, y: float):
        if crs.is_geographic:
            _check_geographic(x, y, open_poles=False)
            return x, y
        return self._projection(crs).inverse(x, y)

    def _from_geographic(self, crs: CRSDefinition, lon: float, lat: float):
        if crs.is_geographic:
            _check_geographic(lon, lat, open_poles=False)
            return lon, lat
        return self._projection(crs).forward(lon, lat)

    def transform(self, point: Point, source: str, target: str) -> Point:
        """Transform ``point`` from ``source`` to ``target``.

        Raises:
            UnknownCRS: if either identifier is not registered.
            ProjectionError: if the point is outside a projection's domain.
        """
        src = self.registry.get(source)
        dst = self.registry.get(target)
        if point.crs is not None and point.crs != source:
            raise ValueError(f"Point is tagged {point.crs!r}, not {source!r}")
        if src.id == dst.id:
            return point if point.crs == target else replace(point, crs=target)

        try:
            lon, lat = self._to_geographic(src, point.x, point.y)
            if not _same_datum(src, dst):
                if src.towgs84 is not None:
                    lon, lat = self._shifts[src.id].to_wgs84(lon, lat)
                if dst.towgs84 is not None:
                    lon, lat = self._shifts[dst.id].from_wgs84(lon, lat)
            x, y = self._from_geographic(dst, lon, lat)
        except (_OutOfDomain, OverflowError, ZeroDivisionError) as exc:
            raise ProjectionError(str(exc), (point.x, point.y), source, target) from None

        if not (math.isfinite(x) and math.isfinite(y)):
            raise ProjectionError("transformation produced a non-finite result",
                                  (point.x, point.y), source, target)
        return Point(x, y, target)

    def transform_extent(self, extent: Extent, source: str, target: str,
                         densify: int = 21) -> Extent:
        """Transform an extent by its densified edges and return their bounds."""
        if densify < 0:
            raise ValueError("densify must be >= 0")
        steps = densify + 1
        xs = [extent.minx + extent.width * i / steps for i in range(steps + 1)]
        ys = [extent.miny + extent.height * i / steps for i in range(steps + 1)]
        edge = (
            [(x, extent.miny) for x in xs] + [(x, extent.maxy) for x in xs]
            + [(extent.minx, y) for y in ys] + [(extent.maxx, y) for y in ys]
        )
        pts = [self.transform(Point(x, y), source, target) for x, y in edge]
        return Extent(
            min(p.x for p in pts), min(p.y for p in pts),
            max(p.x for p in pts), max(p.y for p in pts),
        )


def format_point(point: Point, geographic: bool) -> tuple[str, str]:
    """Render a point as fixed-decimal strings (6 places for degrees, 2 for metres)."""
    decimals = GEOGRAPHIC_DECIMALS if geographic else PROJECTED_DECIMALS
    return f"{point.x:.{decimals}f}", f"{point.y:.{decimals}f}"


@dataclass(frozen=True)
class TransformResult:
    """Outcome of :func:`safe_transform`: a point, or the reason there is none."""

    point: Point | None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.point is not None

    def formatted(self, geographic: bool) -> tuple[str, str]:
        """Formatted coordinates; zero placeholders when the transform failed."""
        if self.point is None:
            return format_point(Point(0.0, 0.0), geographic)
        return format_point(self.point, geographic)


def safe_transform(transformer: CoordinateTransformer, point: Point,
                   source: str, target: str) -> TransformResult:
    """Transform without raising ProjectionError.

    A failed transform is reported through ``TransformResult.error`` so the
    caller can warn instead of plotting a placeholder as a real position.
    Unknown CRS identifiers still raise.
    """
    try:
        return TransformResult(transformer.transform(point, source, target))
    except ProjectionError as exc:
        return TransformResult(None, exc.message)
