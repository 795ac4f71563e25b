"""Coordinate reference system definitions and the registry that holds them."""

import math
from dataclasses import dataclass

from .errors import UnknownCRS


@dataclass(frozen=True)
class Ellipsoid:
    name: str
    a: float      # semi-major axis in metres
    rf: float     # inverse flattening, 0 for a sphere

    @property
    def f(self) -> float:
        return 1.0 / self.rf if self.rf else 0.0

    @property
    def e2(self) -> float:
        return 2 * self.f - self.f ** 2

    @property
    def e(self) -> float:
        return math.sqrt(self.e2)


ELLIPSOIDS: dict[str, Ellipsoid] = {
    "WGS84":     Ellipsoid("WGS84", 6378137.0, 298.257223563),
    "intl":      Ellipsoid("intl", 6378388.0, 297.0),           # International 1924
    "clrk80ign": Ellipsoid("clrk80ign", 6378249.2, 293.4660212936269),
    "sphere":    Ellipsoid("sphere", 6378137.0, 0.0),
}


@dataclass(frozen=True)
class CRSDefinition:
    """Parameters of one coordinate reference system.

    ``projection`` is one of ``longlat``, ``merc`` or ``lcc``.  For ``lcc``
    a single standard parallel (``lat_2`` unset) uses ``k_0`` as the scale
    factor on that parallel; two parallels define a secant cone.
    """

    id: str
    projection: str
    ellipsoid: Ellipsoid = ELLIPSOIDS["WGS84"]
    lat_0: float = 0.0
    lon_0: float = 0.0
    lat_1: float | None = None
    lat_2: float | None = None
    k_0: float = 1.0
    x_0: float = 0.0
    y_0: float = 0.0
    units: str = "m"
    towgs84: tuple[float, float, float] | None = None
    epsg: int | None = None
    title: str = ""

    @property
    def is_geographic(self) -> bool:
        return self.projection == "longlat"

    def proj4(self, geographic: bool = False) -> str:
        """PROJ string of this definition, or of its geographic base CRS."""
        ell = self.ellipsoid
        params = []
        if geographic or self.is_geographic:
            params.append("+proj=longlat")
        elif self.projection == "lcc":
            lat_2 = self.lat_2 if self.lat_2 is not None else self.lat_1
            params += [
                "+proj=lcc", f"+lat_1={self.lat_1}", f"+lat_2={lat_2}",
                f"+lat_0={self.lat_0}", f"+lon_0={self.lon_0}", f"+k_0={self.k_0}",
                f"+x_0={self.x_0}", f"+y_0={self.y_0}", "+units=m",
            ]
        else:
            params += [
                "+proj=merc", f"+lon_0={self.lon_0}", f"+k_0={self.k_0}",
                f"+x_0={self.x_0}", f"+y_0={self.y_0}", "+units=m",
            ]
        if not ell.rf:
            params.append(f"+R={ell.a}")
        elif ELLIPSOIDS.get(ell.name) == ell:
            # built-in names are PROJ ellipsoid names
            params.append(f"+ellps={ell.name}")
        else:
            params.append(f"+a={ell.a} +rf={ell.rf}")
        if self.towgs84 is not None:
            params.append("+towgs84=" + ",".join(str(v) for v in self.towgs84) + ",0,0,0,0")
        params.append("+no_defs")
        return " ".join(params)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "projection": self.projection,
            "ellipsoid": self.ellipsoid.name,
            "lat_0": self.lat_0,
            "lon_0": self.lon_0,
            "lat_1": self.lat_1,
            "lat_2": self.lat_2,
            "k_0": self.k_0,
            "x_0": self.x_0,
            "y_0": self.y_0,
            "units": self.units,
            "towgs84": list(self.towgs84) if self.towgs84 else None,
            "epsg": self.epsg,
        }


PROJECTIONS = ("longlat", "merc", "lcc")


class ProjectionRegistry:
    """CRS definitions keyed by identifier.

    Definitions are added with :meth:`define` and the registry is then
    frozen; a frozen registry is read-only and can be shared between threads.
    """

    def __init__(self, definitions=()):
        self._defs: dict[str, CRSDefinition] = {}
        self._frozen = False
        for crs in definitions:
            self.define(crs)

    def define(self, crs: CRSDefinition) -> CRSDefinition:
        if self._frozen:
            raise RuntimeError(f"Registry is frozen; cannot define {crs.id!r}")
        if crs.id in self._defs:
            raise ValueError(f"CRS {crs.id!r} is already defined")
        if crs.projection not in PROJECTIONS:
            raise ValueError(f"Unsupported projection {crs.projection!r} for {crs.id!r}")
        if crs.projection == "lcc" and crs.lat_1 is None:
            raise ValueError(f"Lambert definition {crs.id!r} needs lat_1")
        self._defs[crs.id] = crs
        return crs

    def freeze(self) -> "ProjectionRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, crs_id: str) -> CRSDefinition:
        try:
            return self._defs[crs_id]
        except KeyError:
            raise UnknownCRS(crs_id) from None

    def ids(self) -> list[str]:
        return list(self._defs)

    def __contains__(self, crs_id) -> bool:
        return crs_id in self._defs

    def __iter__(self):
        return iter(self._defs.values())

    def __len__(self) -> int:
        return len(self._defs)


WEB_MERCATOR = CRSDefinition(
    id="Web-Mercator",
    projection="merc",
    ellipsoid=ELLIPSOIDS["sphere"],
    epsg=3857,
    title="WGS 84 / Pseudo-Mercator",
)

WGS84 = CRSDefinition(
    id="WGS84",
    projection="longlat",
    units="degree",
    epsg=4326,
    title="WGS 84",
)

LAMBERT_NORTH = CRSDefinition(
    id="Lambert-North",
    projection="lcc",
    ellipsoid=ELLIPSOIDS["intl"],
    lat_0=33.3,
    lon_0=-5.4,
    lat_1=33.3,
    k_0=0.999625769,
    x_0=500000.0,
    y_0=300000.0,
    title="Morocco Lambert North zone",
)

LAMBERT_SOUTH = CRSDefinition(
    id="Lambert-South",
    projection="lcc",
    ellipsoid=ELLIPSOIDS["intl"],
    lat_0=29.7,
    lon_0=-8.75,
    lat_1=29.67,
    lat_2=31.0,
    x_0=600000.0,
    y_0=300000.0,
    title="Morocco Lambert South zone",
)

# Merchich datum, translation parameters of EPSG transformation 1166.
MERCHICH_TOWGS84 = (31.0, 146.0, 47.0)

MERCHICH_NORTH = CRSDefinition(
    id="Merchich-North",
    projection="lcc",
    ellipsoid=ELLIPSOIDS["clrk80ign"],
    lat_0=33.3,
    lon_0=-5.4,
    lat_1=33.3,
    k_0=0.999625769,
    x_0=500000.0,
    y_0=300000.0,
    towgs84=MERCHICH_TOWGS84,
    epsg=26191,
    title="Merchich / Nord Maroc",
)

MERCHICH_SOUTH = CRSDefinition(
    id="Merchich-South",
    projection="lcc",
    ellipsoid=ELLIPSOIDS["clrk80ign"],
    lat_0=29.7,
    lon_0=-5.4,
    lat_1=29.7,
    k_0=0.999615596,
    x_0=500000.0,
    y_0=300000.0,
    towgs84=MERCHICH_TOWGS84,
    epsg=26192,
    title="Merchich / Sud Maroc",
)

DEFAULT_DEFINITIONS = (
    WEB_MERCATOR, WGS84, LAMBERT_NORTH, LAMBERT_SOUTH,
    MERCHICH_NORTH, MERCHICH_SOUTH,
)

# Northern boundary of the southern Lambert zone.
ZONE_BOUNDARY_LAT = 31.5


def default_registry() -> ProjectionRegistry:
    """Return a frozen registry with the basemap, WGS84 and Moroccan grids."""
    return ProjectionRegistry(DEFAULT_DEFINITIONS).freeze()


def lambert_zone_for(lat: float) -> str:
    """Return the Lambert zone id covering a WGS84 latitude."""
    if lat >= ZONE_BOUNDARY_LAT:
        return LAMBERT_NORTH.id
    return LAMBERT_SOUTH.id
