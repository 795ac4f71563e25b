"""ESRI well-known-text for .prj files."""

from pyproj import CRS
from pyproj.enums import WktVersion
from pyproj.exceptions import CRSError

from .projection import ELLIPSOIDS, CRSDefinition

WGS84_WKT = (
    'GEOGCS["GCS_WGS_1984",'
    'DATUM["D_WGS_1984",SPHEROID["WGS_1984",6378137.0,298.257223563]],'
    'PRIMEM["Greenwich",0.0],'
    'UNIT["Degree",0.0174532925199433]]'
)


def wgs84_projection_text() -> str:
    """The WGS84 geographic coordinate system as ESRI WKT."""
    return WGS84_WKT


def _pyproj_crs(crs: CRSDefinition) -> CRS:
    if crs.epsg is not None:
        return CRS.from_epsg(crs.epsg)
    proj_crs = CRS.from_proj4(crs.proj4())
    if not proj_crs.is_projected:
        return proj_crs
    # name the PROJCS after the registry id instead of "unknown"
    doc = proj_crs.to_json_dict()
    if doc.get("type") == "ProjectedCRS":
        doc["name"] = crs.id.replace("-", "_")
        proj_crs = CRS.from_json_dict(doc)
    return proj_crs


def projection_text(crs: CRSDefinition) -> str:
    """ESRI WKT matching a registry definition, for the export's .prj file."""
    if crs.is_geographic and crs.ellipsoid == ELLIPSOIDS["WGS84"]:
        return WGS84_WKT
    try:
        text = _pyproj_crs(crs).to_wkt(WktVersion.WKT1_ESRI)
    except CRSError as exc:
        raise ValueError(f"Cannot describe {crs.id!r} as ESRI WKT: {exc}") from exc
    if text is None:
        raise ValueError(f"{crs.id!r} has no ESRI WKT representation")
    return text
