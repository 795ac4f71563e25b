import pytest

from geomapper.errors import UnknownCRS
from geomapper.projection import (
    ELLIPSOIDS, LAMBERT_NORTH, CRSDefinition, ProjectionRegistry,
    default_registry, lambert_zone_for,
)


def test_default_registry_contents():
    registry = default_registry()
    assert registry.frozen
    assert set(registry.ids()) == {
        "Web-Mercator", "WGS84", "Lambert-North", "Lambert-South",
        "Merchich-North", "Merchich-South",
    }
    assert registry.get("Web-Mercator").ellipsoid.a == 6378137.0
    assert registry.get("Web-Mercator").ellipsoid.rf == 0
    assert registry.get("WGS84").is_geographic


def test_lambert_north_parameters():
    north = default_registry().get("Lambert-North")
    assert north.projection == "lcc"
    assert north.lon_0 == -5.4
    assert north.x_0 == 500000.0
    assert north.y_0 == 300000.0
    assert north.ellipsoid is ELLIPSOIDS["intl"]


def test_lambert_south_parameters():
    south = default_registry().get("Lambert-South")
    assert south.lon_0 == -8.75
    assert south.x_0 == 600000.0
    assert (south.lat_1, south.lat_2) == (29.67, 31.0)


def test_unknown_crs():
    with pytest.raises(UnknownCRS) as info:
        default_registry().get("EPSG:99999")
    assert info.value.crs_id == "EPSG:99999"


def test_define_once():
    registry = ProjectionRegistry([LAMBERT_NORTH])
    with pytest.raises(ValueError):
        registry.define(LAMBERT_NORTH)


def test_frozen_registry_rejects_definitions():
    registry = default_registry()
    extra = CRSDefinition(id="Lambert-Sahara", projection="lcc", lat_1=26.1, lat_0=26.1)
    with pytest.raises(RuntimeError):
        registry.define(extra)


def test_additional_zone_defined_the_same_way():
    registry = ProjectionRegistry()
    zone = registry.define(CRSDefinition(
        id="Lambert-Sahara", projection="lcc", ellipsoid=ELLIPSOIDS["intl"],
        lat_0=26.1, lat_1=26.1, lon_0=-5.4, k_0=0.9996, x_0=1200000.0, y_0=400000.0,
    ))
    registry.freeze()
    assert registry.get("Lambert-Sahara") is zone
    assert "Lambert-Sahara" in registry
    assert len(registry) == 1


def test_invalid_definitions():
    registry = ProjectionRegistry()
    with pytest.raises(ValueError):
        registry.define(CRSDefinition(id="bad", projection="tmerc"))
    with pytest.raises(ValueError):
        registry.define(CRSDefinition(id="no-parallel", projection="lcc"))


@pytest.mark.parametrize("lat,zone", [
    (35.76, "Lambert-North"),
    (31.5, "Lambert-North"),
    (31.49, "Lambert-South"),
    (30.43, "Lambert-South"),
])
def test_lambert_zone_for(lat, zone):
    assert lambert_zone_for(lat) == zone


def test_to_dict_is_json_friendly():
    d = default_registry().get("Merchich-North").to_dict()
    assert d["epsg"] == 26191
    assert d["towgs84"] == [31.0, 146.0, 47.0]
    assert d["ellipsoid"] == "clrk80ign"
