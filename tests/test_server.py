import io

import pytest

from geomapper.prj import WGS84_WKT
from geomapper.scale import format_scale, resolution_from_scale, scale_from_zoom, zoom_for_scale

CASABLANCA_EXTENT = {"minx": -850000, "miny": 3955000, "maxx": -840000, "maxy": 3965000}


class TestReferenceEndpoints:
    def test_list_crs(self, client):
        resp = client.get("/api/crs")
        assert resp.status_code == 200
        ids = [c["id"] for c in resp.get_json()["crs"]]
        assert "Lambert-North" in ids
        assert len(ids) == 6

    def test_prj(self, client):
        resp = client.get("/api/prj/WGS84")
        assert resp.status_code == 200
        assert resp.mimetype == "text/plain"
        assert resp.get_data(as_text=True) == WGS84_WKT

    def test_prj_unknown(self, client):
        resp = client.get("/api/prj/Nope")
        assert resp.status_code == 404
        assert "Nope" in resp.get_json()["error"]

    def test_closest_place(self, client):
        resp = client.get("/api/closest-place?lat=34.02&lon=-6.84")
        assert resp.status_code == 200
        assert resp.get_json()["name"] == "Rabat"

    def test_closest_place_bad_input(self, client):
        assert client.get("/api/closest-place?lat=34.02").status_code == 400


class TestTransform:
    def test_defaults_to_web_mercator_to_wgs84(self, client):
        resp = client.get("/api/transform?x=-845000&y=3960000")
        body = resp.get_json()
        assert resp.status_code == 200
        assert body["ok"] is True
        assert body["crs"] == "WGS84"
        assert body["x"].startswith("-7.59")
        assert len(body["x"].split(".")[1]) == 6

    def test_to_lambert(self, client):
        resp = client.get("/api/transform?x=-7.5898&y=33.5731&from=WGS84&to=Lambert-North")
        body = resp.get_json()
        assert body["ok"] is True
        assert len(body["y"].split(".")[1]) == 2

    def test_failure_is_flagged(self, client):
        resp = client.get("/api/transform?x=0&y=90&from=WGS84&to=Web-Mercator")
        body = resp.get_json()
        assert resp.status_code == 200
        assert body["ok"] is False
        assert (body["x"], body["y"]) == ("0.00", "0.00")
        assert body["error"]

    def test_bad_number(self, client):
        assert client.get("/api/transform?x=abc&y=1").status_code == 400

    def test_unknown_crs(self, client):
        assert client.get("/api/transform?x=0&y=0&to=Nope").status_code == 404


class TestScale:
    def test_zoom(self, client):
        body = client.get("/api/scale?lat=0&zoom=0").get_json()
        assert body["scale"] == format_scale(scale_from_zoom(0, 0.0))
        assert body["ground_resolution"] == pytest.approx(156543.03392804097)

    def test_resolution(self, client):
        body = client.get("/api/scale?lat=0&resolution=10").get_json()
        assert body["ratio"] == pytest.approx(10 / 0.000264583333)

    def test_pole(self, client):
        resp = client.get("/api/scale?lat=90&zoom=3")
        assert resp.status_code == 400
        assert "undefined" in resp.get_json()["error"]

    def test_needs_zoom_or_resolution(self, client):
        assert client.get("/api/scale?lat=10").status_code == 400

    def test_non_positive_resolution(self, client):
        assert client.get("/api/scale?lat=10&resolution=0").status_code == 400

    @pytest.mark.parametrize("query", [
        "zoom=2000", "zoom=1100", "zoom=-2000", "zoom=inf",
        "resolution=inf", "resolution=1e309", "scale=nan",
    ])
    def test_out_of_range_values(self, client, query):
        resp = client.get(f"/api/scale?lat=10&{query}")
        assert resp.status_code == 400
        assert resp.get_json()["error"]

    def test_scale_denominator(self, client):
        body = client.get("/api/scale?lat=33.57&scale=25000").get_json()
        assert body["scale"] == "1:25000"
        assert body["resolution"] == pytest.approx(resolution_from_scale(25000, 33.57))
        assert body["zoom"] == pytest.approx(zoom_for_scale(25000, 33.57))

    def test_scale_denominator_round_trips_zoom(self, client):
        ratio = client.get("/api/scale?lat=33.57&zoom=13").get_json()["ratio"]
        body = client.get(f"/api/scale?lat=33.57&scale={ratio}").get_json()
        assert body["zoom"] == pytest.approx(13.0)


class TestMeasure:
    def test_polygon(self, client):
        square = [[-7.6, 33.5], [-7.5, 33.5], [-7.5, 33.6], [-7.6, 33.6], [-7.6, 33.5]]
        resp = client.post("/api/measure", json={"type": "Polygon", "coordinates": [square]})
        body = resp.get_json()
        assert resp.status_code == 200
        assert body["type"] == "polygon"
        assert body["zone"] == "Lambert-North"
        assert "area_hectares" in body

    def test_circle_with_radius(self, client):
        resp = client.post("/api/measure", json={
            "geometry": {"type": "Point", "coordinates": [-7.5898, 33.5731]},
            "radius": 100,
        })
        body = resp.get_json()
        assert body["type"] == "polygon"
        assert body["area_hectares"] == "3.1416"

    def test_invalid(self, client):
        assert client.post("/api/measure", json={"type": "Nope"}).status_code == 400
        assert client.post("/api/measure", data="nope").status_code == 400


class TestExport:
    def test_extent(self, client):
        resp = client.post("/api/export", json={
            "extent": CASABLANCA_EXTENT, "width": 1000, "height": 1000,
            "basename": "casa", "zoom": 13,
        })
        body = resp.get_json()
        assert resp.status_code == 200
        assert body["crs"] == "Lambert-North"
        assert len(body["world_file"].split("\n")) == 6
        assert body["filenames"]["raster"] == "casa.tif"
        assert body["scale"].startswith("1:")

    def test_geometry(self, client):
        ring = [[-850000, 3955000], [-840000, 3955000], [-840000, 3965000],
                [-850000, 3965000], [-850000, 3955000]]
        by_geometry = client.post("/api/export", json={
            "geometry": {"type": "Polygon", "coordinates": [ring]},
            "width": 1000, "height": 1000,
        }).get_json()
        by_extent = client.post("/api/export", json={
            "extent": CASABLANCA_EXTENT, "width": 1000, "height": 1000,
        }).get_json()
        assert by_geometry["world_file"] == by_extent["world_file"]

    def test_explicit_crs(self, client):
        body = client.post("/api/export", json={
            "extent": CASABLANCA_EXTENT, "width": 100, "height": 100, "crs": "WGS84",
        }).get_json()
        assert body["projection"] == WGS84_WKT

    def test_basename_is_sanitised(self, client):
        body = client.post("/api/export", json={
            "extent": CASABLANCA_EXTENT, "width": 100, "height": 100,
            "basename": "../../etc/passwd",
        }).get_json()
        assert "/" not in body["filenames"]["raster"]

    def test_oversized(self, client):
        resp = client.post("/api/export", json={
            "extent": CASABLANCA_EXTENT, "width": 20000, "height": 20000,
        })
        assert resp.status_code == 413
        assert "coarser scale" in resp.get_json()["error"]

    @pytest.mark.parametrize("width", [0, -10, 10.5, "wide"])
    def test_invalid_width(self, client, width):
        resp = client.post("/api/export", json={
            "extent": CASABLANCA_EXTENT, "width": width, "height": 100,
        })
        assert resp.status_code == 400

    def test_dimensions_from_resolution(self, client):
        derived = client.post("/api/export", json={
            "extent": CASABLANCA_EXTENT, "resolution": 10,
        })
        explicit = client.post("/api/export", json={
            "extent": CASABLANCA_EXTENT, "width": 1000, "height": 1000, "resolution": 10,
        }).get_json()
        assert derived.status_code == 200
        assert derived.get_json()["world_file"] == explicit["world_file"]

    def test_resolution_too_fine_for_raster(self, client):
        resp = client.post("/api/export", json={
            "extent": CASABLANCA_EXTENT, "resolution": 0.1,
        })
        assert resp.status_code == 413

    @pytest.mark.parametrize("zoom", [2000, 1100])
    def test_zoom_out_of_range(self, client, zoom):
        resp = client.post("/api/export", json={
            "extent": CASABLANCA_EXTENT, "width": 100, "height": 100, "zoom": zoom,
        })
        assert resp.status_code == 400

    def test_missing_extent(self, client):
        resp = client.post("/api/export", json={"width": 100, "height": 100})
        assert resp.status_code == 400

    def test_unknown_crs(self, client):
        resp = client.post("/api/export", json={
            "extent": CASABLANCA_EXTENT, "width": 100, "height": 100, "crs": "Nope",
        })
        assert resp.status_code == 404

    def test_unprojectable_selection(self, client):
        # reaches past the top of the Web Mercator square
        resp = client.post("/api/export", json={
            "extent": {"minx": -1000, "miny": 0, "maxx": 1000, "maxy": 1e9},
            "width": 100, "height": 100, "crs": "Lambert-South",
        })
        assert resp.status_code == 422
        assert "detail" in resp.get_json()


class TestExportRaster:
    def _post(self, client, png, **form):
        data = {"image": (io.BytesIO(png), "map.png")}
        data.update(form)
        return client.post("/api/export/raster", data=data,
                           content_type="multipart/form-data")

    def test_tiff_download(self, client, png_factory):
        resp = self._post(client, png_factory(120, 80), basename="casa")
        assert resp.status_code == 200
        assert resp.mimetype == "image/tiff"
        assert "casa.tif" in resp.headers["Content-Disposition"]
        assert resp.data[:4] in (b"II*\x00", b"MM\x00*")

    def test_size_mismatch(self, client, png_factory):
        resp = self._post(client, png_factory(120, 80), width="100", height="100")
        assert resp.status_code == 400

    def test_oversized(self, client, png_factory):
        resp = self._post(client, png_factory(20000, 10, mode="L"))
        assert resp.status_code == 413

    def test_missing_image(self, client):
        resp = client.post("/api/export/raster", data={},
                           content_type="multipart/form-data")
        assert resp.status_code == 400
