"""Flask application exposing the projection, scale and export endpoints."""

import io
import logging
import math

from flask import Flask, Response, jsonify, request, send_file
from shapely.errors import ShapelyError
from shapely.geometry import shape
from werkzeug.utils import secure_filename

from .errors import InvalidRasterDimensions, ProjectionError, UndefinedAtPole, UnknownCRS
from .gazetteer import closest_place
from .pipeline import BASEMAP_CRS, GEOGRAPHIC_CRS, ExportRequest, Exporter
from .prj import projection_text
from .projection import ProjectionRegistry, default_registry
from .raster import to_tiff
from .scale import (
    format_scale, ground_resolution, resolution_from_scale, scale_from_resolution,
    scale_from_zoom, zoom_for_scale,
)
from .transformer import CoordinateTransformer, Extent, Point, safe_transform
from .worldfile import package_filenames, raster_dimensions_for

logger = logging.getLogger(__name__)

DEFAULT_BASENAME = "export"


def _number(data, key: str, default=None) -> float | None:
    """Read a float from a mapping, raising ValueError with the key name."""
    value = data.get(key, default)
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{key} must be a number, got {value!r}") from None
    if not math.isfinite(number):
        raise ValueError(f"{key} must be finite, got {value!r}")
    return number


def _required(data, key: str) -> float:
    value = _number(data, key)
    if value is None:
        raise ValueError(f"{key} is required")
    return value


def _pixels(data, key: str):
    """Pixel counts stay ints; integral floats from JSON are accepted."""
    value = data.get(key)
    if value is None:
        raise ValueError(f"{key} is required")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value)
    return value


def _basename(data) -> str:
    return secure_filename(str(data.get("basename") or "")) or DEFAULT_BASENAME


def _extent_from(data) -> Extent:
    if "extent" in data:
        ext = data["extent"]
        if not isinstance(ext, dict):
            raise ValueError("extent must be an object with minx, miny, maxx, maxy")
        return Extent(_required(ext, "minx"), _required(ext, "miny"),
                      _required(ext, "maxx"), _required(ext, "maxy"))
    if "geometry" in data:
        geometry = data["geometry"]
        if isinstance(geometry, dict) and geometry.get("type") == "Feature":
            geometry = geometry.get("geometry")
        try:
            geom = shape(geometry)
        except (KeyError, TypeError, ValueError, AttributeError, ShapelyError) as exc:
            raise ValueError(f"Invalid geometry: {exc}") from None
        if geom.is_empty:
            raise ValueError("geometry is empty")
        return Extent.from_bounds(geom.bounds)
    raise ValueError("extent or geometry is required")


def create_app(registry: ProjectionRegistry | None = None) -> Flask:
    app = Flask(__name__)

    registry = registry if registry is not None else default_registry()
    transformer = CoordinateTransformer(registry)
    exporter = Exporter(transformer)
    app.extensions["geomapper"] = exporter

    @app.errorhandler(UnknownCRS)
    def unknown_crs(exc):
        return jsonify({"error": exc.message}), 404

    @app.errorhandler(InvalidRasterDimensions)
    def invalid_raster(exc):
        logger.warning("Rejected raster: %s", exc.message)
        return jsonify({"error": exc.message}), 413 if exc.oversized else 400

    @app.errorhandler(ProjectionError)
    def projection_error(exc):
        logger.warning("Projection failed: %s", exc.message)
        return jsonify({
            "error": "The selected area could not be transformed. "
                     "Choose a smaller export area away from the poles.",
            "detail": exc.message,
        }), 422

    @app.errorhandler(UndefinedAtPole)
    def undefined_at_pole(exc):
        return jsonify({"error": exc.message}), 400

    @app.route("/api/crs")
    def list_crs():
        return jsonify({"crs": [crs.to_dict() for crs in registry]})

    @app.route("/api/prj/<crs_id>")
    def prj(crs_id):
        return Response(projection_text(registry.get(crs_id)), mimetype="text/plain")

    @app.route("/api/transform")
    def transform():
        args = request.args
        try:
            x = _required(args, "x")
            y = _required(args, "y")
        except ValueError as exc:
            return jsonify({"error": f"Invalid parameters: {exc}"}), 400
        source = args.get("from", BASEMAP_CRS)
        target = args.get("to", GEOGRAPHIC_CRS)

        result = safe_transform(transformer, Point(x, y, source), source, target)
        out_x, out_y = result.formatted(registry.get(target).is_geographic)
        body = {"x": out_x, "y": out_y, "crs": target, "ok": result.ok}
        if not result.ok:
            logger.warning("Transform %s -> %s failed: %s", source, target, result.error)
            body["error"] = result.error
        return jsonify(body)

    @app.route("/api/scale")
    def scale():
        args = request.args
        try:
            lat = _required(args, "lat")
            zoom = _number(args, "zoom")
            resolution = _number(args, "resolution")
            denominator = _number(args, "scale")
        except ValueError as exc:
            return jsonify({"error": f"Invalid parameters: {exc}"}), 400

        try:
            if resolution is not None:
                ratio = scale_from_resolution(resolution, lat)
                return jsonify({"scale": format_scale(ratio), "ratio": ratio})
            if zoom is not None:
                ratio = scale_from_zoom(zoom, lat)
                return jsonify({
                    "scale": format_scale(ratio),
                    "ratio": ratio,
                    "ground_resolution": ground_resolution(zoom, lat),
                })
            if denominator is not None:
                return jsonify({
                    "scale": format_scale(denominator),
                    "ratio": denominator,
                    "zoom": zoom_for_scale(denominator, lat),
                    "resolution": resolution_from_scale(denominator, lat),
                })
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        return jsonify({"error": "zoom, resolution or scale is required"}), 400

    @app.route("/api/closest-place")
    def closest():
        try:
            lat = _required(request.args, "lat")
            lon = _required(request.args, "lon")
            place = closest_place(lat, lon)
        except ValueError as exc:
            return jsonify({"error": f"Invalid parameters: {exc}"}), 400
        return jsonify(place.to_dict())

    @app.route("/api/measure", methods=["POST"])
    def measure():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "Expected a GeoJSON geometry or Feature"}), 400
        try:
            radius = _number(data, "radius")
            geojson = data
            if data.get("type") != "Feature" and isinstance(data.get("geometry"), dict):
                geojson = data["geometry"]
            return jsonify(exporter.describe_element(geojson, radius=radius))
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400

    @app.route("/api/export", methods=["POST"])
    def export():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "Expected a JSON object"}), 400
        try:
            extent = _extent_from(data)
            resolution = _number(data, "resolution")
            if resolution is not None and "width" not in data and "height" not in data:
                width, height = raster_dimensions_for(extent, resolution)
            else:
                width, height = _pixels(data, "width"), _pixels(data, "height")
            req = ExportRequest(
                extent=extent,
                width=width,
                height=height,
                zoom=_number(data, "zoom"),
                resolution=resolution,
                target_crs=data.get("crs") or None,
                basename=_basename(data),
            )
            package = exporter.export(req)
        except ValueError as exc:
            return jsonify({"error": f"Invalid parameters: {exc}"}), 400
        return jsonify(package.to_dict())

    @app.route("/api/export/raster", methods=["POST"])
    def export_raster():
        upload = request.files.get("image")
        if upload is None:
            return jsonify({"error": "image file is required"}), 400
        expected = None
        try:
            if "width" in request.form or "height" in request.form:
                expected = (_pixels(request.form, "width"), _pixels(request.form, "height"))
            tif_bytes, width, height = to_tiff(upload.read(), expected_size=expected)
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400

        filename = package_filenames(_basename(request.form))["raster"]
        logger.info("Raster %s: %dx%d px", filename, width, height)
        return send_file(
            io.BytesIO(tif_bytes),
            download_name=filename,
            as_attachment=True,
            mimetype="image/tiff",
        )

    return app


app = create_app()
