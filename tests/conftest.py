"""Shared fixtures for the geomapper test suite."""

import io

import pytest
from PIL import Image

from geomapper.pipeline import Exporter
from geomapper.projection import default_registry
from geomapper.server import create_app
from geomapper.transformer import CoordinateTransformer


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def transformer(registry):
    return CoordinateTransformer(registry)


@pytest.fixture
def exporter(transformer):
    return Exporter(transformer)


@pytest.fixture
def app(registry):
    app = create_app(registry)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def make_png(width: int, height: int, mode: str = "RGB") -> bytes:
    buf = io.BytesIO()
    Image.new(mode, (width, height)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def png_factory():
    """Build PNG bytes of a given size."""
    return make_png
