"""Re-encode the rendered map image as the package's TIFF."""

import io

from PIL import Image, UnidentifiedImageError

from .worldfile import MAX_RASTER_SIZE, validate_raster_dimensions
from .errors import InvalidRasterDimensions


def _open(data: bytes) -> Image.Image:
    try:
        return Image.open(io.BytesIO(data))
    except Image.DecompressionBombError as exc:
        raise InvalidRasterDimensions(None, None, MAX_RASTER_SIZE) from exc
    except UnidentifiedImageError as exc:
        raise ValueError("Unrecognised image data") from exc


def to_tiff(data: bytes, expected_size: tuple[int, int] | None = None) -> tuple[bytes, int, int]:
    """Convert a PNG/JPEG rendering to TIFF bytes.

    The header dimensions are checked against the raster ceiling (and, when
    given, against ``expected_size``) before any pixels are loaded.
    """
    with _open(data) as img:
        width, height = img.size
        validate_raster_dimensions(width, height)
        if expected_size is not None and (width, height) != tuple(expected_size):
            raise ValueError(
                f"Image is {width}x{height} px but the world file was built "
                f"for {expected_size[0]}x{expected_size[1]} px")
        if img.mode not in ("RGB", "RGBA", "L"):
            img = img.convert("RGBA")
        out = io.BytesIO()
        img.save(out, format="TIFF")
    return out.getvalue(), width, height
