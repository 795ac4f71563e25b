"""World file (.tfw) parameters for north-up rasters."""

import math
from dataclasses import dataclass

from .errors import InvalidRasterDimensions
from .transformer import Extent

MAX_RASTER_SIZE = 16384

GEOGRAPHIC_DECIMALS = 12
PROJECTED_DECIMALS = 8


def validate_raster_dimensions(width, height) -> None:
    """Reject non-integer, non-positive or oversized pixel dimensions."""
    for value in (width, height):
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise InvalidRasterDimensions(width, height, MAX_RASTER_SIZE)
    if width > MAX_RASTER_SIZE or height > MAX_RASTER_SIZE:
        raise InvalidRasterDimensions(width, height, MAX_RASTER_SIZE)


@dataclass(frozen=True)
class WorldFileParameters:
    pixel_size_x: float
    rotation_y: float
    rotation_x: float
    pixel_size_y: float   # negative: rows grow southwards
    origin_x: float
    origin_y: float

    def as_tuple(self) -> tuple[float, ...]:
        """Values in world file line order."""
        return (self.pixel_size_x, self.rotation_y, self.rotation_x,
                self.pixel_size_y, self.origin_x, self.origin_y)

    def to_text(self, geographic: bool) -> str:
        decimals = GEOGRAPHIC_DECIMALS if geographic else PROJECTED_DECIMALS
        return "\n".join(f"{v:.{decimals}f}" for v in self.as_tuple())

    def pixel_to_map(self, col: float, row: float) -> tuple[float, float]:
        x = self.origin_x + col * self.pixel_size_x + row * self.rotation_x
        y = self.origin_y + col * self.rotation_y + row * self.pixel_size_y
        return x, y


def build_world_file(extent: Extent, width: int, height: int) -> WorldFileParameters:
    """Affine parameters mapping a ``width`` x ``height`` raster onto ``extent``.

    The extent must already be in the raster's target CRS.  The origin is the
    extent's top-left (min x, max y) corner.
    """
    validate_raster_dimensions(width, height)
    return WorldFileParameters(
        pixel_size_x=extent.width / width,
        rotation_y=0.0,
        rotation_x=0.0,
        pixel_size_y=-(extent.height / height),
        origin_x=extent.minx,
        origin_y=extent.maxy,
    )


def raster_dimensions_for(extent: Extent, resolution: float) -> tuple[int, int]:
    """Pixel size needed to cover ``extent`` at ``resolution`` units per pixel.

    Raises InvalidRasterDimensions before anything is allocated when the
    result would exceed MAX_RASTER_SIZE.
    """
    if not (math.isfinite(resolution) and resolution > 0):
        raise ValueError(f"resolution must be positive, got {resolution}")
    columns, rows = extent.width / resolution, extent.height / resolution
    if not (math.isfinite(columns) and math.isfinite(rows)):
        raise InvalidRasterDimensions(None, None, MAX_RASTER_SIZE)
    width = max(1, math.ceil(columns))
    height = max(1, math.ceil(rows))
    validate_raster_dimensions(width, height)
    return width, height


def package_filenames(basename: str) -> dict[str, str]:
    """Names of the raster, world file and projection file sharing a basename."""
    return {
        "raster": f"{basename}.tif",
        "world_file": f"{basename}.tfw",
        "projection": f"{basename}.prj",
    }
