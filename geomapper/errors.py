"""Typed failures raised by the projection, scale and world-file code."""


class GeoMapperError(Exception):
    """Base class for all geomapper errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnknownCRS(GeoMapperError):
    """Raised when a CRS identifier is not in the registry."""

    def __init__(self, crs_id: str):
        super().__init__(f"Unknown coordinate reference system: {crs_id!r}")
        self.crs_id = crs_id


class ProjectionError(GeoMapperError):
    """Raised when a coordinate is outside a projection's valid domain."""

    def __init__(self, message: str, coordinate: tuple[float, float],
                 source: str, target: str):
        super().__init__(
            f"{message} (coordinate={coordinate}, {source} -> {target})")
        self.coordinate = coordinate
        self.source = source
        self.target = target


class InvalidRasterDimensions(GeoMapperError):
    """Raised for zero, negative or oversized raster dimensions."""

    def __init__(self, width, height, limit: int):
        self.oversized = True
        if width is None or height is None:
            message = (
                f"Raster image is too large (limit {limit}x{limit} px). "
                f"Select a smaller export area or a coarser scale."
            )
        elif type(width) is int and type(height) is int \
                and width > 0 and height > 0:
            message = (
                f"Raster of {width}x{height} px exceeds the {limit}x{limit} px "
                f"limit. Select a smaller export area or a coarser scale."
            )
        else:
            self.oversized = False
            message = (
                f"Invalid raster dimensions {width}x{height}: width and height "
                f"must be positive integers."
            )
        super().__init__(message)
        self.width = width
        self.height = height
        self.limit = limit


class UndefinedAtPole(GeoMapperError):
    """Raised when a scale conversion is requested at +-90 degrees latitude."""

    def __init__(self, latitude: float):
        super().__init__(
            f"Scale is undefined at latitude {latitude}: cos(latitude) is zero")
        self.latitude = latitude
