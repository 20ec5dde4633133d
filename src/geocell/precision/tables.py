"""Per-scheme precision ranges, cell sizes and cell-count estimates.

Sizes are averages; real cells vary with position on the sphere. Estimates
divide the query area by one cell's area and multiply by an overlap factor
for the partial cells along the region's edge.
"""

import math

from geocell.cells import SchemeType
from geocell.errors import InvalidArgumentError
from geocell.geometry.spherical import EARTH_RADIUS_METERS
from geocell.geometry.types import GeoBoundingBox

OVERLAP_FUDGE = 1.2

# Inclusive (min, max) precision per scheme
PRECISION_RANGES: dict[SchemeType, tuple[int, int]] = {
    SchemeType.QUAD_SPHERE: (0, 30),
    SchemeType.HEXAGONAL: (0, 15),
    SchemeType.INTERLEAVED_STRING: (1, 12),
}

# (max radius in meters, precision), first match wins
THRESHOLDS: dict[SchemeType, tuple[tuple[float, int], ...]] = {
    SchemeType.QUAD_SPHERE: ((2_000.0, 14), (10_000.0, 12), (math.inf, 10)),
    SchemeType.HEXAGONAL: ((2_000.0, 9), (10_000.0, 7), (math.inf, 5)),
    SchemeType.INTERLEAVED_STRING: ((2_000.0, 6), (10_000.0, 5), (math.inf, 4)),
}

_QUAD_SPHERE_LEVEL0_EDGE_KM = 4651.0
_HEXAGONAL_RES0_EDGE_KM = 1107.71
_HEXAGON_AREA_FACTOR = 3 * math.sqrt(3) / 2
_KM_PER_DEGREE = math.pi * EARTH_RADIUS_METERS / 180.0 / 1000.0


def validate_precision(scheme: SchemeType, precision: int) -> int:
    low, high = PRECISION_RANGES[scheme]
    is_int = isinstance(precision, int) and not isinstance(precision, bool)
    if not is_int or not low <= precision <= high:
        raise InvalidArgumentError(
            f"{scheme.value} precision must be an integer in [{low}, {high}], got {precision!r}"
        )
    return precision


def quad_sphere_edge_km(level: int) -> float:
    """Approximate edge of a quad-sphere cell; halves with every level."""
    return _QUAD_SPHERE_LEVEL0_EDGE_KM / (2**level)


def hexagonal_edge_km(resolution: int) -> float:
    """Average hexagon edge; area shrinks sevenfold per resolution."""
    return _HEXAGONAL_RES0_EDGE_KM / (7 ** (resolution / 2))


def interleaved_dimensions_km(length: int) -> tuple[float, float]:
    """(height, width) of a geohash cell at the equator."""
    bits = 5 * length
    lat_bits = bits // 2
    lon_bits = bits - lat_bits
    height = 180.0 / (2**lat_bits) * _KM_PER_DEGREE
    width = 360.0 / (2**lon_bits) * _KM_PER_DEGREE
    return height, width


def cell_area_km2(scheme: SchemeType, precision: int) -> float:
    validate_precision(scheme, precision)
    if scheme == SchemeType.QUAD_SPHERE:
        return quad_sphere_edge_km(precision) ** 2
    if scheme == SchemeType.HEXAGONAL:
        return _HEXAGON_AREA_FACTOR * hexagonal_edge_km(precision) ** 2
    height, width = interleaved_dimensions_km(precision)
    return height * width


def cell_size_meters(scheme: SchemeType, precision: int) -> float:
    """Representative linear cell size (edge length, or the longer geohash side)."""
    validate_precision(scheme, precision)
    if scheme == SchemeType.QUAD_SPHERE:
        return quad_sphere_edge_km(precision) * 1000.0
    if scheme == SchemeType.HEXAGONAL:
        return hexagonal_edge_km(precision) * 1000.0
    return max(interleaved_dimensions_km(precision)) * 1000.0


def _estimate(area_km2: float, scheme: SchemeType, precision: int) -> int:
    return max(1, math.ceil(area_km2 / cell_area_km2(scheme, precision) * OVERLAP_FUDGE))


def estimate_cell_count(scheme: SchemeType, radius_meters: float, precision: int) -> int:
    """Cells needed to cover a circle, without enumerating any.

    Uses the spherical cap area, so radii past half the circumference
    estimate the whole sphere.
    """
    if not radius_meters > 0:
        raise InvalidArgumentError(f"radius must be positive, got {radius_meters}")
    earth_km = EARTH_RADIUS_METERS / 1000.0
    angle = min(radius_meters / EARTH_RADIUS_METERS, math.pi)
    area = 4 * math.pi * earth_km**2 * math.sin(angle / 2) ** 2
    return _estimate(area, scheme, precision)


def estimate_box_cell_count(scheme: SchemeType, box: GeoBoundingBox, precision: int) -> int:
    """Cells needed to cover a box, using the exact area of a lat/lon rectangle."""
    radius_km = EARTH_RADIUS_METERS / 1000.0
    dlon = math.radians(box.longitude_span_degrees)
    band = math.sin(math.radians(box.north)) - math.sin(math.radians(box.south))
    return _estimate(radius_km**2 * dlon * band, scheme, precision)
