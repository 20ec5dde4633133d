"""Covering steps shared by every scheme.

Splits wrapping boxes at the antimeridian, unions and deduplicates the cells
found in each half, orders them by distance from the query's reference point
and enforces the cell limits. Cell enumeration itself stays in each scheme.
"""

import logging
from collections.abc import Callable, Iterable

from geocell.cells import CellToken, CoveringResult, SchemeType
from geocell.config import ABSOLUTE_MAX_CELLS, settings
from geocell.errors import CellLimitExceededError, InvalidArgumentError
from geocell.geometry.region import SearchRegion
from geocell.geometry.spherical import haversine_meters, split_at_antimeridian
from geocell.geometry.types import GeoBoundingBox, GeoLocation

logger = logging.getLogger(__name__)

NEAR_POLE_LATITUDE = 85.0

# Yields each candidate cell with its center as (lat, lon)
CellEnumerator = Callable[[SearchRegion], Iterable[tuple[CellToken, tuple[float, float]]]]


def resolve_max_cells(max_cells: int | None) -> int:
    """Caller's soft limit, or the configured default; never above the ceiling."""
    if max_cells is None:
        return settings.default_max_cells
    if isinstance(max_cells, bool) or not isinstance(max_cells, int):
        raise InvalidArgumentError(f"max_cells must be an integer, got {max_cells!r}")
    if not 1 <= max_cells <= ABSOLUTE_MAX_CELLS:
        raise InvalidArgumentError(
            f"max_cells must be between 1 and {ABSOLUTE_MAX_CELLS}, got {max_cells}"
        )
    return max_cells


def check_radius(radius_meters: float) -> None:
    if isinstance(radius_meters, bool) or not isinstance(radius_meters, (int, float)):
        raise InvalidArgumentError(f"radius must be a number, got {radius_meters!r}")
    if not radius_meters > 0 or radius_meters == float("inf"):
        raise InvalidArgumentError(f"radius must be positive and finite, got {radius_meters}")


def check_cell(scheme: SchemeType, token: CellToken) -> None:
    if not isinstance(token, CellToken) or token.scheme != scheme:
        raise InvalidArgumentError(f"expected a {scheme.value} cell, got {token!r}")


def check_estimate(scheme: SchemeType, precision: int, estimate: int) -> None:
    """Fail before enumerating when the closed-form estimate is over the ceiling."""
    if estimate > ABSOLUTE_MAX_CELLS:
        raise CellLimitExceededError(
            scheme.value, precision, estimate, ABSOLUTE_MAX_CELLS, estimated=True
        )


def split_box(box: GeoBoundingBox) -> tuple[GeoBoundingBox, ...]:
    if box.crosses_antimeridian:
        west, east = split_at_antimeridian(box)
        logger.debug("Box %s split at the antimeridian", box.bounds)
        return (west, east)
    return (box,)


def warn_if_polar(reference: GeoLocation, box: GeoBoundingBox) -> None:
    if abs(reference.latitude) > NEAR_POLE_LATITUDE or box.contains_pole:
        logger.warning(
            "Query near a pole (lat=%.4f); covering spans the full longitude range",
            reference.latitude,
        )


def build_covering(
    scheme: SchemeType,
    precision: int,
    box: GeoBoundingBox,
    enumerate_cells: CellEnumerator,
    max_cells: int | None = None,
    center: GeoLocation | None = None,
    radius_meters: float | None = None,
) -> CoveringResult:
    """Cover ``box`` (narrowed by the circle when given) with distinct cells.

    Raises:
        CellLimitExceededError: more cells than ``max_cells`` or the ceiling.
    """
    limit = resolve_max_cells(max_cells)
    reference = center if center is not None else box.center
    warn_if_polar(reference, box)

    circle = (center.latitude, center.longitude) if center is not None else None
    distances: dict[CellToken, float] = {}
    for part in split_box(box):
        region = SearchRegion(part.bounds, circle, radius_meters)
        for cell, (lat, lon) in enumerate_cells(region):
            if cell not in distances:
                distances[cell] = haversine_meters(
                    reference.latitude, reference.longitude, lat, lon
                )

    if len(distances) > limit:
        raise CellLimitExceededError(scheme.value, precision, len(distances), limit)

    cells = tuple(sorted(distances, key=lambda c: (distances[c], c.value)))
    logger.debug("%s covering at precision %d: %d cells", scheme.value, precision, len(cells))
    return CoveringResult(scheme=scheme, precision=precision, cells=cells)
