"""Adaptive precision selection.

Precision is a pure function of the radius: the threshold table picks a
level, and where that level would still estimate more cells than the hard
ceiling (very large radii) the selector steps coarser until it fits.
"""

import logging

from geocell.cells import SchemeType
from geocell.config import ABSOLUTE_MAX_CELLS
from geocell.errors import CellLimitExceededError, InvalidArgumentError
from geocell.geometry.spherical import bounding_box_radius_meters
from geocell.geometry.types import GeoBoundingBox
from geocell.precision.tables import THRESHOLDS, validate_precision

logger = logging.getLogger(__name__)


def _scheme(scheme: SchemeType | str):
    # Imported here: schemes depend on the precision tables.
    from geocell.schemes import get_scheme

    return get_scheme(scheme)


def threshold_precision(scheme: SchemeType, radius_meters: float) -> int:
    """Precision straight from the threshold table."""
    for max_radius, precision in THRESHOLDS[scheme]:
        if radius_meters <= max_radius:
            return precision
    raise InvalidArgumentError(f"radius {radius_meters} matches no threshold")


def select_precision(scheme: SchemeType | str, radius_meters: float) -> int:
    """Precision for a radius query whose cell estimate stays under the ceiling."""
    impl = _scheme(scheme)
    if not radius_meters > 0:
        raise InvalidArgumentError(f"radius must be positive, got {radius_meters}")

    precision = threshold_precision(impl.scheme, radius_meters)
    while (
        precision > impl.min_precision
        and impl.estimate_cell_count(radius_meters, precision) > ABSOLUTE_MAX_CELLS
    ):
        precision -= 1
    logger.debug(
        "Selected %s precision %d for radius %.1f m", impl.scheme.value, precision, radius_meters
    )
    return precision


def select_precision_for_box(scheme: SchemeType | str, box: GeoBoundingBox) -> int:
    """Precision for a box, sized by its center-to-corner radius."""
    impl = _scheme(scheme)
    radius = max(bounding_box_radius_meters(box), 1.0)
    precision = threshold_precision(impl.scheme, radius)
    while (
        precision > impl.min_precision
        and impl.estimate_box_cell_count(box, precision) > ABSOLUTE_MAX_CELLS
    ):
        precision -= 1
    return precision


def check_precision(scheme: SchemeType | str, radius_meters: float, precision: int) -> int:
    """Optional sanity check: the estimate for an explicit precision.

    Raises:
        CellLimitExceededError: the estimate is over the ceiling.
    """
    impl = _scheme(scheme)
    validate_precision(impl.scheme, precision)
    estimate = impl.estimate_cell_count(radius_meters, precision)
    if estimate > ABSOLUTE_MAX_CELLS:
        raise CellLimitExceededError(
            impl.scheme.value, precision, estimate, ABSOLUTE_MAX_CELLS, estimated=True
        )
    return estimate
