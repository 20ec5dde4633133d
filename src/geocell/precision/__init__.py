"""Precision tables and adaptive precision selection."""

from geocell.precision.selector import (
    check_precision,
    select_precision,
    select_precision_for_box,
    threshold_precision,
)
from geocell.precision.tables import (
    OVERLAP_FUDGE,
    PRECISION_RANGES,
    THRESHOLDS,
    cell_area_km2,
    cell_size_meters,
    estimate_box_cell_count,
    estimate_cell_count,
    validate_precision,
)

__all__ = [
    "OVERLAP_FUDGE",
    "PRECISION_RANGES",
    "THRESHOLDS",
    "cell_area_km2",
    "cell_size_meters",
    "check_precision",
    "estimate_box_cell_count",
    "estimate_cell_count",
    "select_precision",
    "select_precision_for_box",
    "threshold_precision",
    "validate_precision",
]
