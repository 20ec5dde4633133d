"""geocell: adaptive spatial cell coverings and proximity queries."""

from geocell.cells import CellRange, CellToken, CoveringResult, SchemeType
from geocell.errors import (
    CellLimitExceededError,
    GeoCellError,
    IndexReadError,
    InvalidArgumentError,
    MalformedContinuationTokenError,
    QueryCancelledError,
)
from geocell.geometry import GeoBoundingBox, GeoLocation
from geocell.precision import select_precision
from geocell.query import (
    ContinuationToken,
    IndexPage,
    QueryPage,
    QueryResultItem,
    SpatialIndexDefinition,
    SpatialQueryExecutor,
)
from geocell.schemes import get_scheme

__all__ = [
    "CellLimitExceededError",
    "CellRange",
    "CellToken",
    "ContinuationToken",
    "CoveringResult",
    "GeoBoundingBox",
    "GeoCellError",
    "GeoLocation",
    "IndexPage",
    "IndexReadError",
    "InvalidArgumentError",
    "MalformedContinuationTokenError",
    "QueryCancelledError",
    "QueryPage",
    "QueryResultItem",
    "SchemeType",
    "SpatialIndexDefinition",
    "SpatialQueryExecutor",
    "get_scheme",
    "select_precision",
]
