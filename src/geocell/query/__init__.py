"""Spatial query execution over a secondary index."""

from geocell.query.executor import SpatialQueryExecutor
from geocell.query.index import IndexPage, SpatialIndexDefinition, SpatialIndexReader
from geocell.query.types import ContinuationToken, QueryPage, QueryResultItem, QueryState

__all__ = [
    "ContinuationToken",
    "IndexPage",
    "QueryPage",
    "QueryResultItem",
    "QueryState",
    "SpatialIndexDefinition",
    "SpatialIndexReader",
    "SpatialQueryExecutor",
]
