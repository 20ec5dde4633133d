"""Error types raised by geocell.

Every error is reported to the caller; nothing here is retried internally.
"""


class GeoCellError(Exception):
    """Base class for geocell errors."""


class InvalidArgumentError(GeoCellError, ValueError):
    """An argument was rejected before any index I/O happened."""


class CellLimitExceededError(GeoCellError):
    """A covering needs more cells than the caller or the hard ceiling allows.

    Callers recover by choosing a coarser precision or a smaller region.
    """

    def __init__(
        self,
        scheme: str,
        precision: int,
        cell_count: int,
        limit: int,
        estimated: bool = False,
    ) -> None:
        self.scheme = scheme
        self.precision = precision
        self.cell_count = cell_count
        self.limit = limit
        self.estimated = estimated
        kind = "estimated" if estimated else "actual"
        super().__init__(
            f"{scheme} covering at precision {precision} needs {cell_count} cells "
            f"({kind}), limit is {limit}"
        )


class IndexReadError(GeoCellError):
    """An index read failed or timed out, failing the whole query."""


class MalformedContinuationTokenError(GeoCellError, ValueError):
    """A continuation token could not be decoded or does not match the query."""


class QueryCancelledError(GeoCellError):
    """The caller's cancellation signal fired while the query was running."""
