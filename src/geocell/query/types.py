"""Query results, pages and continuation tokens."""

import base64
from collections.abc import Hashable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from geocell.cells import CoveringResult, SchemeType
from geocell.errors import MalformedContinuationTokenError
from geocell.geometry.types import GeoLocation

TOKEN_VERSION = 1


class QueryState(str, Enum):
    """Lifecycle of one executor call."""

    INITIALIZED = "initialized"
    COVERING = "covering"
    DRAINING = "draining"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


@dataclass
class QueryResultItem:
    """A stored item that passed the exact filter."""

    item: Any
    key: Hashable
    location: GeoLocation
    distance_meters: float


@dataclass
class QueryPage:
    """One page of results plus the cursor for the next one."""

    items: list[QueryResultItem]
    continuation_token: str | None
    precision: int
    cells_queried: int = 0
    items_scanned: int = 0
    state: QueryState = QueryState.EXHAUSTED

    @property
    def keys(self) -> list[Hashable]:
        return [result.key for result in self.items]

    @property
    def has_more(self) -> bool:
        return self.continuation_token is not None


class ContinuationToken(BaseModel):
    """Serializable cursor into a covering.

    Holds the covering's read keys, the index of the key being drained and
    that key's inner token from the index. ``cells`` holds cell tokens for the
    discrete schemes; ``ranges`` holds ``[min, max]`` pairs for string ranges.
    """

    model_config = ConfigDict(frozen=True)

    version: int = TOKEN_VERSION
    scheme: SchemeType
    precision: int
    cells: list[str] = Field(default_factory=list)
    ranges: list[tuple[str, str]] = Field(default_factory=list)
    cell_index: int = Field(..., ge=0)
    inner_token: str | None = None

    @classmethod
    def for_covering(
        cls, covering: CoveringResult, cell_index: int, inner_token: str | None
    ) -> "ContinuationToken":
        return cls(
            scheme=covering.scheme,
            precision=covering.precision,
            cells=[cell.value for cell in covering.cells],
            ranges=[(r.min_token, r.max_token) for r in covering.ranges],
            cell_index=cell_index,
            inner_token=inner_token,
        )

    @property
    def key_count(self) -> int:
        return len(self.ranges) if self.ranges else len(self.cells)

    def matches(self, covering: CoveringResult) -> bool:
        """Whether the token was cut from this covering."""
        return (
            self.scheme == covering.scheme
            and self.precision == covering.precision
            and self.cells == [cell.value for cell in covering.cells]
            and self.ranges == [(r.min_token, r.max_token) for r in covering.ranges]
        )

    def encode(self) -> str:
        """URL-safe base64 of the token's JSON."""
        return base64.urlsafe_b64encode(self.model_dump_json().encode("utf-8")).decode("ascii")

    @classmethod
    def decode(cls, raw: str) -> "ContinuationToken":
        """Inverse of ``encode``.

        Raises:
            MalformedContinuationTokenError: the text is not a token this
                version can read.
        """
        if not isinstance(raw, str) or not raw:
            raise MalformedContinuationTokenError("continuation token must be a non-empty string")
        try:
            payload = base64.urlsafe_b64decode(raw.encode("ascii"))
            token = cls.model_validate_json(payload)
        except ValueError as e:
            raise MalformedContinuationTokenError(f"cannot decode continuation token: {e}") from e
        if token.version != TOKEN_VERSION:
            raise MalformedContinuationTokenError(
                f"unsupported continuation token version {token.version}"
            )
        if token.cells and token.ranges:
            raise MalformedContinuationTokenError("token holds both cells and ranges")
        if token.cell_index >= token.key_count:
            raise MalformedContinuationTokenError(
                f"cell index {token.cell_index} outside a covering of {token.key_count} keys"
            )
        return token
