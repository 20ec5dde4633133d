"""The secondary-index collaborator the executor reads through."""

from collections.abc import Hashable
from dataclasses import dataclass, field
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, model_validator

from geocell.cells import ReadKey, SchemeType
from geocell.geometry.types import GeoLocation
from geocell.precision.tables import validate_precision


@dataclass
class IndexPage:
    """Raw items from one index read and the token to continue that read."""

    items: list[Any] = field(default_factory=list)
    next_token: str | None = None


class SpatialIndexReader(Protocol):
    """Read access to a secondary index keyed by cell token."""

    async def read(self, key: ReadKey, limit: int, inner_token: str | None) -> IndexPage:
        """Equality read for a cell token, or an ordered range read for a range.

        Returns at most ``limit`` items; ``next_token`` is None once the
        key is exhausted.
        """
        ...

    def location_of(self, item: Any) -> GeoLocation:
        """Stored coordinate of a raw item."""
        ...

    def key_of(self, item: Any) -> Hashable:
        """Primary key of a raw item."""
        ...


class SpatialIndexDefinition(BaseModel):
    """A secondary index holding one cell token per item at a fixed precision."""

    model_config = ConfigDict(frozen=True)

    name: str
    scheme: SchemeType
    precision: int

    @model_validator(mode="after")
    def check_precision(self) -> "SpatialIndexDefinition":
        validate_precision(self.scheme, self.precision)
        return self

    def serves(self, key: ReadKey) -> bool:
        return key.scheme == self.scheme and key.precision == self.precision
