"""Stored item schema returned by the reference index."""

from typing import Any

from pydantic import BaseModel, Field

from geocell.geometry.types import GeoLocation


class StoredItem(BaseModel):
    """An item as written to and read from the spatial tables."""

    id: str = Field(..., min_length=1, max_length=255, description="Primary key")
    location: GeoLocation
    data: dict[str, Any] = Field(default_factory=dict, description="Opaque item payload")
