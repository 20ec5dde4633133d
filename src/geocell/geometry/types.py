"""Coordinate and bounding-box value types."""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class GeoLocation(BaseModel):
    """A point on the sphere in WGS84 degrees."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90.0, le=90.0, allow_inf_nan=False)
    longitude: float = Field(..., ge=-180.0, le=180.0, allow_inf_nan=False)

    @classmethod
    def of(cls, latitude: float, longitude: float) -> "GeoLocation":
        """Shorthand positional constructor."""
        return cls(latitude=latitude, longitude=longitude)

    def as_tuple(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


class GeoBoundingBox(BaseModel):
    """A latitude/longitude rectangle.

    When ``southwest.longitude > northeast.longitude`` the box wraps through
    the antimeridian: its longitude range is ``[southwest, 180] + [-180, northeast]``.
    """

    model_config = ConfigDict(frozen=True)

    southwest: GeoLocation
    northeast: GeoLocation

    @model_validator(mode="after")
    def check_latitudes(self) -> "GeoBoundingBox":
        if self.southwest.latitude > self.northeast.latitude:
            raise ValueError("southwest latitude must not exceed northeast latitude")
        return self

    @classmethod
    def from_bounds(cls, south: float, west: float, north: float, east: float) -> "GeoBoundingBox":
        return cls(
            southwest=GeoLocation(latitude=south, longitude=west),
            northeast=GeoLocation(latitude=north, longitude=east),
        )

    @property
    def south(self) -> float:
        return self.southwest.latitude

    @property
    def west(self) -> float:
        return self.southwest.longitude

    @property
    def north(self) -> float:
        return self.northeast.latitude

    @property
    def east(self) -> float:
        return self.northeast.longitude

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """(south, west, north, east)."""
        return (self.south, self.west, self.north, self.east)

    @property
    def crosses_antimeridian(self) -> bool:
        return self.west > self.east

    @property
    def contains_pole(self) -> bool:
        return self.north == 90.0 or self.south == -90.0

    @property
    def longitude_span_degrees(self) -> float:
        if self.crosses_antimeridian:
            return 360.0 - (self.west - self.east)
        return self.east - self.west

    @property
    def center(self) -> GeoLocation:
        lat = (self.south + self.north) / 2.0
        lon = self.west + self.longitude_span_degrees / 2.0
        if lon > 180.0:
            lon -= 360.0
        return GeoLocation(latitude=lat, longitude=lon)

    def contains(self, location: GeoLocation) -> bool:
        if not self.south <= location.latitude <= self.north:
            return False
        if self.crosses_antimeridian:
            return location.longitude >= self.west or location.longitude <= self.east
        return self.west <= location.longitude <= self.east
