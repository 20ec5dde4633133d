"""Geometry primitives: locations, boxes and spherical math."""

from geocell.geometry.region import SearchRegion
from geocell.geometry.spherical import (
    EARTH_RADIUS_METERS,
    bounding_box,
    bounding_box_radius_meters,
    boxes_intersect,
    destination,
    distance_meters,
    distances_meters,
    km_to_meters,
    meters_to_km,
    meters_to_miles,
    miles_to_meters,
    normalize_longitude,
    split_at_antimeridian,
)
from geocell.geometry.types import GeoBoundingBox, GeoLocation

__all__ = [
    "EARTH_RADIUS_METERS",
    "GeoBoundingBox",
    "GeoLocation",
    "SearchRegion",
    "bounding_box",
    "bounding_box_radius_meters",
    "boxes_intersect",
    "destination",
    "distance_meters",
    "distances_meters",
    "km_to_meters",
    "meters_to_km",
    "meters_to_miles",
    "miles_to_meters",
    "normalize_longitude",
    "split_at_antimeridian",
]
