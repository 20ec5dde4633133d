"""Spherical math on a mean-radius Earth.

Every longitude leaving this module is normalized into [-180, 180] and every
latitude is clamped or validated into [-90, 90]. Internal helpers work on
plain float tuples ``(south, west, north, east)`` so covering code can test
thousands of candidate cells without building models for each.
"""

import math

import numpy as np

from geocell.errors import InvalidArgumentError
from geocell.geometry.types import GeoBoundingBox, GeoLocation

EARTH_RADIUS_METERS = 6_371_000.0
METERS_PER_KILOMETER = 1_000.0
METERS_PER_MILE = 1_609.344

Bounds = tuple[float, float, float, float]

FULL_LONGITUDE = (-180.0, 180.0)


def km_to_meters(km: float) -> float:
    return km * METERS_PER_KILOMETER


def meters_to_km(meters: float) -> float:
    return meters / METERS_PER_KILOMETER


def miles_to_meters(miles: float) -> float:
    return miles * METERS_PER_MILE


def meters_to_miles(meters: float) -> float:
    return meters / METERS_PER_MILE


def normalize_longitude(longitude: float) -> float:
    """Wrap a longitude into [-180, 180]."""
    if -180.0 <= longitude <= 180.0:
        return longitude
    wrapped = math.fmod(longitude + 180.0, 360.0)
    if wrapped < 0:
        wrapped += 360.0
    return wrapped - 180.0


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points given in degrees."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = phi2 - phi1
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(a)))


def distance_meters(a: GeoLocation, b: GeoLocation) -> float:
    """Haversine distance between two locations."""
    return haversine_meters(a.latitude, a.longitude, b.latitude, b.longitude)


def distances_meters(
    center: GeoLocation,
    latitudes: np.ndarray,
    longitudes: np.ndarray,
) -> np.ndarray:
    """Vectorized haversine distance from ``center`` to each point."""
    lats = np.radians(np.asarray(latitudes, dtype=np.float64))
    lons = np.radians(np.asarray(longitudes, dtype=np.float64))
    phi1 = math.radians(center.latitude)
    lambda1 = math.radians(center.longitude)

    a = np.sin((lats - phi1) / 2) ** 2 + math.cos(phi1) * np.cos(lats) * np.sin(
        (lons - lambda1) / 2
    ) ** 2
    return 2 * EARTH_RADIUS_METERS * np.arcsin(np.minimum(1.0, np.sqrt(a)))


def destination(origin: GeoLocation, distance: float, bearing_degrees: float) -> GeoLocation:
    """Point reached by travelling ``distance`` meters from ``origin`` on a bearing."""
    delta = distance / EARTH_RADIUS_METERS
    theta = math.radians(bearing_degrees)
    phi1 = math.radians(origin.latitude)
    lambda1 = math.radians(origin.longitude)

    sin_phi2 = math.sin(phi1) * math.cos(delta) + math.cos(phi1) * math.sin(delta) * math.cos(theta)
    phi2 = math.asin(max(-1.0, min(1.0, sin_phi2)))
    lambda2 = lambda1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(phi1),
        math.cos(delta) - math.sin(phi1) * math.sin(phi2),
    )

    lat = max(-90.0, min(90.0, math.degrees(phi2)))
    return GeoLocation(latitude=lat, longitude=normalize_longitude(math.degrees(lambda2)))


def cap_bounds(latitude: float, longitude: float, radius_meters: float) -> Bounds:
    """Bounding rectangle of the spherical cap around a point.

    The longitude half-extent is ``asin(sin(d) / cos(lat))``, which is never
    smaller than the ``d / cos(lat)`` meridian-convergence inflation. A cap
    reaching either pole is clamped to exactly +/-90 and given the full
    longitude range.
    """
    d = radius_meters / EARTH_RADIUS_METERS
    dlat = math.degrees(d)
    south = latitude - dlat
    north = latitude + dlat
    if south <= -90.0 or north >= 90.0:
        return (max(south, -90.0), -180.0, min(north, 90.0), 180.0)

    cos_lat = math.cos(math.radians(latitude))
    ratio = math.sin(d) / cos_lat
    if ratio >= 1.0:
        return (south, -180.0, north, 180.0)
    dlon = max(math.degrees(math.asin(ratio)), dlat / cos_lat)
    if dlon >= 180.0:
        return (south, -180.0, north, 180.0)

    west = longitude - dlon
    east = longitude + dlon
    if west < -180.0:
        west += 360.0
    if east > 180.0:
        east -= 360.0
    return (south, west, north, east)


def bounding_box(center: GeoLocation, radius_meters: float) -> GeoBoundingBox:
    """Smallest latitude/longitude box holding every point within the radius."""
    if not radius_meters > 0:
        raise InvalidArgumentError(f"radius must be positive, got {radius_meters}")
    return GeoBoundingBox.from_bounds(*cap_bounds(center.latitude, center.longitude, radius_meters))


def expand_bounds(bounds: Bounds, margin_meters: float) -> Bounds:
    """Grow a rectangle by a margin on every side, keeping it valid."""
    south, west, north, east = bounds
    dlat = math.degrees(margin_meters / EARTH_RADIUS_METERS)
    south -= dlat
    north += dlat
    if south <= -90.0 or north >= 90.0:
        return (max(south, -90.0), -180.0, min(north, 90.0), 180.0)

    cos_lat = math.cos(math.radians(max(abs(south), abs(north))))
    dlon = dlat / cos_lat
    span = east - west if west <= east else 360.0 - (west - east)
    if span + 2 * dlon >= 360.0:
        return (south, -180.0, north, 180.0)

    west -= dlon
    east += dlon
    if west < -180.0:
        west += 360.0
    if east > 180.0:
        east -= 360.0
    return (south, west, north, east)


def split_at_antimeridian(box: GeoBoundingBox) -> tuple[GeoBoundingBox, GeoBoundingBox]:
    """Split a wrapping box into its west ([w, 180]) and east ([-180, e]) halves."""
    if not box.crosses_antimeridian:
        raise InvalidArgumentError("box does not cross the antimeridian")
    west = GeoBoundingBox.from_bounds(box.south, box.west, box.north, 180.0)
    east = GeoBoundingBox.from_bounds(box.south, -180.0, box.north, box.east)
    return west, east


def longitude_intervals(west: float, east: float) -> list[tuple[float, float]]:
    """Non-wrapping longitude intervals covering ``[west, east]``."""
    if west <= east:
        return [(west, east)]
    return [(west, 180.0), (-180.0, east)]


def bounds_intersect(a: Bounds, b: Bounds) -> bool:
    """Whether two (possibly wrapping) rectangles overlap, edges included."""
    if a[0] > b[2] or b[0] > a[2]:
        return False
    for aw, ae in longitude_intervals(a[1], a[3]):
        for bw, be in longitude_intervals(b[1], b[3]):
            if aw <= be and bw <= ae:
                return True
    return False


def boxes_intersect(a: GeoBoundingBox, b: GeoBoundingBox) -> bool:
    return bounds_intersect(a.bounds, b.bounds)


def bounding_box_radius_meters(box: GeoBoundingBox) -> float:
    """Distance from the box center to its farthest corner."""
    center = box.center
    corners = (
        (box.south, box.west),
        (box.south, box.east),
        (box.north, box.west),
        (box.north, box.east),
    )
    return max(
        haversine_meters(center.latitude, center.longitude, lat, lon) for lat, lon in corners
    )
