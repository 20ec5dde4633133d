"""Search regions and the cell intersection tests used during covering.

A region is one non-wrapping latitude/longitude rectangle, optionally
narrowed by a circle. Cells are tested conservatively: a cell is kept when it
might intersect the region, never dropped when it does.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from shapely.geometry import Polygon, box

from geocell.geometry.spherical import (
    Bounds,
    bounds_intersect,
    cap_bounds,
    expand_bounds,
    haversine_meters,
    longitude_intervals,
)

logger = logging.getLogger(__name__)

# Past these limits lon/lat polygons drift too far from the geodesic cell
# edges, so the cap test decides alone.
_POLYGON_MAX_LATITUDE = 80.0
_POLYGON_MAX_CIRCUMRADIUS_METERS = 100_000.0
# Box padding, as a fraction of the cell circumradius, absorbing edge bulge.
_POLYGON_MARGIN_RATIO = 0.25


@dataclass(frozen=True)
class SearchRegion:
    """A rectangle plus an optional circle that every kept cell must touch."""

    bounds: Bounds
    center: tuple[float, float] | None = None
    radius_meters: float | None = None

    def may_intersect_cap(
        self, latitude: float, longitude: float, cap_radius_meters: float
    ) -> bool:
        """Whether a cap around a point could overlap the region."""
        if self.center is not None and self.radius_meters is not None:
            gap = haversine_meters(self.center[0], self.center[1], latitude, longitude)
            if gap > self.radius_meters + cap_radius_meters:
                return False
        return bounds_intersect(cap_bounds(latitude, longitude, cap_radius_meters), self.bounds)

    def may_intersect_cell(
        self,
        center: tuple[float, float],
        vertices: Sequence[tuple[float, float]],
        circumradius_meters: float,
    ) -> bool:
        """Final test for a target-precision cell: cap first, then polygon."""
        if not self.may_intersect_cap(center[0], center[1], circumradius_meters):
            return False
        return polygon_may_intersect(vertices, self.bounds, circumradius_meters)


def polygon_may_intersect(
    vertices: Sequence[tuple[float, float]],
    bounds: Bounds,
    circumradius_meters: float,
) -> bool:
    """Polygon-against-rectangle test in unwrapped lon/lat space.

    ``vertices`` are (lat, lon) pairs. The rectangle is padded so that the
    straight lon/lat edges of the polygon never miss a geodesic edge bulge.
    """
    if circumradius_meters > _POLYGON_MAX_CIRCUMRADIUS_METERS:
        return True
    if any(abs(lat) > _POLYGON_MAX_LATITUDE for lat, _ in vertices):
        logger.debug("Near-pole cell, polygon test skipped")
        return True

    lons = [lon for _, lon in vertices]
    if max(lons) - min(lons) > 180.0:
        lons = [lon + 360.0 if lon < 0 else lon for lon in lons]
    cell = Polygon([(lon, lat) for (lat, _), lon in zip(vertices, lons)])
    if not cell.is_valid:
        logger.debug("Invalid cell polygon, polygon test skipped")
        return True

    south, west, north, east = expand_bounds(bounds, circumradius_meters * _POLYGON_MARGIN_RATIO)
    for w, e in longitude_intervals(west, east):
        for shift in (0.0, 360.0):
            if cell.intersects(box(w + shift, south, e + shift, north)):
                return True
    return False
