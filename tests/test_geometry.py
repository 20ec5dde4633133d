"""Tests for locations, boxes and spherical math."""

import math

import pytest
from pydantic import ValidationError

from geocell.errors import InvalidArgumentError
from geocell.geometry import (
    GeoBoundingBox,
    GeoLocation,
    SearchRegion,
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
from geocell.geometry.region import polygon_may_intersect


class TestGeoLocation:
    """Tests for coordinate validation."""

    def test_valid_extremes(self):
        """Poles and the antimeridian are valid coordinates."""
        assert GeoLocation.of(90, 180).as_tuple() == (90.0, 180.0)
        assert GeoLocation.of(-90, -180).as_tuple() == (-90.0, -180.0)

    @pytest.mark.parametrize(
        "lat,lon",
        [(90.5, 0), (-91, 0), (0, 180.1), (0, -200), (float("nan"), 0), (0, float("inf"))],
    )
    def test_rejects_out_of_range(self, lat, lon):
        """Out-of-range and non-finite coordinates are rejected, not clamped."""
        with pytest.raises(ValidationError):
            GeoLocation.of(lat, lon)

    def test_is_hashable_and_immutable(self):
        """Locations can key dicts and cannot be mutated."""
        loc = GeoLocation.of(1.0, 2.0)
        assert {loc: 1}[GeoLocation.of(1.0, 2.0)] == 1
        with pytest.raises(ValidationError):
            loc.latitude = 3.0


class TestGeoBoundingBox:
    """Tests for the bounding box value type."""

    def test_rejects_inverted_latitudes(self):
        """South above north is invalid."""
        with pytest.raises(ValidationError):
            GeoBoundingBox.from_bounds(10, 0, 5, 1)

    def test_crossing_box(self):
        """West greater than east means the box wraps the antimeridian."""
        box = GeoBoundingBox.from_bounds(-1, 179, 1, -179)
        assert box.crosses_antimeridian
        assert box.longitude_span_degrees == pytest.approx(2.0)
        assert abs(box.center.longitude) == pytest.approx(180.0)
        assert box.contains(GeoLocation.of(0, 179.5))
        assert box.contains(GeoLocation.of(0, -179.5))
        assert not box.contains(GeoLocation.of(0, 0))

    def test_plain_box(self):
        """A non-wrapping box contains its interior and edges only."""
        box = GeoBoundingBox.from_bounds(10, 20, 30, 40)
        assert not box.crosses_antimeridian
        assert box.center.as_tuple() == (20.0, 30.0)
        assert box.contains(GeoLocation.of(10, 40))
        assert not box.contains(GeoLocation.of(9.9, 30))
        assert not box.contains(GeoLocation.of(20, 41))

    def test_contains_pole(self):
        """Touching either pole is detected."""
        assert GeoBoundingBox.from_bounds(80, -180, 90, 180).contains_pole
        assert GeoBoundingBox.from_bounds(-90, -180, -80, 180).contains_pole
        assert not GeoBoundingBox.from_bounds(-89, -180, 89, 180).contains_pole

    def test_boxes_intersect_across_antimeridian(self):
        """A wrapping box overlaps boxes on both sides of the date line."""
        wrapping = GeoBoundingBox.from_bounds(-1, 179, 1, -179)
        assert boxes_intersect(wrapping, GeoBoundingBox.from_bounds(0, -179.5, 2, -170))
        assert boxes_intersect(wrapping, GeoBoundingBox.from_bounds(0, 170, 2, 179.5))
        assert not boxes_intersect(wrapping, GeoBoundingBox.from_bounds(0, 0, 2, 10))


class TestDistance:
    """Tests for great-circle distances."""

    def test_known_distance(self):
        """San Francisco to Los Angeles is about 559 km."""
        sf = GeoLocation.of(37.7749, -122.4194)
        la = GeoLocation.of(34.0522, -118.2437)
        assert distance_meters(sf, la) == pytest.approx(559_000, rel=0.01)

    def test_symmetric_and_zero(self):
        """Distance is symmetric and zero only for the same point."""
        a = GeoLocation.of(10, 20)
        b = GeoLocation.of(-5, 100)
        assert distance_meters(a, b) == pytest.approx(distance_meters(b, a))
        assert distance_meters(a, a) == 0.0
        assert distance_meters(a, b) > 0

    def test_across_antimeridian(self):
        """Points either side of the date line are close together."""
        a = GeoLocation.of(0, 179.9)
        b = GeoLocation.of(0, -179.9)
        assert distance_meters(a, b) == pytest.approx(22_239, rel=0.01)

    def test_vectorized_matches_scalar(self):
        """The numpy path agrees with the scalar haversine."""
        center = GeoLocation.of(37.7749, -122.4194)
        points = [GeoLocation.of(37.8, -122.4), GeoLocation.of(-33.9, 151.2)]
        result = distances_meters(
            center, [p.latitude for p in points], [p.longitude for p in points]
        )
        for got, point in zip(result, points):
            assert got == pytest.approx(distance_meters(center, point))

    def test_destination_round_trip(self):
        """A point reached on a bearing lies at the travelled distance."""
        origin = GeoLocation.of(45, 179.9)
        for bearing in (0, 45, 90, 200, 315):
            point = destination(origin, 12_345.0, bearing)
            assert distance_meters(origin, point) == pytest.approx(12_345.0, abs=0.01)
            assert -180.0 <= point.longitude <= 180.0

    def test_unit_helpers(self):
        """Unit conversions use exact factors."""
        assert km_to_meters(2.5) == 2_500.0
        assert meters_to_km(750.0) == 0.75
        assert miles_to_meters(1.0) == 1_609.344
        assert meters_to_miles(1_609.344) == pytest.approx(1.0)

    @pytest.mark.parametrize("lon,expected", [(190, -170), (-190, 170), (180, 180), (370, 10)])
    def test_normalize_longitude(self, lon, expected):
        """Longitudes wrap into [-180, 180]."""
        assert normalize_longitude(lon) == pytest.approx(expected)


class TestBoundingBox:
    """Tests for radius bounding boxes."""

    def test_rejects_non_positive_radius(self):
        """Zero and negative radii fail fast."""
        with pytest.raises(InvalidArgumentError):
            bounding_box(GeoLocation.of(0, 0), 0)
        with pytest.raises(InvalidArgumentError):
            bounding_box(GeoLocation.of(0, 0), -5)

    def test_equator_extent(self):
        """At the equator both half-extents equal the angular radius."""
        box = bounding_box(GeoLocation.of(0, 0), 111_195.0)
        assert box.north == pytest.approx(1.0, abs=1e-3)
        assert box.east == pytest.approx(1.0, abs=1e-3)
        assert box.south == pytest.approx(-1.0, abs=1e-3)

    def test_longitude_extent_inflates_with_latitude(self):
        """Meridian convergence widens the box by at least 1/cos(latitude)."""
        box = bounding_box(GeoLocation.of(60, 0), 10_000.0)
        dlat = box.north - 60
        assert box.east >= dlat / math.cos(math.radians(60)) - 1e-12

    def test_holds_every_point_of_the_circle(self):
        """Every point within the radius falls inside the box."""
        center = GeoLocation.of(70, -150)
        box = bounding_box(center, 300_000.0)
        for bearing in range(0, 360, 15):
            assert box.contains(destination(center, 299_900.0, bearing))

    def test_north_pole_clamp(self):
        """A cap over the north pole clamps to 90 and spans every longitude."""
        box = bounding_box(GeoLocation.of(89.9, 0), 50_000.0)
        assert box.north == 90.0
        assert (box.west, box.east) == (-180.0, 180.0)
        assert box.contains_pole

    def test_south_pole_clamp(self):
        """The same holds at the south pole."""
        box = bounding_box(GeoLocation.of(-89.95, 45), 20_000.0)
        assert box.south == -90.0
        assert (box.west, box.east) == (-180.0, 180.0)

    def test_crossing_box(self):
        """A radius reaching over the date line yields a wrapping box."""
        box = bounding_box(GeoLocation.of(0, 179.5), 100_000.0)
        assert box.crosses_antimeridian
        assert 178.0 < box.west < 179.5
        assert -180.0 < box.east < -179.0

    def test_huge_radius_spans_everything(self):
        """Radii past the pole distance give the whole longitude range."""
        box = bounding_box(GeoLocation.of(10, 10), 15_000_000.0)
        assert (box.west, box.east) == (-180.0, 180.0)
        assert -90.0 <= box.south and box.north <= 90.0

    def test_radius_of_box(self):
        """The center-to-corner radius of a radius box exceeds the radius."""
        center = GeoLocation.of(37.7749, -122.4194)
        box = bounding_box(center, 2_000.0)
        assert bounding_box_radius_meters(box) > 2_000.0


class TestSplitAtAntimeridian:
    """Tests for splitting wrapping boxes."""

    def test_split(self):
        """A wrapping box splits into west and east halves."""
        west, east = split_at_antimeridian(GeoBoundingBox.from_bounds(-2, 178, 3, -177))
        assert west.bounds == (-2.0, 178.0, 3.0, 180.0)
        assert east.bounds == (-2.0, -180.0, 3.0, -177.0)

    def test_non_crossing_rejected(self):
        """Only wrapping boxes can be split."""
        with pytest.raises(InvalidArgumentError):
            split_at_antimeridian(GeoBoundingBox.from_bounds(0, 0, 1, 1))


class TestSearchRegion:
    """Tests for the conservative cell intersection tests."""

    SQUARE = [(0.0, 0.0), (0.0, 0.01), (0.01, 0.01), (0.01, 0.0)]

    def test_cap_outside_circle(self):
        """A cap far beyond the circle is rejected."""
        region = SearchRegion((-1.0, -1.0, 1.0, 1.0), (0.0, 0.0), 1_000.0)
        assert region.may_intersect_cap(0.0, 0.0, 10.0)
        assert not region.may_intersect_cap(0.5, 0.5, 10.0)

    def test_polygon_inside_and_outside(self):
        """The polygon test keeps overlapping cells and drops distant ones."""
        assert polygon_may_intersect(self.SQUARE, (-0.005, -0.005, 0.005, 0.005), 800.0)
        assert not polygon_may_intersect(self.SQUARE, (0.5, 0.5, 0.6, 0.6), 800.0)

    def test_polygon_across_antimeridian(self):
        """A cell straddling the date line matches boxes on either side."""
        cell = [(0.0, 179.99), (0.0, -179.99), (0.01, -179.99), (0.01, 179.99)]
        assert polygon_may_intersect(cell, (0.0, -180.0, 0.005, -179.995), 1_500.0)
        assert polygon_may_intersect(cell, (0.0, 179.995, 0.005, 180.0), 1_500.0)

    def test_polygon_skipped_near_pole(self):
        """Cells with vertices past 80 degrees are always kept."""
        cell = [(85.0, 0.0), (85.0, 1.0), (86.0, 1.0), (86.0, 0.0)]
        assert polygon_may_intersect(cell, (0.0, 50.0, 1.0, 51.0), 80_000.0)
