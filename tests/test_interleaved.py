"""Tests for the interleaved-string (geohash) scheme."""

import random

import pygeohash
import pytest

from geocell.cells import CellRange, SchemeType
from geocell.errors import CellLimitExceededError, InvalidArgumentError
from geocell.geometry import GeoBoundingBox, GeoLocation, destination
from geocell.schemes.interleaved import InterleavedStringScheme


@pytest.fixture
def scheme() -> InterleavedStringScheme:
    return InterleavedStringScheme()


class TestTokens:
    """Tests for geohash tokens."""

    def test_cell_for_location(self, scheme, sf_center):
        """Geohashes of San Francisco start with 9q8yy."""
        token = scheme.cell_for_location(sf_center, 6)
        assert token.value.startswith("9q8yy")
        assert len(token.value) == token.precision == 6

    def test_no_integer_id(self, scheme, sf_center):
        """String cells have no integer form."""
        with pytest.raises(InvalidArgumentError):
            scheme.cell_for_location(sf_center, 6).cell_id

    def test_parse_token(self, scheme):
        """Parsing lowercases and validates the alphabet and length."""
        assert scheme.parse_token("9Q8YY").value == "9q8yy"
        assert scheme.parse_token("9q8yy", 5).precision == 5
        for bad in ["", "9q8ya", "9q8yi", "9q8yl", "0123456789bcd"]:
            with pytest.raises(InvalidArgumentError):
                scheme.parse_token(bad)
        with pytest.raises(InvalidArgumentError):
            scheme.parse_token("9q8yy", 6)

    def test_center_and_boundary(self, scheme, sf_center):
        """The decoded center lies inside the cell rectangle."""
        token = scheme.cell_for_location(sf_center, 7)
        center = scheme.cell_center(token)
        sw, _, ne, _ = scheme.cell_boundary(token)
        assert sw.latitude < center.latitude < ne.latitude
        assert sw.longitude < center.longitude < ne.longitude
        assert scheme.cell_for_location(center, 7) == token


class TestHierarchy:
    """Tests for parent, children and neighbors."""

    def test_parent_and_children(self, scheme):
        """Parents drop the last character; children append one."""
        token = scheme.parse_token("9q8yyk")
        assert scheme.parent(token).value == "9q8yy"
        children = scheme.children(token)
        assert len(children) == 32
        assert all(child.value.startswith("9q8yyk") for child in children)
        assert all(scheme.parent(child) == token for child in children)

    def test_length_bounds(self, scheme):
        """One-character hashes have no parent; twelve-character ones no children."""
        with pytest.raises(InvalidArgumentError):
            scheme.parent(scheme.parse_token("9"))
        with pytest.raises(InvalidArgumentError):
            scheme.children(scheme.parse_token("9q8yykzzzzzz"))

    def test_neighbors(self, scheme):
        """Interior cells have eight neighbors that list them back."""
        token = scheme.parse_token("9q8yyk")
        neighbors = scheme.neighbors(token)
        assert len(set(neighbors)) == 8
        assert token not in neighbors
        assert scheme.parse_token("9q8yys") in neighbors
        for neighbor in neighbors:
            assert token in scheme.neighbors(neighbor)

    def test_neighbors_across_antimeridian(self, scheme):
        """The eastmost column borders the westmost one."""
        west = scheme.cell_for_location(GeoLocation.of(0.01, 179.99), 4)
        east = scheme.cell_for_location(GeoLocation.of(0.01, -179.99), 4)
        assert east in scheme.neighbors(west)
        assert west in scheme.neighbors(east)

    def test_neighbors_at_pole(self, scheme):
        """Cells on the polar edge have no row beyond it."""
        token = scheme.cell_for_location(GeoLocation.of(89.99, 10.0), 3)
        neighbors = scheme.neighbors(token)
        assert len(neighbors) == 5
        assert all(scheme.cell_center(n).latitude < 90.0 for n in neighbors)


class TestRangeCovering:
    """Tests for geohash range coverings."""

    @pytest.mark.parametrize(
        "lat,lon,radius,precision",
        [
            (37.7749, -122.4194, 2_000.0, 6),
            (-33.8688, 151.2093, 10_000.0, 5),
            (0.0, 0.0, 500.0, 7),
            (60.0, 10.0, 50_000.0, 4),
            (89.9, 0.0, 50_000.0, 3),
        ],
    )
    def test_range_validity(self, scheme, lat, lon, radius, precision):
        """Ranges are ordered and their tokens have the requested length."""
        covering = scheme.cells_for_radius(GeoLocation.of(lat, lon), radius, precision)
        assert covering.cells == ()
        for cell_range in covering.ranges:
            assert cell_range.min_token <= cell_range.max_token
            assert len(cell_range.min_token) == len(cell_range.max_token) == precision

    def test_single_range(self, scheme, sf_center):
        """A box that does not wrap is one range."""
        covering = scheme.cells_for_radius(sf_center, 2_000.0, 6)
        assert len(covering.ranges) == 1
        assert covering.range is covering.ranges[0]
        assert covering.keys == covering.ranges

    def test_range_holds_every_point(self, scheme, sf_center):
        """Every point in the circle encodes inside the range."""
        covering = scheme.cells_for_radius(sf_center, 2_000.0, 6)
        rng = random.Random(5)
        for _ in range(200):
            point = destination(sf_center, rng.uniform(0, 2_000.0), rng.uniform(0, 360))
            value = pygeohash.encode(point.latitude, point.longitude, precision=6)
            assert covering.range.contains(value)

    def test_crossing_yields_two_ranges(self, scheme):
        """A circle over the date line becomes one range per side."""
        center = GeoLocation.of(0, 179.99)
        covering = scheme.cells_for_radius(center, 5_000.0, 5)
        assert len(covering.ranges) == 2
        assert covering.range is None
        for lon in (179.97, -179.97):
            value = pygeohash.encode(0.01, lon, precision=5)
            assert any(r.contains(value) for r in covering.ranges)

    def test_caller_limit(self, scheme):
        """Two ranges do not fit a limit of one."""
        with pytest.raises(CellLimitExceededError):
            scheme.cells_for_radius(GeoLocation.of(0, 179.99), 5_000.0, 5, max_cells=1)

    def test_box(self, scheme):
        """Box ranges run from the southwest to the northeast corner."""
        box = GeoBoundingBox.from_bounds(37.7, -122.5, 37.8, -122.4)
        covering = scheme.cells_for_bounding_box(box, 5)
        assert covering.ranges == (
            CellRange(
                SchemeType.INTERLEAVED_STRING,
                5,
                pygeohash.encode(37.7, -122.5, precision=5),
                pygeohash.encode(37.8, -122.4, precision=5),
            ),
        )

    def test_invalid_precision(self, scheme, sf_center):
        """Length 13 is past the longest geohash."""
        with pytest.raises(InvalidArgumentError):
            scheme.cells_for_radius(sf_center, 2_000.0, 13)
