"""Hexagonal cells backed by H3."""

from collections.abc import Iterator

import h3

from geocell.cells import CellToken, CoveringResult, SchemeType
from geocell.config import ABSOLUTE_MAX_CELLS
from geocell.errors import CellLimitExceededError, InvalidArgumentError
from geocell.geometry.region import SearchRegion
from geocell.geometry.spherical import bounding_box, haversine_meters
from geocell.geometry.types import GeoBoundingBox, GeoLocation
from geocell.precision import tables
from geocell.schemes.covering import build_covering, check_cell, check_estimate, check_radius

MAX_RESOLUTION = 15

# Aperture-7 children spill past their parent's outline. Every descendant
# lies within about 1.05 parent circumradii of the parent center; the extra
# margin absorbs icosahedron distortion near pentagons.
_DESCENDANT_EXTENT = 1.25

_MAX_FRONTIER = 16 * ABSOLUTE_MAX_CELLS


def cell_geometry(cell: str) -> tuple[tuple[float, float], list[tuple[float, float]], float]:
    """(center, vertices, circumradius in meters); points are (lat, lng)."""
    center = h3.cell_to_latlng(cell)
    vertices = [tuple(v) for v in h3.cell_to_boundary(cell)]
    radius = max(haversine_meters(center[0], center[1], lat, lng) for lat, lng in vertices)
    return center, vertices, radius


class HexagonalScheme:
    """Hexagonal coverings by descent from the 122 resolution-0 cells.

    Intermediate levels are tested against the cap holding all of a cell's
    descendants rather than the cell itself, since children are not nested.
    """

    scheme = SchemeType.HEXAGONAL
    min_precision = 0
    max_precision = MAX_RESOLUTION

    def _token(self, cell: str) -> CellToken:
        return CellToken(self.scheme, cell, h3.get_resolution(cell))

    def cell_for_location(self, location: GeoLocation, precision: int) -> CellToken:
        tables.validate_precision(self.scheme, precision)
        return self._token(h3.latlng_to_cell(location.latitude, location.longitude, precision))

    def parse_token(self, value: str, precision: int | None = None) -> CellToken:
        if not isinstance(value, str) or not h3.is_valid_cell(value):
            raise InvalidArgumentError(f"not a valid hexagonal cell: {value!r}")
        token = self._token(value.lower())
        if precision is not None and token.precision != precision:
            raise InvalidArgumentError(
                f"cell {value!r} is resolution {token.precision}, expected {precision}"
            )
        return token

    def cell_center(self, token: CellToken) -> GeoLocation:
        lat, lng = h3.cell_to_latlng(token.value)
        return GeoLocation(latitude=lat, longitude=lng)

    def cell_boundary(self, token: CellToken) -> list[GeoLocation]:
        boundary = h3.cell_to_boundary(token.value)
        return [GeoLocation(latitude=lat, longitude=lng) for lat, lng in boundary]

    def parent(self, token: CellToken) -> CellToken:
        check_cell(self.scheme, token)
        token = self.parse_token(token.value, token.precision)
        if token.precision == self.min_precision:
            raise InvalidArgumentError(f"resolution-0 cell {token} has no parent")
        return self._token(h3.cell_to_parent(token.value, token.precision - 1))

    def children(self, token: CellToken) -> list[CellToken]:
        check_cell(self.scheme, token)
        token = self.parse_token(token.value, token.precision)
        if token.precision == self.max_precision:
            raise InvalidArgumentError(f"resolution-{MAX_RESOLUTION} cell {token} has no children")
        return [self._token(child) for child in sorted(h3.cell_to_children(token.value))]

    def neighbors(self, token: CellToken) -> list[CellToken]:
        """Six edge neighbors, or five around a pentagon."""
        check_cell(self.scheme, token)
        token = self.parse_token(token.value, token.precision)
        ring = set(h3.grid_disk(token.value, 1)) - {token.value}
        return [self._token(cell) for cell in sorted(ring)]

    def estimate_cell_count(self, radius_meters: float, precision: int) -> int:
        return tables.estimate_cell_count(self.scheme, radius_meters, precision)

    def estimate_box_cell_count(self, box: GeoBoundingBox, precision: int) -> int:
        return tables.estimate_box_cell_count(self.scheme, box, precision)

    def cells_for_radius(
        self,
        center: GeoLocation,
        radius_meters: float,
        precision: int,
        max_cells: int | None = None,
    ) -> CoveringResult:
        check_radius(radius_meters)
        tables.validate_precision(self.scheme, precision)
        check_estimate(self.scheme, precision, self.estimate_cell_count(radius_meters, precision))
        return build_covering(
            self.scheme,
            precision,
            bounding_box(center, radius_meters),
            lambda region: self._enumerate(region, precision),
            max_cells=max_cells,
            center=center,
            radius_meters=radius_meters,
        )

    def cells_for_bounding_box(
        self,
        box: GeoBoundingBox,
        precision: int,
        max_cells: int | None = None,
    ) -> CoveringResult:
        tables.validate_precision(self.scheme, precision)
        check_estimate(self.scheme, precision, self.estimate_box_cell_count(box, precision))
        return build_covering(
            self.scheme,
            precision,
            box,
            lambda region: self._enumerate(region, precision),
            max_cells=max_cells,
        )

    def _enumerate(
        self, region: SearchRegion, resolution: int
    ) -> Iterator[tuple[CellToken, tuple[float, float]]]:
        frontier = list(h3.get_res0_cells())
        for current in range(resolution):
            kept = []
            for cell in frontier:
                center, _, radius = cell_geometry(cell)
                if region.may_intersect_cap(center[0], center[1], radius * _DESCENDANT_EXTENT):
                    kept.extend(h3.cell_to_children(cell, current + 1))
            if len(kept) > _MAX_FRONTIER:
                raise CellLimitExceededError(
                    self.scheme.value, resolution, len(kept), ABSOLUTE_MAX_CELLS, estimated=True
                )
            frontier = kept

        for cell in frontier:
            center, vertices, radius = cell_geometry(cell)
            if region.may_intersect_cell(center, vertices, radius):
                yield self._token(cell), center
