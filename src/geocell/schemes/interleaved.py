"""Interleaved-bit string cells (geohash).

Latitude and longitude bits are interleaved and written in base32, so the
lexicographic order of equal-length strings follows a Z-order curve. Every
point of a non-wrapping rectangle therefore encodes between the encodings of
its southwest and northeast corners, and one ordered range read covers it.
"""

import logging

import pygeohash

from geocell.cells import CellRange, CellToken, CoveringResult, SchemeType
from geocell.errors import CellLimitExceededError, InvalidArgumentError
from geocell.geometry.spherical import bounding_box, normalize_longitude
from geocell.geometry.types import GeoBoundingBox, GeoLocation
from geocell.precision import tables
from geocell.schemes.covering import (
    check_cell,
    check_estimate,
    check_radius,
    resolve_max_cells,
    split_box,
    warn_if_polar,
)

logger = logging.getLogger(__name__)

BASE32_ALPHABET = "0123456789bcdefghjkmnpqrstuvwxyz"
MAX_LENGTH = 12


class InterleavedStringScheme:
    """Geohash range coverings.

    A wrapping box cannot be one Z-order range, so it is split at the
    antimeridian and each half becomes its own range.
    """

    scheme = SchemeType.INTERLEAVED_STRING
    min_precision = 1
    max_precision = MAX_LENGTH

    def _encode(self, latitude: float, longitude: float, precision: int) -> str:
        return pygeohash.encode(latitude, longitude, precision=precision)

    def cell_for_location(self, location: GeoLocation, precision: int) -> CellToken:
        tables.validate_precision(self.scheme, precision)
        value = self._encode(location.latitude, location.longitude, precision)
        return CellToken(self.scheme, value, precision)

    def parse_token(self, value: str, precision: int | None = None) -> CellToken:
        if not isinstance(value, str) or not 1 <= len(value) <= MAX_LENGTH:
            raise InvalidArgumentError(f"geohash must be 1-{MAX_LENGTH} characters: {value!r}")
        value = value.lower()
        if any(ch not in BASE32_ALPHABET for ch in value):
            raise InvalidArgumentError(f"geohash has characters outside base32: {value!r}")
        if precision is not None and len(value) != precision:
            raise InvalidArgumentError(f"geohash {value!r} is not of length {precision}")
        return CellToken(self.scheme, value, len(value))

    def cell_center(self, token: CellToken) -> GeoLocation:
        lat, lng, _, _ = pygeohash.decode_exactly(token.value)
        return GeoLocation(latitude=lat, longitude=lng)

    def cell_boundary(self, token: CellToken) -> list[GeoLocation]:
        lat, lng, lat_err, lng_err = pygeohash.decode_exactly(token.value)
        south, north = max(-90.0, lat - lat_err), min(90.0, lat + lat_err)
        west, east = max(-180.0, lng - lng_err), min(180.0, lng + lng_err)
        return [
            GeoLocation(latitude=south, longitude=west),
            GeoLocation(latitude=south, longitude=east),
            GeoLocation(latitude=north, longitude=east),
            GeoLocation(latitude=north, longitude=west),
        ]

    def parent(self, token: CellToken) -> CellToken:
        check_cell(self.scheme, token)
        token = self.parse_token(token.value, token.precision)
        if token.precision == self.min_precision:
            raise InvalidArgumentError(f"single-character geohash {token} has no parent")
        return CellToken(self.scheme, token.value[:-1], token.precision - 1)

    def children(self, token: CellToken) -> list[CellToken]:
        check_cell(self.scheme, token)
        token = self.parse_token(token.value, token.precision)
        if token.precision == self.max_precision:
            raise InvalidArgumentError(f"geohash {token} is already {MAX_LENGTH} characters")
        return [
            CellToken(self.scheme, token.value + ch, token.precision + 1) for ch in BASE32_ALPHABET
        ]

    def neighbors(self, token: CellToken) -> list[CellToken]:
        """The ring of eight around the cell.

        Longitude wraps at the antimeridian. Rows past a pole are dropped, so
        a cell on the polar edge has five neighbors.
        """
        check_cell(self.scheme, token)
        token = self.parse_token(token.value, token.precision)
        lat, lng, lat_err, lng_err = pygeohash.decode_exactly(token.value)
        neighbors = []
        for dlat in (1, 0, -1):
            row = lat + 2 * dlat * lat_err
            if not -90.0 < row < 90.0:
                continue
            for dlng in (-1, 0, 1):
                if dlat == 0 and dlng == 0:
                    continue
                column = normalize_longitude(lng + 2 * dlng * lng_err)
                value = self._encode(row, column, token.precision)
                if value != token.value and value not in neighbors:
                    neighbors.append(value)
        return [CellToken(self.scheme, value, token.precision) for value in neighbors]

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
        box = bounding_box(center, radius_meters)
        warn_if_polar(center, box)
        return self._ranges(box, precision, max_cells)

    def cells_for_bounding_box(
        self,
        box: GeoBoundingBox,
        precision: int,
        max_cells: int | None = None,
    ) -> CoveringResult:
        tables.validate_precision(self.scheme, precision)
        check_estimate(self.scheme, precision, self.estimate_box_cell_count(box, precision))
        warn_if_polar(box.center, box)
        return self._ranges(box, precision, max_cells)

    def _ranges(self, box: GeoBoundingBox, precision: int, max_cells: int | None) -> CoveringResult:
        limit = resolve_max_cells(max_cells)
        ranges: list[CellRange] = []
        for part in split_box(box):
            cell_range = CellRange(
                self.scheme,
                precision,
                self._encode(part.south, part.west, precision),
                self._encode(part.north, part.east, precision),
            )
            if cell_range not in ranges:
                ranges.append(cell_range)

        if len(ranges) > limit:
            raise CellLimitExceededError(self.scheme.value, precision, len(ranges), limit)
        logger.debug(
            "geohash covering at length %d: %s", precision, ", ".join(str(r) for r in ranges)
        )
        return CoveringResult(scheme=self.scheme, precision=precision, ranges=tuple(ranges))
