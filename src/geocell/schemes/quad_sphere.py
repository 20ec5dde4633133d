"""Quad-sphere cells.

The sphere is projected onto the six faces of a cube. Each face is split as
a quadtree down to level 30 and its cells are numbered along a Hilbert curve,
giving 64-bit ids (3 face bits, 2 bits per level, a trailing marker bit).
Ids and their hex tokens are bit-compatible with S2 cell ids.
"""

import math
from collections.abc import Iterator

from geocell.cells import CellToken, CoveringResult, SchemeType
from geocell.config import ABSOLUTE_MAX_CELLS
from geocell.errors import CellLimitExceededError, InvalidArgumentError
from geocell.geometry.region import SearchRegion
from geocell.geometry.spherical import bounding_box, haversine_meters
from geocell.geometry.types import GeoBoundingBox, GeoLocation
from geocell.precision import tables
from geocell.schemes.covering import build_covering, check_cell, check_estimate, check_radius

MAX_LEVEL = 30
NUM_FACES = 6

_POS_BITS = 2 * MAX_LEVEL + 1
_MAX_SIZE = 1 << MAX_LEVEL
_MAX_ID = (1 << 64) - 1
# Marker bits can only sit at even positions
_VALID_LSB_MASK = 0x1555555555555555

_LOOKUP_BITS = 4
_SWAP_MASK = 0x01
_INVERT_MASK = 0x02
_POS_TO_IJ = ((0, 1, 3, 2), (0, 2, 3, 1), (3, 2, 0, 1), (3, 1, 0, 2))
_POS_TO_ORIENTATION = (_SWAP_MASK, 0, 0, _INVERT_MASK | _SWAP_MASK)
_LOOKUP_POS = [0] * (1 << (2 * _LOOKUP_BITS + 2))
_LOOKUP_IJ = [0] * (1 << (2 * _LOOKUP_BITS + 2))

# Candidate cells allowed at any one descent level before giving up
_MAX_FRONTIER = 16 * ABSOLUTE_MAX_CELLS
_NEIGHBOR_OFFSETS = ((-1, -1), (-1, 0), (-1, 1), (0, -1), (0, 1), (1, -1), (1, 0), (1, 1))


def _init_lookup_cell(
    level: int, i: int, j: int, orig_orientation: int, pos: int, orientation: int
) -> None:
    if level == _LOOKUP_BITS:
        ij = (i << _LOOKUP_BITS) + j
        _LOOKUP_POS[(ij << 2) + orig_orientation] = (pos << 2) + orientation
        _LOOKUP_IJ[(pos << 2) + orig_orientation] = (ij << 2) + orientation
        return
    level += 1
    i <<= 1
    j <<= 1
    pos <<= 2
    r = _POS_TO_IJ[orientation]
    for index in range(4):
        _init_lookup_cell(
            level,
            i + (r[index] >> 1),
            j + (r[index] & 1),
            orig_orientation,
            pos + index,
            orientation ^ _POS_TO_ORIENTATION[index],
        )


for _orientation in range(4):
    _init_lookup_cell(0, 0, 0, _orientation, 0, _orientation)


# --- cube-face projection -------------------------------------------------


def _xyz_from_latlng(lat: float, lng: float) -> tuple[float, float, float]:
    phi = math.radians(lat)
    theta = math.radians(lng)
    cos_phi = math.cos(phi)
    return (cos_phi * math.cos(theta), cos_phi * math.sin(theta), math.sin(phi))


def _latlng_from_xyz(x: float, y: float, z: float) -> tuple[float, float]:
    lat = math.degrees(math.atan2(z, math.hypot(x, y)))
    lng = math.degrees(math.atan2(y, x))
    return (max(-90.0, min(90.0, lat)), max(-180.0, min(180.0, lng)))


def _face_uv_from_xyz(x: float, y: float, z: float) -> tuple[int, float, float]:
    ax, ay, az = abs(x), abs(y), abs(z)
    if ax > ay:
        face = 0 if ax > az else 2
    else:
        face = 1 if ay > az else 2
    if (x, y, z)[face] < 0:
        face += 3

    if face == 0:
        return face, y / x, z / x
    if face == 1:
        return face, -x / y, z / y
    if face == 2:
        return face, -x / z, -y / z
    if face == 3:
        return face, z / x, y / x
    if face == 4:
        return face, z / y, -x / y
    return face, -y / z, -x / z


def _xyz_from_face_uv(face: int, u: float, v: float) -> tuple[float, float, float]:
    if face == 0:
        return (1.0, u, v)
    if face == 1:
        return (-u, 1.0, v)
    if face == 2:
        return (-u, -v, 1.0)
    if face == 3:
        return (-1.0, -v, -u)
    if face == 4:
        return (v, -1.0, -u)
    return (v, u, -1.0)


def _st_from_uv(u: float) -> float:
    if u >= 0:
        return 0.5 * math.sqrt(1 + 3 * u)
    return 1 - 0.5 * math.sqrt(1 - 3 * u)


def _uv_from_st(s: float) -> float:
    if s >= 0.5:
        return (1 / 3.0) * (4 * s * s - 1)
    return (1 / 3.0) * (1 - 4 * (1 - s) * (1 - s))


def _ij_from_st(s: float) -> int:
    return max(0, min(_MAX_SIZE - 1, int(math.floor(_MAX_SIZE * s))))


def _latlng_from_face_st(face: int, s: float, t: float) -> tuple[float, float]:
    return _latlng_from_xyz(*_xyz_from_face_uv(face, _uv_from_st(s), _uv_from_st(t)))


# --- cell ids ---------------------------------------------------------------


def _lsb(cell_id: int) -> int:
    return cell_id & -cell_id


def cell_id_from_face_ij(face: int, i: int, j: int) -> int:
    """Leaf cell id holding the (i, j) position on a face."""
    n = face << (_POS_BITS - 1)
    bits = face & _SWAP_MASK
    mask = (1 << _LOOKUP_BITS) - 1
    for k in range(7, -1, -1):
        bits += ((i >> (k * _LOOKUP_BITS)) & mask) << (_LOOKUP_BITS + 2)
        bits += ((j >> (k * _LOOKUP_BITS)) & mask) << 2
        bits = _LOOKUP_POS[bits]
        n |= (bits >> 2) << (k * 2 * _LOOKUP_BITS)
        bits &= _SWAP_MASK | _INVERT_MASK
    return n * 2 + 1


def face_ij_from_cell_id(cell_id: int) -> tuple[int, int, int]:
    """(face, i, j) of one leaf inside the cell."""
    i = j = 0
    face = cell_id >> _POS_BITS
    bits = face & _SWAP_MASK
    for k in range(7, -1, -1):
        nbits = MAX_LEVEL - 7 * _LOOKUP_BITS if k == 7 else _LOOKUP_BITS
        bits += ((cell_id >> (k * 2 * _LOOKUP_BITS + 1)) & ((1 << (2 * nbits)) - 1)) << 2
        bits = _LOOKUP_IJ[bits]
        i += (bits >> (_LOOKUP_BITS + 2)) << (k * _LOOKUP_BITS)
        j += ((bits >> 2) & ((1 << _LOOKUP_BITS) - 1)) << (k * _LOOKUP_BITS)
        bits &= _SWAP_MASK | _INVERT_MASK
    return face, i, j


def cell_level(cell_id: int) -> int:
    return MAX_LEVEL - ((_lsb(cell_id).bit_length() - 1) >> 1)


def cell_parent(cell_id: int, level: int) -> int:
    new_lsb = 1 << (2 * (MAX_LEVEL - level))
    return (cell_id & -new_lsb) | new_lsb


def cell_children(cell_id: int) -> list[int]:
    lsb = _lsb(cell_id)
    child_lsb = lsb >> 2
    start = cell_id - lsb + child_lsb
    return [start + k * 2 * child_lsb for k in range(4)]


def face_cells() -> list[int]:
    return [(face << _POS_BITS) | (1 << (_POS_BITS - 1)) for face in range(NUM_FACES)]


def is_valid_cell_id(cell_id: int) -> bool:
    if not 0 < cell_id <= _MAX_ID:
        return False
    if cell_id >> _POS_BITS >= NUM_FACES:
        return False
    return (_lsb(cell_id) & _VALID_LSB_MASK) != 0


def cell_id_from_latlng(lat: float, lng: float, level: int) -> int:
    face, u, v = _face_uv_from_xyz(*_xyz_from_latlng(lat, lng))
    leaf = cell_id_from_face_ij(face, _ij_from_st(_st_from_uv(u)), _ij_from_st(_st_from_uv(v)))
    return cell_parent(leaf, level)


def cell_id_to_token(cell_id: int) -> str:
    if cell_id == 0:
        return "X"
    return f"{cell_id:016x}".rstrip("0")


def cell_id_from_token(token: str) -> int:
    if not 1 <= len(token) <= 16:
        raise InvalidArgumentError(f"quad-sphere token must be 1-16 hex digits: {token!r}")
    try:
        return int(token.ljust(16, "0"), 16)
    except ValueError:
        raise InvalidArgumentError(f"quad-sphere token is not hex: {token!r}") from None


def _cell_st_bounds(cell_id: int) -> tuple[int, float, float, float, float]:
    face, i, j = face_ij_from_cell_id(cell_id)
    size = 1 << (MAX_LEVEL - cell_level(cell_id))
    i0 = i & -size
    j0 = j & -size
    return (
        face,
        i0 / _MAX_SIZE,
        (i0 + size) / _MAX_SIZE,
        j0 / _MAX_SIZE,
        (j0 + size) / _MAX_SIZE,
    )


def cell_geometry(cell_id: int) -> tuple[tuple[float, float], list[tuple[float, float]], float]:
    """(center, vertices, circumradius in meters); points are (lat, lng)."""
    face, s0, s1, t0, t1 = _cell_st_bounds(cell_id)
    center = _latlng_from_face_st(face, (s0 + s1) / 2, (t0 + t1) / 2)
    vertices = [
        _latlng_from_face_st(face, s0, t0),
        _latlng_from_face_st(face, s1, t0),
        _latlng_from_face_st(face, s1, t1),
        _latlng_from_face_st(face, s0, t1),
    ]
    radius = max(haversine_meters(center[0], center[1], lat, lng) for lat, lng in vertices)
    return center, vertices, radius


def _edge_ij(n: int, size: int) -> int:
    if n < 0:
        return -1
    if n >= _MAX_SIZE:
        return _MAX_SIZE
    return n + size // 2


def cell_neighbors(cell_id: int) -> list[int]:
    """Same-level cells sharing an edge or corner, wrapping across faces.

    Eight in general, seven where the cell touches a cube corner.
    """
    level = cell_level(cell_id)
    size = 1 << (MAX_LEVEL - level)
    face, i, j = face_ij_from_cell_id(cell_id)
    i0, j0 = i & -size, j & -size
    neighbors = []
    for di, dj in _NEIGHBOR_OFFSETS:
        ni, nj = i0 + di * size, j0 + dj * size
        if 0 <= ni < _MAX_SIZE and 0 <= nj < _MAX_SIZE:
            leaf = cell_id_from_face_ij(face, ni, nj)
        else:
            # Just past the face edge, mid-span on the other axis
            ci, cj = _edge_ij(ni, size), _edge_ij(nj, size)
            lat, lng = _latlng_from_face_st(face, (ci + 0.5) / _MAX_SIZE, (cj + 0.5) / _MAX_SIZE)
            leaf = cell_id_from_latlng(lat, lng, MAX_LEVEL)
        neighbor = cell_parent(leaf, level)
        if neighbor not in neighbors:
            neighbors.append(neighbor)
    return neighbors


# --- scheme -----------------------------------------------------------------


class QuadSphereScheme:
    """Quad-sphere coverings by hierarchical descent from the six faces.

    Cells nest exactly, so a parent whose bounding cap misses the region can
    be dropped along with every descendant.
    """

    scheme = SchemeType.QUAD_SPHERE
    min_precision = 0
    max_precision = MAX_LEVEL

    def _token(self, cell_id: int) -> CellToken:
        return CellToken(self.scheme, cell_id_to_token(cell_id), cell_level(cell_id))

    def cell_for_location(self, location: GeoLocation, precision: int) -> CellToken:
        tables.validate_precision(self.scheme, precision)
        return self._token(cell_id_from_latlng(location.latitude, location.longitude, precision))

    def parse_token(self, value: str, precision: int | None = None) -> CellToken:
        cell_id = cell_id_from_token(value)
        if not is_valid_cell_id(cell_id):
            raise InvalidArgumentError(f"not a valid quad-sphere cell: {value!r}")
        token = self._token(cell_id)
        if precision is not None and token.precision != precision:
            raise InvalidArgumentError(
                f"cell {value!r} is level {token.precision}, expected {precision}"
            )
        return token

    def cell_center(self, token: CellToken) -> GeoLocation:
        center, _, _ = cell_geometry(token.cell_id)
        return GeoLocation(latitude=center[0], longitude=center[1])

    def cell_boundary(self, token: CellToken) -> list[GeoLocation]:
        _, vertices, _ = cell_geometry(token.cell_id)
        return [GeoLocation(latitude=lat, longitude=lng) for lat, lng in vertices]

    def parent(self, token: CellToken) -> CellToken:
        check_cell(self.scheme, token)
        token = self.parse_token(token.value, token.precision)
        if token.precision == self.min_precision:
            raise InvalidArgumentError(f"face cell {token} has no parent")
        return self._token(cell_parent(token.cell_id, token.precision - 1))

    def children(self, token: CellToken) -> list[CellToken]:
        check_cell(self.scheme, token)
        token = self.parse_token(token.value, token.precision)
        if token.precision == self.max_precision:
            raise InvalidArgumentError(f"leaf cell {token} has no children")
        return [self._token(child) for child in cell_children(token.cell_id)]

    def neighbors(self, token: CellToken) -> list[CellToken]:
        check_cell(self.scheme, token)
        token = self.parse_token(token.value, token.precision)
        return [self._token(neighbor) for neighbor in cell_neighbors(token.cell_id)]

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
        self, region: SearchRegion, level: int
    ) -> Iterator[tuple[CellToken, tuple[float, float]]]:
        frontier = face_cells()
        for _ in range(level):
            kept = []
            for cell_id in frontier:
                center, _, radius = cell_geometry(cell_id)
                if region.may_intersect_cap(center[0], center[1], radius):
                    kept.extend(cell_children(cell_id))
            if len(kept) > _MAX_FRONTIER:
                raise CellLimitExceededError(
                    self.scheme.value, level, len(kept), ABSOLUTE_MAX_CELLS, estimated=True
                )
            frontier = kept

        for cell_id in frontier:
            center, vertices, radius = cell_geometry(cell_id)
            if region.may_intersect_cell(center, vertices, radius):
                yield self._token(cell_id), center
