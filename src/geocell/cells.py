"""Cell identifiers and covering results shared by every scheme."""

from dataclasses import dataclass
from enum import Enum

from geocell.errors import InvalidArgumentError


class SchemeType(str, Enum):
    """Cell-indexing schemes."""

    QUAD_SPHERE = "quad_sphere"
    HEXAGONAL = "hexagonal"
    INTERLEAVED_STRING = "interleaved_string"


@dataclass(frozen=True, order=True)
class CellToken:
    """One index cell.

    ``value`` is the canonical string form stored in the secondary index:
    an S2-style hex token, an H3 index, or a geohash.
    """

    scheme: SchemeType
    value: str
    precision: int

    def __str__(self) -> str:
        return self.value

    @property
    def cell_id(self) -> int:
        """Integer id for the quad-sphere and hexagonal schemes."""
        if self.scheme == SchemeType.QUAD_SPHERE:
            return int(self.value.ljust(16, "0"), 16)
        if self.scheme == SchemeType.HEXAGONAL:
            return int(self.value, 16)
        raise InvalidArgumentError(f"{self.scheme.value} cells have no integer id")


@dataclass(frozen=True)
class CellRange:
    """An inclusive, lexicographically ordered range of fixed-length tokens."""

    scheme: SchemeType
    precision: int
    min_token: str
    max_token: str

    def __post_init__(self) -> None:
        if len(self.min_token) != self.precision or len(self.max_token) != self.precision:
            raise InvalidArgumentError(
                f"range tokens must have length {self.precision}: "
                f"{self.min_token!r}..{self.max_token!r}"
            )
        if self.min_token > self.max_token:
            raise InvalidArgumentError(
                f"inverted range {self.min_token!r} > {self.max_token!r}"
            )

    def __str__(self) -> str:
        return f"{self.min_token}..{self.max_token}"

    def contains(self, value: str) -> bool:
        return self.min_token <= value <= self.max_token


ReadKey = CellToken | CellRange


@dataclass(frozen=True)
class CoveringResult:
    """Cells (or ranges) whose union holds a query region, in drain order."""

    scheme: SchemeType
    precision: int
    cells: tuple[CellToken, ...] = ()
    ranges: tuple[CellRange, ...] = ()

    @property
    def keys(self) -> tuple[ReadKey, ...]:
        """Index read keys in the order the executor drains them."""
        if self.ranges:
            return self.ranges
        return self.cells

    @property
    def range(self) -> CellRange | None:
        if len(self.ranges) == 1:
            return self.ranges[0]
        return None

    def __len__(self) -> int:
        return len(self.keys)


def check_disjoint(covering: CoveringResult) -> None:
    """Reject coverings whose keys could return the same item twice.

    Keys must share the covering's scheme and precision, appear once, and
    ranges must not overlap. Same-precision cells never overlap.

    Raises:
        InvalidArgumentError: the covering is not a disjoint set of keys.
    """
    if covering.cells and covering.ranges:
        raise InvalidArgumentError("covering holds both cells and ranges")
    for key in covering.keys:
        if key.scheme != covering.scheme or key.precision != covering.precision:
            raise InvalidArgumentError(
                f"key {key} is {key.scheme.value} at precision {key.precision}, expected "
                f"{covering.scheme.value} at precision {covering.precision}"
            )
    if len(set(covering.keys)) != len(covering.keys):
        raise InvalidArgumentError("covering repeats a key")

    ordered = sorted(covering.ranges, key=lambda r: (r.min_token, r.max_token))
    for previous, current in zip(ordered, ordered[1:]):
        if current.min_token <= previous.max_token:
            raise InvalidArgumentError(f"ranges {previous} and {current} overlap")
