"""Cell schemes and the shared covering wrapper."""

from geocell.cells import SchemeType
from geocell.errors import InvalidArgumentError
from geocell.schemes.base import CellScheme
from geocell.schemes.hexagonal import HexagonalScheme
from geocell.schemes.interleaved import InterleavedStringScheme
from geocell.schemes.quad_sphere import QuadSphereScheme

SCHEMES: dict[SchemeType, CellScheme] = {
    SchemeType.QUAD_SPHERE: QuadSphereScheme(),
    SchemeType.HEXAGONAL: HexagonalScheme(),
    SchemeType.INTERLEAVED_STRING: InterleavedStringScheme(),
}


def get_scheme(scheme: SchemeType | str) -> CellScheme:
    """Scheme implementation for a tag (enum member or its string value)."""
    try:
        tag = SchemeType(scheme)
    except ValueError:
        raise InvalidArgumentError(f"unknown cell scheme: {scheme!r}") from None
    return SCHEMES[tag]


__all__ = [
    "SCHEMES",
    "CellScheme",
    "HexagonalScheme",
    "InterleavedStringScheme",
    "QuadSphereScheme",
    "SchemeType",
    "get_scheme",
]
