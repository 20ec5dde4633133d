"""The capability every cell scheme provides."""

from typing import Protocol

from geocell.cells import CellToken, CoveringResult, SchemeType
from geocell.geometry.types import GeoBoundingBox, GeoLocation


class CellScheme(Protocol):
    """Covering, estimation and encoding for one cell-indexing scheme.

    ``parent`` and ``children`` step one precision up or down and raise
    InvalidArgumentError past the scheme's bounds. ``neighbors`` returns the
    distinct same-precision cells around the cell, wrapping across the
    antimeridian: the ring of eight for quad-sphere cells (seven at a cube
    corner) and geohashes (five on a polar edge), and the six edge neighbors of
    a hexagon (five around a pentagon).
    """

    scheme: SchemeType
    min_precision: int
    max_precision: int

    def cells_for_radius(
        self,
        center: GeoLocation,
        radius_meters: float,
        precision: int,
        max_cells: int | None = None,
    ) -> CoveringResult: ...

    def cells_for_bounding_box(
        self,
        box: GeoBoundingBox,
        precision: int,
        max_cells: int | None = None,
    ) -> CoveringResult: ...

    def estimate_cell_count(self, radius_meters: float, precision: int) -> int: ...

    def estimate_box_cell_count(self, box: GeoBoundingBox, precision: int) -> int: ...

    def cell_for_location(self, location: GeoLocation, precision: int) -> CellToken: ...

    def cell_center(self, token: CellToken) -> GeoLocation: ...

    def parse_token(self, value: str, precision: int | None = None) -> CellToken: ...

    def parent(self, token: CellToken) -> CellToken: ...

    def children(self, token: CellToken) -> list[CellToken]: ...

    def neighbors(self, token: CellToken) -> list[CellToken]: ...
