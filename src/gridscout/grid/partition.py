from __future__ import annotations

import math
from typing import List, Optional, Tuple

from ..config import MAX_CELLS
from ..core.contracts import GeoBounds, GridCell
from ..core.errors import InvalidCellSizeError
from .geo import KM_PER_DEG_LAT

# Absorbs float noise when the span is an exact multiple of the step.
_EPS = 1e-9


def cell_steps(bounds: GeoBounds, cell_size_km: float) -> Tuple[float, float]:
    """
    (lat_step, lng_step) in degrees for a nominal cell size.

    The longitude step is computed once, at the bounds' average latitude,
    so rows far from that latitude get cells whose true width drifts from
    cell_size_km. Fine for regional searches, not for continental ones.
    """
    lat_step = cell_size_km / KM_PER_DEG_LAT
    avg_lat = (bounds.north + bounds.south) / 2.0
    cos_lat = math.cos(math.radians(avg_lat))
    if cos_lat <= _EPS:
        raise InvalidCellSizeError(
            f"average latitude {avg_lat} is too close to a pole"
        )
    lng_step = cell_size_km / (KM_PER_DEG_LAT * cos_lat)
    return lat_step, lng_step


def _count(span: float, step: float) -> int:
    return max(1, math.ceil(span / step - _EPS))


def partition(
    bounds: GeoBounds,
    cell_size_km: float,
    *,
    max_cells: Optional[int] = None,
) -> List[GridCell]:
    """
    Split bounds into row-major cells of roughly cell_size_km per side.

    Rows run south -> north, columns west -> east. The last row/column is
    clamped to the bounds (smaller than nominal, never dropped). Edges are
    computed from integer indices, so neighbours share identical edges and
    the union of all cells is exactly `bounds`.
    """
    bounds.validate()
    if (
        isinstance(cell_size_km, bool)
        or not isinstance(cell_size_km, (int, float))
        or not math.isfinite(cell_size_km)
        or cell_size_km <= 0
    ):
        raise InvalidCellSizeError(
            f"cell_size_km must be a positive number, got {cell_size_km!r}"
        )

    lat_step, lng_step = cell_steps(bounds, cell_size_km)
    n_rows = _count(bounds.north - bounds.south, lat_step)
    n_cols = _count(bounds.east - bounds.west, lng_step)

    limit = MAX_CELLS if max_cells is None else max_cells
    if n_rows * n_cols > limit:
        raise InvalidCellSizeError(
            f"{n_rows}x{n_cols} cells exceeds the limit of {limit}; "
            "use a larger cell size or a smaller region"
        )

    def _lat(i: int) -> float:
        return bounds.north if i >= n_rows else bounds.south + i * lat_step

    def _lng(j: int) -> float:
        return bounds.east if j >= n_cols else bounds.west + j * lng_step

    cells: List[GridCell] = []
    for i in range(n_rows):
        south, north = _lat(i), min(_lat(i + 1), bounds.north)
        for j in range(n_cols):
            west, east = _lng(j), min(_lng(j + 1), bounds.east)
            cb = GeoBounds(north=north, south=south, east=east, west=west)
            cells.append(GridCell(id=len(cells), bounds=cb, center=cb.center))
    return cells
