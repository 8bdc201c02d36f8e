from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from ..core.contracts import GridCell, SessionStats
from ..core.errors import UnknownCellError


class CellSearchState:
    """
    The session's cells, in partition order, with O(1) lookup by id.

    Single writer only: the orchestrator serializes every mark_searched().
    """

    def __init__(self, cells: Iterable[GridCell]) -> None:
        self._cells: List[GridCell] = list(cells)
        self._by_id: Dict[int, GridCell] = {c.id: c for c in self._cells}
        if len(self._by_id) != len(self._cells):
            raise ValueError("cell ids must be unique within a session")

    def __len__(self) -> int:
        return len(self._cells)

    def __contains__(self, cell_id: object) -> bool:
        return cell_id in self._by_id

    @property
    def cells(self) -> List[GridCell]:
        return list(self._cells)

    def get(self, cell_id: int) -> GridCell:
        try:
            return self._by_id[cell_id]
        except KeyError:
            raise UnknownCellError(cell_id) from None

    def mark_searched(self, cell_id: int, substation_count: int) -> GridCell:
        """Re-searching a cell replaces its count, it never accumulates."""
        if substation_count < 0:
            raise ValueError(
                f"substation_count must be >= 0, got {substation_count}"
            )
        cell = self.get(cell_id)
        cell.searched = True
        cell.substation_count = int(substation_count)
        return cell

    def pending(self) -> List[GridCell]:
        return [c for c in self._cells if not c.searched]

    def locate(self, lat: float, lng: float) -> Optional[GridCell]:
        """First cell (row-major) whose bounds contain the point."""
        for c in self._cells:
            if c.bounds.contains(lat, lng):
                return c
        return None

    def snapshot(self, total_substations: int) -> SessionStats:
        # total_substations comes from the discovered set, not from the sum of
        # per-cell counts, so a candidate seen from two cells counts once.
        searched = sum(1 for c in self._cells if c.searched)
        return SessionStats(
            total_cells=len(self._cells),
            searched_cells=searched,
            total_substations=total_substations,
            avg_per_cell=total_substations / max(searched, 1),
        )
