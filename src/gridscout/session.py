from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .core.contracts import (
    CellError,
    DiscoveredSubstation,
    GeoBounds,
    GridCell,
    SearchPhase,
    SessionStats,
)
from .core.errors import UnknownSubstationError
from .grid.partition import partition
from .grid.state import CellSearchState


@dataclass
class SearchSession:
    """
    One grid-search run over a region: its cells, its discoveries, the
    phase it is in and the per-cell errors collected so far.

    Substations are not stored on cells; which cell a substation belongs to
    is recomputed from coordinates whenever asked.
    """

    bounds: GeoBounds
    cell_size_km: float
    state: CellSearchState
    discovered: Dict[str, DiscoveredSubstation] = field(default_factory=dict)
    phase: SearchPhase = SearchPhase.IDLE
    errors: List[CellError] = field(default_factory=list)

    @classmethod
    def create(
        cls,
        bounds: GeoBounds,
        cell_size_km: float,
        *,
        max_cells: Optional[int] = None,
    ) -> "SearchSession":
        cells = partition(bounds, cell_size_km, max_cells=max_cells)
        return cls(
            bounds=bounds,
            cell_size_km=float(cell_size_km),
            state=CellSearchState(cells),
        )

    @property
    def cells(self) -> List[GridCell]:
        return self.state.cells

    @property
    def stats(self) -> SessionStats:
        return self.state.snapshot(len(self.discovered))

    def substation(self, substation_id: str) -> DiscoveredSubstation:
        try:
            return self.discovered[substation_id]
        except KeyError:
            raise UnknownSubstationError(substation_id) from None

    def cell_for(self, sub: DiscoveredSubstation) -> Optional[GridCell]:
        return self.state.locate(sub.coordinates.lat, sub.coordinates.lng)

    def substations_in(self, cell_id: int) -> List[DiscoveredSubstation]:
        cell = self.state.get(cell_id)
        out = []
        for sub in self.discovered.values():
            owner = self.cell_for(sub)
            if owner is not None and owner.id == cell.id:
                out.append(sub)
        return out

    def errors_for(self, cell_id: int) -> List[CellError]:
        return [e for e in self.errors if e.cell_id == cell_id]
