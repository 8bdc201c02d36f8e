from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Literal, Optional

from .errors import InvalidBoundsError

# MVA = MW * 1.25 (power factor ~0.8).
MVA_PER_MW = 1.25


class AnalysisStatus(str, Enum):
    PENDING = "pending"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (AnalysisStatus.COMPLETED, AnalysisStatus.FAILED)


class VerificationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class SearchPhase(str, Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    ANALYZING = "analyzing"


@dataclass(frozen=True)
class LatLng:
    lat: float
    lng: float


@dataclass(frozen=True)
class GeoBounds:
    north: float
    south: float
    east: float
    west: float

    def validate(self) -> "GeoBounds":
        for name in ("north", "south", "east", "west"):
            v = getattr(self, name)
            if not isinstance(v, (int, float)) or not math.isfinite(v):
                raise InvalidBoundsError(f"{name} must be a finite number")
        if not (-90.0 <= self.south <= 90.0 and -90.0 <= self.north <= 90.0):
            raise InvalidBoundsError("latitudes must lie in [-90, 90]")
        if not (-180.0 <= self.west <= 180.0 and -180.0 <= self.east <= 180.0):
            raise InvalidBoundsError("longitudes must lie in [-180, 180]")
        if self.north <= self.south:
            raise InvalidBoundsError(
                f"north ({self.north}) must be greater than south ({self.south})"
            )
        if self.east == self.west:
            raise InvalidBoundsError("east and west describe a zero-width span")
        if self.east < self.west:
            # antimeridian crossing is not supported; split the region instead
            raise InvalidBoundsError(
                f"east ({self.east}) is west of west ({self.west})"
            )
        return self

    @property
    def center(self) -> LatLng:
        return LatLng(
            lat=(self.north + self.south) / 2.0,
            lng=(self.east + self.west) / 2.0,
        )

    def contains(self, lat: float, lng: float) -> bool:
        return self.south <= lat <= self.north and self.west <= lng <= self.east

    def as_dict(self) -> Dict[str, float]:
        return {
            "north": self.north,
            "south": self.south,
            "east": self.east,
            "west": self.west,
        }


@dataclass(frozen=True)
class CapacityEstimate:
    min_mw: float
    max_mw: float
    confidence: float  # [0, 100]

    def to_mva(self) -> float:
        return self.max_mw * MVA_PER_MW

    def as_dict(self) -> Dict[str, float]:
        return {
            "min": self.min_mw,
            "max": self.max_mw,
            "confidence": self.confidence,
        }


@dataclass
class GridCell:
    id: int
    bounds: GeoBounds
    center: LatLng
    searched: bool = False
    substation_count: int = 0


@dataclass(frozen=True)
class RawCandidate:
    """A detection as returned by the discovery service, before dedup."""

    name: str
    coordinates: LatLng
    confidence_score: float = 0.0
    voltage_indicators: List[str] = field(default_factory=list)
    capacity_estimate: Optional[CapacityEstimate] = None
    infrastructure_features: FrozenSet[str] = frozenset()
    satellite_timestamp: Optional[datetime] = None
    analysis_method: str = ""
    external_id: Optional[str] = None  # informational only; never used as key


@dataclass
class DiscoveredSubstation:
    id: str
    name: str
    coordinates: LatLng
    confidence_score: float = 0.0
    voltage_indicators: List[str] = field(default_factory=list)
    capacity_estimate: Optional[CapacityEstimate] = None
    infrastructure_features: FrozenSet[str] = frozenset()
    satellite_timestamp: Optional[datetime] = None
    analysis_method: str = ""
    analysis_status: AnalysisStatus = AnalysisStatus.PENDING
    verification_status: VerificationStatus = VerificationStatus.PENDING
    analysis_attempts: int = 0
    analysis_error: Optional[str] = None

    @classmethod
    def from_candidate(
        cls, substation_id: str, raw: RawCandidate
    ) -> "DiscoveredSubstation":
        return cls(
            id=substation_id,
            name=raw.name,
            coordinates=raw.coordinates,
            confidence_score=raw.confidence_score,
            voltage_indicators=list(raw.voltage_indicators),
            capacity_estimate=raw.capacity_estimate,
            infrastructure_features=frozenset(raw.infrastructure_features),
            satellite_timestamp=raw.satellite_timestamp,
            analysis_method=raw.analysis_method,
        )


@dataclass(frozen=True)
class SessionStats:
    total_cells: int
    searched_cells: int
    total_substations: int
    avg_per_cell: float

    def as_dict(self) -> Dict[str, Any]:
        """Dashboard projection (camelCase keys)."""
        return {
            "totalCells": self.total_cells,
            "searchedCells": self.searched_cells,
            "totalSubstations": self.total_substations,
            "avgPerCell": self.avg_per_cell,
        }


CellErrorKind = Literal["timeout", "service"]


@dataclass(frozen=True)
class CellError:
    cell_id: int
    kind: CellErrorKind
    message: str
    status: Optional[int] = None
    attempts: int = 1


@dataclass(frozen=True)
class ProgressEvent:
    """
    One cell visited during the searching phase.

    Counts are per run: `total_cells` is the number of cells this run visits
    (every cell on a first run, only the unsearched ones on a re-run), and
    `error_count` the errors recorded so far in this run. Session-wide totals
    live in SessionStats.
    """

    cells_processed: int
    total_cells: int
    percent: float
    error_count: int
    cell_id: int
    added: int = 0
    duplicates: int = 0
    error: Optional[CellError] = None


@dataclass(frozen=True)
class AnalysisEvent:
    """One candidate moved during the analyzing phase."""

    substation_id: str
    status: AnalysisStatus
    processed: int
    total: int
    percent: float
    failures: int
