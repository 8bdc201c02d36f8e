"""
Core exports for gridscout.
"""

from .contracts import (
    AnalysisEvent,
    AnalysisStatus,
    CapacityEstimate,
    CellError,
    DiscoveredSubstation,
    GeoBounds,
    GridCell,
    LatLng,
    ProgressEvent,
    RawCandidate,
    SearchPhase,
    SessionStats,
    VerificationStatus,
)
from .errors import (
    AnalysisFailure,
    DiscoveryError,
    DiscoveryServiceError,
    DiscoveryTimeoutError,
    GridScoutError,
    IllegalTransitionError,
    InvalidBoundsError,
    InvalidCellSizeError,
    InvalidSessionInput,
    PhaseConflictError,
    UnknownCellError,
    UnknownSubstationError,
)
from .interfaces import CapacityEstimator, DiscoveryService

__all__ = [
    "AnalysisEvent",
    "AnalysisStatus",
    "CapacityEstimate",
    "CellError",
    "DiscoveredSubstation",
    "GeoBounds",
    "GridCell",
    "LatLng",
    "ProgressEvent",
    "RawCandidate",
    "SearchPhase",
    "SessionStats",
    "VerificationStatus",
    "AnalysisFailure",
    "DiscoveryError",
    "DiscoveryServiceError",
    "DiscoveryTimeoutError",
    "GridScoutError",
    "IllegalTransitionError",
    "InvalidBoundsError",
    "InvalidCellSizeError",
    "InvalidSessionInput",
    "PhaseConflictError",
    "UnknownCellError",
    "UnknownSubstationError",
    "CapacityEstimator",
    "DiscoveryService",
]
