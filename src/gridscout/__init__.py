"""
gridscout
=========
Grid-search discovery of electrical substations: partition a region into
cells, query a detection service per cell, deduplicate the candidates and
drive each one through capacity analysis and human verification.
"""

from .analysis import AnalysisPipeline
from .client import GridScout
from .core import (
    AnalysisStatus,
    CapacityEstimate,
    DiscoveredSubstation,
    GeoBounds,
    GridCell,
    LatLng,
    SearchPhase,
    SessionStats,
    VerificationStatus,
)
from .discovery import DiscoveryAggregator
from .grid import CellSearchState, partition
from .orchestrator import CancelToken, SearchOrchestrator
from .session import SearchSession

__all__ = [
    "AnalysisPipeline",
    "AnalysisStatus",
    "CancelToken",
    "CapacityEstimate",
    "CellSearchState",
    "DiscoveredSubstation",
    "DiscoveryAggregator",
    "GeoBounds",
    "GridCell",
    "GridScout",
    "LatLng",
    "SearchOrchestrator",
    "SearchPhase",
    "SearchSession",
    "SessionStats",
    "VerificationStatus",
    "partition",
]
