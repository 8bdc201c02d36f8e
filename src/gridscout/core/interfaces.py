from __future__ import annotations

from typing import List, Optional, Protocol

from .contracts import CapacityEstimate, GridCell, LatLng, RawCandidate


class DiscoveryService(Protocol):
    """
    Detection boundary. Implementations raise DiscoveryTimeoutError or
    DiscoveryServiceError; they never touch session state and never retry.
    """

    def discover(self, cell: GridCell) -> List[RawCandidate]: ...


class CapacityEstimator(Protocol):
    """
    Estimation boundary. Every failure is raised as AnalysisFailure.
    """

    def estimate(
        self,
        coordinates: LatLng,
        *,
        name: str = "",
        image_url: Optional[str] = None,
    ) -> CapacityEstimate: ...
