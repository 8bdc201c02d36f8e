from __future__ import annotations

from typing import Iterator, List, Optional

from .analysis.pipeline import AnalysisPipeline
from .config import DEDUP_RADIUS_M, DEFAULT_RPM
from .core.contracts import (
    AnalysisEvent,
    DiscoveredSubstation,
    GeoBounds,
    GridCell,
    ProgressEvent,
    SessionStats,
)
from .core.interfaces import CapacityEstimator, DiscoveryService
from .discovery.aggregator import DiscoveryAggregator
from .grid.partition import partition
from .orchestrator import CancelToken, SearchOrchestrator
from .providers.discovery import DiscoveryClient
from .providers.estimator import CapacityEstimatorClient
from .session import SearchSession


class GridScout:
    """
    Public façade. Wires the HTTP clients, aggregator, pipeline and
    orchestrator together; any service object honouring the Protocols in
    gridscout.core.interfaces can be passed instead of the HTTP clients.
    """

    def __init__(
        self,
        *,
        discovery: Optional[DiscoveryService] = None,
        estimator: Optional[CapacityEstimator] = None,
        rpm: int = DEFAULT_RPM,
        workers: int = 1,
        max_cell_retries: int = 0,
        dedup_radius_m: float = DEDUP_RADIUS_M,
        debug: bool = False,
    ) -> None:
        self.discovery = discovery or DiscoveryClient(rpm=rpm, debug=debug)
        self.estimator = estimator or CapacityEstimatorClient(
            rpm=rpm, debug=debug
        )
        self.pipeline = AnalysisPipeline(self.estimator, debug=debug)
        self.orchestrator = SearchOrchestrator(
            self.discovery,
            aggregator=DiscoveryAggregator(
                dedup_radius_m=dedup_radius_m, debug=debug
            ),
            pipeline=self.pipeline,
            workers=workers,
            max_cell_retries=max_cell_retries,
            debug=debug,
        )

    @staticmethod
    def partition(bounds: GeoBounds, cell_size_km: float) -> List[GridCell]:
        return partition(bounds, cell_size_km)

    def new_session(
        self, bounds: GeoBounds, cell_size_km: float
    ) -> SearchSession:
        return self.orchestrator.new_session(bounds, cell_size_km)

    def search(
        self, session: SearchSession, cancel: Optional[CancelToken] = None
    ) -> Iterator[ProgressEvent]:
        return self.orchestrator.run_search(session, cancel)

    def analyze(
        self, session: SearchSession, cancel: Optional[CancelToken] = None
    ) -> Iterator[AnalysisEvent]:
        return self.orchestrator.run_analysis(session, cancel)

    # operator actions -------------------------------------------------
    def resubmit(
        self, session: SearchSession, substation_id: str
    ) -> DiscoveredSubstation:
        sub = session.substation(substation_id)
        self.pipeline.resubmit(sub)
        return sub

    def confirm(
        self, session: SearchSession, substation_id: str
    ) -> DiscoveredSubstation:
        sub = session.substation(substation_id)
        self.pipeline.confirm(sub)
        return sub

    def reject(
        self, session: SearchSession, substation_id: str
    ) -> DiscoveredSubstation:
        sub = session.substation(substation_id)
        self.pipeline.reject(sub)
        return sub

    @staticmethod
    def stats(session: SearchSession) -> SessionStats:
        return session.stats
