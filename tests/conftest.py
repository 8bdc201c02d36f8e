import os
from typing import Callable, Dict, Iterable, List, Optional, Set

import pytest

# Load .env if present, but don't fail if it's missing.
try:
    from dotenv import load_dotenv

    load_dotenv()
except Exception:
    pass

from gridscout.core.contracts import (
    CapacityEstimate,
    GeoBounds,
    GridCell,
    LatLng,
    RawCandidate,
)
from gridscout.core.errors import AnalysisFailure

# ---- mode & env flags -------------------------------------------------------


def _truthy(s: str | None) -> bool:
    return str(s).strip().lower() in {"1", "true", "yes", "on"}


LIVE = _truthy(os.getenv("GRIDSCOUT_LIVE_TESTS"))


# =============================================================================
# STUB SERVICES (no network)
# =============================================================================


def make_candidate(
    name: str, lat: float, lng: float, confidence: float = 80.0, **kw
) -> RawCandidate:
    return RawCandidate(
        name=name,
        coordinates=LatLng(lat, lng),
        confidence_score=confidence,
        analysis_method=kw.pop("analysis_method", "stub"),
        **kw,
    )


class StubDiscovery:
    """
    DiscoveryService stand-in.

    `responses` maps cell id -> list of candidates, or an exception to raise.
    `on_call(cell)` runs before answering (used to cancel mid-run).
    """

    def __init__(
        self,
        responses: Optional[Dict[int, object]] = None,
        default: object = (),
        on_call: Optional[Callable[[GridCell], None]] = None,
    ) -> None:
        self.responses = responses or {}
        self.default = default
        self.on_call = on_call
        self.calls: List[int] = []

    def discover(self, cell: GridCell) -> List[RawCandidate]:
        self.calls.append(cell.id)
        if self.on_call is not None:
            self.on_call(cell)
        r = self.responses.get(cell.id, self.default)
        if callable(r):
            r = r(cell)
        if isinstance(r, Exception):
            raise r
        return list(r)  # type: ignore[arg-type]


class StubEstimator:
    """CapacityEstimator stand-in; names in `fail_for` raise AnalysisFailure."""

    def __init__(
        self,
        estimate: Optional[CapacityEstimate] = None,
        fail_for: Iterable[str] = (),
        on_call: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.result = estimate or CapacityEstimate(
            min_mw=100.0, max_mw=300.0, confidence=85.0
        )
        self.fail_for: Set[str] = set(fail_for)
        self.on_call = on_call
        self.calls: List[str] = []

    def estimate(
        self, coordinates: LatLng, *, name: str = "", image_url=None
    ) -> CapacityEstimate:
        self.calls.append(name)
        if self.on_call is not None:
            self.on_call(name)
        if name in self.fail_for:
            raise AnalysisFailure(f"estimator down for {name}", status=500)
        return self.result


@pytest.fixture
def candidate():
    return make_candidate


@pytest.fixture
def stub_discovery():
    return StubDiscovery


@pytest.fixture
def stub_estimator():
    return StubEstimator


@pytest.fixture
def scenario_bounds() -> GeoBounds:
    # 100 km cells over this box -> 3 rows x 2 columns
    return GeoBounds(north=41.0, south=39.0, east=-95.0, west=-97.0)


# =============================================================================
# PYTEST MARKER HANDLING
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    # Register a 'live' marker for any tests that explicitly want real I/O.
    config.addinivalue_line("markers", "live: test requires live API access")


def pytest_runtest_setup(item: pytest.Item) -> None:
    # If a test is marked live but we're not in LIVE mode, skip it proactively.
    if "live" in item.keywords and not LIVE:
        pytest.skip("live test skipped (GRIDSCOUT_LIVE_TESTS not enabled)")
