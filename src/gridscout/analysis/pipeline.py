from __future__ import annotations

"""
pipeline.py
-----------
Analysis and verification lifecycles of discovered substations.

Analysis:
    pending -> analyzing -> completed | failed
    analyzing -> pending            (cancelled run discards its result)
    completed | failed -> pending   (explicit resubmit only)

Failures are never retried here. Verification (pending -> confirmed |
rejected) is a human decision and is independent of analysis.

Transitions on one candidate are serialized by a per-candidate lock; the
estimator call itself runs outside any lock.
"""

import sys
import threading
from typing import (
    TYPE_CHECKING,
    Dict,
    FrozenSet,
    Iterator,
    List,
    Mapping,
    Optional,
)

from ..core.contracts import (
    AnalysisEvent,
    AnalysisStatus,
    CapacityEstimate,
    DiscoveredSubstation,
    VerificationStatus,
)
from ..core.errors import AnalysisFailure, IllegalTransitionError
from ..core.interfaces import CapacityEstimator

if TYPE_CHECKING:
    from ..orchestrator import CancelToken

_A = AnalysisStatus

ANALYSIS_TRANSITIONS: Dict[AnalysisStatus, FrozenSet[AnalysisStatus]] = {
    _A.PENDING: frozenset({_A.ANALYZING}),
    _A.ANALYZING: frozenset({_A.COMPLETED, _A.FAILED, _A.PENDING}),
    _A.COMPLETED: frozenset({_A.PENDING}),
    _A.FAILED: frozenset({_A.PENDING}),
}


class AnalysisPipeline:
    def __init__(
        self,
        estimator: CapacityEstimator,
        *,
        debug: bool = False,
    ) -> None:
        self.estimator = estimator
        self._debug = bool(debug)
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    # ---------- locking ----------

    def _lock_for(self, sub_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(sub_id)
            if lock is None:
                lock = self._locks[sub_id] = threading.Lock()
            return lock

    def _move(
        self, sub: DiscoveredSubstation, target: AnalysisStatus
    ) -> None:
        # caller holds the candidate's lock
        current = sub.analysis_status
        if target not in ANALYSIS_TRANSITIONS[current]:
            raise IllegalTransitionError(sub.id, current.value, target.value)
        sub.analysis_status = target

    # ---------- analysis transitions ----------

    def begin(self, sub: DiscoveredSubstation) -> None:
        """pending -> analyzing; a second worker on the same candidate fails here."""
        with self._lock_for(sub.id):
            self._move(sub, _A.ANALYZING)
            sub.analysis_attempts += 1
            sub.analysis_error = None

    def complete(
        self, sub: DiscoveredSubstation, estimate: CapacityEstimate
    ) -> None:
        # stored verbatim, never blended with an earlier estimate
        with self._lock_for(sub.id):
            self._move(sub, _A.COMPLETED)
            sub.capacity_estimate = estimate

    def fail(self, sub: DiscoveredSubstation, error: AnalysisFailure) -> None:
        with self._lock_for(sub.id):
            self._move(sub, _A.FAILED)
            sub.analysis_error = error.message

    def abandon(self, sub: DiscoveredSubstation) -> None:
        """analyzing -> pending, for results discarded after cancellation."""
        with self._lock_for(sub.id):
            if sub.analysis_status is not _A.ANALYZING:
                raise IllegalTransitionError(
                    sub.id, sub.analysis_status.value, _A.PENDING.value
                )
            self._move(sub, _A.PENDING)

    def resubmit(self, sub: DiscoveredSubstation) -> None:
        """Operator action: completed | failed -> pending."""
        with self._lock_for(sub.id):
            if not sub.analysis_status.is_terminal:
                raise IllegalTransitionError(
                    sub.id, sub.analysis_status.value, _A.PENDING.value
                )
            self._move(sub, _A.PENDING)

    # ---------- verification (human review) ----------

    def _verify(
        self, sub: DiscoveredSubstation, target: VerificationStatus
    ) -> None:
        with self._lock_for(sub.id):
            if sub.verification_status is not VerificationStatus.PENDING:
                raise IllegalTransitionError(
                    sub.id, sub.verification_status.value, target.value
                )
            sub.verification_status = target

    def confirm(self, sub: DiscoveredSubstation) -> None:
        self._verify(sub, VerificationStatus.CONFIRMED)

    def reject(self, sub: DiscoveredSubstation) -> None:
        self._verify(sub, VerificationStatus.REJECTED)

    # ---------- driving ----------

    def analyze(
        self,
        sub: DiscoveredSubstation,
        cancel: Optional["CancelToken"] = None,
    ) -> AnalysisStatus:
        """
        One attempt: begin, call the estimator, record the outcome.
        Returns the resulting status (pending if the result was discarded).
        """
        self.begin(sub)
        try:
            estimate = self.estimator.estimate(sub.coordinates, name=sub.name)
        except Exception as e:
            if cancel is not None and cancel.cancelled:
                self.abandon(sub)
                return sub.analysis_status
            failure = (
                e
                if isinstance(e, AnalysisFailure)
                else AnalysisFailure(f"{type(e).__name__}: {e}")
            )
            self.fail(sub, failure)
            if self._debug:
                print(
                    f"[analysis] {sub.id} {sub.name!r} failed: "
                    f"{failure.message}",
                    file=sys.stderr,
                )
            return sub.analysis_status

        if cancel is not None and cancel.cancelled:
            self.abandon(sub)
            return sub.analysis_status
        self.complete(sub, estimate)
        if self._debug:
            print(
                f"[analysis] {sub.id} {sub.name!r} -> "
                f"{estimate.min_mw:g}-{estimate.max_mw:g} MW "
                f"({estimate.confidence:g}%)",
                file=sys.stderr,
            )
        return sub.analysis_status

    @staticmethod
    def pending(
        discovered: Mapping[str, DiscoveredSubstation],
    ) -> List[DiscoveredSubstation]:
        return [
            s for s in discovered.values() if s.analysis_status is _A.PENDING
        ]

    def drain(
        self,
        discovered: Mapping[str, DiscoveredSubstation],
        cancel: Optional["CancelToken"] = None,
    ) -> Iterator[AnalysisEvent]:
        """Analyze every pending candidate once, in discovery order."""
        backlog = self.pending(discovered)
        total = len(backlog)
        failures = 0
        for i, sub in enumerate(backlog, start=1):
            if cancel is not None and cancel.cancelled:
                break
            if sub.analysis_status is not _A.PENDING:
                # picked up elsewhere since the backlog was built
                continue
            status = self.analyze(sub, cancel)
            if status is _A.FAILED:
                failures += 1
            yield AnalysisEvent(
                substation_id=sub.id,
                status=status,
                processed=i,
                total=total,
                percent=100.0 * i / total,
                failures=failures,
            )
