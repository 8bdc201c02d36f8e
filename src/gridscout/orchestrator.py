from __future__ import annotations

"""
orchestrator.py
---------------
Drives a SearchSession through its two phases and streams progress.

  - "searching": visit cells in partition (row-major) order; per cell call
    the discovery service, merge into the discovery set, mark the cell
    searched, yield a ProgressEvent
  - "analyzing": drain the AnalysisPipeline backlog, yield AnalysisEvents

Only one phase runs at a time per session. A failing cell is recorded in
session.errors and left unsearched; the run moves on. Cancellation is
checked between cells; results of calls that return after cancellation
are discarded.

With workers > 1 discovery calls run on a thread pool, but merges and
cell-state writes stay on the consuming thread, in row-major order.
"""

import sys
import threading
import time
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from typing import Callable, Deque, Iterator, List, Optional, Tuple

from .config import RETRY_BACKOFF_FACTOR
from .core.contracts import (
    AnalysisEvent,
    CellError,
    GeoBounds,
    GridCell,
    ProgressEvent,
    RawCandidate,
    SearchPhase,
)
from .core.errors import (
    DiscoveryError,
    DiscoveryServiceError,
    DiscoveryTimeoutError,
    PhaseConflictError,
)
from .core.interfaces import DiscoveryService
from .analysis.pipeline import AnalysisPipeline
from .discovery.aggregator import DiscoveryAggregator
from .session import SearchSession

Attempt = Tuple[List[RawCandidate], Optional[CellError]]


class CancelToken:
    """Cooperative cancellation shared between a caller and a running phase."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def _is_cancelled(cancel: Optional[CancelToken]) -> bool:
    return cancel is not None and cancel.cancelled


def _cell_error(cell: GridCell, err: Exception, attempts: int) -> CellError:
    if isinstance(err, DiscoveryTimeoutError):
        return CellError(
            cell_id=cell.id, kind="timeout", message=str(err), attempts=attempts
        )
    status = err.status if isinstance(err, DiscoveryServiceError) else None
    message = (
        str(err)
        if isinstance(err, DiscoveryError)
        else f"{type(err).__name__}: {err}"
    )
    return CellError(
        cell_id=cell.id,
        kind="service",
        message=message,
        status=status,
        attempts=attempts,
    )


class SearchOrchestrator:
    def __init__(
        self,
        discovery: DiscoveryService,
        *,
        aggregator: Optional[DiscoveryAggregator] = None,
        pipeline: Optional[AnalysisPipeline] = None,
        workers: int = 1,
        max_cell_retries: int = 0,
        retry_backoff: float = RETRY_BACKOFF_FACTOR,
        sleep: Callable[[float], None] = time.sleep,
        debug: bool = False,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        if max_cell_retries < 0:
            raise ValueError("max_cell_retries must be >= 0")
        self.discovery = discovery
        self.aggregator = aggregator or DiscoveryAggregator(debug=debug)
        self.pipeline = pipeline
        self.workers = int(workers)
        self.max_cell_retries = int(max_cell_retries)
        self.retry_backoff = float(retry_backoff)
        self._sleep = sleep
        self._debug = bool(debug)

    # ---------- sessions & phases ----------

    @staticmethod
    def new_session(
        bounds: GeoBounds, cell_size_km: float, *, max_cells: Optional[int] = None
    ) -> SearchSession:
        return SearchSession.create(bounds, cell_size_km, max_cells=max_cells)

    @contextmanager
    def _phase(self, session: SearchSession, phase: SearchPhase):
        if session.phase is not SearchPhase.IDLE:
            raise PhaseConflictError(
                f"session is already {session.phase.value}; "
                f"cannot start {phase.value}"
            )
        session.phase = phase
        try:
            yield
        finally:
            session.phase = SearchPhase.IDLE

    # ---------- searching ----------

    def _attempt(self, cell: GridCell, cancel: Optional[CancelToken]) -> Attempt:
        attempts = 0
        while True:
            attempts += 1
            try:
                return self.discovery.discover(cell), None
            except Exception as e:
                # any failure of a single cell call stays local to that cell
                err = e
            if self._debug:
                print(
                    f"[search] cell={cell.id} attempt={attempts} failed: {err}",
                    file=sys.stderr,
                )
            if attempts > self.max_cell_retries or _is_cancelled(cancel):
                return [], _cell_error(cell, err, attempts)
            self._sleep(self.retry_backoff * (2 ** (attempts - 1)))

    def _fold(
        self,
        session: SearchSession,
        cell: GridCell,
        attempt: Attempt,
        processed: int,
        total: int,
        errors_before: int,
    ) -> ProgressEvent:
        candidates, error = attempt
        added = duplicates = 0
        if error is not None:
            session.errors.append(error)
        else:
            result = self.aggregator.merge(session.discovered, candidates, cell)
            session.state.mark_searched(cell.id, result.added_count)
            added, duplicates = result.added_count, result.duplicates

        event = ProgressEvent(
            cells_processed=processed,
            total_cells=total,
            percent=100.0 * processed / total,
            error_count=len(session.errors) - errors_before,
            cell_id=cell.id,
            added=added,
            duplicates=duplicates,
            error=error,
        )
        if self._debug:
            print(
                f"[search] {processed}/{total} cell={cell.id} "
                f"+{added} dup={duplicates} errors={event.error_count} "
                f"({event.percent:.1f}%)",
                file=sys.stderr,
            )
        return event

    def run_search(
        self,
        session: SearchSession,
        cancel: Optional[CancelToken] = None,
        *,
        only_pending: bool = True,
    ) -> Iterator[ProgressEvent]:
        """
        Visit cells and yield one ProgressEvent per cell.

        By default only unsearched cells are visited, so running the search
        again on the same session retries the cells that failed.
        """
        with self._phase(session, SearchPhase.SEARCHING):
            targets = session.state.pending() if only_pending else session.cells
            if not targets:
                return
            errors_before = len(session.errors)
            if self.workers == 1:
                yield from self._search_sequential(
                    session, targets, cancel, errors_before
                )
            else:
                yield from self._search_pooled(
                    session, targets, cancel, errors_before
                )

    def _search_sequential(
        self,
        session: SearchSession,
        targets: List[GridCell],
        cancel: Optional[CancelToken],
        errors_before: int,
    ) -> Iterator[ProgressEvent]:
        total = len(targets)
        for i, cell in enumerate(targets, start=1):
            if _is_cancelled(cancel):
                break
            attempt = self._attempt(cell, cancel)
            if _is_cancelled(cancel):
                break
            yield self._fold(session, cell, attempt, i, total, errors_before)

    def _search_pooled(
        self,
        session: SearchSession,
        targets: List[GridCell],
        cancel: Optional[CancelToken],
        errors_before: int,
    ) -> Iterator[ProgressEvent]:
        total = len(targets)
        queue = iter(targets)
        window: Deque[Tuple[GridCell, "Future[Attempt]"]] = deque()

        with ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix="gridscout"
        ) as pool:

            def _fill() -> None:
                while len(window) < self.workers and not _is_cancelled(cancel):
                    cell = next(queue, None)
                    if cell is None:
                        return
                    window.append(
                        (cell, pool.submit(self._attempt, cell, cancel))
                    )

            _fill()
            processed = 0
            while window:
                cell, fut = window.popleft()
                attempt = fut.result()
                if _is_cancelled(cancel):
                    break
                processed += 1
                yield self._fold(
                    session, cell, attempt, processed, total, errors_before
                )
                _fill()

    # ---------- analyzing ----------

    def run_analysis(
        self,
        session: SearchSession,
        cancel: Optional[CancelToken] = None,
        *,
        pipeline: Optional[AnalysisPipeline] = None,
    ) -> Iterator[AnalysisEvent]:
        pipe = pipeline or self.pipeline
        if pipe is None:
            raise ValueError("no AnalysisPipeline configured")
        with self._phase(session, SearchPhase.ANALYZING):
            yield from pipe.drain(session.discovered, cancel)
