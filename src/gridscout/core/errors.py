from __future__ import annotations

from typing import Optional


class GridScoutError(Exception):
    """Base class for every error raised by gridscout."""


# ---------- session input (fatal to the call) ----------
class InvalidSessionInput(GridScoutError, ValueError):
    pass


class InvalidBoundsError(InvalidSessionInput):
    pass


class InvalidCellSizeError(InvalidSessionInput):
    pass


# ---------- lookups (programmer errors) ----------
class UnknownCellError(GridScoutError, KeyError):
    def __init__(self, cell_id: object) -> None:
        super().__init__(cell_id)
        self.cell_id = cell_id

    def __str__(self) -> str:
        return f"cell {self.cell_id!r} is not part of this session"


class UnknownSubstationError(GridScoutError, KeyError):
    def __init__(self, substation_id: object) -> None:
        super().__init__(substation_id)
        self.substation_id = substation_id

    def __str__(self) -> str:
        return f"substation {self.substation_id!r} is not part of this session"


# ---------- discovery boundary (recoverable, per cell) ----------
class DiscoveryError(GridScoutError):
    pass


class DiscoveryTimeoutError(DiscoveryError):
    pass


class DiscoveryServiceError(DiscoveryError):
    """Non-success answer from the discovery service (status -1 = transport)."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"HTTP {status}: {message}")
        self.status = status
        self.message = message


# ---------- analysis boundary (recoverable, per candidate) ----------
class AnalysisFailure(GridScoutError):
    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        timed_out: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.timed_out = timed_out


# ---------- lifecycle ----------
class IllegalTransitionError(GridScoutError):
    def __init__(self, substation_id: str, current: str, target: str) -> None:
        super().__init__(
            f"{substation_id}: cannot move from {current!r} to {target!r}"
        )
        self.substation_id = substation_id
        self.current = current
        self.target = target


class PhaseConflictError(GridScoutError):
    pass
