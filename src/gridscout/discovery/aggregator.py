from __future__ import annotations

import itertools
import sys
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, MutableMapping, Optional

from ..config import DEDUP_RADIUS_M
from ..core.contracts import DiscoveredSubstation, GridCell, RawCandidate
from ..grid.geo import haversine_m
from .normalize import same_name


@dataclass(frozen=True)
class MergeResult:
    added: List[DiscoveredSubstation] = field(default_factory=list)
    duplicates: int = 0

    @property
    def added_count(self) -> int:
        return len(self.added)


def _sequential_ids(prefix: str = "sub") -> Callable[[], str]:
    counter = itertools.count(1)
    return lambda: f"{prefix}_{next(counter):06d}"


class DiscoveryAggregator:
    """
    Folds raw candidates into a session's discovery set.

    Two candidates are the same substation when they are closer than
    `dedup_radius_m` (great-circle) or their normalized names match.
    Accepted candidates get a freshly minted id; upstream ids are never
    used as keys. The set is append-only.
    """

    def __init__(
        self,
        *,
        dedup_radius_m: float = DEDUP_RADIUS_M,
        id_factory: Optional[Callable[[], str]] = None,
        debug: bool = False,
    ) -> None:
        if dedup_radius_m < 0:
            raise ValueError("dedup_radius_m must be >= 0")
        self.dedup_radius_m = float(dedup_radius_m)
        self._next_id = id_factory or _sequential_ids()
        self._debug = bool(debug)

    def find_match(
        self,
        known: Iterable[DiscoveredSubstation],
        raw: RawCandidate,
    ) -> Optional[DiscoveredSubstation]:
        for sub in known:
            if same_name(sub.name, raw.name):
                return sub
            if (
                haversine_m(sub.coordinates, raw.coordinates)
                < self.dedup_radius_m
            ):
                return sub
        return None

    def merge(
        self,
        discovered: MutableMapping[str, DiscoveredSubstation],
        raw_candidates: Iterable[RawCandidate],
        cell: GridCell,
    ) -> MergeResult:
        added: List[DiscoveredSubstation] = []
        duplicates = 0
        for raw in raw_candidates:
            match = self.find_match(discovered.values(), raw)
            if match is not None:
                duplicates += 1
                if self._debug:
                    print(
                        f"[merge] cell={cell.id} dup {raw.name!r} -> {match.id}",
                        file=sys.stderr,
                    )
                continue
            sub_id = self._next_id()
            while sub_id in discovered:
                sub_id = self._next_id()
            sub = DiscoveredSubstation.from_candidate(sub_id, raw)
            discovered[sub_id] = sub
            added.append(sub)

        if self._debug:
            print(
                f"[merge] cell={cell.id} added={len(added)} dup={duplicates} "
                f"total={len(discovered)}",
                file=sys.stderr,
            )
        return MergeResult(added=added, duplicates=duplicates)
