from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .config import CACHE_DIR, session_filename
from .core.contracts import DiscoveredSubstation, SessionStats

# JSONL export of discovered substations, one record per line. Records carry
# the lifecycle state at export time plus capacity_mva (max MW * 1.25).
#
# NOTE: append-only; loading keeps the last record seen for each id.

_DEFAULT_PATH = Path(CACHE_DIR) / session_filename(name="discoveries")
_LOCK = threading.Lock()

COORDINATES_SOURCE = "gridscout_grid_search"


def to_record(sub: DiscoveredSubstation) -> Dict[str, Any]:
    cap = sub.capacity_estimate
    return {
        "id": sub.id,
        "name": sub.name,
        "latitude": sub.coordinates.lat,
        "longitude": sub.coordinates.lng,
        "confidence_score": sub.confidence_score,
        "voltage_indicators": list(sub.voltage_indicators),
        "capacity_estimate": cap.as_dict() if cap else None,
        "capacity_mva": round(cap.to_mva(), 3) if cap else None,
        "infrastructure_features": sorted(sub.infrastructure_features),
        "satellite_timestamp": (
            sub.satellite_timestamp.isoformat()
            if sub.satellite_timestamp
            else None
        ),
        "analysis_method": sub.analysis_method,
        "analysis_status": sub.analysis_status.value,
        "verification_status": sub.verification_status.value,
        "analysis_attempts": sub.analysis_attempts,
        "analysis_error": sub.analysis_error,
        "coordinates_source": COORDINATES_SOURCE,
    }


class DiscoveryExport:
    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path else _DEFAULT_PATH

    def write(
        self,
        subs: Iterable[DiscoveredSubstation],
        *,
        stats: Optional[SessionStats] = None,
    ) -> int:
        """Append one line per substation; returns the number written."""
        lines = [json.dumps(to_record(s), ensure_ascii=False) for s in subs]
        if stats is not None:
            lines.append(json.dumps({"stats": stats.as_dict()}))
        with _LOCK:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as fh:
                for line in lines:
                    fh.write(line + "\n")
        return len(lines) - (1 if stats is not None else 0)

    def load(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        latest: Dict[str, Dict[str, Any]] = {}
        with _LOCK:
            with self.path.open("r", encoding="utf-8") as fh:
                for line in fh:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        rec = json.loads(line)
                    except json.JSONDecodeError:
                        continue
                    if "id" in rec:
                        latest[rec["id"]] = rec
        return list(latest.values())
