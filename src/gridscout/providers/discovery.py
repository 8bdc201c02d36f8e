from __future__ import annotations

import json
import re
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import requests

from ..config import API_KEY, DEFAULT_RPM, DEFAULT_TIMEOUT_S, DISCOVERY_URL
from ..core.contracts import (
    MVA_PER_MW,
    CapacityEstimate,
    GridCell,
    LatLng,
    RawCandidate,
)
from ..core.errors import DiscoveryServiceError, DiscoveryTimeoutError
from ..core.interfaces import DiscoveryService
from ..grid.geo import half_diagonal_km
from .http import Pacer, clamp_pct, error_message, make_session, read_json

# e.g. "100-300 MVA", "200 – 400 MW"
_CAPACITY_TEXT_RE = re.compile(
    r"^\s*(\d+(?:\.\d+)?)\s*[-–]\s*(\d+(?:\.\d+)?)\s*(MVA|MW)?\s*$",
    re.IGNORECASE,
)


def _float(v: Any, default: float = 0.0) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        return default


def parse_capacity(
    raw: Any, *, fallback_confidence: float = 0.0
) -> Optional[CapacityEstimate]:
    """
    Accepts {min, max, confidence} or the text form "100-300 MVA".
    MVA ranges are converted back to MW with the same 1.25 factor used on
    export; a missing confidence falls back to the detection confidence.
    """
    if isinstance(raw, dict):
        if raw.get("min") is None or raw.get("max") is None:
            return None
        return CapacityEstimate(
            min_mw=_float(raw["min"]),
            max_mw=_float(raw["max"]),
            confidence=clamp_pct(raw.get("confidence"), fallback_confidence),
        )
    if isinstance(raw, str):
        m = _CAPACITY_TEXT_RE.match(raw)
        if not m:
            return None
        lo, hi = sorted((float(m.group(1)), float(m.group(2))))
        if (m.group(3) or "MVA").upper() == "MVA":
            lo, hi = lo / MVA_PER_MW, hi / MVA_PER_MW
        return CapacityEstimate(
            min_mw=lo, max_mw=hi, confidence=fallback_confidence
        )
    return None


def parse_timestamp(raw: Any) -> Optional[datetime]:
    if not isinstance(raw, str) or not raw:
        return None
    try:
        # fromisoformat() only learned the trailing 'Z' in 3.11
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None


def parse_coordinates(d: Dict[str, Any]) -> Optional[LatLng]:
    coords = d.get("coordinates")
    if isinstance(coords, dict):
        lat, lng = coords.get("lat"), coords.get("lng")
    else:
        lat, lng = d.get("latitude"), d.get("longitude")
    try:
        lat, lng = float(lat), float(lng)
    except (TypeError, ValueError):
        return None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
        return None
    return LatLng(lat=lat, lng=lng)


def _strings(v: Any) -> List[str]:
    # a bare scalar or mapping is not a list of labels
    if not isinstance(v, (list, tuple)):
        return []
    return [str(x) for x in v if x is not None]


def parse_candidate(d: Dict[str, Any]) -> Optional[RawCandidate]:
    """One discovery-service record -> RawCandidate, or None if unusable."""
    coords = parse_coordinates(d)
    if coords is None:
        return None
    confidence = clamp_pct(d.get("confidence_score"))
    return RawCandidate(
        name=str(d.get("name") or ""),
        coordinates=coords,
        confidence_score=confidence,
        voltage_indicators=_strings(d.get("voltage_indicators")),
        capacity_estimate=parse_capacity(
            d.get("capacity_estimate"), fallback_confidence=confidence
        ),
        infrastructure_features=frozenset(
            _strings(d.get("infrastructure_features"))
        ),
        satellite_timestamp=parse_timestamp(d.get("satellite_timestamp")),
        analysis_method=str(d.get("analysis_method") or ""),
        external_id=str(d["id"]) if d.get("id") is not None else None,
    )


class DiscoveryClient(DiscoveryService):
    """
    Satellite discovery service adapter.

    Endpoint:
      POST {DISCOVERY_URL}   # the `satellite-analysis` function

    Notes:
      - One call per cell; no retries here (the orchestrator owns retry).
      - Transport errors never escape raw: timeouts become
        DiscoveryTimeoutError, everything else DiscoveryServiceError.
    """

    def __init__(
        self,
        *,
        url: str = DISCOVERY_URL,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_S,
        rpm: int = DEFAULT_RPM,
        session: Optional[requests.Session] = None,
        debug: bool = False,
    ) -> None:
        self._url = url
        self._session = session or make_session(api_key or API_KEY)
        self._timeout = float(timeout)
        self._pacer = Pacer(rpm)
        self._debug = bool(debug)

    def set_rpm(self, rpm: int) -> None:
        self._pacer.set_rpm(rpm)

    @staticmethod
    def build_payload(cell: GridCell) -> Dict[str, Any]:
        return {
            "action": "discover_substations",
            "coordinates": {
                "lat": cell.center.lat,
                "lng": cell.center.lng,
                "radius": round(half_diagonal_km(cell.bounds), 3),
            },
            "bounds": cell.bounds.as_dict(),
        }

    def _post(self, payload: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
        self._pacer.wait()
        try:
            r = self._session.post(
                self._url, json=payload, timeout=self._timeout
            )
        except requests.Timeout as e:
            raise DiscoveryTimeoutError(
                f"no answer within {self._timeout:g}s: {e}"
            ) from e
        except requests.RequestException as e:
            raise DiscoveryServiceError(-1, f"{type(e).__name__}: {e}") from e

        data, snippet = read_json(r)
        if self._debug:
            print(
                f"[discovery POST] url={self._url} status={r.status_code}",
                file=sys.stderr,
            )
            print(
                f"[discovery POST] payload={json.dumps(payload)[:400]}",
                file=sys.stderr,
            )
            print(f"[discovery POST] body={snippet}", file=sys.stderr)

        if r.status_code >= 400:
            raise DiscoveryServiceError(
                r.status_code, error_message(data, snippet)
            )
        if data is None:
            raise DiscoveryServiceError(
                r.status_code, f"invalid JSON body: {snippet}"
            )
        if data.get("success") is False or data.get("error"):
            raise DiscoveryServiceError(
                r.status_code, error_message(data, snippet)
            )
        return r.status_code, data

    def discover(self, cell: GridCell) -> List[RawCandidate]:
        status, data = self._post(self.build_payload(cell))
        records = data.get("discoveries")
        if records is None:
            records = data.get("substations")
        if records is None:
            records = []
        if not isinstance(records, list):
            raise DiscoveryServiceError(
                status,
                f"malformed body: discoveries is {type(records).__name__}",
            )

        out: List[RawCandidate] = []
        for rec in records:
            try:
                cand = parse_candidate(rec) if isinstance(rec, dict) else None
            except (TypeError, ValueError):
                cand = None
            if cand is None:
                if self._debug:
                    print(
                        f"[discovery] cell={cell.id} skipped unusable "
                        f"record: {str(rec)[:200]}",
                        file=sys.stderr,
                    )
                continue
            out.append(cand)
        return out
