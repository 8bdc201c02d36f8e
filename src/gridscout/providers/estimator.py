from __future__ import annotations

import json
import sys
from typing import Any, Dict, Optional

import requests

from ..config import API_KEY, DEFAULT_RPM, DEFAULT_TIMEOUT_S, ESTIMATOR_URL
from ..core.contracts import CapacityEstimate, LatLng
from ..core.errors import AnalysisFailure
from ..core.interfaces import CapacityEstimator
from .http import Pacer, clamp_pct, error_message, make_session, read_json


def _extract_estimate(data: Dict[str, Any]) -> CapacityEstimate:
    result = data.get("result")
    if not isinstance(result, dict):
        raise AnalysisFailure("response has no 'result' object")
    cap = result.get("estimatedCapacity")
    if not isinstance(cap, dict):
        raise AnalysisFailure(
            f"estimatedCapacity is not an object: {str(cap)[:200]}"
        )
    detection = result.get("detectionResults")
    if detection is None:
        detection = {}
    elif not isinstance(detection, dict):
        raise AnalysisFailure(
            f"detectionResults is not an object: {str(detection)[:200]}"
        )
    try:
        lo = float(cap["min"])
        hi = float(cap["max"])
    except (KeyError, TypeError, ValueError):
        raise AnalysisFailure(
            f"estimatedCapacity missing min/max: {str(cap)[:200]}"
        ) from None
    confidence = clamp_pct(detection.get("confidence"))
    return CapacityEstimate(min_mw=lo, max_mw=hi, confidence=confidence)


class CapacityEstimatorClient(CapacityEstimator):
    """
    Capacity estimation service adapter.

    Endpoint:
      POST {ESTIMATOR_URL}   # the `substation-capacity-estimator` function

    Request:  {latitude, longitude, imageUrl?, manualOverride.utilityContext}
    Response: {success, result: {estimatedCapacity{min,max,unit},
                                 detectionResults{confidence, ...}}}
    Every failure is raised as AnalysisFailure.
    """

    def __init__(
        self,
        *,
        url: str = ESTIMATOR_URL,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_S,
        rpm: int = DEFAULT_RPM,
        session: Optional[requests.Session] = None,
        notes: str = "Auto-discovered via grid search",
        debug: bool = False,
    ) -> None:
        self._url = url
        self._session = session or make_session(api_key or API_KEY)
        self._timeout = float(timeout)
        self._pacer = Pacer(rpm)
        self._notes = notes
        self._debug = bool(debug)

    def set_rpm(self, rpm: int) -> None:
        self._pacer.set_rpm(rpm)

    def build_payload(
        self,
        coordinates: LatLng,
        *,
        name: str = "",
        image_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "latitude": coordinates.lat,
            "longitude": coordinates.lng,
            "manualOverride": {
                "utilityContext": {"name": name, "notes": self._notes}
            },
        }
        if image_url:
            payload["imageUrl"] = image_url
        return payload

    def estimate(
        self,
        coordinates: LatLng,
        *,
        name: str = "",
        image_url: Optional[str] = None,
    ) -> CapacityEstimate:
        payload = self.build_payload(coordinates, name=name, image_url=image_url)
        self._pacer.wait()
        try:
            r = self._session.post(
                self._url, json=payload, timeout=self._timeout
            )
        except requests.Timeout as e:
            raise AnalysisFailure(
                f"no answer within {self._timeout:g}s", timed_out=True
            ) from e
        except requests.RequestException as e:
            raise AnalysisFailure(f"{type(e).__name__}: {e}", status=-1) from e

        data, snippet = read_json(r)
        if self._debug:
            print(
                f"[estimator POST] status={r.status_code} "
                f"payload={json.dumps(payload)[:300]}",
                file=sys.stderr,
            )
            print(f"[estimator POST] body={snippet}", file=sys.stderr)

        if r.status_code >= 400:
            raise AnalysisFailure(
                error_message(data, snippet), status=r.status_code
            )
        if data is None:
            raise AnalysisFailure(
                f"invalid JSON body: {snippet}", status=r.status_code
            )
        if data.get("success") is False or data.get("error"):
            raise AnalysisFailure(
                error_message(data, snippet), status=r.status_code
            )
        return _extract_estimate(data)
