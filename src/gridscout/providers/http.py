from __future__ import annotations

import threading
import time
from typing import Any, Dict, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import (
    HTTP_RETRY_TOTAL,
    RETRY_ALLOWED_METHODS,
    RETRY_BACKOFF_FACTOR,
    RETRY_STATUS_FORCELIST,
)


def make_session(
    api_key: Optional[str] = None, *, retries: int = HTTP_RETRY_TOTAL
) -> requests.Session:
    s = requests.Session()
    retry = Retry(
        total=retries,
        backoff_factor=RETRY_BACKOFF_FACTOR,
        status_forcelist=RETRY_STATUS_FORCELIST,
        allowed_methods=RETRY_ALLOWED_METHODS,
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    s.mount("https://", adapter)
    s.mount("http://", adapter)
    s.headers.update(
        {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": "gridscout substation grid search",
        }
    )
    if api_key:
        s.headers["Authorization"] = f"Bearer {api_key}"
        s.headers["apikey"] = api_key
    return s


class Pacer:
    """Minimum spacing between calls, from a requests-per-minute budget."""

    def __init__(self, rpm: int) -> None:
        self._lock = threading.Lock()
        self.set_rpm(rpm)

    def set_rpm(self, rpm: int) -> None:
        rpm = max(1, int(rpm))
        self._min_interval = 60.0 / rpm
        self._last_ts = 0.0

    def wait(self) -> None:
        # held while sleeping so concurrent workers queue up behind the budget
        with self._lock:
            now = time.monotonic()
            wait = self._min_interval - (now - self._last_ts)
            if wait > 0:
                time.sleep(wait)
            self._last_ts = time.monotonic()


def read_json(r: requests.Response) -> Tuple[Optional[Dict[str, Any]], str]:
    """(json_or_None, text_snippet). A non-object body counts as None."""
    snippet = (r.text or "")[:300].replace("\n", " ")
    try:
        data = r.json()
    except ValueError:
        return None, snippet
    if not isinstance(data, dict):
        return None, snippet
    return data, snippet


def error_message(data: Optional[Dict[str, Any]], snippet: str) -> str:
    if data:
        err = data.get("error") or data.get("message")
        if err:
            return str(err)
    return snippet or "empty response"


def clamp_pct(v: Any, default: float = 0.0) -> float:
    """Confidence-style value forced into [0, 100]; unparseable -> default."""
    try:
        x = float(v)
    except (TypeError, ValueError):
        return default
    if x != x:  # NaN
        return default
    return min(100.0, max(0.0, x))
