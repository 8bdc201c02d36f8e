"""
Global configuration for gridscout.
Only infrastructure knobs live here (paths, URLs, timeouts, retries, RPM,
dedup radius). Session-specific values are passed explicitly by callers.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Final, List, Optional

from dotenv import load_dotenv

load_dotenv()

# -----------------------------------------------------------------------------
# Storage roots
# -----------------------------------------------------------------------------
# XDG cache location: ~/.cache/gridscout (or $XDG_CACHE_HOME/gridscout)
_XDG_CACHE_HOME = Path(os.getenv("XDG_CACHE_HOME", Path.home() / ".cache"))
CACHE_DIR = _XDG_CACHE_HOME / "gridscout"
CACHE_DIR.mkdir(parents=True, exist_ok=True)


def session_filename(
    *,
    name: str,  # e.g., "discoveries", "cells"
    when: Optional[str] = None,  # e.g., "2025-08-24", "run3"
    cell_size_km: Optional[float] = None,
    suffix: str = "jsonl",
    prefix: str = "gs",
    base_dir: Optional[Path] = None,
) -> Path:
    """
    Session artifact name, e.g.:
      gs_discoveries_100km_2025-08-24.jsonl
    """
    parts = [prefix, name]
    if cell_size_km is not None:
        parts.append(f"{cell_size_km:g}km")
    if when:
        parts.append(when)
    fname = "_".join(parts) + f".{suffix.lstrip('.')}"
    return (base_dir / fname) if base_dir else Path(fname)


# -----------------------------------------------------------------------------
# HTTP / retry / pacing
# -----------------------------------------------------------------------------
DEFAULT_TIMEOUT_S: Final[float] = float(os.getenv("GRIDSCOUT_TIMEOUT_S", "30"))

# Transport-level retries stay off by default; per-cell retry belongs to the
# orchestrator (see SearchOrchestrator.max_cell_retries).
HTTP_RETRY_TOTAL: Final[int] = int(os.getenv("GRIDSCOUT_HTTP_RETRIES", "0"))
RETRY_STATUS_FORCELIST: Final[List[int]] = [429, 500, 502, 503, 504]
RETRY_BACKOFF_FACTOR: Final[float] = float(
    os.getenv("GRIDSCOUT_RETRY_BACKOFF", "1.0")
)
RETRY_ALLOWED_METHODS: Final[List[str]] = ["POST"]

DEFAULT_RPM: Final[int] = int(os.getenv("GRIDSCOUT_DEFAULT_RPM", "60"))

# -----------------------------------------------------------------------------
# Service endpoints / credentials; overridden by .env vars
# -----------------------------------------------------------------------------
FUNCTIONS_URL: Final[str] = os.getenv(
    "GRIDSCOUT_FUNCTIONS_URL", "http://127.0.0.1:54321/functions/v1"
).rstrip("/")
DISCOVERY_URL: Final[str] = os.getenv(
    "GRIDSCOUT_DISCOVERY_URL", f"{FUNCTIONS_URL}/satellite-analysis"
)
ESTIMATOR_URL: Final[str] = os.getenv(
    "GRIDSCOUT_ESTIMATOR_URL", f"{FUNCTIONS_URL}/substation-capacity-estimator"
)
API_KEY: Final[str] = os.getenv("GRIDSCOUT_API_KEY", "")

# -----------------------------------------------------------------------------
# Search tuning
# -----------------------------------------------------------------------------
DEDUP_RADIUS_M: Final[float] = float(
    os.getenv("GRIDSCOUT_DEDUP_RADIUS_M", "250")
)
MAX_CELLS: Final[int] = int(os.getenv("GRIDSCOUT_MAX_CELLS", "10000"))


def get_env(
    name: str, *, required: bool = False, default: Optional[str] = None
) -> Optional[str]:
    """Small helper to fetch env vars with an optional 'required' flag."""
    val = os.getenv(name, default)
    if required and not val:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return val


# -----------------------------------------------------------------------------
# Public exports
# -----------------------------------------------------------------------------
__all__ = [
    # roots
    "CACHE_DIR",
    "session_filename",
    # http/retry/pacing
    "DEFAULT_TIMEOUT_S",
    "HTTP_RETRY_TOTAL",
    "RETRY_STATUS_FORCELIST",
    "RETRY_BACKOFF_FACTOR",
    "RETRY_ALLOWED_METHODS",
    "DEFAULT_RPM",
    # services
    "FUNCTIONS_URL",
    "DISCOVERY_URL",
    "ESTIMATOR_URL",
    "API_KEY",
    # tuning
    "DEDUP_RADIUS_M",
    "MAX_CELLS",
    # env helpers
    "get_env",
]
