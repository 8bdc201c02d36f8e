"""
HTTP adapters for the external services.

- DiscoveryClient          (satellite discovery, one call per grid cell)
- CapacityEstimatorClient  (capacity estimation, one call per candidate)

Both implement the Protocols in gridscout.core.interfaces, so tests and
callers can swap in any object with the same methods.
"""

from .discovery import DiscoveryClient
from .estimator import CapacityEstimatorClient

__all__ = ["CapacityEstimatorClient", "DiscoveryClient"]
