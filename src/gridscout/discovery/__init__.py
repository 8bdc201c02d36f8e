"""
discovery
=========
Deduplicating aggregation of raw detection-service candidates into a
session's discovery set.
"""

from .aggregator import DiscoveryAggregator, MergeResult
from .normalize import norm_name, same_name

__all__ = [
    "DiscoveryAggregator",
    "MergeResult",
    "norm_name",
    "same_name",
]
