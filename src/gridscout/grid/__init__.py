"""
Grid geometry: partition a bounding box into cells and track which cells
have been searched.
"""

from .geo import haversine_km, haversine_m
from .partition import cell_steps, partition
from .state import CellSearchState

__all__ = [
    "CellSearchState",
    "cell_steps",
    "haversine_km",
    "haversine_m",
    "partition",
]
