"""
Capacity analysis and human verification lifecycles for discovered
substations.
"""

from .pipeline import ANALYSIS_TRANSITIONS, AnalysisPipeline

__all__ = ["ANALYSIS_TRANSITIONS", "AnalysisPipeline"]
