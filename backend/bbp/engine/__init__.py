"""
Best Bike Paths Backend - Path-Health Engine
=============================================

Pure, synchronous functions over records fetched by the services layer.
Nothing here performs I/O, holds state, or raises for malformed crowd data.

Modules:
    - taxonomy.py:     status labels, numeric scores, score-to-status mapping
    - chain.py:        ordering of segment join rows from next-pointers
    - signals.py:      report freshness and reliability
    - aggregation.py:  segment status from reports, path status from segments
    - matching.py:     origin/destination search filtering and ranking
    - geo.py:          great-circle distances and tolerance checks
    - stats.py:        per-trip ride metrics and per-period summaries
"""

from bbp.engine.aggregation import aggregate_segment_status, compute_path_status
from bbp.engine.chain import reconstruct_chain
from bbp.engine.matching import rank_search_candidates
from bbp.engine.signals import ReportSignals, compute_report_signals
from bbp.engine.stats import StatsPeriod, TripMetrics, compute_trip_metrics, summarize_period
from bbp.engine.taxonomy import PathStatus, ReportStatus, map_score_to_status

__all__ = [
    "PathStatus",
    "ReportSignals",
    "ReportStatus",
    "StatsPeriod",
    "TripMetrics",
    "aggregate_segment_status",
    "compute_path_status",
    "compute_report_signals",
    "compute_trip_metrics",
    "map_score_to_status",
    "rank_search_candidates",
    "reconstruct_chain",
    "summarize_period",
]
