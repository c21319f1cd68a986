"""
Segment and path status aggregation.

Segment (reports → label):

    for each report, skipping IGNORED and unknown pathStatus:
        reliability = signals(report).reliability      (skip if < threshold)
        score       = STATUS_SCORES[pathStatus]        (negated if REJECTED)
    status = map(Σ score·reliability / Σ reliability)  or None if Σ rel == 0

Path (segment labels → label):

    all_avg      = mean score over every segment of the path
    reported_avg = mean score over segments with ≥1 non-ignored report
    mixed        = reported_avg·w_reported + all_avg·w_all   (if any reported)
                 = all_avg                                   (otherwise)
    status       = map(mixed)

Both return None ("no opinion") when there is nothing to average. Callers
keep the previously stored status in that case.
"""

import logging
from datetime import datetime, timezone
from typing import AbstractSet, Iterable, Optional, Protocol, Sequence, Union

from bbp.config import HealthPolicy, settings
from bbp.engine.signals import compute_report_signals
from bbp.engine.taxonomy import (
    PathStatus,
    ReportStatus,
    average_score,
    map_score_to_status,
    status_score,
)

logger = logging.getLogger(__name__)


class ScoredReport(Protocol):
    status: Union[ReportStatus, str]
    path_status: Union[PathStatus, str, None]
    created_at: datetime


class SegmentStatusRow(Protocol):
    segment_id: str
    status: Union[PathStatus, str, None]


def aggregate_segment_status(
    reports: Iterable[ScoredReport],
    now: Optional[datetime] = None,
    policy: Optional[HealthPolicy] = None,
) -> Optional[PathStatus]:
    """
    Reliability-weighted status of one segment from all of its reports.

    A REJECTED report pulls the average down by contributing a negative
    score: the rejection is itself evidence about the segment, not just a
    withdrawn report.

    Returns:
        The nearest label, or None when no report qualifies.
    """
    policy = policy or settings.health_policy()
    now = now or datetime.now(timezone.utc)

    weighted_sum = 0.0
    weight_total = 0.0
    used = 0

    for report in reports:
        if report.status == ReportStatus.IGNORED:
            continue

        score = status_score(report.path_status)
        if score is None:
            continue

        reliability = compute_report_signals(report, now, policy).reliability
        if reliability < policy.report_min_reliability:
            continue

        signed = -score if report.status == ReportStatus.REJECTED else score
        weighted_sum += signed * reliability
        weight_total += reliability
        used += 1

    if weight_total == 0:
        return None

    status = map_score_to_status(weighted_sum / weight_total)
    logger.debug("Segment aggregate over %d reports: %.3f → %s", used, weighted_sum / weight_total, status.value)
    return status


def compute_path_status(
    rows: Sequence[SegmentStatusRow],
    reported_segment_ids: AbstractSet[str],
    policy: Optional[HealthPolicy] = None,
) -> Optional[PathStatus]:
    """
    Blends the reported-segments average with the all-segments baseline.

    Args:
        rows:                 Join rows of one path, each with the segment's
                              cached status.
        reported_segment_ids: Segments that have at least one non-ignored
                              report anywhere in the system.

    Returns:
        The path label, or None when no segment carries a known status.
    """
    policy = policy or settings.health_policy()

    all_average = average_score(row.status for row in rows)
    if all_average is None:
        return None

    reported_average = average_score(
        row.status for row in rows if row.segment_id in reported_segment_ids
    )
    if reported_average is None:
        return map_score_to_status(all_average)

    mixed = reported_average * policy.reported_weight + all_average * policy.all_weight
    return map_score_to_status(mixed)
