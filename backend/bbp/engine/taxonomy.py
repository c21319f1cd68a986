"""
Status taxonomy shared by every aggregation step.

Five ordered severities, highest score = best:

    OPTIMAL=5 > MEDIUM=4 > SUFFICIENT=3 > REQUIRES_MAINTENANCE=2 > CLOSED=1

Aggregation happens in this numeric space and maps back to the nearest label
through `map_score_to_status`, so segment and path statuses are directly
comparable.
"""

from enum import Enum
from typing import Iterable, Optional, Union


class PathStatus(str, Enum):
    OPTIMAL = "OPTIMAL"
    MEDIUM = "MEDIUM"
    SUFFICIENT = "SUFFICIENT"
    REQUIRES_MAINTENANCE = "REQUIRES_MAINTENANCE"
    CLOSED = "CLOSED"


class ReportStatus(str, Enum):
    CREATED = "CREATED"
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"
    IGNORED = "IGNORED"


STATUS_SCORES = {
    PathStatus.OPTIMAL: 5,
    PathStatus.MEDIUM: 4,
    PathStatus.SUFFICIENT: 3,
    PathStatus.REQUIRES_MAINTENANCE: 2,
    PathStatus.CLOSED: 1,
}

# Lower bound of each label, best first
_BREAKPOINTS = (
    (4.5, PathStatus.OPTIMAL),
    (3.5, PathStatus.MEDIUM),
    (2.5, PathStatus.SUFFICIENT),
    (1.5, PathStatus.REQUIRES_MAINTENANCE),
)


def status_score(status: Union[PathStatus, str, None]) -> Optional[int]:
    """
    Numeric score of a status label, or None for null/unknown labels.

    Accepts enum members and raw strings as stored in the database.
    """
    if status is None:
        return None
    return STATUS_SCORES.get(status)


def map_score_to_status(score: float) -> PathStatus:
    """
    Maps any real number to a label using fixed breakpoints.

    Total and monotonic: a higher score never maps to a worse label. Scores
    below 1.5 (including negative ones produced by rejections) are CLOSED.
    """
    for lower_bound, status in _BREAKPOINTS:
        if score >= lower_bound:
            return status
    return PathStatus.CLOSED


def average_score(statuses: Iterable[Union[PathStatus, str, None]]) -> Optional[float]:
    """Mean score of the known labels; None when there is none."""
    scores = [s for s in (status_score(status) for status in statuses) if s is not None]
    if not scores:
        return None
    return sum(scores) / len(scores)
