"""
Report Signal Calculator
========================

Turns one report's age and disposition into two bounded numbers:

    freshness   = 2 ** (-age_minutes / half_life)          in (0, 1]
    reliability = clamp(1 + alpha * confirmed - beta * rejected,
                        min_reliability, max_reliability)

A REJECTED report contributes its freshness as the rejected score; a CREATED
or CONFIRMED report contributes it as the confirmed score. A report carries
one kind of contribution, never both. IGNORED reports must be filtered out by
the caller before reaching this module.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol, Union

from bbp.config import HealthPolicy, settings
from bbp.engine.taxonomy import ReportStatus


class ReportLike(Protocol):
    status: Union[ReportStatus, str]
    created_at: datetime


@dataclass(frozen=True)
class ReportSignals:
    reliability: float
    freshness: float


def as_utc(moment: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def report_age_minutes(created_at: datetime, now: datetime) -> float:
    """Age in minutes, floored at 0 for timestamps in the future (clock skew)."""
    delta = as_utc(now) - as_utc(created_at)
    return max(delta.total_seconds() / 60.0, 0.0)


def compute_freshness(age_minutes: float, half_life_minutes: float) -> float:
    return 2.0 ** (-max(age_minutes, 0.0) / half_life_minutes)


def compute_report_signals(
    report: ReportLike,
    now: Optional[datetime] = None,
    policy: Optional[HealthPolicy] = None,
) -> ReportSignals:
    """
    Computes `{reliability, freshness}` for a single report.

    Args:
        report: Anything exposing `status` and `created_at`.
        now:    Evaluation instant; defaults to the current UTC time.
        policy: Engine constants; defaults to the configured policy.
    """
    policy = policy or settings.health_policy()
    now = now or datetime.now(timezone.utc)

    freshness = compute_freshness(
        report_age_minutes(report.created_at, now),
        policy.report_half_life_minutes,
    )

    confirmed_score = 0.0
    rejected_score = 0.0
    if report.status == ReportStatus.REJECTED:
        rejected_score = freshness
    elif report.status in (ReportStatus.CREATED, ReportStatus.CONFIRMED):
        confirmed_score = freshness

    raw = 1.0 + policy.report_alpha * confirmed_score - policy.report_beta * rejected_score
    reliability = min(max(raw, policy.min_reliability), policy.max_reliability)

    return ReportSignals(reliability=reliability, freshness=freshness)
