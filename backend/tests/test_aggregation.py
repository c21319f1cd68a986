"""
Best Bike Paths Backend — Status Aggregation Tests
===================================================

What we test:
    ✅ A single fresh confirmation sets the segment to its label
    ✅ IGNORED and unknown-label reports are skipped
    ✅ Rejections pull the weighted average down
    ✅ No usable report → None
    ✅ Path blend: unreported baseline, reported mix, rejected segment
"""

from bbp.config import HealthPolicy
from bbp.engine.aggregation import aggregate_segment_status, compute_path_status
from bbp.engine.taxonomy import PathStatus


class TestAggregateSegmentStatus:

    def test_single_confirmed_report(self, make_report, now, policy):
        reports = [make_report("REQUIRES_MAINTENANCE", status="CONFIRMED")]
        assert aggregate_segment_status(reports, now, policy) == PathStatus.REQUIRES_MAINTENANCE

    def test_no_reports_is_none(self, now, policy):
        assert aggregate_segment_status([], now, policy) is None

    def test_ignored_reports_are_skipped(self, make_report, now, policy):
        reports = [
            make_report("CLOSED", status="IGNORED"),
            make_report("OPTIMAL"),
        ]
        assert aggregate_segment_status(reports, now, policy) == PathStatus.OPTIMAL

    def test_only_ignored_is_none(self, make_report, now, policy):
        reports = [make_report("CLOSED", status="IGNORED")]
        assert aggregate_segment_status(reports, now, policy) is None

    def test_unknown_path_status_is_skipped(self, make_report, now, policy):
        reports = [make_report("FLOODED"), make_report(None), make_report("MEDIUM")]
        assert aggregate_segment_status(reports, now, policy) == PathStatus.MEDIUM

    def test_rejection_drags_average_down(self, make_report, now, policy):
        confirmed_only = [make_report("OPTIMAL"), make_report("OPTIMAL")]
        with_rejection = confirmed_only + [make_report("OPTIMAL", status="REJECTED")]

        assert aggregate_segment_status(confirmed_only, now, policy) == PathStatus.OPTIMAL
        # (5*1.6 + 5*1.6 - 5*0.2) / 3.4 ≈ 4.41
        assert aggregate_segment_status(with_rejection, now, policy) == PathStatus.MEDIUM

    def test_lone_rejection_is_closed(self, make_report, now, policy):
        reports = [make_report("OPTIMAL", status="REJECTED")]
        assert aggregate_segment_status(reports, now, policy) == PathStatus.CLOSED

    def test_weights_by_reliability(self, make_report, now, policy):
        # Fresh CLOSED (rel 1.6) against an old OPTIMAL (rel ≈ 1.0):
        # (1*1.6 + 5*1.0) / 2.6 ≈ 2.54 → SUFFICIENT
        reports = [
            make_report("CLOSED"),
            make_report("OPTIMAL", age_minutes=1440 * 30),
        ]
        assert aggregate_segment_status(reports, now, policy) == PathStatus.SUFFICIENT

    def test_threshold_discards_weak_reports(self, make_report, now):
        strict = HealthPolicy(report_min_reliability=0.5)
        reports = [make_report("OPTIMAL", status="REJECTED")]
        # Rejected fresh report has reliability 0.2 < 0.5
        assert aggregate_segment_status(reports, now, strict) is None

    def test_order_independent(self, make_report, now, policy):
        reports = [
            make_report("CLOSED", age_minutes=10),
            make_report("OPTIMAL", status="CONFIRMED", age_minutes=500),
            make_report("MEDIUM", status="REJECTED", age_minutes=60),
        ]
        assert aggregate_segment_status(reports, now, policy) == aggregate_segment_status(
            list(reversed(reports)), now, policy
        )


class TestComputePathStatus:

    def test_no_segments_is_none(self, policy):
        assert compute_path_status([], set(), policy) is None

    def test_all_unknown_is_none(self, make_path_row, policy):
        rows = [make_path_row("a", None), make_path_row("b", "bogus")]
        assert compute_path_status(rows, set(), policy) is None

    def test_unreported_uses_baseline(self, make_path_row, policy):
        rows = [make_path_row("a", "OPTIMAL"), make_path_row("b", "SUFFICIENT")]
        # (5 + 3) / 2 = 4.0
        assert compute_path_status(rows, set(), policy) == PathStatus.MEDIUM

    def test_reported_segments_weigh_more(self, make_path_row, policy):
        rows = [
            make_path_row("a", "OPTIMAL"),
            make_path_row("b", "OPTIMAL"),
            make_path_row("c", "REQUIRES_MAINTENANCE"),
        ]
        # baseline 4.0; reported 2.0 → 2.0*0.7 + 4.0*0.3 = 2.6
        assert compute_path_status(rows, {"c"}, policy) == PathStatus.SUFFICIENT

    def test_rejected_segment_worsens_but_not_closed(self, make_report, make_path_row, now, policy):
        rejected = aggregate_segment_status([make_report("OPTIMAL", status="REJECTED")], now, policy)
        rows = [
            make_path_row("a", "OPTIMAL"),
            make_path_row("b", "OPTIMAL"),
            make_path_row("c", "OPTIMAL"),
            make_path_row("d", rejected),
        ]

        baseline = compute_path_status(rows, set(), policy)
        blended = compute_path_status(rows, {"d"}, policy)

        assert baseline == PathStatus.MEDIUM
        # reported 1.0, baseline 4.0 → 1.9
        assert blended == PathStatus.REQUIRES_MAINTENANCE

    def test_reported_ids_outside_path_are_ignored(self, make_path_row, policy):
        rows = [make_path_row("a", "OPTIMAL")]
        assert compute_path_status(rows, {"zzz"}, policy) == PathStatus.OPTIMAL
