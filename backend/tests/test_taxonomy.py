"""
Best Bike Paths Backend — Status Taxonomy Tests
================================================

What we test:
    ✅ Every breakpoint boundary maps to the expected label
    ✅ Negative and very large scores stay total
    ✅ Monotonicity over a sweep of scores
    ✅ Score lookup accepts raw strings and tolerates unknown labels
"""

import pytest

from bbp.engine.taxonomy import (
    PathStatus,
    average_score,
    map_score_to_status,
    status_score,
)


class TestMapScoreToStatus:

    @pytest.mark.parametrize(
        "score, expected",
        [
            (5.0, PathStatus.OPTIMAL),
            (4.5, PathStatus.OPTIMAL),
            (4.49, PathStatus.MEDIUM),
            (3.5, PathStatus.MEDIUM),
            (3.49, PathStatus.SUFFICIENT),
            (2.5, PathStatus.SUFFICIENT),
            (2.49, PathStatus.REQUIRES_MAINTENANCE),
            (1.5, PathStatus.REQUIRES_MAINTENANCE),
            (1.49, PathStatus.CLOSED),
            (1.0, PathStatus.CLOSED),
        ],
    )
    def test_breakpoints(self, score, expected):
        assert map_score_to_status(score) == expected

    def test_negative_score_is_closed(self):
        assert map_score_to_status(-5.0) == PathStatus.CLOSED

    def test_scores_above_range_are_optimal(self):
        assert map_score_to_status(100.0) == PathStatus.OPTIMAL

    def test_monotonic(self):
        scores = [x / 10 for x in range(-60, 70)]
        ranks = [status_score(map_score_to_status(s)) for s in scores]
        assert ranks == sorted(ranks)


class TestStatusScore:

    def test_enum_and_string_agree(self):
        assert status_score(PathStatus.MEDIUM) == 4
        assert status_score("MEDIUM") == 4

    def test_unknown_and_null(self):
        assert status_score(None) is None
        assert status_score("POTHOLE") is None

    def test_average_skips_unknown(self):
        assert average_score(["OPTIMAL", None, "SUFFICIENT", "bogus"]) == 4.0

    def test_average_of_nothing_is_none(self):
        assert average_score([None, None]) is None
        assert average_score([]) is None
