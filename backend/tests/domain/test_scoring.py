"""Unit tests for batch and stage score aggregation."""

import pytest

from arena.domain.scoring import RATING_DIMENSIONS, aggregate_batch, average_stage_score, round_half_up

pytestmark = pytest.mark.unit


def _ratings(*values: int) -> dict[str, int]:
    return dict(zip(RATING_DIMENSIONS, values))


class TestRoundHalfUp:
    def test_half_rounds_up_to_integer(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4

    def test_below_half_rounds_down(self):
        assert round_half_up(67.49) == 67

    def test_one_decimal(self):
        assert round_half_up(6.25, 1) == 6.3
        assert round_half_up(6.666, 1) == 6.7


class TestAggregateBatch:
    def test_partial_failure_example(self):
        """A {8,7,9,6,8} and C {6,6,6,6,6}; B failed and is simply absent."""
        score = aggregate_batch([_ratings(8, 7, 9, 6, 8), _ratings(6, 6, 6, 6, 6)])

        assert score.aggregate_ratings == {
            "market_potential": 7.0,
            "feasibility": 6.5,
            "innovation": 7.5,
            "competitiveness": 6.0,
            "profit_potential": 7.0,
        }
        assert score.overall_score == 68
        assert score.scored is True
        assert score.succeeded == 2

    def test_zero_successes_is_unscored(self):
        score = aggregate_batch([])

        assert score.overall_score == 0
        assert score.scored is False
        assert score.succeeded == 0
        assert set(score.aggregate_ratings) == set(RATING_DIMENSIONS)
        assert all(v == 0.0 for v in score.aggregate_ratings.values())

    def test_perfect_ratings_score_100(self):
        assert aggregate_batch([_ratings(10, 10, 10, 10, 10)]).overall_score == 100

    def test_overall_uses_unrounded_means(self):
        # Each mean is 6.33..; integer-rounded means would give 60
        score = aggregate_batch([_ratings(7, 7, 7, 7, 7), _ratings(6, 6, 6, 6, 6), _ratings(6, 6, 6, 6, 6)])
        assert score.aggregate_ratings["feasibility"] == 6.3
        assert score.overall_score == 63

    @pytest.mark.parametrize("dimension", RATING_DIMENSIONS)
    def test_raising_one_rating_never_lowers_overall(self, dimension):
        base = [_ratings(5, 5, 5, 5, 5), _ratings(4, 6, 3, 7, 5)]
        improved = [dict(r) for r in base]
        improved[1][dimension] += 1

        assert aggregate_batch(improved).overall_score >= aggregate_batch(base).overall_score


class TestAverageStageScore:
    def test_no_completed_stages(self):
        assert average_stage_score([]) is None

    def test_half_up(self):
        assert average_stage_score([7, 8]) == 8

    def test_mean_of_four(self):
        assert average_stage_score([6, 7, 8, 6]) == 7
