"""
Unit tests for overall rating aggregation and bonus allocation maths.
"""

import math

import pytest

from perfeval.services.bonus import allocate_bonus_pool, floor1, performance_score
from perfeval.services.scoring import compute_overall_rating, rating_summary, round_half_up


CATEGORIES = [
    {"id": "c1", "questions": [{"id": "q1"}, {"id": "q2"}]},
    {"id": "c2", "questions": [{"id": "q3"}]},
]


def _responses(*ratings):
    """Spread ratings over q1, q2, q3 in order."""
    keys = [("c1", "q1"), ("c1", "q2"), ("c2", "q3")]
    out = {}
    for (cat, q), rating in zip(keys, ratings):
        out.setdefault(cat, {})[q] = {"manager_rating": rating}
    return out


class TestOverallRating:
    """Mean of manager ratings rounded to the nearest half"""

    def test_mean_of_whole_numbers(self):
        assert compute_overall_rating(CATEGORIES, _responses(3, 4, 5)) == 4.0

    def test_half_point_is_kept(self):
        assert compute_overall_rating(CATEGORIES, _responses(3, 3.5)) == 3.5

    def test_quarter_rounds_up_to_half(self):
        # mean 3.25 -> 6.5 doubled -> rounds up to 7 -> 3.5
        assert compute_overall_rating(CATEGORIES, _responses(3, 3.5, 3.25)) == 3.5

    def test_nothing_rated_defaults_to_one(self):
        assert compute_overall_rating(CATEGORIES, {}) == 1.0
        assert compute_overall_rating(CATEGORIES, None) == 1.0

    def test_unusable_ratings_are_ignored(self):
        responses = {"c1": {"q1": {"manager_rating": 0}, "q2": {"manager_rating": "5"}},
                     "c2": {"q3": {"manager_rating": 4}}}
        assert compute_overall_rating(CATEGORIES, responses) == 4.0

    def test_nan_and_bool_are_ignored(self):
        responses = {"c1": {"q1": {"manager_rating": math.nan}, "q2": {"manager_rating": True}},
                     "c2": {"q3": {"manager_rating": 2}}}
        assert compute_overall_rating(CATEGORIES, responses) == 2.0

    def test_answers_to_removed_questions_do_not_count(self):
        responses = _responses(2, 2, 2)
        responses["c1"]["gone"] = {"manager_rating": 5}
        assert compute_overall_rating(CATEGORIES, responses) == 2.0

    def test_clamped_to_scale(self):
        assert compute_overall_rating(CATEGORIES, _responses(9, 9, 9), "1-5") == 5.0
        assert compute_overall_rating(CATEGORIES, _responses(9, 9, 9), "1-10") == 9.0

    def test_round_half_up_never_rounds_to_even(self):
        assert round_half_up(2.5) == 3.0
        assert round_half_up(4.5) == 5.0

    def test_summary_reports_weights_are_not_applied(self):
        categories = [{"id": "c1", "weight": 40, "questions": [{"id": "q1"}]}]
        summary = rating_summary(categories, {"c1": {"q1": {"manager_rating": 4}}}, "1-5")

        assert summary["overall_rating"] == 4.0
        assert summary["ratings_counted"] == 1
        assert summary["weights_declared"] is True
        assert summary["weights_applied"] is False
        assert summary["scale"] == [1, 5]


class TestBonusMaths:
    """Performance-weighted split of a budget"""

    def test_performance_score_normalises_to_ten(self):
        assert performance_score(4, "1-5") == 8.0
        assert performance_score(5, "1-10") == 5.0
        assert performance_score(None) == 1.0

    def test_floor1(self):
        assert floor1(12.25) == 12.2
        assert floor1(5.5555) == 5.5
        assert floor1(10.0) == 10.0
        assert floor1(0.04) == 0.0

    def test_shares_sum_to_budget(self):
        members = [
            {"user_id": "a", "monthly_salary": 4000, "performance_score": 8.0},
            {"user_id": "b", "monthly_salary": 5000, "performance_score": 6.0},
            {"user_id": "c", "monthly_salary": 3000, "performance_score": 1.0},
        ]
        lines = allocate_bonus_pool(10000, members)

        assert [line["user_id"] for line in lines] == ["a", "b", "c"]
        total = sum(line["bonus_amount"] for line in lines)
        # Percentages are truncated to one decimal, so each line loses at most salary * 0.1%
        assert total <= 10000
        assert total >= 10000 - sum(m["monthly_salary"] for m in members) * 0.001

    def test_higher_score_gets_larger_share(self):
        lines = allocate_bonus_pool(1000, [
            {"user_id": "a", "monthly_salary": 1000, "performance_score": 9.0},
            {"user_id": "b", "monthly_salary": 1000, "performance_score": 3.0},
        ])
        assert lines[0]["bonus_amount"] > lines[1]["bonus_amount"]

    def test_members_without_salary_are_skipped(self):
        lines = allocate_bonus_pool(1000, [
            {"user_id": "a", "monthly_salary": 0, "performance_score": 9.0},
            {"user_id": "b", "monthly_salary": 2000, "performance_score": 3.0},
        ])
        assert [line["user_id"] for line in lines] == ["b"]
        assert lines[0]["bonus_amount"] == pytest.approx(1000)

    def test_empty_pool(self):
        assert allocate_bonus_pool(1000, []) == []
