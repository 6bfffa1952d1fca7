"""
Overall rating aggregation for manager reviews.

The overall rating is the mean of every positive manager_rating in the review,
rounded to the nearest half point (a half always rounds up, never to even).
Category and question weights are carried on the template but are not applied;
rating_summary() reports them so callers can see that.
"""

import math
from numbers import Real
from typing import Any, Dict, Iterable, List, Optional, Tuple

# scoring_system -> (min, max)
SCALE_BOUNDS: Dict[str, Tuple[float, float]] = {
    "1-5": (1, 5),
    "1-10": (1, 10),
    "percentage": (1, 100),
    "letter": (1, 5),
}

DEFAULT_RATING = 1.0


def scale_bounds(scoring_system: Optional[str]) -> Tuple[float, float]:
    """Bounds for a scoring system; unknown systems fall back to 1-5."""
    return SCALE_BOUNDS.get(scoring_system or "1-5", SCALE_BOUNDS["1-5"])


def round_half_up(value: float) -> float:
    """Round to the nearest integer with .5 going toward +infinity."""
    return float(math.floor(value + 0.5))


def _usable(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    if math.isnan(value):
        return False
    return value > 0


def collect_manager_ratings(
    categories: Iterable[Dict[str, Any]],
    category_responses: Optional[Dict[str, Any]],
) -> List[float]:
    """
    Flatten the manager ratings of every question in template order.

    Unanswered, non-numeric, NaN and non-positive ratings are dropped.
    """
    category_responses = category_responses or {}
    ratings: List[float] = []
    for category in categories or []:
        responses = category_responses.get(category.get("id")) or {}
        for question in category.get("questions") or []:
            response = responses.get(question.get("id")) or {}
            value = response.get("manager_rating")
            if _usable(value):
                ratings.append(float(value))
    return ratings


def compute_overall_rating(
    categories: Iterable[Dict[str, Any]],
    category_responses: Optional[Dict[str, Any]],
    scoring_system: Optional[str] = None,
) -> float:
    """
    Compute the overall rating of a manager review.

    Args:
        categories: Template categories (each with an ``id`` and ``questions``)
        category_responses: ``{category_id: {question_id: {manager_rating, ...}}}``
        scoring_system: Optional scale name; when given the result is clamped

    Returns:
        Mean rating rounded to the nearest 0.5, or 1 when nothing was rated
    """
    ratings = collect_manager_ratings(categories, category_responses)
    if not ratings:
        return DEFAULT_RATING

    mean = sum(ratings) / len(ratings)
    rating = round_half_up(mean * 2) / 2

    if scoring_system is not None:
        low, high = scale_bounds(scoring_system)
        rating = min(max(rating, low), high)
    return rating


def _weights_declared(categories: Iterable[Dict[str, Any]]) -> bool:
    for category in categories or []:
        if category.get("weight") not in (None, 0):
            return True
        for question in category.get("questions") or []:
            if question.get("weight") not in (None, 0):
                return True
    return False


def rating_summary(
    categories: Iterable[Dict[str, Any]],
    category_responses: Optional[Dict[str, Any]],
    scoring_system: Optional[str] = None,
) -> Dict[str, Any]:
    """Overall rating plus the inputs it was derived from."""
    categories = list(categories or [])
    ratings = collect_manager_ratings(categories, category_responses)
    return {
        "overall_rating": compute_overall_rating(categories, category_responses, scoring_system),
        "ratings_counted": len(ratings),
        "scale": list(scale_bounds(scoring_system)),
        "weights_declared": _weights_declared(categories),
        "weights_applied": False,
    }
