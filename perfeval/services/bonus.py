"""
Performance-weighted bonus allocation.

Each member's weight is their latest overall rating normalised to a 10 point
scale (1 when they have none). The budget is split in proportion to weight and
expressed as a percentage of monthly salary, truncated to one decimal.
"""

import math
from typing import Any, Dict, List, Optional

from perfeval.services.scoring import scale_bounds

DEFAULT_PERFORMANCE_WEIGHT = 1.0


def performance_score(overall_rating: Optional[float], scoring_system: Optional[str] = None) -> float:
    """Normalise an overall rating to 0-10; a missing rating scores 1."""
    if not overall_rating:
        return DEFAULT_PERFORMANCE_WEIGHT
    _, high = scale_bounds(scoring_system)
    return (overall_rating / high) * 10


def floor1(value: float) -> float:
    """Truncate to one decimal so a proposal never exceeds its budget."""
    return math.floor(value * 10 + 1e-9) / 10


def bonus_amount(monthly_salary: float, bonus_percentage: float) -> float:
    return monthly_salary * bonus_percentage / 100


def allocate_bonus_pool(total_budget: float, members: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Split a budget across members.

    Args:
        total_budget: Amount to distribute
        members: ``[{user_id, monthly_salary, performance_score}]``

    Returns:
        One line per member with a positive salary:
        ``{user_id, monthly_salary, performance_score, bonus_percentage, bonus_amount}``
    """
    eligible = [m for m in members if (m.get("monthly_salary") or 0) > 0]
    weights = [m.get("performance_score") or DEFAULT_PERFORMANCE_WEIGHT for m in eligible]
    total_weight = sum(weights)
    if not eligible or total_weight <= 0:
        return []

    lines = []
    for member, weight in zip(eligible, weights):
        salary = float(member["monthly_salary"])
        share = weight / total_weight * total_budget
        percentage = max(0.0, floor1(share * 100 / salary))
        lines.append({
            "user_id": member["user_id"],
            "monthly_salary": salary,
            "performance_score": weight,
            "bonus_percentage": percentage,
            "bonus_amount": bonus_amount(salary, percentage),
        })
    return lines
