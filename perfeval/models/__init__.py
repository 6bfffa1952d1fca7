"""
Database models package.
"""

from perfeval.models.business import Business
from perfeval.models.user import User, UserRole
from perfeval.models.department import Department
from perfeval.models.template import EvaluationTemplate, ScoringSystem
from perfeval.models.assignment import AssignmentType, BonusAssignment, EvaluationAssignment
from perfeval.models.evaluation import Evaluation, EvaluationStatus
from perfeval.models.bonus_allocation import BonusAllocation

__all__ = [
    "Business",
    "User",
    "UserRole",
    "Department",
    "EvaluationTemplate",
    "ScoringSystem",
    "AssignmentType",
    "EvaluationAssignment",
    "BonusAssignment",
    "Evaluation",
    "EvaluationStatus",
    "BonusAllocation",
]
