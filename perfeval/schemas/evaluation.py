"""
Pydantic schemas for evaluations and their lifecycle writes.

Response maps are free-form here (``{category_id: {question_id: {...}}}``);
they are checked against the evaluation's template snapshot by
perfeval.services.response_shapes before anything is written.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime

from perfeval.models.evaluation import EvaluationStatus

ResponseMap = Dict[str, Dict[str, Dict[str, Any]]]


class EvaluationCreateRequest(BaseModel):
    """Schema for creating an evaluation from a template"""
    template_id: str = Field(..., min_length=1)
    evaluator_id: str = Field(..., min_length=1)
    evaluatee_id: str = Field(..., min_length=1)
    period: Optional[str] = None
    due_date: Optional[datetime] = None


class EvaluationUpdateRequest(BaseModel):
    """Administrative metadata only; responses go through the lifecycle endpoints"""
    period: Optional[str] = None
    due_date: Optional[datetime] = None


class _VersionedWrite(BaseModel):
    # Version the caller last read; a mismatch is rejected as aborted
    expected_version: Optional[int] = None


class SelfAssessmentSaveRequest(_VersionedWrite):
    """Partial self-assessment; omitted fields keep their stored values"""
    free_text_questions: Optional[Dict[str, Optional[str]]] = None
    category_responses: Optional[ResponseMap] = None


class SelfAssessmentSubmitRequest(_VersionedWrite):
    """Final self-assessment; replaces whatever was saved before"""
    free_text_questions: Dict[str, Optional[str]] = Field(default_factory=dict)
    category_responses: ResponseMap = Field(default_factory=dict)


class ManagerReviewSaveRequest(_VersionedWrite):
    category_responses: Optional[ResponseMap] = None
    targets: Optional[ResponseMap] = None
    overall_comments: Optional[str] = None


class ManagerReviewCompleteRequest(ManagerReviewSaveRequest):
    pass


class EvaluationResponse(BaseModel):
    id: str
    business_id: str
    template_id: str
    template_snapshot: Dict[str, Any]
    evaluator_id: str
    evaluatee_id: str
    assignment_id: str
    period: Optional[str] = None
    status: EvaluationStatus
    due_date: Optional[datetime] = None
    self_assessment: Dict[str, Any]
    manager_review: Optional[Dict[str, Any]] = None
    overall_rating: Optional[float] = None
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    created_by: Optional[str] = None
    version: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EvaluationDetailResponse(EvaluationResponse):
    # False when the source template was deleted or deactivated; the snapshot still applies
    template_available: bool = True


class EvaluationForm(BaseModel):
    """Form skeleton for one side of an evaluation, with saved answers overlaid"""
    evaluation_id: str
    kind: Literal["self", "manager"]
    status: EvaluationStatus
    version: int
    scoring_system: str
    categories: List[Dict[str, Any]]
    free_text_questions: List[Dict[str, Any]]
    responses: Dict[str, Any]
    template_available: bool
    rating_summary: Optional[Dict[str, Any]] = None
