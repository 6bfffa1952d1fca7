from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from perfeval.models.assignment import AssignmentType


class EvaluationAssignmentCreateRequest(BaseModel):
    """Authorise evaluator_id to evaluate evaluatee_id"""
    evaluator_id: str = Field(..., min_length=1)
    evaluatee_id: str = Field(..., min_length=1)
    assignment_type: AssignmentType = AssignmentType.PERMANENT
    notes: str = ""
    expires_date: Optional[datetime] = None


class BulkEvaluationAssignmentRequest(BaseModel):
    assignments: List[EvaluationAssignmentCreateRequest] = Field(..., min_length=1)


class BonusAssignmentCreateRequest(BaseModel):
    """Authorise allocator_id to allocate bonus to recipient_id"""
    allocator_id: str = Field(..., min_length=1)
    recipient_id: str = Field(..., min_length=1)
    assignment_type: AssignmentType = AssignmentType.PERMANENT
    notes: str = ""
    budget_limit: Optional[float] = Field(None, ge=0)
    expires_date: Optional[datetime] = None


class AssignmentUpdateRequest(BaseModel):
    assignment_type: Optional[AssignmentType] = None
    notes: Optional[str] = None
    expires_date: Optional[datetime] = None
    budget_limit: Optional[float] = Field(None, ge=0)
    active: Optional[bool] = None


class EvaluationAssignmentResponse(BaseModel):
    id: str
    business_id: str
    evaluator_id: str
    evaluatee_id: str
    assigned_by: Optional[str] = None
    assigned_date: datetime
    assignment_type: AssignmentType
    notes: str
    expires_date: Optional[datetime] = None
    active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BonusAssignmentResponse(BaseModel):
    id: str
    business_id: str
    allocator_id: str
    recipient_id: str
    assigned_by: Optional[str] = None
    assigned_date: datetime
    assignment_type: AssignmentType
    notes: str
    budget_limit: Optional[float] = None
    expires_date: Optional[datetime] = None
    active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BulkAssignmentResult(BaseModel):
    created: List[EvaluationAssignmentResponse]
    skipped: int


class CanCreateEvaluationResponse(BaseModel):
    evaluator_id: str
    evaluatee_id: str
    allowed: bool
