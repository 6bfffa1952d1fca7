"""
Evaluation and bonus assignment endpoints.

An evaluation can only be created for an (evaluator, evaluatee) pair that has
an active evaluation assignment; these endpoints manage those records.
"""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from perfeval.core.database import get_db
from perfeval.core.deps import TenantContext, get_tenant_context
from perfeval.crud import assignment as assignment_crud
from perfeval.schemas.assignment import (
    AssignmentUpdateRequest,
    BonusAssignmentCreateRequest,
    BonusAssignmentResponse,
    BulkAssignmentResult,
    BulkEvaluationAssignmentRequest,
    CanCreateEvaluationResponse,
    EvaluationAssignmentCreateRequest,
    EvaluationAssignmentResponse,
)
from perfeval.schemas.common import ApiResponse

router = APIRouter(prefix="/businesses/{business_id}", tags=["Assignments"])
logger = logging.getLogger(__name__)


@router.post("/assignments", status_code=201, response_model=ApiResponse[EvaluationAssignmentResponse])
def create_assignment(
    request: EvaluationAssignmentCreateRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """
    Assign an evaluator to an evaluatee (requires can_manage_evaluations).

    Returns 409 already-exists if the pair already has an active assignment.
    """
    assignment = assignment_crud.create_evaluation_assignment(db, ctx.business_id, ctx.user, request)
    return ApiResponse(data=EvaluationAssignmentResponse.model_validate(assignment))


@router.post("/assignments/bulk", status_code=201, response_model=ApiResponse[BulkAssignmentResult])
def bulk_create_assignments(
    request: BulkEvaluationAssignmentRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """Create many assignments at once; pairs that already exist are skipped."""
    created, skipped = assignment_crud.bulk_create_evaluation_assignments(
        db, ctx.business_id, ctx.user, request.assignments
    )
    return ApiResponse(data=BulkAssignmentResult(
        created=[EvaluationAssignmentResponse.model_validate(a) for a in created],
        skipped=skipped,
    ))


@router.get("/assignments", response_model=ApiResponse[List[EvaluationAssignmentResponse]])
def list_assignments(
    evaluator_id: Optional[str] = None,
    evaluatee_id: Optional[str] = None,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """Active assignments, newest first."""
    assignments = assignment_crud.list_evaluation_assignments(
        db, ctx.business_id, evaluator_id=evaluator_id, evaluatee_id=evaluatee_id
    )
    return ApiResponse(data=[EvaluationAssignmentResponse.model_validate(a) for a in assignments])


@router.get("/assignments/check", response_model=ApiResponse[CanCreateEvaluationResponse])
def check_assignment(
    evaluator_id: str,
    evaluatee_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """Whether evaluator_id may currently create an evaluation of evaluatee_id."""
    allowed = assignment_crud.can_create_evaluation(db, ctx.business_id, evaluator_id, evaluatee_id)
    return ApiResponse(data=CanCreateEvaluationResponse(
        evaluator_id=evaluator_id,
        evaluatee_id=evaluatee_id,
        allowed=allowed,
    ))


@router.patch("/assignments/{assignment_id}", response_model=ApiResponse[EvaluationAssignmentResponse])
def update_assignment(
    assignment_id: str,
    request: AssignmentUpdateRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    assignment = assignment_crud.update_evaluation_assignment(db, ctx.business_id, ctx.user, assignment_id, request)
    return ApiResponse(data=EvaluationAssignmentResponse.model_validate(assignment))


@router.delete("/assignments/{assignment_id}", response_model=ApiResponse[EvaluationAssignmentResponse])
def deactivate_assignment(
    assignment_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """Deactivate an assignment. Existing evaluations are not affected."""
    assignment = assignment_crud.deactivate_evaluation_assignment(db, ctx.business_id, ctx.user, assignment_id)
    return ApiResponse(data=EvaluationAssignmentResponse.model_validate(assignment))


@router.post("/bonus-assignments", status_code=201, response_model=ApiResponse[BonusAssignmentResponse])
def create_bonus_assignment(
    request: BonusAssignmentCreateRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """Authorise an allocator to allocate bonus to a recipient (requires can_calculate_bonuses)."""
    assignment = assignment_crud.create_bonus_assignment(db, ctx.business_id, ctx.user, request)
    return ApiResponse(data=BonusAssignmentResponse.model_validate(assignment))


@router.get("/bonus-assignments", response_model=ApiResponse[List[BonusAssignmentResponse]])
def list_bonus_assignments(
    allocator_id: Optional[str] = None,
    recipient_id: Optional[str] = None,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    assignments = assignment_crud.list_bonus_assignments(
        db, ctx.business_id, allocator_id=allocator_id, recipient_id=recipient_id
    )
    return ApiResponse(data=[BonusAssignmentResponse.model_validate(a) for a in assignments])


@router.patch("/bonus-assignments/{assignment_id}", response_model=ApiResponse[BonusAssignmentResponse])
def update_bonus_assignment(
    assignment_id: str,
    request: AssignmentUpdateRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    assignment = assignment_crud.update_bonus_assignment(db, ctx.business_id, ctx.user, assignment_id, request)
    return ApiResponse(data=BonusAssignmentResponse.model_validate(assignment))


@router.delete("/bonus-assignments/{assignment_id}", response_model=ApiResponse[BonusAssignmentResponse])
def deactivate_bonus_assignment(
    assignment_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    assignment = assignment_crud.deactivate_bonus_assignment(db, ctx.business_id, ctx.user, assignment_id)
    return ApiResponse(data=BonusAssignmentResponse.model_validate(assignment))
