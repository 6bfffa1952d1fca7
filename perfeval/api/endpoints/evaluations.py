"""
Evaluation endpoints.

Lifecycle:
    POST /evaluations                          create (draft)
    POST /evaluations/{id}/publish             draft -> pending
    PUT  /evaluations/{id}/self-assessment     save progress (-> in-progress)
    POST /evaluations/{id}/submit              -> under-review
    PUT  /evaluations/{id}/manager-review      save review progress
    POST /evaluations/{id}/complete            -> completed (read-only afterwards)

Every write accepts an optional expected_version; a stale one is rejected
with 409 aborted.
"""

import logging
from typing import Literal, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from perfeval.core.database import get_db
from perfeval.core.deps import TenantContext, get_tenant_context
from perfeval.crud import evaluation as evaluation_crud
from perfeval.models.evaluation import EvaluationStatus
from perfeval.schemas.common import ApiResponse, MessageResponse, Page
from perfeval.schemas.evaluation import (
    EvaluationCreateRequest,
    EvaluationDetailResponse,
    EvaluationForm,
    EvaluationResponse,
    EvaluationUpdateRequest,
    ManagerReviewCompleteRequest,
    ManagerReviewSaveRequest,
    SelfAssessmentSaveRequest,
    SelfAssessmentSubmitRequest,
)
from perfeval.services import evaluation_lifecycle
from perfeval.services.response_shapes import evaluation_form

router = APIRouter(prefix="/businesses/{business_id}/evaluations", tags=["Evaluations"])
logger = logging.getLogger(__name__)


def _envelope(evaluation) -> ApiResponse[EvaluationResponse]:
    return ApiResponse(data=EvaluationResponse.model_validate(evaluation))


@router.post("", status_code=201, response_model=ApiResponse[EvaluationResponse])
def create_evaluation(
    request: EvaluationCreateRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """
    Create an evaluation from a template.

    Requires an active evaluation assignment for (evaluator, evaluatee);
    otherwise 412 failed-precondition. The template is copied into the
    evaluation so later template edits do not change it.
    """
    evaluation = evaluation_crud.create_evaluation(db, ctx.business_id, ctx.user, request)
    return _envelope(evaluation)


@router.get("", response_model=ApiResponse[Page[EvaluationResponse]])
def list_evaluations(
    status: Optional[EvaluationStatus] = None,
    evaluator_id: Optional[str] = None,
    evaluatee_id: Optional[str] = None,
    template_id: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1),
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """
    List evaluations with filtering and pagination, newest first.

    Callers without can_manage_evaluations only see evaluations where they
    are the evaluator or the evaluatee.
    """
    items, total = evaluation_crud.list_evaluations(
        db,
        ctx.business_id,
        ctx.user,
        status=status,
        evaluator_id=evaluator_id,
        evaluatee_id=evaluatee_id,
        template_id=template_id,
        page=page,
        page_size=page_size,
    )
    size = evaluation_crud.resolve_page_size(page_size)
    return ApiResponse(data=Page[EvaluationResponse](
        items=[EvaluationResponse.model_validate(e) for e in items],
        page=page,
        page_size=size,
        total=total,
        has_more=(page - 1) * size + len(items) < total,
    ))


@router.get("/{evaluation_id}", response_model=ApiResponse[EvaluationDetailResponse])
def get_evaluation(
    evaluation_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """Fetch an evaluation; template_available is false if its template has since been removed."""
    evaluation = evaluation_crud.get_visible(db, ctx.business_id, ctx.user, evaluation_id)
    detail = EvaluationDetailResponse.model_validate(evaluation)
    detail.template_available = evaluation_crud.live_template_available(db, evaluation)
    return ApiResponse(data=detail)


@router.get("/{evaluation_id}/form", response_model=ApiResponse[EvaluationForm])
def get_evaluation_form(
    evaluation_id: str,
    kind: Literal["self", "manager"] = "self",
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """
    Form skeleton for the self-assessment (kind=self) or the manager review
    (kind=manager), with saved answers filled in.
    """
    evaluation = evaluation_crud.get_visible(db, ctx.business_id, ctx.user, evaluation_id)
    form = evaluation_form(evaluation, kind, evaluation_crud.live_template_available(db, evaluation))
    return ApiResponse(data=EvaluationForm(**form))


@router.patch("/{evaluation_id}", response_model=ApiResponse[EvaluationResponse])
def update_evaluation(
    evaluation_id: str,
    request: EvaluationUpdateRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """Change period or due date (requires can_manage_evaluations)."""
    evaluation = evaluation_crud.update_evaluation(db, ctx.business_id, ctx.user, evaluation_id, request)
    return _envelope(evaluation)


@router.delete("/{evaluation_id}", response_model=ApiResponse[MessageResponse])
def delete_evaluation(
    evaluation_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    evaluation_crud.delete_evaluation(db, ctx.business_id, ctx.user, evaluation_id)
    return ApiResponse(data=MessageResponse(message="Evaluation deleted"))


@router.post("/{evaluation_id}/publish", response_model=ApiResponse[EvaluationResponse])
def publish_evaluation(
    evaluation_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    evaluation = evaluation_crud.get_visible(db, ctx.business_id, ctx.user, evaluation_id)
    return _envelope(evaluation_lifecycle.publish(db, evaluation, ctx.user))


@router.put("/{evaluation_id}/self-assessment", response_model=ApiResponse[EvaluationResponse])
def save_self_assessment(
    evaluation_id: str,
    request: SelfAssessmentSaveRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """Save self-assessment progress; only the fields sent are overwritten."""
    evaluation = evaluation_crud.get_visible(db, ctx.business_id, ctx.user, evaluation_id)
    return _envelope(evaluation_lifecycle.save_progress(db, evaluation, ctx.user, request))


@router.post("/{evaluation_id}/submit", response_model=ApiResponse[EvaluationResponse])
def submit_self_assessment(
    evaluation_id: str,
    request: SelfAssessmentSubmitRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """Submit the final self-assessment for manager review."""
    evaluation = evaluation_crud.get_visible(db, ctx.business_id, ctx.user, evaluation_id)
    return _envelope(evaluation_lifecycle.submit(db, evaluation, ctx.user, request))


@router.put("/{evaluation_id}/manager-review", response_model=ApiResponse[EvaluationResponse])
def save_manager_review(
    evaluation_id: str,
    request: ManagerReviewSaveRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """Save manager review progress and recompute the provisional rating."""
    evaluation = evaluation_crud.get_visible(db, ctx.business_id, ctx.user, evaluation_id)
    return _envelope(evaluation_lifecycle.save_review(db, evaluation, ctx.user, request))


@router.post("/{evaluation_id}/complete", response_model=ApiResponse[EvaluationResponse])
def complete_manager_review(
    evaluation_id: str,
    request: ManagerReviewCompleteRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
):
    """Finish the review. The evaluation is read-only afterwards."""
    evaluation = evaluation_crud.get_visible(db, ctx.business_id, ctx.user, evaluation_id)
    return _envelope(evaluation_lifecycle.complete_review(db, evaluation, ctx.user, request))
