"""
CRUD operations for evaluations.

Creation is gated on an active evaluation assignment and freezes the template
into the evaluation. Writes to the responses themselves go through
perfeval.services.evaluation_lifecycle; this module only handles creation,
reads, administrative metadata and deletion.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from perfeval.core.config import settings
from perfeval.core.errors import FailedPrecondition, NotFound, PermissionDenied
from perfeval.core.permissions import CAN_MANAGE_EVALUATIONS, has_permission, require_permission
from perfeval.crud import template as template_crud
from perfeval.crud.assignment import find_active_assignment
from perfeval.crud.user import get_active_or_404 as get_active_user
from perfeval.models.evaluation import Evaluation, EvaluationStatus
from perfeval.models.template import EvaluationTemplate
from perfeval.models.user import User
from perfeval.schemas.evaluation import EvaluationCreateRequest, EvaluationUpdateRequest

logger = logging.getLogger(__name__)

NO_ASSIGNMENT_MESSAGE = (
    "No valid assignment found for this evaluation. "
    "The evaluator must be assigned to the evaluatee before an evaluation can be created."
)


def create_evaluation(db: Session, business_id: str, actor: User, request: EvaluationCreateRequest) -> Evaluation:
    """
    Create an evaluation in draft status.

    Args:
        db: Database session
        business_id: Tenant
        actor: Calling principal; must be the evaluator or hold can_manage_evaluations
        request: Template, evaluator, evaluatee and optional period / due date

    Returns:
        Created Evaluation with the template snapshot and assignment bound

    Raises:
        PermissionDenied: actor is neither the evaluator nor an evaluation manager
        NotFound: unknown evaluator, evaluatee or template
        FailedPrecondition: no active assignment for the pair, or the template is inactive
    """
    if actor.id != request.evaluator_id and not has_permission(actor, CAN_MANAGE_EVALUATIONS):
        raise PermissionDenied(
            "Insufficient permissions to create evaluations for another evaluator",
            {"required_permission": CAN_MANAGE_EVALUATIONS},
        )

    get_active_user(db, business_id, request.evaluator_id, label="Evaluator")
    get_active_user(db, business_id, request.evaluatee_id, label="Evaluatee")

    assignment = find_active_assignment(db, business_id, request.evaluator_id, request.evaluatee_id)
    if assignment is None:
        raise FailedPrecondition(
            NO_ASSIGNMENT_MESSAGE,
            {"evaluator_id": request.evaluator_id, "evaluatee_id": request.evaluatee_id},
        )

    template = template_crud.get_by_id(db, business_id, request.template_id)
    if not template.is_active:
        raise FailedPrecondition("Template is not active", {"template_id": template.id})

    evaluation = Evaluation(
        business_id=business_id,
        template_id=template.id,
        template_snapshot=template.snapshot(),
        evaluator_id=request.evaluator_id,
        evaluatee_id=request.evaluatee_id,
        assignment_id=assignment.id,
        period=request.period,
        due_date=request.due_date,
        status=EvaluationStatus.DRAFT,
        self_assessment={},
        manager_review=None,
        created_by=actor.id,
    )
    db.add(evaluation)
    db.commit()
    db.refresh(evaluation)

    logger.info(
        f"Evaluation {evaluation.id} created: {evaluation.evaluator_id} -> {evaluation.evaluatee_id} "
        f"(template {template.id}, assignment {assignment.id})"
    )
    return evaluation


def get_by_id(db: Session, business_id: str, evaluation_id: str) -> Evaluation:
    evaluation = db.query(Evaluation).filter(
        Evaluation.id == evaluation_id,
        Evaluation.business_id == business_id,
    ).first()
    if not evaluation:
        raise NotFound("Evaluation", evaluation_id)
    return evaluation


def can_view(actor: User, evaluation: Evaluation) -> bool:
    if has_permission(actor, CAN_MANAGE_EVALUATIONS):
        return True
    return actor.id in (evaluation.evaluator_id, evaluation.evaluatee_id)


def get_visible(db: Session, business_id: str, actor: User, evaluation_id: str) -> Evaluation:
    """
    Fetch an evaluation the actor is allowed to see.

    Raises:
        NotFound: no such evaluation in the business
        PermissionDenied: actor is not a participant and cannot manage evaluations
    """
    evaluation = get_by_id(db, business_id, evaluation_id)
    if not can_view(actor, evaluation):
        raise PermissionDenied("You do not have access to this evaluation")
    return evaluation


def live_template_available(db: Session, evaluation: Evaluation) -> bool:
    """False when the source template was deleted or deactivated."""
    template = db.query(EvaluationTemplate).filter(
        EvaluationTemplate.id == evaluation.template_id,
        EvaluationTemplate.business_id == evaluation.business_id,
    ).first()
    return bool(template and template.is_active)


def resolve_page_size(page_size: Optional[int]) -> int:
    return min(page_size or settings.DEFAULT_EVALUATIONS_PAGE_SIZE, settings.MAX_PAGE_SIZE)


def list_evaluations(
    db: Session,
    business_id: str,
    actor: User,
    status: Optional[EvaluationStatus] = None,
    evaluator_id: Optional[str] = None,
    evaluatee_id: Optional[str] = None,
    template_id: Optional[str] = None,
    page: int = 1,
    page_size: Optional[int] = None,
) -> Tuple[List[Evaluation], int]:
    """
    Retrieve evaluations with filters and pagination, newest first.

    Principals without can_manage_evaluations only see evaluations they take
    part in.

    Returns:
        (evaluations on the requested page, total matching)
    """
    page = max(page, 1)
    page_size = resolve_page_size(page_size)

    query = db.query(Evaluation).filter(Evaluation.business_id == business_id)
    if not has_permission(actor, CAN_MANAGE_EVALUATIONS):
        query = query.filter(or_(Evaluation.evaluator_id == actor.id, Evaluation.evaluatee_id == actor.id))

    if status:
        query = query.filter(Evaluation.status == status)
    if evaluator_id:
        query = query.filter(Evaluation.evaluator_id == evaluator_id)
    if evaluatee_id:
        query = query.filter(Evaluation.evaluatee_id == evaluatee_id)
    if template_id:
        query = query.filter(Evaluation.template_id == template_id)

    total = query.count()
    items = (
        query.order_by(Evaluation.created_at.desc(), Evaluation.id)
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return items, total


def update_evaluation(
    db: Session,
    business_id: str,
    actor: User,
    evaluation_id: str,
    request: EvaluationUpdateRequest,
) -> Evaluation:
    """
    Change administrative metadata (period, due date).

    Raises:
        FailedPrecondition: the evaluation is completed
    """
    require_permission(actor, CAN_MANAGE_EVALUATIONS, "update evaluations")
    evaluation = get_by_id(db, business_id, evaluation_id)
    if evaluation.is_completed:
        raise FailedPrecondition("Completed evaluations cannot be modified", {"status": evaluation.status.value})

    changes = request.model_dump(exclude_unset=True)
    for field in ("period", "due_date"):
        if field in changes:
            setattr(evaluation, field, changes[field])

    db.commit()
    db.refresh(evaluation)
    return evaluation


def delete_evaluation(db: Session, business_id: str, actor: User, evaluation_id: str) -> None:
    require_permission(actor, CAN_MANAGE_EVALUATIONS, "delete evaluations")
    evaluation = get_by_id(db, business_id, evaluation_id)
    db.delete(evaluation)
    db.commit()
    logger.info(f"Evaluation {evaluation_id} deleted by {actor.id}")


def latest_completed_for(db: Session, business_id: str, evaluatee_id: str) -> Optional[Evaluation]:
    """Most recently reviewed completed evaluation of a user."""
    return (
        db.query(Evaluation)
        .filter(
            Evaluation.business_id == business_id,
            Evaluation.evaluatee_id == evaluatee_id,
            Evaluation.status == EvaluationStatus.COMPLETED,
        )
        .order_by(Evaluation.reviewed_at.desc())
        .first()
    )
