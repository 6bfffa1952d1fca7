"""
CRUD operations for evaluation templates.

Deleting a template is a soft delete by default: evaluations keep working from
their own snapshot. A permanent delete is only allowed while no evaluation
references the template.
"""

import logging
from typing import List

from sqlalchemy.orm import Session

from perfeval.core.errors import FailedPrecondition, NotFound
from perfeval.core.permissions import CAN_MANAGE_EVALUATIONS, require_permission
from perfeval.models.evaluation import Evaluation
from perfeval.models.template import EvaluationTemplate
from perfeval.models.user import User
from perfeval.schemas.template import TemplateCreateRequest, TemplateUpdateRequest

logger = logging.getLogger(__name__)


def _dump_list(items) -> list:
    return [item.model_dump(exclude_none=True) for item in items]


def create_template(db: Session, business_id: str, actor: User, request: TemplateCreateRequest) -> EvaluationTemplate:
    """
    Create an evaluation template.

    Args:
        db: Database session
        business_id: Tenant
        actor: Calling principal (needs can_manage_evaluations)
        request: Validated template definition

    Returns:
        Created EvaluationTemplate
    """
    require_permission(actor, CAN_MANAGE_EVALUATIONS, "create templates")

    template = EvaluationTemplate(
        business_id=business_id,
        name=request.name,
        description=request.description,
        scoring_system=request.scoring_system,
        categories=_dump_list(request.categories),
        free_text_questions=_dump_list(request.free_text_questions),
        is_active=True,
        created_by=actor.id,
    )
    db.add(template)
    db.commit()
    db.refresh(template)

    logger.info(f"Template created: {template.name} ({template.id}) with {len(template.categories)} categories")
    return template


def get_by_id(db: Session, business_id: str, template_id: str) -> EvaluationTemplate:
    template = db.query(EvaluationTemplate).filter(
        EvaluationTemplate.id == template_id,
        EvaluationTemplate.business_id == business_id,
    ).first()
    if not template:
        raise NotFound("Template", template_id)
    return template


def list_templates(db: Session, business_id: str, include_inactive: bool = False) -> List[EvaluationTemplate]:
    query = db.query(EvaluationTemplate).filter(EvaluationTemplate.business_id == business_id)
    if not include_inactive:
        query = query.filter(EvaluationTemplate.is_active.is_(True))
    return query.order_by(EvaluationTemplate.created_at.desc()).all()


def update_template(
    db: Session,
    business_id: str,
    actor: User,
    template_id: str,
    request: TemplateUpdateRequest,
) -> EvaluationTemplate:
    """
    Update a template. Existing evaluations are unaffected; they read from
    their snapshot.
    """
    require_permission(actor, CAN_MANAGE_EVALUATIONS, "update templates")
    template = get_by_id(db, business_id, template_id)
    changes = request.model_fields_set

    if request.name is not None:
        template.name = request.name.strip()
    if "description" in changes:
        template.description = request.description
    if request.scoring_system is not None:
        template.scoring_system = request.scoring_system
    if request.categories is not None:
        template.categories = _dump_list(request.categories)
    if request.free_text_questions is not None:
        template.free_text_questions = _dump_list(request.free_text_questions)
    if request.is_active is not None:
        template.is_active = request.is_active

    db.commit()
    db.refresh(template)

    logger.info(f"Template {template_id} updated by {actor.id}: {sorted(changes)}")
    return template


def delete_template(
    db: Session,
    business_id: str,
    actor: User,
    template_id: str,
    permanent: bool = False,
) -> None:
    """
    Delete a template.

    Args:
        permanent: Remove the row instead of deactivating it

    Raises:
        FailedPrecondition: permanent delete of a template evaluations still reference
    """
    require_permission(actor, CAN_MANAGE_EVALUATIONS, "delete templates")
    template = get_by_id(db, business_id, template_id)

    if not permanent:
        template.is_active = False
        db.commit()
        logger.info(f"Template {template_id} deactivated by {actor.id}")
        return

    references = db.query(Evaluation).filter(
        Evaluation.business_id == business_id,
        Evaluation.template_id == template_id,
    ).count()
    if references:
        raise FailedPrecondition(
            "Cannot permanently delete a template that evaluations reference",
            {"evaluations": references},
        )

    db.delete(template)
    db.commit()
    logger.info(f"Template {template_id} permanently deleted by {actor.id}")
