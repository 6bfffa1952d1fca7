"""
CRUD operations for evaluation and bonus assignments.

An assignment is the authorisation record that lets an evaluator evaluate an
evaluatee (or an allocator allocate bonus to a recipient). At most one active
assignment may exist per pair; the partial unique index on the table enforces
it and a violation surfaces here as AlreadyExists.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from perfeval.core.errors import AlreadyExists, InternalError, NotFound
from perfeval.core.permissions import CAN_CALCULATE_BONUSES, CAN_MANAGE_EVALUATIONS, require_permission
from perfeval.crud.user import get_active_or_404 as get_active_user
from perfeval.models.assignment import BonusAssignment, EvaluationAssignment
from perfeval.models.user import User
from perfeval.schemas.assignment import (
    AssignmentUpdateRequest,
    BonusAssignmentCreateRequest,
    EvaluationAssignmentCreateRequest,
)

logger = logging.getLogger(__name__)

DUPLICATE_EVALUATION_ASSIGNMENT = "An active assignment already exists for this evaluator and evaluatee"
DUPLICATE_BONUS_ASSIGNMENT = "An active bonus assignment already exists for this allocator and recipient"


def _commit_unique(db: Session, message: str, details: dict) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise AlreadyExists(message, details)


# Evaluation assignments

def find_active_assignment(
    db: Session,
    business_id: str,
    evaluator_id: str,
    evaluatee_id: str,
) -> Optional[EvaluationAssignment]:
    """
    Return the active assignment for (evaluator, evaluatee), if any.

    Expired temporary assignments stay active until deactivated; expiry is
    informational.
    """
    return db.query(EvaluationAssignment).filter(
        EvaluationAssignment.business_id == business_id,
        EvaluationAssignment.evaluator_id == evaluator_id,
        EvaluationAssignment.evaluatee_id == evaluatee_id,
        EvaluationAssignment.active.is_(True),
    ).first()


def can_create_evaluation(db: Session, business_id: str, evaluator_id: str, evaluatee_id: str) -> bool:
    """
    True iff an active assignment exists for the pair. Read-only.

    Raises:
        InternalError: the store could not be queried
    """
    try:
        return find_active_assignment(db, business_id, evaluator_id, evaluatee_id) is not None
    except SQLAlchemyError as e:
        logger.error(f"Assignment lookup failed for {evaluator_id}->{evaluatee_id}: {e}")
        raise InternalError("Failed to validate evaluation assignment")


def create_evaluation_assignment(
    db: Session,
    business_id: str,
    actor: User,
    request: EvaluationAssignmentCreateRequest,
) -> EvaluationAssignment:
    """
    Assign an evaluator to an evaluatee.

    Args:
        db: Database session
        business_id: Tenant
        actor: Calling principal (needs can_manage_evaluations)
        request: Validated assignment data

    Returns:
        Created EvaluationAssignment

    Raises:
        NotFound: evaluator or evaluatee is not an active user of the business
        AlreadyExists: the pair already has an active assignment
    """
    require_permission(actor, CAN_MANAGE_EVALUATIONS, "create evaluation assignments")
    get_active_user(db, business_id, request.evaluator_id, label="Evaluator")
    get_active_user(db, business_id, request.evaluatee_id, label="Evaluatee")

    assignment = EvaluationAssignment(
        business_id=business_id,
        evaluator_id=request.evaluator_id,
        evaluatee_id=request.evaluatee_id,
        assigned_by=actor.id,
        assignment_type=request.assignment_type,
        notes=request.notes or "",
        expires_date=request.expires_date,
        active=True,
    )
    db.add(assignment)
    _commit_unique(
        db,
        DUPLICATE_EVALUATION_ASSIGNMENT,
        {"evaluator_id": request.evaluator_id, "evaluatee_id": request.evaluatee_id},
    )
    db.refresh(assignment)

    logger.info(f"Evaluation assignment {assignment.id}: {assignment.evaluator_id} -> {assignment.evaluatee_id}")
    return assignment


def bulk_create_evaluation_assignments(
    db: Session,
    business_id: str,
    actor: User,
    requests: List[EvaluationAssignmentCreateRequest],
) -> Tuple[List[EvaluationAssignment], int]:
    """
    Create several assignments in one commit, skipping pairs that already
    have an active assignment (and duplicates within the batch).

    Returns:
        (created assignments, number skipped)

    Raises:
        AlreadyExists: every requested pair already exists
    """
    require_permission(actor, CAN_MANAGE_EVALUATIONS, "create evaluation assignments")

    pending = []
    seen = set()
    for request in requests:
        pair = (request.evaluator_id, request.evaluatee_id)
        if pair in seen or find_active_assignment(db, business_id, *pair):
            continue
        seen.add(pair)
        get_active_user(db, business_id, request.evaluator_id, label="Evaluator")
        get_active_user(db, business_id, request.evaluatee_id, label="Evaluatee")
        pending.append(request)

    if not pending:
        raise AlreadyExists("All assignments already exist")

    created = []
    for request in pending:
        assignment = EvaluationAssignment(
            business_id=business_id,
            evaluator_id=request.evaluator_id,
            evaluatee_id=request.evaluatee_id,
            assigned_by=actor.id,
            assignment_type=request.assignment_type,
            notes=request.notes or "",
            expires_date=request.expires_date,
            active=True,
        )
        db.add(assignment)
        created.append(assignment)

    _commit_unique(db, DUPLICATE_EVALUATION_ASSIGNMENT, {"count": len(created)})
    for assignment in created:
        db.refresh(assignment)

    skipped = len(requests) - len(created)
    logger.info(f"Bulk evaluation assignments in {business_id}: {len(created)} created, {skipped} skipped")
    return created, skipped


def get_evaluation_assignment(db: Session, business_id: str, assignment_id: str) -> EvaluationAssignment:
    assignment = db.query(EvaluationAssignment).filter(
        EvaluationAssignment.id == assignment_id,
        EvaluationAssignment.business_id == business_id,
    ).first()
    if not assignment:
        raise NotFound("Assignment", assignment_id)
    return assignment


def list_evaluation_assignments(
    db: Session,
    business_id: str,
    evaluator_id: Optional[str] = None,
    evaluatee_id: Optional[str] = None,
) -> List[EvaluationAssignment]:
    """Active assignments, newest first."""
    query = db.query(EvaluationAssignment).filter(
        EvaluationAssignment.business_id == business_id,
        EvaluationAssignment.active.is_(True),
    )
    if evaluator_id:
        query = query.filter(EvaluationAssignment.evaluator_id == evaluator_id)
    if evaluatee_id:
        query = query.filter(EvaluationAssignment.evaluatee_id == evaluatee_id)
    return query.order_by(EvaluationAssignment.assigned_date.desc()).all()


def _apply_update(assignment, changes: dict) -> None:
    for field in ("assignment_type", "notes", "expires_date", "active"):
        if field in changes and (changes[field] is not None or field == "expires_date"):
            setattr(assignment, field, changes[field])


def update_evaluation_assignment(
    db: Session,
    business_id: str,
    actor: User,
    assignment_id: str,
    request: AssignmentUpdateRequest,
) -> EvaluationAssignment:
    """
    Update notes, type, expiry or the active flag.

    Re-activating fails with AlreadyExists if the pair has since been given a
    new active assignment.
    """
    require_permission(actor, CAN_MANAGE_EVALUATIONS, "update evaluation assignments")
    assignment = get_evaluation_assignment(db, business_id, assignment_id)
    _apply_update(assignment, request.model_dump(exclude_unset=True))
    _commit_unique(
        db,
        DUPLICATE_EVALUATION_ASSIGNMENT,
        {"evaluator_id": assignment.evaluator_id, "evaluatee_id": assignment.evaluatee_id},
    )
    db.refresh(assignment)
    return assignment


def deactivate_evaluation_assignment(
    db: Session,
    business_id: str,
    actor: User,
    assignment_id: str,
) -> EvaluationAssignment:
    """Soft delete; frees the pair for a new assignment."""
    require_permission(actor, CAN_MANAGE_EVALUATIONS, "delete evaluation assignments")
    assignment = get_evaluation_assignment(db, business_id, assignment_id)
    assignment.active = False
    db.commit()
    db.refresh(assignment)

    logger.info(f"Evaluation assignment {assignment_id} deactivated by {actor.id}")
    return assignment


# Bonus assignments

def create_bonus_assignment(
    db: Session,
    business_id: str,
    actor: User,
    request: BonusAssignmentCreateRequest,
) -> BonusAssignment:
    """
    Authorise an allocator to allocate bonus to a recipient.

    Raises:
        NotFound: allocator or recipient is not an active user of the business
        AlreadyExists: the pair already has an active bonus assignment
    """
    require_permission(actor, CAN_CALCULATE_BONUSES, "create bonus assignments")
    get_active_user(db, business_id, request.allocator_id, label="Allocator")
    get_active_user(db, business_id, request.recipient_id, label="Recipient")

    assignment = BonusAssignment(
        business_id=business_id,
        allocator_id=request.allocator_id,
        recipient_id=request.recipient_id,
        assigned_by=actor.id,
        assignment_type=request.assignment_type,
        notes=request.notes or "",
        budget_limit=request.budget_limit,
        expires_date=request.expires_date,
        active=True,
    )
    db.add(assignment)
    _commit_unique(
        db,
        DUPLICATE_BONUS_ASSIGNMENT,
        {"allocator_id": request.allocator_id, "recipient_id": request.recipient_id},
    )
    db.refresh(assignment)

    logger.info(f"Bonus assignment {assignment.id}: {assignment.allocator_id} -> {assignment.recipient_id}")
    return assignment


def get_bonus_assignment(db: Session, business_id: str, assignment_id: str) -> BonusAssignment:
    assignment = db.query(BonusAssignment).filter(
        BonusAssignment.id == assignment_id,
        BonusAssignment.business_id == business_id,
    ).first()
    if not assignment:
        raise NotFound("Bonus assignment", assignment_id)
    return assignment


def list_bonus_assignments(
    db: Session,
    business_id: str,
    allocator_id: Optional[str] = None,
    recipient_id: Optional[str] = None,
) -> List[BonusAssignment]:
    """Active bonus assignments, newest first."""
    query = db.query(BonusAssignment).filter(
        BonusAssignment.business_id == business_id,
        BonusAssignment.active.is_(True),
    )
    if allocator_id:
        query = query.filter(BonusAssignment.allocator_id == allocator_id)
    if recipient_id:
        query = query.filter(BonusAssignment.recipient_id == recipient_id)
    return query.order_by(BonusAssignment.assigned_date.desc()).all()


def update_bonus_assignment(
    db: Session,
    business_id: str,
    actor: User,
    assignment_id: str,
    request: AssignmentUpdateRequest,
) -> BonusAssignment:
    require_permission(actor, CAN_CALCULATE_BONUSES, "update bonus assignments")
    assignment = get_bonus_assignment(db, business_id, assignment_id)
    changes = request.model_dump(exclude_unset=True)
    _apply_update(assignment, changes)
    if "budget_limit" in changes:
        assignment.budget_limit = changes["budget_limit"]
    _commit_unique(
        db,
        DUPLICATE_BONUS_ASSIGNMENT,
        {"allocator_id": assignment.allocator_id, "recipient_id": assignment.recipient_id},
    )
    db.refresh(assignment)
    return assignment


def deactivate_bonus_assignment(db: Session, business_id: str, actor: User, assignment_id: str) -> BonusAssignment:
    require_permission(actor, CAN_CALCULATE_BONUSES, "delete bonus assignments")
    assignment = get_bonus_assignment(db, business_id, assignment_id)
    assignment.active = False
    db.commit()
    db.refresh(assignment)

    logger.info(f"Bonus assignment {assignment_id} deactivated by {actor.id}")
    return assignment
