"""
Evaluation lifecycle service.

Moves an evaluation through

    draft -> pending -> in-progress -> under-review -> completed

with:
  - Transition validation (EVALUATION_TRANSITIONS)
  - Actor checks (evaluatee writes the self-assessment, evaluator the review)
  - Response validation against the evaluation's template snapshot
  - Optimistic concurrency: callers may pass the version they last read, and
    the row's version_id_col rejects a concurrent write at flush time
  - Completed evaluations are read-only

Usage:
    from perfeval.services.evaluation_lifecycle import save_progress

    evaluation = save_progress(db, evaluation, actor, request)
"""

import copy
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from perfeval.core.errors import Aborted, FailedPrecondition, PermissionDenied
from perfeval.core.permissions import CAN_MANAGE_EVALUATIONS, has_permission
from perfeval.models.evaluation import Evaluation, EvaluationStatus
from perfeval.models.mixins import utcnow
from perfeval.models.user import User
from perfeval.schemas.evaluation import (
    ManagerReviewCompleteRequest,
    ManagerReviewSaveRequest,
    SelfAssessmentSaveRequest,
    SelfAssessmentSubmitRequest,
)
from perfeval.services.response_shapes import (
    build_manager_review,
    validate_category_responses,
    validate_free_text_answers,
)
from perfeval.services.scoring import compute_overall_rating

logger = logging.getLogger(__name__)

_WRITABLE_SELF = {EvaluationStatus.DRAFT, EvaluationStatus.PENDING, EvaluationStatus.IN_PROGRESS}

EVALUATION_TRANSITIONS: Dict[str, Dict[str, Any]] = {
    "publish": {"from": {EvaluationStatus.DRAFT}, "to": EvaluationStatus.PENDING},
    "save_progress": {"from": _WRITABLE_SELF, "to": EvaluationStatus.IN_PROGRESS},
    "submit": {"from": _WRITABLE_SELF, "to": EvaluationStatus.UNDER_REVIEW},
    "save_review": {"from": {EvaluationStatus.UNDER_REVIEW}, "to": EvaluationStatus.UNDER_REVIEW},
    "complete_review": {"from": {EvaluationStatus.UNDER_REVIEW}, "to": EvaluationStatus.COMPLETED},
}

COMPLETED_MESSAGE = "Completed evaluations cannot be modified"


class TransitionError(FailedPrecondition):
    """Raised when an action is not allowed from the evaluation's current status."""

    def __init__(self, evaluation_id: str, action: str, current: EvaluationStatus, reason: Optional[str] = None):
        msg = reason or f"Cannot '{action}' evaluation {evaluation_id} (status={current.value})"
        super().__init__(msg, {"action": action, "status": current.value})
        self.action = action
        self.current_status = current


def validate_transition(evaluation: Evaluation, action: str) -> dict:
    """
    Validate whether an action is valid for the current state.

    Returns:
        {"valid": bool, "from": str, "to": str|None, "reason": str|None}
    """
    current = evaluation.status
    rule = EVALUATION_TRANSITIONS.get(action)
    if not rule:
        return {"valid": False, "from": current.value, "to": None, "reason": f"Unknown action: {action}"}
    if current == EvaluationStatus.COMPLETED:
        return {"valid": False, "from": current.value, "to": rule["to"].value, "reason": COMPLETED_MESSAGE}
    if current not in rule["from"]:
        return {
            "valid": False,
            "from": current.value,
            "to": rule["to"].value,
            "reason": f"Cannot '{action}' from status '{current.value}'",
        }
    return {"valid": True, "from": current.value, "to": rule["to"].value, "reason": None}


def _ensure_transition(evaluation: Evaluation, action: str) -> EvaluationStatus:
    check = validate_transition(evaluation, action)
    if not check["valid"]:
        raise TransitionError(evaluation.id, action, evaluation.status, check["reason"])
    return EVALUATION_TRANSITIONS[action]["to"]


def _ensure_version(evaluation: Evaluation, expected_version: Optional[int]) -> None:
    if expected_version is not None and expected_version != evaluation.version:
        raise Aborted(
            "Evaluation was changed by someone else; reload it and try again",
            {"expected_version": expected_version, "current_version": evaluation.version},
        )


def _ensure_actor(actor: User, user_id: str, role: str) -> None:
    if actor.id != user_id:
        raise PermissionDenied(f"Only the {role} can perform this action", {"required_actor": role})


def _commit(db: Session, evaluation: Evaluation) -> Evaluation:
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        raise Aborted("Evaluation was changed by someone else; reload it and try again")
    db.refresh(evaluation)
    return evaluation


def _merge_responses(stored: Optional[Dict[str, Any]], incoming: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Overwrite per field: {category: {question: {field: value}}}."""
    merged = copy.deepcopy(stored) if isinstance(stored, dict) else {}
    for cat_id, questions in (incoming or {}).items():
        target = merged.setdefault(cat_id, {})
        for q_id, fields in (questions or {}).items():
            entry = target.get(q_id)
            entry = dict(entry) if isinstance(entry, dict) else {}
            entry.update(fields or {})
            target[q_id] = entry
    return merged


def _snapshot_parts(evaluation: Evaluation):
    snapshot = evaluation.template_snapshot or {}
    return (
        snapshot.get("categories") or [],
        snapshot.get("free_text_questions") or [],
        snapshot.get("scoring_system"),
    )


def _validate_self(evaluation: Evaluation, free_text: Optional[dict], category_responses: Optional[dict]) -> None:
    categories, free_text_questions, scoring_system = _snapshot_parts(evaluation)
    validate_free_text_answers(free_text_questions, free_text)
    validate_category_responses(categories, category_responses, scoring_system)


def publish(db: Session, evaluation: Evaluation, actor: User) -> Evaluation:
    """Make a draft visible to the evaluatee (draft -> pending)."""
    if actor.id != evaluation.evaluator_id and not has_permission(actor, CAN_MANAGE_EVALUATIONS):
        raise PermissionDenied("Only the evaluator or an evaluation manager can publish this evaluation")
    evaluation.status = _ensure_transition(evaluation, "publish")
    _commit(db, evaluation)
    logger.info(f"Evaluation {evaluation.id} published by {actor.id}")
    return evaluation


def save_progress(db: Session, evaluation: Evaluation, actor: User, request: SelfAssessmentSaveRequest) -> Evaluation:
    """
    Save a partial self-assessment.

    Only the fields sent are overwritten; everything else keeps its stored
    value, so two tabs saving different questions do not erase each other.

    Raises:
        FailedPrecondition: evaluation is completed or already submitted
        PermissionDenied: actor is not the evaluatee
        Aborted: expected_version is stale
        ValidationFailed: response does not fit the template
    """
    new_status = _ensure_transition(evaluation, "save_progress")
    _ensure_actor(actor, evaluation.evaluatee_id, "evaluatee")
    _ensure_version(evaluation, request.expected_version)
    _validate_self(evaluation, request.free_text_questions, request.category_responses)

    assessment = copy.deepcopy(evaluation.self_assessment or {})
    if request.free_text_questions is not None:
        answers = dict(assessment.get("free_text_questions") or {})
        answers.update({str(k): v for k, v in request.free_text_questions.items()})
        assessment["free_text_questions"] = answers
    if request.category_responses is not None:
        assessment["category_responses"] = _merge_responses(
            assessment.get("category_responses"), request.category_responses
        )
    assessment["saved_by"] = actor.id
    assessment["last_saved_at"] = utcnow().isoformat()

    evaluation.self_assessment = assessment
    evaluation.status = new_status
    _commit(db, evaluation)

    logger.info(f"Self-assessment progress saved on {evaluation.id} (version {evaluation.version})")
    return evaluation


def submit(db: Session, evaluation: Evaluation, actor: User, request: SelfAssessmentSubmitRequest) -> Evaluation:
    """
    Submit the final self-assessment for review.

    The stored self-assessment is replaced by the submitted one.
    """
    new_status = _ensure_transition(evaluation, "submit")
    _ensure_actor(actor, evaluation.evaluatee_id, "evaluatee")
    _ensure_version(evaluation, request.expected_version)
    _validate_self(evaluation, request.free_text_questions, request.category_responses)

    now = utcnow()
    evaluation.self_assessment = {
        "free_text_questions": {str(k): v for k, v in request.free_text_questions.items()},
        "category_responses": copy.deepcopy(request.category_responses),
        "saved_by": actor.id,
        "last_saved_at": now.isoformat(),
        "submitted_by": actor.id,
        "submitted_at": now.isoformat(),
    }
    evaluation.submitted_at = now
    evaluation.status = new_status
    _commit(db, evaluation)

    logger.info(f"Self-assessment submitted on {evaluation.id}")
    return evaluation


def _merged_review(evaluation: Evaluation, actor: User, request: ManagerReviewSaveRequest) -> Dict[str, Any]:
    categories, _, scoring_system = _snapshot_parts(evaluation)
    validate_category_responses(categories, request.category_responses, scoring_system)
    validate_category_responses(categories, request.targets, scoring_system)

    review = copy.deepcopy(evaluation.manager_review or {})
    if request.category_responses is not None:
        review["category_responses"] = _merge_responses(review.get("category_responses"), request.category_responses)
    if request.targets is not None:
        review["targets"] = _merge_responses(review.get("targets"), request.targets)
    if request.overall_comments is not None:
        review["overall_comments"] = request.overall_comments

    # Unrated questions count at their manager form default
    shaped = build_manager_review(evaluation.template_snapshot or {}, review)
    review["overall_rating"] = compute_overall_rating(categories, shaped["category_responses"], scoring_system)
    review["saved_by"] = actor.id
    review["last_saved_at"] = utcnow().isoformat()
    return review


def save_review(db: Session, evaluation: Evaluation, actor: User, request: ManagerReviewSaveRequest) -> Evaluation:
    """
    Save manager review progress and recompute the provisional overall rating.

    The evaluation stays under review; the top-level overall_rating is only
    set on completion.
    """
    new_status = _ensure_transition(evaluation, "save_review")
    _ensure_actor(actor, evaluation.evaluator_id, "evaluator")
    _ensure_version(evaluation, request.expected_version)

    review = _merged_review(evaluation, actor, request)
    review["in_progress"] = True

    evaluation.manager_review = review
    evaluation.status = new_status
    _commit(db, evaluation)

    logger.info(f"Manager review saved on {evaluation.id}: provisional rating {review['overall_rating']}")
    return evaluation


def complete_review(
    db: Session,
    evaluation: Evaluation,
    actor: User,
    request: ManagerReviewCompleteRequest,
) -> Evaluation:
    """
    Finalise the manager review and complete the evaluation.

    Writes the computed overall rating into the review and onto the
    evaluation itself. After this the evaluation is read-only.
    """
    new_status = _ensure_transition(evaluation, "complete_review")
    _ensure_actor(actor, evaluation.evaluator_id, "evaluator")
    _ensure_version(evaluation, request.expected_version)

    now = utcnow()
    review = _merged_review(evaluation, actor, request)
    review["reviewed_by"] = actor.id
    review["reviewed_at"] = now.isoformat()
    review["in_progress"] = False

    evaluation.manager_review = review
    evaluation.overall_rating = review["overall_rating"]
    evaluation.reviewed_at = now
    evaluation.status = new_status
    _commit(db, evaluation)

    logger.info(f"Evaluation {evaluation.id} completed with overall rating {evaluation.overall_rating}")
    return evaluation
