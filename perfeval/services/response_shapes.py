"""
Template-to-response shape mapping.

Builds the response skeleton an evaluation form is rendered from: one entry per
template question, filled with defaults, with any previously saved answers laid
over it. Answers for questions that are no longer in the template are dropped,
and applying the mapper to its own output returns the same structure.

Also validates incoming response maps against the template (scale bounds,
unknown ids, choice options) before they are written.
"""

import copy
import math
from numbers import Real
from typing import Any, Dict, List, Optional, Sequence

from pydantic import TypeAdapter, ValidationError

from perfeval.core.errors import ValidationFailed
from perfeval.schemas.template import Category
from perfeval.services.scoring import rating_summary, scale_bounds

SELF_DEFAULTS = {"self_rating": 1, "comment": ""}
MANAGER_DEFAULTS = {"manager_rating": 1, "manager_comment": ""}
TARGET_DEFAULTS = {"target": 1, "target_comment": ""}

RATING_FIELDS = ("self_rating", "manager_rating", "target")
COMMENT_FIELDS = ("comment", "manager_comment", "target_comment")

_categories_adapter = TypeAdapter(List[Category])


def _template_parts(template: Dict[str, Any]):
    return template.get("categories") or [], template.get("free_text_questions") or []


def _overlay_questions(
    categories: Sequence[Dict[str, Any]],
    existing: Optional[Dict[str, Any]],
    defaults: Dict[str, Any],
) -> Dict[str, Dict[str, Dict[str, Any]]]:
    existing = existing if isinstance(existing, dict) else {}
    shaped: Dict[str, Dict[str, Dict[str, Any]]] = {}
    for category in categories:
        cat_id = category.get("id")
        saved_category = existing.get(cat_id)
        if not isinstance(saved_category, dict):
            saved_category = {}
        shaped[cat_id] = {}
        for question in category.get("questions") or []:
            q_id = question.get("id")
            entry = dict(defaults)
            saved = saved_category.get(q_id)
            if isinstance(saved, dict):
                entry.update(copy.deepcopy(saved))
            shaped[cat_id][q_id] = entry
    return shaped


def build_self_assessment(template: Dict[str, Any], existing: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Self-assessment skeleton for a template.

    Args:
        template: Template definition or evaluation template_snapshot
        existing: Previously saved self_assessment, if any

    Returns:
        ``{free_text_questions: {index: text}, category_responses: {...}}``
    """
    categories, free_text = _template_parts(template)
    existing = existing or {}

    saved_text = existing.get("free_text_questions")
    if not isinstance(saved_text, dict):
        saved_text = {}
    answers = {}
    for index in range(len(free_text)):
        key = str(index)
        value = saved_text.get(key, saved_text.get(index, ""))
        answers[key] = value if isinstance(value, str) else ""

    return {
        "free_text_questions": answers,
        "category_responses": _overlay_questions(categories, existing.get("category_responses"), SELF_DEFAULTS),
    }


def build_manager_review(template: Dict[str, Any], existing: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Manager review skeleton (ratings, targets and overall comments) for a template."""
    categories, _ = _template_parts(template)
    existing = existing or {}
    overall_comments = existing.get("overall_comments")

    return {
        "category_responses": _overlay_questions(categories, existing.get("category_responses"), MANAGER_DEFAULTS),
        "targets": _overlay_questions(categories, existing.get("targets"), TARGET_DEFAULTS),
        "overall_comments": overall_comments if isinstance(overall_comments, str) else "",
    }


def parse_categories(raw_categories: Sequence[Dict[str, Any]]) -> List[Category]:
    try:
        return _categories_adapter.validate_python(list(raw_categories or []))
    except ValidationError as e:
        raise ValidationFailed("Template definition is invalid", {"errors": e.errors(include_url=False, include_context=False)})


def _check_rating(value: Any, low: float, high: float, where: str, field: str) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, Real) or math.isnan(value):
        raise ValidationFailed(f"{field} must be a number", {"field": where})
    if value < low or value > high:
        raise ValidationFailed(
            f"{field} must be between {low:g} and {high:g}",
            {"field": where, "value": value},
        )


def validate_category_responses(
    raw_categories: Sequence[Dict[str, Any]],
    category_responses: Optional[Dict[str, Any]],
    scoring_system: Optional[str] = None,
) -> None:
    """
    Check a ``{category_id: {question_id: {...}}}`` map against the template.

    Raises:
        ValidationFailed: unknown category/question id, a rating outside the
            scale, a non-text comment, or an answer that is not a valid option
    """
    if not category_responses:
        return
    if not isinstance(category_responses, dict):
        raise ValidationFailed("category_responses must be an object")

    low, high = scale_bounds(scoring_system)
    questions_by_category = {c.id: {q.id: q for q in c.questions} for c in parse_categories(raw_categories)}

    for cat_id, responses in category_responses.items():
        if cat_id not in questions_by_category:
            raise ValidationFailed(f"Unknown category '{cat_id}'", {"category_id": cat_id})
        if not isinstance(responses, dict):
            raise ValidationFailed("Category responses must be an object", {"category_id": cat_id})

        for q_id, response in responses.items():
            question = questions_by_category[cat_id].get(q_id)
            if question is None:
                raise ValidationFailed(
                    f"Unknown question '{q_id}' in category '{cat_id}'",
                    {"category_id": cat_id, "question_id": q_id},
                )
            if not isinstance(response, dict):
                raise ValidationFailed("Question response must be an object", {"question_id": q_id})

            where = f"{cat_id}.{q_id}"
            for field in RATING_FIELDS:
                if field in response:
                    _check_rating(response[field], low, high, where, field)
            for field in COMMENT_FIELDS:
                if response.get(field) is not None and not isinstance(response[field], str):
                    raise ValidationFailed(f"{field} must be text", {"field": where})

            answer = response.get("answer")
            if answer is None:
                continue
            if question.type == "multipleChoice" and answer not in question.options:
                raise ValidationFailed("Answer is not one of the question options", {"field": where})
            if question.type == "yesNo" and answer not in (True, False, "yes", "no"):
                raise ValidationFailed("Answer must be yes or no", {"field": where})


def validate_free_text_answers(free_text_questions: Sequence[Dict[str, Any]], answers: Optional[Dict[str, Any]]) -> None:
    if not answers:
        return
    if not isinstance(answers, dict):
        raise ValidationFailed("free_text_questions must be an object")
    valid_keys = {str(i) for i in range(len(free_text_questions or []))}
    for key, value in answers.items():
        if str(key) not in valid_keys:
            raise ValidationFailed(f"Unknown free text question '{key}'")
        if value is not None and not isinstance(value, str):
            raise ValidationFailed("Free text answers must be text", {"question": str(key)})


def evaluation_form(evaluation, kind: str, template_available: bool = True) -> Dict[str, Any]:
    """
    Form for one side of an evaluation, built from its template snapshot.

    Args:
        evaluation: Evaluation row
        kind: ``"self"`` for the self-assessment, ``"manager"`` for the review
        template_available: Whether the live template still exists and is active
    """
    snapshot = evaluation.template_snapshot or {}
    form = {
        "evaluation_id": evaluation.id,
        "kind": kind,
        "status": evaluation.status,
        "version": evaluation.version,
        "scoring_system": snapshot.get("scoring_system") or "1-5",
        "categories": snapshot.get("categories") or [],
        "free_text_questions": snapshot.get("free_text_questions") or [],
        "template_available": template_available,
        "rating_summary": None,
    }
    if kind == "self":
        form["responses"] = build_self_assessment(snapshot, evaluation.self_assessment)
    else:
        responses = build_manager_review(snapshot, evaluation.manager_review)
        form["responses"] = responses
        form["rating_summary"] = rating_summary(
            form["categories"], responses["category_responses"], form["scoring_system"]
        )
    return form
