"""
Unit tests for template-to-response mapping and response validation.
"""

import pytest

from perfeval.core.errors import ValidationFailed
from perfeval.services.response_shapes import (
    build_manager_review,
    build_self_assessment,
    validate_category_responses,
    validate_free_text_answers,
)


@pytest.fixture
def snapshot(sample_template_data):
    return {
        "scoring_system": "1-5",
        "categories": sample_template_data["categories"],
        "free_text_questions": sample_template_data["free_text_questions"],
    }


class TestBuildSelfAssessment:

    def test_skeleton_has_defaults_for_every_question(self, snapshot):
        shaped = build_self_assessment(snapshot)

        assert shaped["free_text_questions"] == {"0": ""}
        assert shaped["category_responses"]["delivery"]["quality"] == {"self_rating": 1, "comment": ""}
        assert set(shaped["category_responses"]["teamwork"]) == {"communication", "style"}

    def test_saved_answers_are_overlaid(self, snapshot):
        existing = {
            "free_text_questions": {"0": "Shipped the API"},
            "category_responses": {"delivery": {"quality": {"self_rating": 4}}},
        }
        shaped = build_self_assessment(snapshot, existing)

        assert shaped["free_text_questions"]["0"] == "Shipped the API"
        assert shaped["category_responses"]["delivery"]["quality"] == {"self_rating": 4, "comment": ""}
        assert shaped["category_responses"]["delivery"]["speed"] == {"self_rating": 1, "comment": ""}

    def test_answers_for_removed_questions_are_dropped(self, snapshot):
        existing = {"category_responses": {
            "delivery": {"retired": {"self_rating": 5}},
            "old_category": {"x": {"self_rating": 5}},
        }}
        shaped = build_self_assessment(snapshot, existing)

        assert "retired" not in shaped["category_responses"]["delivery"]
        assert "old_category" not in shaped["category_responses"]

    def test_applying_twice_changes_nothing(self, snapshot):
        existing = {"category_responses": {"delivery": {"quality": {"self_rating": 3, "comment": "ok"}}}}
        once = build_self_assessment(snapshot, existing)
        assert build_self_assessment(snapshot, once) == once

    def test_existing_input_is_not_mutated(self, snapshot):
        existing = {"category_responses": {"delivery": {"quality": {"self_rating": 3}}}}
        build_self_assessment(snapshot, existing)
        assert existing == {"category_responses": {"delivery": {"quality": {"self_rating": 3}}}}


class TestBuildManagerReview:

    def test_skeleton(self, snapshot):
        shaped = build_manager_review(snapshot)

        assert shaped["category_responses"]["teamwork"]["communication"] == {
            "manager_rating": 1, "manager_comment": ""
        }
        assert shaped["targets"]["delivery"]["speed"] == {"target": 1, "target_comment": ""}
        assert shaped["overall_comments"] == ""

    def test_idempotent(self, snapshot):
        existing = {
            "category_responses": {"delivery": {"quality": {"manager_rating": 5}}},
            "targets": {"delivery": {"quality": {"target": 5, "target_comment": "keep it up"}}},
            "overall_comments": "Strong year",
        }
        once = build_manager_review(snapshot, existing)
        assert build_manager_review(snapshot, once) == once


class TestValidateResponses:

    def test_valid_responses_pass(self, snapshot):
        validate_category_responses(snapshot["categories"], {
            "delivery": {"quality": {"self_rating": 5, "comment": "good"}},
            "teamwork": {"style": {"answer": "pair"}},
        }, "1-5")

    def test_rating_outside_scale(self, snapshot):
        with pytest.raises(ValidationFailed) as exc:
            validate_category_responses(snapshot["categories"], {
                "delivery": {"quality": {"self_rating": 6}},
            }, "1-5")
        assert "between 1 and 5" in exc.value.message

    def test_unknown_category(self, snapshot):
        with pytest.raises(ValidationFailed):
            validate_category_responses(snapshot["categories"], {"nope": {}}, "1-5")

    def test_unknown_question(self, snapshot):
        with pytest.raises(ValidationFailed):
            validate_category_responses(snapshot["categories"], {"delivery": {"nope": {}}}, "1-5")

    def test_answer_not_in_options(self, snapshot):
        with pytest.raises(ValidationFailed):
            validate_category_responses(snapshot["categories"], {
                "teamwork": {"style": {"answer": "remote"}},
            }, "1-5")

    def test_comment_must_be_text(self, snapshot):
        with pytest.raises(ValidationFailed):
            validate_category_responses(snapshot["categories"], {
                "delivery": {"quality": {"comment": 42}},
            }, "1-5")

    def test_free_text_index_must_exist(self, snapshot):
        validate_free_text_answers(snapshot["free_text_questions"], {"0": "fine"})
        with pytest.raises(ValidationFailed):
            validate_free_text_answers(snapshot["free_text_questions"], {"3": "nope"})
