"""
Tests for evaluation endpoints and the evaluation lifecycle.

Tests:
- Creation requires an active assignment
- draft -> pending -> in-progress -> under-review -> completed
- Completed evaluations are read-only
- Stale expected_version is rejected
- Visibility for non-participants
"""

import pytest

from perfeval.models.evaluation import Evaluation, EvaluationStatus


def base_url(business):
    return f"/api/v1/businesses/{business['business'].id}"


@pytest.fixture
def assignment(client, business, auth_headers):
    """manager is assigned to evaluate employee"""
    response = client.post(
        f"{base_url(business)}/assignments",
        json={"evaluator_id": business["manager"].id, "evaluatee_id": business["employee"].id},
        headers=auth_headers(business["admin"]),
    )
    assert response.status_code == 201
    return response.json()["data"]


@pytest.fixture
def evaluation(client, business, template, assignment, auth_headers):
    response = client.post(
        f"{base_url(business)}/evaluations",
        json={
            "template_id": template.id,
            "evaluator_id": business["manager"].id,
            "evaluatee_id": business["employee"].id,
            "period": "2026",
        },
        headers=auth_headers(business["manager"]),
    )
    assert response.status_code == 201
    return response.json()["data"]


def _url(business, evaluation, suffix=""):
    return f"{base_url(business)}/evaluations/{evaluation['id']}{suffix}"


def _to_under_review(client, business, evaluation, auth_headers):
    manager = auth_headers(business["manager"])
    employee = auth_headers(business["employee"])
    assert client.post(_url(business, evaluation, "/publish"), headers=manager).status_code == 200
    response = client.post(
        _url(business, evaluation, "/submit"),
        json={
            "free_text_questions": {"0": "Shipped the billing rewrite"},
            "category_responses": {"delivery": {"quality": {"self_rating": 4, "comment": "Solid"}}},
        },
        headers=employee,
    )
    assert response.status_code == 200
    return response.json()["data"]


MANAGER_RATINGS = {
    "delivery": {
        "quality": {"manager_rating": 4, "manager_comment": "Reliable"},
        "speed": {"manager_rating": 5},
    },
    "teamwork": {"communication": {"manager_rating": 3}, "style": {"manager_rating": 4}},
}


class TestCreateEvaluation:

    def test_create_without_assignment_fails(self, client, business, template, auth_headers):
        response = client.post(
            f"{base_url(business)}/evaluations",
            json={
                "template_id": template.id,
                "evaluator_id": business["manager"].id,
                "evaluatee_id": business["employee"].id,
            },
            headers=auth_headers(business["manager"]),
        )

        assert response.status_code == 412
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "failed-precondition"
        assert "No valid assignment" in body["error"]["details"]["reason"]

    def test_create_with_assignment(self, evaluation, template, business, assignment):
        assert evaluation["status"] == "draft"
        assert evaluation["assignment_id"] == assignment["id"]
        assert evaluation["version"] == 1
        assert evaluation["template_snapshot"]["template_id"] == template.id
        assert evaluation["template_snapshot"]["scoring_system"] == "1-5"

    def test_deactivated_assignment_blocks_creation(self, client, business, template, assignment, auth_headers):
        response = client.delete(
            f"{base_url(business)}/assignments/{assignment['id']}",
            headers=auth_headers(business["admin"]),
        )
        assert response.status_code == 200

        response = client.post(
            f"{base_url(business)}/evaluations",
            json={
                "template_id": template.id,
                "evaluator_id": business["manager"].id,
                "evaluatee_id": business["employee"].id,
            },
            headers=auth_headers(business["manager"]),
        )
        assert response.status_code == 412

    def test_employee_cannot_create_for_another_evaluator(self, client, business, template, assignment, auth_headers):
        response = client.post(
            f"{base_url(business)}/evaluations",
            json={
                "template_id": template.id,
                "evaluator_id": business["manager"].id,
                "evaluatee_id": business["employee"].id,
            },
            headers=auth_headers(business["employee"]),
        )
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "permission-denied"

    def test_later_template_edits_do_not_change_evaluation(self, client, business, template, evaluation, auth_headers):
        response = client.patch(
            f"{base_url(business)}/templates/{template.id}",
            json={"name": "Renamed Review"},
            headers=auth_headers(business["admin"]),
        )
        assert response.status_code == 200

        response = client.get(_url(business, evaluation), headers=auth_headers(business["manager"]))
        assert response.json()["data"]["template_snapshot"]["name"] == "Annual Review"


class TestLifecycle:

    def test_full_lifecycle(self, client, business, evaluation, auth_headers):
        manager = auth_headers(business["manager"])
        employee = auth_headers(business["employee"])

        response = client.post(_url(business, evaluation, "/publish"), headers=manager)
        assert response.json()["data"]["status"] == "pending"

        response = client.put(
            _url(business, evaluation, "/self-assessment"),
            json={"category_responses": {"delivery": {"quality": {"self_rating": 3}}}},
            headers=employee,
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "in-progress"
        assert data["self_assessment"]["category_responses"]["delivery"]["quality"]["self_rating"] == 3

        response = client.post(
            _url(business, evaluation, "/submit"),
            json={"category_responses": {"delivery": {"quality": {"self_rating": 4}}}},
            headers=employee,
        )
        data = response.json()["data"]
        assert data["status"] == "under-review"
        assert data["submitted_at"] is not None

        response = client.put(
            _url(business, evaluation, "/manager-review"),
            json={"category_responses": MANAGER_RATINGS},
            headers=manager,
        )
        data = response.json()["data"]
        assert data["status"] == "under-review"
        assert data["manager_review"]["overall_rating"] == 4.0
        assert data["manager_review"]["in_progress"] is True
        assert data["overall_rating"] is None

        response = client.post(
            _url(business, evaluation, "/complete"),
            json={"overall_comments": "Great year"},
            headers=manager,
        )
        data = response.json()["data"]
        assert response.status_code == 200
        assert data["status"] == "completed"
        assert data["overall_rating"] == 4.0
        assert data["manager_review"]["reviewed_by"] == business["manager"].id
        assert data["manager_review"]["overall_comments"] == "Great year"

    def test_progress_save_merges_fields(self, client, business, evaluation, auth_headers):
        employee = auth_headers(business["employee"])
        client.post(_url(business, evaluation, "/publish"), headers=auth_headers(business["manager"]))

        client.put(
            _url(business, evaluation, "/self-assessment"),
            json={"category_responses": {"delivery": {"quality": {"self_rating": 2}}}},
            headers=employee,
        )
        response = client.put(
            _url(business, evaluation, "/self-assessment"),
            json={"category_responses": {"delivery": {"speed": {"self_rating": 5}}}},
            headers=employee,
        )

        responses = response.json()["data"]["self_assessment"]["category_responses"]["delivery"]
        assert responses["quality"]["self_rating"] == 2
        assert responses["speed"]["self_rating"] == 5

    def test_save_after_completion_is_rejected(self, client, business, evaluation, auth_headers, db_session):
        manager = auth_headers(business["manager"])
        _to_under_review(client, business, evaluation, auth_headers)
        client.post(_url(business, evaluation, "/complete"), json={"category_responses": MANAGER_RATINGS},
                    headers=manager)

        response = client.put(
            _url(business, evaluation, "/self-assessment"),
            json={"category_responses": {"delivery": {"quality": {"self_rating": 1}}}},
            headers=auth_headers(business["employee"]),
        )

        assert response.status_code == 412
        assert response.json()["error"]["code"] == "failed-precondition"
        assert response.json()["error"]["details"]["reason"] == "Completed evaluations cannot be modified"

        db_session.expire_all()
        stored = db_session.query(Evaluation).filter(Evaluation.id == evaluation["id"]).one()
        assert stored.status == EvaluationStatus.COMPLETED
        assert stored.self_assessment["category_responses"]["delivery"]["quality"]["self_rating"] == 4

    def test_completed_rating_matches_manager_form(self, client, business, evaluation, auth_headers):
        manager = auth_headers(business["manager"])
        _to_under_review(client, business, evaluation, auth_headers)

        # One of four questions rated; the rest keep their default of 1
        client.put(
            _url(business, evaluation, "/manager-review"),
            json={"category_responses": {"delivery": {"quality": {"manager_rating": 5}}}},
            headers=manager,
        )
        form = client.get(_url(business, evaluation, "/form"), params={"kind": "manager"}, headers=manager).json()["data"]

        response = client.post(_url(business, evaluation, "/complete"), json={}, headers=manager)

        assert form["rating_summary"]["ratings_counted"] == 4
        assert form["rating_summary"]["overall_rating"] == 2.0
        assert response.json()["data"]["overall_rating"] == form["rating_summary"]["overall_rating"]

    def test_review_after_completion_is_rejected(self, client, business, evaluation, auth_headers):
        manager = auth_headers(business["manager"])
        _to_under_review(client, business, evaluation, auth_headers)
        client.post(_url(business, evaluation, "/complete"), json={}, headers=manager)

        response = client.put(
            _url(business, evaluation, "/manager-review"),
            json={"category_responses": MANAGER_RATINGS},
            headers=manager,
        )
        assert response.status_code == 412

    def test_stale_expected_version_is_aborted(self, client, business, evaluation, auth_headers):
        employee = auth_headers(business["employee"])
        client.post(_url(business, evaluation, "/publish"), headers=auth_headers(business["manager"]))

        current = client.get(_url(business, evaluation), headers=employee).json()["data"]["version"]
        response = client.put(
            _url(business, evaluation, "/self-assessment"),
            json={"expected_version": current - 1, "free_text_questions": {"0": "draft"}},
            headers=employee,
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "aborted"

        response = client.put(
            _url(business, evaluation, "/self-assessment"),
            json={"expected_version": current, "free_text_questions": {"0": "draft"}},
            headers=employee,
        )
        assert response.status_code == 200
        assert response.json()["data"]["version"] == current + 1

    def test_only_evaluatee_writes_self_assessment(self, client, business, evaluation, auth_headers):
        manager = auth_headers(business["manager"])
        client.post(_url(business, evaluation, "/publish"), headers=manager)

        response = client.put(
            _url(business, evaluation, "/self-assessment"),
            json={"free_text_questions": {"0": "written by someone else"}},
            headers=manager,
        )
        assert response.status_code == 403

    def test_out_of_scale_rating_is_rejected(self, client, business, evaluation, auth_headers):
        client.post(_url(business, evaluation, "/publish"), headers=auth_headers(business["manager"]))

        response = client.put(
            _url(business, evaluation, "/self-assessment"),
            json={"category_responses": {"delivery": {"quality": {"self_rating": 7}}}},
            headers=auth_headers(business["employee"]),
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid-argument"

    def test_review_before_submission_is_rejected(self, client, business, evaluation, auth_headers):
        response = client.put(
            _url(business, evaluation, "/manager-review"),
            json={"category_responses": MANAGER_RATINGS},
            headers=auth_headers(business["manager"]),
        )
        assert response.status_code == 412


class TestReads:

    def test_outsider_cannot_view(self, client, business, evaluation, auth_headers, make_user):
        outsider = make_user("outsider@acme.example.com")
        response = client.get(_url(business, evaluation), headers=auth_headers(outsider))
        assert response.status_code == 403

        response = client.get(f"{base_url(business)}/evaluations", headers=auth_headers(outsider))
        assert response.json()["data"]["total"] == 0

    def test_list_with_filters_and_pagination(self, client, business, evaluation, auth_headers):
        response = client.get(
            f"{base_url(business)}/evaluations",
            params={"status": "draft", "page": 1, "page_size": 5},
            headers=auth_headers(business["hr"]),
        )
        page = response.json()["data"]
        assert page["total"] == 1
        assert page["page_size"] == 5
        assert page["has_more"] is False
        assert page["items"][0]["id"] == evaluation["id"]

        response = client.get(
            f"{base_url(business)}/evaluations",
            params={"status": "completed"},
            headers=auth_headers(business["hr"]),
        )
        assert response.json()["data"]["items"] == []

    def test_form_overlays_saved_answers(self, client, business, evaluation, auth_headers):
        employee = auth_headers(business["employee"])
        client.post(_url(business, evaluation, "/publish"), headers=auth_headers(business["manager"]))
        client.put(
            _url(business, evaluation, "/self-assessment"),
            json={"category_responses": {"delivery": {"quality": {"self_rating": 5}}}},
            headers=employee,
        )

        response = client.get(_url(business, evaluation, "/form"), params={"kind": "self"}, headers=employee)
        form = response.json()["data"]
        assert form["responses"]["category_responses"]["delivery"]["quality"]["self_rating"] == 5
        assert form["responses"]["category_responses"]["delivery"]["speed"]["self_rating"] == 1
        assert form["template_available"] is True

    def test_manager_form_carries_rating_summary(self, client, business, evaluation, auth_headers):
        response = client.get(
            _url(business, evaluation, "/form"),
            params={"kind": "manager"},
            headers=auth_headers(business["manager"]),
        )
        summary = response.json()["data"]["rating_summary"]
        assert summary["weights_declared"] is True
        assert summary["weights_applied"] is False

    def test_deactivated_template_is_reported(self, client, business, template, evaluation, auth_headers):
        client.delete(f"{base_url(business)}/templates/{template.id}", headers=auth_headers(business["admin"]))

        response = client.get(_url(business, evaluation), headers=auth_headers(business["manager"]))
        data = response.json()["data"]
        assert data["template_available"] is False
        assert data["template_snapshot"]["categories"]
