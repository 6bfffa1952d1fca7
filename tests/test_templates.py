"""
Tests for evaluation template endpoints.
"""

from perfeval.crud import evaluation as evaluation_crud
from perfeval.crud.assignment import create_evaluation_assignment
from perfeval.models.template import EvaluationTemplate
from perfeval.schemas.assignment import EvaluationAssignmentCreateRequest
from perfeval.schemas.evaluation import EvaluationCreateRequest


def templates_url(business):
    return f"/api/v1/businesses/{business['business'].id}/templates"


class TestTemplateCrud:

    def test_create(self, client, business, sample_template_data, auth_headers):
        response = client.post(templates_url(business), json=sample_template_data, headers=auth_headers(business["manager"]))

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["scoring_system"] == "1-5"
        assert data["is_active"] is True
        # Untyped questions are stored as dual-rating questions
        assert data["categories"][0]["questions"][1]["type"] == "dualRating"

    def test_multiple_choice_needs_options(self, client, business, sample_template_data, auth_headers):
        sample_template_data["categories"][1]["questions"][1]["options"] = []
        response = client.post(templates_url(business), json=sample_template_data, headers=auth_headers(business["admin"]))
        assert response.status_code == 422

    def test_unknown_question_type(self, client, business, sample_template_data, auth_headers):
        sample_template_data["categories"][0]["questions"][0]["type"] = "slider"
        response = client.post(templates_url(business), json=sample_template_data, headers=auth_headers(business["admin"]))
        assert response.status_code == 422

    def test_employee_cannot_create(self, client, business, sample_template_data, auth_headers):
        response = client.post(templates_url(business), json=sample_template_data, headers=auth_headers(business["employee"]))
        assert response.status_code == 403

    def test_update(self, client, business, template, auth_headers):
        response = client.patch(
            f"{templates_url(business)}/{template.id}",
            json={"scoring_system": "1-10"},
            headers=auth_headers(business["admin"]),
        )
        assert response.json()["data"]["scoring_system"] == "1-10"

    def test_update_rejects_blank_name(self, client, db_session, business, template, auth_headers):
        response = client.patch(
            f"{templates_url(business)}/{template.id}",
            json={"name": "   "},
            headers=auth_headers(business["admin"]),
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "invalid-argument"
        db_session.expire_all()
        assert db_session.get(EvaluationTemplate, template.id).name == "Annual Review"

    def test_update_strips_name(self, client, business, template, auth_headers):
        response = client.patch(
            f"{templates_url(business)}/{template.id}",
            json={"name": "  Quarterly review  "},
            headers=auth_headers(business["admin"]),
        )
        assert response.json()["data"]["name"] == "Quarterly review"


class TestTemplateDelete:

    def test_default_delete_deactivates(self, client, business, template, auth_headers):
        headers = auth_headers(business["admin"])

        response = client.delete(f"{templates_url(business)}/{template.id}", headers=headers)
        assert response.json()["data"]["message"] == "Template deactivated"

        listed = client.get(templates_url(business), headers=headers).json()["data"]
        assert listed == []
        response = client.get(f"{templates_url(business)}/{template.id}", headers=headers)
        assert response.json()["data"]["is_active"] is False

    def test_permanent_delete(self, client, db_session, business, template, auth_headers):
        response = client.delete(
            f"{templates_url(business)}/{template.id}",
            params={"permanent": True},
            headers=auth_headers(business["admin"]),
        )

        assert response.json()["data"]["message"] == "Template deleted"
        db_session.expire_all()
        assert db_session.get(EvaluationTemplate, template.id) is None

    def test_permanent_delete_blocked_while_referenced(self, client, db_session, business, template, auth_headers):
        biz_id = business["business"].id
        admin = business["admin"]
        create_evaluation_assignment(db_session, biz_id, admin, EvaluationAssignmentCreateRequest(
            evaluator_id=business["manager"].id, evaluatee_id=business["employee"].id,
        ))
        evaluation_crud.create_evaluation(db_session, biz_id, admin, EvaluationCreateRequest(
            template_id=template.id, evaluator_id=business["manager"].id, evaluatee_id=business["employee"].id,
        ))

        response = client.delete(
            f"{templates_url(business)}/{template.id}",
            params={"permanent": True},
            headers=auth_headers(admin),
        )

        assert response.status_code == 412
        assert response.json()["error"]["details"]["evaluations"] == 1
