"""
Integration tests for security-critical paths.

Tests:
- Multi-tenant isolation
- Permission flag enforcement
- Error envelope shape
"""

from perfeval.core.security import create_access_token


class TestTenantIsolation:
    """A principal can only reach its own business"""

    def test_cross_tenant_path_is_denied(self, client, business, other_business, auth_headers):
        response = client.get(
            f"/api/v1/businesses/{other_business['business'].id}/users",
            headers=auth_headers(business["admin"]),
        )

        assert response.status_code == 403
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "permission-denied"
        assert body["error"]["details"]["reason"] == "User does not belong to this business"

    def test_forged_business_claim_does_not_help(self, client, business, other_business):
        token = create_access_token({
            "sub": business["admin"].id,
            "business_id": other_business["business"].id,
            "role": "admin",
        })
        response = client.get(
            f"/api/v1/businesses/{other_business['business'].id}/departments",
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 403

    def test_ids_from_another_tenant_are_not_found(self, client, business, other_business, auth_headers):
        response = client.get(
            f"/api/v1/businesses/{business['business'].id}/users/{other_business['admin'].id}",
            headers=auth_headers(business["admin"]),
        )
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not-found"


class TestPermissions:

    def test_employee_cannot_create_users(self, client, business, auth_headers):
        response = client.post(
            f"/api/v1/businesses/{business['business'].id}/users",
            json={"email": "new@acme.example.com", "password": "secret123", "first_name": "New", "last_name": "Hire"},
            headers=auth_headers(business["employee"]),
        )

        assert response.status_code == 403
        assert response.json()["error"]["details"]["required_permission"] == "can_manage_users"

    def test_hr_cannot_change_settings(self, client, business, auth_headers):
        response = client.patch(
            f"/api/v1/businesses/{business['business'].id}",
            json={"settings": {"default_currency": "EUR"}},
            headers=auth_headers(business["hr"]),
        )
        assert response.status_code == 403

    def test_admin_changes_settings(self, client, business, auth_headers):
        response = client.patch(
            f"/api/v1/businesses/{business['business'].id}",
            json={"settings": {"default_currency": "EUR"}},
            headers=auth_headers(business["admin"]),
        )

        settings = response.json()["data"]["settings"]
        assert settings["default_currency"] == "EUR"
        assert settings["evaluation_cycle"] == "annual"


class TestErrorEnvelope:

    def test_user_facing_message_comes_from_code(self, client, business, auth_headers):
        response = client.get(
            f"/api/v1/businesses/{business['business'].id}/departments/missing",
            headers=auth_headers(business["admin"]),
        )

        error = response.json()["error"]
        assert error["message"] == "Resource not found."
        assert error["details"]["reason"] == "Department not found"

    def test_unknown_route(self, client):
        response = client.get("/api/v1/nothing-here")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not-found"
