"""
Unit tests for authentication endpoints.

Tests:
- Business registration
- Login
- Token refresh
- Current user profile
"""

import pytest

from perfeval.core.security import create_access_token, create_token_pair, verify_password
from perfeval.models.business import Business
from perfeval.models.user import User


@pytest.fixture
def registration_data():
    return {
        "business": {"name": "Initech", "email": "office@initech.example.com", "industry": "Software"},
        "admin": {
            "email": "Bill@Initech.example.com",
            "first_name": "Bill",
            "last_name": "Lumbergh",
            "password": "SecurePass123!",
        },
    }


class TestBusinessRegistration:
    """Test business registration endpoint"""

    def test_register_success(self, client, db_session, registration_data):
        response = client.post("/api/v1/auth/register", json=registration_data)

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["token_type"] == "bearer"
        assert data["access_token"] and data["refresh_token"]
        assert data["user"]["role"] == "admin"
        assert data["user"]["email"] == "bill@initech.example.com"
        assert data["user"]["position"] == "Administrator"
        assert all(data["user"]["permissions"].values())
        assert data["business"]["settings"] == {
            "evaluation_cycle": "annual",
            "bonus_calculation": "performance-based",
            "default_currency": "USD",
            "working_days": ["monday", "tuesday", "wednesday", "thursday", "friday"],
        }

        admin = db_session.query(User).filter(User.email == "bill@initech.example.com").one()
        assert admin.business_id == data["business"]["id"]
        assert admin.employee_code.startswith("EMP_")
        assert verify_password("SecurePass123!", admin.hashed_password)

    def test_register_duplicate_email(self, client, db_session, registration_data):
        assert client.post("/api/v1/auth/register", json=registration_data).status_code == 201

        response = client.post("/api/v1/auth/register", json=registration_data)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "already-exists"
        assert db_session.query(Business).count() == 1

    def test_register_short_password(self, client, registration_data):
        registration_data["admin"]["password"] = "abc"
        response = client.post("/api/v1/auth/register", json=registration_data)

        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "invalid-argument"

    def test_register_blank_business_name(self, client, registration_data):
        registration_data["business"]["name"] = "   "
        response = client.post("/api/v1/auth/register", json=registration_data)
        assert response.status_code == 422


class TestLogin:

    def test_login_success(self, client, business):
        response = client.post("/api/v1/auth/login", json={"email": "owner@acme.example.com", "password": "secret123"})

        assert response.status_code == 200
        assert response.json()["data"]["access_token"]

    def test_login_stamps_last_login(self, client, db_session, business):
        client.post("/api/v1/auth/login", json={"email": "employee@acme.example.com", "password": "secret123"})
        db_session.expire_all()
        assert db_session.get(User, business["employee"].id).last_login_at is not None

    def test_login_wrong_password(self, client, business):
        response = client.post("/api/v1/auth/login", json={"email": "owner@acme.example.com", "password": "nope-nope"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "unauthenticated"

    def test_login_unknown_email(self, client, business):
        response = client.post("/api/v1/auth/login", json={"email": "ghost@acme.example.com", "password": "secret123"})
        assert response.status_code == 401


class TestTokens:

    def test_me(self, client, business, auth_headers):
        response = client.get("/api/v1/auth/me", headers=auth_headers(business["manager"]))

        assert response.status_code == 200
        assert response.json()["data"]["id"] == business["manager"].id
        assert response.json()["data"]["role"] == "manager"

    def test_me_without_token(self, client):
        response = client.get("/api/v1/auth/me")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "unauthenticated"

    def test_refresh_token_cannot_be_used_as_access_token(self, client, business):
        tokens = create_token_pair(business["admin"])
        response = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {tokens['refresh_token']}"})
        assert response.status_code == 401

    def test_refresh(self, client, business):
        tokens = create_token_pair(business["admin"])
        response = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})

        assert response.status_code == 200
        assert response.json()["data"]["access_token"]

    def test_refresh_rejects_access_token(self, client, business):
        tokens = create_token_pair(business["admin"])
        response = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["access_token"]})
        assert response.status_code == 401

    def test_unknown_subject(self, client, business):
        token = create_access_token({"sub": "missing", "business_id": business["business"].id})
        response = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_inactive_user_is_denied(self, client, db_session, business, auth_headers):
        headers = auth_headers(business["employee"])
        business["employee"].is_active = False
        db_session.commit()

        response = client.get("/api/v1/auth/me", headers=headers)

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "permission-denied"
