"""
Pytest configuration and fixtures for testing.

This file provides reusable test fixtures for:
- Database setup/teardown
- FastAPI test client
- A registered business with admin, HR, manager and employee users
- An evaluation template
"""

import os

# Keep the application engine off PostgreSQL during tests
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite://")
os.environ.setdefault("JSON_LOGS", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from perfeval.core.database import Base, get_db
from perfeval.core.security import create_token_pair
from perfeval.crud import business as business_crud
from perfeval.crud import department as department_crud
from perfeval.crud import template as template_crud
from perfeval.crud import user as user_crud
from perfeval.models.user import UserRole
from perfeval.schemas.department import DepartmentCreateRequest
from perfeval.schemas.template import TemplateCreateRequest
from perfeval.schemas.user import BusinessRegisterRequest, UserCreateRequest
from main import app


# Use in-memory SQLite for testing (fast, isolated)
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session():
    """
    Create a fresh database session for each test.
    Tables are dropped after the test completes.
    """
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    """
    FastAPI test client with overridden database dependency.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def _bearer(user) -> dict:
    return {"Authorization": f"Bearer {create_token_pair(user)['access_token']}"}


@pytest.fixture
def auth_headers():
    """Build an Authorization header for a user: auth_headers(user)."""
    return _bearer


def register_business(db, email="owner@acme.example.com", name="Acme Corp"):
    return business_crud.register_business(db, BusinessRegisterRequest(
        business={"name": name, "email": email, "industry": "Manufacturing"},
        admin={"email": email, "first_name": "Ada", "last_name": "Owner", "password": "secret123"},
    ))


def add_user(db, business_id, actor, email, role=UserRole.EMPLOYEE, **extra):
    return user_crud.create_user(db, business_id, actor, UserCreateRequest(
        email=email,
        password="secret123",
        first_name=email.split("@")[0].title(),
        last_name="Tester",
        role=role,
        **extra,
    ))


@pytest.fixture
def business(db_session):
    """
    A business with one user per role.

    Returns a dict with keys business, admin, hr, manager, employee.
    """
    biz, admin = register_business(db_session)
    return {
        "business": biz,
        "admin": admin,
        "hr": add_user(db_session, biz.id, admin, "hr@acme.example.com", UserRole.HR),
        "manager": add_user(db_session, biz.id, admin, "manager@acme.example.com", UserRole.MANAGER),
        "employee": add_user(db_session, biz.id, admin, "employee@acme.example.com", UserRole.EMPLOYEE),
    }


@pytest.fixture
def other_business(db_session):
    """A second, unrelated tenant."""
    biz, admin = register_business(db_session, email="boss@globex.example.com", name="Globex")
    return {"business": biz, "admin": admin}


@pytest.fixture
def department(db_session, business):
    return department_crud.create_department(
        db_session,
        business["business"].id,
        business["admin"],
        DepartmentCreateRequest(name="Engineering"),
    )


@pytest.fixture
def sample_template_data():
    """Two categories on a 1-5 scale plus one free text question"""
    return {
        "name": "Annual Review",
        "description": "Yearly performance review",
        "scoring_system": "1-5",
        "categories": [
            {
                "id": "delivery",
                "name": "Delivery",
                "weight": 60,
                "questions": [
                    {"id": "quality", "text": "Quality of work", "type": "dualRating"},
                    {"id": "speed", "text": "Speed of delivery"},
                ],
            },
            {
                "id": "teamwork",
                "name": "Teamwork",
                "questions": [
                    {"id": "communication", "text": "Communication", "type": "rating"},
                    {"id": "style", "text": "Preferred style", "type": "multipleChoice",
                     "options": ["solo", "pair", "mob"], "required": False},
                ],
            },
        ],
        "free_text_questions": [
            {"text": "What went well this year?"},
        ],
    }


@pytest.fixture
def template(db_session, business, sample_template_data):
    return template_crud.create_template(
        db_session,
        business["business"].id,
        business["admin"],
        TemplateCreateRequest(**sample_template_data),
    )


@pytest.fixture
def make_user(db_session, business):
    """Add another user to the business: make_user(email, role=UserRole.EMPLOYEE, **fields)."""
    def _make(email, role=UserRole.EMPLOYEE, **extra):
        return add_user(db_session, business["business"].id, business["admin"], email, role, **extra)
    return _make
