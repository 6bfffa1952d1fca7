"""
Tests for health check endpoints.
"""


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_detailed_health(client):
    response = client.get("/health/detailed")
    assert response.status_code == 200
    assert response.json()["checks"]["database"]["status"] == "healthy"


def test_root(client):
    assert client.get("/").json()["message"] == "Perfeval API"
