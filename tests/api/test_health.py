from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from workspace_chat.api.main import create_app
from workspace_chat.boundary.db import get_async_db


@pytest.fixture
def client():
    app = create_app()
    return TestClient(app)


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "message": "Server Healthy"}
    assert "X-Correlation-ID" in response.headers


def test_health_check_db(client):
    db = AsyncMock()
    client.app.dependency_overrides[get_async_db] = lambda: db

    response = client.get("/health/db")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "message": "Database connection OK"}


def test_health_check_db_unreachable(client):
    db = AsyncMock()
    db.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))
    client.app.dependency_overrides[get_async_db] = lambda: db

    response = client.get("/health/db")

    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"
