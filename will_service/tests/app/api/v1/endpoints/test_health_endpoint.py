import pytest
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from will_service.app.main import app
from will_service.app.config import settings
from will_service.infrastructure.database.connection import get_db


@pytest.fixture
def client():
    app.dependency_overrides = {}
    yield TestClient(app)
    app.dependency_overrides = {}


@pytest.fixture
def mock_db_session():
    db = MagicMock()
    db.command = AsyncMock()
    return db


def test_health_check_db_connected(client: TestClient, mock_db_session: MagicMock):
    mock_db_session.command.return_value = {"ok": 1}
    app.dependency_overrides[get_db] = lambda: mock_db_session

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "components": {"mongodb": "connected"},
        "service_name": settings.SERVICE_NAME_API,
    }
    mock_db_session.command.assert_awaited_once_with("ping")


def test_health_check_db_disconnected(client: TestClient, mock_db_session: MagicMock):
    mock_db_session.command.side_effect = Exception("DB down")
    app.dependency_overrides[get_db] = lambda: mock_db_session

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "degraded"
    assert response.json()["components"]["mongodb"] == "disconnected"
