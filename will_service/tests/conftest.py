import pytest
from mongomock_motor import AsyncMongoMockClient

from will_service.app.config import settings


@pytest.fixture(autouse=True)
def fast_db_retries(monkeypatch):
    monkeypatch.setattr(settings, "DB_RETRY_BACKOFF_SECONDS", 0)


@pytest.fixture
def mongo_db():
    """An empty in-memory database per test."""
    client = AsyncMongoMockClient()
    return client[settings.DB_NAME]


@pytest.fixture
def testator_data():
    return {
        "firstName": "Alice",
        "lastName": "Walker",
        "dateOfBirth": "1970-04-12",
        "email": "alice@example.com",
        "address": {"street": "1 Oak Lane", "city": "Sacramento", "state": "CA", "zipCode": "95814"},
        "maritalStatus": "married",
    }


@pytest.fixture
def executor_data():
    return {"firstName": "Jane", "lastName": "Doe", "relationship": "spouse"}


@pytest.fixture
def family_data():
    return {
        "spouse": {"firstName": "Bob", "lastName": "Walker"},
        "children": [{"firstName": "Carl", "lastName": "Walker", "dateOfBirth": "2000-01-01"}],
    }


@pytest.fixture
def assets_data():
    return {
        "realProperty": [{
            "type": "house",
            "description": "Family home",
            "address": {"street": "1 Oak Lane", "city": "Sacramento", "state": "CA", "zipCode": "95814"},
            "estimatedValue": 450000,
        }],
        "personalProperty": [],
    }


@pytest.fixture
def distribution_data():
    return {
        "beneficiaries": [
            {"name": "Bob Walker", "relationship": "spouse", "percentage": 60},
            {"name": "Carl Walker", "relationship": "child", "percentage": 40},
        ]
    }


@pytest.fixture
def witness_data():
    return {
        "witness1": {"firstName": "Wendy", "lastName": "One"},
        "witness2": {"firstName": "Walter", "lastName": "Two"},
        "executionDate": "2026-10-01",
        "executionLocation": "Sacramento, CA",
    }
