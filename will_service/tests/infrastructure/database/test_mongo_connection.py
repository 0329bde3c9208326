import pytest
from unittest.mock import patch, AsyncMock, MagicMock

from fastapi import HTTPException

from will_service.app.config import settings
from will_service.infrastructure.database.connection import MongoConnection, get_db

CONNECTION_MODULE = "will_service.infrastructure.database.connection"


@patch(f"{CONNECTION_MODULE}.AsyncIOMotorClient")
async def test_connect_success(mock_client_cls):
    mock_client = MagicMock()
    mock_client.admin.command = AsyncMock(return_value={"ok": 1})
    mock_client_cls.return_value = mock_client

    connection = MongoConnection()
    db = await connection.connect()

    mock_client_cls.assert_called_once_with(settings.MONGO_DETAILS)
    mock_client.admin.command.assert_awaited_once_with("ping")
    assert db == mock_client[settings.DB_NAME]
    assert connection.is_connected
    assert connection.database == db


@patch(f"{CONNECTION_MODULE}.AsyncIOMotorClient")
async def test_connect_is_idempotent(mock_client_cls):
    mock_client = MagicMock()
    mock_client.admin.command = AsyncMock(return_value={"ok": 1})
    mock_client_cls.return_value = mock_client
    connection = MongoConnection("mongodb://db:27017", "other_db")

    await connection.connect()
    await connection.connect()

    assert mock_client_cls.call_count == 1
    assert connection.db_name == "other_db"


@patch(f"{CONNECTION_MODULE}.AsyncIOMotorClient")
async def test_connect_failure(mock_client_cls):
    mock_client = MagicMock()
    mock_client.admin.command = AsyncMock(side_effect=Exception("Mock Connection Error"))
    mock_client_cls.return_value = mock_client
    connection = MongoConnection()

    with pytest.raises(ConnectionError, match="Failed to connect to MongoDB: Mock Connection Error"):
        await connection.connect()

    assert not connection.is_connected
    with pytest.raises(ConnectionError):
        connection.database


@patch(f"{CONNECTION_MODULE}.AsyncIOMotorClient")
async def test_close(mock_client_cls):
    mock_client = MagicMock()
    mock_client.admin.command = AsyncMock(return_value={"ok": 1})
    mock_client_cls.return_value = mock_client
    connection = MongoConnection()
    await connection.connect()

    connection.close()

    mock_client.close.assert_called_once()
    assert not connection.is_connected


async def test_ensure_indexes_creates_unique_id_index():
    collection = AsyncMock()
    db = MagicMock()
    db.__getitem__.return_value = collection
    connection = MongoConnection()
    connection.client, connection.db = MagicMock(), db

    await connection.ensure_indexes()

    db.__getitem__.assert_called_with(settings.WILLS_COLLECTION)
    collection.create_index.assert_any_await("id", unique=True)


async def test_get_db_without_connection_is_503():
    request = MagicMock()
    request.app.state.mongo = None

    with pytest.raises(HTTPException) as exc_info:
        await get_db(request)

    assert exc_info.value.status_code == 503


async def test_get_db_returns_connected_database():
    connection = MongoConnection()
    connection.client, connection.db = MagicMock(), MagicMock()
    request = MagicMock()
    request.app.state.mongo = connection

    assert await get_db(request) is connection.db
