from will_service.app.config import settings
import logging
from typing import Optional
from fastapi import HTTPException, Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

logger = logging.getLogger(__name__)


class MongoConnection:
    """
    Owns one motor client for the lifetime of the application.

    Created explicitly at startup, stored on the FastAPI app state and handed to
    request handlers through `get_db`. Nothing in this module is global, so tests
    can build their own connection or skip it entirely with a fake database.
    """

    def __init__(self, mongo_details: Optional[str] = None, db_name: Optional[str] = None):
        self.mongo_details = mongo_details or settings.MONGO_DETAILS
        self.db_name = db_name or settings.DB_NAME
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    @property
    def is_connected(self) -> bool:
        return self.client is not None and self.db is not None

    async def connect(self) -> AsyncIOMotorDatabase:
        if self.is_connected:
            logger.info("MongoDB connection already established.")
            return self.db

        try:
            logger.info(f"Attempting to connect to MongoDB at {self.mongo_details}...")
            client = AsyncIOMotorClient(self.mongo_details)
            # Verify connection by pinging the admin database
            await client.admin.command('ping')
            self.client = client
            self.db = client[self.db_name]
            logger.info(f"Successfully connected to MongoDB and database '{self.db_name}' is set.")
        except Exception as e:
            logger.error(f"Failed to connect to MongoDB: {e}", exc_info=True)
            self.client = None
            self.db = None
            raise ConnectionError(f"Failed to connect to MongoDB: {e}")
        return self.db

    async def ensure_indexes(self, collection_name: Optional[str] = None) -> None:
        collection = self.database[collection_name or settings.WILLS_COLLECTION]
        await collection.create_index("id", unique=True)
        await collection.create_index([("user_id", 1), ("status", 1)])
        await collection.create_index([("user_id", 1), ("created_at", -1)])
        await collection.create_index([("status", 1), ("updated_at", -1)])
        logger.info("Will collection indexes ensured.")

    @property
    def database(self) -> AsyncIOMotorDatabase:
        if self.db is None:
            raise ConnectionError("Database client is not available. Connection might have failed or was not established.")
        return self.db

    def close(self) -> None:
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("MongoDB connection closed.")


async def get_db(request: Request) -> AsyncIOMotorDatabase:
    connection: Optional[MongoConnection] = getattr(request.app.state, "mongo", None)
    if connection is None or not connection.is_connected:
        logger.error("No MongoDB connection on application state.")
        raise HTTPException(status_code=503, detail="Will storage is temporarily unavailable. Please retry.")
    return connection.database
