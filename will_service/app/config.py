# Application Configuration using Pydantic BaseSettings
from pydantic_settings import BaseSettings
from typing import Optional

class AppSettings(BaseSettings):
    # MongoDB
    MONGO_DETAILS: str = "mongodb://mongo:27017"
    DB_NAME: str = "weekend_will_db"
    WILLS_COLLECTION: str = "wills"

    # Persistence retry policy for transient driver errors
    DB_RETRY_ATTEMPTS: int = 3
    DB_RETRY_BACKOFF_SECONDS: float = 0.2
    # Compare-and-set retries when two writers race on the same will
    VERSION_CONFLICT_RETRIES: int = 3

    # Will defaults
    DEFAULT_STATE_COMPLIANCE: str = "CA"
    SEARCH_DEFAULT_LIMIT: int = 20
    SEARCH_MAX_LIMIT: int = 100

    # Observability
    LOG_LEVEL: str = "INFO"
    OTEL_EXPORTER_OTLP_TRACES_ENDPOINT: Optional[str] = None
    OTEL_EXPORTER_OTLP_METRICS_ENDPOINT: Optional[str] = None
    OTEL_CONSOLE_EXPORT: bool = False
    SERVICE_NAME_API: str = "weekend-will-api"

    # Will API client (used by the interview orchestrator)
    WILL_API_BASE_URL: str = "http://localhost:8000/api/v1"
    DEFAULT_HTTP_TIMEOUT: float = 10.0

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

# Instantiate settings to be imported by other modules
settings = AppSettings()

import logging
logger = logging.getLogger(__name__)
logger.info("Application settings module initialized.")
