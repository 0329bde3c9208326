# FastAPI Application Entry Point
from fastapi import FastAPI

# Configuration and Observability
from will_service.app.config import settings
from will_service.app.observability import setup_opentelemetry, logger

# Initialize OpenTelemetry
setup_opentelemetry(service_name=settings.SERVICE_NAME_API)

# Import instrumentors after OTel SDK is initialized
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.pymongo import PymongoInstrumentor

from will_service.infrastructure.database.connection import MongoConnection

# API Routers
from will_service.app.api.v1.endpoints import health as health_router
from will_service.app.api.v1.endpoints import wills as wills_router

app = FastAPI(
    title="Weekend Will Service",
    description="Creates and maintains wills through a guided interview.",
    version="1.0.0"
)


@app.on_event("startup")
async def startup_event():
    logger.info("FastAPI application startup...")
    try:
        PymongoInstrumentor().instrument()
        app.state.mongo = MongoConnection()
        await app.state.mongo.connect()
        await app.state.mongo.ensure_indexes()
        logger.info("MongoDB connection established and instrumented.")
    except Exception as e:
        # Requests needing the database fail with 503/500 until it is reachable.
        logger.error(f"Failed during startup: {e}", exc_info=True)


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("FastAPI application shutdown...")
    if getattr(app.state, "mongo", None):
        app.state.mongo.close()


FastAPIInstrumentor.instrument_app(app)
logger.info("FastAPI instrumentation complete.")

app.include_router(health_router.router)
app.include_router(wills_router.router, prefix="/api/v1")

logger.info("API routers included. Application setup complete.")

# To run: uvicorn will_service.app.main:app --reload --port 8000
