"""
Stickies Backend Application

FastAPI application entrypoint with async lifespan management.
Handles startup checks (database, embedding model) and graceful shutdown.

Start locally:
    uvicorn stickies.main:app --host 0.0.0.0 --port 8000 --reload
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from stickies.api.v1.clusters import router as clusters_router
from stickies.api.v1.notes import router as notes_router
from stickies.api.v1.search import router as search_router
from stickies.core.config import settings
from stickies.core.database import check_connection, dispose_engine
from stickies.core.exceptions import (
    EmbeddingProviderError,
    InvalidDimensionError,
    NoteNotFoundError,
    StoreError,
)
from stickies.core.logging import setup_logging
from stickies.services.embeddings import get_embedding_service

# Initialize logging before any log statements
setup_logging()
logger = logging.getLogger(__name__)


async def wait_for_db(retries: int = 10, delay: int = 1) -> bool:
    """
    Wait for PostgreSQL to become available.

    Useful in containerized environments where the database may start
    after the application. Implements retry logic with linear delay.

    Args:
        retries: Maximum connection attempts.
        delay: Seconds between attempts.

    Returns:
        True if connection established, False if all retries exhausted.
    """
    if settings.STORE_BACKEND == "memory":
        return True

    for i in range(retries):
        try:
            await check_connection()
            logger.info("Postgres connection established")
            return True
        except Exception as e:
            logger.warning(f"Waiting for Postgres ({i + 1}/{retries})... Error: {e}")
            await asyncio.sleep(delay)
    return False


async def preload_embeddings() -> bool:
    """
    Load the embedding model before serving (avoids a cold first request).

    Non-blocking check - on failure the app still starts and search runs
    in lexical mode.
    """
    try:
        await get_embedding_service().warm_up()
        return True
    except EmbeddingProviderError as e:
        logger.error(f"Embedding model preload failed: {e}")
        return False


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
        - Validates database connectivity (required, blocks startup on failure)
        - Optionally pre-loads the embedding model (EMBEDDING_PRELOAD)

    Shutdown:
        - Disposes the database engine
    """
    logger.info("Starting Stickies...")
    logger.info(f"Log Level: {settings.LOG_LEVEL}")

    if not await wait_for_db():
        logger.critical("Could not connect to Postgres. Shutting down.")
        raise RuntimeError("Database connection failed")

    if settings.EMBEDDING_PRELOAD and not await preload_embeddings():
        logger.warning("Embedding model not available - search degrades to lexical")

    yield  # Application runs here

    await dispose_engine()
    logger.info("Shutting down Stickies...")


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

app.include_router(notes_router, prefix="/api/v1/notes", tags=["Notes"])
app.include_router(search_router, prefix="/api/v1/search", tags=["Search"])
app.include_router(clusters_router, prefix="/api/v1/clusters", tags=["Clusters"])


@app.exception_handler(NoteNotFoundError)
async def note_not_found_handler(request: Request, exc: NoteNotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    # 503: storage backend unavailable; idempotent calls are safe to retry
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Storage unavailable"},
    )


@app.exception_handler(InvalidDimensionError)
async def invalid_dimension_handler(request: Request, exc: InvalidDimensionError):
    # Stored vectors disagree with the embedding provider; not a client error
    logger.exception(f"Embedding dimension mismatch on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Embedding dimension mismatch"},
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": str(exc)},
    )


@app.get("/health")
async def health_check():
    """
    Health check endpoint for load balancers and orchestrators.

    Returns:
        Static health status plus the configured backends.
    """
    return {
        "status": "ok",
        "service": "stickies",
        "environment": os.getenv("ENVIRONMENT", "unknown"),
        "store": settings.STORE_BACKEND,
        "embeddings": settings.EMBEDDING_BACKEND,
    }
