"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures logging, lifespan events and routes.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import run_migrations
from src.api.v1 import router as v1_router
from src.config.settings import Settings, get_settings
from src.domain.code_store import VerificationCodeStore

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Momentum Verification API v1 - Email-verified registration and password changes",
    },
]


def build_code_store(settings: Settings) -> VerificationCodeStore:
    """Create the verification code store from settings (not started)."""
    return VerificationCodeStore(
        ttl_seconds=settings.otp_ttl_seconds,
        max_attempts=settings.otp_max_attempts,
        code_length=settings.otp_code_length,
        sweep_interval_seconds=settings.otp_sweep_interval_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Configures logging
    - Creates database connection pool and runs migrations on startup
    - Creates the verification code store and starts its sweeper
    - Stops the sweeper and closes the connection pool on shutdown
    """
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    logger.info("Starting application...")
    logger.info("Connecting to database...")

    # Create connection pool with explicit sizing
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    )

    # Run migrations
    logger.info("Running database migrations...")
    run_migrations(pool)

    code_store = build_code_store(settings)
    code_store.start()

    # Store shared resources in app state for dependency injection
    app.state.pool = pool
    app.state.code_store = code_store

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    code_store.stop()
    pool.close()
    logger.info("Database connection pool closed")


app = FastAPI(
    title="momentum-verify",
    description="Momentum Verification API - Email one-time codes for registration and password changes",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with database validation.

    Returns 200 OK if application and database are healthy.
    Raises exception if database connection fails.
    """
    # Validate database connectivity
    pool = request.app.state.pool
    with pool.connection() as conn:
        conn.execute("SELECT 1")

    return {"status": "healthy"}
