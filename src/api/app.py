# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI Application Factory.

This module provides the main application factory for the AgriConnect
authentication API.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError

from src.api.middleware.auth import AuthMiddleware
from src.api.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from src.api.routes import admin, auth, health, users
from src.core.config import get_settings
from src.core.errors import AppError
from src.infrastructure.cache import (
    RedisError,
    close_cache,
    close_redis,
    get_redis,
    init_cache,
    init_redis,
)
from src.infrastructure.database.connection import (
    DatabaseError,
    close_central_database,
    create_schema,
    init_central_database,
)
from src.infrastructure.notifications import reset_notification_service
from src.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events for the application.
    Initializes and cleans up:
    - Credential store connection (and schema, when enabled)
    - Redis client and the resilient cache facade

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings = get_settings()
    setup_logging(settings)
    logger.info(
        "Starting AgriConnect auth API (environment=%s, debug=%s)",
        settings.environment,
        settings.debug,
    )

    # =========================================================================
    # Startup
    # =========================================================================

    # Initialize credential store
    try:
        await init_central_database(settings)
        if settings.central_db.auto_create_schema:
            await create_schema()
        logger.info("Database connection initialized")
    except (DatabaseError, SQLAlchemyError, OSError) as e:
        logger.warning("Failed to initialize database connection: %s", str(e))

    # Initialize Redis; the cache facade wraps it even when the first
    # connection fails so the breaker can recover later.
    try:
        await init_redis(settings)
        logger.info("Redis connection initialized")
    except RedisError as e:
        logger.warning("Failed to initialize Redis: %s", str(e))
    try:
        init_cache(settings, get_redis())
    except RedisError as e:
        logger.warning("Cache facade unavailable: %s", str(e))

    yield

    # =========================================================================
    # Shutdown
    # =========================================================================

    close_cache()
    reset_notification_service()

    # Close Redis
    try:
        await close_redis()
        logger.info("Redis connection closed")
    except RedisError as e:
        logger.warning("Error closing Redis: %s", str(e))

    # Close database
    await close_central_database()
    logger.info("Shutting down AgriConnect auth API")


# =========================================================================
# Exception handlers
# =========================================================================


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an AppError as ``{"error": message}`` with its status."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def validation_error_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Render request validation failures as 400 with the first message."""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Hide internal failures behind a generic 500."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    This factory function creates a new FastAPI instance with all
    middleware, routes, and configurations applied.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="AgriConnect Auth API",
        description="Authentication and authorization for the AgriConnect platform",
        version="1.0.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        # Disable automatic redirects from /path to /path/
        # This prevents 307 redirects that lose Authorization headers
        redirect_slashes=False,
    )

    # =========================================================================
    # State
    # =========================================================================
    app.state.limiter = limiter

    # =========================================================================
    # Exception handlers
    # =========================================================================
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # =========================================================================
    # Middleware (order matters - last added is first executed)
    # =========================================================================

    # Auth middleware - validates session tokens
    app.add_middleware(AuthMiddleware)

    # CORS middleware (added last so it runs first and answers preflights)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins_list,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
    )

    # =========================================================================
    # Routes
    # =========================================================================
    app.include_router(health.router, tags=["Health"])
    app.include_router(auth.router, prefix="/auth", tags=["Auth"])
    app.include_router(users.router, prefix="/users", tags=["Users"])
    app.include_router(admin.router, prefix="/admin", tags=["Admin"])

    return app
