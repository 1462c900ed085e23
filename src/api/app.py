# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI Application Factory.

This module provides the main application factory for the assessment
lifecycle API.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.api.routes import health
from src.api.v1 import router as v1_router
from src.core.config import Settings, get_settings
from src.domains.assessment.activation import ActivationService
from src.domains.exceptions import NotFoundError, TransactionError, ValidationError
from src.domains.practice_result.reconciliation import ReconciliationEngine
from src.infrastructure.background import start_scheduler, stop_scheduler
from src.infrastructure.database import Database
from src.utils.datetime import Clock, utc_now
from src.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events for the application.
    Initializes and cleans up:
    - Database engine (and the schema when auto-creation is enabled)
    - Startup reconciliation sweep
    - APScheduler for the activation sweep

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings: Settings = app.state.settings
    setup_logging(settings)
    logger.info(
        "Starting assessment lifecycle API: environment=%s, debug=%s",
        settings.environment,
        settings.debug,
    )

    # =========================================================================
    # Startup
    # =========================================================================

    owns_database = app.state.database is None
    if owns_database:
        app.state.database = Database(settings.database)
    database: Database = app.state.database

    if settings.database.auto_create_schema:
        await database.create_all()
        logger.info("Database schema ensured")

    if settings.scheduler.reconcile_on_startup:
        try:
            engine = ReconciliationEngine(database, app.state.clock)
            report = await engine.run_sweep()
            logger.info("Startup reconciliation finished: %s", report.to_dict())
        except TransactionError:
            logger.exception("Startup reconciliation failed")

    if settings.scheduler.enabled:
        activation_service = ActivationService(database, app.state.clock)
        app.state.scheduler = await start_scheduler(settings, activation_service)
        logger.info("Scheduler started")

    yield

    # =========================================================================
    # Shutdown
    # =========================================================================

    if app.state.scheduler is not None:
        await stop_scheduler()
        app.state.scheduler = None
        logger.info("Scheduler stopped")

    if owns_database:
        await database.dispose()
        app.state.database = None
        logger.info("Database connections closed")

    logger.info("Shutting down assessment lifecycle API")


async def _validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc)},
    )


async def _not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": str(exc)},
    )


async def _transaction_error_handler(request: Request, exc: TransactionError) -> JSONResponse:
    logger.error("Transaction failed on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": exc.message, "retryable": True},
    )


def create_app(
    settings: Settings | None = None,
    database: Database | None = None,
    clock: Clock = utc_now,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings, defaults to get_settings().
        database: Database to use instead of one built from settings.
            A database passed in is not disposed at shutdown.
        clock: Source of the current time for the services.

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.api.title,
        description="Assessment lifecycle and practice-result reconciliation",
        version="1.0.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        redirect_slashes=False,
    )

    # =========================================================================
    # State
    # =========================================================================
    app.state.settings = settings
    app.state.database = database
    app.state.clock = clock
    app.state.scheduler = None

    # =========================================================================
    # Exception handlers
    # =========================================================================
    app.add_exception_handler(ValidationError, _validation_error_handler)
    app.add_exception_handler(NotFoundError, _not_found_handler)
    app.add_exception_handler(TransactionError, _transaction_error_handler)

    # =========================================================================
    # Routes
    # =========================================================================
    app.include_router(health.router, tags=["Health"])
    app.include_router(v1_router)

    return app
