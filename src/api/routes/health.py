# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Health check endpoints.

This module provides health and readiness endpoints for the API.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from src.infrastructure.database import Database

logger = logging.getLogger(__name__)

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()


class ComponentHealth(BaseModel):
    """Individual component health status."""
    status: str = Field(description="Component status")
    latency_ms: float | None = Field(None, description="Response latency in ms")
    message: str | None = Field(None, description="Additional status message")


class SchedulerHealth(BaseModel):
    """Periodic scheduler status."""
    status: str = Field(description="running, stopped or disabled")
    task_count: int = 0
    total_runs: int = 0
    total_errors: int = 0
    tasks: list[dict[str, Any]] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(description="Overall health status")
    timestamp: datetime = Field(description="Current server timestamp")
    version: str = Field(description="API version")
    environment: str = Field(description="Deployment environment")
    uptime_seconds: int = Field(description="Server uptime in seconds")
    database: ComponentHealth
    scheduler: SchedulerHealth


class ReadinessResponse(BaseModel):
    """Readiness check response model."""
    ready: bool = Field(description="Whether the service is ready")
    checks: dict[str, Any] = Field(description="Individual check results")


async def check_database(database: Database | None) -> ComponentHealth:
    """Check the relational store connection."""
    if database is None:
        return ComponentHealth(status="unhealthy", message="Database not initialized")

    start = time.time()
    if not await database.check_connection():
        logger.error("Database health check failed")
        return ComponentHealth(status="unhealthy", message="Database unreachable")

    latency = (time.time() - start) * 1000
    return ComponentHealth(status="healthy", latency_ms=round(latency, 2))


def check_scheduler(request: Request) -> SchedulerHealth:
    """Report the periodic scheduler state."""
    settings = request.app.state.settings
    scheduler = request.app.state.scheduler

    if not settings.scheduler.enabled:
        return SchedulerHealth(status="disabled")
    if scheduler is None or not scheduler.is_running:
        return SchedulerHealth(status="stopped")

    stats = scheduler.get_stats()
    return SchedulerHealth(
        status="running",
        task_count=stats["task_count"],
        total_runs=stats["total_runs"],
        total_errors=stats["total_errors"],
        tasks=stats["tasks"],
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Check if the API is healthy with component details.

    Returns:
        HealthResponse with database and scheduler status.
    """
    settings = request.app.state.settings
    db_health = await check_database(request.app.state.database)
    scheduler_health = check_scheduler(request)

    if db_health.status != "healthy":
        overall_status = "unhealthy"
    elif scheduler_health.status == "stopped":
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    return HealthResponse(
        status=overall_status,
        timestamp=datetime.now(timezone.utc),
        version="1.0.0",
        environment=settings.environment,
        uptime_seconds=int(time.time() - _server_start_time),
        database=db_health,
        scheduler=scheduler_health,
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(request: Request) -> ReadinessResponse:
    """Check if the API is ready to accept traffic.

    Returns:
        ReadinessResponse with individual check results.
    """
    db_health = await check_database(request.app.state.database)
    checks = {"database": {"status": db_health.status, "latency_ms": db_health.latency_ms}}
    return ReadinessResponse(ready=db_health.status == "healthy", checks=checks)
