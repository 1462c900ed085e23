# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.
Dependencies are used to:
- Get the database created at startup
- Get service instances bound to it

Example:
    @router.get("/assessments/{assessment_id}")
    async def get_assessment(
        assessment_id: str,
        service: AssessmentService = Depends(get_assessment_service),
    ):
        ...
"""

from fastapi import Depends, HTTPException, Request, status

from src.core.config import Settings
from src.domains.assessment.service import AssessmentService
from src.domains.attempt.service import AttemptService
from src.domains.practice_result.reconciliation import ReconciliationEngine
from src.domains.question_pool.selector import QuestionPoolSelector
from src.infrastructure.database import Database
from src.utils.datetime import Clock


def get_app_settings(request: Request) -> Settings:
    """Get the settings the application was created with."""
    return request.app.state.settings


def get_clock(request: Request) -> Clock:
    """Get the clock shared by the services."""
    return request.app.state.clock


def get_database(request: Request) -> Database:
    """Get the database initialized at startup.

    Raises:
        HTTPException: If the database is not initialized.
    """
    database = request.app.state.database
    if database is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not initialized",
        )
    return database


def get_reconciliation_engine(
    database: Database = Depends(get_database),
    clock: Clock = Depends(get_clock),
) -> ReconciliationEngine:
    """Get a reconciliation engine."""
    return ReconciliationEngine(database, clock)


def get_assessment_service(
    database: Database = Depends(get_database),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_app_settings),
) -> AssessmentService:
    """Get an assessment service."""
    return AssessmentService(database, clock, settings.practice)


def get_attempt_service(
    database: Database = Depends(get_database),
    clock: Clock = Depends(get_clock),
    engine: ReconciliationEngine = Depends(get_reconciliation_engine),
) -> AttemptService:
    """Get an attempt service."""
    return AttemptService(database, clock, engine)


def get_question_selector(database: Database = Depends(get_database)) -> QuestionPoolSelector:
    """Get a question pool selector."""
    return QuestionPoolSelector(database)
