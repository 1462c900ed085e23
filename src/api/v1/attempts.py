# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Attempt API endpoints.

This module provides endpoints for attempts:
- POST / - Start an attempt
- POST /submit - Save an attempt with its responses
- GET / - List a student's attempts
- GET /{attempt_id} - Get an attempt with its responses

Example:
    POST /api/v1/attempts/submit
    {
        "attempt_id": "6f1c...",
        "student_id": "s-1",
        "assessment_id": "a-1",
        "status": "COMPLETED",
        "responses": [{"question_id": "q-1", "response_text": "Paris"}]
    }
"""

import logging

from fastapi import APIRouter, Depends, Query, status

from src.api.dependencies import get_attempt_service
from src.domains.attempt.service import AttemptService
from src.models.attempt import (
    AttemptResponse,
    AttemptSummary,
    StartAttemptRequest,
    SubmitAttemptRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=AttemptSummary,
    status_code=status.HTTP_201_CREATED,
    summary="Start attempt",
)
async def start_attempt(
    data: StartAttemptRequest,
    service: AttemptService = Depends(get_attempt_service),
) -> AttemptSummary:
    """Start an attempt for a student."""
    return await service.start_attempt(data)


@router.post(
    "/submit",
    response_model=AttemptResponse,
    summary="Submit attempt",
    description=(
        "Save the attempt and replace its responses. A completed practice "
        "attempt also updates the student's practice result. Either everything "
        "is saved or nothing is; a 503 response may be retried."
    ),
)
async def submit_attempt(
    data: SubmitAttemptRequest,
    service: AttemptService = Depends(get_attempt_service),
) -> AttemptResponse:
    """Submit an attempt."""
    logger.info(
        "Submitting attempt: student=%s, assessment=%s, status=%s",
        data.student_id,
        data.assessment_id,
        data.status.value,
    )
    return await service.submit_attempt(data)


@router.get(
    "",
    response_model=list[AttemptSummary],
    summary="List student attempts",
)
async def list_attempts(
    student_id: str = Query(..., description="Student whose attempts are listed"),
    service: AttemptService = Depends(get_attempt_service),
) -> list[AttemptSummary]:
    """List a student's attempts, newest first."""
    return await service.list_attempts(student_id)


@router.get(
    "/{attempt_id}",
    response_model=AttemptResponse,
    summary="Get attempt",
)
async def get_attempt(
    attempt_id: str,
    service: AttemptService = Depends(get_attempt_service),
) -> AttemptResponse:
    """Get an attempt with its responses."""
    return await service.get_attempt(attempt_id)
