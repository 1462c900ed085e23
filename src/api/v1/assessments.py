# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Assessment API endpoints.

This module provides endpoints for assessments:
- POST / - Create an assessment
- GET / - List assessments, optionally by unit
- GET /{assessment_id} - Get an assessment
- PATCH /{assessment_id} - Update an assessment
- DELETE /{assessment_id} - Delete an assessment
- GET /{assessment_id}/questions - List composed questions
- POST /{assessment_id}/questions - Compose a question
- DELETE /{assessment_id}/questions/{question_id} - Remove a question
- GET /{assessment_id}/attempts - List attempts on the assessment

Example:
    POST /api/v1/assessments
    {
        "title": "Cat 1 Data Structures",
        "unit_code": "SCO200",
        "created_by": "lecturer-1",
        "start_time": "2025-03-01T09:00:00Z",
        "end_time": "2025-03-01T11:00:00Z",
        "duration_minutes": 60
    }
"""

import logging

from fastapi import APIRouter, Depends, Query, Response, status

from src.api.dependencies import get_assessment_service, get_attempt_service
from src.domains.assessment.service import AssessmentService
from src.domains.attempt.service import AttemptService
from src.models.assessment import (
    AssessmentCreate,
    AssessmentResponse,
    AssessmentUpdate,
    ComposedQuestionResponse,
    ComposeQuestionRequest,
)
from src.models.attempt import AttemptSummary

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=AssessmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create assessment",
)
async def create_assessment(
    data: AssessmentCreate,
    service: AssessmentService = Depends(get_assessment_service),
) -> AssessmentResponse:
    """Create an assessment with no questions."""
    return await service.create_assessment(data)


@router.get(
    "",
    response_model=list[AssessmentResponse],
    summary="List assessments",
)
async def list_assessments(
    unit_code: str | None = Query(None, description="Filter by unit code"),
    service: AssessmentService = Depends(get_assessment_service),
) -> list[AssessmentResponse]:
    """List assessments, newest first."""
    return await service.list_assessments(unit_code)


@router.get(
    "/{assessment_id}",
    response_model=AssessmentResponse,
    summary="Get assessment",
    description="Get an assessment. The active flag is brought up to date first.",
)
async def get_assessment(
    assessment_id: str,
    service: AssessmentService = Depends(get_assessment_service),
) -> AssessmentResponse:
    """Get an assessment by ID."""
    return await service.get_assessment(assessment_id)


@router.patch(
    "/{assessment_id}",
    response_model=AssessmentResponse,
    summary="Update assessment",
)
async def update_assessment(
    assessment_id: str,
    data: AssessmentUpdate,
    service: AssessmentService = Depends(get_assessment_service),
) -> AssessmentResponse:
    """Update an assessment definition."""
    return await service.update_assessment(assessment_id, data)


@router.delete(
    "/{assessment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete assessment",
    description="Delete an assessment with its questions mapping, attempts and results.",
)
async def delete_assessment(
    assessment_id: str,
    service: AssessmentService = Depends(get_assessment_service),
) -> Response:
    """Delete an assessment."""
    await service.delete_assessment(assessment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{assessment_id}/questions",
    response_model=list[ComposedQuestionResponse],
    summary="List assessment questions",
)
async def list_questions(
    assessment_id: str,
    service: AssessmentService = Depends(get_assessment_service),
) -> list[ComposedQuestionResponse]:
    """List questions in composition order."""
    return await service.list_questions(assessment_id)


@router.post(
    "/{assessment_id}/questions",
    response_model=AssessmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Compose question",
    description="Add a question to the assessment. total_marks grows by the question's marks.",
)
async def compose_question(
    assessment_id: str,
    data: ComposeQuestionRequest,
    service: AssessmentService = Depends(get_assessment_service),
) -> AssessmentResponse:
    """Compose a question into an assessment."""
    return await service.compose_question(assessment_id, data.question_id, data.order)


@router.delete(
    "/{assessment_id}/questions/{question_id}",
    response_model=AssessmentResponse,
    summary="Remove question",
)
async def remove_question(
    assessment_id: str,
    question_id: str,
    service: AssessmentService = Depends(get_assessment_service),
) -> AssessmentResponse:
    """Remove a question from an assessment."""
    return await service.remove_question(assessment_id, question_id)


@router.get(
    "/{assessment_id}/attempts",
    response_model=list[AttemptSummary],
    summary="List assessment attempts",
)
async def list_assessment_attempts(
    assessment_id: str,
    service: AttemptService = Depends(get_attempt_service),
) -> list[AttemptSummary]:
    """List all attempts on an assessment."""
    return await service.list_assessment_attempts(assessment_id)
