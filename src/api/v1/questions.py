# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Question bank API endpoints."""

from fastapi import APIRouter, Depends, status

from src.api.dependencies import get_assessment_service
from src.domains.assessment.service import AssessmentService
from src.models.assessment import QuestionCreate, QuestionResponse

router = APIRouter()


@router.post(
    "",
    response_model=QuestionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create question",
)
async def create_question(
    data: QuestionCreate,
    service: AssessmentService = Depends(get_assessment_service),
) -> QuestionResponse:
    """Add a question to a unit's question bank."""
    return await service.create_question(data)
