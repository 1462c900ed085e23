# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Practice test and practice result API endpoints.

This module provides endpoints for practice:
- POST /question-sets - Preview a random question selection
- POST /tests - Generate a practice test for a student
- GET /students/{student_id}/tests - List a student's practice tests
- GET /students/{student_id}/results - List canonical practice results
- POST /reconciliation/sweep - Run a reconciliation sweep

Example:
    POST /api/v1/practice/tests
    {
        "student_id": "s-1",
        "unit_code": "SCO200",
        "question_type": "Multiple Choice",
        "difficulty": "Easy",
        "topics": ["Sorting"],
        "question_count": 10
    }
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query, status

from src.api.dependencies import (
    get_assessment_service,
    get_question_selector,
    get_reconciliation_engine,
)
from src.domains.assessment.service import AssessmentService
from src.domains.practice_result.reconciliation import ReconciliationEngine
from src.domains.question_pool.selector import QuestionPoolSelector
from src.models.assessment import AssessmentResponse
from src.models.practice import (
    PracticeResultResponse,
    PracticeTestCriteria,
    PracticeTestResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/question-sets",
    summary="Select practice questions",
    description=(
        "Pick random approved questions matching the criteria. Fewer matches "
        "than requested is reported as a shortfall; no match is a 422."
    ),
)
async def generate_question_set(
    criteria: PracticeTestCriteria,
    selector: QuestionPoolSelector = Depends(get_question_selector),
) -> dict[str, Any]:
    """Select questions without creating a practice test."""
    selection = await selector.generate_question_set(criteria)
    return selection.to_dict()


@router.post(
    "/tests",
    response_model=PracticeTestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create practice test",
)
async def create_practice_test(
    criteria: PracticeTestCriteria,
    service: AssessmentService = Depends(get_assessment_service),
) -> PracticeTestResponse:
    """Generate a practice test for a student."""
    logger.info(
        "Creating practice test: student=%s, unit=%s, count=%d",
        criteria.student_id,
        criteria.unit_code,
        criteria.question_count,
    )
    return await service.create_practice_test(criteria)


@router.get(
    "/students/{student_id}/tests",
    response_model=list[AssessmentResponse],
    summary="List practice tests",
)
async def list_practice_tests(
    student_id: str,
    service: AssessmentService = Depends(get_assessment_service),
) -> list[AssessmentResponse]:
    """List practice tests the student created."""
    return await service.list_practice_tests(student_id)


@router.get(
    "/students/{student_id}/results",
    response_model=list[PracticeResultResponse],
    summary="List practice results",
)
async def list_practice_results(
    student_id: str,
    reconcile: bool = Query(True, description="Reconcile pending data first"),
    engine: ReconciliationEngine = Depends(get_reconciliation_engine),
) -> list[PracticeResultResponse]:
    """List the student's canonical practice results, newest first."""
    rows = await engine.list_results(student_id, reconcile=reconcile)
    return [PracticeResultResponse.model_validate(row) for row in rows]


@router.post(
    "/reconciliation/sweep",
    summary="Run reconciliation sweep",
)
async def run_reconciliation_sweep(
    engine: ReconciliationEngine = Depends(get_reconciliation_engine),
) -> dict[str, Any]:
    """Merge legacy attempts and placeholders into canonical results."""
    report = await engine.run_sweep()
    return report.to_dict()
