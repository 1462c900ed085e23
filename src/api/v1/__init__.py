# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

This package contains all v1 API endpoint definitions.
Each module provides a FastAPI router for a specific domain.

Modules:
    assessments: Assessment definitions and question composition.
    questions: Question bank entries.
    attempts: Attempt start, submission and lookups.
    practice: Practice tests, practice results and reconciliation.
"""

from fastapi import APIRouter

from src.api.v1 import assessments, attempts, practice, questions

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

# Include domain routers
router.include_router(assessments.router, prefix="/assessments", tags=["Assessments"])
router.include_router(questions.router, prefix="/questions", tags=["Questions"])
router.include_router(attempts.router, prefix="/attempts", tags=["Attempts"])
router.include_router(practice.router, prefix="/practice", tags=["Practice"])

__all__ = ["router"]
