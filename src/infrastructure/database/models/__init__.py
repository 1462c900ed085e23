# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models.

Importing this package registers every table on ``Base.metadata``.
"""

from src.infrastructure.database.models.assessment import (
    Assessment,
    AssessmentQuestion,
    Question,
)
from src.infrastructure.database.models.attempt import (
    Student,
    StudentAssessment,
    StudentResponse,
)
from src.infrastructure.database.models.base import Base, TimestampMixin, generate_id
from src.infrastructure.database.models.practice import PracticeAssessment

__all__ = [
    "Base",
    "TimestampMixin",
    "generate_id",
    "Assessment",
    "AssessmentQuestion",
    "Question",
    "Student",
    "StudentAssessment",
    "StudentResponse",
    "PracticeAssessment",
]
