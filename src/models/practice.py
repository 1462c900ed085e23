# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Practice test and canonical practice result schemas."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from src.models.assessment import AssessmentResponse
from src.models.common import BaseSchema, Difficulty, PracticeStatus, QuestionType

# Labels a selection form may send that mean "no filter"
_ANY_LABELS = {"", "ANY", "MIXED", "ALL"}


def _normalize_label(value: str) -> str:
    return "_".join(value.strip().upper().replace("-", " ").split())


class PracticeTestCriteria(BaseModel):
    """Criteria for generating a practice test.

    question_type and difficulty accept the enum values as well as display
    labels such as "Multiple Choice" or "Easy". "Any" and "Mixed" disable
    the filter.
    """

    student_id: str
    unit_code: str = Field(min_length=1, max_length=50)
    question_type: QuestionType | None = None
    difficulty: Difficulty | None = None
    topics: list[str] = Field(default_factory=list)
    question_count: int = Field(ge=1)
    title: str | None = Field(default=None, max_length=200)
    duration_minutes: int | None = Field(default=None, ge=1)

    @field_validator("question_type", "difficulty", mode="before")
    @classmethod
    def normalize_filter(cls, value: object) -> object:
        if isinstance(value, str):
            label = _normalize_label(value)
            if label in _ANY_LABELS:
                return None
            return label
        return value

    @field_validator("topics")
    @classmethod
    def drop_blank_topics(cls, value: list[str]) -> list[str]:
        return [topic.strip() for topic in value if topic and topic.strip()]


class PracticeTestResponse(BaseModel):
    """Generated practice test with selection metadata."""

    assessment: AssessmentResponse
    requested: int
    selected: int
    shortfall: int


class PracticeResultResponse(BaseSchema):
    """Canonical practice result row."""

    practice_id: str
    student_id: str
    assessment_id: str
    title: str
    unit_code: str
    score: int
    total_possible: int
    percentage: float
    grade: str
    completion_date: datetime
    status: PracticeStatus
