# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Assessment and question schemas."""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from src.models.common import BaseSchema, Difficulty, QuestionType
from src.utils.datetime import ensure_utc


class AssessmentCreate(BaseModel):
    """Request to create an assessment."""

    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    unit_code: str = Field(min_length=1, max_length=50)
    created_by: str = Field(min_length=1, max_length=36)
    start_time: datetime | None = None
    end_time: datetime | None = None
    duration_minutes: int = Field(default=0, ge=0)
    is_practice: bool = False
    allow_offline: bool = False

    @model_validator(mode="after")
    def check_window(self) -> "AssessmentCreate":
        start, end = ensure_utc(self.start_time), ensure_utc(self.end_time)
        if start and end and end <= start:
            raise ValueError("end_time must be after start_time")
        return self


class AssessmentUpdate(BaseModel):
    """Partial update of an assessment definition.

    total_marks and is_active are not editable here. The first follows the
    composed questions and the second follows the time window.
    """

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    unit_code: str | None = Field(default=None, min_length=1, max_length=50)
    start_time: datetime | None = None
    end_time: datetime | None = None
    duration_minutes: int | None = Field(default=None, ge=0)
    allow_offline: bool | None = None


class AssessmentResponse(BaseSchema):
    """Assessment as returned to callers."""

    id: str
    title: str
    description: str | None = None
    unit_code: str
    created_by: str
    start_time: datetime | None = None
    end_time: datetime | None = None
    duration_minutes: int
    is_active: bool
    is_practice: bool
    total_marks: int
    allow_offline: bool


class ComposeQuestionRequest(BaseModel):
    """Request to add a question to an assessment."""

    question_id: str
    order: int = Field(default=0, ge=0)


class QuestionCreate(BaseModel):
    """Request to add a question to the unit's question bank."""

    text: str = Field(min_length=1)
    type: QuestionType
    options: list[str] = Field(default_factory=list)
    correct_answers: list[str] = Field(min_length=1)
    marks: int = Field(gt=0)
    unit_code: str = Field(min_length=1, max_length=50)
    topic: str | None = None
    difficulty: Difficulty = Difficulty.MEDIUM
    approved: bool = False
    created_by: str | None = None


class QuestionResponse(BaseSchema):
    """Question as returned to callers."""

    id: str
    text: str
    type: QuestionType
    options: list[str]
    correct_answers: list[str]
    marks: int
    unit_code: str
    topic: str | None = None
    difficulty: Difficulty
    approved: bool


class ComposedQuestionResponse(QuestionResponse):
    """Question with its position inside an assessment."""

    order: int
