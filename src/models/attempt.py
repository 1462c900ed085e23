# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Attempt and response schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.models.common import AttemptStatus, BaseSchema


class StartAttemptRequest(BaseModel):
    """Request to start an attempt."""

    student_id: str
    assessment_id: str
    is_offline: bool = False


class ResponseSubmission(BaseModel):
    """One answered question in a submission.

    When marks_awarded is omitted the response is graded against the question.
    """

    question_id: str
    response_text: str | None = None
    is_correct: bool | None = None
    marks_awarded: int | None = Field(default=None, ge=0)
    feedback: str | None = None


class SubmitAttemptRequest(BaseModel):
    """Full state of an attempt being saved.

    A missing attempt_id, or one that does not exist yet, inserts a new
    attempt. The responses list replaces any responses stored before.
    """

    attempt_id: str | None = None
    student_id: str
    assessment_id: str
    start_time: datetime | None = None
    end_time: datetime | None = None
    score: int | None = Field(default=None, ge=0)
    status: AttemptStatus = AttemptStatus.COMPLETED
    is_offline: bool = False
    responses: list[ResponseSubmission] = Field(default_factory=list)


class ResponseRecord(BaseSchema):
    """Stored response."""

    response_id: str
    question_id: str
    response_text: str | None = None
    is_correct: bool
    marks_awarded: int
    feedback: str | None = None


class AttemptSummary(BaseSchema):
    """Attempt without its responses."""

    attempt_id: str
    student_id: str
    assessment_id: str
    start_time: datetime
    end_time: datetime | None = None
    score: int
    total_possible: int
    status: AttemptStatus
    is_offline: bool


class AttemptResponse(AttemptSummary):
    """Attempt including its responses."""

    responses: list[ResponseRecord] = Field(default_factory=list)
