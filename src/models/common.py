# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared enums and base schema."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base for schemas that are built from ORM rows."""

    model_config = ConfigDict(from_attributes=True)


class QuestionType(str, Enum):
    """Supported question types."""

    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    SHORT_ANSWER = "SHORT_ANSWER"
    LIST_BASED = "LIST_BASED"


class Difficulty(str, Enum):
    """Question difficulty levels."""

    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


class AttemptStatus(str, Enum):
    """Lifecycle status of an attempt."""

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class PracticeStatus(str, Enum):
    """Status of a canonical practice result."""

    CREATED = "CREATED"
    COMPLETED = "COMPLETED"
