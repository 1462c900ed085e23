# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exceptions shared by the assessment lifecycle services.

Callers catch the three families below. ValidationError and NotFoundError
mean the request itself is wrong. TransactionError means the store failed
part way through a write; the write was rolled back and may be retried.
"""

from typing import Optional


class AssessmentEngineError(Exception):
    """Base exception for assessment lifecycle errors."""

    pass


class ValidationError(AssessmentEngineError):
    """Raised when input is malformed or violates a business rule."""

    pass


class NoMatchingQuestionsError(ValidationError):
    """Raised when no approved question matches the selection criteria."""

    pass


class DuplicateCompositionError(ValidationError):
    """Raised when a question is already composed into the assessment."""

    pass


class NotFoundError(AssessmentEngineError):
    """Raised when a referenced entity does not exist."""

    pass


class AssessmentNotFoundError(NotFoundError):
    """Raised when assessment is not found."""

    pass


class QuestionNotFoundError(NotFoundError):
    """Raised when question is not found."""

    pass


class AttemptNotFoundError(NotFoundError):
    """Raised when attempt is not found."""

    pass


class StudentNotFoundError(NotFoundError):
    """Raised when student is not found."""

    pass


class CompositionNotFoundError(NotFoundError):
    """Raised when a question is not composed into the assessment."""

    pass


class TransactionError(AssessmentEngineError):
    """Raised when a multi-step write failed and was rolled back.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message
