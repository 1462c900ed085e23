# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Automatic grading of submitted responses.

Multiple-choice and short-answer responses earn full marks when their
normalized text equals any correct answer. List-based responses earn marks
in proportion to the number of correct items given.
"""

import math
import re
from dataclasses import dataclass
from typing import Iterable

from src.models.common import QuestionType

# Punctuation not preceded by a digit, so "3.5" keeps its decimal point
_PUNCTUATION = re.compile(r"(?<!\d)[.,;:!?]")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class Evaluation:
    """Outcome of grading one response."""

    is_correct: bool
    marks_awarded: int


def normalize_answer(text: str | None) -> str:
    """Lowercase, trim, collapse whitespace and drop stray punctuation."""
    if not text:
        return ""
    normalized = _WHITESPACE.sub(" ", text.strip().lower())
    return _PUNCTUATION.sub("", normalized).strip()


def evaluate_response(
    question_type: str,
    response_text: str | None,
    correct_answers: Iterable[str],
    marks: int,
) -> Evaluation:
    """Grade a single response against a question's correct answers.

    Args:
        question_type: One of the QuestionType values.
        response_text: The student's answer.
        correct_answers: Accepted answers for the question.
        marks: Marks the question is worth.

    Returns:
        Evaluation with correctness and awarded marks.
    """
    answers = [answer for answer in correct_answers if answer is not None]
    if not response_text or not answers:
        return Evaluation(is_correct=False, marks_awarded=0)

    if question_type == QuestionType.LIST_BASED.value:
        return _evaluate_list(response_text, answers, marks)

    given = normalize_answer(response_text)
    if any(given == normalize_answer(answer) for answer in answers):
        return Evaluation(is_correct=True, marks_awarded=marks)
    return Evaluation(is_correct=False, marks_awarded=0)


def _split_items(text: str) -> list[str]:
    return [item.strip().lower() for item in text.split(",") if item.strip()]


def _evaluate_list(response_text: str, answers: list[str], marks: int) -> Evaluation:
    given = set(_split_items(response_text))
    expected = [item for answer in answers for item in _split_items(answer)]
    if not expected:
        return Evaluation(is_correct=False, marks_awarded=0)
    matched = sum(1 for item in expected if item in given)

    # Half-up rounding: 1 of 2 items on a 5-mark question earns 3
    awarded = math.floor(marks * matched / len(expected) + 0.5)
    return Evaluation(is_correct=awarded == marks, marks_awarded=awarded)
