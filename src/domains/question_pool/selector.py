# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Randomized selection of approved questions for practice tests.

Selection returns fewer questions than requested when the pool is small and
reports the difference as a shortfall. Only an empty pool is an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.exceptions import NoMatchingQuestionsError, ValidationError
from src.domains.transaction import unit_of_work
from src.infrastructure.database.connection import Database
from src.infrastructure.database.models import Question
from src.models.common import Difficulty, QuestionType
from src.models.practice import PracticeTestCriteria

logger = logging.getLogger(__name__)


@dataclass
class SelectionResult:
    """Questions picked for a practice test.

    Attributes:
        questions: Selected questions in random order.
        requested: Number of questions asked for.
        shortfall: How many fewer than requested were available.
    """

    questions: list[Question] = field(default_factory=list)
    requested: int = 0
    shortfall: int = 0

    @property
    def selected(self) -> int:
        return len(self.questions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "question_ids": [question.id for question in self.questions],
            "requested": self.requested,
            "selected": self.selected,
            "shortfall": self.shortfall,
        }


class QuestionPoolSelector:
    """Builds filtered random question sets from the approved question bank.

    Attributes:
        database: Database holding the question bank.
    """

    def __init__(self, database: Database) -> None:
        self.database = database

    async def select(
        self,
        session: AsyncSession,
        unit_code: str,
        count: int,
        question_type: QuestionType | None = None,
        difficulty: Difficulty | None = None,
        topics: Sequence[str] | None = None,
    ) -> SelectionResult:
        """Pick up to ``count`` random approved questions for a unit.

        Args:
            session: Session of the surrounding transaction.
            unit_code: Unit whose question bank is used.
            count: Number of questions requested.
            question_type: Only questions of this type, if given.
            difficulty: Only questions of this difficulty, if given.
            topics: Only questions on one of these topics, if non-empty.

        Returns:
            SelectionResult with the questions and the shortfall.

        Raises:
            ValidationError: If count is less than one.
            NoMatchingQuestionsError: If no question matches.
        """
        if count < 1:
            raise ValidationError("At least one question must be requested")

        query = select(Question).where(
            Question.unit_code == unit_code,
            Question.approved.is_(True),
        )
        if question_type is not None:
            query = query.where(Question.type == question_type.value)
        if difficulty is not None:
            query = query.where(Question.difficulty == difficulty.value)
        if topics:
            query = query.where(Question.topic.in_(list(topics)))

        query = query.order_by(func.random()).limit(count)

        result = await session.execute(query)
        questions = list(result.scalars().all())

        if not questions:
            raise NoMatchingQuestionsError(
                f"No approved questions match the criteria for unit {unit_code}"
            )

        shortfall = count - len(questions)
        if shortfall:
            logger.info(
                "Question pool short: unit=%s, requested=%d, available=%d",
                unit_code,
                count,
                len(questions),
            )

        return SelectionResult(questions=questions, requested=count, shortfall=shortfall)

    async def generate_question_set(self, criteria: PracticeTestCriteria) -> SelectionResult:
        """Select questions for the given criteria in a read-only transaction.

        Args:
            criteria: Practice test criteria.

        Returns:
            SelectionResult with the questions and the shortfall.
        """
        async with unit_of_work(self.database, "select practice questions") as session:
            return await self.select(
                session,
                unit_code=criteria.unit_code,
                count=criteria.question_count,
                question_type=criteria.question_type,
                difficulty=criteria.difficulty,
                topics=criteria.topics,
            )
