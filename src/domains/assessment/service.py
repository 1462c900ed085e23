# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Assessment service for definitions, composition and practice tests.

This module provides the AssessmentService class for:
- Assessment creation, lookup, update and deletion
- Question bank entries
- Composing questions into assessments while keeping total_marks in step
- Generating practice tests from the question bank

total_marks is only ever changed with an in-database increment or
decrement, issued in the same transaction as the composition row and after
the assessment row has been locked.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config.settings import PracticeSettings
from src.domains.assessment.activation import ActivationService
from src.domains.exceptions import (
    AssessmentNotFoundError,
    CompositionNotFoundError,
    DuplicateCompositionError,
    QuestionNotFoundError,
    StudentNotFoundError,
    ValidationError,
)
from src.domains.practice_result.reconciliation import ReconciliationEngine
from src.domains.question_pool.selector import QuestionPoolSelector
from src.domains.transaction import unit_of_work
from src.infrastructure.database.connection import Database
from src.infrastructure.database.models import (
    Assessment,
    AssessmentQuestion,
    Question,
    Student,
)
from src.models.assessment import (
    AssessmentCreate,
    AssessmentResponse,
    AssessmentUpdate,
    ComposedQuestionResponse,
    QuestionCreate,
    QuestionResponse,
)
from src.models.practice import PracticeTestCriteria, PracticeTestResponse
from src.utils.datetime import Clock, ensure_utc, utc_now

logger = logging.getLogger(__name__)

# Columns an update may change but never clear
REQUIRED_FIELDS = ("title", "unit_code", "duration_minutes", "allow_offline")


def normalize_title(title: str) -> str:
    """Uppercase a title and strip all whitespace from it."""
    return "".join(title.upper().split())


def practice_test_title(criteria: PracticeTestCriteria) -> str:
    """Build the display title of a generated practice test.

    The difficulty and question type are appended unless the requested
    title already mentions them, e.g. "Practice Test - CS101 (Easy) -
    Multiple choice".
    """
    title = (criteria.title or "").strip() or f"Practice Test - {criteria.unit_code}"

    if criteria.difficulty is not None:
        label = criteria.difficulty.value
        if label.lower() not in title.lower():
            title += f" ({label.capitalize()})"

    if criteria.question_type is not None:
        label = criteria.question_type.value.replace("_", " ")
        if label.lower() not in title.lower():
            title += f" - {label.capitalize()}"

    return title


class AssessmentService:
    """Service for assessment definitions and their question composition.

    Attributes:
        database: Database holding assessments and the question bank.
        clock: Source of the current time.
        practice_settings: Limits for generated practice tests.
    """

    def __init__(
        self,
        database: Database,
        clock: Clock = utc_now,
        practice_settings: PracticeSettings | None = None,
    ) -> None:
        """Initialize assessment service.

        Args:
            database: Database holding assessments and the question bank.
            clock: Source of the current time.
            practice_settings: Limits for generated practice tests.
        """
        self.database = database
        self.clock = clock
        self.practice_settings = practice_settings or PracticeSettings()
        self.activation = ActivationService(database, clock)
        self.selector = QuestionPoolSelector(database)
        self.reconciliation = ReconciliationEngine(database, clock)

    # =========================================================================
    # Assessments
    # =========================================================================

    async def create_assessment(self, data: AssessmentCreate) -> AssessmentResponse:
        """Create an assessment with no questions.

        Args:
            data: Assessment definition.

        Returns:
            The created assessment.

        Raises:
            ValidationError: If the title is blank once whitespace is removed.
        """
        title = normalize_title(data.title)
        if not title:
            raise ValidationError("Assessment title must not be blank")

        assessment = Assessment(
            title=title,
            description=data.description,
            unit_code=data.unit_code,
            created_by=data.created_by,
            start_time=ensure_utc(data.start_time),
            end_time=ensure_utc(data.end_time),
            duration_minutes=data.duration_minutes,
            is_practice=data.is_practice,
            is_active=False,
            total_marks=0,
            allow_offline=data.allow_offline,
        )

        async with unit_of_work(self.database, "create assessment") as session:
            session.add(assessment)
            await session.flush()

        logger.info(
            "Created assessment: id=%s, title=%s, unit=%s",
            assessment.id,
            assessment.title,
            assessment.unit_code,
        )
        return AssessmentResponse.model_validate(assessment)

    async def get_assessment(self, assessment_id: str) -> AssessmentResponse:
        """Get an assessment, refreshing its active flag against the clock.

        Args:
            assessment_id: Assessment identifier.

        Returns:
            The assessment.

        Raises:
            AssessmentNotFoundError: If assessment not found.
        """
        async with unit_of_work(self.database, "load assessment") as session:
            assessment = await self._get_assessment(session, assessment_id)
            await self.activation.refresh(session, assessment)
            return AssessmentResponse.model_validate(assessment)

    async def list_assessments(self, unit_code: str | None = None) -> list[AssessmentResponse]:
        """List assessments, optionally for one unit.

        Args:
            unit_code: Only assessments of this unit, if given.

        Returns:
            Assessments ordered by creation time, newest first.
        """
        query = select(Assessment).order_by(Assessment.created_at.desc())
        if unit_code:
            query = query.where(Assessment.unit_code == unit_code)

        async with unit_of_work(self.database, "list assessments") as session:
            result = await session.execute(query)
            return [AssessmentResponse.model_validate(a) for a in result.scalars().all()]

    async def update_assessment(
        self,
        assessment_id: str,
        data: AssessmentUpdate,
    ) -> AssessmentResponse:
        """Update an assessment definition.

        Args:
            assessment_id: Assessment identifier.
            data: Fields to change.

        Returns:
            The updated assessment.

        Raises:
            AssessmentNotFoundError: If assessment not found.
            ValidationError: If a required field is cleared or the resulting
                time window or title is invalid.
        """
        changes = data.model_dump(exclude_unset=True)
        cleared = [name for name in REQUIRED_FIELDS if name in changes and changes[name] is None]
        if cleared:
            raise ValidationError(f"Fields cannot be null: {', '.join(cleared)}")

        async with unit_of_work(self.database, "update assessment") as session:
            assessment = await self._get_assessment(session, assessment_id, lock=True)

            if "title" in changes:
                changes["title"] = normalize_title(changes["title"])
                if not changes["title"]:
                    raise ValidationError("Assessment title must not be blank")

            for field_name in ("start_time", "end_time"):
                if field_name in changes:
                    changes[field_name] = ensure_utc(changes[field_name])

            for field_name, value in changes.items():
                setattr(assessment, field_name, value)

            start = ensure_utc(assessment.start_time)
            end = ensure_utc(assessment.end_time)
            if start and end and end <= start:
                raise ValidationError("end_time must be after start_time")

            await session.flush()
            await self.activation.refresh(session, assessment)

        logger.info("Updated assessment %s: %s", assessment_id, sorted(changes))
        return AssessmentResponse.model_validate(assessment)

    async def delete_assessment(self, assessment_id: str) -> None:
        """Delete an assessment with its compositions, attempts and results.

        Args:
            assessment_id: Assessment identifier.

        Raises:
            AssessmentNotFoundError: If assessment not found.
        """
        async with unit_of_work(self.database, "delete assessment") as session:
            await self._get_assessment(session, assessment_id, lock=True)
            await session.execute(delete(Assessment).where(Assessment.id == assessment_id))

        logger.info("Deleted assessment %s", assessment_id)

    # =========================================================================
    # Question bank
    # =========================================================================

    async def create_question(self, data: QuestionCreate) -> QuestionResponse:
        """Add a question to a unit's question bank.

        Args:
            data: Question definition.

        Returns:
            The created question.
        """
        question = Question(
            text=data.text,
            type=data.type.value,
            options=list(data.options),
            correct_answers=list(data.correct_answers),
            marks=data.marks,
            unit_code=data.unit_code,
            topic=data.topic,
            difficulty=data.difficulty.value,
            approved=data.approved,
            created_by=data.created_by,
        )

        async with unit_of_work(self.database, "create question") as session:
            session.add(question)
            await session.flush()

        return QuestionResponse.model_validate(question)

    async def list_questions(self, assessment_id: str) -> list[ComposedQuestionResponse]:
        """List the questions composed into an assessment.

        Args:
            assessment_id: Assessment identifier.

        Returns:
            Questions in composition order.

        Raises:
            AssessmentNotFoundError: If assessment not found.
        """
        async with unit_of_work(self.database, "list assessment questions") as session:
            await self._get_assessment(session, assessment_id)
            result = await session.execute(
                select(Question, AssessmentQuestion.order)
                .join(AssessmentQuestion, AssessmentQuestion.question_id == Question.id)
                .where(AssessmentQuestion.assessment_id == assessment_id)
                .order_by(AssessmentQuestion.order, Question.id)
            )
            return [
                ComposedQuestionResponse.model_validate(
                    {**QuestionResponse.model_validate(question).model_dump(), "order": order}
                )
                for question, order in result.all()
            ]

    # =========================================================================
    # Composition
    # =========================================================================

    async def compose_question(
        self,
        assessment_id: str,
        question_id: str,
        order: int = 0,
    ) -> AssessmentResponse:
        """Add a question to an assessment and raise its total marks.

        Args:
            assessment_id: Assessment identifier.
            question_id: Question identifier.
            order: Position of the question in the assessment.

        Returns:
            The assessment with its new total.

        Raises:
            AssessmentNotFoundError: If assessment not found.
            QuestionNotFoundError: If question not found.
            DuplicateCompositionError: If the question is already composed.
        """
        async with unit_of_work(self.database, "compose question") as session:
            assessment = await self._get_assessment(session, assessment_id, lock=True)
            question = await session.get(Question, question_id)
            if question is None:
                raise QuestionNotFoundError(f"Question {question_id} not found")

            await self._compose(session, assessment_id, question, order)
            await session.refresh(assessment)

        logger.info(
            "Composed question %s into assessment %s: total_marks=%d",
            question_id,
            assessment_id,
            assessment.total_marks,
        )
        return AssessmentResponse.model_validate(assessment)

    async def remove_question(self, assessment_id: str, question_id: str) -> AssessmentResponse:
        """Remove a question from an assessment and lower its total marks.

        Args:
            assessment_id: Assessment identifier.
            question_id: Question identifier.

        Returns:
            The assessment with its new total.

        Raises:
            AssessmentNotFoundError: If assessment not found.
            CompositionNotFoundError: If the question is not composed.
        """
        async with unit_of_work(self.database, "remove question") as session:
            assessment = await self._get_assessment(session, assessment_id, lock=True)

            result = await session.execute(
                select(AssessmentQuestion.id, Question.marks)
                .join(Question, Question.id == AssessmentQuestion.question_id)
                .where(
                    AssessmentQuestion.assessment_id == assessment_id,
                    AssessmentQuestion.question_id == question_id,
                )
            )
            row = result.one_or_none()
            if row is None:
                raise CompositionNotFoundError(
                    f"Question {question_id} is not part of assessment {assessment_id}"
                )

            await session.execute(
                delete(AssessmentQuestion).where(AssessmentQuestion.id == row.id)
            )
            await session.execute(
                update(Assessment)
                .where(Assessment.id == assessment_id)
                .values(total_marks=Assessment.total_marks - row.marks)
            )
            await session.refresh(assessment)

        logger.info(
            "Removed question %s from assessment %s: total_marks=%d",
            question_id,
            assessment_id,
            assessment.total_marks,
        )
        return AssessmentResponse.model_validate(assessment)

    async def _compose(
        self,
        session: AsyncSession,
        assessment_id: str,
        question: Question,
        order: int,
    ) -> None:
        existing = await session.execute(
            select(AssessmentQuestion.id).where(
                AssessmentQuestion.assessment_id == assessment_id,
                AssessmentQuestion.question_id == question.id,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise DuplicateCompositionError(
                f"Question {question.id} is already part of assessment {assessment_id}"
            )

        try:
            async with session.begin_nested():
                session.add(
                    AssessmentQuestion(
                        assessment_id=assessment_id,
                        question_id=question.id,
                        order=order,
                    )
                )
                await session.flush()
        except IntegrityError as e:
            raise DuplicateCompositionError(
                f"Question {question.id} is already part of assessment {assessment_id}"
            ) from e

        await session.execute(
            update(Assessment)
            .where(Assessment.id == assessment_id)
            .values(total_marks=Assessment.total_marks + question.marks)
        )

    # =========================================================================
    # Practice tests
    # =========================================================================

    async def create_practice_test(self, criteria: PracticeTestCriteria) -> PracticeTestResponse:
        """Generate a practice test for a student.

        Questions are drawn from the approved bank, composed in order, and a
        CREATED practice result is recorded for the student, all in one
        transaction.

        Args:
            criteria: Selection criteria and the requesting student.

        Returns:
            The practice test with requested, selected and shortfall counts.

        Raises:
            StudentNotFoundError: If student not found.
            ValidationError: If too many questions are requested.
            NoMatchingQuestionsError: If no question matches the criteria.
        """
        if criteria.question_count > self.practice_settings.max_question_count:
            raise ValidationError(
                f"At most {self.practice_settings.max_question_count} questions "
                "can be requested"
            )

        async with unit_of_work(self.database, "create practice test") as session:
            student = await session.get(Student, criteria.student_id)
            if student is None:
                raise StudentNotFoundError(f"Student {criteria.student_id} not found")

            selection = await self.selector.select(
                session,
                unit_code=criteria.unit_code,
                count=criteria.question_count,
                question_type=criteria.question_type,
                difficulty=criteria.difficulty,
                topics=criteria.topics,
            )

            assessment = Assessment(
                title=practice_test_title(criteria),
                unit_code=criteria.unit_code,
                created_by=student.user_id,
                duration_minutes=(
                    criteria.duration_minutes or self.practice_settings.default_duration_minutes
                ),
                is_practice=True,
                is_active=True,
                total_marks=0,
                allow_offline=False,
            )
            session.add(assessment)
            await session.flush()

            for position, question in enumerate(selection.questions, start=1):
                await self._compose(session, assessment.id, question, position)
            await session.refresh(assessment)

            await self.reconciliation.upsert_placeholder(
                session, student.student_id, assessment
            )

        logger.info(
            "Created practice test %s for student %s: %d of %d questions, total_marks=%d",
            assessment.id,
            criteria.student_id,
            selection.selected,
            selection.requested,
            assessment.total_marks,
        )
        return PracticeTestResponse(
            assessment=AssessmentResponse.model_validate(assessment),
            requested=selection.requested,
            selected=selection.selected,
            shortfall=selection.shortfall,
        )

    async def list_practice_tests(self, student_id: str) -> list[AssessmentResponse]:
        """List practice tests a student created.

        Args:
            student_id: Student identifier.

        Returns:
            Practice assessments, newest first.

        Raises:
            StudentNotFoundError: If student not found.
        """
        async with unit_of_work(self.database, "list practice tests") as session:
            student = await session.get(Student, student_id)
            if student is None:
                raise StudentNotFoundError(f"Student {student_id} not found")

            result = await session.execute(
                select(Assessment)
                .where(
                    Assessment.is_practice.is_(True),
                    Assessment.created_by == student.user_id,
                )
                .order_by(Assessment.created_at.desc())
            )
            return [AssessmentResponse.model_validate(a) for a in result.scalars().all()]

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get_assessment(
        self,
        session: AsyncSession,
        assessment_id: str,
        lock: bool = False,
    ) -> Assessment:
        query = select(Assessment).where(Assessment.id == assessment_id)
        if lock:
            query = query.with_for_update()

        result = await session.execute(query)
        assessment = result.scalar_one_or_none()
        if assessment is None:
            raise AssessmentNotFoundError(f"Assessment {assessment_id} not found")
        return assessment
