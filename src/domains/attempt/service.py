# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Attempt service for recording students' passes through assessments.

This module provides the AttemptService class for:
- Starting attempts
- Submitting attempts with their responses as one atomic unit
- Attempt lookups for students and assessments

A submission writes the attempt row, replaces its responses and, for a
completed practice attempt, upserts the canonical practice result. All of it
commits together or not at all.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.domains.attempt.scoring import evaluate_response
from src.domains.exceptions import (
    AssessmentNotFoundError,
    AttemptNotFoundError,
    QuestionNotFoundError,
    StudentNotFoundError,
    ValidationError,
)
from src.domains.practice_result.reconciliation import ReconciliationEngine
from src.domains.transaction import unit_of_work
from src.infrastructure.database.connection import Database
from src.infrastructure.database.models import (
    Assessment,
    Question,
    Student,
    StudentAssessment,
    StudentResponse,
)
from src.models.attempt import (
    AttemptResponse,
    AttemptSummary,
    ResponseSubmission,
    StartAttemptRequest,
    SubmitAttemptRequest,
)
from src.models.common import AttemptStatus
from src.utils.datetime import Clock, ensure_utc, utc_now

logger = logging.getLogger(__name__)


class AttemptService:
    """Service for student attempts and their responses.

    Attributes:
        database: Database holding attempts.
        clock: Source of the current time.
        reconciliation: Engine that maintains canonical practice results.
    """

    def __init__(
        self,
        database: Database,
        clock: Clock = utc_now,
        reconciliation: ReconciliationEngine | None = None,
    ) -> None:
        """Initialize attempt service.

        Args:
            database: Database holding attempts.
            clock: Source of the current time.
            reconciliation: Engine used for completed practice attempts.
        """
        self.database = database
        self.clock = clock
        self.reconciliation = reconciliation or ReconciliationEngine(database, clock)

    async def start_attempt(self, request: StartAttemptRequest) -> AttemptSummary:
        """Start an attempt for a student.

        Args:
            request: Student and assessment.

        Returns:
            The new IN_PROGRESS attempt.

        Raises:
            StudentNotFoundError: If student not found.
            AssessmentNotFoundError: If assessment not found.
        """
        async with unit_of_work(self.database, "start attempt") as session:
            await self._get_student(session, request.student_id)
            assessment = await self._get_assessment(session, request.assessment_id)

            attempt = StudentAssessment(
                student_id=request.student_id,
                assessment_id=assessment.id,
                start_time=self.clock(),
                end_time=None,
                score=0,
                total_possible=assessment.total_marks,
                status=AttemptStatus.IN_PROGRESS.value,
                is_offline=request.is_offline,
            )
            session.add(attempt)
            await session.flush()

        logger.info(
            "Started attempt %s: student=%s, assessment=%s",
            attempt.attempt_id,
            attempt.student_id,
            attempt.assessment_id,
        )
        return AttemptSummary.model_validate(attempt)

    async def submit_attempt(self, request: SubmitAttemptRequest) -> AttemptResponse:
        """Save an attempt, its responses and any canonical practice result.

        Responses without marks are graded against their question. The score
        defaults to the sum of awarded marks.

        Args:
            request: Full attempt state.

        Returns:
            The stored attempt with its responses.

        Raises:
            StudentNotFoundError: If student not found.
            AssessmentNotFoundError: If assessment not found.
            QuestionNotFoundError: If a response names an unknown question.
            ValidationError: If the attempt belongs to another student or
                assessment, or the score exceeds the total possible.
            TransactionError: If the store failed; nothing was written.
        """
        async with unit_of_work(self.database, "submit attempt") as session:
            await self._get_student(session, request.student_id)
            assessment = await self._get_assessment(session, request.assessment_id)

            attempt = None
            if request.attempt_id:
                attempt = await session.get(
                    StudentAssessment, request.attempt_id, with_for_update=True
                )

            if attempt is None:
                attempt = StudentAssessment(
                    student_id=request.student_id,
                    assessment_id=assessment.id,
                    start_time=ensure_utc(request.start_time) or self.clock(),
                    total_possible=assessment.total_marks,
                    is_offline=request.is_offline,
                )
                if request.attempt_id:
                    attempt.attempt_id = request.attempt_id
                session.add(attempt)
            elif (
                attempt.student_id != request.student_id
                or attempt.assessment_id != request.assessment_id
            ):
                raise ValidationError(
                    f"Attempt {attempt.attempt_id} belongs to another student or assessment"
                )

            responses = await self._build_responses(session, request.responses)
            awarded = sum(response.marks_awarded for response in responses)

            total_possible = attempt.total_possible or assessment.total_marks
            score = request.score if request.score is not None else awarded
            if score > total_possible:
                raise ValidationError(
                    f"Score {score} exceeds total possible {total_possible}"
                )

            end_time = ensure_utc(request.end_time)
            if end_time is None and request.status == AttemptStatus.COMPLETED:
                end_time = self.clock()

            attempt.end_time = end_time
            attempt.score = score
            attempt.total_possible = total_possible
            attempt.status = request.status.value
            await session.flush()

            await session.execute(
                delete(StudentResponse).where(StudentResponse.attempt_id == attempt.attempt_id)
            )
            for response in responses:
                response.attempt_id = attempt.attempt_id
                session.add(response)
            await session.flush()

            if assessment.is_practice and request.status == AttemptStatus.COMPLETED:
                await self.reconciliation.upsert_from_attempt(session, attempt, assessment)

            attempt_id = attempt.attempt_id

        logger.info(
            "Submitted attempt %s: status=%s, score=%d/%d, responses=%d",
            attempt_id,
            request.status.value,
            score,
            total_possible,
            len(responses),
        )
        return await self.get_attempt(attempt_id)

    async def get_attempt(self, attempt_id: str) -> AttemptResponse:
        """Get an attempt with its responses.

        Args:
            attempt_id: Attempt identifier.

        Returns:
            The attempt.

        Raises:
            AttemptNotFoundError: If attempt not found.
        """
        async with unit_of_work(self.database, "load attempt") as session:
            result = await session.execute(
                select(StudentAssessment)
                .options(selectinload(StudentAssessment.responses))
                .where(StudentAssessment.attempt_id == attempt_id)
            )
            attempt = result.scalar_one_or_none()
            if attempt is None:
                raise AttemptNotFoundError(f"Attempt {attempt_id} not found")
            return AttemptResponse.model_validate(attempt)

    async def list_attempts(self, student_id: str) -> list[AttemptSummary]:
        """List a student's attempts, newest first.

        Args:
            student_id: Student identifier.

        Returns:
            Attempts ordered by start time, descending.

        Raises:
            StudentNotFoundError: If student not found.
        """
        async with unit_of_work(self.database, "list attempts") as session:
            await self._get_student(session, student_id)
            result = await session.execute(
                select(StudentAssessment)
                .where(StudentAssessment.student_id == student_id)
                .order_by(StudentAssessment.start_time.desc())
            )
            return [AttemptSummary.model_validate(a) for a in result.scalars().all()]

    async def list_assessment_attempts(self, assessment_id: str) -> list[AttemptSummary]:
        """List all attempts on an assessment.

        Args:
            assessment_id: Assessment identifier.

        Returns:
            Attempts ordered by start time, descending.

        Raises:
            AssessmentNotFoundError: If assessment not found.
        """
        async with unit_of_work(self.database, "list assessment attempts") as session:
            await self._get_assessment(session, assessment_id)
            result = await session.execute(
                select(StudentAssessment)
                .where(StudentAssessment.assessment_id == assessment_id)
                .order_by(StudentAssessment.start_time.desc())
            )
            return [AttemptSummary.model_validate(a) for a in result.scalars().all()]

    async def _build_responses(
        self,
        session: AsyncSession,
        submissions: list[ResponseSubmission],
    ) -> list[StudentResponse]:
        question_ids = {submission.question_id for submission in submissions}
        questions: dict[str, Question] = {}
        if question_ids:
            result = await session.execute(select(Question).where(Question.id.in_(question_ids)))
            questions = {question.id: question for question in result.scalars().all()}

        responses = []
        for submission in submissions:
            question = questions.get(submission.question_id)
            if question is None:
                raise QuestionNotFoundError(f"Question {submission.question_id} not found")

            if submission.marks_awarded is None:
                evaluation = evaluate_response(
                    question.type,
                    submission.response_text,
                    question.correct_answers,
                    question.marks,
                )
                marks_awarded = evaluation.marks_awarded
                is_correct = evaluation.is_correct
            else:
                marks_awarded = min(submission.marks_awarded, question.marks)
                is_correct = (
                    submission.is_correct
                    if submission.is_correct is not None
                    else marks_awarded == question.marks
                )

            responses.append(
                StudentResponse(
                    question_id=question.id,
                    response_text=submission.response_text,
                    is_correct=is_correct,
                    marks_awarded=marks_awarded,
                    feedback=submission.feedback,
                )
            )
        return responses

    async def _get_student(self, session: AsyncSession, student_id: str) -> Student:
        student = await session.get(Student, student_id)
        if student is None:
            raise StudentNotFoundError(f"Student {student_id} not found")
        return student

    async def _get_assessment(self, session: AsyncSession, assessment_id: str) -> Assessment:
        assessment = await session.get(Assessment, assessment_id)
        if assessment is None:
            raise AssessmentNotFoundError(f"Assessment {assessment_id} not found")
        return assessment
