# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for AttemptService against SQLite."""

from datetime import timedelta

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from src.domains.assessment.service import AssessmentService
from src.domains.attempt.service import AttemptService
from src.domains.exceptions import (
    AttemptNotFoundError,
    QuestionNotFoundError,
    StudentNotFoundError,
    TransactionError,
    ValidationError,
)
from src.domains.practice_result.reconciliation import ReconciliationEngine
from src.infrastructure.database.models import (
    PracticeAssessment,
    StudentAssessment,
    StudentResponse,
)
from src.models.assessment import AssessmentCreate
from src.models.attempt import (
    ResponseSubmission,
    StartAttemptRequest,
    SubmitAttemptRequest,
)
from src.models.common import AttemptStatus

pytestmark = pytest.mark.integration


@pytest_asyncio.fixture
async def quiz(assessment_service: AssessmentService, make_question):
    """An assessment with a 5-mark multiple-choice and a 3-mark short-answer question."""
    assessment = await assessment_service.create_assessment(
        AssessmentCreate(title="Quiz", unit_code="CS101", created_by="teacher-1")
    )
    mcq = await make_question(marks=5)
    short = await make_question(
        text="Expand LIFO", type="SHORT_ANSWER", correct_answers=["last in first out"], marks=3
    )
    await assessment_service.compose_question(assessment.id, mcq.id, order=1)
    await assessment_service.compose_question(assessment.id, short.id, order=2)
    return assessment, mcq, short


async def _count(database, model) -> int:
    async with database.session() as session:
        return await session.scalar(select(func.count()).select_from(model))


class TestStartAttempt:
    """Tests for AttemptService.start_attempt."""

    @pytest.mark.asyncio
    async def test_start(
        self, attempt_service: AttemptService, quiz, make_student, clock
    ) -> None:
        """Test a new attempt is in progress and scored out of the current total."""
        assessment, _, _ = quiz
        student = await make_student()

        attempt = await attempt_service.start_attempt(
            StartAttemptRequest(student_id=student.student_id, assessment_id=assessment.id)
        )

        assert attempt.status == AttemptStatus.IN_PROGRESS
        assert attempt.score == 0
        assert attempt.total_possible == 8
        assert attempt.start_time == clock()
        assert attempt.end_time is None

    @pytest.mark.asyncio
    async def test_unknown_student(self, attempt_service: AttemptService, quiz) -> None:
        """Test an unknown student is rejected."""
        assessment, _, _ = quiz

        with pytest.raises(StudentNotFoundError):
            await attempt_service.start_attempt(
                StartAttemptRequest(student_id="missing", assessment_id=assessment.id)
            )


class TestSubmitAttempt:
    """Tests for AttemptService.submit_attempt."""

    @pytest.mark.asyncio
    async def test_submit_grades_responses(
        self, attempt_service: AttemptService, quiz, make_student, clock
    ) -> None:
        """Test omitted marks are graded and the score defaults to their sum."""
        assessment, mcq, short = quiz
        student = await make_student()
        started = await attempt_service.start_attempt(
            StartAttemptRequest(student_id=student.student_id, assessment_id=assessment.id)
        )
        clock.advance(minutes=20)

        result = await attempt_service.submit_attempt(
            SubmitAttemptRequest(
                attempt_id=started.attempt_id,
                student_id=student.student_id,
                assessment_id=assessment.id,
                responses=[
                    ResponseSubmission(question_id=mcq.id, response_text="queue"),
                    ResponseSubmission(question_id=short.id, response_text="first in first out"),
                ],
            )
        )

        assert result.attempt_id == started.attempt_id
        assert result.status == AttemptStatus.COMPLETED
        assert result.score == 5
        assert result.total_possible == 8
        assert result.end_time is not None
        awarded = {r.question_id: (r.is_correct, r.marks_awarded) for r in result.responses}
        assert awarded == {mcq.id: (True, 5), short.id: (False, 0)}

    @pytest.mark.asyncio
    async def test_resubmission_replaces_responses(
        self, database, attempt_service: AttemptService, quiz, make_student
    ) -> None:
        """Test a second submission fully replaces the stored responses."""
        assessment, mcq, short = quiz
        student = await make_student()
        request = SubmitAttemptRequest(
            student_id=student.student_id,
            assessment_id=assessment.id,
            status=AttemptStatus.IN_PROGRESS,
            responses=[
                ResponseSubmission(question_id=mcq.id, response_text="stack"),
                ResponseSubmission(question_id=short.id, response_text="no idea"),
            ],
        )
        first = await attempt_service.submit_attempt(request)

        second = await attempt_service.submit_attempt(
            request.model_copy(
                update={
                    "attempt_id": first.attempt_id,
                    "status": AttemptStatus.COMPLETED,
                    "responses": [ResponseSubmission(question_id=mcq.id, response_text="Queue")],
                }
            )
        )

        assert second.attempt_id == first.attempt_id
        assert len(second.responses) == 1
        assert second.score == 5
        assert await _count(database, StudentResponse) == 1
        assert await _count(database, StudentAssessment) == 1

    @pytest.mark.asyncio
    async def test_score_above_total_rejected(
        self, database, attempt_service: AttemptService, quiz, make_student
    ) -> None:
        """Test an impossible score is rejected and nothing is stored."""
        assessment, _, _ = quiz
        student = await make_student()

        with pytest.raises(ValidationError):
            await attempt_service.submit_attempt(
                SubmitAttemptRequest(
                    student_id=student.student_id,
                    assessment_id=assessment.id,
                    score=9,
                )
            )

        assert await _count(database, StudentAssessment) == 0

    @pytest.mark.asyncio
    async def test_unknown_question_rolls_back(
        self, database, attempt_service: AttemptService, quiz, make_student
    ) -> None:
        """Test a response to an unknown question aborts the whole submission."""
        assessment, mcq, _ = quiz
        student = await make_student()

        with pytest.raises(QuestionNotFoundError):
            await attempt_service.submit_attempt(
                SubmitAttemptRequest(
                    student_id=student.student_id,
                    assessment_id=assessment.id,
                    responses=[
                        ResponseSubmission(question_id=mcq.id, response_text="queue"),
                        ResponseSubmission(question_id="missing", response_text="x"),
                    ],
                )
            )

        assert await _count(database, StudentAssessment) == 0
        assert await _count(database, StudentResponse) == 0

    @pytest.mark.asyncio
    async def test_attempt_of_another_student_rejected(
        self, attempt_service: AttemptService, quiz, make_student
    ) -> None:
        """Test an attempt id cannot be reused by another student."""
        assessment, _, _ = quiz
        owner = await make_student(user_id="user-1")
        other = await make_student(user_id="user-2")
        started = await attempt_service.start_attempt(
            StartAttemptRequest(student_id=owner.student_id, assessment_id=assessment.id)
        )

        with pytest.raises(ValidationError):
            await attempt_service.submit_attempt(
                SubmitAttemptRequest(
                    attempt_id=started.attempt_id,
                    student_id=other.student_id,
                    assessment_id=assessment.id,
                )
            )

    @pytest.mark.asyncio
    async def test_reconciliation_failure_rolls_back_attempt(
        self,
        database,
        attempt_service: AttemptService,
        assessment_service: AssessmentService,
        reconciliation: ReconciliationEngine,
        make_question,
        make_student,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test a failing canonical upsert leaves no attempt behind."""
        practice = await assessment_service.create_assessment(
            AssessmentCreate(
                title="Practice", unit_code="CS101", created_by="user-1", is_practice=True
            )
        )
        question = await make_question(marks=10)
        await assessment_service.compose_question(practice.id, question.id)
        student = await make_student()

        async def failing_upsert(*args, **kwargs):
            raise SQLAlchemyError("disk I/O error")

        monkeypatch.setattr(reconciliation, "upsert_from_attempt", failing_upsert)

        with pytest.raises(TransactionError):
            await attempt_service.submit_attempt(
                SubmitAttemptRequest(
                    student_id=student.student_id,
                    assessment_id=practice.id,
                    score=7,
                    responses=[ResponseSubmission(question_id=question.id, marks_awarded=7)],
                )
            )

        assert await _count(database, StudentAssessment) == 0
        assert await _count(database, StudentResponse) == 0
        assert await _count(database, PracticeAssessment) == 0


class TestAttemptQueries:
    """Tests for attempt lookups."""

    @pytest.mark.asyncio
    async def test_list_newest_first(
        self, attempt_service: AttemptService, quiz, make_student, clock
    ) -> None:
        """Test a student's attempts are listed newest first."""
        assessment, _, _ = quiz
        student = await make_student()
        request = StartAttemptRequest(student_id=student.student_id, assessment_id=assessment.id)
        older = await attempt_service.start_attempt(request)
        clock.advance(days=1)
        newer = await attempt_service.start_attempt(request)

        attempts = await attempt_service.list_attempts(student.student_id)
        by_assessment = await attempt_service.list_assessment_attempts(assessment.id)

        assert [a.attempt_id for a in attempts] == [newer.attempt_id, older.attempt_id]
        assert len(by_assessment) == 2

    @pytest.mark.asyncio
    async def test_missing_attempt(self, attempt_service: AttemptService) -> None:
        """Test an unknown attempt id."""
        with pytest.raises(AttemptNotFoundError):
            await attempt_service.get_attempt("missing")

    @pytest.mark.asyncio
    async def test_offline_flag_kept(
        self, attempt_service: AttemptService, quiz, make_student, clock
    ) -> None:
        """Test offline attempts keep their flag and explicit times."""
        assessment, _, _ = quiz
        student = await make_student()
        start = clock() - timedelta(hours=1)

        result = await attempt_service.submit_attempt(
            SubmitAttemptRequest(
                student_id=student.student_id,
                assessment_id=assessment.id,
                start_time=start,
                end_time=clock(),
                is_offline=True,
                score=4,
            )
        )

        assert result.is_offline is True
        assert result.score == 4
