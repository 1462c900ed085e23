# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration test fixtures.

Each test gets its own file-backed SQLite database so that concurrent
sessions really run on separate connections.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio

from src.core.config.settings import DatabaseSettings
from src.domains.assessment.service import AssessmentService
from src.domains.attempt.service import AttemptService
from src.domains.practice_result.reconciliation import ReconciliationEngine
from src.infrastructure.database.connection import Database
from src.infrastructure.database.models import Question, Student, StudentAssessment


@pytest_asyncio.fixture
async def database(tmp_path: Path) -> AsyncGenerator[Database, None]:
    """Create a fresh schema in a temporary SQLite file."""
    db = Database(DatabaseSettings(dsn=f"sqlite+aiosqlite:///{tmp_path / 'assessments.db'}"))
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def assessment_service(database: Database, clock) -> AssessmentService:
    """Create an AssessmentService on the test database."""
    return AssessmentService(database, clock=clock)


@pytest.fixture
def reconciliation(database: Database, clock) -> ReconciliationEngine:
    """Create a ReconciliationEngine on the test database."""
    return ReconciliationEngine(database, clock=clock)


@pytest.fixture
def attempt_service(
    database: Database, clock, reconciliation: ReconciliationEngine
) -> AttemptService:
    """Create an AttemptService sharing the reconciliation engine."""
    return AttemptService(database, clock=clock, reconciliation=reconciliation)


@pytest.fixture
def make_student(database: Database) -> Callable[..., Awaitable[Student]]:
    """Provide a factory that stores a student."""

    async def _make(user_id: str = "user-1", full_name: str = "Ada Lovelace") -> Student:
        student = Student(user_id=user_id, full_name=full_name)
        async with database.session() as session:
            session.add(student)
        return student

    return _make


@pytest.fixture
def make_question(database: Database) -> Callable[..., Awaitable[Question]]:
    """Provide a factory that stores an approved question."""

    async def _make(**overrides: Any) -> Question:
        data: dict[str, Any] = {
            "text": "Which structure is FIFO?",
            "type": "MULTIPLE_CHOICE",
            "options": ["Stack", "Queue"],
            "correct_answers": ["Queue"],
            "marks": 5,
            "unit_code": "CS101",
            "topic": "queues",
            "difficulty": "EASY",
            "approved": True,
        }
        data.update(overrides)
        question = Question(**data)
        async with database.session() as session:
            session.add(question)
        return question

    return _make


@pytest.fixture
def make_legacy_attempt(database: Database) -> Callable[..., Awaitable[StudentAssessment]]:
    """Provide a factory that stores an attempt row directly, bypassing the services."""

    async def _make(
        student_id: str,
        assessment_id: str,
        start_time: datetime,
        end_time: datetime | None = None,
        score: int = 0,
        total_possible: int = 0,
        status: str = "COMPLETED",
    ) -> StudentAssessment:
        attempt = StudentAssessment(
            student_id=student_id,
            assessment_id=assessment_id,
            start_time=start_time,
            end_time=end_time,
            score=score,
            total_possible=total_possible,
            status=status,
        )
        async with database.session() as session:
            session.add(attempt)
        return attempt

    return _make
