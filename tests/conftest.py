# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests
- Integration tests against a file-backed SQLite store
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest


# =============================================================================
# Clock
# =============================================================================


class FakeClock:
    """Controllable replacement for utc_now.

    Services take a zero-argument callable returning the current time, so an
    instance can be passed wherever a clock is expected.
    """

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        """Move the clock forward by a timedelta built from kwargs."""
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now


@pytest.fixture
def base_time() -> datetime:
    """Provide a fixed reference time."""
    return datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(base_time: datetime) -> FakeClock:
    """Provide a clock frozen at base_time."""
    return FakeClock(base_time)


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (uses a SQLite store)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def sample_student_id() -> str:
    """Provide a sample student ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440001"


@pytest.fixture
def sample_assessment_data() -> dict[str, Any]:
    """Provide sample assessment data for testing."""
    return {
        "title": "Data Structures Midterm",
        "description": "Weeks 1-6",
        "unit_code": "CS201",
        "created_by": "teacher-1",
        "duration_minutes": 60,
    }


@pytest.fixture
def sample_question_data() -> dict[str, Any]:
    """Provide sample question data for testing."""
    return {
        "text": "Which structure is FIFO?",
        "type": "MULTIPLE_CHOICE",
        "options": ["Stack", "Queue", "Tree"],
        "correct_answers": ["Queue"],
        "marks": 5,
        "unit_code": "CS201",
        "topic": "queues",
        "difficulty": "EASY",
        "approved": True,
    }
