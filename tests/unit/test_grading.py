# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for practice result grading."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from src.domains.practice_result.grading import (
    PLACEHOLDER_GRADE,
    calculate_grade,
    calculate_percentage,
)
from src.domains.practice_result.reconciliation import CanonicalCandidate
from src.models.common import PracticeStatus


class TestCalculatePercentage:
    """Tests for calculate_percentage."""

    def test_regular_ratio(self) -> None:
        """Test a plain ratio."""
        assert calculate_percentage(8, 10) == 80.0

    def test_zero_total_is_zero(self) -> None:
        """Test nothing possible yields zero instead of dividing by zero."""
        assert calculate_percentage(0, 0) == 0.0

    def test_fractional_result(self) -> None:
        """Test percentages are not rounded."""
        assert calculate_percentage(1, 3) == pytest.approx(33.3333, rel=1e-4)


class TestCalculateGrade:
    """Tests for calculate_grade boundaries."""

    @pytest.mark.parametrize(
        ("percentage", "grade"),
        [
            (100.0, "A"),
            (90.0, "A"),
            (89.99, "B"),
            (80.0, "B"),
            (70.0, "C"),
            (60.0, "D"),
            (50.0, "E"),
            (49.9, "F"),
            (0.0, "F"),
        ],
    )
    def test_boundaries(self, percentage: float, grade: str) -> None:
        """Test each lower bound is inclusive."""
        assert calculate_grade(percentage) == grade


class TestCanonicalCandidate:
    """Tests for candidate derivation from sources."""

    def test_placeholder_has_no_grade(self) -> None:
        """Test a CREATED candidate carries the placeholder grade."""
        assessment = MagicMock(id="a-1", title="Practice", unit_code="CS101", total_marks=10)
        created = datetime(2025, 1, 1, tzinfo=timezone.utc)

        candidate = CanonicalCandidate.placeholder("s-1", assessment, created)

        assert candidate.status == PracticeStatus.CREATED
        assert candidate.score == 0
        assert candidate.total_possible == 10
        assert candidate.percentage == 0.0
        assert candidate.grade == PLACEHOLDER_GRADE

    def test_attempt_candidate_is_graded(self) -> None:
        """Test a completed attempt yields percentage and letter grade."""
        assessment = MagicMock(id="a-1", title="Practice", unit_code="CS101", total_marks=10)
        ended = datetime(2025, 1, 2, tzinfo=timezone.utc)
        attempt = MagicMock(student_id="s-1", score=8, total_possible=10, end_time=ended)

        candidate = CanonicalCandidate.from_attempt(attempt, assessment, datetime.now(timezone.utc))

        assert candidate.status == PracticeStatus.COMPLETED
        assert candidate.percentage == 80.0
        assert candidate.grade == "B"
        assert candidate.completion_date == ended

    def test_attempt_without_end_time_uses_completion_time(self) -> None:
        """Test the fallback completion date when end_time is missing."""
        assessment = MagicMock(id="a-1", title="Practice", unit_code="CS101", total_marks=4)
        attempt = MagicMock(student_id="s-1", score=4, total_possible=0, end_time=None)
        completed = datetime(2025, 2, 1, 12, 0, tzinfo=timezone.utc)

        candidate = CanonicalCandidate.from_attempt(attempt, assessment, completed)

        assert candidate.completion_date == completed
        assert candidate.total_possible == 4
        assert candidate.grade == "A"
