# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Percentage and letter grade derivation for practice results."""

PLACEHOLDER_GRADE = "N/A"

# (lower bound, grade), checked top-down
GRADE_BOUNDARIES: tuple[tuple[float, str], ...] = (
    (90.0, "A"),
    (80.0, "B"),
    (70.0, "C"),
    (60.0, "D"),
    (50.0, "E"),
)


def calculate_percentage(score: int, total_possible: int) -> float:
    """Return 100 * score / total_possible, or 0.0 when nothing is possible.

    Args:
        score: Marks obtained.
        total_possible: Marks available.

    Returns:
        Percentage as a float.
    """
    if total_possible <= 0:
        return 0.0
    return 100.0 * score / total_possible


def calculate_grade(percentage: float) -> str:
    """Map a percentage to a letter grade A-F.

    Args:
        percentage: Percentage in the 0-100 range.

    Returns:
        Letter grade.
    """
    for lower_bound, grade in GRADE_BOUNDARIES:
        if percentage >= lower_bound:
            return grade
    return "F"
