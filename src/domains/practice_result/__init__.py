# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Canonical practice results.

This package provides:
- Percentage and grade derivation
- The reconciliation engine that keeps one result per student and assessment
"""

from src.domains.practice_result.grading import (
    PLACEHOLDER_GRADE,
    calculate_grade,
    calculate_percentage,
)
from src.domains.practice_result.reconciliation import (
    CanonicalCandidate,
    ReconciliationEngine,
    ReconciliationOutcome,
    SourceCounts,
    SweepReport,
)

__all__ = [
    "PLACEHOLDER_GRADE",
    "CanonicalCandidate",
    "ReconciliationEngine",
    "ReconciliationOutcome",
    "SourceCounts",
    "SweepReport",
    "calculate_grade",
    "calculate_percentage",
]
