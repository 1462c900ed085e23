# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Assessment domain package.

This package provides:
- Assessment creation, lookup, update and deletion
- Question composition with the total-marks invariant
- Time-driven activation
- Practice test generation
"""

from src.domains.assessment.activation import (
    ActivationService,
    ActivationSweepReport,
    should_be_active,
    sync_active_flag,
)
from src.domains.assessment.service import (
    AssessmentService,
    normalize_title,
    practice_test_title,
)

__all__ = [
    "ActivationService",
    "ActivationSweepReport",
    "AssessmentService",
    "normalize_title",
    "practice_test_title",
    "should_be_active",
    "sync_active_flag",
]
