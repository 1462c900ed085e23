# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Attempt domain package.

This package provides:
- Attempt start and atomic submission
- Automatic grading of responses
- Attempt lookups
"""

from src.domains.attempt.scoring import Evaluation, evaluate_response, normalize_answer
from src.domains.attempt.service import AttemptService

__all__ = [
    "AttemptService",
    "Evaluation",
    "evaluate_response",
    "normalize_answer",
]
