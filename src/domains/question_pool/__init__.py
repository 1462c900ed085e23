# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Question pool selection for practice tests."""

from src.domains.question_pool.selector import QuestionPoolSelector, SelectionResult

__all__ = ["QuestionPoolSelector", "SelectionResult"]
