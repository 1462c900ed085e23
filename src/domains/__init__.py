# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer.

This package contains domain services that encapsulate business logic.

Domains:
    assessment: Assessment definitions, composition, activation and practice tests.
    question_pool: Random selection from the approved question bank.
    attempt: Attempt recording and response grading.
    practice_result: Canonical practice results and their reconciliation.
"""
