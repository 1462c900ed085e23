"""Assessment Lifecycle Engine.

Backend for assessments, practice tests, student attempts and the
reconciliation of practice results into one canonical row per student and
assessment.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
