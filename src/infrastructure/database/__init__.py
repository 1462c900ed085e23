# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for the relational store.

This package provides the SQLAlchemy async engine wrapper and the ORM models
for assessments, questions, attempts and canonical practice results.

Example:
    from src.infrastructure.database import Database

    database = Database(settings.database)
    async with database.session() as session:
        result = await session.execute(select(Assessment))
"""

from src.infrastructure.database.connection import Database, DatabaseError

__all__ = [
    "Database",
    "DatabaseError",
]
