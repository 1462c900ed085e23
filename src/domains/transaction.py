# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit-of-work helper used by the domain services.

Every multi-step write in the services runs inside ``unit_of_work``: one
session, one transaction, committed on success and rolled back on any
exception. Store failures surface as TransactionError; domain errors raised
inside the block pass through unchanged after the rollback.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.exceptions import TransactionError
from src.infrastructure.database.connection import Database, DatabaseError


@asynccontextmanager
async def unit_of_work(database: Database, action: str) -> AsyncIterator[AsyncSession]:
    """Open a transactional session for one logical operation.

    Args:
        database: Database the session is opened on.
        action: Short description used in the error message.

    Yields:
        AsyncSession bound to a single transaction.

    Raises:
        TransactionError: If the store failed and the transaction was rolled back.
    """
    try:
        async with database.session() as session:
            yield session
    except DatabaseError as e:
        raise TransactionError(f"Failed to {action}", e.original_error or e) from e
