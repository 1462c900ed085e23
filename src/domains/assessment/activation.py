# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Time-driven activation of assessments.

An assessment should be active exactly while ``start_time <= now < end_time``.
Assessments missing either bound are left alone. The stored flag is written
with a compare-and-set so the periodic sweep and read-path refreshes can run
at the same time: whichever runs first flips the flag, the other matches no
row and writes nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from src.domains.transaction import unit_of_work
from src.infrastructure.database.connection import Database
from src.infrastructure.database.models import Assessment
from src.utils.datetime import Clock, ensure_utc, utc_now

logger = logging.getLogger(__name__)


def should_be_active(
    start_time: datetime | None,
    end_time: datetime | None,
    now: datetime,
) -> bool | None:
    """Derive the active flag from the time window.

    Args:
        start_time: Window start, inclusive.
        end_time: Window end, exclusive.
        now: Current time.

    Returns:
        True or False for a complete window, None when either bound is
        missing and time does not decide the flag.
    """
    if start_time is None or end_time is None:
        return None
    return ensure_utc(start_time) <= ensure_utc(now) < ensure_utc(end_time)


async def sync_active_flag(
    session: AsyncSession,
    assessment_id: str,
    start_time: datetime | None,
    end_time: datetime | None,
    stored: bool,
    now: datetime,
) -> bool | None:
    """Persist the derived flag if it differs from the stored one.

    Args:
        session: Session of the surrounding transaction.
        assessment_id: Assessment to update.
        start_time: Window start.
        end_time: Window end.
        stored: Flag value the caller last saw.
        now: Current time.

    Returns:
        The new flag when this call changed the row, None otherwise.
    """
    target = should_be_active(start_time, end_time, now)
    if target is None or target == stored:
        return None

    result = await session.execute(
        update(Assessment)
        .where(Assessment.id == assessment_id, Assessment.is_active == stored)
        .values(is_active=target)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        return None
    return target


@dataclass
class ActivationSweepReport:
    """Counts from one activation sweep."""

    checked: int = 0
    activated: int = 0
    deactivated: int = 0
    failed: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "checked": self.checked,
            "activated": self.activated,
            "deactivated": self.deactivated,
            "failed": self.failed,
        }


class ActivationService:
    """Recomputes the active flag of assessments against the clock.

    Attributes:
        database: Database holding the assessments.
        clock: Source of the current time.
    """

    def __init__(self, database: Database, clock: Clock = utc_now) -> None:
        self.database = database
        self.clock = clock

    async def refresh(self, session: AsyncSession, assessment: Assessment) -> bool:
        """Bring one loaded assessment's flag in line with the clock.

        Used on the read path so callers never see a stale flag, even
        between sweeps.

        Args:
            session: Session the assessment was loaded with.
            assessment: The loaded assessment.

        Returns:
            True if this call changed the stored flag.
        """
        now = self.clock()
        changed = await sync_active_flag(
            session,
            assessment.id,
            assessment.start_time,
            assessment.end_time,
            assessment.is_active,
            now,
        )
        # A lost compare-and-set means another writer already stored the target
        target = should_be_active(assessment.start_time, assessment.end_time, now)
        if target is not None:
            set_committed_value(assessment, "is_active", target)
        return changed is not None

    async def sweep(self) -> ActivationSweepReport:
        """Recompute the flag of every assessment with a time window.

        Each assessment is handled in its own transaction. A failure on one
        assessment is logged and counted, and the sweep moves on.

        Returns:
            ActivationSweepReport with the sweep counts.
        """
        report = ActivationSweepReport()

        async with unit_of_work(self.database, "list assessments for activation") as session:
            result = await session.execute(
                select(Assessment.id).where(
                    Assessment.start_time.is_not(None),
                    Assessment.end_time.is_not(None),
                )
            )
            assessment_ids = list(result.scalars().all())

        for assessment_id in assessment_ids:
            report.checked += 1
            try:
                changed = await self._sync_one(assessment_id)
            except Exception:
                report.failed += 1
                logger.exception("Failed to update activation for assessment %s", assessment_id)
                continue

            if changed is True:
                report.activated += 1
                logger.info("Activated assessment %s", assessment_id)
            elif changed is False:
                report.deactivated += 1
                logger.info("Deactivated assessment %s", assessment_id)

        logger.debug(
            "Activation sweep: checked=%d, activated=%d, deactivated=%d, failed=%d",
            report.checked,
            report.activated,
            report.deactivated,
            report.failed,
        )
        return report

    async def _sync_one(self, assessment_id: str) -> bool | None:
        async with unit_of_work(self.database, "update assessment activation") as session:
            result = await session.execute(
                select(
                    Assessment.start_time,
                    Assessment.end_time,
                    Assessment.is_active,
                ).where(Assessment.id == assessment_id)
            )
            row = result.one_or_none()
            if row is None:
                return None
            return await sync_active_flag(
                session,
                assessment_id,
                row.start_time,
                row.end_time,
                row.is_active,
                self.clock(),
            )
