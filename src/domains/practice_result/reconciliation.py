# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Reconciliation of practice attempts into canonical practice results.

Practice outcomes reach the store along three paths:

- direct upserts when a practice attempt is submitted as COMPLETED,
- legacy attempt rows that only exist in ``student_assessments``,
- practice tests a student created but never took (placeholders).

All three funnel into ``ReconciliationEngine.upsert`` which keeps at most one
``practice_assessments`` row per (student, assessment). A row only moves
forward: CREATED can become COMPLETED, never the other way round.

The sweep visits each natural key in its own transaction and re-checks the
canonical row inside it, so repeated or overlapping sweeps and live
submissions converge on the same single row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import exists, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.exceptions import StudentNotFoundError
from src.domains.practice_result.grading import (
    PLACEHOLDER_GRADE,
    calculate_grade,
    calculate_percentage,
)
from src.domains.transaction import unit_of_work
from src.infrastructure.database.connection import Database
from src.infrastructure.database.models import (
    Assessment,
    PracticeAssessment,
    Student,
    StudentAssessment,
)
from src.models.common import AttemptStatus, PracticeStatus
from src.utils.datetime import Clock, ensure_utc, utc_now

logger = logging.getLogger(__name__)

STATUS_RANK = {
    PracticeStatus.CREATED.value: 0,
    PracticeStatus.COMPLETED.value: 1,
}

SOURCE_LEGACY = "legacy_attempts"
SOURCE_PLACEHOLDER = "placeholders"


class ReconciliationOutcome(str, Enum):
    """What an upsert did to the canonical row."""

    INSERTED = "inserted"
    UPDATED = "updated"
    SKIPPED = "skipped"


@dataclass
class CanonicalCandidate:
    """Values a source proposes for the canonical row of one key."""

    student_id: str
    assessment_id: str
    title: str
    unit_code: str
    score: int
    total_possible: int
    completion_date: datetime
    status: PracticeStatus

    @property
    def percentage(self) -> float:
        if self.status == PracticeStatus.CREATED:
            return 0.0
        return calculate_percentage(self.score, self.total_possible)

    @property
    def grade(self) -> str:
        if self.status == PracticeStatus.CREATED:
            return PLACEHOLDER_GRADE
        return calculate_grade(self.percentage)

    @classmethod
    def from_attempt(
        cls,
        attempt: StudentAssessment,
        assessment: Assessment,
        completed_at: datetime,
    ) -> "CanonicalCandidate":
        total_possible = attempt.total_possible or assessment.total_marks
        return cls(
            student_id=attempt.student_id,
            assessment_id=assessment.id,
            title=assessment.title,
            unit_code=assessment.unit_code,
            score=attempt.score,
            total_possible=total_possible,
            completion_date=ensure_utc(attempt.end_time or completed_at),
            status=PracticeStatus.COMPLETED,
        )

    @classmethod
    def placeholder(
        cls,
        student_id: str,
        assessment: Assessment,
        created_at: datetime,
    ) -> "CanonicalCandidate":
        return cls(
            student_id=student_id,
            assessment_id=assessment.id,
            title=assessment.title,
            unit_code=assessment.unit_code,
            score=0,
            total_possible=assessment.total_marks,
            completion_date=ensure_utc(created_at),
            status=PracticeStatus.CREATED,
        )


@dataclass
class SourceCounts:
    """Upsert outcomes for one source."""

    inserted: int = 0
    updated: int = 0
    skipped: int = 0

    def record(self, outcome: ReconciliationOutcome) -> None:
        if outcome == ReconciliationOutcome.INSERTED:
            self.inserted += 1
        elif outcome == ReconciliationOutcome.UPDATED:
            self.updated += 1
        else:
            self.skipped += 1

    def to_dict(self) -> dict[str, int]:
        return {"inserted": self.inserted, "updated": self.updated, "skipped": self.skipped}


@dataclass
class SweepReport:
    """Result of a reconciliation sweep, per source."""

    legacy_attempts: SourceCounts = field(default_factory=SourceCounts)
    placeholders: SourceCounts = field(default_factory=SourceCounts)

    @property
    def changed(self) -> int:
        return (
            self.legacy_attempts.inserted
            + self.legacy_attempts.updated
            + self.placeholders.inserted
            + self.placeholders.updated
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            SOURCE_LEGACY: self.legacy_attempts.to_dict(),
            SOURCE_PLACEHOLDER: self.placeholders.to_dict(),
        }


def _is_finished_attempt():
    return or_(
        StudentAssessment.status == AttemptStatus.COMPLETED.value,
        StudentAssessment.end_time.is_not(None),
    )


def _has_completed_canonical():
    return exists().where(
        PracticeAssessment.student_id == StudentAssessment.student_id,
        PracticeAssessment.assessment_id == StudentAssessment.assessment_id,
        PracticeAssessment.status == PracticeStatus.COMPLETED.value,
    )


class ReconciliationEngine:
    """Maintains one canonical practice result per (student, assessment).

    Attributes:
        database: Database holding attempts and canonical results.
        clock: Source of the current time.
    """

    def __init__(self, database: Database, clock: Clock = utc_now) -> None:
        self.database = database
        self.clock = clock

    # =========================================================================
    # Upsert
    # =========================================================================

    async def upsert(
        self,
        session: AsyncSession,
        candidate: CanonicalCandidate,
    ) -> ReconciliationOutcome:
        """Insert or advance the canonical row for the candidate's key.

        Runs inside the caller's transaction. The insert goes through a
        savepoint so that losing an insert race to another transaction turns
        into an update of the row that won.

        Args:
            session: Session of the surrounding transaction.
            candidate: Proposed values.

        Returns:
            The ReconciliationOutcome for this key.
        """
        await session.flush()

        existing = await self._load(session, candidate.student_id, candidate.assessment_id)
        if existing is not None:
            return self._advance(existing, candidate)

        row = PracticeAssessment(
            student_id=candidate.student_id,
            assessment_id=candidate.assessment_id,
            title=candidate.title,
            unit_code=candidate.unit_code,
            score=candidate.score,
            total_possible=candidate.total_possible,
            percentage=candidate.percentage,
            grade=candidate.grade,
            completion_date=candidate.completion_date,
            status=candidate.status.value,
        )
        try:
            async with session.begin_nested():
                session.add(row)
                await session.flush()
        except IntegrityError:
            existing = await self._load(session, candidate.student_id, candidate.assessment_id)
            if existing is None:
                raise
            logger.info(
                "Canonical row for student=%s assessment=%s appeared concurrently",
                candidate.student_id,
                candidate.assessment_id,
            )
            return self._advance(existing, candidate)

        logger.info(
            "Inserted %s practice result: student=%s, assessment=%s, grade=%s",
            candidate.status.value,
            candidate.student_id,
            candidate.assessment_id,
            candidate.grade,
        )
        return ReconciliationOutcome.INSERTED

    async def upsert_from_attempt(
        self,
        session: AsyncSession,
        attempt: StudentAssessment,
        assessment: Assessment,
    ) -> ReconciliationOutcome:
        """Upsert the canonical row for a completed practice attempt.

        Args:
            session: Session the attempt is being written with.
            attempt: The completed attempt.
            assessment: The practice assessment it belongs to.

        Returns:
            The ReconciliationOutcome for this key.
        """
        candidate = CanonicalCandidate.from_attempt(attempt, assessment, self.clock())
        return await self.upsert(session, candidate)

    async def upsert_placeholder(
        self,
        session: AsyncSession,
        student_id: str,
        assessment: Assessment,
    ) -> ReconciliationOutcome:
        """Upsert a created-but-not-taken row for a practice test.

        Args:
            session: Session of the surrounding transaction.
            student_id: Student the practice test belongs to.
            assessment: The practice assessment.

        Returns:
            The ReconciliationOutcome for this key.
        """
        candidate = CanonicalCandidate.placeholder(student_id, assessment, self.clock())
        return await self.upsert(session, candidate)

    async def _load(
        self,
        session: AsyncSession,
        student_id: str,
        assessment_id: str,
    ) -> PracticeAssessment | None:
        result = await session.execute(
            select(PracticeAssessment)
            .where(
                PracticeAssessment.student_id == student_id,
                PracticeAssessment.assessment_id == assessment_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    def _advance(
        self,
        existing: PracticeAssessment,
        candidate: CanonicalCandidate,
    ) -> ReconciliationOutcome:
        existing_rank = STATUS_RANK.get(existing.status, 0)
        candidate_rank = STATUS_RANK[candidate.status.value]

        if candidate_rank < existing_rank:
            return ReconciliationOutcome.SKIPPED

        if candidate_rank == existing_rank:
            if candidate.status == PracticeStatus.CREATED:
                return ReconciliationOutcome.SKIPPED
            if self._same_values(existing, candidate):
                return ReconciliationOutcome.SKIPPED
            if candidate.completion_date < ensure_utc(existing.completion_date):
                return ReconciliationOutcome.SKIPPED

        existing.title = candidate.title
        existing.unit_code = candidate.unit_code
        existing.score = candidate.score
        existing.total_possible = candidate.total_possible
        existing.percentage = candidate.percentage
        existing.grade = candidate.grade
        existing.completion_date = candidate.completion_date
        existing.status = candidate.status.value

        logger.info(
            "Updated practice result %s: status=%s, grade=%s",
            existing.practice_id,
            existing.status,
            existing.grade,
        )
        return ReconciliationOutcome.UPDATED

    @staticmethod
    def _same_values(existing: PracticeAssessment, candidate: CanonicalCandidate) -> bool:
        return (
            existing.status == candidate.status.value
            and existing.score == candidate.score
            and existing.total_possible == candidate.total_possible
            and existing.title == candidate.title
            and existing.unit_code == candidate.unit_code
            and ensure_utc(existing.completion_date) == candidate.completion_date
        )

    # =========================================================================
    # Sweep
    # =========================================================================

    async def run_sweep(self) -> SweepReport:
        """Merge all not-yet-canonical practice data.

        Legacy attempts are processed before placeholders so a key present in
        both ends up with the completed data. Store failures propagate.

        Returns:
            SweepReport with per-source counts.
        """
        report = await self._sweep(student_id=None)
        logger.info("Reconciliation sweep finished: %s", report.to_dict())
        return report

    async def reconcile_student(self, student_id: str) -> SweepReport:
        """Run the sweep restricted to one student.

        Args:
            student_id: Student to reconcile.

        Returns:
            SweepReport with per-source counts.
        """
        report = await self._sweep(student_id=student_id)
        if report.changed:
            logger.info(
                "Reconciled practice results for student %s: %s",
                student_id,
                report.to_dict(),
            )
        return report

    async def list_results(
        self,
        student_id: str,
        reconcile: bool = True,
    ) -> list[PracticeAssessment]:
        """List a student's canonical practice results, newest first.

        Args:
            student_id: Student whose results are listed.
            reconcile: Reconcile the student's pending data before listing.

        Returns:
            Canonical rows ordered by completion date, descending.

        Raises:
            StudentNotFoundError: If the student does not exist.
        """
        async with unit_of_work(self.database, "load student") as session:
            student = await session.get(Student, student_id)
            if student is None:
                raise StudentNotFoundError(f"Student {student_id} not found")

        if reconcile:
            await self.reconcile_student(student_id)

        async with unit_of_work(self.database, "list practice results") as session:
            result = await session.execute(
                select(PracticeAssessment)
                .where(PracticeAssessment.student_id == student_id)
                .order_by(PracticeAssessment.completion_date.desc())
            )
            return list(result.scalars().all())

    async def _sweep(self, student_id: str | None) -> SweepReport:
        report = SweepReport()

        for key in await self._pending_legacy_keys(student_id):
            async with unit_of_work(self.database, "reconcile legacy attempt") as session:
                outcome = await self._reconcile_legacy_key(session, *key)
            report.legacy_attempts.record(outcome)

        for key in await self._pending_placeholder_keys(student_id):
            async with unit_of_work(self.database, "reconcile practice placeholder") as session:
                outcome = await self._reconcile_placeholder_key(session, *key)
            report.placeholders.record(outcome)

        return report

    async def _pending_legacy_keys(self, student_id: str | None) -> list[tuple[str, str]]:
        query = (
            select(StudentAssessment.student_id, StudentAssessment.assessment_id)
            .select_from(StudentAssessment)
            .join(Assessment, Assessment.id == StudentAssessment.assessment_id)
            .where(
                Assessment.is_practice.is_(True),
                _is_finished_attempt(),
                ~_has_completed_canonical(),
            )
            .distinct()
        )
        if student_id is not None:
            query = query.where(StudentAssessment.student_id == student_id)

        async with unit_of_work(self.database, "find legacy practice attempts") as session:
            result = await session.execute(query)
            return [(row.student_id, row.assessment_id) for row in result.all()]

    async def _pending_placeholder_keys(self, student_id: str | None) -> list[tuple[str, str]]:
        # Practice tests are owned through assessments.created_by = students.user_id
        query = (
            select(Student.student_id, Assessment.id)
            .select_from(Assessment)
            .join(Student, Assessment.created_by == Student.user_id)
            .where(
                Assessment.is_practice.is_(True),
                ~exists().where(
                    PracticeAssessment.student_id == Student.student_id,
                    PracticeAssessment.assessment_id == Assessment.id,
                ),
                ~exists().where(
                    StudentAssessment.student_id == Student.student_id,
                    StudentAssessment.assessment_id == Assessment.id,
                ),
            )
        )
        if student_id is not None:
            query = query.where(Student.student_id == student_id)

        async with unit_of_work(self.database, "find practice placeholders") as session:
            result = await session.execute(query)
            return [(row[0], row[1]) for row in result.all()]

    async def _reconcile_legacy_key(
        self,
        session: AsyncSession,
        student_id: str,
        assessment_id: str,
    ) -> ReconciliationOutcome:
        assessment = await session.get(Assessment, assessment_id)
        if assessment is None:
            return ReconciliationOutcome.SKIPPED

        result = await session.execute(
            select(StudentAssessment)
            .where(
                StudentAssessment.student_id == student_id,
                StudentAssessment.assessment_id == assessment_id,
                _is_finished_attempt(),
            )
            .order_by(
                StudentAssessment.end_time.desc().nulls_last(),
                StudentAssessment.start_time.desc(),
            )
            .limit(1)
        )
        attempt = result.scalar_one_or_none()
        if attempt is None:
            return ReconciliationOutcome.SKIPPED

        return await self.upsert_from_attempt(session, attempt, assessment)

    async def _reconcile_placeholder_key(
        self,
        session: AsyncSession,
        student_id: str,
        assessment_id: str,
    ) -> ReconciliationOutcome:
        assessment = await session.get(Assessment, assessment_id)
        if assessment is None:
            return ReconciliationOutcome.SKIPPED
        return await self.upsert_placeholder(session, student_id, assessment)
