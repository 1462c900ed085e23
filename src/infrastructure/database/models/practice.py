# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Canonical practice result model.

Rows are written only by ReconciliationEngine. The unique constraint on
(student_id, assessment_id) backs the one-row-per-key rule at the store level.
"""

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin, id_column


class PracticeAssessment(Base, TimestampMixin):
    """Deduplicated summary of a student's outcome on a practice assessment."""

    __tablename__ = "practice_assessments"
    __table_args__ = (
        UniqueConstraint("student_id", "assessment_id", name="uq_practice_student_assessment"),
    )

    practice_id: Mapped[str] = id_column()
    student_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("students.student_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    assessment_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("assessments.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    unit_code: Mapped[str] = mapped_column(String(50), nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_possible: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    grade: Mapped[str] = mapped_column(String(3), nullable=False)
    completion_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
