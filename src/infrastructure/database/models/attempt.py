# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student, attempt and response models."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.infrastructure.database.models.base import Base, TimestampMixin, id_column


class Student(Base, TimestampMixin):
    """A student profile linked to a platform user account."""

    __tablename__ = "students"

    student_id: Mapped[str] = id_column()
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, unique=True)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)


class StudentAssessment(Base, TimestampMixin):
    """One student's pass through an assessment."""

    __tablename__ = "student_assessments"

    attempt_id: Mapped[str] = id_column()
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
        index=True,
    )
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_possible: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="IN_PROGRESS")
    is_offline: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    responses: Mapped[list["StudentResponse"]] = relationship(
        back_populates="attempt",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class StudentResponse(Base):
    """A single answered question within an attempt."""

    __tablename__ = "student_responses"

    response_id: Mapped[str] = id_column()
    attempt_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("student_assessments.attempt_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
    )
    response_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    marks_awarded: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)

    attempt: Mapped[StudentAssessment] = relationship(back_populates="responses")
