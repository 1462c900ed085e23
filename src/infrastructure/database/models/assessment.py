# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Assessment, question bank and composition models.

``assessments.total_marks`` mirrors the sum of marks over the rows of
``assessment_questions`` for that assessment. Only the composition path in
AssessmentService writes it, always with an in-database increment.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin, id_column


class Assessment(Base, TimestampMixin):
    """An assessment definition, either instructor-authored or a practice test."""

    __tablename__ = "assessments"

    id: Mapped[str] = id_column()
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    unit_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    created_by: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    start_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_practice: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    total_marks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    allow_offline: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Assessment {self.id} {self.title!r} active={self.is_active}>"


class Question(Base, TimestampMixin):
    """A question in a unit's question bank."""

    __tablename__ = "questions"

    id: Mapped[str] = id_column()
    text: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    options: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    correct_answers: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    marks: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    topic: Mapped[str | None] = mapped_column(String(255), nullable=True)
    difficulty: Mapped[str] = mapped_column(String(10), nullable=False, default="MEDIUM")
    approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_by: Mapped[str | None] = mapped_column(String(36), nullable=True)


class AssessmentQuestion(Base):
    """Ordered composition mapping between an assessment and a question."""

    __tablename__ = "assessment_questions"
    __table_args__ = (
        UniqueConstraint("assessment_id", "question_id", name="uq_assessment_question"),
    )

    id: Mapped[str] = id_column()
    assessment_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("assessments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
    )
    order: Mapped[int] = mapped_column("order", Integer, nullable=False, default=0)
