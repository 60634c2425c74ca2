"""
Exam Models

SQLAlchemy ORM models for exams and their manual grading ledger.
"""

import uuid
from datetime import datetime
from typing import List, Optional
from sqlalchemy import (
    String, Integer, Float, Boolean, Text, DateTime, JSON, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ...core.database import Base
from .mixins import TimestampMixin


def new_exam_id() -> str:
    return uuid.uuid4().hex


class ExamRecord(Base, TimestampMixin):
    """Stored exam instance."""

    __tablename__ = "exams"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_exam_id)
    candidate_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default='generated', index=True)

    questions: Mapped[list] = mapped_column(JSON, nullable=False)
    submitted_answers: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    question_results: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    auto_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    manual_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    final_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    percentage: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    qualified: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True, index=True)

    generated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    graded_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Reviewer approval
    approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    visible_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    manual_grades: Mapped[List["ManualGradeRow"]] = relationship(
        back_populates="exam",
        cascade="all, delete-orphan",
        order_by="ManualGradeRow.id",
    )

    def __repr__(self) -> str:
        return f"<ExamRecord(id={self.id}, candidate_id='{self.candidate_id}', status='{self.status}')>"


class ManualGradeRow(Base):
    """One live manual grade per exam question."""

    __tablename__ = "manual_grades"
    __table_args__ = (
        UniqueConstraint('exam_id', 'question_id', name='uq_manual_grade_question'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    exam_id: Mapped[str] = mapped_column(String(64), ForeignKey('exams.id'), nullable=False, index=True)
    question_id: Mapped[str] = mapped_column(String(255), nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False)
    feedback: Mapped[str] = mapped_column(Text, nullable=False, default='')
    graded_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    exam: Mapped["ExamRecord"] = relationship(back_populates="manual_grades")

    def __repr__(self) -> str:
        return f"<ManualGradeRow(exam_id={self.exam_id}, question_id='{self.question_id}', score={self.score})>"
