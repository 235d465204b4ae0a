# app/models/exam.py
# Exam (with its answer-key PDF), student Submissions and the resulting Grades
#
# Submission lifecycle: pending → processing → graded
#   processing is claimed atomically by the grading service;
#   a failed grading attempt returns the submission to pending.

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from app.db.base_class import Base, JSONType


class Exam(Base):
    __tablename__ = "exams"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    class_id = Column(
        Uuid, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True
    )

    name = Column(String(255), nullable=False)
    type = Column(
        Enum("exam", "assignment", name="exam_type_enum"),
        nullable=False,
        default="exam",
    )
    subject = Column(String(100), nullable=True)
    solution_file_url = Column(Text, nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # ── Relationships ─────────────────────────────────────────────────────────
    class_ = relationship("Class", back_populates="exams")
    submissions = relationship("Submission", back_populates="exam", cascade="all, delete-orphan")
    grades = relationship("Grade", back_populates="exam", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Exam id={self.id} name={self.name} class={self.class_id}>"


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    exam_id = Column(
        Uuid, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True
    )
    student_id = Column(
        Uuid, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True
    )

    submission_file_url = Column(Text, nullable=False)
    status = Column(
        Enum("pending", "processing", "graded", name="submission_status_enum"),
        nullable=False,
        default="pending",
        index=True,
    )
    ai_feedback = Column(JSONType, nullable=True)
    page_count = Column(Integer, nullable=True)

    # ── Timestamps ────────────────────────────────────────────────────────────
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    graded_at = Column(DateTime(timezone=True), nullable=True)

    # ── Relationships ─────────────────────────────────────────────────────────
    exam = relationship("Exam", back_populates="submissions")
    student = relationship("Student", back_populates="submissions")

    def __repr__(self) -> str:
        return f"<Submission id={self.id} exam={self.exam_id} status={self.status}>"


class Grade(Base):
    __tablename__ = "grades"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    submission_id = Column(
        Uuid, ForeignKey("submissions.id", ondelete="SET NULL"), nullable=True, index=True
    )
    student_id = Column(
        Uuid, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True
    )
    exam_id = Column(
        Uuid, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True
    )
    organization_id = Column(
        Uuid, ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # ── Scores ────────────────────────────────────────────────────────────────
    score_obtained = Column(Float, nullable=False, default=0.0)
    score_possible = Column(Float, nullable=False, default=0.0)
    ai_feedback = Column(JSONType, nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )

    # ── Relationships ─────────────────────────────────────────────────────────
    student = relationship("Student", back_populates="grades")
    exam = relationship("Exam", back_populates="grades")

    @property
    def percentage(self) -> float:
        if not self.score_possible:
            return 0.0
        return (self.score_obtained / self.score_possible) * 100

    def __repr__(self) -> str:
        return (
            f"<Grade id={self.id} student={self.student_id} "
            f"score={self.score_obtained}/{self.score_possible}>"
        )
