# app/models/class_.py
# Class (owned by a teacher, scoped to an organization) and its Students
# Students are roster entries only -- they never log in.

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import relationship

from app.db.base_class import Base


class Class(Base):
    __tablename__ = "classes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    teacher_id = Column(
        Uuid, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True
    )
    organization_id = Column(
        Uuid, ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # ── Content ───────────────────────────────────────────────────────────────
    name = Column(String(255), nullable=False)
    subject = Column(String(100), nullable=True)
    grade_level = Column(String(50), nullable=True)

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

    # ── Relationships ─────────────────────────────────────────────────────────
    teacher = relationship("Profile", back_populates="classes")
    organization = relationship("Organization", back_populates="classes")
    students = relationship("Student", back_populates="class_", cascade="all, delete-orphan")
    exams = relationship("Exam", back_populates="class_", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Class id={self.id} name={self.name} teacher={self.teacher_id}>"


class Student(Base):
    __tablename__ = "students"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    class_id = Column(
        Uuid, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True
    )

    full_name = Column(String(255), nullable=False)
    student_email = Column(String(255), nullable=False, index=True)
    tutor_email = Column(String(255), nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # ── Relationships ─────────────────────────────────────────────────────────
    class_ = relationship("Class", back_populates="students")
    submissions = relationship("Submission", back_populates="student", cascade="all, delete-orphan")
    grades = relationship("Grade", back_populates="student", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Student id={self.id} email={self.student_email} class={self.class_id}>"
