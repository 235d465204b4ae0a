# app/schemas/class_.py
# Pydantic schemas for classes, their students and the roster CSV import

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator


# ── Requests ──────────────────────────────────────────────────────────────────

class ClassCreate(BaseModel):
    class_name: str
    subject: Optional[str] = None
    grade_level: Optional[str] = None

    @field_validator("class_name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Class name cannot be empty")
        return v


class ClassUpdate(BaseModel):
    class_id: UUID
    name: Optional[str] = None
    subject: Optional[str] = None
    grade_level: Optional[str] = None


class ClassDelete(BaseModel):
    class_id: UUID


class ProcessCsvRequest(BaseModel):
    csv_data: str
    class_id: UUID


# ── Responses ─────────────────────────────────────────────────────────────────

class ClassResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    name: str
    subject: Optional[str] = None
    grade_level: Optional[str] = None
    teacher_id: Optional[UUID] = None
    organization_id: Optional[UUID] = None
    created_at: datetime


class ClassListResponse(BaseModel):
    classes: List[ClassResponse]
    total: int


class StudentResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    class_id: UUID
    full_name: str
    student_email: str
    tutor_email: Optional[str] = None
    created_at: datetime


class ProcessCsvResponse(BaseModel):
    success: bool
    students_added: int
    total_processed: int
    skipped: List[dict]
    errors: List[dict]


class MessageResponse(BaseModel):
    message: str
