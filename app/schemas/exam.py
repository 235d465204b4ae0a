# app/schemas/exam.py

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel


class ExamResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    class_id: UUID
    name: str
    type: str
    subject: Optional[str] = None
    solution_file_url: Optional[str] = None
    created_at: datetime


class ExamListResponse(BaseModel):
    exams: List[ExamResponse]
    total: int


class SubmissionResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    exam_id: UUID
    student_id: UUID
    submission_file_url: str
    status: str
    page_count: Optional[int] = None
    created_at: datetime
    graded_at: Optional[datetime] = None


class SubmissionListResponse(BaseModel):
    submissions: List[SubmissionResponse]
    total: int
