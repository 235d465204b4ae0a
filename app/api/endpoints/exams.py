# app/api/endpoints/exams.py
# Exams (with answer-key PDF) and student submissions.
#
# Routes:
#   POST /classes/{class_id}/exams        -- create exam, multipart: name, type, subject, solution_file
#   GET  /classes/{class_id}/exams        -- list exams of a class
#   POST /exams/{exam_id}/submissions     -- upload a student's PDF, multipart: student_id, file
#   GET  /exams/{exam_id}/submissions     -- list submissions with status
#
# Files go to the exam bucket under exams/<exam_id>/...; the row stores the object key.
# Access follows grading rights: class teacher, org admin/director, superadmin.

import uuid
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from sqlalchemy.orm import Session

import app.db.base  # noqa: F401
from app.core.config import settings
from app.core.dependencies import client_ip, require_login
from app.db.session import get_db
from app.models.class_ import Class, Student
from app.models.exam import Exam, Submission
from app.models.user import Profile
from app.schemas.exam import ExamListResponse, ExamResponse, SubmissionListResponse, SubmissionResponse
from app.services import storage_service
from app.services.audit_service import log_event
from app.services.grading_service import can_grade
from app.services.pdf_service import looks_like_pdf

router = APIRouter()

EXAM_TYPES = ("exam", "assignment")


# ── Helpers ───────────────────────────────────────────────────────────────────

def _get_class(db: Session, class_id: UUID, current: Profile) -> Class:
    cls = db.query(Class).filter(Class.id == class_id).first()
    if not cls:
        raise HTTPException(status_code=404, detail="Class not found.")
    if not can_grade(current, cls):
        raise HTTPException(status_code=403, detail="You do not have access to this class.")
    return cls


def _get_exam(db: Session, exam_id: UUID, current: Profile) -> Exam:
    exam = db.query(Exam).filter(Exam.id == exam_id).first()
    if not exam:
        raise HTTPException(status_code=404, detail="Exam not found.")
    _get_class(db, exam.class_id, current)
    return exam


async def _read_pdf(file: UploadFile) -> bytes:
    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="The uploaded file is empty.")
    if len(data) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=400,
            detail=f"File exceeds the {settings.max_upload_bytes // (1024 * 1024)} MB limit.",
        )
    if not looks_like_pdf(data):
        raise HTTPException(status_code=400, detail="Only PDF files are accepted.")
    return data


# ── Exams ─────────────────────────────────────────────────────────────────────

@router.post("/classes/{class_id}/exams", response_model=ExamResponse, status_code=201, summary="Create an exam")
async def create_exam(
    class_id: UUID,
    request: Request,
    name: str = Form(...),
    type: str = Form("exam"),
    subject: Optional[str] = Form(None),
    solution_file: Optional[UploadFile] = File(None),
    current: Profile = Depends(require_login),
    db: Session = Depends(get_db),
):
    cls = _get_class(db, class_id, current)
    name = name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Exam name cannot be empty.")
    if type not in EXAM_TYPES:
        raise HTTPException(status_code=400, detail="Exam type must be 'exam' or 'assignment'.")

    exam = Exam(
        id=uuid.uuid4(),
        class_id=cls.id,
        name=name,
        type=type,
        subject=subject or cls.subject,
    )
    if solution_file is not None:
        data = await _read_pdf(solution_file)
        exam.solution_file_url = storage_service.upload_bytes(
            storage_service.EXAM_BUCKET, f"exams/{exam.id}/solution.pdf", data, "application/pdf"
        )

    db.add(exam)
    db.flush()
    log_event(db, current, "exam.create", "exam", exam.id,
              details={"class_id": str(cls.id), "name": name}, ip_address=client_ip(request))
    db.commit()
    db.refresh(exam)
    return exam


@router.post("/exams/{exam_id}/solution", response_model=ExamResponse, summary="Replace the solution PDF")
async def upload_solution(
    exam_id: UUID,
    solution_file: UploadFile = File(...),
    current: Profile = Depends(require_login),
    db: Session = Depends(get_db),
):
    exam = _get_exam(db, exam_id, current)
    data = await _read_pdf(solution_file)
    exam.solution_file_url = storage_service.upload_bytes(
        storage_service.EXAM_BUCKET, f"exams/{exam.id}/solution.pdf", data, "application/pdf"
    )
    db.commit()
    db.refresh(exam)
    return exam


@router.get("/classes/{class_id}/exams", response_model=ExamListResponse, summary="List exams of a class")
def list_exams(
    class_id: UUID,
    current: Profile = Depends(require_login),
    db: Session = Depends(get_db),
):
    cls = _get_class(db, class_id, current)
    exams = (
        db.query(Exam)
        .filter(Exam.class_id == cls.id)
        .order_by(Exam.created_at.desc())
        .all()
    )
    return ExamListResponse(exams=exams, total=len(exams))


# ── Submissions ───────────────────────────────────────────────────────────────

@router.post(
    "/exams/{exam_id}/submissions",
    response_model=SubmissionResponse,
    status_code=201,
    summary="Upload a student submission",
)
async def create_submission(
    exam_id: UUID,
    student_id: UUID = Form(...),
    file: UploadFile = File(...),
    current: Profile = Depends(require_login),
    db: Session = Depends(get_db),
):
    exam = _get_exam(db, exam_id, current)
    student = db.query(Student).filter(Student.id == student_id).first()
    if not student or student.class_id != exam.class_id:
        raise HTTPException(status_code=400, detail="Student does not belong to this exam's class.")

    data = await _read_pdf(file)
    submission = Submission(id=uuid.uuid4(), exam_id=exam.id, student_id=student.id, status="pending")
    submission.submission_file_url = storage_service.upload_bytes(
        storage_service.EXAM_BUCKET,
        f"exams/{exam.id}/submissions/{submission.id}.pdf",
        data,
        "application/pdf",
    )
    db.add(submission)
    db.commit()
    db.refresh(submission)
    return submission


@router.get("/exams/{exam_id}/submissions", response_model=SubmissionListResponse, summary="List submissions")
def list_submissions(
    exam_id: UUID,
    status: Optional[str] = None,
    current: Profile = Depends(require_login),
    db: Session = Depends(get_db),
):
    exam = _get_exam(db, exam_id, current)
    query = db.query(Submission).filter(Submission.exam_id == exam.id)
    if status:
        query = query.filter(Submission.status == status)
    submissions = query.order_by(Submission.created_at.desc()).all()
    return SubmissionListResponse(submissions=submissions, total=len(submissions))
