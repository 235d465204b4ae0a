# app/api/endpoints/classes.py
# Teacher-owned classes and their student rosters.
#
# Routes:
#   GET    /get-classes                 -- caller's classes, newest first
#   POST   /create-class                -- create (organization taken from the caller)
#   PUT    /update-class                -- name / subject / grade level (owner only)
#   DELETE /delete-class                -- delete (owner only)
#   GET    /classes/{class_id}/students -- roster
#   POST   /process-csv                 -- roster import (full_name,student_email,tutor_email)
#
# A class that exists but belongs to someone else answers 404 on mutation,
# 403 on CSV import.

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import app.db.base  # noqa: F401
from app.core.dependencies import client_ip, require_login
from app.db.session import get_db
from app.models.class_ import Class, Student
from app.models.user import Profile
from app.schemas.class_ import (
    ClassCreate,
    ClassDelete,
    ClassListResponse,
    ClassResponse,
    ClassUpdate,
    MessageResponse,
    ProcessCsvRequest,
    ProcessCsvResponse,
    StudentResponse,
)
from app.services.audit_service import log_event
from app.services.csv_import import CsvFormatError, parse_student_csv

router = APIRouter()


def get_owned_class(db: Session, class_id: UUID, owner: Profile) -> Class:
    cls = db.query(Class).filter(
        and_(Class.id == class_id, Class.teacher_id == owner.id)
    ).first()
    if not cls:
        raise HTTPException(status_code=404, detail="Class not found or access denied.")
    return cls


@router.get("/get-classes", response_model=ClassListResponse, summary="List my classes")
def list_classes(current: Profile = Depends(require_login), db: Session = Depends(get_db)):
    classes = (
        db.query(Class)
        .filter(Class.teacher_id == current.id)
        .order_by(Class.created_at.desc())
        .all()
    )
    return ClassListResponse(classes=classes, total=len(classes))


@router.post("/create-class", response_model=ClassResponse, status_code=201, summary="Create a class")
def create_class(payload: ClassCreate, current: Profile = Depends(require_login), db: Session = Depends(get_db)):
    cls = Class(
        name=payload.class_name,
        subject=payload.subject,
        grade_level=payload.grade_level,
        teacher_id=current.id,
        organization_id=current.organization_id,
    )
    db.add(cls)
    db.commit()
    db.refresh(cls)
    return cls


@router.put("/update-class", response_model=ClassResponse, summary="Update a class")
def update_class(payload: ClassUpdate, current: Profile = Depends(require_login), db: Session = Depends(get_db)):
    cls = get_owned_class(db, payload.class_id, current)
    changes = payload.model_dump(exclude_unset=True, exclude={"class_id"})
    if "name" in changes and not (changes["name"] or "").strip():
        raise HTTPException(status_code=400, detail="Class name cannot be empty.")
    for field, value in changes.items():
        setattr(cls, field, value.strip() if isinstance(value, str) else value)
    db.commit()
    db.refresh(cls)
    return cls


@router.delete("/delete-class", response_model=MessageResponse, summary="Delete a class")
def delete_class(payload: ClassDelete, current: Profile = Depends(require_login), db: Session = Depends(get_db)):
    cls = get_owned_class(db, payload.class_id, current)
    db.delete(cls)
    db.commit()
    return MessageResponse(message="Class deleted.")


@router.get("/classes/{class_id}/students", response_model=list[StudentResponse], summary="Class roster")
def list_students(class_id: UUID, current: Profile = Depends(require_login), db: Session = Depends(get_db)):
    cls = get_owned_class(db, class_id, current)
    return (
        db.query(Student)
        .filter(Student.class_id == cls.id)
        .order_by(Student.full_name.asc())
        .all()
    )


@router.post("/process-csv", response_model=ProcessCsvResponse, summary="Import students from CSV")
def process_csv(
    payload: ProcessCsvRequest,
    request: Request,
    current: Profile = Depends(require_login),
    db: Session = Depends(get_db),
):
    cls = db.query(Class).filter(
        and_(Class.id == payload.class_id, Class.teacher_id == current.id)
    ).first()
    if not cls:
        raise HTTPException(status_code=403, detail="Class not found or access denied.")

    try:
        parsed = parse_student_csv(payload.csv_data)
    except CsvFormatError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not parsed.rows:
        raise HTTPException(status_code=400, detail="No valid students found in the CSV.")

    added = 0
    errors = []
    for line, row in parsed.rows:
        try:
            with db.begin_nested():
                db.add(Student(
                    class_id=cls.id,
                    full_name=row["full_name"],
                    student_email=row["student_email"],
                    tutor_email=row.get("tutor_email") or None,
                ))
            added += 1
        except SQLAlchemyError as e:
            errors.append({"line": line, "reason": f"Insert failed: {e.__class__.__name__}"})

    log_event(db, current, "class.import_students", "class", cls.id,
              details={"added": added, "skipped": len(parsed.skipped), "failed": len(errors)},
              ip_address=client_ip(request))
    db.commit()
    return ProcessCsvResponse(
        success=added > 0,
        students_added=added,
        total_processed=parsed.total_processed,
        skipped=[issue.as_dict() for issue in parsed.skipped],
        errors=errors,
    )
