# app/api/endpoints/grading.py
# AI grading and results delivery.
#
# POST /grade-submission    -- grade one submission, cost = PDF page count
# POST /send-results-email  -- email the stored verdict to student + tutor
#
# Status codes for grading:
#   402 organization out of credits     403 monthly limit / not allowed
#   404 submission not found            409 submission already being graded
#   400 missing solution / bad PDF      502 model failure or invalid verdict

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

import app.db.base  # noqa: F401
from app.core.dependencies import client_ip, require_login
from app.db.session import get_db
from app.models.class_ import Class, Student
from app.models.exam import Exam, Grade
from app.models.user import Profile
from app.schemas.grading import (
    GradeSubmissionRequest,
    GradeSubmissionResponse,
    SendResultsEmailRequest,
    SendResultsEmailResponse,
)
from app.services import email_service, grading_service
from app.services.audit_service import log_event
from app.services.credit_service import InsufficientCredits, MonthlyLimitExceeded, SubmissionBusy
from app.services.gemini_service import GradingModelError, GradingResponseInvalid
from app.services.pdf_service import InvalidPdf
from app.services.storage_service import StorageError

router = APIRouter()


@router.post("/grade-submission", response_model=GradeSubmissionResponse, summary="Grade a submission with AI")
def grade_submission(
    payload: GradeSubmissionRequest,
    request: Request,
    current: Profile = Depends(require_login),
    db: Session = Depends(get_db),
):
    try:
        result = grading_service.grade_submission(
            db, payload.submission_id, current, ip_address=client_ip(request)
        )
    except grading_service.SubmissionNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except grading_service.GradingForbidden as e:
        raise HTTPException(status_code=403, detail=str(e))
    except (grading_service.GradingPreconditionFailed, InvalidPdf) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SubmissionBusy as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InsufficientCredits as e:
        raise HTTPException(status_code=402, detail=str(e))
    except MonthlyLimitExceeded as e:
        raise HTTPException(status_code=403, detail=str(e))
    except GradingModelError:
        raise HTTPException(status_code=502, detail="AI model error while grading. Credits were refunded.")
    except GradingResponseInvalid:
        raise HTTPException(status_code=502, detail="The AI returned an invalid response. Credits were refunded.")
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))

    reservation = result.reservation
    return GradeSubmissionResponse(
        grade_id=result.grade.id,
        feedback=result.feedback,
        credits_used=reservation.credits,
        credits_remaining=reservation.credits_remaining,
        monthly_credits_used=reservation.monthly_credits_used,
        monthly_credit_limit=reservation.monthly_credit_limit,
    )


@router.post("/send-results-email", response_model=SendResultsEmailResponse, summary="Email grading results")
def send_results_email(
    payload: SendResultsEmailRequest,
    request: Request,
    current: Profile = Depends(require_login),
    db: Session = Depends(get_db),
):
    row = (
        db.query(Grade, Student, Exam, Class)
        .join(Student, Student.id == Grade.student_id)
        .join(Exam, Exam.id == Grade.exam_id)
        .join(Class, Class.id == Exam.class_id)
        .filter(Grade.id == payload.grade_id)
        .first()
    )
    if not row:
        raise HTTPException(status_code=404, detail="Grade not found.")
    grade, student, exam, cls = row
    if not grading_service.can_grade(current, cls):
        raise HTTPException(status_code=403, detail="You do not have access to this grade.")

    recipients = []
    for address in (student.student_email, student.tutor_email):
        if address and address not in recipients:
            recipients.append(address)
    if not recipients:
        raise HTTPException(status_code=400, detail="The student has no email addresses on file.")

    html = email_service.build_results_html(
        student.full_name, grade.score_obtained, grade.score_possible, grade.ai_feedback
    )
    try:
        provider_id = email_service.send_email(
            recipients, f"Reporte de Calificación - {exam.name}", html
        )
    except email_service.EmailNotConfigured as e:
        raise HTTPException(status_code=500, detail=str(e))
    except email_service.EmailDeliveryError as e:
        raise HTTPException(status_code=502, detail=str(e))

    log_event(db, current, "grade.email_results", "grade", grade.id,
              details={"recipients": recipients}, ip_address=client_ip(request))
    db.commit()
    return SendResultsEmailResponse(
        message=f"Results sent to {len(recipients)} recipient(s).",
        recipients=recipients,
        provider_id=provider_id,
    )
