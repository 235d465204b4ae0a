# app/services/grading_service.py
# Credit-metered AI grading of one submission
#
#   1. load submission + exam + class, check caller and preconditions
#   2. download the student PDF, cost = page count
#   3. reserve credits (claim + org debit + teacher usage, one transaction)
#   4. download the solution PDF, ask Gemini, validate the verdict
#   5. on failure: compensating refund, submission back to its previous status
#   6. persist verdict + Grade row, audit event
#
# The endpoint maps the exceptions raised here to HTTP status codes.

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.class_ import Class
from app.models.exam import Exam, Grade, Submission
from app.models.user import Profile
from app.services import credit_service, gemini_service, storage_service
from app.services.audit_service import log_event
from app.services.credit_service import Reservation, SubmissionBusy
from app.services.gemini_service import GradingModelError, GradingResponseInvalid
from app.services.pdf_service import count_pages
from app.services.storage_service import EXAM_BUCKET, StorageError

logger = logging.getLogger("aigrader.grading")

ORG_GRADER_ROLES = ("admin", "director")


class SubmissionNotFound(LookupError):
    pass


class GradingForbidden(PermissionError):
    pass


class GradingPreconditionFailed(ValueError):
    pass


@dataclass
class GradingResult:
    grade: Grade
    feedback: dict
    reservation: Reservation


def can_grade(actor: Profile, cls: Class) -> bool:
    """Class teacher, an admin/director of the class's organization, or a superadmin."""
    if actor.role == "superadmin":
        return True
    if cls.teacher_id == actor.id:
        return True
    return (
        actor.role in ORG_GRADER_ROLES
        and cls.organization_id is not None
        and actor.organization_id == cls.organization_id
    )


def _load(db: Session, submission_id: UUID):
    row = (
        db.query(Submission, Exam, Class)
        .join(Exam, Exam.id == Submission.exam_id)
        .join(Class, Class.id == Exam.class_id)
        .filter(Submission.id == submission_id)
        .first()
    )
    if not row:
        raise SubmissionNotFound("Submission not found.")
    return row


def grade_submission(
    db: Session,
    submission_id: UUID,
    actor: Profile,
    ip_address: Optional[str] = None,
) -> GradingResult:
    submission, exam, cls = _load(db, submission_id)

    if not can_grade(actor, cls):
        raise GradingForbidden("You are not allowed to grade this submission.")
    if not exam.solution_file_url:
        raise GradingPreconditionFailed("The exam has no solution file uploaded.")
    if not cls.organization_id or not cls.teacher_id:
        raise GradingPreconditionFailed("The exam's class has no organization or teacher assigned.")
    if submission.status == "processing":
        raise SubmissionBusy("This submission is already being graded.")

    logger.info(f"Grading submission={submission.id} exam={exam.id} org={cls.organization_id}")

    submission_pdf = storage_service.download_bytes(EXAM_BUCKET, submission.submission_file_url)
    cost = count_pages(submission_pdf)
    logger.info(f"Submission {submission.id}: {cost} pages → {cost} credits")

    reservation = credit_service.reserve_for_submission(
        db,
        submission_id=submission.id,
        organization_id=cls.organization_id,
        profile_id=cls.teacher_id,
        cost=cost,
        previous_status=submission.status,
    )

    try:
        solution_pdf = storage_service.download_bytes(EXAM_BUCKET, exam.solution_file_url)
        report = gemini_service.grade_exam(exam.name, solution_pdf, submission_pdf)
    except (StorageError, GradingModelError, GradingResponseInvalid) as e:
        logger.error(f"Grading failed for submission={submission.id}: {type(e).__name__}: {e}")
        credit_service.refund_reservation(
            db, reservation, reason=type(e).__name__, refund=settings.refund_credits_on_failure
        )
        raise

    feedback = report.model_dump(mode="json")
    try:
        db.execute(
            update(Submission)
            .where(Submission.id == submission.id)
            .values(
                status="graded",
                ai_feedback=feedback,
                page_count=cost,
                graded_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        grade = Grade(
            submission_id=submission.id,
            student_id=submission.student_id,
            exam_id=exam.id,
            organization_id=cls.organization_id,
            score_obtained=report.score_obtained,
            score_possible=report.score_possible,
            ai_feedback=feedback,
        )
        db.add(grade)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(f"Persisting grade failed for submission={submission.id}")
        credit_service.refund_reservation(
            db, reservation, reason="persist_failed", refund=settings.refund_credits_on_failure
        )
        raise

    log_event(
        db,
        actor,
        "grading.complete",
        "submission",
        submission.id,
        details={
            "grade_id": str(grade.id),
            "credits_used": cost,
            "score": f"{report.score_obtained}/{report.score_possible}",
        },
        ip_address=ip_address,
    )
    db.commit()

    logger.info(
        f"Graded submission={submission.id} grade={grade.id} "
        f"score={report.score_obtained}/{report.score_possible}"
    )
    return GradingResult(grade=grade, feedback=feedback, reservation=reservation)
