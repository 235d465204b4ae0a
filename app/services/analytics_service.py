# app/services/analytics_service.py
# Dashboard aggregations over stored grades and AI feedback
#
#   class_analytics()          -- per-class stats, distribution, failed questions, error types
#   student_dashboard()        -- grade history, monthly averages, pedagogical insights
#   institutional_dashboard()  -- child schools of an institution with status labels
#   admin_stats()              -- platform counters for the superadmin home
#
# Percentages are rounded half-up to whole numbers.

import json
import math
from datetime import datetime, timezone
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.class_ import Class, Student
from app.models.exam import Exam, Grade
from app.models.organization import Organization
from app.models.user import Profile

MONTH_LABELS = ["Ene", "Feb", "Mar", "Abr", "May", "Jun", "Jul", "Ago", "Sep", "Oct", "Nov", "Dic"]

DISTRIBUTION_RANGES = [
    ("90-100", 90, 100),
    ("80-89", 80, 89),
    ("70-79", 70, 79),
    ("60-69", 60, 69),
    ("0-59", 0, 59),
]

PASSING_PERCENTAGE = 60
DEFAULT_RECOMMENDATION = "Continúa con el plan de estudios estándar."


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def question_details(feedback) -> list:
    """evaluacion_detallada from a stored verdict; tolerates JSON strings and missing keys."""
    if isinstance(feedback, str):
        try:
            feedback = json.loads(feedback)
        except json.JSONDecodeError:
            return []
    if not isinstance(feedback, dict):
        return []
    report = feedback.get("informe_evaluacion") or {}
    details = report.get("evaluacion_detallada") or []
    return details if isinstance(details, list) else []


def _is_valid(grade) -> bool:
    return (
        grade.score_obtained is not None
        and grade.score_possible is not None
        and grade.score_possible > 0
    )


def _title_case(error_type: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in error_type.replace("_", " ").split(" "))


# ── Class Analytics ───────────────────────────────────────────────────────────

def compute_class_analytics(grades: Iterable) -> dict:
    """
    Aggregate a class's grades. Only grades with score_possible > 0 count.
    An empty input yields zeros and empty lists.
    """
    valid = [g for g in grades if _is_valid(g)]
    if not valid:
        return {
            "total_grades": 0,
            "general_stats": {
                "class_average": 0,
                "highest_score": 0,
                "lowest_score": 0,
                "passing_rate": 0,
            },
            "grade_distribution": [],
            "top_failed_questions": [],
            "error_types_frequency": [],
        }

    # Older rows may hold scores above the maximum
    percentages = [min(100, round_half_up(g.score_obtained / g.score_possible * 100)) for g in valid]
    total = len(percentages)
    passing = sum(1 for p in percentages if p >= PASSING_PERCENTAGE)

    distribution = []
    for label, low, high in DISTRIBUTION_RANGES:
        count = sum(1 for p in percentages if low <= p <= high)
        distribution.append({
            "range": label,
            "count": count,
            "percentage": round_half_up(count / total * 100),
        })

    failed: dict = {}
    error_types: dict = {}
    total_errors = 0
    for grade in valid:
        for question in question_details(grade.ai_feedback):
            if question.get("evaluacion") == "INCORRECTO":
                question_id = question.get("pregunta_id") or "Pregunta sin ID"
                entry = failed.setdefault(question_id, {"count": 0, "tema": question.get("tema")})
                entry["count"] += 1
            error_type = question.get("tipo_de_error")
            if error_type and error_type != "ninguno":
                error_types[error_type] = error_types.get(error_type, 0) + 1
                total_errors += 1

    top_failed = sorted(
        (
            {
                "question_id": question_id,
                "tema": data["tema"],
                "error_count": data["count"],
                "percentage": round_half_up(data["count"] / total * 100),
            }
            for question_id, data in failed.items()
        ),
        key=lambda item: item["error_count"],
        reverse=True,
    )[:3]

    error_frequency = sorted(
        (
            {
                "name": _title_case(error_type),
                "value": count,
                "percentage": round_half_up(count / total_errors * 100) if total_errors else 0,
            }
            for error_type, count in error_types.items()
        ),
        key=lambda item: item["value"],
        reverse=True,
    )

    return {
        "total_grades": total,
        "general_stats": {
            "class_average": round_half_up(sum(percentages) / total),
            "highest_score": max(percentages),
            "lowest_score": min(percentages),
            "passing_rate": round_half_up(passing / total * 100),
        },
        "grade_distribution": distribution,
        "top_failed_questions": top_failed,
        "error_types_frequency": error_frequency,
    }


def class_analytics(db: Session, cls: Class) -> dict:
    grades = (
        db.query(Grade)
        .join(Exam, Exam.id == Grade.exam_id)
        .filter(Exam.class_id == cls.id)
        .all()
    )
    stats = compute_class_analytics(grades)
    return {
        "success": True,
        "class_info": {
            "id": cls.id,
            "name": cls.name,
            "total_students": len({g.student_id for g in grades}),
            "total_grades": stats.pop("total_grades"),
        },
        **stats,
    }


# ── Student Dashboard ─────────────────────────────────────────────────────────

def monthly_averages(grades: Iterable, today: Optional[datetime] = None) -> List[dict]:
    """
    Twelve month buckets (Ene..Dic) for the current year, or for the previous
    year when nothing was graded this year. Empty months average to None.
    """
    grades = list(grades)
    target_year = (today or datetime.now(timezone.utc)).year
    if not any(g.created_at and g.created_at.year == target_year for g in grades):
        target_year -= 1

    sums = [0.0] * 12
    counts = [0] * 12
    for g in grades:
        if g.created_at and g.created_at.year == target_year and g.score_possible:
            index = g.created_at.month - 1
            sums[index] += g.score_obtained / g.score_possible * 100
            counts[index] += 1

    return [
        {
            "month": MONTH_LABELS[i],
            "average": round_half_up(sums[i] / counts[i]) if counts[i] else None,
        }
        for i in range(12)
    ]


def pedagogical_insights(grades: Iterable) -> dict:
    """
    mastered  -- topics answered CORRECTO at least once
    to_review -- topics answered INCORRECTO or partially
    recommendation -- first area_de_mejora of the most recent grade
    """
    grades = list(grades)
    mastered: dict = {}
    to_review: dict = {}
    for grade in grades:
        for item in question_details(grade.ai_feedback):
            topic = item.get("tema")
            if not topic:
                continue
            verdict = (item.get("evaluacion") or "").upper()
            if verdict == "CORRECTO":
                mastered[topic] = True
            elif verdict == "INCORRECTO" or "PARCIAL" in verdict:
                to_review[topic] = True

    recommendation = DEFAULT_RECOMMENDATION
    dated = [g for g in grades if g.created_at is not None]
    if dated:
        latest = max(dated, key=lambda g: g.created_at)
        for item in question_details(latest.ai_feedback):
            if item.get("area_de_mejora"):
                recommendation = item["area_de_mejora"]
                break

    return {
        "mastered": list(mastered)[:4],
        "to_review": list(to_review)[:4],
        "recommendation": recommendation,
    }


def student_dashboard(db: Session, student: Student) -> dict:
    rows = (
        db.query(Grade, Exam)
        .join(Exam, Exam.id == Grade.exam_id)
        .filter(Grade.student_id == student.id)
        .order_by(Grade.created_at.asc())
        .all()
    )
    grades = [grade for grade, _ in rows]
    insights = pedagogical_insights(grades)
    cls = db.query(Class).filter(Class.id == student.class_id).first()

    return {
        "success": True,
        "student": {
            "id": student.id,
            "full_name": student.full_name,
            "student_email": student.student_email,
            "tutor_email": student.tutor_email,
        },
        "class_name": cls.name if cls else "Sin Clase",
        "grades": [
            {
                "exam_id": exam.id,
                "exam_name": exam.name or "Evaluación",
                "type": exam.type or "exam",
                "subject": exam.subject or "General",
                "percentage": round_half_up(grade.percentage),
                "points_obtained": grade.score_obtained,
                "points_possible": grade.score_possible,
                "created_at": grade.created_at,
            }
            for grade, exam in rows
        ],
        "stats": {
            "total_evaluations": len(grades),
            "total_points": {
                "obtained": sum(g.score_obtained or 0 for g in grades),
                "possible": sum(g.score_possible or 0 for g in grades),
            },
            "monthly_averages": monthly_averages(grades),
        },
        "pedagogical_insights": insights,
    }


# ── Institutional Roll-up ─────────────────────────────────────────────────────

def institution_status(average: float) -> str:
    if average >= 80:
        return "Exitoso"
    if average >= 60:
        return "En Riesgo"
    return "Crítico"


def institutional_dashboard(db: Session, parent_id: UUID) -> dict:
    schools = (
        db.query(Organization)
        .filter(Organization.parent_id == parent_id)
        .order_by(Organization.name.asc())
        .all()
    )

    rows = []
    for org in schools:
        user_count = db.query(func.count(Profile.id)).filter(Profile.organization_id == org.id).scalar() or 0
        grades = (
            db.query(Grade.score_obtained, Grade.score_possible)
            .filter(Grade.organization_id == org.id)
            .all()
        )
        if grades:
            average = sum(obtained / (possible or 1) for obtained, possible in grades) / len(grades) * 100
        else:
            average = 0.0
        rows.append({
            "id": org.id,
            "name": org.name,
            "level": org.education_level or "N/A",
            "user_count": user_count,
            "average": round_half_up(average),
            "credits_remaining": org.credits_remaining or 0,
            "status": institution_status(average),
        })

    return {
        "success": True,
        "schools": rows,
        "stats": {
            "total_schools": len(rows),
            "total_users": sum(r["user_count"] for r in rows),
            "global_average": round_half_up(sum(r["average"] for r in rows) / len(rows)) if rows else 0,
        },
    }


# ── Platform Stats ────────────────────────────────────────────────────────────

def admin_stats(db: Session) -> dict:
    return {
        "organizations": db.query(func.count(Organization.id)).scalar() or 0,
        "users": db.query(func.count(Profile.id)).scalar() or 0,
        "evaluations": db.query(func.count(Exam.id)).scalar() or 0,
    }
