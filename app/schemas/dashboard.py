# app/schemas/dashboard.py
# Dashboard and analytics payloads (class, student, organization, institution, platform)

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from app.schemas.class_ import ClassResponse
from app.schemas.organization import OrganizationMember, OrganizationResponse


# ── Class Analytics ───────────────────────────────────────────────────────────

class ClassAnalyticsRequest(BaseModel):
    class_id: UUID


class ClassInfo(BaseModel):
    id: UUID
    name: str
    total_students: int
    total_grades: int


class GeneralStats(BaseModel):
    class_average: int
    highest_score: int
    lowest_score: int
    passing_rate: int


class DistributionBucket(BaseModel):
    range: str
    count: int
    percentage: int


class FailedQuestion(BaseModel):
    question_id: str
    tema: Optional[str] = None
    error_count: int
    percentage: int


class ErrorTypeCount(BaseModel):
    name: str
    value: int
    percentage: int


class ClassAnalyticsResponse(BaseModel):
    success: bool = True
    class_info: ClassInfo
    general_stats: GeneralStats
    grade_distribution: List[DistributionBucket]
    top_failed_questions: List[FailedQuestion]
    error_types_frequency: List[ErrorTypeCount]


# ── Student Dashboard ─────────────────────────────────────────────────────────

class StudentDashboardRequest(BaseModel):
    student_id: UUID


class StudentInfo(BaseModel):
    id: UUID
    full_name: str
    student_email: str
    tutor_email: Optional[str] = None


class StudentGrade(BaseModel):
    exam_id: UUID
    exam_name: str
    type: str
    subject: str
    percentage: int
    points_obtained: float
    points_possible: float
    created_at: datetime


class PointsTotal(BaseModel):
    obtained: float
    possible: float


class MonthlyAverage(BaseModel):
    month: str
    average: Optional[int] = None


class StudentStats(BaseModel):
    total_evaluations: int
    total_points: PointsTotal
    monthly_averages: List[MonthlyAverage]


class PedagogicalInsights(BaseModel):
    mastered: List[str]
    to_review: List[str]
    recommendation: str


class StudentDashboardResponse(BaseModel):
    success: bool = True
    student: StudentInfo
    class_name: str
    grades: List[StudentGrade]
    stats: StudentStats
    pedagogical_insights: PedagogicalInsights


# ── Organization Dashboard ────────────────────────────────────────────────────

class OrganizationDashboardResponse(BaseModel):
    success: bool = True
    organization: OrganizationResponse
    users: List[OrganizationMember]
    classes: List[ClassResponse]


# ── Institutional Dashboard ───────────────────────────────────────────────────

class SchoolSummary(BaseModel):
    id: UUID
    name: str
    level: str
    user_count: int
    average: int
    credits_remaining: int
    status: str


class InstitutionStats(BaseModel):
    total_schools: int
    total_users: int
    global_average: int


class InstitutionalDashboardResponse(BaseModel):
    success: bool = True
    schools: List[SchoolSummary]
    stats: InstitutionStats


# ── Platform ──────────────────────────────────────────────────────────────────

class AdminStatsResponse(BaseModel):
    organizations: int
    users: int
    evaluations: int


class RenewalResponse(BaseModel):
    due: int
    renewed: int
    failed: int
    usage_reset: int
