# app/api/endpoints/dashboards.py
# Read-side dashboards + teacher credit limits.
#
# Routes:
#   POST /get-class-analytics                          -- class owner (or superadmin)
#   POST /get-student-dashboard                        -- anyone allowed to grade the student's class
#   GET  /get-organization-dashboard                   -- org admin / director
#   PUT  /organization/users/{user_id}/credit-limit    -- org admin / director, same organization
#   GET  /institutional/dashboard                      -- institutional manager, child organizations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

import app.db.base  # noqa: F401
from app.api.endpoints.organizations import members_of
from app.core.dependencies import (
    client_ip,
    require_institutional_manager,
    require_login,
    require_org_admin,
)
from app.db.session import get_db
from app.models.class_ import Class, Student
from app.models.organization import Organization
from app.models.user import Profile
from app.schemas.dashboard import (
    ClassAnalyticsRequest,
    ClassAnalyticsResponse,
    InstitutionalDashboardResponse,
    OrganizationDashboardResponse,
    StudentDashboardRequest,
    StudentDashboardResponse,
)
from app.schemas.organization import OrganizationMember, OrganizationResponse
from app.schemas.user import CreditLimitUpdate
from app.services import analytics_service
from app.services.audit_service import log_event
from app.services.grading_service import can_grade

router = APIRouter()


@router.post("/get-class-analytics", response_model=ClassAnalyticsResponse, summary="Class analytics")
def get_class_analytics(
    payload: ClassAnalyticsRequest,
    current: Profile = Depends(require_login),
    db: Session = Depends(get_db),
):
    cls = db.query(Class).filter(Class.id == payload.class_id).first()
    if not cls:
        raise HTTPException(status_code=404, detail="Class not found.")
    if cls.teacher_id != current.id and current.role != "superadmin":
        raise HTTPException(status_code=403, detail="You do not have access to this class.")
    return analytics_service.class_analytics(db, cls)


@router.post("/get-student-dashboard", response_model=StudentDashboardResponse, summary="Student dashboard")
def get_student_dashboard(
    payload: StudentDashboardRequest,
    current: Profile = Depends(require_login),
    db: Session = Depends(get_db),
):
    student = db.query(Student).filter(Student.id == payload.student_id).first()
    if not student:
        raise HTTPException(status_code=404, detail="Student not found.")
    cls = db.query(Class).filter(Class.id == student.class_id).first()
    if not cls or not can_grade(current, cls):
        raise HTTPException(status_code=403, detail="You do not have access to this student.")
    return analytics_service.student_dashboard(db, student)


@router.get(
    "/get-organization-dashboard",
    response_model=OrganizationDashboardResponse,
    summary="Organization dashboard",
)
def get_organization_dashboard(
    current: Profile = Depends(require_org_admin),
    db: Session = Depends(get_db),
):
    if not current.organization_id:
        raise HTTPException(status_code=400, detail="Your account is not linked to an organization.")
    org = db.query(Organization).filter(Organization.id == current.organization_id).first()
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found.")

    classes = (
        db.query(Class)
        .filter(Class.organization_id == org.id)
        .order_by(Class.created_at.desc())
        .all()
    )
    return OrganizationDashboardResponse(
        organization=OrganizationResponse.model_validate(org),
        users=members_of(db, org.id),
        classes=classes,
    )


@router.put(
    "/organization/users/{user_id}/credit-limit",
    response_model=OrganizationMember,
    summary="Set a teacher's monthly credit limit",
)
def update_credit_limit(
    user_id: UUID,
    payload: CreditLimitUpdate,
    request: Request,
    current: Profile = Depends(require_org_admin),
    db: Session = Depends(get_db),
):
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    same_org = profile is not None and profile.organization_id == current.organization_id
    if not profile or (current.role != "superadmin" and not (same_org and current.organization_id)):
        raise HTTPException(status_code=404, detail="User not found in your organization.")

    previous = profile.monthly_credit_limit
    profile.monthly_credit_limit = payload.monthly_credit_limit
    log_event(db, current, "user.credit_limit", "user", profile.id,
              details={"from": previous, "to": payload.monthly_credit_limit},
              ip_address=client_ip(request))
    db.commit()
    db.refresh(profile)
    return OrganizationMember(
        id=profile.id,
        full_name=profile.full_name,
        email=profile.email,
        role=profile.role,
        monthly_credit_limit=profile.monthly_credit_limit,
        monthly_credits_used=profile.monthly_credits_used,
    )


@router.get(
    "/institutional/dashboard",
    response_model=InstitutionalDashboardResponse,
    summary="Roll-up of child organizations",
)
def get_institutional_dashboard(
    current: Profile = Depends(require_institutional_manager),
    db: Session = Depends(get_db),
):
    return analytics_service.institutional_dashboard(db, current.organization_id)
