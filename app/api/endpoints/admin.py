# app/api/endpoints/admin.py
# Back-office endpoints -- all require role=superadmin

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

import app.db.base  # noqa: F401
from app.core.dependencies import client_ip, require_superadmin
from app.db.session import get_db
from app.models.audit import AuditLog
from app.models.user import Profile
from app.schemas.audit import AuditLogListResponse
from app.schemas.dashboard import AdminStatsResponse, RenewalResponse
from app.services import analytics_service, credit_service
from app.services.audit_service import log_event

router = APIRouter()


# ── Stats ─────────────────────────────────────────────────────────────────────

@router.get("/stats", response_model=AdminStatsResponse, summary="Platform statistics")
def get_stats(
    current: Profile = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    return analytics_service.admin_stats(db)


# ── Audit Trail ───────────────────────────────────────────────────────────────

@router.get("/audit-logs", response_model=AuditLogListResponse, summary="Latest audit events")
def list_audit_logs(
    action: Optional[str] = Query(None),
    organization_id: Optional[UUID] = Query(None),
    limit: int = Query(100, ge=1, le=100),
    current: Profile = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    query = db.query(AuditLog)
    if action:
        query = query.filter(AuditLog.action == action)
    if organization_id:
        query = query.filter(AuditLog.organization_id == organization_id)
    logs = query.order_by(AuditLog.created_at.desc()).limit(limit).all()
    return AuditLogListResponse(logs=logs, total=len(logs))


# ── Credits ───────────────────────────────────────────────────────────────────

@router.post("/credits/renew", response_model=RenewalResponse, summary="Run the credit renewal now")
def renew_credits(
    request: Request,
    current: Profile = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    summary = credit_service.renew_due_organizations(db)
    log_event(db, current, "credits.renew", "organization", None,
              details=summary, ip_address=client_ip(request))
    db.commit()
    return summary
