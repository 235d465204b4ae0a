# app/api/endpoints/users.py
# Superadmin user management.
#
# Routes:
#   GET    /admin/users          -- all accounts with their organization name
#   POST   /admin/users          -- create identity + profile
#   POST   /admin/users/bulk     -- CSV import (full_name,email,password,role,organization_name)
#   PATCH  /admin/users/{id}     -- name, role, organization, credit limit, active flag
#   DELETE /admin/users/{id}     -- remove identity, then best-effort the profile
#
# Rules enforced:
#   - Emails are stored lower-cased and unique
#   - Organization referenced by id (single create) or by exact name (CSV)
#   - A superadmin cannot delete or deactivate their own account

from uuid import UUID

import app.db.base  # noqa: F401 -- must import before any DB query (registers all models)
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.dependencies import client_ip, require_superadmin
from app.db.session import get_db
from app.models.organization import Organization
from app.models.user import Profile, User
from app.schemas.auth import MessageResponse
from app.schemas.organization import BulkCsvRequest
from app.schemas.user import UserBulkResponse, UserCreate, UserResponse, UserUpdate
from app.services.audit_service import log_event
from app.services.csv_import import CsvFormatError, parse_user_csv
from app.services.user_service import UserAlreadyExists, create_account, delete_account

router = APIRouter()

UNASSIGNED = "Sin Asignar"


def _to_response(profile: Profile, user: User, org_name: str = None) -> UserResponse:
    return UserResponse(
        id=profile.id,
        email=user.email,
        full_name=profile.full_name,
        role=profile.role,
        is_active=user.is_active,
        organization_id=profile.organization_id,
        organization_name=org_name or UNASSIGNED,
        monthly_credit_limit=profile.monthly_credit_limit,
        monthly_credits_used=profile.monthly_credits_used,
        created_at=profile.created_at,
    )


def _org_name(db: Session, org_id) -> str:
    if not org_id:
        return UNASSIGNED
    org = db.query(Organization).filter(Organization.id == org_id).first()
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found.")
    return org.name


# ── GET /admin/users ──────────────────────────────────────────────────────────

@router.get("", response_model=list[UserResponse], summary="List all users")
def list_users(
    current: Profile = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    rows = (
        db.query(Profile, User, Organization.name)
        .join(User, User.id == Profile.id)
        .outerjoin(Organization, Organization.id == Profile.organization_id)
        .order_by(Profile.created_at.desc())
        .all()
    )
    return [_to_response(profile, user, org_name) for profile, user, org_name in rows]


# ── POST /admin/users ─────────────────────────────────────────────────────────

@router.post("", response_model=UserResponse, status_code=201, summary="Create a user")
def create_user(
    payload: UserCreate,
    request: Request,
    current: Profile = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    org_name = _org_name(db, payload.organization_id)
    try:
        profile = create_account(
            db,
            email=payload.email,
            password=payload.password,
            full_name=payload.full_name,
            role=payload.role,
            organization_id=payload.organization_id,
            monthly_credit_limit=payload.monthly_credit_limit,
        )
    except UserAlreadyExists as e:
        raise HTTPException(status_code=409, detail=str(e))

    log_event(db, current, "user.create", "user", profile.id,
              details={"email": profile.email, "role": profile.role}, ip_address=client_ip(request))
    db.commit()
    return _to_response(profile, profile.user, org_name)


# ── POST /admin/users/bulk ────────────────────────────────────────────────────

@router.post("/bulk", response_model=UserBulkResponse, summary="Create users from CSV")
def bulk_create_users(
    payload: BulkCsvRequest,
    request: Request,
    current: Profile = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    try:
        parsed = parse_user_csv(payload.csv_data)
    except CsvFormatError as e:
        raise HTTPException(status_code=400, detail=str(e))

    errors = [issue.as_dict() for issue in parsed.skipped]
    org_ids = {name: org_id for org_id, name in db.query(Organization.id, Organization.name).all()}
    created = 0

    for line, row in parsed.rows:
        org_name = row.get("organization_name") or ""
        org_id = None
        if org_name:
            org_id = org_ids.get(org_name)
            if org_id is None:
                errors.append({"line": line, "email": row["email"],
                               "reason": f"Organization '{org_name}' not found."})
                continue
        try:
            with db.begin_nested():
                create_account(
                    db,
                    email=row["email"],
                    password=row["password"],
                    full_name=row["full_name"],
                    role=row["role"].lower(),
                    organization_id=org_id,
                )
            created += 1
        except (UserAlreadyExists, ValueError) as e:
            errors.append({"line": line, "email": row["email"], "reason": str(e)})
        except IntegrityError:
            errors.append({"line": line, "email": row["email"], "reason": "Duplicate account."})

    log_event(db, current, "user.bulk_create", "user", None,
              details={"created": created, "failed": len(errors)}, ip_address=client_ip(request))
    db.commit()
    return UserBulkResponse(
        success=created > 0,
        created_count=created,
        failed_count=len(errors),
        errors=errors,
    )


# ── PATCH /admin/users/{id} ───────────────────────────────────────────────────

@router.patch("/{user_id}", response_model=UserResponse, summary="Update a user")
def update_user(
    user_id: UUID,
    payload: UserUpdate,
    request: Request,
    current: Profile = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    user = db.query(User).filter(User.id == user_id).first()
    if not profile or not user:
        raise HTTPException(status_code=404, detail="User not found.")

    changes = payload.model_dump(exclude_unset=True)
    if changes.get("is_active") is False and user.id == current.id:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account.")
    if "organization_id" in changes:
        _org_name(db, changes["organization_id"])

    for field, value in changes.items():
        if field == "is_active":
            user.is_active = value
        else:
            setattr(profile, field, value)

    log_event(db, current, "user.update", "user", user_id,
              details={"fields": sorted(changes)}, ip_address=client_ip(request))
    db.commit()
    return _to_response(profile, user, _org_name(db, profile.organization_id))


# ── DELETE /admin/users/{id} ──────────────────────────────────────────────────

@router.delete("/{user_id}", response_model=MessageResponse, summary="Delete a user")
def delete_user(
    user_id: UUID,
    request: Request,
    current: Profile = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    if user_id == current.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account.")
    if not delete_account(db, user_id):
        raise HTTPException(status_code=404, detail="User not found.")
    log_event(db, current, "user.delete", "user", user_id, ip_address=client_ip(request))
    db.commit()
    return MessageResponse(message="User deleted.")
