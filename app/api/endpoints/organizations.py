# app/api/endpoints/organizations.py
# Superadmin organization management.
#
# Routes:
#   GET    /admin/organizations              -- list, ordered by name
#   POST   /admin/organizations              -- create
#   POST   /admin/organizations/bulk         -- CSV import (org + director account per row)
#   GET    /admin/organizations/{id}         -- details + member profiles
#   PATCH  /admin/organizations/{id}         -- generic field update
#   POST   /admin/organizations/{id}/plan    -- assign Basic / Pro / Enterprise
#   POST   /admin/organizations/{id}/logo    -- upload logo → storage → logo_url
#   DELETE /admin/organizations/{id}         -- delete the organization row only
#
# Every mutation writes an audit event.

from datetime import datetime, timezone
from uuid import UUID

import app.db.base  # noqa: F401 -- must import before any DB query (registers all models)
from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.dependencies import client_ip, require_superadmin
from app.core.security import generate_temporary_password
from app.db.session import get_db
from app.models.organization import Organization
from app.models.user import Profile
from app.schemas.auth import MessageResponse
from app.schemas.organization import (
    AssignPlanRequest,
    BulkCsvRequest,
    DirectorCredential,
    OrganizationBulkResponse,
    OrganizationCreate,
    OrganizationDetailResponse,
    OrganizationMember,
    OrganizationResponse,
    OrganizationUpdate,
)
from app.services import credit_service, storage_service
from app.services.audit_service import log_event
from app.services.csv_import import CsvFormatError, parse_organization_csv
from app.services.user_service import UserAlreadyExists, create_account

router = APIRouter()

ALLOWED_LOGO_TYPES = {"image/jpeg", "image/png", "image/webp", "image/svg+xml"}
MAX_LOGO_BYTES = 2 * 1024 * 1024  # 2 MB


# ── Helpers ───────────────────────────────────────────────────────────────────

def _get_org_or_404(db: Session, org_id: UUID) -> Organization:
    org = db.query(Organization).filter(Organization.id == org_id).first()
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found.")
    return org


def _subdomain_taken(db: Session, subdomain: str, exclude_id: UUID = None) -> bool:
    query = db.query(Organization.id).filter(Organization.subdomain == subdomain)
    if exclude_id:
        query = query.filter(Organization.id != exclude_id)
    return query.first() is not None


def members_of(db: Session, org_id: UUID) -> list:
    profiles = (
        db.query(Profile)
        .filter(Profile.organization_id == org_id)
        .order_by(Profile.full_name.asc())
        .all()
    )
    return [
        OrganizationMember(
            id=p.id,
            full_name=p.full_name,
            email=p.email,
            role=p.role,
            monthly_credit_limit=p.monthly_credit_limit,
            monthly_credits_used=p.monthly_credits_used,
        )
        for p in profiles
    ]


# ── List / Create ─────────────────────────────────────────────────────────────

@router.get("", response_model=list[OrganizationResponse], summary="List organizations")
def list_organizations(
    current: Profile = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    return db.query(Organization).order_by(Organization.name.asc()).all()


@router.post("", response_model=OrganizationResponse, status_code=201, summary="Create an organization")
def create_organization(
    payload: OrganizationCreate,
    request: Request,
    current: Profile = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    if payload.subdomain and _subdomain_taken(db, payload.subdomain):
        raise HTTPException(status_code=409, detail="Subdomain already in use.")
    if payload.parent_id:
        _get_org_or_404(db, payload.parent_id)

    org = Organization(**payload.model_dump())
    db.add(org)
    db.flush()
    log_event(db, current, "organization.create", "organization", org.id,
              details={"name": org.name}, ip_address=client_ip(request))
    db.commit()
    db.refresh(org)
    return org


# ── Bulk CSV ──────────────────────────────────────────────────────────────────

@router.post("/bulk", response_model=OrganizationBulkResponse, summary="Create organizations from CSV")
def bulk_create_organizations(
    payload: BulkCsvRequest,
    request: Request,
    current: Profile = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    """
    CSV columns: name,subdomain,director_name,director_email[,education_level]
    Each row creates an organization on the Basic plan plus a director account
    with a temporary password. Row failures are reported, not fatal.
    """
    try:
        parsed = parse_organization_csv(payload.csv_data)
    except CsvFormatError as e:
        raise HTTPException(status_code=400, detail=str(e))

    failures = [issue.as_dict() for issue in parsed.skipped]
    directors = []
    created = 0
    now = datetime.now(timezone.utc)

    for line, row in parsed.rows:
        subdomain = row.get("subdomain") or None
        try:
            with db.begin_nested():
                if subdomain and _subdomain_taken(db, subdomain):
                    raise ValueError(f"Subdomain '{subdomain}' already in use.")
                org = Organization(
                    name=row["name"],
                    subdomain=subdomain,
                    education_level=row.get("education_level") or None,
                    billing_cycle="monthly",
                )
                db.add(org)
                db.flush()
                credit_service.assign_plan(db, org, "Basic", now=now)
                password = generate_temporary_password()
                create_account(
                    db,
                    email=row["director_email"],
                    password=password,
                    full_name=row["director_name"],
                    role="director",
                    organization_id=org.id,
                )
            created += 1
            directors.append(DirectorCredential(
                organization=org.name,
                email=row["director_email"].lower(),
                temporary_password=password,
            ))
        except (UserAlreadyExists, ValueError) as e:
            failures.append({"line": line, "reason": str(e)})
        except IntegrityError:
            failures.append({"line": line, "reason": "Duplicate organization or director account."})

    log_event(db, current, "organization.bulk_create", "organization", None,
              details={"created": created, "errors": len(failures)}, ip_address=client_ip(request))
    db.commit()
    return OrganizationBulkResponse(
        success=created > 0,
        created=created,
        errors=len(failures),
        failures=failures,
        directors=directors,
    )


# ── Details / Update / Delete ─────────────────────────────────────────────────

@router.get("/{org_id}", response_model=OrganizationDetailResponse, summary="Organization details with members")
def get_organization(
    org_id: UUID,
    current: Profile = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    org = _get_org_or_404(db, org_id)
    return OrganizationDetailResponse(
        organization=OrganizationResponse.model_validate(org),
        users=members_of(db, org.id),
    )


@router.patch("/{org_id}", response_model=OrganizationResponse, summary="Update organization fields")
def update_organization(
    org_id: UUID,
    payload: OrganizationUpdate,
    request: Request,
    current: Profile = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    org = _get_org_or_404(db, org_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("subdomain") and _subdomain_taken(db, changes["subdomain"], exclude_id=org.id):
        raise HTTPException(status_code=409, detail="Subdomain already in use.")
    if changes.get("parent_id") == org.id:
        raise HTTPException(status_code=400, detail="An organization cannot be its own parent.")
    if changes.get("parent_id"):
        _get_org_or_404(db, changes["parent_id"])

    for field, value in changes.items():
        setattr(org, field, value)
    log_event(db, current, "organization.update", "organization", org.id,
              details={"fields": sorted(changes)}, ip_address=client_ip(request))
    db.commit()
    db.refresh(org)
    return org


@router.post("/{org_id}/plan", response_model=OrganizationResponse, summary="Assign a subscription plan")
def assign_plan(
    org_id: UUID,
    payload: AssignPlanRequest,
    request: Request,
    current: Profile = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    org = _get_org_or_404(db, org_id)
    credit_service.assign_plan(db, org, payload.plan)
    log_event(db, current, "organization.assign_plan", "organization", org.id,
              details={"plan": payload.plan, "credits": org.credits_per_period},
              ip_address=client_ip(request))
    db.commit()
    db.refresh(org)
    return org


@router.post("/{org_id}/logo", response_model=OrganizationResponse, summary="Upload organization logo")
async def upload_logo(
    org_id: UUID,
    request: Request,
    file: UploadFile = File(...),
    current: Profile = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    org = _get_org_or_404(db, org_id)
    if file.content_type not in ALLOWED_LOGO_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported file type '{file.content_type}'. Allowed: JPEG, PNG, WebP, SVG.",
        )
    data = await file.read()
    if len(data) > MAX_LOGO_BYTES:
        raise HTTPException(status_code=400, detail="Logo must be 2 MB or smaller.")

    ext = (file.filename or "logo").rsplit(".", 1)[-1].lower()
    key = f"{org.id}/logo-{int(datetime.now(timezone.utc).timestamp())}.{ext}"
    storage_service.upload_bytes(storage_service.LOGO_BUCKET, key, data, file.content_type)
    org.logo_url = storage_service.public_url(storage_service.LOGO_BUCKET, key)
    log_event(db, current, "organization.upload_logo", "organization", org.id,
              details={"logo_url": org.logo_url}, ip_address=client_ip(request))
    db.commit()
    db.refresh(org)
    return org


@router.delete("/{org_id}", response_model=MessageResponse, summary="Delete an organization")
def delete_organization(
    org_id: UUID,
    request: Request,
    current: Profile = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    org = _get_org_or_404(db, org_id)
    name = org.name
    db.delete(org)
    log_event(db, current, "organization.delete", "organization", org_id,
              details={"name": name}, ip_address=client_ip(request))
    db.commit()
    return MessageResponse(message=f"Organization '{name}' deleted.")
