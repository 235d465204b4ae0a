# app/schemas/organization.py
# Superadmin organization management + bulk import

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.services.credit_service import PLAN_CREDITS


def _strip_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Value cannot be empty")
    return v


# ── Requests ──────────────────────────────────────────────────────────────────

class OrganizationCreate(BaseModel):
    name: str
    subdomain: Optional[str] = None
    education_level: Optional[str] = None
    parent_id: Optional[UUID] = None
    contact_name: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        return _strip_required(v)


class OrganizationUpdate(BaseModel):
    """Generic update -- every field optional, only sent fields are applied."""
    name: Optional[str] = None
    subdomain: Optional[str] = None
    education_level: Optional[str] = None
    parent_id: Optional[UUID] = None
    contact_name: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None
    billing_name: Optional[str] = None
    billing_email: Optional[EmailStr] = None
    billing_tax_id: Optional[str] = None
    billing_address: Optional[str] = None
    subscription_plan: Optional[str] = None
    billing_cycle: Optional[str] = None
    credits_per_period: Optional[int] = Field(default=None, ge=0)
    credits_remaining: Optional[int] = Field(default=None, ge=0)
    next_renewal_date: Optional[datetime] = None

    @field_validator("credits_per_period", "credits_remaining")
    @classmethod
    def credits_not_null(cls, v: Optional[int]) -> int:
        # Optional only so the field can be left out; the columns are NOT NULL
        if v is None:
            raise ValueError("Value cannot be null")
        return v

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("Value cannot be null")
        return _strip_required(v)

    @field_validator("subdomain")
    @classmethod
    def blank_subdomain_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    @field_validator("billing_cycle")
    @classmethod
    def valid_cycle(cls, v: Optional[str]) -> str:
        if v not in ("monthly", "annual"):
            raise ValueError("billing_cycle must be 'monthly' or 'annual'")
        return v

    @field_validator("subscription_plan")
    @classmethod
    def known_plan(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in PLAN_CREDITS:
            raise ValueError(f"subscription_plan must be one of: {', '.join(PLAN_CREDITS)}")
        return v


class AssignPlanRequest(BaseModel):
    plan: str

    @field_validator("plan")
    @classmethod
    def known_plan(cls, v: str) -> str:
        if v not in PLAN_CREDITS:
            raise ValueError(f"plan must be one of: {', '.join(PLAN_CREDITS)}")
        return v


class BulkCsvRequest(BaseModel):
    csv_data: str


# ── Responses ─────────────────────────────────────────────────────────────────

class OrganizationResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    name: str
    subdomain: Optional[str] = None
    education_level: Optional[str] = None
    parent_id: Optional[UUID] = None
    logo_url: Optional[str] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    billing_name: Optional[str] = None
    billing_email: Optional[str] = None
    billing_tax_id: Optional[str] = None
    billing_address: Optional[str] = None
    subscription_plan: Optional[str] = None
    billing_cycle: str
    credits_per_period: int
    credits_remaining: int
    next_renewal_date: Optional[datetime] = None
    created_at: datetime


class OrganizationMember(BaseModel):
    id: UUID
    full_name: str
    email: str
    role: str
    monthly_credit_limit: int
    monthly_credits_used: int


class OrganizationDetailResponse(BaseModel):
    organization: OrganizationResponse
    users: List[OrganizationMember]


class DirectorCredential(BaseModel):
    organization: str
    email: str
    temporary_password: str


class OrganizationBulkResponse(BaseModel):
    success: bool
    created: int
    errors: int
    failures: List[dict]
    directors: List[DirectorCredential]
