# app/schemas/user.py
# Superadmin user management + org-admin credit limits

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.models.user import ROLES


def _check_role(v: str) -> str:
    if v not in ROLES:
        raise ValueError(f"role must be one of: {', '.join(ROLES)}")
    return v


# ── Requests ──────────────────────────────────────────────────────────────────

class UserCreate(BaseModel):
    email: EmailStr
    password: str
    full_name: str
    role: str = "teacher"
    organization_id: Optional[UUID] = None
    monthly_credit_limit: Optional[int] = Field(default=None, ge=0)

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        return v

    @field_validator("role")
    @classmethod
    def valid_role(cls, v: str) -> str:
        return _check_role(v)

    @field_validator("full_name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Full name cannot be empty")
        return v


class UserUpdate(BaseModel):
    full_name: Optional[str] = None
    role: Optional[str] = None
    organization_id: Optional[UUID] = None
    monthly_credit_limit: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None

    @field_validator("role")
    @classmethod
    def valid_role(cls, v: Optional[str]) -> Optional[str]:
        return _check_role(v) if v is not None else v


class CreditLimitUpdate(BaseModel):
    monthly_credit_limit: int = Field(ge=0)


# ── Responses ─────────────────────────────────────────────────────────────────

class UserResponse(BaseModel):
    id: UUID
    email: str
    full_name: str
    role: str
    is_active: bool
    organization_id: Optional[UUID] = None
    organization_name: str
    monthly_credit_limit: int
    monthly_credits_used: int
    created_at: datetime


class UserBulkResponse(BaseModel):
    success: bool
    created_count: int
    failed_count: int
    errors: List[dict]
