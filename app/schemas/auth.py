# app/schemas/auth.py
# Pydantic request/response models for authentication endpoints

from datetime import date
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator


# ── Login ─────────────────────────────────────────────────────────────────────

class LoginRequest(BaseModel):
    email: EmailStr
    password: str


# ── Token Responses ───────────────────────────────────────────────────────────

class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds until access token expiry

    # Profile summary so the frontend can route by role without a second request
    user_id: UUID
    role: str
    full_name: str
    organization_id: Optional[UUID] = None


class AccessTokenResponse(BaseModel):
    """Returned by /refresh -- only a new access token, not a new refresh token."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int


# ── Refresh / Logout ──────────────────────────────────────────────────────────

class RefreshRequest(BaseModel):
    refresh_token: str


class LogoutRequest(BaseModel):
    refresh_token: str


# ── Me ────────────────────────────────────────────────────────────────────────

class MeResponse(BaseModel):
    id: UUID
    email: str
    full_name: str
    role: str
    organization_id: Optional[UUID] = None
    organization_name: Optional[str] = None
    organization_credits_remaining: Optional[int] = None
    monthly_credit_limit: int
    monthly_credits_used: int
    usage_period_start: date
    onboarding_completed: bool
    subject: Optional[str] = None
    country: Optional[str] = None
    institution: Optional[str] = None
    years_experience: Optional[int] = None


# ── Onboarding ────────────────────────────────────────────────────────────────

class OnboardingRequest(BaseModel):
    """A teacher completing their own profile after the first login."""
    full_name: str
    subject: Optional[str] = None
    country: Optional[str] = None
    institution: Optional[str] = None
    years_experience: int = Field(default=0, ge=0, le=80)

    @field_validator("full_name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("full_name cannot be empty")
        return v

    @field_validator("subject", "country", "institution")
    @classmethod
    def blank_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


# ── Generic Message ───────────────────────────────────────────────────────────

class MessageResponse(BaseModel):
    message: str
