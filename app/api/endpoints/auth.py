# app/api/endpoints/auth.py
# Authentication endpoints
#
# POST /auth/login    -- returns access + refresh token
# POST /auth/refresh  -- new access token from refresh token
# POST /auth/logout   -- revoke refresh token
# GET  /auth/me       -- own profile with organization and credit counters
# PUT  /auth/me/onboarding -- complete own profile, marks onboarding done

from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import and_
from sqlalchemy.orm import Session

import app.db.base  # noqa: F401 -- registers all models so relationships resolve
from app.core.config import settings
from app.core.dependencies import client_ip, require_login
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    get_token_expiry,
    hash_token,
    verify_password,
)
from app.db.session import get_db
from app.models.organization import Organization
from app.models.user import Profile, RefreshToken, User
from app.schemas.auth import (
    AccessTokenResponse,
    LoginRequest,
    LogoutRequest,
    MeResponse,
    MessageResponse,
    OnboardingRequest,
    RefreshRequest,
    TokenResponse,
)
from app.services.audit_service import log_event

router = APIRouter()


# Helper
def _build_token_response(user: User, profile: Profile, db: Session) -> TokenResponse:
    access_token = create_access_token(user.id, profile.role)
    refresh_token = create_refresh_token(user.id)
    db.add(RefreshToken(
        user_id=user.id,
        token_hash=hash_token(refresh_token),
        expires_at=get_token_expiry(days=settings.refresh_token_expire_days),
    ))
    db.flush()
    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=settings.access_token_expire_minutes * 60,
        user_id=user.id,
        role=profile.role,
        full_name=profile.full_name,
        organization_id=profile.organization_id,
    )


# Login
@router.post("/login", response_model=TokenResponse, summary="Log in with email and password")
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(
        and_(User.email == payload.email.lower(), User.is_active == True)  # noqa: E712
    ).first()
    if not user or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Incorrect email or password.")
    profile = db.query(Profile).filter(Profile.id == user.id).first()
    if not profile:
        raise HTTPException(status_code=401, detail="This account has no profile.")
    user.last_login_at = datetime.now(timezone.utc)
    response = _build_token_response(user, profile, db)
    db.commit()
    return response


# Refresh
@router.post("/refresh", response_model=AccessTokenResponse, summary="Get a new access token")
def refresh_token(payload: RefreshRequest, db: Session = Depends(get_db)):
    token_payload = decode_token(payload.refresh_token)
    if not token_payload or token_payload.get("type") != "refresh":
        raise HTTPException(status_code=401, detail="Invalid or expired refresh token.")
    try:
        user_id = UUID(token_payload.get("sub") or "")
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid or expired refresh token.")

    db_token = db.query(RefreshToken).filter(
        and_(
            RefreshToken.user_id == user_id,
            RefreshToken.token_hash == hash_token(payload.refresh_token),
            RefreshToken.is_revoked == False,  # noqa: E712
        )
    ).first()
    if not db_token:
        raise HTTPException(status_code=401, detail="Refresh token has been revoked or expired.")

    user = db.query(User).filter(and_(User.id == user_id, User.is_active == True)).first()  # noqa: E712
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if not user or not profile:
        raise HTTPException(status_code=401, detail="User not found.")
    new_access_token = create_access_token(user.id, profile.role)
    return AccessTokenResponse(
        access_token=new_access_token,
        expires_in=settings.access_token_expire_minutes * 60,
    )


# Logout
@router.post("/logout", response_model=MessageResponse, summary="Log out and revoke refresh token")
def logout(payload: LogoutRequest, db: Session = Depends(get_db)):
    db_token = db.query(RefreshToken).filter(
        RefreshToken.token_hash == hash_token(payload.refresh_token)
    ).first()
    if db_token:
        db_token.is_revoked = True
        db.commit()
    return MessageResponse(message="Logged out successfully.")


# Me
def _me_response(db: Session, current: Profile) -> MeResponse:
    org = None
    if current.organization_id:
        org = db.query(Organization).filter(Organization.id == current.organization_id).first()
    return MeResponse(
        id=current.id,
        email=current.email,
        full_name=current.full_name,
        role=current.role,
        organization_id=current.organization_id,
        organization_name=org.name if org else None,
        organization_credits_remaining=org.credits_remaining if org else None,
        monthly_credit_limit=current.monthly_credit_limit,
        monthly_credits_used=current.monthly_credits_used,
        usage_period_start=current.usage_period_start,
        onboarding_completed=current.onboarding_completed,
        subject=current.subject,
        country=current.country,
        institution=current.institution,
        years_experience=current.years_experience,
    )


@router.get("/me", response_model=MeResponse, summary="Get own profile")
def me(current: Profile = Depends(require_login), db: Session = Depends(get_db)):
    return _me_response(db, current)


@router.put("/me/onboarding", response_model=MeResponse, summary="Complete own profile")
def complete_onboarding(
    payload: OnboardingRequest,
    request: Request,
    current: Profile = Depends(require_login),
    db: Session = Depends(get_db),
):
    for field, value in payload.model_dump().items():
        setattr(current, field, value)
    current.onboarding_completed = True
    log_event(db, current, "user.onboarding", "user", current.id,
              details={"institution": current.institution}, ip_address=client_ip(request))
    db.commit()
    db.refresh(current)
    return _me_response(db, current)
