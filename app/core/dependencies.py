# app/core/dependencies.py
# FastAPI dependency functions for authentication and authorization
#
# Every protected endpoint resolves the caller's Profile from the bearer token.
# Role guards:
#   require_login                  -- any active account
#   require_org_admin              -- admin | director (of an organization) | superadmin
#   require_superadmin             -- platform back office
#   require_institutional_manager  -- institution roll-up dashboards

from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import and_
from sqlalchemy.orm import Session

from app.core.security import decode_token
from app.db.session import get_db
from app.models.user import Profile, User

# Bearer token extractor -- auto_error=False so we can handle 401 ourselves
bearer_scheme = HTTPBearer(auto_error=False)

ORG_ADMIN_ROLES = ("admin", "director", "superadmin")


# ── Token Extraction ──────────────────────────────────────────────────────────

def _extract_profile_from_token(
    credentials: Optional[HTTPAuthorizationCredentials],
    db: Session,
) -> Optional[Profile]:
    """
    Internal helper: decode Bearer token and load the caller's profile.
    Returns None if no token, invalid token, or user not found/inactive.
    """
    if not credentials:
        return None

    payload = decode_token(credentials.credentials)
    if not payload or payload.get("type") != "access":
        return None

    try:
        user_id = UUID(payload.get("sub") or "")
    except ValueError:
        return None

    return (
        db.query(Profile)
        .join(User, User.id == Profile.id)
        .filter(and_(Profile.id == user_id, User.is_active == True))  # noqa: E712
        .first()
    )


def _unauthenticated() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Authentication required. Please log in.",
        headers={"WWW-Authenticate": "Bearer"},
    )


def client_ip(request: Request) -> Optional[str]:
    """First hop of X-Forwarded-For, falling back to the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


# ── Auth Dependencies ─────────────────────────────────────────────────────────

def require_login(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Profile:
    """
    Requires a valid access token. Raises 401 if not authenticated.

    Use for: teacher-owned resources (classes, exams, grading) where
    ownership is checked inside the endpoint.
    """
    profile = _extract_profile_from_token(credentials, db)
    if not profile:
        raise _unauthenticated()
    return profile


def require_org_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Profile:
    """
    Requires role admin/director/superadmin. Raises 403 for other roles.
    Use for: organization dashboard, teacher credit limits.
    """
    profile = _extract_profile_from_token(credentials, db)
    if not profile:
        raise _unauthenticated()
    if profile.role not in ORG_ADMIN_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Organization admin access required.",
        )
    return profile


def require_superadmin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Profile:
    """
    Requires role='superadmin'. Raises 403 for all other roles.
    Use for: /admin/* back-office endpoints only.
    """
    profile = _extract_profile_from_token(credentials, db)
    if not profile:
        raise _unauthenticated()
    if profile.role != "superadmin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Superadmin access required.",
        )
    return profile


def require_institutional_manager(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Profile:
    profile = _extract_profile_from_token(credentials, db)
    if not profile:
        raise _unauthenticated()
    if profile.role not in ("institutional_manager", "superadmin"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Institutional manager access required.",
        )
    if not profile.organization_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No institution is associated with this account.",
        )
    return profile
