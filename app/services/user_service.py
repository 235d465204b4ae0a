# app/services/user_service.py
# Account provisioning shared by the admin endpoints, CSV imports and seeding
#
# An account is two rows with the same id: users (credentials) + profiles
# (organization, role, credit counters). Both are written in the caller's
# transaction, so a failed profile insert never leaves an orphan identity.

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import hash_password
from app.models.user import ROLES, Profile, User

logger = logging.getLogger("aigrader.users")


class UserAlreadyExists(ValueError):
    pass


def normalise_email(email: str) -> str:
    return email.strip().lower()


def create_account(
    db: Session,
    email: str,
    password: str,
    full_name: str,
    role: str = "teacher",
    organization_id: Optional[UUID] = None,
    monthly_credit_limit: Optional[int] = None,
) -> Profile:
    """Create identity + profile and flush. Raises UserAlreadyExists / ValueError."""
    email = normalise_email(email)
    if role not in ROLES:
        raise ValueError(f"Invalid role '{role}'.")
    if db.query(User.id).filter(User.email == email).first():
        raise UserAlreadyExists(f"An account with email {email} already exists.")

    user = User(email=email, hashed_password=hash_password(password), is_active=True)
    db.add(user)
    db.flush()

    profile = Profile(
        id=user.id,
        organization_id=organization_id,
        full_name=full_name.strip(),
        role=role,
        monthly_credit_limit=(
            monthly_credit_limit
            if monthly_credit_limit is not None
            else settings.default_monthly_credit_limit
        ),
        monthly_credits_used=0,
    )
    profile.user = user
    db.add(profile)
    db.flush()
    logger.info(f"Account created: {email} role={role} org={organization_id}")
    return profile


def delete_account(db: Session, user_id: UUID) -> bool:
    """
    Remove the authentication identity, then best-effort the profile row.
    Returns False when no identity exists. A failed profile delete is logged,
    not raised: the account can no longer log in either way.
    """
    deleted = db.execute(delete(User).where(User.id == user_id)).rowcount
    if not deleted:
        return False

    try:
        with db.begin_nested():
            db.execute(delete(Profile).where(Profile.id == user_id))
    except Exception as e:
        logger.error(f"Profile cleanup failed for deleted user {user_id}: {e}")

    logger.info(f"Account deleted: {user_id}")
    return True
