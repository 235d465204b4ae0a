# app/models/user.py
# Authentication identity (User) + application profile (Profile)
# A User owns credentials and refresh tokens; the Profile (same id) carries
# the organization, role and the teacher's monthly credit counters.

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Uuid,
)
from sqlalchemy.orm import relationship

from app.db.base_class import Base

ROLES = ("teacher", "admin", "director", "superadmin", "institutional_manager")


def _first_of_month() -> date:
    today = datetime.now(timezone.utc).date()
    return today.replace(day=1)


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # ── Identity ──────────────────────────────────────────────────────────────
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)

    # ── Account Status ────────────────────────────────────────────────────────
    is_active = Column(Boolean, nullable=False, default=True)

    # ── Timestamps ────────────────────────────────────────────────────────────
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    # ── Relationships ─────────────────────────────────────────────────────────
    refresh_tokens = relationship(
        "RefreshToken", back_populates="user", cascade="all, delete-orphan"
    )
    profile = relationship("Profile", back_populates="user", uselist=False)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email}>"


class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # ── Token ─────────────────────────────────────────────────────────────────
    token_hash = Column(String(255), unique=True, nullable=False)  # SHA-256 of the token
    expires_at = Column(DateTime(timezone=True), nullable=False)
    is_revoked = Column(Boolean, nullable=False, default=False)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # ── Relationships ─────────────────────────────────────────────────────────
    user = relationship("User", back_populates="refresh_tokens")

    def __repr__(self) -> str:
        return f"<RefreshToken id={self.id} user_id={self.user_id} revoked={self.is_revoked}>"


class Profile(Base):
    __tablename__ = "profiles"
    __table_args__ = (
        CheckConstraint("monthly_credits_used >= 0", name="ck_profiles_usage_non_negative"),
    )

    # Same id as the owning User
    id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    organization_id = Column(
        Uuid, ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True, index=True
    )

    full_name = Column(String(255), nullable=False)
    role = Column(
        Enum(*ROLES, name="profile_role_enum"),
        nullable=False,
        default="teacher",
    )
    onboarding_completed = Column(Boolean, nullable=False, default=False)

    # Filled in by the teacher during onboarding
    subject = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    institution = Column(String(255), nullable=True)
    years_experience = Column(Integer, nullable=True)

    # ── Monthly Credits (per teacher) ─────────────────────────────────────────
    monthly_credit_limit = Column(Integer, nullable=False, default=500)
    monthly_credits_used = Column(Integer, nullable=False, default=0)
    usage_period_start = Column(Date, nullable=False, default=_first_of_month)

    # ── Timestamps ────────────────────────────────────────────────────────────
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # ── Relationships ─────────────────────────────────────────────────────────
    user = relationship("User", back_populates="profile")
    organization = relationship("Organization", back_populates="profiles")
    classes = relationship("Class", back_populates="teacher")

    @property
    def email(self) -> str:
        return self.user.email if self.user else ""

    def __repr__(self) -> str:
        return f"<Profile id={self.id} role={self.role} org={self.organization_id}>"
