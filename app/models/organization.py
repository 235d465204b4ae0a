# app/models/organization.py
# Tenant model: a school (or an institution owning child schools via parent_id)
# Holds the shared credit balance consumed by AI grading.

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from app.db.base_class import Base

PLAN_NAMES = ("Basic", "Pro", "Enterprise")


class Organization(Base):
    __tablename__ = "organizations"
    __table_args__ = (
        CheckConstraint("credits_remaining >= 0", name="ck_organizations_credits_non_negative"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # ── Identity ──────────────────────────────────────────────────────────────
    name = Column(String(255), nullable=False, index=True)
    subdomain = Column(String(100), unique=True, nullable=True)
    education_level = Column(String(100), nullable=True)
    logo_url = Column(Text, nullable=True)
    parent_id = Column(
        Uuid, ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # ── Contact / CRM ─────────────────────────────────────────────────────────
    contact_name = Column(String(255), nullable=True)
    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(50), nullable=True)

    # ── Billing ───────────────────────────────────────────────────────────────
    billing_name = Column(String(255), nullable=True)
    billing_email = Column(String(255), nullable=True)
    billing_tax_id = Column(String(50), nullable=True)
    billing_address = Column(Text, nullable=True)

    # ── Plan & Credits ────────────────────────────────────────────────────────
    subscription_plan = Column(String(50), nullable=True)  # Basic | Pro | Enterprise
    billing_cycle = Column(
        Enum("monthly", "annual", name="billing_cycle_enum"),
        nullable=False,
        default="monthly",
    )
    credits_per_period = Column(Integer, nullable=False, default=0)
    credits_remaining = Column(Integer, nullable=False, default=0)
    next_renewal_date = Column(DateTime(timezone=True), nullable=True, index=True)

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
    profiles = relationship("Profile", back_populates="organization")
    classes = relationship("Class", back_populates="organization")
    parent = relationship("Organization", remote_side=[id], backref="children")

    def __repr__(self) -> str:
        return (
            f"<Organization id={self.id} name={self.name} "
            f"credits_remaining={self.credits_remaining}>"
        )
