# app/models/credit.py
# Append-only credit ledger -- one row per balance movement
#
# kind:
#   debit      -- credits reserved for a grading call (credits > 0, subtracted)
#   refund     -- compensating entry after a failed grading call
#   renewal    -- periodic reset to credits_per_period
#   adjustment -- plan assignment / manual change by a superadmin

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, Text, Uuid

from app.db.base_class import Base

TRANSACTION_KINDS = ("debit", "refund", "renewal", "adjustment")


class CreditTransaction(Base):
    __tablename__ = "credit_transactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(
        Uuid, ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True, index=True
    )
    profile_id = Column(
        Uuid, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True
    )
    submission_id = Column(
        Uuid, ForeignKey("submissions.id", ondelete="SET NULL"), nullable=True, index=True
    )

    kind = Column(Enum(*TRANSACTION_KINDS, name="credit_transaction_kind_enum"), nullable=False)
    credits = Column(Integer, nullable=False)
    balance_after = Column(Integer, nullable=True)
    description = Column(Text, nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )

    def __repr__(self) -> str:
        return (
            f"<CreditTransaction id={self.id} kind={self.kind} "
            f"credits={self.credits} org={self.organization_id}>"
        )
