# app/models/audit.py
# Append-only audit trail of administrative actions

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Uuid

from app.db.base_class import Base, JSONType


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # ── Actor ─────────────────────────────────────────────────────────────────
    # Plain columns, not FKs: the trail must survive user / org deletion
    user_id = Column(Uuid, nullable=True, index=True)
    user_email = Column(String(255), nullable=True)
    organization_id = Column(Uuid, nullable=True, index=True)
    ip_address = Column(String(64), nullable=True)

    # ── Event ─────────────────────────────────────────────────────────────────
    action = Column(String(100), nullable=False, index=True)
    entity_type = Column(String(100), nullable=True)
    entity_id = Column(String(100), nullable=True)
    details = Column(JSONType, nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )

    def __repr__(self) -> str:
        return f"<AuditLog id={self.id} action={self.action} entity={self.entity_type}:{self.entity_id}>"
