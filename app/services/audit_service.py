# app/services/audit_service.py
# Append-only audit trail
#
# Usage (from any endpoint):
#   from app.services.audit_service import log_event
#   log_event(db, actor, "organization.create", "organization", org.id,
#             details={"name": org.name}, ip_address=client_ip(request))
#
# Audit writes run in a savepoint and never fail the calling request.

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.models.audit import AuditLog
from app.models.user import Profile

logger = logging.getLogger("aigrader.audit")


def log_event(
    db: Session,
    actor: Optional[Profile],
    action: str,
    entity_type: Optional[str] = None,
    entity_id: Any = None,
    details: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
) -> Optional[AuditLog]:
    """
    Record an audit event in the caller's transaction.

    Returns the AuditLog row, or None when the insert failed (logged).
    """
    entry = AuditLog(
        user_id=actor.id if actor else None,
        user_email=actor.email if actor else None,
        organization_id=actor.organization_id if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        details=details or {},
        ip_address=ip_address,
    )
    try:
        with db.begin_nested():
            db.add(entry)
    except Exception as e:
        logger.error(f"Audit log insert failed for action={action}: {e}")
        return None
    return entry
