"""
Best-effort audit trail
"""
import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hamexam.models import AuditLog

logger = logging.getLogger(__name__)


def create_audit_log(
    db: Session,
    action: str,
    user_id: Optional[UUID] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[Any] = None,
    details: Optional[Dict[str, Any]] = None
) -> Optional[AuditLog]:
    """
    Write one audit entry in its own savepoint

    Failures are logged and swallowed so auditing never breaks the operation
    being audited.
    """
    entry = AuditLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        details=details,
    )
    try:
        with db.begin_nested():
            db.add(entry)
        if not db.info.get("atomic_depth"):
            db.commit()
        return entry
    except SQLAlchemyError as e:
        if not db.info.get("atomic_depth"):
            db.rollback()
        logger.error(f"Failed to write audit log {action}: {str(e)}")
        return None


def list_audit_logs(
    db: Session,
    action: Optional[str] = None,
    limit: int = 50,
    offset: int = 0
) -> Dict[str, Any]:
    query = db.query(AuditLog)
    if action:
        query = query.filter(AuditLog.action == action)

    total = query.count()
    logs: List[AuditLog] = query.order_by(AuditLog.created_at.desc()).offset(offset).limit(limit).all()
    return {"logs": logs, "total": total}
