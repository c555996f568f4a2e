"""
AuditLog model
"""
from sqlalchemy import Column, String, DateTime, Uuid
from hamexam.database import Base
from hamexam.models.types import JSONType, utcnow
import uuid


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, index=True)
    action = Column(String(50), nullable=False, index=True)
    entity_type = Column(String(50))
    entity_id = Column(String(64))
    details = Column(JSONType)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    def __repr__(self):
        return f"<AuditLog(action={self.action}, entity={self.entity_type}:{self.entity_id})>"
