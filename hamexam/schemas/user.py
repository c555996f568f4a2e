"""
Pydantic schemas for user settings and admin user management
"""
from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any
from uuid import UUID
from datetime import datetime


class UserSettingsOut(BaseModel):
    callsign: Optional[str] = None
    name: Optional[str] = None
    daily_practice_target: int
    ai_style_preset_id: Optional[UUID] = None
    ai_style_custom: Optional[str] = None
    exam_question_preference: str


class UserSettingsUpdate(BaseModel):
    callsign: Optional[str] = Field(None, max_length=20)
    name: Optional[str] = Field(None, max_length=100)
    daily_practice_target: Optional[int] = None
    ai_style_preset_id: Optional[UUID] = None
    ai_style_custom: Optional[str] = None
    exam_question_preference: Optional[str] = None


class AdminUserOut(BaseModel):
    id: UUID
    email: str
    name: Optional[str] = None
    callsign: Optional[str] = None
    is_active: bool
    total_points: int
    current_streak: int
    daily_practice_streak: int
    ai_quota_limit: Optional[int] = None
    ai_quota_used: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AdminUserList(BaseModel):
    users: List[AdminUserOut]
    total: int


class QuotaLimitUpdate(BaseModel):
    """ai_quota_limit null means unlimited"""
    ai_quota_limit: Optional[int] = Field(None, ge=0)


class AuditLogOut(BaseModel):
    id: UUID
    user_id: Optional[UUID] = None
    action: str
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AuditLogList(BaseModel):
    logs: List[AuditLogOut]
    total: int


class ImportResponse(BaseModel):
    library: Dict[str, Any]
    created: int
    updated: int
    warnings: List[str]
    archive: Dict[str, Any]
