"""
User and UserSettings models
"""
from sqlalchemy import Column, String, Integer, Boolean, Text, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from hamexam.database import Base
from hamexam.models.types import utcnow
import uuid


class User(Base):
    """
    Users table - identity plus cached gamification counters

    total_points is a cache of sum(points_history.points) for the user.
    """
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(100))
    callsign = Column(String(20))
    is_active = Column(Boolean, nullable=False, default=True)

    # Points & check-in streak
    total_points = Column(Integer, nullable=False, default=0)
    current_streak = Column(Integer, nullable=False, default=0)
    last_check_in = Column(DateTime(timezone=True))

    # Daily practice streak; last_practice_date is a YYYY-MM-DD key
    daily_practice_streak = Column(Integer, nullable=False, default=0)
    last_practice_date = Column(String(10))

    # AI quota (NULL limit = unlimited)
    ai_quota_limit = Column(Integer, nullable=True)
    ai_quota_used = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    settings = relationship("UserSettings", back_populates="user", uselist=False)

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"


class UserSettings(Base):
    """
    Per-user preferences: practice target and AI style selection
    """
    __tablename__ = "user_settings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    daily_practice_target = Column(Integer, nullable=False, default=10)
    ai_style_preset_id = Column(Uuid, ForeignKey("ai_style_presets.id", ondelete="SET NULL"))
    ai_style_custom = Column(Text)
    exam_question_preference = Column(String(20), nullable=False, default="SYSTEM_PRESET")
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="settings")
    ai_style_preset = relationship("AiStylePreset")

    def __repr__(self):
        return f"<UserSettings(user_id={self.user_id}, target={self.daily_practice_target})>"
