"""
AI models - style presets, explanations, votes and usage log
"""
from sqlalchemy import (
    Column, String, Integer, Float, Boolean, Text, DateTime, ForeignKey, Uuid, UniqueConstraint
)
from hamexam.database import Base
from hamexam.models.types import JSONType, utcnow
import uuid


class AiStylePreset(Base):
    """
    Named style prompts users can pick for AI explanations
    """
    __tablename__ = "ai_style_presets"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text)
    prompt = Column(Text, nullable=False)
    is_default = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<AiStylePreset(name={self.name}, default={self.is_default})>"


class Explanation(Base):
    """
    Explanations - structured AI or user-written, ranked by Wilson score
    """
    __tablename__ = "explanations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    question_id = Column(Uuid, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(20), nullable=False, default="AI")  # AI | USER | OFFICIAL
    content_json = Column(JSONType, nullable=False)
    status = Column(String(20), nullable=False, default="PUBLISHED")  # PUBLISHED | RETRACTED | HIDDEN
    created_by_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"))
    upvotes = Column(Integer, nullable=False, default=0)
    downvotes = Column(Integer, nullable=False, default=0)
    wilson_score = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class ExplanationVote(Base):
    __tablename__ = "explanation_votes"
    __table_args__ = (UniqueConstraint("explanation_id", "user_id"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    explanation_id = Column(Uuid, ForeignKey("explanations.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    vote = Column(String(10), nullable=False)  # UP | DOWN | REPORT
    report_reason = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class AiUsageLog(Base):
    __tablename__ = "ai_usage_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    action = Column(String(30), nullable=False)
    question_id = Column(Uuid)
    date = Column(String(10), nullable=False)  # YYYY-MM-DD (UTC)
    created_at = Column(DateTime(timezone=True), default=utcnow)
