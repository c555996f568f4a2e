"""
Progress models - per-question counters and daily practice records
"""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Uuid, UniqueConstraint
from hamexam.database import Base
from hamexam.models.types import utcnow
import uuid


class UserQuestion(Base):
    """
    User question progress - one row per (user, question), never deleted
    """
    __tablename__ = "user_questions"
    __table_args__ = (UniqueConstraint("user_id", "question_id"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Uuid, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)
    correct_count = Column(Integer, nullable=False, default=0)
    incorrect_count = Column(Integer, nullable=False, default=0)
    last_answered = Column(DateTime(timezone=True))
    last_correct = Column(Boolean)

    def __repr__(self):
        return (
            f"<UserQuestion(user_id={self.user_id}, question_id={self.question_id}, "
            f"correct={self.correct_count}, incorrect={self.incorrect_count})>"
        )


class DailyPracticeRecord(Base):
    """
    Daily practice records - one row per (user, UTC date key)
    """
    __tablename__ = "daily_practice_records"
    __table_args__ = (UniqueConstraint("user_id", "date"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(String(10), nullable=False)  # YYYY-MM-DD (UTC)
    question_count = Column(Integer, nullable=False, default=0)
    completed = Column(Boolean, nullable=False, default=False)
    reward_points = Column(Integer, nullable=False, default=0)
    completed_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=utcnow)

    def __repr__(self):
        return f"<DailyPracticeRecord(user_id={self.user_id}, date={self.date}, count={self.question_count})>"
