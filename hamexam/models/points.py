"""
Points models - ledger, check-ins and points configuration
"""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Uuid, UniqueConstraint
from hamexam.database import Base
from hamexam.models.types import utcnow
import uuid


class PointsHistory(Base):
    """
    Points ledger - append-only, sums to users.total_points
    """
    __tablename__ = "points_history"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    points = Column(Integer, nullable=False)
    reason = Column(String(255), nullable=False)
    type = Column(String(30), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    def __repr__(self):
        return f"<PointsHistory(user_id={self.user_id}, points={self.points}, type={self.type})>"


class CheckInHistory(Base):
    """
    Daily check-ins - at most one per (user, UTC date key)
    """
    __tablename__ = "check_in_history"
    __table_args__ = (UniqueConstraint("user_id", "date"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(String(10), nullable=False)
    points = Column(Integer, nullable=False)
    streak = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class PointsConfig(Base):
    """
    Points configuration - single row keyed "default"
    """
    __tablename__ = "points_config"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    key = Column(String(50), unique=True, nullable=False, default="default")
    points_name = Column(String(50), nullable=False, default="points")
    answer_correct = Column(Integer, nullable=False, default=10)
    daily_check_in = Column(Integer, nullable=False, default=50)
    streak_3_days = Column(Integer, nullable=False, default=100)
    streak_7_days = Column(Integer, nullable=False, default=150)
    ai_regenerate_daily_free = Column(Integer, nullable=False, default=5)
    ai_regenerate_cost = Column(Integer, nullable=False, default=100)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
