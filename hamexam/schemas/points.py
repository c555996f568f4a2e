"""
Pydantic schemas for points, check-ins and daily practice
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime


class CheckInResponse(BaseModel):
    success: bool
    points: int
    base_points: int
    bonus_points: int
    bonus_reason: str
    streak: int
    total_points: int


class CheckInStatus(BaseModel):
    has_checked_in: bool
    current_streak: int
    last_check_in: Optional[datetime] = None
    total_points: int


class LeaderboardEntry(BaseModel):
    rank: int
    id: str
    name: str
    callsign: Optional[str] = None
    points: int
    streak: int


class LeaderboardResponse(BaseModel):
    users: List[LeaderboardEntry]
    total: int
    points_name: str


class PointsHistoryEntry(BaseModel):
    id: UUID
    points: int
    reason: str
    type: str
    created_at: datetime

    class Config:
        from_attributes = True


class PointsHistoryResponse(BaseModel):
    total_points: int
    history: List[PointsHistoryEntry]


class DailyPracticeToday(BaseModel):
    date: str
    count: int
    completed: bool
    remaining: int
    reward_points: int
    completed_at: Optional[datetime] = None


class DailyPracticeRecordOut(BaseModel):
    date: str
    question_count: int
    completed: bool
    reward_points: int


class DailyPracticeStatus(BaseModel):
    target: int
    today: DailyPracticeToday
    streak: int
    next_reward: int
    records: List[DailyPracticeRecordOut]


class PointsConfigOut(BaseModel):
    points_name: str
    answer_correct: int
    daily_check_in: int
    streak_3_days: int
    streak_7_days: int
    ai_regenerate_daily_free: int
    ai_regenerate_cost: int

    class Config:
        from_attributes = True


class PointsConfigUpdate(BaseModel):
    points_name: Optional[str] = Field(None, min_length=1, max_length=50)
    answer_correct: Optional[int] = Field(None, ge=0)
    daily_check_in: Optional[int] = Field(None, ge=0)
    streak_3_days: Optional[int] = Field(None, ge=0)
    streak_7_days: Optional[int] = Field(None, ge=0)
    ai_regenerate_daily_free: Optional[int] = Field(None, ge=0)
    ai_regenerate_cost: Optional[int] = Field(None, ge=0)
