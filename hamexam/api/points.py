"""
Points, check-in, leaderboard and daily practice endpoints
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
import logging

from hamexam.core.auth import get_current_user
from hamexam.database import get_db
from hamexam.models import User
from hamexam.schemas.points import (
    CheckInResponse, CheckInStatus, DailyPracticeStatus, LeaderboardResponse
)
from hamexam.services.daily_practice_service import daily_practice_service
from hamexam.services.points_service import points_service

router = APIRouter(tags=["points"])
logger = logging.getLogger(__name__)


@router.post("/api/points/checkin", response_model=CheckInResponse)
async def check_in(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Daily check-in (once per UTC day)

    Bonus points on a 3-day streak and on every 7th consecutive day.
    """
    return points_service.check_in(db, current_user.id)


@router.get("/api/points/checkin", response_model=CheckInStatus)
async def check_in_status(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return points_service.check_in_status(db, current_user.id)


@router.get("/api/points/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(
    limit: int = Query(100, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    """Users ranked by total points"""
    return points_service.leaderboard(db, limit, offset)


@router.get("/api/daily-practice/status", response_model=DailyPracticeStatus)
async def daily_practice_status(
    days: int = Query(30, description="History window, clamped to 7-120"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Today's progress towards the target, streak and next reward"""
    return daily_practice_service.get_status(db, current_user.id, days)
