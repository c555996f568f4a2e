"""
Current-user endpoints: settings, points history and exam results
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
import logging

from hamexam.core.auth import get_current_user
from hamexam.database import get_db
from hamexam.models import User
from hamexam.schemas.exam import ExamResultList
from hamexam.schemas.points import PointsHistoryResponse
from hamexam.schemas.user import UserSettingsOut, UserSettingsUpdate
from hamexam.services.exam_service import exam_service
from hamexam.services.points_service import points_service
from hamexam.services.user_service import user_service

router = APIRouter(prefix="/api/user", tags=["user"])
logger = logging.getLogger(__name__)


@router.get("/settings", response_model=UserSettingsOut)
async def get_settings(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return user_service.get_settings(db, current_user)


@router.post("/settings", response_model=UserSettingsOut)
async def update_settings(
    changes: UserSettingsUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Partial update; only fields present in the body are applied"""
    return user_service.update_settings(db, current_user, changes.model_dump(exclude_unset=True))


@router.get("/points-history", response_model=PointsHistoryResponse)
async def points_history(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    history = points_service.get_history(db, current_user.id, limit, offset)
    return {"total_points": current_user.total_points, "history": history}


@router.get("/exams", response_model=ExamResultList)
async def exam_results(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Submitted exam results, newest first"""
    return exam_service.list_results(db, current_user.id, limit, offset)
