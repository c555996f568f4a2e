"""
Mock exam API endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
import logging

from hamexam.core.auth import get_current_user
from hamexam.database import get_db
from hamexam.models import User
from hamexam.schemas.exam import (
    ExamStartRequest, ExamStartResponse, ExamSubmission, ExamSubmitResponse
)
from hamexam.services.exam_service import exam_service

router = APIRouter(prefix="/api/exam", tags=["exams"])
logger = logging.getLogger(__name__)


@router.post("/start", response_model=ExamStartResponse, status_code=201)
async def start_exam(
    request: ExamStartRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Start a mock exam

    - Samples questions per type from the library preset
    - Shuffles question order and options
    - Returns each question's answer mapping, never the answer key
    """
    return exam_service.start_exam(db, current_user.id, request.library, request.preset_code)


@router.post("/submit", response_model=ExamSubmitResponse)
async def submit_exam(
    submission: ExamSubmission,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Submit a mock exam (once)

    Returns the score and a per-question review with answers in both the
    displayed and the canonical option ids.
    """
    return exam_service.submit_exam(
        db,
        current_user.id,
        submission.exam_result_id,
        submission.answers,
        submission.answer_mappings,
    )
