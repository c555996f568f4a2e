"""
Practice API endpoints
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from uuid import UUID
import logging
from typing import Optional

from hamexam.core.auth import get_current_user
from hamexam.database import get_db
from hamexam.models import User
from hamexam.schemas.practice import (
    AnswerResult, AnswerSubmission, HistoryResponse,
    NextQuestionResponse, SeenRequest, SeenResponse
)
from hamexam.services.practice_service import practice_service

router = APIRouter(prefix="/api/practice", tags=["practice"])
logger = logging.getLogger(__name__)


@router.get("/next", response_model=NextQuestionResponse)
async def next_question(
    library: str = Query(..., description="Question library code"),
    mode: str = Query("sequential", pattern="^(sequential|random|wrong)$"),
    current_id: Optional[UUID] = Query(None, description="Question currently shown"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Get the next practice question

    Options are shuffled per request; the returned answer_mapping must be
    sent back with the answer.
    """
    return practice_service.next_question(db, current_user.id, library, mode, current_id)


@router.post("/seen", response_model=SeenResponse)
async def mark_seen(
    request: SeenRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return practice_service.mark_seen(db, current_user.id, request.question_id)


@router.post("/submit", response_model=AnswerResult)
async def submit_answer(
    submission: AnswerSubmission,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Submit a practice answer

    - Grades through the answer mapping (all-or-nothing)
    - Updates per-question progress
    - Awards points for a correct answer
    - Counts towards the daily practice target
    """
    return practice_service.submit(
        db,
        current_user.id,
        submission.question_id,
        submission.user_answer,
        submission.answer_mapping,
    )


@router.get("/history", response_model=HistoryResponse)
async def practice_history(
    library: str = Query(..., description="Question library code"),
    filter: str = Query("all", pattern="^(all|correct|wrong)$"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Answered questions, most recently answered first"""
    return practice_service.history(db, current_user.id, library, filter)
