"""
Library and question browsing endpoints
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from uuid import UUID
import logging
from typing import Optional

from hamexam.core.auth import get_current_user, is_admin
from hamexam.database import get_db
from hamexam.models import User
from hamexam.schemas.question import LibraryList, QuestionDetail, QuestionPage
from hamexam.services.library_service import DEFAULT_PAGE_SIZE, library_service

router = APIRouter(prefix="/api", tags=["questions"])
logger = logging.getLogger(__name__)


@router.get("/question-libraries", response_model=LibraryList)
async def list_libraries(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Libraries the caller may practice on, with their exam presets"""
    libraries = library_service.list_libraries(db, include_hidden=is_admin(current_user))
    return {"libraries": libraries}


@router.get("/questions", response_model=QuestionPage)
async def list_questions(
    library: str = Query(..., description="Question library code"),
    search: Optional[str] = Query(None, max_length=200),
    category: Optional[str] = Query(None, max_length=100),
    page: int = Query(1),
    page_size: int = Query(DEFAULT_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Browse a library's questions

    - Ordered by external id
    - Options in stored order; no answer key
    """
    return library_service.list_questions(
        db, library, search, category, page, page_size,
        include_hidden=is_admin(current_user)
    )


@router.get("/questions/{question_id}", response_model=QuestionDetail)
async def get_question(
    question_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return library_service.get_question(
        db, current_user.id, question_id, include_hidden=is_admin(current_user)
    )
