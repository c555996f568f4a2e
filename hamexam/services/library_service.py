"""
Question library and question browsing
"""
import logging
import math
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from hamexam.database import atomic
from hamexam.exceptions import NotFoundError, ValidationError
from hamexam.models import Question, QuestionLibrary, UserQuestion
from hamexam.services.import_service import VISIBILITY_VALUES
from hamexam.services.practice_service import normalize_library_code
from hamexam.utils.normalize import normalize_options, normalize_tags

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 50


def question_summary(question: Question) -> Dict[str, Any]:
    """Question in canonical option order, without the answer key"""
    return {
        "id": question.id,
        "external_id": question.external_id,
        "library_code": question.library_code,
        "question_type": question.question_type,
        "difficulty": question.difficulty,
        "category": question.category,
        "sub_section": question.sub_section,
        "title": question.title,
        "image_path": question.image_path,
        "tags": normalize_tags(question.tags),
        "options": [{"id": o["id"], "text": o["text"]} for o in normalize_options(question.options)],
    }


def _search_filter(search: Optional[str]):
    # Every whitespace-separated token has to match somewhere
    tokens = (search or "").split()
    if not tokens:
        return None
    return and_(*[
        or_(
            Question.title.ilike(f"%{token}%"),
            Question.external_id.ilike(f"%{token}%"),
            Question.category.ilike(f"%{token}%"),
        )
        for token in tokens
    ])


class LibraryService:
    """
    Read access to libraries and their questions

    Regular users see PUBLIC libraries only; admins see every library.
    Answer keys are never part of a browsing response.
    """

    @staticmethod
    def _visible(query, include_hidden: bool):
        if include_hidden:
            return query
        return query.filter(QuestionLibrary.visibility == "PUBLIC")

    def list_libraries(self, db: Session, include_hidden: bool = False) -> List[QuestionLibrary]:
        query = self._visible(db.query(QuestionLibrary), include_hidden)
        return query.order_by(QuestionLibrary.code).all()

    def get_library(self, db: Session, code: Optional[str], include_hidden: bool = False) -> QuestionLibrary:
        normalized = normalize_library_code(code)
        if not normalized:
            raise ValidationError("Missing library code")

        library = self._visible(
            db.query(QuestionLibrary).filter(QuestionLibrary.code == normalized),
            include_hidden
        ).first()
        if library is None:
            raise NotFoundError(f"Question library {normalized} not found")
        return library

    def list_questions(
        self,
        db: Session,
        library_code: Optional[str],
        search: Optional[str] = None,
        category: Optional[str] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        include_hidden: bool = False
    ) -> Dict[str, Any]:
        """
        Search and paginate a library's questions by external id

        Args:
            library_code: Library to browse (required)
            search: Whitespace-separated tokens matched against title,
                external id and category
            category: Case-insensitive category substring
            page: 1-based page, clamped to the last page
            page_size: Clamped to 1..50

        Returns:
            Dict with questions, total, page, page_size and total_pages;
            page is 0 when nothing matches
        """
        library = self.get_library(db, library_code, include_hidden)
        page_size = min(max(page_size, 1), MAX_PAGE_SIZE)

        query = db.query(Question).filter(Question.library_code == library.code)
        condition = _search_filter(search)
        if condition is not None:
            query = query.filter(condition)
        if category and category.strip():
            query = query.filter(Question.category.ilike(f"%{category.strip()}%"))

        total = query.count()
        total_pages = math.ceil(total / page_size)
        page = min(max(page, 1), total_pages) if total_pages else 0
        offset = (page - 1) * page_size if page else 0

        questions = query.order_by(Question.external_id).offset(offset).limit(page_size).all()
        return {
            "library_code": library.code,
            "questions": [question_summary(q) for q in questions],
            "total": total,
            "page": page,
            "page_size": page_size,
            "total_pages": total_pages,
        }

    def get_question(
        self,
        db: Session,
        user_id: UUID,
        question_id: UUID,
        include_hidden: bool = False
    ) -> Dict[str, Any]:
        """One question plus the caller's progress on it"""
        question = db.query(Question).filter(Question.id == question_id).first()
        if question is None:
            raise NotFoundError("Question not found")
        if question.library_code:
            # Questions of a hidden library look missing to regular users
            try:
                self.get_library(db, question.library_code, include_hidden)
            except NotFoundError:
                raise NotFoundError("Question not found")

        progress = db.query(UserQuestion).filter(
            UserQuestion.user_id == user_id,
            UserQuestion.question_id == question.id
        ).first()
        return {
            "question": question_summary(question),
            "progress": None if progress is None else {
                "correct_count": progress.correct_count,
                "incorrect_count": progress.incorrect_count,
                "last_answered": progress.last_answered,
                "last_correct": progress.last_correct,
            },
        }

    def update_library(self, db: Session, code: str, changes: Dict[str, Any]) -> QuestionLibrary:
        """Admin edit of a library's display fields and visibility"""
        visibility = changes.get("visibility")
        if visibility is not None:
            visibility = visibility.strip().upper()
            if visibility not in VISIBILITY_VALUES:
                raise ValidationError(f"Invalid library visibility: {changes['visibility']}")

        with atomic(db):
            library = self.get_library(db, code, include_hidden=True)
            for field in ("name", "short_name", "region"):
                value = changes.get(field)
                if value is not None:
                    value = value.strip()
                    if field == "name" and not value:
                        raise ValidationError("Library name cannot be empty")
                    setattr(library, field, value or None)
            if visibility is not None:
                library.visibility = visibility
            db.flush()

        logger.info(f"Updated question library {library.code}")
        return library


# Global instance
library_service = LibraryService()
