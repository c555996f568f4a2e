"""
Practice mode: question selection and answer submission
"""
import logging
import random
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from hamexam.database import atomic
from hamexam.exceptions import ConfigurationError, NotFoundError, ValidationError
from hamexam.models import Question, QuestionLibrary, UserQuestion
from hamexam.services.daily_practice_service import daily_practice_service
from hamexam.services.grading_service import grading_service
from hamexam.services.points_service import points_service, PointsType
from hamexam.services.progress_service import progress_service
from hamexam.services.shuffle_service import shuffle_service
from hamexam.utils.normalize import (
    derive_correct_answers,
    normalize_answer_list,
    normalize_options,
)

logger = logging.getLogger(__name__)

PRACTICE_MODES = ("sequential", "random", "wrong")
HISTORY_FILTERS = ("all", "correct", "wrong")


def normalize_library_code(value: Optional[str]) -> Optional[str]:
    return value.strip().upper() if value and value.strip() else None


def get_library(db: Session, code: Optional[str]) -> QuestionLibrary:
    """Resolve a library by code or raise"""
    normalized = normalize_library_code(code)
    if not normalized:
        raise ValidationError("Missing library code")

    library = db.query(QuestionLibrary).filter(QuestionLibrary.code == normalized).first()
    if library is None:
        raise NotFoundError(f"Question library {normalized} not found")
    return library


def correct_answers_for(question: Question) -> List[str]:
    """Stored answer key, falling back to option flags on legacy rows"""
    answers = normalize_answer_list(question.correct_answers)
    if not answers:
        answers = derive_correct_answers(normalize_options(question.options))
    return answers


def present_question(question: Question) -> Dict[str, Any]:
    """Question with freshly shuffled options; never includes the answer key"""
    display_options, mapping = shuffle_service.shuffle(normalize_options(question.options))
    return {
        "id": question.id,
        "external_id": question.external_id,
        "library_code": question.library_code,
        "question_type": question.question_type,
        "difficulty": question.difficulty,
        "category": question.category,
        "title": question.title,
        "image_path": question.image_path,
        "options": display_options,
        "answer_mapping": mapping,
    }


class PracticeService:
    """
    Practice flow

    Submissions grade through the presentation mapping and then, in one
    transaction, update progress, award points for a correct answer and
    count towards the daily practice target.
    """

    def _mastered_ids(self, user_id: UUID, library_code: str):
        return select(UserQuestion.question_id).join(
            Question, Question.id == UserQuestion.question_id
        ).where(
            UserQuestion.user_id == user_id,
            UserQuestion.correct_count > 0,
            UserQuestion.incorrect_count == 0,
            Question.library_code == library_code
        )

    def next_question(
        self,
        db: Session,
        user_id: UUID,
        library_code: str,
        mode: str = "sequential",
        current_id: Optional[UUID] = None
    ) -> Dict[str, Any]:
        """
        Pick the next practice question

        Args:
            mode: sequential (by external id, skipping mastered questions),
                random (among unmastered), or wrong (answered incorrectly,
                most recent first)
            current_id: Question currently on screen, to advance past it

        Raises:
            ValidationError: unknown mode
            NotFoundError: nothing left to practise
        """
        if mode not in PRACTICE_MODES:
            raise ValidationError(f"Unsupported practice mode: {mode}")

        library = get_library(db, library_code)
        question = None

        if mode == "wrong":
            rows = db.query(UserQuestion, Question).join(
                Question, Question.id == UserQuestion.question_id
            ).filter(
                UserQuestion.user_id == user_id,
                UserQuestion.incorrect_count > 0,
                Question.library_code == library.code
            ).order_by(UserQuestion.last_answered.desc()).all()

            if not rows:
                raise NotFoundError("No incorrectly answered questions yet")

            ids = [row.Question.id for row in rows]
            index = ids.index(current_id) + 1 if current_id in ids else 0
            question = rows[index % len(rows)].Question
        else:
            base = db.query(Question).filter(
                Question.library_code == library.code,
                Question.id.notin_(self._mastered_ids(user_id, library.code))
            )

            if mode == "sequential":
                if current_id is not None:
                    current = db.query(Question).filter(Question.id == current_id).first()
                    if current is not None:
                        question = base.filter(
                            Question.external_id > current.external_id
                        ).order_by(Question.external_id.asc()).first()
                if question is None:
                    question = base.order_by(Question.external_id.asc()).first()
            else:
                total = base.count()
                if total:
                    question = base.order_by(Question.external_id.asc()).offset(
                        random.randrange(total)
                    ).first()

        if question is None:
            raise NotFoundError("No more questions in this mode")

        progress = db.query(UserQuestion).filter(
            UserQuestion.user_id == user_id,
            UserQuestion.question_id == question.id
        ).first()

        return {
            "question": present_question(question),
            "progress": self._progress_dict(progress),
        }

    @staticmethod
    def _progress_dict(progress: Optional[UserQuestion]) -> Optional[Dict[str, Any]]:
        if progress is None:
            return None
        return {
            "correct_count": progress.correct_count,
            "incorrect_count": progress.incorrect_count,
            "last_answered": progress.last_answered,
            "last_correct": progress.last_correct,
        }

    def mark_seen(self, db: Session, user_id: UUID, question_id: UUID) -> Dict[str, Any]:
        if db.query(Question.id).filter(Question.id == question_id).first() is None:
            raise NotFoundError("Question not found")
        progress = progress_service.mark_seen(db, user_id, question_id)
        return {"success": True, "progress": self._progress_dict(progress)}

    def submit(
        self,
        db: Session,
        user_id: UUID,
        question_id: UUID,
        user_answer: Any,
        answer_mapping: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """
        Grade one practice answer and record its effects

        Args:
            user_answer: Display ids in any accepted shape
            answer_mapping: display id -> canonical id from /next

        Returns:
            Verdict, answer keys in both id spaces, points and daily progress
        """
        submitted = normalize_answer_list(user_answer)
        if not submitted:
            raise ValidationError("Answer must not be empty")

        question = db.query(Question).filter(Question.id == question_id).first()
        if question is None:
            raise NotFoundError("Question not found")

        correct_answers = correct_answers_for(question)
        if not correct_answers:
            raise ConfigurationError(f"Question {question.external_id} has no answer key")

        mapping = {str(k): str(v) for k, v in (answer_mapping or {}).items()}
        verdict = grading_service.grade(correct_answers, submitted, mapping)
        config = points_service.get_config(db)

        with atomic(db):
            progress = progress_service.record_answer(db, user_id, question.id, verdict.correct)

            points_earned = 0
            if verdict.correct and config.answer_correct > 0:
                points_earned = config.answer_correct
                points_service.grant_points(
                    db, user_id, points_earned,
                    f"Correct answer: {question.external_id}", PointsType.ANSWER_CORRECT
                )

            daily = daily_practice_service.record_daily_activity(db, user_id)
            progress_data = self._progress_dict(progress)

        logger.info(
            f"Practice answer: user={user_id}, question={question.external_id}, "
            f"correct={verdict.correct}, points={points_earned}"
        )

        return {
            "is_correct": verdict.correct,
            "user_answer": submitted,
            "original_user_answer": verdict.canonical_selected,
            "correct_answers": shuffle_service.to_display_ids(correct_answers, mapping),
            "original_correct_answers": correct_answers,
            "explanation": question.explanation,
            "progress": progress_data,
            "points_earned": points_earned,
            "daily_practice": {
                "today_count": daily.today_count,
                "target": daily.target,
                "completed": daily.completed,
                "streak": daily.streak,
                "reward_granted": daily.reward_granted,
                "reward_points": daily.reward_points,
            },
        }

    def history(
        self,
        db: Session,
        user_id: UUID,
        library_code: str,
        filter_: str = "all"
    ) -> Dict[str, Any]:
        """Answered questions in a library, most recent first"""
        if filter_ not in HISTORY_FILTERS:
            raise ValidationError(f"Unsupported history filter: {filter_}")

        library = get_library(db, library_code)
        query = db.query(UserQuestion, Question).join(
            Question, Question.id == UserQuestion.question_id
        ).filter(
            UserQuestion.user_id == user_id,
            Question.library_code == library.code
        )
        if filter_ == "correct":
            query = query.filter(UserQuestion.correct_count > 0)
        elif filter_ == "wrong":
            query = query.filter(UserQuestion.incorrect_count > 0)

        rows = query.order_by(UserQuestion.last_answered.desc()).all()
        items = [
            {
                "question": present_question(row.Question),
                "progress": self._progress_dict(row.UserQuestion),
            }
            for row in rows
        ]
        return {"questions": items, "total": len(items)}


# Global instance
practice_service = PracticeService()
