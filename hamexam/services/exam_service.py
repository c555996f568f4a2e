"""
Mock exam generation and submission
"""
import logging
import random
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from hamexam.config import settings
from hamexam.database import atomic
from hamexam.exceptions import ConflictError, NotFoundError, PermissionDenied, ValidationError
from hamexam.models import Exam, ExamQuestion, ExamResult, Question
from hamexam.models.types import utcnow
from hamexam.services.grading_service import grading_service
from hamexam.services.practice_service import get_library, normalize_library_code, present_question
from hamexam.services.progress_service import progress_service

logger = logging.getLogger(__name__)

# Used when a library has no presets of its own
DEFAULT_PRESETS = [
    {
        "code": "A_CLASS_STANDARD",
        "name": "Class A operator exam",
        "description": "40 questions, 40 minutes, pass mark 30: 32 single choice, 8 multiple choice.",
        "duration_minutes": 40,
        "total_questions": 40,
        "pass_score": 30,
        "single_choice_count": 32,
        "multiple_choice_count": 8,
        "true_false_count": 0,
    },
]

_TYPE_COUNTS = (
    ("single_choice", "single_choice_count"),
    ("multiple_choice", "multiple_choice_count"),
    ("true_false", "true_false_count"),
)


def _preset_dict(preset) -> Dict[str, Any]:
    if isinstance(preset, dict):
        return preset
    return {
        "code": preset.code,
        "name": preset.name,
        "description": preset.description,
        "duration_minutes": preset.duration_minutes,
        "total_questions": preset.total_questions,
        "pass_score": preset.pass_score,
        "single_choice_count": preset.single_choice_count,
        "multiple_choice_count": preset.multiple_choice_count,
        "true_false_count": preset.true_false_count,
    }


class ExamService:
    """Builds exam papers from library presets and grades them once"""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.SystemRandom()

    def resolve_preset(self, library, preset_code: Optional[str] = None) -> Dict[str, Any]:
        presets = [_preset_dict(p) for p in library.exam_presets] or DEFAULT_PRESETS
        code = normalize_library_code(preset_code)
        if code:
            for preset in presets:
                if preset["code"].upper() == code:
                    return preset
        return presets[0]

    def _sample(self, db: Session, library_code: str, question_type: str, count: int) -> List[UUID]:
        if count <= 0:
            return []
        ids = [
            row.id for row in db.query(Question.id).filter(
                Question.library_code == library_code,
                Question.question_type == question_type
            ).all()
        ]
        if len(ids) < count:
            raise ValidationError(
                f"Not enough {question_type} questions: {count} required, {len(ids)} available"
            )
        return self.rng.sample(ids, count)

    def start_exam(
        self,
        db: Session,
        user_id: UUID,
        library_code: str,
        preset_code: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Create an exam paper and an empty result for the user

        Returns:
            Exam ids, preset configuration and questions with shuffled
            options and their mappings
        """
        library = get_library(db, library_code)
        preset = self.resolve_preset(library, preset_code)

        question_ids = []
        for question_type, count_field in _TYPE_COUNTS:
            question_ids.extend(
                self._sample(db, library.code, question_type, preset.get(count_field) or 0)
            )
        self.rng.shuffle(question_ids)

        questions = {
            q.id: q for q in db.query(Question).filter(Question.id.in_(question_ids)).all()
        }
        ordered = [questions[qid] for qid in question_ids]

        with atomic(db):
            exam = Exam(
                library_code=library.code,
                preset_code=preset["code"],
                duration=preset["duration_minutes"],
                pass_score=preset.get("pass_score") or settings.DEFAULT_EXAM_PASS_SCORE,
            )
            db.add(exam)
            db.flush()

            for index, question in enumerate(ordered, start=1):
                db.add(ExamQuestion(exam_id=exam.id, question_id=question.id, order_index=index))

            result = ExamResult(
                user_id=user_id,
                exam_id=exam.id,
                total_questions=len(ordered),
                answers={},
            )
            db.add(result)
            db.flush()

            exam_id, result_id = exam.id, result.id

        logger.info(
            f"Started exam {exam_id} for user {user_id}: "
            f"library={library.code}, preset={preset['code']}, questions={len(ordered)}"
        )

        return {
            "exam_id": exam_id,
            "exam_result_id": result_id,
            "questions": [present_question(q) for q in ordered],
            "config": {
                "duration": preset["duration_minutes"],
                "total_questions": len(ordered),
                "pass_score": exam.pass_score,
                "single_choice": preset.get("single_choice_count") or 0,
                "multiple_choice": preset.get("multiple_choice_count") or 0,
                "true_false": preset.get("true_false_count") or 0,
            },
            "preset": {"code": preset["code"], "name": preset["name"]},
            "library": {"code": library.code, "name": library.name, "short_name": library.short_name},
            "start_time": utcnow(),
        }

    def submit_exam(
        self,
        db: Session,
        user_id: UUID,
        exam_result_id: UUID,
        answers: Dict[str, Any],
        answer_mappings: Optional[Dict[str, Dict[str, str]]] = None
    ) -> Dict[str, Any]:
        """
        Grade an exam once

        Raises:
            NotFoundError: unknown exam result
            PermissionDenied: result belongs to someone else
            ConflictError: already submitted
        """
        with atomic(db):
            result = db.query(ExamResult).filter(
                ExamResult.id == exam_result_id
            ).with_for_update().first()
            if result is None:
                raise NotFoundError("Exam result not found")
            if result.user_id != user_id:
                raise PermissionDenied("You cannot submit another user's exam")
            if result.submitted_at is not None:
                raise ConflictError("Exam already submitted")

            exam = result.exam
            questions = [eq.question for eq in exam.exam_questions]
            mappings = {
                str(qid): {str(k): str(v) for k, v in (mapping or {}).items()}
                for qid, mapping in (answer_mappings or {}).items()
            }
            graded = grading_service.grade_exam(questions, answers or {}, mappings)

            score = graded["correct_count"]
            passed = score >= exam.pass_score

            result.score = score
            result.correct_count = graded["correct_count"]
            result.total_questions = len(questions)
            result.passed = passed
            result.answers = {
                r["question_id"]: r["user_answer"] for r in graded["question_results"]
            }
            result.submitted_at = utcnow()

            for question, item in zip(questions, graded["question_results"]):
                progress_service.record_answer(db, user_id, question.id, item["is_correct"])

        logger.info(
            f"Exam {exam.id} submitted by user {user_id}: "
            f"score={score}/{len(questions)}, passed={passed}"
        )

        return {
            "success": True,
            "score": score,
            "total_questions": len(questions),
            "correct_count": graded["correct_count"],
            "wrong_count": graded["wrong_count"],
            "passed": passed,
            "pass_score": exam.pass_score,
            "question_results": graded["question_results"],
        }

    def list_results(self, db: Session, user_id: UUID, limit: int = 20, offset: int = 0) -> Dict[str, Any]:
        query = db.query(ExamResult).filter(
            ExamResult.user_id == user_id,
            ExamResult.submitted_at.isnot(None)
        )
        total = query.count()
        results = query.order_by(ExamResult.submitted_at.desc()).offset(offset).limit(limit).all()

        return {
            "results": [
                {
                    "id": r.id,
                    "exam_id": r.exam_id,
                    "library_code": r.exam.library_code,
                    "preset_code": r.exam.preset_code,
                    "score": r.score,
                    "total_questions": r.total_questions,
                    "correct_count": r.correct_count,
                    "passed": r.passed,
                    "submitted_at": r.submitted_at,
                }
                for r in results
            ],
            "total": total,
        }


# Global instance
exam_service = ExamService()
