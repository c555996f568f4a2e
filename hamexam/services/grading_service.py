"""
Answer grading service
All-or-nothing set equality after resolving display ids through the mapping
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional

from hamexam.config import settings
from hamexam.exceptions import ValidationError
from hamexam.services.shuffle_service import shuffle_service
from hamexam.utils.normalize import derive_correct_answers, normalize_answer_list, normalize_options

logger = logging.getLogger(__name__)


@dataclass
class Verdict:
    correct: bool
    canonical_selected: List[str] = field(default_factory=list)


class GradingService:
    """
    Service for grading submissions

    Strategy:
    - Resolve each submitted display id through the presentation mapping
    - Compare as sets against the canonical correct answers
    - No partial credit for multiple choice

    Unmapped ids pass through unchanged in lenient mode (legacy clients that
    submit canonical ids). Strict mode rejects them whenever a mapping was
    supplied, and refuses to grade against an empty answer key.
    """

    def __init__(self, strict: bool = False):
        self.strict = strict

    def grade(
        self,
        correct_answers: List[str],
        submitted: List[str],
        mapping: Optional[Dict[str, str]] = None,
        strict: Optional[bool] = None
    ) -> Verdict:
        """
        Grade one answer

        Args:
            correct_answers: Canonical correct option ids
            submitted: Display ids chosen by the user
            mapping: display id -> canonical id for this presentation
            strict: Override the service-wide strictness

        Returns:
            Verdict with correctness and the resolved canonical selection
        """
        strict = self.strict if strict is None else strict
        mapping = mapping or {}
        if strict and not correct_answers:
            raise ValidationError("Question has no answer key")

        canonical_selected = []
        for answer in submitted:
            answer = str(answer)
            if answer in mapping:
                canonical_selected.append(str(mapping[answer]))
            elif strict and mapping:
                raise ValidationError(f"Answer '{answer}' is not one of the displayed options")
            else:
                canonical_selected.append(answer)

        expected = {str(a) for a in correct_answers}
        selected = set(canonical_selected)
        return Verdict(correct=selected == expected, canonical_selected=canonical_selected)

    def grade_exam(
        self,
        questions: List[Any],
        answers: Dict[str, Any],
        mappings: Dict[str, Dict[str, str]]
    ) -> Dict[str, Any]:
        """
        Grade a complete exam submission

        Args:
            questions: Question rows in paper order
            answers: {question_id: [display ids]}
            mappings: {question_id: {display id: canonical id}}

        Returns:
            Dictionary with correct_count, wrong_count and per-question results
        """
        results = []
        correct_count = 0

        for number, question in enumerate(questions, start=1):
            qid = str(question.id)
            mapping = mappings.get(qid) or {}
            user_answer = normalize_answer_list(answers.get(qid, []))
            correct_answers = normalize_answer_list(question.correct_answers)
            if not correct_answers:
                correct_answers = derive_correct_answers(normalize_options(question.options))

            verdict = self.grade(correct_answers, user_answer, mapping)
            if verdict.correct:
                correct_count += 1

            results.append({
                "question_id": qid,
                "question_number": number,
                "external_id": question.external_id,
                "title": question.title,
                "question_type": question.question_type,
                "user_answer": user_answer,
                "original_user_answer": verdict.canonical_selected,
                "correct_answers": shuffle_service.to_display_ids(correct_answers, mapping),
                "original_correct_answers": correct_answers,
                "options": shuffle_service.display_options_from_mapping(question.options or [], mapping),
                "is_correct": verdict.correct,
                "explanation": question.explanation,
            })

        logger.info(f"Exam graded: {correct_count}/{len(questions)} correct")

        return {
            "correct_count": correct_count,
            "wrong_count": len(questions) - correct_count,
            "question_results": results,
        }


# Global instance
grading_service = GradingService(strict=settings.GRADER_STRICT_MAPPING)
