"""
AI explanation flow and community voting
"""
import logging
import math
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from hamexam.database import atomic
from hamexam.exceptions import InsufficientPointsError, NotFoundError, ValidationError
from hamexam.models import AiUsageLog, Explanation, ExplanationVote, Question, User
from hamexam.models.types import utcnow
from hamexam.services.audit_service import create_audit_log
from hamexam.services.gemini_service import gemini_service
from hamexam.services.practice_service import correct_answers_for
from hamexam.services.points_service import points_service, PointsType
from hamexam.services.quota_service import quota_service
from hamexam.services.style_service import style_service
from hamexam.utils.dates import date_key
from hamexam.utils.normalize import normalize_options

logger = logging.getLogger(__name__)

VOTE_TYPES = ("UP", "DOWN", "REPORT")
REPORT_HIDE_THRESHOLD = 5
REGENERATE_ACTION = "REGENERATE"


def wilson_score(upvotes: int, downvotes: int, z: float = 1.96) -> float:
    """Lower bound of the Wilson score interval; 0 with no votes"""
    n = upvotes + downvotes
    if n == 0:
        return 0.0

    phat = upvotes / n
    numerator = phat + z * z / (2 * n) - z * math.sqrt((phat * (1 - phat) + z * z / (4 * n)) / n)
    denominator = 1 + z * z / n
    return max(0.0, numerator / denominator)


class ExplanationService:
    """Cached AI explanations, regeneration charging and votes"""

    def _published_ai(self, db: Session, question_id: UUID) -> Optional[Explanation]:
        return db.query(Explanation).filter(
            Explanation.question_id == question_id,
            Explanation.type == "AI",
            Explanation.status == "PUBLISHED"
        ).order_by(Explanation.wilson_score.desc(), Explanation.created_at.desc()).first()

    def _regenerations_today(self, db: Session, user_id: UUID, today: str) -> int:
        return db.query(AiUsageLog).filter(
            AiUsageLog.user_id == user_id,
            AiUsageLog.action == REGENERATE_ACTION,
            AiUsageLog.date == today
        ).count()

    def explain(
        self,
        db: Session,
        user: User,
        question_id: UUID,
        regenerate: bool = False,
        is_admin: bool = False
    ) -> Dict[str, Any]:
        """
        Return the published AI explanation, generating one when needed

        Regeneration is free for ai_regenerate_daily_free attempts per UTC
        day, then costs ai_regenerate_cost points. Admins are never charged
        points; every generation consumes AI quota.

        Raises:
            NotFoundError: unknown question
            InsufficientPointsError: regeneration cost exceeds balance
            QuotaExceededError: AI quota exhausted
        """
        question = db.query(Question).filter(Question.id == question_id).first()
        if question is None:
            raise NotFoundError("Question not found")

        if not regenerate:
            cached = self._published_ai(db, question.id)
            if cached is not None:
                create_audit_log(
                    db, "AI_EXPLANATION_SKIPPED", user.id, "Question", question.id,
                    {"reason": "cache_hit"}
                )
                return {
                    "explanation": cached.content_json,
                    "explanation_id": cached.id,
                    "cached": True,
                    "regenerate": False,
                    "deducted_points": 0,
                }

        config = points_service.get_config(db)
        today = date_key(utcnow())
        free_limit = max(config.ai_regenerate_daily_free or 0, 0)
        regen_count = 0
        cost = 0

        if regenerate and not is_admin:
            regen_count = self._regenerations_today(db, user.id, today)
            if regen_count >= free_limit:
                cost = max(config.ai_regenerate_cost or 0, 0)
            if cost > 0 and (user.total_points or 0) < cost:
                raise InsufficientPointsError(
                    f"Not enough {config.points_name}: regeneration costs {cost}"
                )

        quota_service.check_and_increment(db, user.id, 1, bypass_limit=is_admin)

        options = normalize_options(question.options)
        syllabus_path = (
            f"{question.category} > {question.sub_section}" if question.sub_section else question.category
        )
        content = gemini_service.generate_explanation(
            question.title,
            options,
            correct_answers_for(question),
            syllabus_path,
            style_service.resolve_user_style_prompt(db, user.id),
        )

        with atomic(db):
            explanation = Explanation(
                question_id=question.id,
                type="AI",
                content_json=content,
                status="PUBLISHED",
                created_by_id=user.id,
                wilson_score=wilson_score(0, 0),
            )
            db.add(explanation)
            db.flush()

            if regenerate:
                db.query(Explanation).filter(
                    Explanation.question_id == question.id,
                    Explanation.type == "AI",
                    Explanation.status == "PUBLISHED",
                    Explanation.id != explanation.id
                ).update({Explanation.status: "RETRACTED"}, synchronize_session="fetch")

                if cost > 0:
                    points_service.spend_points(
                        db, user.id, cost, "AI explanation regenerated", PointsType.AI_REGENERATE
                    )
                db.add(AiUsageLog(
                    user_id=user.id, action=REGENERATE_ACTION, question_id=question.id, date=today
                ))

        create_audit_log(
            db, "AI_EXPLANATION_GENERATED", user.id, "Question", question.id,
            {
                "model": gemini_service.model_name,
                "explanation_id": str(explanation.id),
                "regenerate": regenerate,
                "points_deducted": cost,
            }
        )
        logger.info(f"Generated AI explanation for question {question.id} (regenerate={regenerate})")

        result = {
            "explanation": content,
            "explanation_id": explanation.id,
            "cached": False,
            "regenerate": regenerate,
            "deducted_points": cost,
        }
        if regenerate and not is_admin:
            attempts = regen_count + 1
            result["free_limit"] = free_limit
            result["free_attempts_remaining"] = max(free_limit - attempts, 0)
        return result

    def vote(
        self,
        db: Session,
        user_id: UUID,
        explanation_id: UUID,
        vote: str,
        report_reason: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Cast, switch or withdraw a vote

        Repeating the current vote withdraws it. Reports do not count towards
        the score; enough of them hide the explanation.
        """
        if vote not in VOTE_TYPES:
            raise ValidationError("Invalid vote type")
        if vote == "REPORT" and not (report_reason or "").strip():
            raise ValidationError("A reason is required when reporting")

        with atomic(db):
            explanation = db.query(Explanation).filter(
                Explanation.id == explanation_id
            ).with_for_update().first()
            if explanation is None:
                raise NotFoundError("Explanation not found")

            existing = db.query(ExplanationVote).filter(
                ExplanationVote.explanation_id == explanation_id,
                ExplanationVote.user_id == user_id
            ).first()

            previous = existing.vote if existing else None
            if existing and previous == vote:
                db.delete(existing)
                action, current = "removed", None
            elif existing:
                existing.vote = vote
                existing.report_reason = report_reason.strip() if vote == "REPORT" else None
                action, current = "updated", vote
            else:
                db.add(ExplanationVote(
                    explanation_id=explanation_id,
                    user_id=user_id,
                    vote=vote,
                    report_reason=report_reason.strip() if vote == "REPORT" else None,
                ))
                action, current = "created", vote

            up = (explanation.upvotes or 0) - (previous == "UP") + (current == "UP")
            down = (explanation.downvotes or 0) - (previous == "DOWN") + (current == "DOWN")
            explanation.upvotes = up
            explanation.downvotes = down
            explanation.wilson_score = wilson_score(up, down)
            db.flush()

            if current == "REPORT":
                reports = db.query(ExplanationVote).filter(
                    ExplanationVote.explanation_id == explanation_id,
                    ExplanationVote.vote == "REPORT"
                ).count()
                if reports >= REPORT_HIDE_THRESHOLD and explanation.status == "PUBLISHED":
                    explanation.status = "HIDDEN"
                    logger.warning(f"Explanation {explanation_id} hidden after {reports} reports")

            result = {
                "action": action,
                "vote": current,
                "upvotes": up,
                "downvotes": down,
                "wilson_score": explanation.wilson_score,
            }

        return result


# Global instance
explanation_service = ExplanationService()
