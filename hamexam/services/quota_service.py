"""
AI usage quota accounting
"""
import logging
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from hamexam.database import atomic
from hamexam.exceptions import NotFoundError, QuotaExceededError, ValidationError
from hamexam.models import User

logger = logging.getLogger(__name__)


class QuotaService:
    """
    Check-and-increment of users.ai_quota_used under a row lock

    A NULL ai_quota_limit means unlimited. bypass_limit skips the ceiling
    check (admins) but usage is still recorded.
    """

    def check_and_increment(
        self,
        db: Session,
        user_id: UUID,
        count: int = 1,
        bypass_limit: bool = False
    ) -> int:
        """
        Consume quota before an AI-assisted operation

        Returns:
            Usage after the increment

        Raises:
            QuotaExceededError: limit would be exceeded; usage is unchanged
        """
        if count < 1:
            raise ValidationError("Quota count must be at least 1")

        with atomic(db):
            user = db.query(User).filter(User.id == user_id).with_for_update().first()
            if user is None:
                raise NotFoundError("User not found")

            used = user.ai_quota_used or 0
            limit = user.ai_quota_limit
            if not bypass_limit and limit is not None and used + count > limit:
                logger.warning(
                    f"AI quota exceeded: user={user.email}, limit={limit}, used={used}, requested={count}"
                )
                raise QuotaExceededError(limit=limit, used=used, requested=count)

            user.ai_quota_used = used + count
            new_used = user.ai_quota_used

        logger.info(f"[AI Quota] user {user_id}: used={new_used} (+{count}, bypass={bypass_limit})")
        return new_used

    def get_status(self, db: Session, user_id: UUID) -> Dict[str, Any]:
        """Read-only quota status; remaining is None when unlimited"""
        user = db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise NotFoundError("User not found")

        return self._status(user.ai_quota_limit, user.ai_quota_used or 0)

    @staticmethod
    def _status(limit: Optional[int], used: int) -> Dict[str, Any]:
        return {
            "limit": limit,
            "used": used,
            "remaining": None if limit is None else max(0, limit - used),
            "unlimited": limit is None,
        }

    def set_limit(self, db: Session, user_id: UUID, limit: Optional[int]) -> Dict[str, Any]:
        if limit is not None and limit < 0:
            raise ValidationError("Quota limit must not be negative")

        with atomic(db):
            user = db.query(User).filter(User.id == user_id).with_for_update().first()
            if user is None:
                raise NotFoundError("User not found")
            user.ai_quota_limit = limit
            status = self._status(user.ai_quota_limit, user.ai_quota_used or 0)
        return status

    def reset_usage(self, db: Session, user_id: UUID) -> Dict[str, Any]:
        with atomic(db):
            user = db.query(User).filter(User.id == user_id).with_for_update().first()
            if user is None:
                raise NotFoundError("User not found")
            user.ai_quota_used = 0
            status = self._status(user.ai_quota_limit, 0)
        logger.info(f"[AI Quota] usage reset for user {user_id}")
        return status


# Global instance
quota_service = QuotaService()
