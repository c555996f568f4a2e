"""
Points ledger, daily check-in and leaderboard
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from hamexam.config import settings
from hamexam.database import atomic
from hamexam.exceptions import ConflictError, InsufficientPointsError, NotFoundError, ValidationError
from hamexam.models import CheckInHistory, PointsConfig, PointsHistory, User
from hamexam.models.types import utcnow
from hamexam.utils.dates import date_key
from hamexam.utils.cache import cache_service, make_key

logger = logging.getLogger(__name__)

LEADERBOARD_CACHE_PREFIX = "leaderboard"


class PointsType:
    ANSWER_CORRECT = "ANSWER_CORRECT"
    DAILY_CHECK_IN = "DAILY_CHECK_IN"
    STREAK_BONUS = "STREAK_BONUS"
    DAILY_PRACTICE = "DAILY_PRACTICE"
    AI_REGENERATE = "AI_REGENERATE"
    ADMIN_ADJUST = "ADMIN_ADJUST"


class PointsService:
    """
    Append-only points ledger with a cached total on the user row

    Every grant writes one PointsHistory row and increments users.total_points
    by the same amount in the same transaction.
    """

    def get_config(self, db: Session) -> PointsConfig:
        """Load the points config, creating the default row on first use"""
        config = db.query(PointsConfig).filter(PointsConfig.key == "default").first()
        if config is None:
            with atomic(db):
                config = PointsConfig(key="default")
                db.add(config)
            logger.info("Initialized default points config")
        return config

    def update_config(self, db: Session, changes: Dict[str, Any]) -> PointsConfig:
        config = self.get_config(db)
        with atomic(db):
            for field, value in changes.items():
                if value is None:
                    continue
                if isinstance(value, int) and value < 0:
                    raise ValidationError(f"{field} must not be negative")
                setattr(config, field, value)
        return config

    def _apply(self, db: Session, user_id: UUID, amount: int, reason: str, type_: str) -> PointsHistory:
        result = db.execute(
            update(User)
            .where(User.id == user_id)
            .values(total_points=User.total_points + amount)
        )
        if result.rowcount == 0:
            raise NotFoundError("User not found")

        entry = PointsHistory(user_id=user_id, points=amount, reason=reason, type=type_)
        db.add(entry)
        db.flush()
        return entry

    def grant_points(
        self,
        db: Session,
        user_id: UUID,
        amount: int,
        reason: str,
        type_: str = PointsType.ADMIN_ADJUST
    ) -> PointsHistory:
        """
        Grant a non-negative amount of points

        Raises:
            ValidationError: negative amount
            NotFoundError: unknown user
        """
        if amount < 0:
            raise ValidationError("Use spend_points for negative adjustments")

        with atomic(db):
            entry = self._apply(db, user_id, amount, reason, type_)

        logger.info(f"Granted {amount} points to user {user_id} ({type_}: {reason})")
        return entry

    def spend_points(
        self,
        db: Session,
        user_id: UUID,
        amount: int,
        reason: str,
        type_: str
    ) -> PointsHistory:
        """
        Deduct points, refusing to take the balance below zero

        Raises:
            InsufficientPointsError: balance lower than amount
        """
        if amount < 0:
            raise ValidationError("Amount to spend must not be negative")

        with atomic(db):
            user = db.query(User).filter(User.id == user_id).with_for_update().first()
            if user is None:
                raise NotFoundError("User not found")
            if user.total_points < amount:
                raise InsufficientPointsError(
                    f"Not enough points: {amount} required, {user.total_points} available"
                )
            entry = self._apply(db, user_id, -amount, reason, type_)

        logger.info(f"Deducted {amount} points from user {user_id} ({type_}: {reason})")
        return entry

    def get_history(self, db: Session, user_id: UUID, limit: int = 50, offset: int = 0) -> List[PointsHistory]:
        return db.query(PointsHistory).filter(
            PointsHistory.user_id == user_id
        ).order_by(PointsHistory.created_at.desc()).offset(offset).limit(limit).all()

    def ledger_total(self, db: Session, user_id: UUID) -> int:
        total = db.query(func.coalesce(func.sum(PointsHistory.points), 0)).filter(
            PointsHistory.user_id == user_id
        ).scalar()
        return int(total)

    def check_in(self, db: Session, user_id: UUID, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Daily check-in

        Streak continues when yesterday (UTC) had a check-in, otherwise it
        restarts at 1. Bonus on day 3 and on every multiple of 7.

        Raises:
            ConflictError: already checked in today
        """
        now = now or utcnow()
        today = date_key(now)
        yesterday = date_key(now - timedelta(days=1))
        config = self.get_config(db)

        with atomic(db):
            user = db.query(User).filter(User.id == user_id).with_for_update().first()
            if user is None:
                raise NotFoundError("User not found")

            already = db.query(CheckInHistory).filter(
                CheckInHistory.user_id == user_id,
                CheckInHistory.date == today
            ).first()
            if already:
                raise ConflictError("Already checked in today")

            had_yesterday = db.query(CheckInHistory).filter(
                CheckInHistory.user_id == user_id,
                CheckInHistory.date == yesterday
            ).first() is not None
            streak = (user.current_streak or 0) + 1 if had_yesterday else 1

            bonus_points = 0
            bonus_reason = ""
            if streak == 3:
                bonus_points = config.streak_3_days
                bonus_reason = "3-day check-in streak bonus"
            elif streak % 7 == 0:
                bonus_points = config.streak_7_days
                bonus_reason = f"{streak}-day check-in streak bonus"

            user.current_streak = streak
            user.last_check_in = now

            total = config.daily_check_in + bonus_points
            db.add(CheckInHistory(user_id=user_id, date=today, points=total, streak=streak))

            self._apply(db, user_id, config.daily_check_in, "Daily check-in", PointsType.DAILY_CHECK_IN)
            if bonus_points > 0:
                self._apply(db, user_id, bonus_points, bonus_reason, PointsType.STREAK_BONUS)

        db.refresh(user)
        cache_service.delete_prefix(LEADERBOARD_CACHE_PREFIX)
        logger.info(f"User {user_id} checked in: streak={streak}, points={total}")

        return {
            "success": True,
            "points": total,
            "base_points": config.daily_check_in,
            "bonus_points": bonus_points,
            "bonus_reason": bonus_reason,
            "streak": streak,
            "total_points": user.total_points,
        }

    def check_in_status(self, db: Session, user_id: UUID, now: Optional[datetime] = None) -> Dict[str, Any]:
        user = db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise NotFoundError("User not found")

        today = date_key(now or utcnow())
        checked_in = db.query(CheckInHistory).filter(
            CheckInHistory.user_id == user_id,
            CheckInHistory.date == today
        ).first() is not None

        return {
            "has_checked_in": checked_in,
            "current_streak": user.current_streak or 0,
            "last_check_in": user.last_check_in,
            "total_points": user.total_points,
        }

    def leaderboard(self, db: Session, limit: int = 100, offset: int = 0) -> Dict[str, Any]:
        """Users with points, highest first; cached briefly in Redis"""
        limit = max(1, min(limit, 200))
        offset = max(0, offset)
        cache_key = make_key(LEADERBOARD_CACHE_PREFIX, limit, offset)

        cached = cache_service.get(cache_key)
        if cached:
            return cached

        query = db.query(User).filter(User.total_points > 0)
        total = query.count()
        users = query.order_by(User.total_points.desc(), User.created_at.asc()).offset(offset).limit(limit).all()
        config = self.get_config(db)

        data = {
            "users": [
                {
                    "rank": offset + index + 1,
                    "id": str(user.id),
                    "name": display_name(user),
                    "callsign": user.callsign,
                    "points": user.total_points,
                    "streak": user.current_streak or 0,
                }
                for index, user in enumerate(users)
            ],
            "total": total,
            "points_name": config.points_name,
        }

        cache_service.set(cache_key, data, ttl=settings.LEADERBOARD_CACHE_TTL)
        return data


def display_name(user: User) -> str:
    """Name shown publicly; falls back to callsign, then masked email"""
    if user.name:
        return user.name
    if user.callsign:
        return user.callsign
    local, _, domain = (user.email or "").partition("@")
    if len(local) <= 2:
        return f"{local[:1]}***@{domain}" if domain else local
    return f"{local[:2]}***@{domain}"


# Global instance
points_service = PointsService()
