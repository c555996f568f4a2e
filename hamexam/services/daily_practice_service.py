"""
Daily practice target, streak and reward engine
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hamexam.config import settings
from hamexam.database import atomic
from hamexam.exceptions import NotFoundError
from hamexam.models import DailyPracticeRecord, User, UserSettings
from hamexam.models.types import utcnow
from hamexam.services.points_service import points_service, PointsType
from hamexam.utils.dates import date_key, difference_in_days

logger = logging.getLogger(__name__)

# Points for completing the daily target, indexed by streak length (1-based, wraps)
DAILY_PRACTICE_REWARDS = [5, 10, 15, 20, 25, 30, 50]

DAILY_STREAK_REASON = "daily-streak"


def reward_for_streak(streak: int) -> int:
    if streak <= 0:
        return DAILY_PRACTICE_REWARDS[0]
    return DAILY_PRACTICE_REWARDS[(streak - 1) % len(DAILY_PRACTICE_REWARDS)]


def next_reward_preview(streak: int) -> int:
    """Reward the next completed day would earn, without mutating anything"""
    return reward_for_streak(streak + 1)


def next_streak(current: int, last_key: Optional[str], today_key: str) -> int:
    """
    Streak after qualifying today

    Consecutive day extends it, same day leaves it, a gap or no history
    restarts it at 1.
    """
    if not last_key:
        return 1
    delta = difference_in_days(today_key, last_key)
    if delta == 0:
        return current
    if delta == 1:
        return current + 1
    return 1


@dataclass
class DailyActivityResult:
    today_count: int
    target: int
    completed: bool
    streak: int
    reward_granted: bool
    reward_points: int


class DailyPracticeService:
    """
    Counts qualifying answers per UTC day

    The first time a day's count reaches the user's target the day is marked
    completed, the streak advances and the reward is granted through the
    points ledger. A day is rewarded at most once.
    """

    def get_target(self, db: Session, user_id: UUID) -> int:
        user_settings = db.query(UserSettings).filter(UserSettings.user_id == user_id).first()
        if user_settings and user_settings.daily_practice_target:
            return user_settings.daily_practice_target
        return settings.DEFAULT_DAILY_PRACTICE_TARGET

    def _locked_record(self, db: Session, user_id: UUID, key: str) -> DailyPracticeRecord:
        record = db.query(DailyPracticeRecord).filter(
            DailyPracticeRecord.user_id == user_id,
            DailyPracticeRecord.date == key
        ).with_for_update().first()
        if record is not None:
            return record

        record = DailyPracticeRecord(user_id=user_id, date=key, question_count=0)
        try:
            with db.begin_nested():
                db.add(record)
            return record
        except IntegrityError:
            logger.info(f"Concurrent daily record insert for user={user_id}, date={key}")
            return db.query(DailyPracticeRecord).filter(
                DailyPracticeRecord.user_id == user_id,
                DailyPracticeRecord.date == key
            ).with_for_update().one()

    def record_daily_activity(
        self,
        db: Session,
        user_id: UUID,
        now: Optional[datetime] = None
    ) -> DailyActivityResult:
        """
        Count one qualifying activity for the user's current UTC day

        Returns:
            DailyActivityResult with today's count, streak and any reward
        """
        now = now or utcnow()
        today = date_key(now)
        target = self.get_target(db, user_id)

        with atomic(db):
            user = db.query(User).filter(User.id == user_id).with_for_update().first()
            if user is None:
                raise NotFoundError("User not found")

            record = self._locked_record(db, user_id, today)
            record.question_count = (record.question_count or 0) + 1

            reward_granted = False
            if not record.completed and record.question_count >= target:
                streak = next_streak(user.daily_practice_streak or 0, user.last_practice_date, today)
                reward = reward_for_streak(streak)

                user.daily_practice_streak = streak
                user.last_practice_date = today
                record.completed = True
                record.completed_at = now
                record.reward_points = reward
                db.flush()

                points_service.grant_points(
                    db, user_id, reward, DAILY_STREAK_REASON, PointsType.DAILY_PRACTICE
                )
                reward_granted = True
                logger.info(
                    f"Daily target reached: user={user_id}, date={today}, "
                    f"streak={streak}, reward={reward}"
                )
            else:
                db.flush()

            result = DailyActivityResult(
                today_count=record.question_count,
                target=target,
                completed=bool(record.completed),
                streak=user.daily_practice_streak or 0,
                reward_granted=reward_granted,
                reward_points=record.reward_points or 0,
            )

        return result

    def get_status(
        self,
        db: Session,
        user_id: UUID,
        days: int = 30,
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Today's progress, streak, next reward and recent records

        Read-only; days is clamped to 7..120.
        """
        user = db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise NotFoundError("User not found")

        now = now or utcnow()
        days = min(max(days, 7), 120)
        today_key = date_key(now)
        start_key = date_key(now - timedelta(days=days - 1))

        records = db.query(DailyPracticeRecord).filter(
            DailyPracticeRecord.user_id == user_id,
            DailyPracticeRecord.date >= start_key
        ).order_by(DailyPracticeRecord.date.asc()).all()

        today_record = next((r for r in records if r.date == today_key), None)
        target = self.get_target(db, user_id)
        today_count = today_record.question_count if today_record else 0
        completed = today_count >= target
        streak = user.daily_practice_streak or 0

        return {
            "target": target,
            "today": {
                "date": today_key,
                "count": today_count,
                "completed": completed,
                "remaining": max(target - today_count, 0),
                "reward_points": today_record.reward_points if (today_record and completed) else 0,
                "completed_at": today_record.completed_at if today_record else None,
            },
            "streak": streak,
            "next_reward": next_reward_preview(streak),
            "records": [
                {
                    "date": r.date,
                    "question_count": r.question_count,
                    "completed": r.completed,
                    "reward_points": r.reward_points,
                }
                for r in records
            ],
        }


# Global instance
daily_practice_service = DailyPracticeService()
