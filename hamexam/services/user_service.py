"""
User profile, settings and admin user listing
"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from hamexam.config import settings
from hamexam.database import atomic
from hamexam.exceptions import NotFoundError, ValidationError
from hamexam.models import AiStylePreset, User, UserSettings

logger = logging.getLogger(__name__)

EXAM_PREFERENCES = ("SYSTEM_PRESET", "FULL_RANDOM")
MAX_DAILY_TARGET = 200
MAX_CUSTOM_STYLE_LENGTH = 2000


class UserService:

    def get_settings(self, db: Session, user: User) -> Dict[str, Any]:
        user_settings = db.query(UserSettings).filter(UserSettings.user_id == user.id).first()
        return self._settings_dict(user, user_settings)

    @staticmethod
    def _settings_dict(user: User, user_settings: Optional[UserSettings]) -> Dict[str, Any]:
        return {
            "callsign": user.callsign,
            "name": user.name,
            "daily_practice_target": (
                user_settings.daily_practice_target if user_settings
                else settings.DEFAULT_DAILY_PRACTICE_TARGET
            ),
            "ai_style_preset_id": user_settings.ai_style_preset_id if user_settings else None,
            "ai_style_custom": user_settings.ai_style_custom if user_settings else None,
            "exam_question_preference": (
                user_settings.exam_question_preference if user_settings else "SYSTEM_PRESET"
            ),
        }

    def update_settings(self, db: Session, user: User, changes: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply a partial settings update

        An explicit null ai_style_preset_id clears the preset; other null
        fields are left unchanged.
        """
        target = changes.get("daily_practice_target")
        if target is not None and not 1 <= target <= MAX_DAILY_TARGET:
            raise ValidationError(f"Daily practice target must be between 1 and {MAX_DAILY_TARGET}")

        preference = changes.get("exam_question_preference")
        if preference is not None and preference not in EXAM_PREFERENCES:
            raise ValidationError(f"Unknown exam question preference: {preference}")

        custom = changes.get("ai_style_custom")
        if custom is not None and len(custom) > MAX_CUSTOM_STYLE_LENGTH:
            raise ValidationError(f"Custom style must be at most {MAX_CUSTOM_STYLE_LENGTH} characters")

        with atomic(db):
            user_settings = db.query(UserSettings).filter(
                UserSettings.user_id == user.id
            ).with_for_update().first()
            if user_settings is None:
                user_settings = UserSettings(
                    user_id=user.id,
                    daily_practice_target=settings.DEFAULT_DAILY_PRACTICE_TARGET,
                    exam_question_preference="SYSTEM_PRESET",
                )
                db.add(user_settings)

            if "ai_style_preset_id" in changes:
                preset_id = changes["ai_style_preset_id"]
                if preset_id is not None:
                    preset = db.query(AiStylePreset).filter(
                        AiStylePreset.id == preset_id,
                        AiStylePreset.is_active.is_(True)
                    ).first()
                    if preset is None:
                        raise NotFoundError("Style preset not found")
                user_settings.ai_style_preset_id = preset_id

            if changes.get("callsign") is not None:
                user.callsign = changes["callsign"].strip().upper() or None
            if changes.get("name") is not None:
                user.name = changes["name"].strip() or None
            if target is not None:
                user_settings.daily_practice_target = target
            if preference is not None:
                user_settings.exam_question_preference = preference
            if custom is not None:
                user_settings.ai_style_custom = custom.strip() or None
            db.flush()

            result = self._settings_dict(user, user_settings)

        logger.info(f"Updated settings for user {user.id}")
        return result

    def list_users(
        self,
        db: Session,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Dict[str, Any]:
        query = db.query(User)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                User.email.ilike(pattern), User.name.ilike(pattern), User.callsign.ilike(pattern)
            ))
        total = query.count()
        users = query.order_by(User.created_at.desc()).offset(offset).limit(limit).all()
        return {"users": users, "total": total}


# Global instance
user_service = UserService()
