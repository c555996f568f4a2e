"""
AI style prompt composition and style preset management
"""
import logging
import re
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from hamexam.database import atomic
from hamexam.exceptions import NotFoundError, ValidationError
from hamexam.models import AiStylePreset, UserSettings

logger = logging.getLogger(__name__)

STYLE_PLACEHOLDER = re.compile(r"\{\{\s*AI_STYLE\s*\}\}", re.IGNORECASE)
_EXTRA_NEWLINES = re.compile(r"\n{3,}")


def _normalize_whitespace(value: str) -> str:
    return _EXTRA_NEWLINES.sub("\n\n", value).strip()


def compose(base_prompt: Optional[str], style_prompt: Optional[str]) -> Optional[str]:
    """
    Merge a style prompt into a base prompt

    The style replaces every {{AI_STYLE}} placeholder (case-insensitive) or,
    when there is none, is appended after a blank line.
    """
    style = (style_prompt or "").strip()

    if not base_prompt:
        return style or None

    if STYLE_PLACEHOLDER.search(base_prompt):
        return _normalize_whitespace(STYLE_PLACEHOLDER.sub(lambda _: style, base_prompt))

    if not style:
        return _normalize_whitespace(base_prompt)

    return _normalize_whitespace(f"{base_prompt.strip()}\n\n{style}")


class StyleService:
    """Style presets and the per-user style prompt"""

    def resolve_user_style_prompt(self, db: Session, user_id: UUID) -> Optional[str]:
        """Preset prompt and custom prompt joined by a blank line, or None"""
        user_settings = db.query(UserSettings).filter(UserSettings.user_id == user_id).first()
        if user_settings is None:
            return None

        segments = []
        preset = user_settings.ai_style_preset
        if preset is not None and preset.is_active and (preset.prompt or "").strip():
            segments.append(preset.prompt.strip())
        if (user_settings.ai_style_custom or "").strip():
            segments.append(user_settings.ai_style_custom.strip())

        return "\n\n".join(segments) if segments else None

    def list_active(self, db: Session) -> List[AiStylePreset]:
        return db.query(AiStylePreset).filter(
            AiStylePreset.is_active.is_(True)
        ).order_by(AiStylePreset.is_default.desc(), AiStylePreset.created_at.asc()).all()

    def list_all(self, db: Session) -> List[AiStylePreset]:
        return db.query(AiStylePreset).order_by(
            AiStylePreset.is_default.desc(), AiStylePreset.created_at.desc()
        ).all()

    def usage_count(self, db: Session, preset_id: UUID) -> int:
        return db.query(UserSettings).filter(UserSettings.ai_style_preset_id == preset_id).count()

    def _clear_default(self, db: Session, keep_id: Optional[UUID] = None):
        query = db.query(AiStylePreset).filter(AiStylePreset.is_default.is_(True))
        if keep_id is not None:
            query = query.filter(AiStylePreset.id != keep_id)
        query.update({AiStylePreset.is_default: False}, synchronize_session="fetch")

    def create_preset(self, db: Session, data: Dict[str, Any]) -> AiStylePreset:
        """
        Create a preset; making it default clears the previous default

        Raises:
            ValidationError: missing name or prompt
            ConflictError: name already taken
        """
        name = (data.get("name") or "").strip()
        prompt = (data.get("prompt") or "").strip()
        if not name:
            raise ValidationError("Preset name is required")
        if not prompt:
            raise ValidationError("Preset prompt is required")

        is_default = bool(data.get("is_default"))
        with atomic(db):
            if is_default:
                self._clear_default(db)
            preset = AiStylePreset(
                name=name,
                description=(data.get("description") or "").strip() or None,
                prompt=prompt,
                is_default=is_default,
                is_active=data.get("is_active", True) is not False,
            )
            db.add(preset)
            db.flush()

        logger.info(f"Created style preset '{name}' (default={is_default})")
        return preset

    def update_preset(self, db: Session, preset_id: UUID, data: Dict[str, Any]) -> AiStylePreset:
        preset = db.query(AiStylePreset).filter(AiStylePreset.id == preset_id).first()
        if preset is None:
            raise NotFoundError("Style preset not found")

        name = data["name"].strip() if isinstance(data.get("name"), str) else preset.name
        prompt = data["prompt"].strip() if isinstance(data.get("prompt"), str) else preset.prompt
        if not name:
            raise ValidationError("Preset name is required")
        if not prompt:
            raise ValidationError("Preset prompt is required")

        with atomic(db):
            if data.get("is_default"):
                self._clear_default(db, keep_id=preset.id)
            preset.name = name
            preset.prompt = prompt
            if isinstance(data.get("description"), str):
                preset.description = data["description"].strip() or None
            if data.get("is_default") is not None:
                preset.is_default = bool(data["is_default"])
            if data.get("is_active") is not None:
                preset.is_active = bool(data["is_active"])
            db.flush()

        return preset

    def delete_preset(self, db: Session, preset_id: UUID) -> None:
        with atomic(db):
            preset = db.query(AiStylePreset).filter(AiStylePreset.id == preset_id).first()
            if preset is None:
                raise NotFoundError("Style preset not found")
            db.query(UserSettings).filter(
                UserSettings.ai_style_preset_id == preset_id
            ).update({UserSettings.ai_style_preset_id: None}, synchronize_session="fetch")
            db.delete(preset)

        logger.info(f"Deleted style preset {preset_id}")


# Global instance
style_service = StyleService()
