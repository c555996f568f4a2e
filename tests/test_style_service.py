import pytest

from hamexam.exceptions import ConflictError, ValidationError
from hamexam.models import AiStylePreset, UserSettings
from hamexam.services.style_service import compose, style_service


def test_placeholder_is_replaced():
    assert compose("Explain this. {{AI_STYLE}} Be accurate.", "Be brief.") == (
        "Explain this. Be brief. Be accurate."
    )


def test_placeholder_is_case_and_space_insensitive():
    assert compose("A {{ ai_style }} B {{AI_STYLE}}", "x") == "A x B x"


def test_style_is_appended_without_placeholder():
    assert compose("Base prompt", "  Friendly tone  ") == "Base prompt\n\nFriendly tone"


def test_empty_style_collapses_blank_lines():
    assert compose("Intro\n\n{{AI_STYLE}}\n\nOutro", None) == "Intro\n\nOutro"
    assert compose("Intro\n\n\n\n\nOutro", "") == "Intro\n\nOutro"


def test_missing_base_prompt():
    assert compose(None, " style ") == "style"
    assert compose("", "style") == "style"
    assert compose("base", "") == "base"
    assert compose("", "") is None
    assert compose(None, None) is None


def test_only_one_default_preset(db):
    first = style_service.create_preset(db, {"name": "Concise", "prompt": "Be brief", "is_default": True})
    second = style_service.create_preset(db, {"name": "Teacher", "prompt": "Explain slowly", "is_default": True})

    db.refresh(first)
    assert not first.is_default
    assert second.is_default
    assert db.query(AiStylePreset).filter(AiStylePreset.is_default.is_(True)).count() == 1

    style_service.update_preset(db, first.id, {"is_default": True})
    db.refresh(second)
    assert not second.is_default


def test_preset_validation(db):
    style_service.create_preset(db, {"name": "Concise", "prompt": "Be brief"})

    with pytest.raises(ValidationError):
        style_service.create_preset(db, {"name": " ", "prompt": "x"})
    with pytest.raises(ConflictError):
        style_service.create_preset(db, {"name": "Concise", "prompt": "Other"})


def test_user_style_joins_preset_and_custom(db, make_user):
    user = make_user()
    preset = style_service.create_preset(db, {"name": "Concise", "prompt": "Be brief"})
    db.add(UserSettings(user_id=user.id, ai_style_preset_id=preset.id, ai_style_custom=" Use SI units "))
    db.commit()

    assert style_service.resolve_user_style_prompt(db, user.id) == "Be brief\n\nUse SI units"

    style_service.update_preset(db, preset.id, {"is_active": False})
    assert style_service.resolve_user_style_prompt(db, user.id) == "Use SI units"


def test_deleting_preset_clears_user_selection(db, make_user):
    user = make_user()
    preset = style_service.create_preset(db, {"name": "Concise", "prompt": "Be brief"})
    db.add(UserSettings(user_id=user.id, ai_style_preset_id=preset.id))
    db.commit()
    assert style_service.usage_count(db, preset.id) == 1

    style_service.delete_preset(db, preset.id)

    user_settings = db.query(UserSettings).filter(UserSettings.user_id == user.id).one()
    assert user_settings.ai_style_preset_id is None
    assert style_service.resolve_user_style_prompt(db, user.id) is None
