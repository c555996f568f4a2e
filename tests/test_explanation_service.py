import uuid

import pytest

from hamexam.exceptions import InsufficientPointsError, NotFoundError, QuotaExceededError, ValidationError
from hamexam.models import AiUsageLog, Explanation, User
from hamexam.services.explanation_service import explanation_service, wilson_score
from hamexam.services.gemini_service import gemini_service
from hamexam.services.points_service import points_service

GENERATED = {
    "summary": "Power limits for Class A",
    "answer": "B",
    "option_analysis": [],
    "key_points": ["25 W below 30 MHz"],
    "memory_aids": [],
    "difficulty": 2,
    "insufficiency": False,
}


@pytest.fixture
def fake_gemini(monkeypatch):
    calls = []

    def generate(title, options, correct_answers, syllabus_path=None, style_prompt=None):
        calls.append({"title": title, "correct_answers": correct_answers, "style_prompt": style_prompt})
        return dict(GENERATED)

    monkeypatch.setattr(gemini_service, "generate_explanation", generate)
    return calls


def test_wilson_score():
    assert wilson_score(0, 0) == 0.0
    assert wilson_score(10, 0) == pytest.approx(0.7225, abs=1e-3)
    assert wilson_score(0, 10) == 0.0
    assert wilson_score(50, 10) > wilson_score(5, 1) > wilson_score(1, 1)


def test_cached_explanation_costs_nothing(db, make_user, make_question, fake_gemini):
    user = make_user(ai_quota_limit=5)
    question = make_question()

    first = explanation_service.explain(db, user, question.id)
    second = explanation_service.explain(db, user, question.id)

    assert not first["cached"]
    assert second["cached"]
    assert second["explanation_id"] == first["explanation_id"]
    assert second["explanation"]["summary"] == GENERATED["summary"]
    assert len(fake_gemini) == 1
    db.refresh(user)
    assert user.ai_quota_used == 1


def test_legacy_question_sends_answer_key_from_option_flags(db, make_user, make_question, fake_gemini):
    question = make_question(correct=())
    question.options = [
        {"id": "A", "text": "15 W"},
        {"id": "B", "text": "25 W", "isCorrect": True},
    ]
    db.commit()

    explanation_service.explain(db, make_user(ai_quota_limit=5), question.id)

    assert fake_gemini[0]["correct_answers"] == ["B"]


def test_unknown_question(db, make_user, fake_gemini):
    with pytest.raises(NotFoundError):
        explanation_service.explain(db, make_user(), uuid.uuid4())


def test_quota_exhausted_blocks_generation(db, make_user, make_question, fake_gemini):
    user = make_user(ai_quota_limit=0)

    with pytest.raises(QuotaExceededError):
        explanation_service.explain(db, user, make_question().id)
    assert fake_gemini == []


def test_paid_regeneration_needs_points(db, make_user, make_question, fake_gemini):
    config = points_service.get_config(db)
    points_service.update_config(db, {"ai_regenerate_daily_free": 0, "ai_regenerate_cost": 100})
    assert config.ai_regenerate_cost == 100
    user = make_user()
    question = make_question()

    with pytest.raises(InsufficientPointsError):
        explanation_service.explain(db, user, question.id, regenerate=True)

    db.refresh(user)
    assert user.ai_quota_used == 0
    assert fake_gemini == []


def test_regeneration_charges_and_retracts_previous(db, make_user, make_question, fake_gemini):
    points_service.update_config(db, {"ai_regenerate_daily_free": 1, "ai_regenerate_cost": 100})
    user = make_user()
    points_service.grant_points(db, user.id, 150, "seed")
    question = make_question()

    original = explanation_service.explain(db, user, question.id)
    free = explanation_service.explain(db, db.get(User, user.id), question.id, regenerate=True)
    paid = explanation_service.explain(db, db.get(User, user.id), question.id, regenerate=True)

    assert free["deducted_points"] == 0
    assert free["free_attempts_remaining"] == 0
    assert paid["deducted_points"] == 100
    db.refresh(user)
    assert user.total_points == 50
    assert points_service.ledger_total(db, user.id) == 50
    assert db.query(AiUsageLog).filter(AiUsageLog.user_id == user.id).count() == 2

    statuses = {
        e.id: e.status for e in db.query(Explanation).filter(Explanation.question_id == question.id)
    }
    assert statuses[original["explanation_id"]] == "RETRACTED"
    assert statuses[free["explanation_id"]] == "RETRACTED"
    assert statuses[paid["explanation_id"]] == "PUBLISHED"


def test_admin_regeneration_is_free_but_uses_quota(db, make_user, make_question, fake_gemini):
    points_service.update_config(db, {"ai_regenerate_daily_free": 0})
    admin = make_user(ai_quota_limit=0)

    result = explanation_service.explain(db, admin, make_question().id, regenerate=True, is_admin=True)

    assert result["deducted_points"] == 0
    assert "free_limit" not in result
    db.refresh(admin)
    assert admin.ai_quota_used == 1


def _explanation(db, question):
    explanation = Explanation(question_id=question.id, type="AI", content_json=GENERATED)
    db.add(explanation)
    db.commit()
    return explanation


def test_vote_create_switch_and_withdraw(db, make_user, make_question):
    user = make_user()
    explanation = _explanation(db, make_question())

    created = explanation_service.vote(db, user.id, explanation.id, "UP")
    assert (created["action"], created["upvotes"], created["downvotes"]) == ("created", 1, 0)
    assert created["wilson_score"] == pytest.approx(wilson_score(1, 0))

    switched = explanation_service.vote(db, user.id, explanation.id, "DOWN")
    assert (switched["action"], switched["upvotes"], switched["downvotes"]) == ("updated", 0, 1)

    removed = explanation_service.vote(db, user.id, explanation.id, "DOWN")
    assert (removed["action"], removed["vote"], removed["downvotes"]) == ("removed", None, 0)
    assert removed["wilson_score"] == 0.0


def test_report_requires_reason_and_hides_at_threshold(db, make_user, make_question):
    explanation = _explanation(db, make_question())
    reporters = [make_user() for _ in range(5)]

    with pytest.raises(ValidationError):
        explanation_service.vote(db, reporters[0].id, explanation.id, "REPORT", "  ")

    for reporter in reporters[:4]:
        explanation_service.vote(db, reporter.id, explanation.id, "REPORT", "Wrong frequency")
    db.refresh(explanation)
    assert explanation.status == "PUBLISHED"

    explanation_service.vote(db, reporters[4].id, explanation.id, "REPORT", "Wrong frequency")
    db.refresh(explanation)
    assert explanation.status == "HIDDEN"
    assert explanation.upvotes == 0 and explanation.downvotes == 0
