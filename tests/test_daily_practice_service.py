from datetime import datetime, timezone

import pytest

from hamexam.exceptions import TransientStoreError
from hamexam.models import DailyPracticeRecord, PointsHistory, User
from hamexam.services.daily_practice_service import (
    daily_practice_service,
    next_reward_preview,
    next_streak,
    reward_for_streak,
)
from hamexam.services.points_service import points_service

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("streak,reward", [(0, 5), (1, 5), (2, 10), (6, 30), (7, 50), (8, 5), (14, 50)])
def test_reward_schedule_wraps(streak, reward):
    assert reward_for_streak(streak) == reward


def test_next_reward_preview():
    assert next_reward_preview(0) == 5
    assert next_reward_preview(6) == 50


def test_next_streak_rules():
    assert next_streak(4, "2026-03-09", "2026-03-10") == 5
    assert next_streak(4, "2026-03-08", "2026-03-10") == 1
    assert next_streak(4, "2026-03-10", "2026-03-10") == 4
    assert next_streak(0, None, "2026-03-10") == 1


def _practise(db, user, times, now=NOW):
    result = None
    for _ in range(times):
        result = daily_practice_service.record_daily_activity(db, user.id, now=now)
    return result


def test_reaching_target_extends_streak_and_grants_reward(db, make_user):
    user = make_user(daily_target=2, daily_practice_streak=3, last_practice_date="2026-03-09")

    first = _practise(db, user, 1)
    assert not first.completed
    assert first.today_count == 1
    assert not first.reward_granted

    second = _practise(db, user, 1)
    assert second.completed
    assert second.reward_granted
    assert second.streak == 4
    assert second.reward_points == 20

    db.refresh(user)
    assert user.daily_practice_streak == 4
    assert user.last_practice_date == "2026-03-10"
    assert user.total_points == 20


def test_day_is_rewarded_once(db, make_user):
    user = make_user(daily_target=1)

    _practise(db, user, 1)
    extra = _practise(db, user, 3)

    assert extra.today_count == 4
    assert extra.completed
    assert not extra.reward_granted
    assert db.query(PointsHistory).filter(PointsHistory.user_id == user.id).count() == 1
    db.refresh(user)
    assert user.total_points == 5


def test_gap_restarts_streak(db, make_user):
    user = make_user(daily_target=1, daily_practice_streak=5, last_practice_date="2026-03-08")

    result = _practise(db, user, 1)

    assert result.streak == 1
    assert result.reward_points == 5


def test_seventh_day_pays_fifty_with_ledger_row(db, make_user):
    user = make_user(daily_target=1, daily_practice_streak=6, last_practice_date="2026-03-09")

    result = _practise(db, user, 1)

    assert result.streak == 7
    assert result.reward_points == 50
    entry = db.query(PointsHistory).filter(PointsHistory.user_id == user.id).one()
    assert entry.points == 50
    assert entry.reason == "daily-streak"
    assert entry.type == "DAILY_PRACTICE"
    assert points_service.ledger_total(db, user.id) == db.get(User, user.id).total_points


def test_status_reports_today_and_next_reward(db, make_user):
    user = make_user(daily_target=3)
    _practise(db, user, 2)

    status = daily_practice_service.get_status(db, user.id, days=1, now=NOW)

    assert status["target"] == 3
    assert status["today"] == {
        "date": "2026-03-10",
        "count": 2,
        "completed": False,
        "remaining": 1,
        "reward_points": 0,
        "completed_at": None,
    }
    assert status["streak"] == 0
    assert status["next_reward"] == 5
    assert [r["date"] for r in status["records"]] == ["2026-03-10"]
    assert db.query(DailyPracticeRecord).count() == 1


def test_failed_reward_grant_rolls_back_the_whole_activity(db, make_user, monkeypatch):
    user = make_user(daily_target=2, daily_practice_streak=3, last_practice_date="2026-03-09")
    _practise(db, user, 1)

    def failing_grant(*args, **kwargs):
        raise TransientStoreError("ledger unavailable")

    monkeypatch.setattr(points_service, "grant_points", failing_grant)
    with pytest.raises(TransientStoreError):
        _practise(db, user, 1)

    db.expire_all()
    record = db.query(DailyPracticeRecord).filter(DailyPracticeRecord.user_id == user.id).one()
    assert record.question_count == 1
    assert not record.completed
    assert record.reward_points in (None, 0)

    user = db.get(User, user.id)
    assert user.daily_practice_streak == 3
    assert user.last_practice_date == "2026-03-09"
    assert user.total_points == 0
    assert db.query(PointsHistory).count() == 0
