from datetime import datetime, timedelta, timezone

import pytest

from hamexam.exceptions import ConflictError, InsufficientPointsError, ValidationError
from hamexam.models import User
from hamexam.services.points_service import PointsType, display_name, points_service

DAY_ONE = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def test_grant_and_spend_keep_ledger_in_sync(db, make_user):
    user = make_user()

    points_service.grant_points(db, user.id, 120, "Correct answer: Q1", PointsType.ANSWER_CORRECT)
    points_service.spend_points(db, user.id, 100, "Regenerate", PointsType.AI_REGENERATE)

    db.refresh(user)
    assert user.total_points == 20
    assert points_service.ledger_total(db, user.id) == 20
    assert [h.points for h in points_service.get_history(db, user.id)] in ([-100, 120], [120, -100])


def test_spend_refuses_to_go_negative(db, make_user):
    user = make_user()
    points_service.grant_points(db, user.id, 30, "seed")

    with pytest.raises(InsufficientPointsError):
        points_service.spend_points(db, user.id, 31, "too much", PointsType.AI_REGENERATE)

    db.refresh(user)
    assert user.total_points == 30
    assert points_service.ledger_total(db, user.id) == 30


def test_grant_rejects_negative_amount(db, make_user):
    user = make_user()
    with pytest.raises(ValidationError):
        points_service.grant_points(db, user.id, -5, "nope")


def test_check_in_once_per_day(db, make_user):
    user = make_user()

    result = points_service.check_in(db, user.id, now=DAY_ONE)
    assert result["streak"] == 1
    assert result["points"] == 50

    with pytest.raises(ConflictError):
        points_service.check_in(db, user.id, now=DAY_ONE + timedelta(hours=3))

    assert points_service.check_in_status(db, user.id, now=DAY_ONE)["has_checked_in"]


def test_check_in_streak_bonuses(db, make_user):
    user = make_user()

    results = [
        points_service.check_in(db, user.id, now=DAY_ONE + timedelta(days=d)) for d in range(7)
    ]

    assert [r["streak"] for r in results] == [1, 2, 3, 4, 5, 6, 7]
    assert results[2]["bonus_points"] == 100
    assert results[6]["bonus_points"] == 150
    assert results[6]["points"] == 200

    db.refresh(user)
    assert user.total_points == 7 * 50 + 100 + 150
    assert points_service.ledger_total(db, user.id) == user.total_points


def test_missed_day_restarts_check_in_streak(db, make_user):
    user = make_user()
    points_service.check_in(db, user.id, now=DAY_ONE)
    points_service.check_in(db, user.id, now=DAY_ONE + timedelta(days=1))

    result = points_service.check_in(db, user.id, now=DAY_ONE + timedelta(days=3))

    assert result["streak"] == 1
    assert result["bonus_points"] == 0


def test_leaderboard_orders_by_points(db, make_user):
    low = make_user(name="Low")
    high = make_user(callsign="BG1ABC")
    make_user()
    points_service.grant_points(db, low.id, 10, "seed")
    points_service.grant_points(db, high.id, 90, "seed")

    board = points_service.leaderboard(db)

    assert board["total"] == 2
    assert [u["name"] for u in board["users"]] == ["BG1ABC", "Low"]
    assert board["users"][0]["rank"] == 1


def test_display_name_masks_email():
    assert display_name(User(email="operator@example.com")) == "op***@example.com"
    assert display_name(User(email="ab@example.com")) == "a***@example.com"
