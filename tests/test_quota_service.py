import pytest

from hamexam.exceptions import QuotaExceededError, ValidationError
from hamexam.services.quota_service import quota_service


def test_last_unit_of_quota_can_be_used_once(db, make_user):
    user = make_user(ai_quota_limit=10, ai_quota_used=9)

    assert quota_service.check_and_increment(db, user.id) == 10

    with pytest.raises(QuotaExceededError) as exc_info:
        quota_service.check_and_increment(db, user.id)
    assert exc_info.value.status_code == 403

    assert quota_service.get_status(db, user.id) == {
        "limit": 10, "used": 10, "remaining": 0, "unlimited": False
    }


def test_request_larger_than_remaining_is_refused(db, make_user):
    user = make_user(ai_quota_limit=5, ai_quota_used=3)

    with pytest.raises(QuotaExceededError):
        quota_service.check_and_increment(db, user.id, count=3)

    assert quota_service.get_status(db, user.id)["used"] == 3


def test_null_limit_is_unlimited(db, make_user):
    user = make_user(ai_quota_limit=None)

    for _ in range(25):
        quota_service.check_and_increment(db, user.id)

    status = quota_service.get_status(db, user.id)
    assert status["unlimited"]
    assert status["remaining"] is None
    assert status["used"] == 25


def test_bypass_records_usage_past_the_limit(db, make_user):
    user = make_user(ai_quota_limit=0)

    assert quota_service.check_and_increment(db, user.id, bypass_limit=True) == 1
    assert quota_service.get_status(db, user.id)["used"] == 1


def test_count_must_be_positive(db, make_user):
    user = make_user()
    with pytest.raises(ValidationError):
        quota_service.check_and_increment(db, user.id, count=0)


def test_admin_limit_and_reset(db, make_user):
    user = make_user(ai_quota_limit=3, ai_quota_used=3)

    assert quota_service.set_limit(db, user.id, 8)["remaining"] == 5
    assert quota_service.reset_usage(db, user.id)["used"] == 0
    with pytest.raises(ValidationError):
        quota_service.set_limit(db, user.id, -1)
