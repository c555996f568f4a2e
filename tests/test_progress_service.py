from datetime import datetime, timezone

from hamexam.models import UserQuestion
from hamexam.services.progress_service import progress_service


def test_repeated_correct_answers_accumulate(db, make_user, make_question):
    user = make_user()
    question = make_question()

    progress_service.record_answer(db, user.id, question.id, True)
    record = progress_service.record_answer(db, user.id, question.id, True)

    assert record.correct_count == 2
    assert record.incorrect_count == 0
    assert record.last_correct is True
    assert db.query(UserQuestion).count() == 1


def test_mixed_answers_track_both_counters(db, make_user, make_question):
    user = make_user()
    question = make_question()

    progress_service.record_answer(db, user.id, question.id, True)
    progress_service.record_answer(db, user.id, question.id, False)
    record = progress_service.record_answer(db, user.id, question.id, False)

    assert record.correct_count == 1
    assert record.incorrect_count == 2
    assert record.last_correct is False


def test_mark_seen_leaves_counters_alone(db, make_user, make_question):
    user = make_user()
    question = make_question()
    seen_at = datetime(2026, 3, 10, 8, 0, tzinfo=timezone.utc)

    record = progress_service.mark_seen(db, user.id, question.id, now=seen_at)
    assert record.correct_count == 0
    assert record.incorrect_count == 0
    assert record.last_correct is None

    progress_service.record_answer(db, user.id, question.id, True)
    record = progress_service.mark_seen(db, user.id, question.id)
    assert record.correct_count == 1


def test_lost_insert_race_falls_back_to_update(db, make_user, make_question, monkeypatch):
    user = make_user()
    question = make_question()
    # Another request created the row first
    progress_service.record_answer(db, user.id, question.id, False)

    original = progress_service._locked
    calls = {"n": 0}

    def stale_first_read(*args):
        calls["n"] += 1
        return None if calls["n"] == 1 else original(*args)

    monkeypatch.setattr(progress_service, "_locked", stale_first_read)
    record = progress_service.record_answer(db, user.id, question.id, True)

    assert calls["n"] == 2
    assert (record.correct_count, record.incorrect_count) == (1, 1)
    assert record.last_correct is True
    assert db.query(UserQuestion).count() == 1
