from datetime import datetime, timedelta, timezone

from hamexam.utils.dates import date_key, difference_in_days
from hamexam.utils.normalize import (
    derive_correct_answers,
    normalize_answer_list,
    normalize_options,
    normalize_question_type,
    normalize_tags,
)


def test_answer_list_shapes():
    assert normalize_answer_list(["A", "C"]) == ["A", "C"]
    assert normalize_answer_list('["B", "D"]') == ["B", "D"]
    assert normalize_answer_list("A") == ["A"]
    assert normalize_answer_list({"value": ["C"]}) == ["C"]
    assert normalize_answer_list("  ") == []
    assert normalize_answer_list(None) == []
    assert normalize_answer_list(["A", None, ""]) == ["A"]


def test_options_from_strings_and_dicts():
    assert normalize_options(["10 W", "25 W"]) == [
        {"id": "A", "text": "10 W", "is_correct": False},
        {"id": "B", "text": "25 W", "is_correct": False},
    ]
    options = normalize_options('[{"id": "A", "text": "x", "isCorrect": true}, {"text": "no id"}]')
    assert options == [{"id": "A", "text": "x", "is_correct": True}]
    assert derive_correct_answers(options) == ["A"]


def test_tags_and_question_types():
    assert normalize_tags("antenna; power,  rules") == ["antenna", "power", "rules"]
    assert normalize_tags(None) == []
    assert normalize_question_type("Multiple") == "multiple_choice"
    assert normalize_question_type("judge") == "true_false"
    assert normalize_question_type(None, correct_count=2) == "multiple_choice"
    assert normalize_question_type("unknown") == "single_choice"


def test_date_keys_use_utc():
    east = timezone(timedelta(hours=8))
    assert date_key(datetime(2026, 3, 10, 1, 0, tzinfo=east)) == "2026-03-09"
    assert date_key(datetime(2026, 3, 10, 23, 59)) == "2026-03-10"
    assert difference_in_days("2026-03-01", "2026-02-28") == 1
