import asyncio
import json
import os

import pytest

from hamexam.config import settings
from hamexam.exceptions import ValidationError
from hamexam.models import ExamPreset, Question, QuestionLibrary
from hamexam.services.import_service import (
    import_service,
    normalize_library_header,
    normalize_question,
    parse_payload,
)


def _payload(**library):
    header = {"name": "Class A operator", "shortName": "Class A", "visibility": "public"}
    header.update(library)
    return {
        "library": header,
        "questions": [
            {
                "id": "LK0001",
                "title": "Maximum transmit power below 30 MHz?",
                "type": "single",
                "options": [
                    {"id": "A", "text": "15 W"},
                    {"id": "B", "text": "25 W", "isCorrect": True},
                    {"id": "C", "text": "100 W"},
                ],
                "category": {"main": {"name": "Regulations"}, "subSection": "Power"},
                "tags": "power; hf",
            },
            {
                "externalId": "LK0002",
                "title": "Which are amateur bands?",
                "options": ["2 m", "11 m", "70 cm"],
                "correctAnswers": ["A", "C"],
            },
        ],
    }


def test_header_derives_code_and_warns():
    fields, warnings = normalize_library_header(_payload()["library"])

    assert fields["code"] == "CLASS_A"
    assert fields["visibility"] == "PUBLIC"
    assert len(warnings) == 2


def test_header_rejects_bad_visibility():
    with pytest.raises(ValidationError):
        normalize_library_header({"name": "x", "short_name": "x", "visibility": "SECRET"})


def test_question_normalization():
    raw = _payload()["questions"]

    first = normalize_question(raw[0], "CLASS_A", 0)
    second = normalize_question(raw[1], "CLASS_A", 1)

    assert first["external_id"] == "LK0001"
    assert first["correct_answers"] == ["B"]
    assert first["category"] == "Regulations"
    assert first["sub_section"] == "Power"
    assert first["tags"] == ["power", "hf"]
    assert all("is_correct" not in o for o in first["options"])
    assert second["question_type"] == "multiple_choice"
    assert second["correct_answers"] == ["A", "C"]


def test_answer_key_must_reference_options():
    raw = {"id": "X", "title": "t", "options": ["a", "b"], "correct_answers": ["Z"]}
    with pytest.raises(ValidationError):
        normalize_question(raw, "LIB", 0)


def test_duplicate_option_ids_are_rejected():
    raw = {
        "id": "X1", "title": "t", "correct_answers": ["A"],
        "options": [{"id": "A", "text": "a"}, {"id": "A", "text": "b"}, {"id": "B", "text": "c"}],
    }
    with pytest.raises(ValidationError) as exc:
        normalize_question(raw, "LIB", 0)
    assert "X1" in exc.value.message
    assert "['A']" in exc.value.message


def test_more_options_than_display_labels_are_rejected():
    raw = {"id": "X2", "title": "t", "options": [str(n) for n in range(9)], "correct_answers": ["A"]}
    with pytest.raises(ValidationError) as exc:
        normalize_question(raw, "LIB", 0)
    assert "X2" in exc.value.message
    assert "9 options" in exc.value.message

    raw["options"] = raw["options"][:8]
    assert len(normalize_question(raw, "LIB", 0)["options"]) == 8


def test_unservable_question_aborts_import(db):
    payload = _payload()
    payload["questions"][0]["options"].append({"id": "A", "text": "again"})

    with pytest.raises(ValidationError):
        import_service.import_library(db, payload)
    assert db.query(Question).count() == 0


def test_parse_payload_rejects_non_json():
    with pytest.raises(ValidationError):
        parse_payload(b"not json")
    with pytest.raises(ValidationError):
        parse_payload(b"[1, 2]")


def test_import_upserts_questions_and_presets(db):
    payload = _payload(code="a-class", presets=[{
        "code": "std", "name": "Standard", "durationMinutes": 40, "totalQuestions": 40,
        "passScore": 30, "singleChoiceCount": 32, "multipleChoiceCount": 8,
    }])

    first = import_service.import_library(db, payload)
    payload["questions"][0]["title"] = "Maximum power on HF?"
    second = import_service.import_library(db, payload)

    assert (first["created"], first["updated"]) == (2, 0)
    assert (second["created"], second["updated"]) == (0, 2)
    assert first["library"]["code"] == "A-CLASS"

    library = db.query(QuestionLibrary).filter(QuestionLibrary.code == "A-CLASS").one()
    assert library.total_questions == 2
    assert db.query(ExamPreset).filter(ExamPreset.library_id == library.id).count() == 1
    question = db.query(Question).filter(Question.external_id == "LK0001").one()
    assert question.title == "Maximum power on HF?"


def test_duplicate_question_ids_are_rejected(db):
    payload = _payload()
    payload["questions"][1]["externalId"] = "LK0001"

    with pytest.raises(ValidationError):
        import_service.import_library(db, payload)
    assert db.query(Question).count() == 0


def test_archive_file_writes_content(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "LIBRARY_FILE_DIR", str(tmp_path))
    content = json.dumps(_payload()).encode("utf-8")

    archive = asyncio.run(import_service.archive_file("CLASS_A", content, "class a.json"))

    assert archive["path"].startswith(os.path.join(str(tmp_path), "CLASS_A"))
    assert archive["path"].endswith("class_a.json")
    assert archive["size"] == len(content)
    with open(archive["path"], "rb") as f:
        assert f.read() == content
