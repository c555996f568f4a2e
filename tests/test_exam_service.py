import random

import pytest

from hamexam.exceptions import ConflictError, NotFoundError, PermissionDenied, ValidationError
from hamexam.models import ExamPreset, ExamResult, Question, UserQuestion
from hamexam.services.exam_service import ExamService


@pytest.fixture
def service():
    return ExamService(rng=random.Random(11))


@pytest.fixture
def mini_library(db, library, make_question):
    db.add(ExamPreset(
        library_id=library.id, code="MINI", name="Mini exam", duration_minutes=10,
        total_questions=3, pass_score=2, single_choice_count=2, multiple_choice_count=1,
    ))
    db.commit()
    for _ in range(3):
        make_question(correct=("B",))
    for _ in range(2):
        make_question(correct=("A", "C"), question_type="multiple_choice")
    return library


def _answers(db, paper, correct=True):
    answers, mappings = {}, {}
    for item in paper["questions"]:
        qid = str(item["id"])
        question = db.get(Question, item["id"])
        reverse = {canonical: display for display, canonical in item["answer_mapping"].items()}
        if correct:
            answers[qid] = [reverse[c] for c in question.correct_answers]
        else:
            wrong = next(c for c in reverse if c not in question.correct_answers)
            answers[qid] = [reverse[wrong]]
        mappings[qid] = item["answer_mapping"]
    return answers, mappings


def test_paper_follows_preset_counts(db, make_user, mini_library, service):
    user = make_user()

    paper = service.start_exam(db, user.id, "test", "mini")

    assert paper["preset"] == {"code": "MINI", "name": "Mini exam"}
    assert paper["config"]["total_questions"] == 3
    assert paper["config"]["pass_score"] == 2
    types = sorted(q["question_type"] for q in paper["questions"])
    assert types == ["multiple_choice", "single_choice", "single_choice"]
    for question in paper["questions"]:
        assert "correct_answers" not in question
        assert set(question["answer_mapping"]) == {o["id"] for o in question["options"]}


def test_submit_grades_once_and_records_progress(db, make_user, mini_library, service):
    user = make_user()
    paper = service.start_exam(db, user.id, "TEST")
    answers, mappings = _answers(db, paper)

    result = service.submit_exam(db, user.id, paper["exam_result_id"], answers, mappings)

    assert result["score"] == 3
    assert result["passed"]
    assert all(r["is_correct"] for r in result["question_results"])
    assert db.query(UserQuestion).filter(UserQuestion.user_id == user.id).count() == 3

    stored = db.get(ExamResult, paper["exam_result_id"])
    assert stored.submitted_at is not None
    assert stored.correct_count == 3

    with pytest.raises(ConflictError):
        service.submit_exam(db, user.id, paper["exam_result_id"], answers, mappings)


def test_failing_paper(db, make_user, mini_library, service):
    user = make_user()
    paper = service.start_exam(db, user.id, "TEST")
    answers, mappings = _answers(db, paper, correct=False)

    result = service.submit_exam(db, user.id, paper["exam_result_id"], answers, mappings)

    assert result["score"] == 0
    assert not result["passed"]
    assert result["wrong_count"] == 3


def test_only_owner_can_submit(db, make_user, mini_library, service):
    owner, other = make_user(), make_user()
    paper = service.start_exam(db, owner.id, "TEST")

    with pytest.raises(PermissionDenied):
        service.submit_exam(db, other.id, paper["exam_result_id"], {}, {})

    with pytest.raises(NotFoundError):
        service.submit_exam(db, owner.id, paper["exam_id"], {}, {})


def test_default_preset_needs_enough_questions(db, make_user, library, make_question, service):
    make_question()

    with pytest.raises(ValidationError):
        service.start_exam(db, make_user().id, "TEST")


def test_results_list_only_submitted(db, make_user, mini_library, service):
    user = make_user()
    submitted = service.start_exam(db, user.id, "TEST")
    service.start_exam(db, user.id, "TEST")
    answers, mappings = _answers(db, submitted)
    service.submit_exam(db, user.id, submitted["exam_result_id"], answers, mappings)

    listing = service.list_results(db, user.id)

    assert listing["total"] == 1
    assert listing["results"][0]["preset_code"] == "MINI"
    assert listing["results"][0]["passed"] is True
