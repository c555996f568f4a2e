"""
Shared fixtures: in-memory SQLite, an authenticated TestClient and question factories
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["GEMINI_API_KEY"] = "test-key"
os.environ["REDIS_URL"] = ""
os.environ["JWT_SECRET"] = "test-secret"
os.environ["ADMIN_EMAILS"] = '["admin@example.com"]'

import pytest
from fastapi.testclient import TestClient

import hamexam.models  # noqa: F401
from hamexam.core.auth import create_token
from hamexam.database import Base, SessionLocal, engine, get_db
from hamexam.main import app
from hamexam.models import Question, QuestionLibrary, User, UserSettings


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    app.state.rate_limiter.reset()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(email=None, daily_target=None, **fields):
        counter["n"] += 1
        user = User(email=email or f"user{counter['n']}@example.com", **fields)
        db.add(user)
        db.flush()
        if daily_target is not None:
            db.add(UserSettings(user_id=user.id, daily_practice_target=daily_target))
        db.commit()
        return user

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_token(str(user.id), user.email)}"}

    return _headers


@pytest.fixture
def library(db):
    lib = QuestionLibrary(code="TEST", name="Test library", short_name="Test", visibility="PUBLIC")
    db.add(lib)
    db.commit()
    return lib


@pytest.fixture
def make_question(db, library):
    counter = {"n": 0}

    def _make(correct=("B",), question_type="single_choice", option_count=4, external_id=None):
        counter["n"] += 1
        ids = "ABCDEFGH"[:option_count]
        question = Question(
            library_code=library.code,
            external_id=external_id or f"Q{counter['n']:04d}",
            question_type=question_type,
            title=f"Question {counter['n']}",
            options=[{"id": i, "text": f"Option {i}"} for i in ids],
            correct_answers=list(correct),
            explanation="Because the regulations say so.",
            category="Regulations",
        )
        db.add(question)
        db.commit()
        return question

    return _make
