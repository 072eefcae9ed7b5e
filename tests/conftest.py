"""
Test configuration and fixtures.
"""
import os

# Set testing environment before the application is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from examdesk.infrastructure.db.base import Base
from examdesk.infrastructure.db.models import MockTestModel, QuestionModel, UserModel, UserRole
from examdesk.infrastructure.security.jwt_service import create_access_token
from examdesk.presentation.dependencies import get_db

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


class FrozenClock:
    """Callable clock the engines accept in place of utcnow."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def db_session():
    """Fresh schema and session for each test."""
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def _make(role=UserRole.STUDENT, **profile):
        counter["n"] += 1
        user = UserModel(
            name=profile.pop("name", f"User {counter['n']}"),
            email=profile.pop("email", f"user{counter['n']}@example.com"),
            role=role,
            **profile,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_questions(db_session):
    def _make(correct_options, marks=1.0):
        questions = []
        for index, correct in enumerate(correct_options):
            question = QuestionModel(
                question_text=f"Question {index + 1}",
                options=[{"label": label, "text": f"Option {label}"} for label in "ABCD"],
                correct_option=correct,
                explanation=f"Because {correct}",
                difficulty_level="medium",
                marks=marks,
            )
            db_session.add(question)
            questions.append(question)
        db_session.commit()
        for question in questions:
            db_session.refresh(question)
        return questions

    return _make


@pytest.fixture
def teacher(make_user):
    return make_user(role=UserRole.TEACHER, department="CS")


@pytest.fixture
def student(make_user):
    return make_user(class_name="MCA", semester="3", batch="2024", department="CS")


@pytest.fixture
def make_test(db_session, teacher):
    def _make(questions, **overrides):
        marks_per_question = overrides.pop("marks_per_question", 1.0)
        test = MockTestModel(
            title=overrides.pop("title", "Sample Test"),
            instructions=overrides.pop("instructions", "Answer all questions"),
            created_by=overrides.pop("created_by", teacher.id),
            duration_minutes=overrides.pop("duration_minutes", 30),
            marks_per_question=marks_per_question,
            total_marks=overrides.pop("total_marks", len(questions) * marks_per_question),
            **overrides,
        )
        test.questions = list(questions)
        db_session.add(test)
        db_session.commit()
        db_session.refresh(test)
        return test

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user):
        token = create_access_token({"user_id": user.id, "role": user.role})
        return {"Authorization": f"Bearer {token}"}

    return _headers
