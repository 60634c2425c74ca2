"""
Pytest Configuration

Global test configuration and fixtures for the exam grader test suite.
"""

import pytest
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add src to Python path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from exam_grader.core.config import (
    AppConfig, DatabaseConfig, LoggingConfig, set_config
)
from exam_grader.core.database import Base, close_connections
from exam_grader.exams.lifecycle import ExamLifecycleController
from exam_grader.storage import models  # noqa: F401
from exam_grader.storage.repositories import ExamRepository


FIXED_NOW = datetime(2024, 3, 1, 12, 0, 0)


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def reset_global_state():
    """Drop the cached config and engine between tests."""
    yield
    set_config(None)
    close_connections()


@pytest.fixture
def temp_dir():
    """Provide a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def test_config(temp_dir):
    """Provide test configuration."""
    return AppConfig(
        name="Test Exam Grader",
        version="test",
        debug=True,
        database=DatabaseConfig(
            url=f"sqlite:///{temp_dir}/test.db",
            echo=False
        ),
        logging=LoggingConfig(
            level="DEBUG",
            console_level="CRITICAL",
            file=str(temp_dir / "test.log")
        ),
    )


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with the exam schema."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={'check_same_thread': False},
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def test_db_session(db_engine):
    """Provide a test database session."""
    SessionLocal = sessionmaker(bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    """Fixed clock starting at FIXED_NOW."""
    return FixedClock()


@pytest.fixture
def repository(test_db_session):
    return ExamRepository(test_db_session)


@pytest.fixture
def controller(repository, test_config, clock):
    """Lifecycle controller backed by the in-memory store."""
    return ExamLifecycleController(repository, test_config, clock)


@pytest.fixture
def sample_questions_data():
    """Two single-choice, one multi-choice and one descriptive question."""
    return [
        {
            "id": "q1",
            "text": "What is the capital of France?",
            "type": "single-choice",
            "options": ["Paris", "London", "Berlin", "Madrid"],
            "correct_answer": "Paris",
        },
        {
            "id": "q2",
            "text": "Which keyword defines a function in Python?",
            "type": "single-choice",
            "options": ["func", "def", "lambda", "fn"],
            "correct_answer": "def",
        },
        {
            "id": "q3",
            "text": "Which of these are immutable types?",
            "type": "multi-choice",
            "options": ["tuple", "list", "str", "dict"],
            "correct_answer": ["tuple", "str"],
        },
        {
            "id": "q4",
            "text": "Explain how a dictionary lookup works.",
            "type": "descriptive",
            "correct_answer": "uses a hash map for O(1) lookup",
        },
    ]


@pytest.fixture
def sample_submission():
    """Answers for sample_questions_data: both single-choice right, multi-choice partial."""
    return {
        "0": " paris ",
        "1": "DEF",
        "2": ["tuple"],
        "3": "hash map gives constant lookup",
    }
