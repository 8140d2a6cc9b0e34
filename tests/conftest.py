import datetime
from typing import Any, Callable, Generator

import pytest

from fp_study import db


@pytest.fixture(autouse=True)
def temp_db(tmp_path: Any) -> Generator[None, None, None]:
    """Bind the engine to a throwaway SQLite file for each test."""
    saved_engine, saved_factory = db.engine, db.SessionLocal
    db.configure(f"sqlite:///{tmp_path / 'test.db'}")
    db.init_db()
    yield
    db.engine.dispose()
    db.engine, db.SessionLocal = saved_engine, saved_factory


def question_record(qid: str, **overrides: Any) -> dict:
    """A valid corpus record in the camelCase import format."""
    record = {
        "id": qid,
        "grade": "3",
        "year": 2024,
        "session": "5月",
        "category": "life-planning",
        "subcategory": "社会保険",
        "questionType": "multiple-choice",
        "questionText": f"Question {qid}",
        "options": ["A", "B", "C"],
        "correctAnswer": 0,
        "explanation": "A is right.",
        "difficulty": "medium",
        "tags": [],
        "createdAt": "2024-05-01T09:00:00",
        "updatedAt": "2024-05-01T09:00:00",
    }
    record.update(overrides)
    return record


@pytest.fixture
def make_question() -> Callable[..., db.Question]:
    """Insert a question straight into the store."""
    def _make(qid: str, grade: str = "3", category: str = "life-planning", year: int = 2024,
              correct_answer: int = 0) -> db.Question:
        now = datetime.datetime(2024, 5, 1, 9, 0)
        return db.put(db.Question(
            id=qid, grade=grade, year=year, session="5月", category=category, subcategory="",
            question_type="multiple-choice", question_text=f"Question {qid}",
            options=["A", "B", "C"], correct_answer=correct_answer, explanation="",
            difficulty="medium", tags=[], created_at=now, updated_at=now,
        ))
    return _make
