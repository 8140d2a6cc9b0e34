"""Question corpus import and history reset.

Corpus files are JSON arrays of question objects, in the camelCase shape
the exam data is published in::

    [{"id": "fp3-2024-05-001", "grade": "3", "year": 2024, "session": "5月",
      "category": "life-planning", "subcategory": "...",
      "questionType": "true-false", "questionText": "...",
      "options": ["適切", "不適切"], "correctAnswer": 0, "explanation": "...",
      "difficulty": "easy", "tags": [], "createdAt": "...", "updatedAt": "..."}]

snake_case keys are accepted as well.
"""
from __future__ import annotations

import datetime
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Literal, Mapping, Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from . import db
from .db import DailyStats, Question, UserAnswer, UserProgress
from .errors import ValidationError

logger = structlog.get_logger(__name__)


class QuestionRecord(BaseModel):
    """One question as it appears in a corpus file."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str = Field(..., min_length=1)
    grade: Literal["3", "2"]
    year: int
    session: str = ""
    category: str = Field(..., min_length=1)
    subcategory: str = ""
    question_type: Literal["true-false", "multiple-choice", "calculation"] = "multiple-choice"
    question_text: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=1)
    correct_answer: int = Field(..., ge=0)
    explanation: str = ""
    difficulty: Literal["easy", "medium", "hard"] = "medium"
    tags: List[str] = Field(default_factory=list)
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None

    @field_validator("grade", mode="before")
    @classmethod
    def _grade_as_text(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("created_at", "updated_at")
    @classmethod
    def _local_naive(cls, value: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
        # Stored timestamps are naive local time
        if value is not None and value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value

    @model_validator(mode="after")
    def _answer_in_range(self) -> "QuestionRecord":
        if self.correct_answer >= len(self.options):
            raise ValueError(
                f"correct_answer {self.correct_answer} is out of range for {len(self.options)} options"
            )
        return self

    def to_model(self, existing: Optional[Question] = None) -> Question:
        created_at = self.created_at or (existing.created_at if existing else None) or datetime.datetime.now()
        return Question(
            id=self.id,
            grade=self.grade,
            year=self.year,
            session=self.session,
            category=self.category,
            subcategory=self.subcategory,
            question_type=self.question_type,
            question_text=self.question_text,
            options=list(self.options),
            correct_answer=self.correct_answer,
            explanation=self.explanation,
            difficulty=self.difficulty,
            tags=list(self.tags),
            created_at=created_at,
            updated_at=self.updated_at or created_at,
        )


def _describe(index: int, raw: Any, exc: PydanticValidationError) -> str:
    qid = raw.get("id") if isinstance(raw, Mapping) else None
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'record'}: {err['msg']}" for err in exc.errors()
    )
    return f"record {index}" + (f" ({qid})" if qid else "") + f": {problems}"


def validate_records(records: Iterable[Union[Mapping[str, Any], QuestionRecord]]) -> List[QuestionRecord]:
    """Validate a whole batch, raising ValidationError if any record is malformed."""
    valid: List[QuestionRecord] = []
    errors: List[str] = []
    for index, raw in enumerate(records):
        if isinstance(raw, QuestionRecord):
            valid.append(raw)
            continue
        try:
            valid.append(QuestionRecord.model_validate(raw))
        except PydanticValidationError as exc:
            errors.append(_describe(index, raw, exc))
    if errors:
        logger.warning("corpus_rejected", invalid=len(errors), total=len(valid) + len(errors))
        raise ValidationError(f"{len(errors)} invalid question record(s); nothing imported", errors)
    return valid


def import_questions(records: Iterable[Union[Mapping[str, Any], QuestionRecord]]) -> int:
    """Upsert a batch of questions by id. All or nothing.

    Returns the number of distinct questions written. Importing the same
    batch twice leaves the store unchanged.
    """
    by_id: Dict[str, QuestionRecord] = {}
    for record in validate_records(records):
        by_id[record.id] = record  # last occurrence wins
    if not by_id:
        return 0

    existing = {q.id: q for q in db.query(Question, "id", lambda c: c.in_(list(by_id)))}
    written = db.bulk_put(record.to_model(existing.get(qid)) for qid, record in by_id.items())
    logger.info("corpus_imported", questions=written, updated=len(existing))
    return written


def load_corpus_file(path: Union[str, Path]) -> List[Any]:
    """Read question records from a JSON file.

    Accepts a bare array or an object with a ``questions`` array.
    """
    try:
        with open(path, "r", encoding="utf-8-sig") as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationError(f"{path} is not valid UTF-8 JSON: {exc}") from exc
    if isinstance(data, dict) and isinstance(data.get("questions"), list):
        data = data["questions"]
    if not isinstance(data, list):
        raise ValidationError(f"{path} must contain a JSON array of questions")
    return data


def import_file(path: Union[str, Path]) -> int:
    return import_questions(load_corpus_file(path))


def question_count() -> int:
    return db.count(Question)


def reset_history(full: bool = False) -> None:
    """Erase answers, progress and daily stats; with ``full`` also the questions.

    Settings are kept.
    """
    models = [UserAnswer, UserProgress, DailyStats]
    if full:
        models.append(Question)
    with db.session_scope() as session:
        for model in models:
            session.query(model).delete()
    logger.info("history_reset", full=full)
