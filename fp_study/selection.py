"""Question selection for each study strategy.

Every strategy goes through ``select_questions`` so the result is always
de-duplicated, shuffled and capped at the requested count. An empty list
is a normal answer ("nothing matched"), not an error.
"""
from __future__ import annotations

import datetime
import random
from enum import Enum
from typing import Collection, Iterable, List, Optional, Sequence, TypeVar

import structlog

from . import db
from .db import Question, UserAnswer, UserProgress
from .mastery import accuracy_ratio

logger = structlog.get_logger(__name__)

WEAK_LEVEL_THRESHOLD = 3
WEAK_ACCURACY_THRESHOLD = 0.6

T = TypeVar("T")


class StudyStrategy(str, Enum):
    RANDOM = "random"
    CATEGORY = "category"
    YEAR = "year"
    WEAKNESS = "weakness"
    BOOKMARKED = "bookmarked"
    INCORRECT_TODAY = "incorrect_today"

    @property
    def answer_mode(self) -> str:
        """Mode tag stored on answers given under this strategy."""
        if self in (StudyStrategy.BOOKMARKED, StudyStrategy.INCORRECT_TODAY):
            return "review"
        return self.value


# Strategies that return the whole matching set when no count is given
_UNBOUNDED = {StudyStrategy.BOOKMARKED, StudyStrategy.YEAR}


def shuffle(items: Iterable[T], rng: Optional[random.Random] = None) -> List[T]:
    """Return a uniformly shuffled copy (Fisher-Yates via random.shuffle)."""
    shuffled = list(items)
    (rng or random).shuffle(shuffled)
    return shuffled


def _grade_filter(questions: Iterable[Question], grade: Optional[str]) -> List[Question]:
    if grade is None:
        return list(questions)
    return [q for q in questions if q.grade == grade]


def _corpus(grade: Optional[str]) -> List[Question]:
    if grade is None:
        return db.query(Question, "id")
    return db.query(Question, "grade", lambda c: c == grade)


def _questions_by_ids(ids: Collection[str]) -> List[Question]:
    if not ids:
        return []
    return db.query(Question, "id", lambda c: c.in_(list(ids)))


def weak_question_ids() -> List[str]:
    """Ids of answered questions below level 3 or under 60% accuracy.

    Ordered weakest first: by mastery level, then accuracy.
    """
    weak: List[UserProgress] = []
    for p in db.query(UserProgress, "total_attempts", lambda c: c > 0):
        accuracy = accuracy_ratio(p.correct_count, p.total_attempts)
        if p.mastery_level < WEAK_LEVEL_THRESHOLD or accuracy < WEAK_ACCURACY_THRESHOLD:
            weak.append(p)
    weak.sort(key=lambda p: (p.mastery_level, accuracy_ratio(p.correct_count, p.total_attempts)))
    return [p.question_id for p in weak]


def bookmarked_question_ids() -> List[str]:
    return [p.question_id for p in db.query(UserProgress, "is_bookmarked", lambda c: c.is_(True))]


def incorrect_question_ids_on(day: datetime.date) -> List[str]:
    """Unique ids of questions answered wrongly on a local calendar day."""
    start = datetime.datetime.combine(day, datetime.time.min)
    end = start + datetime.timedelta(days=1)
    answers = db.query(UserAnswer, "answered_at", lambda c: (c >= start) & (c < end))
    seen: List[str] = []
    for answer in answers:
        if not answer.is_correct and answer.question_id not in seen:
            seen.append(answer.question_id)
    return seen


def _candidates(
    strategy: StudyStrategy,
    grade: Optional[str],
    category: Optional[str],
    year: Optional[int],
    today: datetime.date,
) -> List[Question]:
    if strategy is StudyStrategy.RANDOM:
        return _corpus(grade)
    if strategy is StudyStrategy.CATEGORY:
        if not category:
            raise ValueError("category strategy needs a category")
        return _grade_filter(db.query(Question, "category", lambda c: c == category), grade)
    if strategy is StudyStrategy.YEAR:
        if year is None:
            raise ValueError("year strategy needs a year")
        return _grade_filter(db.query(Question, "year", lambda c: c == year), grade)
    if strategy is StudyStrategy.WEAKNESS:
        weak_ids = weak_question_ids()
        if not weak_ids:
            logger.debug("no_weak_questions_falling_back_to_random")
            return _corpus(grade)
        return _grade_filter(_questions_by_ids(weak_ids), grade)
    if strategy is StudyStrategy.BOOKMARKED:
        return _grade_filter(_questions_by_ids(bookmarked_question_ids()), grade)
    if strategy is StudyStrategy.INCORRECT_TODAY:
        return _grade_filter(_questions_by_ids(incorrect_question_ids_on(today)), grade)
    raise ValueError(f"Unknown strategy: {strategy}")


def select_questions(
    strategy: StudyStrategy | str,
    count: Optional[int] = None,
    *,
    grade: Optional[str] = None,
    category: Optional[str] = None,
    year: Optional[int] = None,
    exclude_ids: Sequence[str] = (),
    rng: Optional[random.Random] = None,
    today: Optional[datetime.date] = None,
) -> List[Question]:
    """Pick a shuffled batch of at most ``count`` distinct questions.

    Args:
        strategy: one of StudyStrategy (or its string value).
        count: batch size. Optional only for bookmarked and year, where
            None returns every match.
        grade: restrict to one exam grade.
        category / year: required by the category / year strategies.
        exclude_ids: question ids never to return.
        rng: random source, pass a seeded random.Random for repeatable order.
        today: local day used by the today's-incorrect strategy.
    """
    strategy = StudyStrategy(strategy)
    if count is None and strategy not in _UNBOUNDED:
        raise ValueError(f"{strategy.value} strategy needs a question count")
    if count is not None and count < 0:
        raise ValueError("count must not be negative")

    excluded = set(exclude_ids)
    seen = set()
    candidates: List[Question] = []
    for question in _candidates(strategy, grade, category, year, today or datetime.date.today()):
        if question.id in excluded or question.id in seen:
            continue
        seen.add(question.id)
        candidates.append(question)

    picked = shuffle(candidates, rng)
    if count is not None:
        picked = picked[:count]
    logger.debug("questions_selected", strategy=strategy.value, available=len(candidates), returned=len(picked))
    return picked
