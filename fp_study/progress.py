"""Per-question mastery tracking.

Every answer recomputes the mastery level from the cumulative tally, so a run
of wrong answers can drop a question back down the ladder.
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Dict, List, Optional

import structlog
from sqlalchemy import func

from . import db
from .db import Question, UserProgress
from .mastery import MAX_MASTERY_LEVEL, next_mastery_level

logger = structlog.get_logger(__name__)


@dataclass
class MasteryDistribution:
    mastered: int
    familiar: int
    learning: int
    new: int

    @property
    def total(self) -> int:
        return self.mastered + self.familiar + self.learning + self.new


def _blank_progress(question_id: str) -> UserProgress:
    return UserProgress(
        question_id=question_id,
        mastery_level=0,
        correct_count=0,
        total_attempts=0,
        is_bookmarked=False,
    )


def get_progress(question_id: str) -> Optional[UserProgress]:
    return db.get(UserProgress, question_id)


def get_all_progress() -> List[UserProgress]:
    return db.query(UserProgress, "question_id")


def record_answer(question_id: str, is_correct: bool,
                  now: Optional[datetime.datetime] = None) -> UserProgress:
    """Apply one answer to the question's progress record, creating it on first use."""
    answered_at = now or datetime.datetime.now()
    with db.session_scope() as session:
        progress = session.get(UserProgress, question_id)
        if progress is None:
            progress = _blank_progress(question_id)
            session.add(progress)
        level, correct, attempts = next_mastery_level(
            progress.correct_count, progress.total_attempts, is_correct
        )
        progress.mastery_level = level
        progress.correct_count = correct
        progress.total_attempts = attempts
        progress.last_answered_at = answered_at
    logger.debug("answer_recorded", question_id=question_id, is_correct=is_correct,
                 mastery_level=level, attempts=attempts)
    return progress


def toggle_bookmark(question_id: str) -> bool:
    """Flip the bookmark flag and return its new value. Mastery is untouched."""
    with db.session_scope() as session:
        progress = session.get(UserProgress, question_id)
        if progress is None:
            progress = _blank_progress(question_id)
            session.add(progress)
        progress.is_bookmarked = not progress.is_bookmarked
        bookmarked = progress.is_bookmarked
    logger.debug("bookmark_toggled", question_id=question_id, bookmarked=bookmarked)
    return bookmarked


def set_notes(question_id: str, text: Optional[str]) -> UserProgress:
    """Store a free-text note for a question. Empty text clears the note."""
    with db.session_scope() as session:
        progress = session.get(UserProgress, question_id)
        if progress is None:
            progress = _blank_progress(question_id)
            session.add(progress)
        progress.user_notes = text or None
    return progress


def mastery_distribution() -> MasteryDistribution:
    """Bucket the corpus by mastery.

    mastered: level 4-5, familiar: level 3, learning: level 1-2. Everything
    else in the corpus is new, including questions that only have a
    bookmark or a note. Progress rows for ids outside the corpus are ignored.
    """
    with db.session_scope() as session:
        total_questions = session.query(func.count(Question.id)).scalar() or 0
        rows = (
            session.query(UserProgress.mastery_level, func.count(UserProgress.question_id))
            .join(Question, Question.id == UserProgress.question_id)
            .group_by(UserProgress.mastery_level)
            .all()
        )
    by_level: Dict[int, int] = {level: n for level, n in rows}
    mastered = sum(n for level, n in by_level.items() if level >= 4)
    familiar = by_level.get(3, 0)
    learning = by_level.get(1, 0) + by_level.get(2, 0)
    studied = mastered + familiar + learning
    new = total_questions - studied
    return MasteryDistribution(mastered=mastered, familiar=familiar, learning=learning, new=new)


def mastery_level_counts() -> Dict[int, int]:
    """Number of progress records at each level 0..5."""
    counts = {level: 0 for level in range(MAX_MASTERY_LEVEL + 1)}
    with db.session_scope() as session:
        rows = (
            session.query(UserProgress.mastery_level, func.count(UserProgress.question_id))
            .group_by(UserProgress.mastery_level)
            .all()
        )
    for level, n in rows:
        counts[level] = n
    return counts
