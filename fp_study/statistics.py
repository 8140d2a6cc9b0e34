"""Daily aggregates, accuracy and study streaks."""
from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import structlog
from sqlalchemy import func

from . import db
from .db import DailyStats, Question, UserAnswer
from .mastery import calculate_accuracy, format_date, parse_date
from .settings import CATEGORIES, load_settings

logger = structlog.get_logger(__name__)


@dataclass
class CategoryStats:
    category: str
    name: str
    total_questions: int
    answered_questions: int
    correct_answers: int
    accuracy: int


@dataclass
class OverallStats:
    total_questions_solved: int
    overall_accuracy: int
    total_study_time_minutes: int
    current_streak: int
    longest_streak: int


def get_today_stats(today: Optional[datetime.date] = None) -> Optional[DailyStats]:
    return db.get(DailyStats, format_date(today))


def record_session(questions_solved: int, correct_answers: int, study_time_minutes: int,
                   today: Optional[datetime.date] = None) -> DailyStats:
    """Add one finished session to today's row, creating the row on first use."""
    key = format_date(today)
    with db.session_scope() as session:
        stats = session.get(DailyStats, key)
        if stats is None:
            stats = DailyStats(date=key, questions_solved=0, correct_answers=0,
                               study_time_minutes=0, sessions_count=0)
            session.add(stats)
        stats.questions_solved += questions_solved
        stats.correct_answers += correct_answers
        stats.study_time_minutes += study_time_minutes
        stats.sessions_count += 1
    logger.info("session_recorded", date=key, questions_solved=questions_solved,
                correct_answers=correct_answers, minutes=study_time_minutes)
    return stats


def get_weekly_stats(start_date: datetime.date) -> List[DailyStats]:
    """Daily rows for the seven days starting at ``start_date``."""
    start = format_date(start_date)
    end = format_date(start_date + datetime.timedelta(days=7))
    return db.query(DailyStats, "date", lambda c: (c >= start) & (c < end))


def today_answer_summary(today: Optional[datetime.date] = None) -> Dict[str, int]:
    """Answers given today, how many were right, and progress toward the daily goal."""
    day = today or datetime.date.today()
    start = datetime.datetime.combine(day, datetime.time.min)
    end = start + datetime.timedelta(days=1)
    answers = db.query(UserAnswer, "answered_at", lambda c: (c >= start) & (c < end))
    correct = sum(1 for a in answers if a.is_correct)
    goal = load_settings().daily_goal
    return {
        "total": len(answers),
        "correct": correct,
        "accuracy": calculate_accuracy(correct, len(answers)),
        "daily_goal": goal,
        "goal_progress": calculate_accuracy(len(answers), goal),
    }


def category_stats() -> List[CategoryStats]:
    """Per-category corpus size, distinct answered questions and correct answers.

    Categories appear in syllabus order, followed by any other category found
    in the corpus.
    """
    with db.session_scope() as session:
        totals = dict(
            session.query(Question.category, func.count(Question.id))
            .group_by(Question.category)
            .all()
        )
        answered = dict(
            session.query(Question.category, func.count(func.distinct(UserAnswer.question_id)))
            .select_from(UserAnswer)
            .join(Question, Question.id == UserAnswer.question_id)
            .group_by(Question.category)
            .all()
        )
        correct = dict(
            session.query(Question.category, func.count(UserAnswer.id))
            .select_from(UserAnswer)
            .join(Question, Question.id == UserAnswer.question_id)
            .filter(UserAnswer.is_correct.is_(True))
            .group_by(Question.category)
            .all()
        )

    known = [(cat["id"], cat["name"]) for cat in CATEGORIES]
    known_ids = {cat_id for cat_id, _ in known}
    known += [(cat_id, cat_id) for cat_id in sorted(set(totals) - known_ids)]

    results: List[CategoryStats] = []
    for cat_id, name in known:
        n_answered = answered.get(cat_id, 0)
        n_correct = correct.get(cat_id, 0)
        results.append(CategoryStats(
            category=cat_id,
            name=name,
            total_questions=totals.get(cat_id, 0),
            answered_questions=n_answered,
            correct_answers=n_correct,
            accuracy=calculate_accuracy(n_correct, n_answered),
        ))
    return results


def calculate_streaks(rows: Sequence[DailyStats], today: datetime.date) -> Tuple[int, int]:
    """Return (current, longest) runs of consecutive studied days.

    Only days with at least one solved question count. The current streak is
    the run ending at the last studied day, and only while that day is today
    or yesterday.
    """
    studied = sorted(parse_date(r.date) for r in rows if r.questions_solved > 0)
    if not studied:
        return 0, 0

    longest = 0
    run = 0
    previous: Optional[datetime.date] = None
    for day in studied:
        if previous is not None and (day - previous).days == 1:
            run += 1
        else:
            run = 1
        longest = max(longest, run)
        previous = day

    current = run if (today - studied[-1]).days <= 1 else 0
    return current, longest


def overall_stats(today: Optional[datetime.date] = None) -> OverallStats:
    with db.session_scope() as session:
        total_answers = session.query(func.count(UserAnswer.id)).scalar() or 0
        correct_answers = (
            session.query(func.count(UserAnswer.id))
            .filter(UserAnswer.is_correct.is_(True))
            .scalar() or 0
        )
    daily_rows = db.query(DailyStats, "date")
    current, longest = calculate_streaks(daily_rows, today or datetime.date.today())
    return OverallStats(
        total_questions_solved=total_answers,
        overall_accuracy=calculate_accuracy(correct_answers, total_answers),
        total_study_time_minutes=sum(r.study_time_minutes for r in daily_rows),
        current_streak=current,
        longest_streak=longest,
    )
