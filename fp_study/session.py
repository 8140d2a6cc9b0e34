"""Study session lifecycle: start -> answer -> finish -> discard.

The caller owns the StudySession object and passes it around explicitly;
nothing here keeps a session in module state.
"""
from __future__ import annotations

import datetime
import math
import uuid
from dataclasses import dataclass, field
from typing import List, Optional

import structlog

from . import db, progress, statistics
from .db import DailyStats, Question, UserAnswer
from .selection import StudyStrategy

logger = structlog.get_logger(__name__)


@dataclass
class StudySession:
    questions: List[Question]
    mode: StudyStrategy
    start_time: datetime.datetime = field(default_factory=datetime.datetime.now)
    current_index: int = 0
    answers: List[UserAnswer] = field(default_factory=list)
    finished: bool = False

    @classmethod
    def start(cls, mode: StudyStrategy | str, questions: List[Question],
              now: Optional[datetime.datetime] = None) -> "StudySession":
        session = cls(questions=list(questions), mode=StudyStrategy(mode),
                      start_time=now or datetime.datetime.now())
        logger.info("study_session_started", mode=session.mode.value, questions=len(session.questions))
        return session

    @property
    def current_question(self) -> Optional[Question]:
        if 0 <= self.current_index < len(self.questions):
            return self.questions[self.current_index]
        return None

    @property
    def is_last_question(self) -> bool:
        return self.current_index == len(self.questions) - 1

    @property
    def correct_count(self) -> int:
        return sum(1 for a in self.answers if a.is_correct)

    def answer(self, choice: int, time_spent: Optional[int] = None,
               now: Optional[datetime.datetime] = None) -> UserAnswer:
        """Record the user's choice for the current question.

        Persists the answer event and updates the question's mastery.
        """
        if self.finished:
            raise RuntimeError("Session already finished")
        question = self.current_question
        if question is None:
            raise RuntimeError("No question to answer")

        answered_at = now or datetime.datetime.now()
        answer = UserAnswer(
            id=str(uuid.uuid4()),
            question_id=question.id,
            user_answer=choice,
            is_correct=choice == question.correct_answer,
            time_spent=time_spent,
            answered_at=answered_at,
            mode=self.mode.answer_mode,
        )
        db.put(answer)
        progress.record_answer(question.id, answer.is_correct, now=answered_at)
        self.answers.append(answer)
        return answer

    def next_question(self) -> Optional[Question]:
        """Advance to the next question; stays on the last one."""
        if self.current_index < len(self.questions) - 1:
            self.current_index += 1
        return self.current_question

    def skip_question(self) -> Optional[Question]:
        return self.next_question()

    def finish(self, now: Optional[datetime.datetime] = None) -> DailyStats:
        """Roll the session into today's statistics. A session finishes once."""
        if self.finished:
            raise RuntimeError("Session already finished")
        end = now or datetime.datetime.now()
        elapsed = max((end - self.start_time).total_seconds(), 0)
        minutes = math.ceil(elapsed / 60)
        stats = statistics.record_session(len(self.answers), self.correct_count, minutes, today=end.date())
        self.finished = True
        logger.info("study_session_finished", mode=self.mode.value, answered=len(self.answers),
                    correct=self.correct_count, minutes=minutes)
        return stats
