from __future__ import annotations
from contextlib import contextmanager
from sqlalchemy import create_engine, inspect, Boolean, Date, DateTime, Integer, JSON, String, Text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session, Mapped, mapped_column
import datetime
import os
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Type, TypeVar

import structlog

from .errors import StorageUnavailable

logger = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    pass


DB_PATH: str = os.environ.get("FP_STUDY_DB", "fp_study.db")
engine = create_engine(f"sqlite:///{DB_PATH}")
# Keep attributes loaded after commit so records can be handed back to callers
SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)

ModelT = TypeVar("ModelT", bound=Base)


def _now() -> datetime.datetime:
    # Local wall-clock time: day boundaries follow the user's calendar
    return datetime.datetime.now()


class Question(Base):
    """Exam question imported from a corpus file. Never edited in place."""
    __tablename__ = "questions"
    id: Mapped[str] = mapped_column(String, primary_key=True)
    grade: Mapped[str] = mapped_column(String, nullable=False, index=True)  # "3" or "2"
    year: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    session: Mapped[str] = mapped_column(String, default="")  # exam sitting, e.g. "5月"
    category: Mapped[str] = mapped_column(String, nullable=False, index=True)
    subcategory: Mapped[str] = mapped_column(String, default="")
    question_type: Mapped[str] = mapped_column(String, default="multiple-choice")
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[List[str]] = mapped_column(JSON, default=list)
    correct_answer: Mapped[int] = mapped_column(Integer, nullable=False)
    explanation: Mapped[str] = mapped_column(Text, default="")
    difficulty: Mapped[str] = mapped_column(String, default="medium", index=True)
    tags: Mapped[List[str]] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=_now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=_now)


class UserAnswer(Base):
    """One submitted answer. Append-only."""
    __tablename__ = "user_answers"
    id: Mapped[str] = mapped_column(String, primary_key=True)
    question_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    user_answer: Mapped[int] = mapped_column(Integer, nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False, index=True)
    time_spent: Mapped[Optional[int]] = mapped_column(Integer)  # seconds
    answered_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=_now, index=True)
    mode: Mapped[str] = mapped_column(String, default="random")


class UserProgress(Base):
    """Per-question mastery state, keyed by question id."""
    __tablename__ = "user_progress"
    question_id: Mapped[str] = mapped_column(String, primary_key=True)
    mastery_level: Mapped[int] = mapped_column(Integer, default=0, index=True)
    correct_count: Mapped[int] = mapped_column(Integer, default=0)
    total_attempts: Mapped[int] = mapped_column(Integer, default=0)
    last_answered_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime, index=True)
    is_bookmarked: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    user_notes: Mapped[Optional[str]] = mapped_column(Text)


class DailyStats(Base):
    __tablename__ = "daily_stats"
    date: Mapped[str] = mapped_column(String, primary_key=True)  # YYYY-MM-DD, local
    questions_solved: Mapped[int] = mapped_column(Integer, default=0)
    correct_answers: Mapped[int] = mapped_column(Integer, default=0)
    study_time_minutes: Mapped[int] = mapped_column(Integer, default=0)
    sessions_count: Mapped[int] = mapped_column(Integer, default=0)


class UserSettings(Base):
    __tablename__ = "user_settings"
    id: Mapped[str] = mapped_column(String, primary_key=True)
    target_grade: Mapped[str] = mapped_column(String, default="3")
    exam_date: Mapped[Optional[datetime.date]] = mapped_column(Date)
    daily_goal: Mapped[int] = mapped_column(Integer, default=20)
    reminder_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    reminder_time: Mapped[Optional[str]] = mapped_column(String)  # "HH:MM"
    theme: Mapped[str] = mapped_column(String, default="light")
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=_now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=_now)


def configure(url: str) -> None:
    """Rebind the module engine and session factory to another database URL."""
    global engine, SessionLocal
    engine = create_engine(url)
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)


def is_db_initialized() -> bool:
    """Check if the database is already initialized by checking if tables exist."""
    try:
        table_names = inspect(engine).get_table_names()
    except SQLAlchemyError as exc:
        raise StorageUnavailable(str(exc)) from exc
    return set(Base.metadata.tables).issubset(set(table_names))


def init_db() -> None:
    """Initialize the database by creating all tables."""
    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as exc:
        raise StorageUnavailable(str(exc)) from exc


def get_session() -> Session:
    return SessionLocal()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Yield a session that commits on success and rolls back on failure.

    Any SQLAlchemy error is re-raised as StorageUnavailable.
    """
    session: Session = get_session()
    try:
        yield session
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("storage_unavailable", error=str(exc))
        raise StorageUnavailable(str(exc)) from exc
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# ----------------------------------------------------------------------
# Store contract
# ----------------------------------------------------------------------

def put(record: ModelT) -> ModelT:
    """Insert or replace a record by primary key."""
    with session_scope() as session:
        merged = session.merge(record)
    return merged


def bulk_put(records: Iterable[Base]) -> int:
    """Insert or replace many records in a single transaction."""
    written = 0
    with session_scope() as session:
        for record in records:
            session.merge(record)
            written += 1
    return written


def get(model: Type[ModelT], key: Any) -> Optional[ModelT]:
    """Return the record with the given primary key, or None."""
    with session_scope() as session:
        return session.get(model, key)


def query(
    model: Type[ModelT],
    field: str,
    predicate: Optional[Callable[[Any], Any]] = None,
) -> List[ModelT]:
    """Return records whose ``field`` matches ``predicate``, ordered by ``field``.

    ``predicate`` receives the mapped column and returns a SQL expression,
    e.g. ``query(Question, "category", lambda c: c == "tax-planning")``.
    """
    column = getattr(model, field)
    with session_scope() as session:
        q = session.query(model)
        if predicate is not None:
            q = q.filter(predicate(column))
        return q.order_by(column.asc()).all()


def count(model: Type[Base]) -> int:
    with session_scope() as session:
        return session.query(model).count()


def clear(model: Type[Base]) -> int:
    """Delete every row of one table. Returns the number of rows removed."""
    with session_scope() as session:
        removed = session.query(model).delete()
    logger.info("table_cleared", table=model.__tablename__, rows=removed)
    return removed


def as_dict(record: Base) -> Dict[str, Any]:
    """Serialize a record to JSON-friendly primitives."""
    data: Dict[str, Any] = {}
    for column in record.__table__.columns:
        value = getattr(record, column.name)
        if isinstance(value, (datetime.datetime, datetime.date)):
            value = value.isoformat()
        data[column.name] = value
    return data
