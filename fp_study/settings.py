"""Application constants and the single user-settings row."""
from __future__ import annotations

import datetime
from typing import Any, Dict, List, Optional

import structlog

from . import db
from .db import UserSettings

logger = structlog.get_logger(__name__)

APP_NAME = "FP過去問マスター"
DEFAULT_DAILY_GOAL = 20
DEFAULT_THEME = "light"
DEFAULT_GRADE = "3"
QUESTION_COUNT_OPTIONS = (10, 20, 30, 50)
SETTINGS_ID = "default"

GRADES = ("3", "2")
THEMES = ("light", "dark", "auto")

# The six exam categories, in syllabus order
CATEGORIES: List[Dict[str, str]] = [
    {"id": "life-planning", "name": "ライフプランニングと資金計画", "short_name": "ライフプランニング"},
    {"id": "risk-management", "name": "リスク管理", "short_name": "リスク管理"},
    {"id": "financial-assets", "name": "金融資産運用", "short_name": "金融資産運用"},
    {"id": "tax-planning", "name": "タックスプランニング", "short_name": "タックス"},
    {"id": "real-estate", "name": "不動産", "short_name": "不動産"},
    {"id": "inheritance", "name": "相続・事業承継", "short_name": "相続"},
]

_EDITABLE_FIELDS = {"target_grade", "exam_date", "daily_goal", "reminder_enabled", "reminder_time", "theme"}


def category_name(category_id: str) -> str:
    for cat in CATEGORIES:
        if cat["id"] == category_id:
            return cat["name"]
    return category_id


def default_settings() -> UserSettings:
    now = datetime.datetime.now()
    return UserSettings(
        id=SETTINGS_ID,
        target_grade=DEFAULT_GRADE,
        exam_date=None,
        daily_goal=DEFAULT_DAILY_GOAL,
        reminder_enabled=False,
        reminder_time=None,
        theme=DEFAULT_THEME,
        created_at=now,
        updated_at=now,
    )


def load_settings() -> UserSettings:
    """Return the stored settings, or unsaved defaults when none exist yet."""
    stored = db.get(UserSettings, SETTINGS_ID)
    return stored if stored is not None else default_settings()


def _validate(changes: Dict[str, Any]) -> None:
    unknown = set(changes) - _EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")
    if "target_grade" in changes and changes["target_grade"] not in GRADES:
        raise ValueError(f"target_grade must be one of {GRADES}")
    if "theme" in changes and changes["theme"] not in THEMES:
        raise ValueError(f"theme must be one of {THEMES}")
    if "daily_goal" in changes:
        goal = changes["daily_goal"]
        if not isinstance(goal, int) or isinstance(goal, bool) or goal < 1:
            raise ValueError("daily_goal must be a positive integer")
    if changes.get("reminder_time"):
        if not isinstance(changes["reminder_time"], str):
            raise ValueError("reminder_time must be HH:MM")
        try:
            datetime.datetime.strptime(changes["reminder_time"], "%H:%M")
        except ValueError as exc:
            raise ValueError("reminder_time must be HH:MM") from exc


def save_settings(**changes: Any) -> UserSettings:
    """Create or update the settings row with the given fields."""
    _validate(changes)
    if isinstance(changes.get("exam_date"), str):
        changes["exam_date"] = datetime.date.fromisoformat(changes["exam_date"])
    with db.session_scope() as session:
        settings = session.get(UserSettings, SETTINGS_ID)
        if settings is None:
            settings = default_settings()
            session.add(settings)
        for key, value in changes.items():
            setattr(settings, key, value)
        settings.updated_at = datetime.datetime.now()
    logger.info("settings_saved", fields=sorted(changes))
    return settings


def days_until_exam(today: Optional[datetime.date] = None) -> Optional[int]:
    """Days left before the configured exam date, negative once it has passed."""
    exam_date = load_settings().exam_date
    if exam_date is None:
        return None
    return (exam_date - (today or datetime.date.today())).days
