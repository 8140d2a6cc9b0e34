"""create study tables

Revision ID: 3f9a1c2b7d40
Revises:
Create Date: 2025-10-04 10:12:31.402218

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9a1c2b7d40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "questions",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("grade", sa.String(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("session", sa.String(), nullable=True),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("subcategory", sa.String(), nullable=True),
        sa.Column("question_type", sa.String(), nullable=True),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column("options", sa.JSON(), nullable=True),
        sa.Column("correct_answer", sa.Integer(), nullable=False),
        sa.Column("explanation", sa.Text(), nullable=True),
        sa.Column("difficulty", sa.String(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    for column in ("grade", "year", "category", "difficulty"):
        op.create_index(f"ix_questions_{column}", "questions", [column])

    op.create_table(
        "user_answers",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("question_id", sa.String(), nullable=False),
        sa.Column("user_answer", sa.Integer(), nullable=False),
        sa.Column("is_correct", sa.Boolean(), nullable=False),
        sa.Column("time_spent", sa.Integer(), nullable=True),
        sa.Column("answered_at", sa.DateTime(), nullable=True),
        sa.Column("mode", sa.String(), nullable=True),
    )
    for column in ("question_id", "is_correct", "answered_at"):
        op.create_index(f"ix_user_answers_{column}", "user_answers", [column])

    op.create_table(
        "user_progress",
        sa.Column("question_id", sa.String(), primary_key=True),
        sa.Column("mastery_level", sa.Integer(), nullable=True),
        sa.Column("correct_count", sa.Integer(), nullable=True),
        sa.Column("total_attempts", sa.Integer(), nullable=True),
        sa.Column("last_answered_at", sa.DateTime(), nullable=True),
        sa.Column("is_bookmarked", sa.Boolean(), nullable=True),
        sa.Column("user_notes", sa.Text(), nullable=True),
    )
    for column in ("mastery_level", "last_answered_at", "is_bookmarked"):
        op.create_index(f"ix_user_progress_{column}", "user_progress", [column])

    op.create_table(
        "daily_stats",
        sa.Column("date", sa.String(), primary_key=True),
        sa.Column("questions_solved", sa.Integer(), nullable=True),
        sa.Column("correct_answers", sa.Integer(), nullable=True),
        sa.Column("study_time_minutes", sa.Integer(), nullable=True),
        sa.Column("sessions_count", sa.Integer(), nullable=True),
    )

    op.create_table(
        "user_settings",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("target_grade", sa.String(), nullable=True),
        sa.Column("exam_date", sa.Date(), nullable=True),
        sa.Column("daily_goal", sa.Integer(), nullable=True),
        sa.Column("reminder_enabled", sa.Boolean(), nullable=True),
        sa.Column("reminder_time", sa.String(), nullable=True),
        sa.Column("theme", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("user_settings")
    op.drop_table("daily_stats")
    op.drop_table("user_progress")
    op.drop_table("user_answers")
    op.drop_table("questions")
