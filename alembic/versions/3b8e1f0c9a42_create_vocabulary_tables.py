"""create vocabulary, session and progress tables

Revision ID: 3b8e1f0c9a42
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3b8e1f0c9a42"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "words",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("english", sa.String(length=128), nullable=False),
        sa.Column("chinese", sa.String(length=255), nullable=False),
        sa.Column("phonetic", sa.String(length=128), nullable=False),
        sa.Column("part_of_speech", sa.String(length=32), nullable=False),
        sa.Column("example_sentence", sa.Text(), nullable=False),
        sa.Column("example_translation", sa.Text(), nullable=False),
        sa.Column("category", sa.String(length=16), nullable=False),
        sa.Column("difficulty", sa.Integer(), nullable=False),
        sa.Column("ease_factor", sa.Float(), server_default="2.5", nullable=False),
        sa.Column("interval_days", sa.Integer(), server_default="0", nullable=False),
        sa.Column("repetitions", sa.Integer(), server_default="0", nullable=False),
        sa.Column("next_review_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_favorite", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("mastery_level", sa.String(length=16), server_default="new", nullable=False),
        sa.Column("times_studied", sa.Integer(), server_default="0", nullable=False),
        sa.Column("times_correct", sa.Integer(), server_default="0", nullable=False),
        sa.Column("last_studied_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_words_english", "words", ["english"], unique=False)
    op.create_index("ix_words_category", "words", ["category"], unique=False)
    op.create_index("ix_words_next_review_at", "words", ["next_review_at"], unique=False)

    op.create_table(
        "study_sessions",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("session_type", sa.String(length=32), nullable=False),
        sa.Column("words_studied", sa.Integer(), nullable=False),
        sa.Column("words_correct", sa.Integer(), nullable=False),
        sa.Column("words_incorrect", sa.Integer(), nullable=False),
        sa.Column("duration_seconds", sa.Float(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_study_sessions_started_at", "study_sessions", ["started_at"], unique=False)

    op.create_table(
        "daily_progress",
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("words_learned", sa.Integer(), nullable=False),
        sa.Column("words_reviewed", sa.Integer(), nullable=False),
        sa.Column("total_study_seconds", sa.Float(), nullable=False),
        sa.Column("sessions_completed", sa.Integer(), nullable=False),
        sa.Column("accuracy", sa.Float(), nullable=False),
        sa.PrimaryKeyConstraint("day"),
    )

    op.create_table(
        "user_stats",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("current_streak", sa.Integer(), nullable=False),
        sa.Column("longest_streak", sa.Integer(), nullable=False),
        sa.Column("last_study_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_words_learned", sa.Integer(), nullable=False),
        sa.Column("total_study_seconds", sa.Float(), nullable=False),
        sa.Column("unlocked_achievements", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("user_stats")
    op.drop_table("daily_progress")
    op.drop_index("ix_study_sessions_started_at", table_name="study_sessions")
    op.drop_table("study_sessions")
    op.drop_index("ix_words_next_review_at", table_name="words")
    op.drop_index("ix_words_category", table_name="words")
    op.drop_index("ix_words_english", table_name="words")
    op.drop_table("words")
