from __future__ import annotations

import datetime as dt
import enum
import uuid
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from lingolearn.skills.mastery import MasteryLevel


class WordCategory(str, enum.Enum):
    CET4 = "CET-4"
    CET6 = "CET-6"


class SessionType(str, enum.Enum):
    LEARNING = "learning"
    REVIEW = "review"
    MIXED = "mixed"
    MULTIPLE_CHOICE = "multiple_choice"
    FILL_IN_BLANK = "fill_in_blank"
    LISTENING = "listening"


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class Word(Base):
    __tablename__ = "words"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    english: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    chinese: Mapped[str] = mapped_column(String(255), nullable=False)
    phonetic: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    part_of_speech: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    example_sentence: Mapped[str] = mapped_column(Text, nullable=False, default="")
    example_translation: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # CET-4 or CET-6
    category: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    difficulty: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # SM-2 scheduler state
    ease_factor: Mapped[float] = mapped_column(Float, default=2.5, nullable=False)
    interval_days: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    repetitions: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    next_review_at: Mapped[Optional[dt.datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
    )

    is_favorite: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    mastery_level: Mapped[str] = mapped_column(
        String(16),
        default=MasteryLevel.NEW.value,
        nullable=False,
    )
    times_studied: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    times_correct: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_studied_at: Mapped[Optional[dt.datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )


class StudySession(Base):
    __tablename__ = "study_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    started_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
        index=True,
    )
    session_type: Mapped[str] = mapped_column(String(32), nullable=False)
    words_studied: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    words_correct: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    words_incorrect: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    duration_seconds: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class DailyProgress(Base):
    __tablename__ = "daily_progress"

    # One row per calendar day.
    day: Mapped[dt.date] = mapped_column(Date, primary_key=True)
    words_learned: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    words_reviewed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_study_seconds: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    sessions_completed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # Percentage 0-100
    accuracy: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)


class UserStats(Base):
    __tablename__ = "user_stats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    current_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_study_at: Mapped[Optional[dt.datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    total_words_learned: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_study_seconds: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    unlocked_achievements: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)


def new_word(
    *,
    english: str,
    chinese: str,
    category: str = WordCategory.CET4.value,
    phonetic: str = "",
    part_of_speech: str = "",
    example_sentence: str = "",
    example_translation: str = "",
    difficulty: int = 1,
    ease_factor: float = 2.5,
    word_id: Optional[str] = None,
    created_at: Optional[dt.datetime] = None,
) -> Word:
    """
    Build a transient `Word` with every scheduler and counter field set.

    Column defaults only apply on INSERT, so words handled purely in memory
    need their initial state filled in here.
    """
    return Word(
        id=word_id or str(uuid.uuid4()),
        english=english,
        chinese=chinese,
        phonetic=phonetic,
        part_of_speech=part_of_speech,
        example_sentence=example_sentence,
        example_translation=example_translation,
        category=WordCategory(category).value,
        difficulty=difficulty,
        ease_factor=ease_factor,
        interval_days=0,
        repetitions=0,
        next_review_at=None,
        is_favorite=False,
        mastery_level=MasteryLevel.NEW.value,
        times_studied=0,
        times_correct=0,
        last_studied_at=None,
        created_at=created_at or _utcnow(),
    )


def new_daily_progress(day: dt.date) -> DailyProgress:
    return DailyProgress(
        day=day,
        words_learned=0,
        words_reviewed=0,
        total_study_seconds=0.0,
        sessions_completed=0,
        accuracy=0.0,
    )


def new_user_stats() -> UserStats:
    return UserStats(
        id=1,
        current_streak=0,
        longest_streak=0,
        last_study_at=None,
        total_words_learned=0,
        total_study_seconds=0.0,
        unlocked_achievements=[],
    )
