from __future__ import annotations

import datetime as dt
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from lingolearn.db.models import WordCategory
from lingolearn.skills.practice import QuizMode
from lingolearn.skills.study_service import StudyMode


class WordOut(BaseModel):
    """A vocabulary word with its current schedule."""

    id: str
    english: str
    chinese: str
    phonetic: str = ""
    part_of_speech: str = ""
    example_sentence: str = ""
    example_translation: str = ""
    category: str
    difficulty: int = 1
    ease_factor: float
    interval_days: int
    repetitions: int
    next_review_at: Optional[dt.datetime] = None
    is_favorite: bool = False
    mastery_level: str
    times_studied: int = 0
    times_correct: int = 0
    last_studied_at: Optional[dt.datetime] = None

    model_config = {"from_attributes": True}


class WordCreateRequest(BaseModel):
    english: str = Field(..., min_length=1, max_length=128)
    chinese: str = Field(..., min_length=1, max_length=255)
    phonetic: str = ""
    part_of_speech: str = ""
    example_sentence: str = ""
    example_translation: str = ""
    category: WordCategory = WordCategory.CET4
    difficulty: int = Field(default=1, ge=1, le=5)


class SessionProgress(BaseModel):
    current_index: int = Field(
        ...,
        ge=0,
        description="Zero-based index of the current word in this session",
    )
    total: int = Field(..., ge=0, description="Total words in the session queue")
    completed: bool


class StudySessionStartRequest(BaseModel):
    mode: StudyMode = Field(
        default=StudyMode.MIXED,
        description="learning (new words), review (due words) or mixed",
    )
    limit: Optional[int] = Field(
        default=None,
        ge=1,
        le=100,
        description="Maximum number of words in the session queue",
    )


class StudySessionStartResponse(BaseModel):
    session_id: str
    mode: StudyMode
    current_word: Optional[WordOut] = None
    progress: SessionProgress


class StudyReviewRequest(BaseModel):
    """Either an explicit quality or a binary known/unknown swipe."""

    word_id: str
    quality: Optional[int] = Field(
        default=None,
        ge=0,
        le=5,
        description="Recall quality from 0 (complete blackout) to 5 (perfect recall)",
    )
    known: Optional[bool] = Field(
        default=None,
        description="Swipe response; used when quality is omitted",
    )


class StudyReviewResponse(BaseModel):
    word_id: str
    success: bool
    interval_days: int
    ease_factor: float
    repetitions: int
    next_review_at: Optional[dt.datetime] = None
    mastery_level: str
    next_word: Optional[WordOut] = None
    progress: SessionProgress


class FavoriteRequest(BaseModel):
    word_id: str


class AchievementOut(BaseModel):
    id: str
    title: str
    description: str
    icon_name: str


class SessionStatsOut(BaseModel):
    total_reviewed: int
    known_count: int
    unknown_count: int
    accuracy: float = Field(..., description="Share of reviews answered correctly, 0-1")


class StudySessionFinishResponse(BaseModel):
    session_id: str
    stats: SessionStatsOut
    duration_seconds: float
    current_streak: int
    longest_streak: int
    new_achievements: List[AchievementOut] = Field(default_factory=list)


class CategoryStats(BaseModel):
    """Per-category statistics for study progress."""

    category: str
    total: int
    learned: int
    mastered: int
    due_today: int
    overdue: int
    favorites: int


class StudyStatsResponse(BaseModel):
    categories: List[CategoryStats] = Field(default_factory=list)
    mastery_distribution: Dict[str, int] = Field(
        default_factory=dict,
        description="Word counts per mastery level: new, learning, reviewing, mastered",
    )
    due_now: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    total_words_learned: int = 0
    daily_goal: int = 20
    today_goal_completion: float = Field(default=0.0, ge=0.0, le=1.0)


class ResetProgressResponse(BaseModel):
    ok: bool


class DailyProgressOut(BaseModel):
    day: dt.date
    words_learned: int
    words_reviewed: int
    total_study_seconds: float
    sessions_completed: int
    accuracy: float

    model_config = {"from_attributes": True}


class AchievementStatus(AchievementOut):
    unlocked: bool


class PracticeQuestionsRequest(BaseModel):
    mode: QuizMode = QuizMode.MULTIPLE_CHOICE
    count: int = Field(default=10, ge=1, le=100)
    category: Optional[WordCategory] = None


class PracticeQuestionOut(BaseModel):
    word_id: str
    mode: QuizMode
    prompt: str
    # Ignored when a quiz is submitted; grading uses the stored word.
    correct_answer: str = ""
    options: List[str] = Field(default_factory=list)


class PracticeQuestionsResponse(BaseModel):
    questions: List[PracticeQuestionOut] = Field(default_factory=list)
    time_limit_seconds: int


class PracticeResultsRequest(BaseModel):
    mode: QuizMode
    questions: List[PracticeQuestionOut]
    answers: List[Optional[str]] = Field(
        default_factory=list,
        description="Answers in question order; null for a timed-out question",
    )
    started_at: dt.datetime


class WrongAnswerOut(BaseModel):
    word_id: str
    user_answer: str
    correct_answer: str


class PracticeResultsResponse(BaseModel):
    total: int
    correct: int
    accuracy: float = Field(..., description="Percentage 0-100")
    wrong_answers: List[WrongAnswerOut] = Field(default_factory=list)
    new_achievements: List[AchievementOut] = Field(default_factory=list)
