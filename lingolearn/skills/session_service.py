from __future__ import annotations

import asyncio
import datetime as dt
import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from lingolearn.db.models import SessionType, StudySession, Word, new_daily_progress
from lingolearn.skills.achievements import (
    Achievement,
    check_progress_achievements,
    check_session_achievements,
)
from lingolearn.skills.practice import PracticeResult, QuizMode
from lingolearn.skills.progress import (
    apply_session_to_daily,
    local_day,
    reset_user_stats,
    update_streak,
)
from lingolearn.skills.scheduler import SchedulerState
from lingolearn.skills.study_service import StudyMode, StudyService, as_aware
from lingolearn.store.base import ItemStore, ProgressStore


logger = logging.getLogger(__name__)

DEFAULT_SESSION_MAX_AGE = dt.timedelta(hours=24)
DEFAULT_MAX_SESSIONS = 1000


class SessionError(ValueError):
    """Raised when a review does not fit the session's current position."""


def _align_tz(moment: dt.datetime, reference: dt.datetime) -> dt.datetime:
    """Make `moment` comparable with `reference`; naive values are taken as UTC."""
    if moment.tzinfo is None and reference.tzinfo is not None:
        return moment.replace(tzinfo=dt.timezone.utc)
    if moment.tzinfo is not None and reference.tzinfo is None:
        return moment.astimezone(dt.timezone.utc).replace(tzinfo=None)
    return moment


@dataclass
class SessionStats:
    total_reviewed: int = 0
    known_count: int = 0
    unknown_count: int = 0

    @property
    def accuracy(self) -> float:
        if self.total_reviewed == 0:
            return 0.0
        return self.known_count / self.total_reviewed


@dataclass
class StudySessionState:
    session_id: str
    mode: StudyMode
    word_ids: List[str]
    cursor: int = 0
    stats: SessionStats = field(default_factory=SessionStats)
    started_at: dt.datetime = field(default_factory=lambda: dt.datetime.now(dt.timezone.utc))
    finished: bool = False
    # Set on the first finish attempt so a retry records the same end time.
    ended_at: Optional[dt.datetime] = None
    # Progress writes that already went through; a retried finish skips them.
    recorded: Set[str] = field(default_factory=set, repr=False, compare=False)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @property
    def total(self) -> int:
        return len(self.word_ids)

    @property
    def completed(self) -> bool:
        return self.cursor >= self.total

    def current_word_id(self) -> Optional[str]:
        if self.completed:
            return None
        return self.word_ids[self.cursor]


@dataclass
class ReviewOutcome:
    word: Word
    result: SchedulerState
    success: bool
    next_word: Optional[Word]


@dataclass
class SessionSummary:
    session_id: str
    mode: StudyMode
    stats: SessionStats
    duration_seconds: float
    current_streak: int
    longest_streak: int
    new_achievements: List[Achievement] = field(default_factory=list)


class SessionRegistry:
    """
    Process-local registry of active study sessions.

    Every `add` drops sessions started more than `max_age` ago; past
    `max_sessions` the oldest other sessions are evicted.
    """

    def __init__(
        self,
        *,
        max_age: dt.timedelta = DEFAULT_SESSION_MAX_AGE,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
    ) -> None:
        self.max_age = max_age
        self.max_sessions = max(max_sessions, 1)
        self._sessions: Dict[str, StudySessionState] = {}

    def add(self, state: StudySessionState) -> None:
        self.sweep(state.started_at)
        self._sessions[state.session_id] = state
        while len(self._sessions) > self.max_sessions:
            oldest = min(
                (s for s in self._sessions.values() if s.session_id != state.session_id),
                key=lambda s: as_aware(s.started_at),
            )
            del self._sessions[oldest.session_id]
            logger.info("Evicted study session %s: registry full", oldest.session_id)

    def sweep(self, now: dt.datetime) -> int:
        """Drop sessions started before `now - max_age`; return how many."""
        cutoff = as_aware(now) - self.max_age
        expired = [
            session_id
            for session_id, s in self._sessions.items()
            if as_aware(s.started_at) < cutoff
        ]
        for session_id in expired:
            del self._sessions[session_id]
        if expired:
            logger.info("Evicted %d stale study sessions", len(expired))
        return len(expired)

    def get(self, session_id: str) -> Optional[StudySessionState]:
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Optional[StudySessionState]:
        return self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._sessions)

    def clear(self) -> None:
        self._sessions.clear()


class StudySessionService:
    """
    Runs flashcard sessions against an item store and a progress store.

    Selection and per-word bookkeeping are delegated to `StudyService`;
    this class owns the session cursor, statistics and the end-of-session
    progress/streak/achievement updates.
    """

    def __init__(
        self,
        *,
        items: ItemStore,
        progress: ProgressStore,
        study: Optional[StudyService] = None,
    ) -> None:
        self.items = items
        self.progress = progress
        self.study = study or StudyService()

    async def start_session(
        self,
        *,
        mode: StudyMode = StudyMode.MIXED,
        limit: Optional[int] = None,
        now: Optional[dt.datetime] = None,
    ) -> StudySessionState:
        now = now or dt.datetime.now(dt.timezone.utc)
        words = await self.items.list()
        selected = self.study.select_words(words, mode=mode, limit=limit, now=now)

        state = StudySessionState(
            session_id=str(uuid.uuid4()),
            mode=mode,
            word_ids=[w.id for w in selected],
            started_at=now,
        )
        logger.info(
            "Started %s session %s with %d words",
            mode.value,
            state.session_id,
            state.total,
        )
        return state

    async def current_word(self, state: StudySessionState) -> Optional[Word]:
        word_id = state.current_word_id()
        if word_id is None:
            return None
        return await self.items.get(word_id)

    async def submit_review(
        self,
        state: StudySessionState,
        *,
        word_id: str,
        quality: Optional[int] = None,
        known: Optional[bool] = None,
        now: Optional[dt.datetime] = None,
    ) -> ReviewOutcome:
        """
        Record a review of the session's current word and advance the cursor.

        Pass either an explicit SM-2 `quality` or a binary `known` response.
        """
        if quality is None:
            if known is None:
                raise SessionError("Either quality or known must be provided")
            quality = self.study.quality_for(known)

        async with state.lock:
            if state.finished or state.completed:
                raise SessionError("Session is already complete")
            current_id = state.current_word_id()
            if current_id != word_id:
                raise SessionError("word_id does not match current session word")

            word = await self.items.get(word_id)
            if word is None:
                raise SessionError(f"Word {word_id} no longer exists")

            now = now or dt.datetime.now(dt.timezone.utc)
            result = self.study.record_review(word, quality=quality, now=now)
            word = await self.items.upsert(word)

            success = self.study.scheduler.is_success(quality)
            state.stats.total_reviewed += 1
            if success:
                state.stats.known_count += 1
            else:
                state.stats.unknown_count += 1
            state.cursor += 1

        next_word = await self.current_word(state)
        return ReviewOutcome(word=word, result=result, success=success, next_word=next_word)

    async def toggle_favorite(self, state: StudySessionState, *, word_id: str) -> Word:
        """Flip the favourite flag on the current word without advancing."""
        if state.current_word_id() != word_id:
            raise SessionError("word_id does not match current session word")
        word = await self.items.get(word_id)
        if word is None:
            raise SessionError(f"Word {word_id} no longer exists")
        word.is_favorite = not word.is_favorite
        return await self.items.upsert(word)

    async def finish_session(
        self,
        state: StudySessionState,
        *,
        now: Optional[dt.datetime] = None,
    ) -> SessionSummary:
        """
        Close the session and fold its results into the progress store.

        Progress is counted once per session: a second call after success
        raises `SessionError`, while a call that failed part-way can be
        retried and only repeats the writes that did not go through.
        """
        async with state.lock:
            if state.finished:
                raise SessionError("Session is already finished")
            if state.ended_at is None:
                state.ended_at = now or dt.datetime.now(dt.timezone.utc)
            summary = await self._record_finish(state, state.ended_at)
            state.finished = True

        logger.info(
            "Finished %s session %s: %d reviewed, %d known",
            state.mode.value,
            state.session_id,
            state.stats.total_reviewed,
            state.stats.known_count,
        )
        return summary

    async def _record_finish(self, state: StudySessionState, now: dt.datetime) -> SessionSummary:
        stats = state.stats
        started_at = _align_tz(state.started_at, now)
        duration = max((now - started_at).total_seconds(), 0.0)

        if "session" not in state.recorded:
            await self.progress.add_study_session(
                StudySession(
                    id=state.session_id,
                    started_at=state.started_at,
                    session_type=SessionType(state.mode.value).value,
                    words_studied=stats.total_reviewed,
                    words_correct=stats.known_count,
                    words_incorrect=stats.unknown_count,
                    duration_seconds=duration,
                    completed=state.completed,
                )
            )
            state.recorded.add("session")

        if "daily" not in state.recorded:
            day = local_day(now)
            daily = await self.progress.get_daily_progress(day) or new_daily_progress(day)
            apply_session_to_daily(
                daily,
                learning=state.mode == StudyMode.LEARNING,
                words_reviewed=stats.total_reviewed,
                accuracy=stats.accuracy,
                duration_seconds=duration,
            )
            await self.progress.save_daily_progress(daily)
            state.recorded.add("daily")

        user_stats = await self.progress.get_user_stats()
        user_stats.total_words_learned = (user_stats.total_words_learned or 0) + stats.known_count
        user_stats.total_study_seconds = (user_stats.total_study_seconds or 0.0) + duration
        if stats.total_reviewed > 0:
            update_streak(user_stats, now)

        words = await self.items.list()
        unlocked = check_progress_achievements(
            user_stats,
            mastered_count=self.study.count_mastered(words),
        )
        if stats.total_reviewed > 0:
            unlocked += check_session_achievements(
                user_stats,
                is_perfect=stats.unknown_count == 0,
                study_time=now,
            )
        user_stats = await self.progress.save_user_stats(user_stats)
        state.recorded.add("stats")

        return SessionSummary(
            session_id=state.session_id,
            mode=state.mode,
            stats=stats,
            duration_seconds=duration,
            current_streak=user_stats.current_streak,
            longest_streak=user_stats.longest_streak,
            new_achievements=unlocked,
        )

    async def record_practice(
        self,
        *,
        mode: QuizMode,
        result: PracticeResult,
        started_at: dt.datetime,
        now: Optional[dt.datetime] = None,
    ) -> List[Achievement]:
        """
        Store a finished practice quiz and check session achievements.

        Practice results never touch the SM-2 schedule.
        """
        now = now or dt.datetime.now(dt.timezone.utc)
        started_at = _align_tz(started_at, now)
        duration = max((now - started_at).total_seconds(), 0.0)
        await self.progress.add_study_session(
            StudySession(
                id=str(uuid.uuid4()),
                started_at=started_at,
                session_type=SessionType(mode.value).value,
                words_studied=result.total,
                words_correct=result.correct,
                words_incorrect=result.incorrect,
                duration_seconds=duration,
                completed=True,
            )
        )

        user_stats = await self.progress.get_user_stats()
        user_stats.total_study_seconds = (user_stats.total_study_seconds or 0.0) + duration
        unlocked: List[Achievement] = []
        if result.total > 0:
            unlocked = check_session_achievements(
                user_stats,
                is_perfect=result.is_perfect,
                study_time=now,
            )
        await self.progress.save_user_stats(user_stats)
        return unlocked

    async def reset_progress(self) -> None:
        """
        Clear daily progress, streaks, study time and achievements.

        Words keep their SM-2 schedule and study counters; study session
        history is kept as well.
        """
        await self.progress.clear_daily_progress()
        user_stats = await self.progress.get_user_stats()
        reset_user_stats(user_stats)
        await self.progress.save_user_stats(user_stats)
        logger.info("Study progress reset")
