from __future__ import annotations

import asyncio
import datetime as dt
import logging
from typing import Dict, Iterable, List, Optional

from lingolearn.db.models import (
    DailyProgress,
    StudySession,
    UserStats,
    Word,
    new_user_stats,
)


logger = logging.getLogger(__name__)


class InMemoryItemStore:
    """Dict-backed word store for tests and the `memory` storage backend."""

    def __init__(self, words: Optional[Iterable[Word]] = None) -> None:
        self._words: Dict[str, Word] = {}
        self._lock = asyncio.Lock()
        for word in words or []:
            self._words[word.id] = word

    async def get(self, word_id: str) -> Optional[Word]:
        return self._words.get(word_id)

    async def list(self) -> List[Word]:
        return list(self._words.values())

    async def upsert(self, word: Word) -> Word:
        async with self._lock:
            self._words[word.id] = word
        logger.debug("Upserted word %s (%s)", word.id, word.english)
        return word


class InMemoryProgressStore:
    def __init__(self) -> None:
        self._stats: UserStats = new_user_stats()
        self._daily: Dict[dt.date, DailyProgress] = {}
        self._sessions: List[StudySession] = []
        self._lock = asyncio.Lock()

    async def get_user_stats(self) -> UserStats:
        return self._stats

    async def save_user_stats(self, stats: UserStats) -> UserStats:
        async with self._lock:
            self._stats = stats
        return stats

    async def get_daily_progress(self, day: dt.date) -> Optional[DailyProgress]:
        return self._daily.get(day)

    async def save_daily_progress(self, progress: DailyProgress) -> DailyProgress:
        async with self._lock:
            self._daily[progress.day] = progress
        return progress

    async def list_daily_progress(self, start: dt.date, end: dt.date) -> List[DailyProgress]:
        return sorted(
            (p for day, p in self._daily.items() if start <= day <= end),
            key=lambda p: p.day,
        )

    async def clear_daily_progress(self) -> None:
        async with self._lock:
            self._daily.clear()

    async def add_study_session(self, session: StudySession) -> StudySession:
        async with self._lock:
            self._sessions.append(session)
        logger.debug("Recorded %s session %s", session.session_type, session.id)
        return session

    async def list_study_sessions(self) -> List[StudySession]:
        return list(self._sessions)
