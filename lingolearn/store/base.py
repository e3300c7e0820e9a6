from __future__ import annotations

import datetime as dt
from typing import List, Optional, Protocol, runtime_checkable

from lingolearn.db.models import DailyProgress, StudySession, UserStats, Word


@runtime_checkable
class ItemStore(Protocol):
    """Key-value store of words keyed by word id."""

    async def get(self, word_id: str) -> Optional[Word]:
        ...

    async def list(self) -> List[Word]:
        ...

    async def upsert(self, word: Word) -> Word:
        ...


@runtime_checkable
class ProgressStore(Protocol):
    """Storage for study sessions, per-day progress and the user stats row."""

    async def get_user_stats(self) -> UserStats:
        ...

    async def save_user_stats(self, stats: UserStats) -> UserStats:
        ...

    async def get_daily_progress(self, day: dt.date) -> Optional[DailyProgress]:
        ...

    async def save_daily_progress(self, progress: DailyProgress) -> DailyProgress:
        ...

    async def list_daily_progress(self, start: dt.date, end: dt.date) -> List[DailyProgress]:
        ...

    async def clear_daily_progress(self) -> None:
        ...

    async def add_study_session(self, session: StudySession) -> StudySession:
        ...

    async def list_study_sessions(self) -> List[StudySession]:
        ...
