from __future__ import annotations

import datetime as dt
import logging
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from lingolearn.db.models import (
    DailyProgress,
    StudySession,
    UserStats,
    Word,
    new_user_stats,
)


logger = logging.getLogger(__name__)

USER_STATS_ID = 1


class SqlItemStore:
    """
    Word store backed by an `AsyncSession`.

    Every write commits immediately; callers own the session lifetime
    (one per request in the API).
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, word_id: str) -> Optional[Word]:
        return await self.db.get(Word, word_id)

    async def list(self) -> List[Word]:
        result = await self.db.execute(select(Word).order_by(Word.created_at, Word.id))
        return list(result.scalars().all())

    async def upsert(self, word: Word) -> Word:
        merged = await self.db.merge(word)
        await self.db.commit()
        logger.debug("Upserted word %s (%s)", merged.id, merged.english)
        return merged


class SqlProgressStore:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_user_stats(self) -> UserStats:
        stats = await self.db.get(UserStats, USER_STATS_ID)
        if stats is None:
            stats = new_user_stats()
            stats.id = USER_STATS_ID
        return stats

    async def save_user_stats(self, stats: UserStats) -> UserStats:
        merged = await self.db.merge(stats)
        await self.db.commit()
        return merged

    async def get_daily_progress(self, day: dt.date) -> Optional[DailyProgress]:
        return await self.db.get(DailyProgress, day)

    async def save_daily_progress(self, progress: DailyProgress) -> DailyProgress:
        merged = await self.db.merge(progress)
        await self.db.commit()
        return merged

    async def list_daily_progress(self, start: dt.date, end: dt.date) -> List[DailyProgress]:
        result = await self.db.execute(
            select(DailyProgress)
            .where(DailyProgress.day >= start, DailyProgress.day <= end)
            .order_by(DailyProgress.day)
        )
        return list(result.scalars().all())

    async def clear_daily_progress(self) -> None:
        await self.db.execute(delete(DailyProgress))
        await self.db.commit()

    async def add_study_session(self, session: StudySession) -> StudySession:
        self.db.add(session)
        await self.db.commit()
        logger.debug("Recorded %s session %s", session.session_type, session.id)
        return session

    async def list_study_sessions(self) -> List[StudySession]:
        result = await self.db.execute(select(StudySession).order_by(StudySession.started_at))
        return list(result.scalars().all())
