from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from lingolearn.db.models import UserStats


logger = logging.getLogger(__name__)

NIGHT_OWL_HOUR = 22
EARLY_BIRD_HOUR = 6


@dataclass(frozen=True)
class Achievement:
    id: str
    title: str
    description: str
    icon_name: str


ACHIEVEMENTS: List[Achievement] = [
    Achievement("first_word", "First Steps", "Learn your first word", "star.fill"),
    Achievement("streak_7", "One Week Strong", "Study 7 days in a row", "flame.fill"),
    Achievement("streak_30", "Monthly Master", "Study 30 days in a row", "flame.circle.fill"),
    Achievement("words_100", "Century", "Master 100 words", "100.circle.fill"),
    Achievement("words_500", "Wordsmith", "Master 500 words", "star.circle.fill"),
    Achievement("perfect_session", "Flawless", "Answer every question in a session correctly", "checkmark.seal.fill"),
    Achievement("night_owl", "Night Owl", "Study after 10 PM", "moon.fill"),
    Achievement("early_bird", "Early Bird", "Study before 6 AM", "sunrise.fill"),
]

_BY_ID: Dict[str, Achievement] = {a.id: a for a in ACHIEVEMENTS}


def achievement_by_id(achievement_id: str) -> Optional[Achievement]:
    return _BY_ID.get(achievement_id)


def _unlock(stats: UserStats, ids: List[str]) -> List[Achievement]:
    unlocked = list(stats.unlocked_achievements or [])
    newly: List[Achievement] = []
    for achievement_id in ids:
        if achievement_id in unlocked:
            continue
        unlocked.append(achievement_id)
        newly.append(_BY_ID[achievement_id])
        logger.info("Achievement unlocked: %s", achievement_id)
    # Reassign so the JSON column is flagged dirty.
    stats.unlocked_achievements = unlocked
    return newly


def check_progress_achievements(stats: UserStats, *, mastered_count: int) -> List[Achievement]:
    """Unlock counter-based achievements (words learned, streaks, mastered words)."""
    earned: List[str] = []
    if (stats.total_words_learned or 0) >= 1:
        earned.append("first_word")
    if (stats.current_streak or 0) >= 7:
        earned.append("streak_7")
    if (stats.current_streak or 0) >= 30:
        earned.append("streak_30")
    if mastered_count >= 100:
        earned.append("words_100")
    if mastered_count >= 500:
        earned.append("words_500")
    return _unlock(stats, earned)


def check_session_achievements(
    stats: UserStats,
    *,
    is_perfect: bool,
    study_time: dt.datetime,
) -> List[Achievement]:
    """Unlock achievements tied to a single session (perfect score, time of day)."""
    earned: List[str] = []
    if is_perfect:
        earned.append("perfect_session")
    if study_time.hour >= NIGHT_OWL_HOUR:
        earned.append("night_owl")
    if study_time.hour < EARLY_BIRD_HOUR:
        earned.append("early_bird")
    return _unlock(stats, earned)
