from __future__ import annotations

import datetime as dt
from typing import Dict, Iterable, List

from lingolearn.db.models import DailyProgress, UserStats, new_daily_progress


def local_day(moment: dt.datetime) -> dt.date:
    """Calendar day of `moment` in its own timezone (naive values as-is)."""
    return moment.date()


def update_streak(stats: UserStats, now: dt.datetime) -> UserStats:
    """
    Advance the study streak for a session finished at `now`.

    Same day keeps the streak, the next calendar day extends it, and any
    longer gap restarts it at 1.
    """
    today = local_day(now)
    if stats.last_study_at is None:
        stats.current_streak = 1
        stats.longest_streak = max(stats.longest_streak or 0, 1)
    else:
        last = stats.last_study_at
        if now.tzinfo is not None and last.tzinfo is not None:
            last = last.astimezone(now.tzinfo)
        days = (today - local_day(last)).days
        if days == 1:
            stats.current_streak = (stats.current_streak or 0) + 1
        elif days > 1:
            stats.current_streak = 1
        elif not stats.current_streak:
            stats.current_streak = 1
        stats.longest_streak = max(stats.longest_streak or 0, stats.current_streak)

    stats.last_study_at = now
    return stats


def apply_session_to_daily(
    progress: DailyProgress,
    *,
    learning: bool,
    words_reviewed: int,
    accuracy: float,
    duration_seconds: float,
) -> DailyProgress:
    """
    Fold one finished session into a day's progress row.

    `accuracy` is a 0-1 ratio; the row stores the latest session's value as
    a percentage.
    """
    if learning:
        progress.words_learned = (progress.words_learned or 0) + words_reviewed
    else:
        progress.words_reviewed = (progress.words_reviewed or 0) + words_reviewed
    progress.sessions_completed = (progress.sessions_completed or 0) + 1
    progress.total_study_seconds = (progress.total_study_seconds or 0.0) + max(duration_seconds, 0.0)
    if words_reviewed > 0:
        progress.accuracy = accuracy * 100
    return progress


def progress_history(
    rows: Iterable[DailyProgress],
    *,
    days: int,
    end: dt.date,
) -> List[DailyProgress]:
    """Return exactly `days` rows ending at `end`, zero-filling missing days."""
    by_day: Dict[dt.date, DailyProgress] = {row.day: row for row in rows}
    history: List[DailyProgress] = []
    for offset in range(days - 1, -1, -1):
        day = end - dt.timedelta(days=offset)
        history.append(by_day.get(day) or new_daily_progress(day))
    return history


def goal_completion(progress: DailyProgress, daily_goal: int) -> float:
    """Fraction (0-1) of the daily goal covered by words learned and reviewed."""
    if daily_goal <= 0:
        return 1.0
    done = (progress.words_learned or 0) + (progress.words_reviewed or 0)
    return min(1.0, done / daily_goal)


def reset_user_stats(stats: UserStats) -> UserStats:
    stats.current_streak = 0
    stats.longest_streak = 0
    stats.last_study_at = None
    stats.total_words_learned = 0
    stats.total_study_seconds = 0.0
    stats.unlocked_achievements = []
    return stats
