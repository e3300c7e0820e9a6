from __future__ import annotations

import datetime as dt
import enum
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from lingolearn.db.models import Word
from lingolearn.skills.mastery import MasteryConfig, MasteryLevel, classify_mastery
from lingolearn.skills.scheduler import SchedulerState, SM2Config, SM2Scheduler


class StudyMode(str, enum.Enum):
    LEARNING = "learning"
    REVIEW = "review"
    MIXED = "mixed"


class WordSort(str, enum.Enum):
    ALPHABETICAL = "alphabetical"
    ALPHABETICAL_REVERSE = "alphabetical_reverse"
    RECENTLY_STUDIED = "recently_studied"
    DIFFICULTY = "difficulty"
    MASTERY = "mastery"


_MASTERY_ORDER = {level.value: index for index, level in enumerate(MasteryLevel)}


@dataclass
class StudySelectionConfig:
    """Configuration for how many words to surface per session."""

    cards_per_session: int = 20


_DISTANT_PAST = dt.datetime.min.replace(tzinfo=dt.timezone.utc)


def as_aware(value: dt.datetime) -> dt.datetime:
    # Some drivers hand back naive datetimes for timezone columns; treat them as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value


def is_due(word: Word, now: dt.datetime) -> bool:
    return word.next_review_at is not None and as_aware(word.next_review_at) <= as_aware(now)


def sort_words(words: Iterable[Word], sort: WordSort) -> List[Word]:
    """
    Order words for the word list.

    - alphabetical / alphabetical_reverse: case-insensitive English
    - recently_studied: most recent first, never-studied last
    - difficulty: hardest first
    - mastery: new, learning, reviewing, mastered
    """
    words = list(words)
    if sort == WordSort.ALPHABETICAL:
        return sorted(words, key=lambda w: w.english.lower())
    if sort == WordSort.ALPHABETICAL_REVERSE:
        return sorted(words, key=lambda w: w.english.lower(), reverse=True)
    if sort == WordSort.RECENTLY_STUDIED:
        return sorted(
            words,
            key=lambda w: as_aware(w.last_studied_at) if w.last_studied_at else _DISTANT_PAST,
            reverse=True,
        )
    if sort == WordSort.DIFFICULTY:
        return sorted(words, key=lambda w: w.difficulty or 0, reverse=True)
    return sorted(words, key=lambda w: _MASTERY_ORDER.get(w.mastery_level, 0))


class StudyService:
    """
    In-memory selection and bookkeeping for flashcard study.

    This service is intentionally DB-agnostic: it operates on collections
    of `Word` objects provided by the caller. Callers fetch words from an
    item store, use this service to choose and update them, and then
    persist any changes.
    """

    def __init__(
        self,
        config: Optional[StudySelectionConfig] = None,
        *,
        sm2_config: Optional[SM2Config] = None,
        mastery_config: Optional[MasteryConfig] = None,
    ) -> None:
        self.config = config or StudySelectionConfig()
        self.scheduler = SM2Scheduler(sm2_config)
        self.mastery_config = mastery_config or MasteryConfig()

    def quality_for(self, known: bool) -> int:
        """Map a binary know / don't-know response onto an SM-2 quality."""
        cfg = self.scheduler.config
        return cfg.known_quality if known else cfg.unknown_quality

    def select_words(
        self,
        words: Sequence[Word],
        *,
        mode: StudyMode = StudyMode.MIXED,
        limit: Optional[int] = None,
        now: Optional[dt.datetime] = None,
    ) -> List[Word]:
        """
        Select the next batch of words for a study session.

        Strategy per mode:
        - learning: words seen fewer than a few times or still new/learning,
          least recently studied first.
        - review: words whose next_review_at has passed, earliest due first.
        - mixed: due words first, then never-reviewed words.
        """
        if limit is None or limit <= 0:
            limit = self.config.cards_per_session

        now = now or dt.datetime.now(dt.timezone.utc)

        if mode == StudyMode.LEARNING:
            threshold = self.mastery_config.min_times_studied_for_learning
            candidates = [
                w
                for w in words
                if (w.times_studied or 0) < threshold
                or w.mastery_level in (MasteryLevel.NEW.value, MasteryLevel.LEARNING.value)
            ]
            candidates.sort(
                key=lambda w: as_aware(w.last_studied_at) if w.last_studied_at else _DISTANT_PAST
            )
            return candidates[:limit]

        due = sorted(
            (w for w in words if is_due(w, now)),
            key=lambda w: as_aware(w.next_review_at),
        )
        if mode == StudyMode.REVIEW or len(due) >= limit:
            return due[:limit]

        fresh: List[Word] = []
        for word in words:
            if word.next_review_at is None:
                fresh.append(word)
                if len(due) + len(fresh) >= limit:
                    break
        return due + fresh

    def record_review(
        self,
        word: Word,
        *,
        quality: int,
        now: Optional[dt.datetime] = None,
    ) -> SchedulerState:
        """
        Apply a review to `word` in place and return the scheduler result.

        Besides the SM-2 state this updates the study counters and the
        derived mastery level. Nothing is persisted.
        """
        if quality < 0 or quality > 5:
            raise ValueError("quality must be between 0 and 5")

        now = now or dt.datetime.now(dt.timezone.utc)

        result = self.scheduler.compute_next_review(word, quality, reference_time=now)

        word.ease_factor = result.ease_factor
        word.interval_days = result.interval_days
        word.repetitions = result.repetitions
        word.next_review_at = result.next_review_at

        word.times_studied = (word.times_studied or 0) + 1
        if self.scheduler.is_success(quality):
            word.times_correct = (word.times_correct or 0) + 1
        word.last_studied_at = now
        word.mastery_level = classify_mastery(
            word.times_studied,
            word.times_correct or 0,
            self.mastery_config,
        ).value

        return result

    def count_due(self, words: Iterable[Word], *, now: Optional[dt.datetime] = None) -> int:
        now = now or dt.datetime.now(dt.timezone.utc)
        return sum(1 for w in words if is_due(w, now))

    def count_mastered(self, words: Iterable[Word]) -> int:
        return sum(1 for w in words if w.mastery_level == MasteryLevel.MASTERED.value)

    def mastery_distribution(self, words: Iterable[Word]) -> Dict[str, int]:
        """Number of words at each mastery level; every level is present."""
        counts = {level.value: 0 for level in MasteryLevel}
        for word in words:
            level = word.mastery_level or MasteryLevel.NEW.value
            counts[level] = counts.get(level, 0) + 1
        return counts

    def get_stats(
        self,
        words: Sequence[Word],
        *,
        now: Optional[dt.datetime] = None,
    ) -> List[dict]:
        """
        Compute per-category study statistics.

        Returns a list of dicts with keys:
            category, total, learned, mastered, due_today, overdue, favorites
        """
        now = as_aware(now or dt.datetime.now(dt.timezone.utc))
        today = now.date()

        stats: Dict[str, dict] = {}
        for word in words:
            category = word.category or "unknown"
            entry = stats.setdefault(
                category,
                {
                    "category": category,
                    "total": 0,
                    "learned": 0,
                    "mastered": 0,
                    "due_today": 0,
                    "overdue": 0,
                    "favorites": 0,
                },
            )
            entry["total"] += 1
            if (word.repetitions or 0) > 0:
                entry["learned"] += 1
            if word.mastery_level == MasteryLevel.MASTERED.value:
                entry["mastered"] += 1
            if word.is_favorite:
                entry["favorites"] += 1

            if word.next_review_at is None:
                continue
            due_date = as_aware(word.next_review_at).astimezone(now.tzinfo).date()
            if due_date < today:
                entry["overdue"] += 1
            elif due_date == today:
                entry["due_today"] += 1

        return sorted(stats.values(), key=lambda e: e["category"])
