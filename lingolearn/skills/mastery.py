from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


class MasteryLevel(str, enum.Enum):
    NEW = "new"
    LEARNING = "learning"
    REVIEWING = "reviewing"
    MASTERED = "mastered"


@dataclass(frozen=True)
class MasteryConfig:
    """Thresholds used to classify a word from its study counters."""

    # Words studied fewer times than this stay in the learning queue.
    min_times_studied_for_learning: int = 3
    times_studied_for_reviewing: int = 10
    times_studied_for_mastered: int = 20
    accuracy_for_reviewing: float = 0.75
    accuracy_for_mastered: float = 0.90


def accuracy(times_studied: int, times_correct: int) -> float:
    return times_correct / max(times_studied, 1)


def classify_mastery(
    times_studied: int,
    times_correct: int,
    config: Optional[MasteryConfig] = None,
) -> MasteryLevel:
    """
    Derive a mastery level from cumulative study count and accuracy.

    This is independent of the scheduler: a word can have a long SM-2
    interval and still be `learning` if it has only been seen a few times.
    """
    config = config or MasteryConfig()
    acc = accuracy(times_studied, times_correct)

    if times_studied >= config.times_studied_for_mastered and acc >= config.accuracy_for_mastered:
        return MasteryLevel.MASTERED
    if times_studied >= config.times_studied_for_reviewing and acc >= config.accuracy_for_reviewing:
        return MasteryLevel.REVIEWING
    if times_studied > 0:
        return MasteryLevel.LEARNING
    return MasteryLevel.NEW
