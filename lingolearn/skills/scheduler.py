from __future__ import annotations

import datetime as dt
import logging
import math
from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable


logger = logging.getLogger(__name__)

MIN_QUALITY = 0
MAX_QUALITY = 5


@runtime_checkable
class SupportsSM2State(Protocol):
    """
    Minimal protocol for SM-2 state.

    This lets us read from ORM models (Word) or the plain
    `SchedulerState` dataclass, as long as they expose the expected fields.
    """

    ease_factor: float
    interval_days: int
    repetitions: int


@dataclass(frozen=True)
class SM2Config:
    """Config values for the SM-2 scheduler."""

    correct_threshold: int = 3
    first_interval: int = 1
    second_interval: int = 6
    min_ease_factor: float = 1.3
    default_ease_factor: float = 2.5
    # Binary "know it / don't know it" responses map onto these qualities.
    known_quality: int = 4
    unknown_quality: int = 0


@dataclass(frozen=True)
class SchedulerState:
    """Spaced-repetition state for a single vocabulary item."""

    ease_factor: float = 2.5
    interval_days: int = 0
    repetitions: int = 0
    next_review_at: Optional[dt.datetime] = None


def add_calendar_days(reference: dt.datetime, days: int) -> dt.datetime:
    """
    Return `reference` moved forward by `days` calendar days.

    Aware datetimes keep their tzinfo, so the wall-clock time is preserved
    across a daylight-saving change (the elapsed time may be 23 or 25 hours).
    Results past the supported range are pinned to `datetime.max`.
    """
    try:
        return reference + dt.timedelta(days=days)
    except OverflowError:
        logger.warning(
            "Due date %s + %s days is out of range; pinning to max datetime",
            reference.isoformat(),
            days,
        )
        return dt.datetime.max.replace(tzinfo=reference.tzinfo)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class SM2Scheduler:
    """
    Classic SM-2 spaced repetition scheduler.

    Each call is a complete, independent transform of one state into the
    next:

        - quality is an integer in [0, 5]
        - quality < correct_threshold is a lapse: repetitions reset and the
          schedule restarts at first_interval
        - ease factor (EF) is adjusted after every review, lapse or not
        - interval is in days and determines next_review_at

    The scheduler holds only its immutable config, so one instance can be
    shared freely between threads and tasks.
    """

    def __init__(self, config: Optional[SM2Config] = None) -> None:
        self.config = config or SM2Config()

    def initial_state(self) -> SchedulerState:
        return SchedulerState(ease_factor=self.config.default_ease_factor)

    def is_success(self, quality: int) -> bool:
        return quality >= self.config.correct_threshold

    def compute_next_review(
        self,
        state: SupportsSM2State,
        quality: int,
        *,
        reference_time: Optional[dt.datetime] = None,
    ) -> SchedulerState:
        """
        Compute the state that follows a review of the given quality.

        The input state is never modified. `reference_time` defaults to the
        current UTC time.
        """
        if isinstance(quality, bool) or not isinstance(quality, int):
            raise ValueError("quality must be an integer between 0 and 5")
        if quality < MIN_QUALITY or quality > MAX_QUALITY:
            raise ValueError("quality must be between 0 and 5")

        ef = state.ease_factor
        if ef is None:
            ef = self.config.default_ease_factor
        # Stored values can predate a raised floor; never grow with less than it.
        ef = max(self.config.min_ease_factor, ef)
        interval = int(state.interval_days or 0)
        reps = int(state.repetitions or 0)
        if interval < 0:
            raise ValueError("interval_days must be >= 0")
        if reps < 0:
            raise ValueError("repetitions must be >= 0")

        reference_time = reference_time or dt.datetime.now(dt.timezone.utc)

        if self.is_success(quality):
            if reps == 0:
                new_interval = self.config.first_interval
            elif reps == 1:
                new_interval = self.config.second_interval
            else:
                # Growth uses the ease factor from before this review.
                new_interval = _round_half_up(interval * ef)
            new_reps = reps + 1
        else:
            new_reps = 0
            new_interval = self.config.first_interval

        q_delta = MAX_QUALITY - quality
        new_ef = ef + (0.1 - q_delta * (0.08 + q_delta * 0.02))
        new_ef = max(self.config.min_ease_factor, new_ef)

        return SchedulerState(
            ease_factor=new_ef,
            interval_days=new_interval,
            repetitions=new_reps,
            next_review_at=add_calendar_days(reference_time, new_interval),
        )


_default_scheduler = SM2Scheduler()


def compute_next_review(
    state: SupportsSM2State,
    quality: int,
    reference_time: Optional[dt.datetime] = None,
    *,
    config: Optional[SM2Config] = None,
) -> SchedulerState:
    """Functional entry point; uses the default config unless one is given."""
    scheduler = SM2Scheduler(config) if config is not None else _default_scheduler
    return scheduler.compute_next_review(state, quality, reference_time=reference_time)
