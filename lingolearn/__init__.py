"""
LingoLearn: vocabulary flashcards scheduled with SM-2 spaced repetition.
"""

from lingolearn.skills.scheduler import (
    SchedulerState,
    SM2Config,
    SM2Scheduler,
    compute_next_review,
)

__all__ = [
    "SchedulerState",
    "SM2Config",
    "SM2Scheduler",
    "compute_next_review",
]

__version__ = "0.1.0"
