# Domain Package
from .errors import AnamnesisError, CardNotFoundError, InvalidArgumentError, StoreError
from .history import ReviewHistory
from .models import (
    Answer,
    CardState,
    CardStats,
    Correctness,
    Evaluation,
    Flashcard,
    Grade,
    Interval,
    IntervalUnit,
    ReviewLogEntry,
    SchedulingState,
)
from .ports import CardRepository, ReviewLogRepository

__all__ = [
    "AnamnesisError",
    "Answer",
    "CardNotFoundError",
    "CardRepository",
    "CardState",
    "CardStats",
    "Correctness",
    "Evaluation",
    "Flashcard",
    "Grade",
    "Interval",
    "IntervalUnit",
    "InvalidArgumentError",
    "ReviewHistory",
    "ReviewLogEntry",
    "ReviewLogRepository",
    "SchedulingState",
    "StoreError",
]
