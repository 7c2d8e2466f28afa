"""
Domain models for flashcard scheduling and answer grading.

These are pure data structures with no I/O or external dependencies.
All of them are frozen: the scheduler returns new values instead of
mutating the caller's records.
"""

from dataclasses import dataclass, field
from enum import Enum

from .constants import INITIAL_DIFFICULTY, INITIAL_EASE, MS_PER_DAY, MS_PER_MINUTE
from .errors import InvalidArgumentError

Answer = str | list[str]


class Grade(str, Enum):
    """Self-reported recall quality for a single review."""

    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"

    @classmethod
    def parse(cls, value: "Grade | str") -> "Grade":
        """Accept a Grade or its string value (case-insensitive)."""
        if isinstance(value, Grade):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for grade in cls:
                if grade.value == key:
                    return grade
        raise InvalidArgumentError(f"Unsupported grade: {value!r}")


class CardState(str, Enum):
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARNING = "relearning"


class IntervalUnit(str, Enum):
    MINUTES = "minutes"
    DAYS = "days"

    @property
    def millis(self) -> int:
        return MS_PER_MINUTE if self is IntervalUnit.MINUTES else MS_PER_DAY


@dataclass(frozen=True)
class Interval:
    """
    A scheduling interval tagged with its unit.

    Early-learning and lapse branches count in minutes, review branches in
    days. ``value`` is kept exactly as the single-field representation
    stored it, so persisted numbers stay compatible.
    """

    value: float
    unit: IntervalUnit

    @classmethod
    def minutes(cls, value: float) -> "Interval":
        return cls(value, IntervalUnit.MINUTES)

    @classmethod
    def days(cls, value: float) -> "Interval":
        return cls(value, IntervalUnit.DAYS)

    def to_millis(self) -> int:
        return round(self.value * self.unit.millis)


@dataclass(frozen=True)
class SchedulingState:
    """
    Scheduling fields of a card.

    Attributes:
        interval: Current interval (see Interval for the unit convention).
        ease: Growth multiplier, never below 1.3.
        due: Epoch milliseconds when the card becomes eligible again.
        lapses: Number of "again" grades.
        reps: Number of completed reviews.
        state: Lifecycle state.
    """

    interval: Interval = field(default_factory=lambda: Interval.minutes(0))
    ease: float = INITIAL_EASE
    due: int = 0
    lapses: int = 0
    reps: int = 0
    state: CardState = CardState.NEW

    @classmethod
    def initial(cls, now: int) -> "SchedulingState":
        return cls(due=now)


@dataclass(frozen=True)
class CardStats:
    """
    Rolling review statistics of a card.

    Attributes:
        total_reviews: Number of reviews recorded.
        last_review: Epoch ms of the latest review.
        average_time: Mean response time in seconds.
        correct_count: Cumulative score (hard counts half).
        difficulty: Bounded to [0, 1].
    """

    total_reviews: int = 0
    last_review: int | None = None
    average_time: float = 0.0
    correct_count: float = 0.0
    difficulty: float = INITIAL_DIFFICULTY


class Correctness(str, Enum):
    CORRECT = "correct"
    PARTIAL = "partial"
    WRONG = "wrong"


@dataclass(frozen=True)
class Evaluation:
    """Outcome of comparing a user answer against the reference."""

    correctness: Correctness
    similarity: float


@dataclass(frozen=True)
class ReviewLogEntry:
    """
    A single, immutable review record.

    Attributes:
        card_id: The card that was reviewed.
        timestamp: Epoch ms of the review.
        grade: Grade given.
        time_spent: Response time in seconds.
        old_interval / new_interval: Interval values before and after.
        old_ease / new_ease: Ease before and after.
        user_answer: Raw typed answer, if any.
        grading: Evaluator outcome, if the answer was graded.
        id: Log identifier, assigned by whoever persists the entry.
    """

    card_id: str
    timestamp: int
    grade: Grade
    time_spent: float
    old_interval: float
    new_interval: float
    old_ease: float
    new_ease: float
    user_answer: Answer | None = None
    grading: Evaluation | None = None
    id: str = ""


@dataclass(frozen=True)
class Flashcard:
    """
    A question/answer or cloze card together with its scheduling data.

    For cloze cards ``back`` holds one reference answer per blank.
    """

    id: str
    front: str
    back: Answer
    card_type: str = "qa"
    deck: str = "Default"
    tags: tuple[str, ...] = ()
    scheduling: SchedulingState = field(default_factory=SchedulingState)
    stats: CardStats = field(default_factory=CardStats)
    created_at: int = 0
    updated_at: int = 0

    @property
    def is_cloze(self) -> bool:
        return self.card_type == "cloze"
