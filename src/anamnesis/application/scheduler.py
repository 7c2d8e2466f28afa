"""
Review scheduler.

Maps (scheduling state, stats, grade, response time) to the next
scheduling state, updated stats and a review-log record. This is a pure
computation module: the only outside input is the injected clock, read
once per call.

The policy is a simplified ease-based scheme, not classical SM-2:

    again  -> 1 minute, ease -0.2, lapse
    hard   -> 10 minutes while learning, interval x1.2 days in review
    good   -> 1 day from new, 1 or 3 days on graduation, interval x ease
    easy   -> 4 days from new, 7 days from learning, interval x (ease + 0.3)
"""

import logging
import math
from dataclasses import dataclass, replace

from anamnesis.domain import constants as c
from anamnesis.domain.errors import InvalidArgumentError
from anamnesis.domain.models import (
    Answer,
    CardState,
    CardStats,
    Evaluation,
    Grade,
    Interval,
    ReviewLogEntry,
    SchedulingState,
)

from .clock import Clock, system_clock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduleResult:
    scheduling: SchedulingState
    stats: CardStats
    log: ReviewLogEntry


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class Scheduler:
    """
    Computes the next review for a card.

    Stateless apart from the clock; safe to share between callers.
    """

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or system_clock

    def now(self) -> int:
        return self._clock()

    def schedule(
        self,
        scheduling: SchedulingState,
        stats: CardStats,
        grade: Grade | str,
        time_spent: float,
        user_answer: Answer | None = None,
        *,
        card_id: str = "",
        grading: Evaluation | None = None,
    ) -> ScheduleResult:
        """
        Apply ``grade`` to a card snapshot.

        Args:
            scheduling: Current scheduling state (not modified).
            stats: Current statistics (not modified).
            grade: again / hard / good / easy.
            time_spent: Response time in seconds, finite and >= 0.
            user_answer: Raw typed answer to record in the log.
            card_id: Card identifier to record in the log.
            grading: Evaluator outcome to record in the log.

        Raises:
            InvalidArgumentError: Unknown grade, or time_spent negative or not finite.
        """
        grade = Grade.parse(grade)
        if not math.isfinite(time_spent) or time_spent < 0:
            raise InvalidArgumentError(
                f"time_spent must be a finite number >= 0, got {time_spent}"
            )

        now = self.now()
        new_stats = self._update_stats(stats, grade, time_spent, now)
        new_scheduling = self._transition(scheduling, grade, now)

        logger.debug(
            f"{card_id or '<card>'}: {scheduling.state.value} -[{grade.value}]-> "
            f"{new_scheduling.state.value}, interval {new_scheduling.interval.value} "
            f"{new_scheduling.interval.unit.value}"
        )

        log = ReviewLogEntry(
            card_id=card_id,
            timestamp=now,
            grade=grade,
            time_spent=time_spent,
            old_interval=scheduling.interval.value,
            new_interval=new_scheduling.interval.value,
            old_ease=scheduling.ease,
            new_ease=new_scheduling.ease,
            user_answer=user_answer,
            grading=grading,
        )
        return ScheduleResult(scheduling=new_scheduling, stats=new_stats, log=log)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def _update_stats(
        self, stats: CardStats, grade: Grade, time_spent: float, now: int
    ) -> CardStats:
        total = stats.total_reviews + 1
        average = (stats.average_time * (total - 1) + time_spent) / total
        difficulty = stats.difficulty
        correct = stats.correct_count

        if grade is Grade.AGAIN:
            difficulty += c.AGAIN_DIFFICULTY_STEP
        elif grade is Grade.HARD:
            difficulty += c.HARD_DIFFICULTY_STEP
            correct += c.HARD_CREDIT
        elif grade is Grade.GOOD:
            difficulty -= c.GOOD_DIFFICULTY_STEP
            correct += c.FULL_CREDIT
        elif grade is Grade.EASY:
            difficulty -= c.EASY_DIFFICULTY_STEP
            correct += c.FULL_CREDIT
        else:
            raise InvalidArgumentError(f"Unhandled grade: {grade!r}")

        return replace(
            stats,
            total_reviews=total,
            last_review=now,
            average_time=average,
            correct_count=correct,
            difficulty=_clamp(difficulty, 0.0, 1.0),
        )

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def _transition(self, s: SchedulingState, grade: Grade, now: int) -> SchedulingState:
        if grade is Grade.AGAIN:
            return self._again(s, now)
        if grade is Grade.HARD:
            return self._hard(s, now)
        if grade is Grade.GOOD:
            return self._good(s, now)
        if grade is Grade.EASY:
            return self._easy(s, now)
        raise InvalidArgumentError(f"Unhandled grade: {grade!r}")

    @staticmethod
    def _due(s: SchedulingState, interval: Interval, now: int, **changes) -> SchedulingState:
        return replace(
            s,
            interval=interval,
            due=now + interval.to_millis(),
            reps=s.reps + 1,
            **changes,
        )

    def _again(self, s: SchedulingState, now: int) -> SchedulingState:
        state = CardState.LEARNING if s.state is CardState.NEW else CardState.RELEARNING
        return self._due(
            s,
            Interval.minutes(c.AGAIN_INTERVAL_MINUTES),
            now,
            ease=max(c.MIN_EASE, s.ease - c.AGAIN_EASE_PENALTY),
            lapses=s.lapses + 1,
            state=state,
        )

    def _hard(self, s: SchedulingState, now: int) -> SchedulingState:
        if s.state in (CardState.NEW, CardState.LEARNING):
            return self._due(
                s,
                Interval.minutes(c.HARD_LEARNING_INTERVAL_MINUTES),
                now,
                state=CardState.LEARNING,
            )
        days = max(c.HARD_REVIEW_MIN_DAYS, s.interval.value * c.HARD_REVIEW_MULTIPLIER)
        return self._due(
            s,
            Interval.days(days),
            now,
            ease=max(c.MIN_EASE, s.ease - c.HARD_EASE_PENALTY),
            state=CardState.REVIEW,
        )

    def _good(self, s: SchedulingState, now: int) -> SchedulingState:
        if s.state is CardState.NEW:
            return self._due(
                s, Interval.days(c.GOOD_NEW_INTERVAL_DAYS), now, state=CardState.LEARNING
            )
        if s.state is CardState.LEARNING:
            days = c.GOOD_GRADUATE_SHORT_DAYS if s.interval.value < 1 else c.GOOD_GRADUATE_DAYS
            return self._due(s, Interval.days(days), now, state=CardState.REVIEW)
        return self._due(
            s,
            Interval.days(s.interval.value * s.ease),
            now,
            ease=s.ease + c.GOOD_EASE_BONUS,
            state=CardState.REVIEW,
        )

    def _easy(self, s: SchedulingState, now: int) -> SchedulingState:
        if s.state is CardState.NEW:
            return self._due(
                s, Interval.days(c.EASY_NEW_INTERVAL_DAYS), now, state=CardState.REVIEW
            )
        if s.state is CardState.LEARNING:
            return self._due(
                s, Interval.days(c.EASY_LEARNING_INTERVAL_DAYS), now, state=CardState.REVIEW
            )
        return self._due(
            s,
            Interval.days(s.interval.value * (s.ease + c.EASY_INTERVAL_BONUS)),
            now,
            ease=s.ease + c.EASY_EASE_BONUS,
            state=CardState.REVIEW,
        )


def schedule(
    scheduling: SchedulingState,
    stats: CardStats,
    grade: Grade | str,
    time_spent: float,
    user_answer: Answer | None = None,
    *,
    card_id: str = "",
    grading: Evaluation | None = None,
    clock: Clock | None = None,
) -> ScheduleResult:
    """Functional entry point; see Scheduler.schedule."""
    return Scheduler(clock).schedule(
        scheduling,
        stats,
        grade,
        time_spent,
        user_answer,
        card_id=card_id,
        grading=grading,
    )
