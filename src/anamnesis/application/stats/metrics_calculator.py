"""
Metrics calculator for deriving insights from card stats and review logs.

This is a pure computation module with no I/O.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum

from anamnesis.domain import constants as c
from anamnesis.domain.models import CardState, Flashcard, Grade, ReviewLogEntry


class ErrorPattern(str, Enum):
    CALCULATION = "calculation"  # slow answers
    MEMORY = "memory"  # keeps lapsing at short intervals
    CONCEPT = "concept"  # repeated recent failures
    UNKNOWN = "unknown"


@dataclass
class CardMetrics:
    """
    Card stats enriched with computed metrics.
    """

    card_id: str
    deck: str
    state: CardState
    lapses: int
    reps: int
    interval: float
    ease: float
    difficulty: float
    average_time: float

    # Computed metrics
    lapse_rate: float | None  # lapses / reps
    correct_rate: float | None  # correct_count / total_reviews
    days_overdue: float  # Negative if not yet due


@dataclass
class DeckStats:
    deck: str
    total_cards: int
    due_cards: int
    new_cards: int
    correct_rate: float  # 0 when the deck has no reviews
    average_interval: float  # Days


@dataclass
class TagStats:
    tag: str
    count: int
    correct_rate: float


@dataclass
class DifficultCard:
    card: Flashcard
    error_count: int
    last_error: int  # Epoch ms of the latest "again", 0 if none
    average_time: float
    pattern: ErrorPattern


class MetricsCalculator:
    """
    Computes derived metrics from cards and their review logs.

    Stateless and side-effect free.
    """

    def enrich(self, card: Flashcard, now: int) -> CardMetrics:
        """
        Enrich a card's stats with computed metrics.
        """
        s = card.scheduling
        return CardMetrics(
            card_id=card.id,
            deck=card.deck,
            state=s.state,
            lapses=s.lapses,
            reps=s.reps,
            interval=s.interval.value,
            ease=s.ease,
            difficulty=card.stats.difficulty,
            average_time=card.stats.average_time,
            lapse_rate=self._compute_lapse_rate(card),
            correct_rate=self._compute_correct_rate(card),
            days_overdue=(now - s.due) / c.MS_PER_DAY,
        )

    def _compute_lapse_rate(self, card: Flashcard) -> float | None:
        if card.scheduling.reps == 0:
            return None
        return card.scheduling.lapses / card.scheduling.reps

    def _compute_correct_rate(self, card: Flashcard) -> float | None:
        """Hard reviews count half, so this is a score rather than a ratio of counts."""
        if card.stats.total_reviews == 0:
            return None
        return card.stats.correct_count / card.stats.total_reviews

    def difficult_cards(
        self,
        cards: list[Flashcard],
        logs: list[ReviewLogEntry],
        limit: int = c.DEFAULT_DIFFICULT_LIMIT,
    ) -> list[DifficultCard]:
        """
        Find cards the learner struggles with.

        A card qualifies if it was graded "again" at least once or its
        difficulty is at least 0.7. Ordered by error count, then difficulty,
        then most recent error.
        """
        by_card: dict[str, list[ReviewLogEntry]] = {}
        for log in logs:
            by_card.setdefault(log.card_id, []).append(log)

        difficult: list[DifficultCard] = []
        for card in cards:
            card_logs = by_card.get(card.id, [])
            errors = [log for log in card_logs if log.grade is Grade.AGAIN]

            if not errors and card.stats.difficulty < c.DIFFICULT_THRESHOLD:
                continue

            difficult.append(
                DifficultCard(
                    card=card,
                    error_count=len(errors),
                    last_error=errors[-1].timestamp if errors else 0,
                    average_time=card.stats.average_time,
                    pattern=self.detect_error_pattern(card, card_logs),
                )
            )

        difficult.sort(
            key=lambda d: (d.error_count, d.card.stats.difficulty, d.last_error),
            reverse=True,
        )
        return difficult[:limit]

    def detect_error_pattern(
        self, card: Flashcard, logs: list[ReviewLogEntry]
    ) -> ErrorPattern:
        if len(logs) < c.PATTERN_MIN_LOGS:
            return ErrorPattern.UNKNOWN

        if card.stats.average_time > c.SLOW_ANSWER_SECONDS:
            return ErrorPattern.CALCULATION

        if (
            card.scheduling.interval.value < c.MEMORY_PATTERN_MAX_INTERVAL
            and card.scheduling.lapses > c.MEMORY_PATTERN_MIN_LAPSES
        ):
            return ErrorPattern.MEMORY

        recent = logs[-c.CONCEPT_PATTERN_WINDOW :]
        failures = sum(1 for log in recent if log.grade is Grade.AGAIN)
        if failures >= c.CONCEPT_PATTERN_MIN_FAILURES:
            return ErrorPattern.CONCEPT

        return ErrorPattern.UNKNOWN

    # ------------------------------------------------------------------
    # Collection overviews
    # ------------------------------------------------------------------

    def deck_stats(self, cards: list[Flashcard], now: int) -> list[DeckStats]:
        """Per-deck totals, largest deck first."""
        by_deck: dict[str, list[Flashcard]] = {}
        for card in cards:
            by_deck.setdefault(card.deck, []).append(card)

        stats = []
        for deck, deck_cards in by_deck.items():
            reviews = sum(card.stats.total_reviews for card in deck_cards)
            correct = sum(card.stats.correct_count for card in deck_cards)
            interval_days = sum(
                card.scheduling.interval.to_millis() / c.MS_PER_DAY for card in deck_cards
            )
            stats.append(
                DeckStats(
                    deck=deck,
                    total_cards=len(deck_cards),
                    due_cards=sum(1 for card in deck_cards if card.scheduling.due <= now),
                    new_cards=sum(
                        1 for card in deck_cards if card.scheduling.state is CardState.NEW
                    ),
                    correct_rate=correct / reviews if reviews else 0.0,
                    average_interval=interval_days / len(deck_cards),
                )
            )
        return sorted(stats, key=lambda s: s.total_cards, reverse=True)

    def tag_stats(self, cards: list[Flashcard]) -> list[TagStats]:
        """Card count and correct rate per tag, most used tag first."""
        totals: dict[str, list[float]] = {}
        for card in cards:
            for tag in card.tags:
                entry = totals.setdefault(tag, [0, 0.0, 0])
                entry[0] += 1
                entry[1] += card.stats.correct_count
                entry[2] += card.stats.total_reviews

        stats = [
            TagStats(tag=tag, count=int(count), correct_rate=correct / reviews if reviews else 0.0)
            for tag, (count, correct, reviews) in totals.items()
        ]
        return sorted(stats, key=lambda s: s.count, reverse=True)

    def streak(self, logs: list[ReviewLogEntry], now: int) -> int:
        """
        Consecutive local calendar days with at least one review, counting
        back from the day of ``now``. Zero if nothing was reviewed that day.
        """
        days = {_local_date(log.timestamp) for log in logs}
        day = _local_date(now)
        count = 0
        while day in days:
            count += 1
            day -= timedelta(days=1)
        return count


def _local_date(epoch_ms: int) -> date:
    return datetime.fromtimestamp(epoch_ms / 1000).date()
