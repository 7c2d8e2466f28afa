"""
Review Service: application layer orchestrator.

Coordinates loading cards, grading typed answers, scheduling the next review
and appending to the review history.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime

from ulid import ULID

from anamnesis.domain import constants as c
from anamnesis.domain.errors import CardNotFoundError
from anamnesis.domain.history import ReviewHistory
from anamnesis.domain.models import (
    Answer,
    CardState,
    CardStats,
    Evaluation,
    Flashcard,
    Grade,
    ReviewLogEntry,
    SchedulingState,
)
from anamnesis.domain.ports import CardRepository, ReviewLogRepository

from .evaluator import evaluate, suggest_grade
from .scheduler import Scheduler, ScheduleResult
from .stats import CardMetrics, DeckStats, MetricsCalculator, TagStats

logger = logging.getLogger(__name__)


def generate_card_id() -> str:
    return f"card_{ULID()}"


def generate_log_id() -> str:
    return f"log_{ULID()}"


def card_priority(card: Flashcard, now: int) -> float:
    """Relearning cards first, then new cards, then by days overdue."""
    days_overdue = max(0, now - card.scheduling.due) / c.MS_PER_DAY
    if card.scheduling.state is CardState.RELEARNING:
        return c.RELEARNING_PRIORITY + days_overdue
    if card.scheduling.state is CardState.NEW:
        return c.NEW_PRIORITY + days_overdue
    return days_overdue


def start_of_day(now: int) -> int:
    """Epoch ms of local midnight on the day containing ``now``."""
    moment = datetime.fromtimestamp(now / 1000)
    midnight = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    return int(midnight.timestamp() * 1000)


@dataclass
class SessionStats:
    total: int
    new: int
    due: int
    reviewed_today: int
    total_reviews: int
    streak: int = 0


class ReviewService:
    """
    Application service for reviewing cards.

    Depends on the CardRepository and ReviewLogRepository ports, not on a
    concrete store.
    """

    def __init__(
        self,
        cards: CardRepository,
        logs: ReviewLogRepository,
        scheduler: Scheduler | None = None,
        *,
        retention: int = c.DEFAULT_LOG_RETENTION,
        accept_alternatives: bool = False,
    ):
        """
        Args:
            cards: Card repository (port).
            logs: Review log repository (port).
            scheduler: Optional scheduler; uses the system clock if not provided.
            retention: Number of review logs to keep.
            accept_alternatives: Treat "/" and "|" in QA answers as separators
                between acceptable answers.
        """
        self._cards = cards
        self._logs = logs
        self._scheduler = scheduler or Scheduler()
        self._retention = retention
        self._accept_alternatives = accept_alternatives
        self._metrics = MetricsCalculator()

    async def _require(self, card_id: str) -> Flashcard:
        card = await self._cards.get_card(card_id)
        if card is None:
            raise CardNotFoundError(card_id)
        return card

    async def get_card(self, card_id: str) -> Flashcard:
        return await self._require(card_id)

    async def _history(self) -> ReviewHistory:
        return ReviewHistory(await self._logs.load_logs(), max_entries=self._retention)

    async def create_card(
        self,
        front: str,
        back: Answer,
        *,
        deck: str = c.DEFAULT_DECK,
        tags: tuple[str, ...] = (),
    ) -> Flashcard:
        now = self._scheduler.now()
        card = Flashcard(
            id=generate_card_id(),
            front=front,
            back=back,
            card_type="cloze" if isinstance(back, list) else "qa",
            deck=deck,
            tags=tuple(tags),
            scheduling=SchedulingState.initial(now),
            stats=CardStats(),
            created_at=now,
            updated_at=now,
        )
        await self._cards.save_card(card)
        logger.info(f"Created {card.card_type} card {card.id} in deck '{deck}'")
        return card

    async def grade_answer(self, card_id: str, user_answer: Answer) -> tuple[Evaluation, Grade]:
        """Evaluate a typed answer and suggest a grade for it."""
        card = await self._require(card_id)
        evaluation = evaluate(
            card.back, user_answer, split_alternatives=self._accept_alternatives
        )
        return evaluation, suggest_grade(evaluation.similarity)

    async def review(
        self,
        card_id: str,
        grade: Grade | str,
        time_spent: float,
        user_answer: Answer | None = None,
        grading: Evaluation | None = None,
    ) -> ScheduleResult:
        """
        Schedule a review and persist the card and the log entry.

        Raises:
            CardNotFoundError: Unknown card id.
            InvalidArgumentError: Bad grade or time; nothing is persisted.
        """
        card = await self._require(card_id)
        result = self._scheduler.schedule(
            card.scheduling,
            card.stats,
            grade,
            time_spent,
            user_answer,
            card_id=card.id,
            grading=grading,
        )

        updated = replace(
            card,
            scheduling=result.scheduling,
            stats=result.stats,
            updated_at=result.log.timestamp,
        )
        # Logs load before any write: a store error must leave the card as it was
        history = await self._history()
        log = replace(result.log, id=generate_log_id())
        history.append(log)

        await self._cards.save_card(updated)
        await self._logs.save_logs(history.entries)

        logger.info(
            f"Reviewed {card.id} as {log.grade.value}: "
            f"{result.scheduling.state.value}, due {result.scheduling.due}"
        )
        return replace(result, log=log)

    async def delete_card(self, card_id: str) -> None:
        """Delete a card together with its review logs."""
        await self._require(card_id)
        history = await self._history()
        if not await self._cards.delete_card(card_id):
            raise CardNotFoundError(card_id)
        removed = history.discard_card(card_id)
        await self._logs.save_logs(history.entries)
        logger.info(f"Deleted {card_id} and {removed} review logs")

    async def due_cards(self, now: int | None = None) -> list[Flashcard]:
        now = self._scheduler.now() if now is None else now
        cards = [card for card in await self._cards.list_cards() if card.scheduling.due <= now]
        return sorted(cards, key=lambda card: card_priority(card, now), reverse=True)

    async def new_cards(self) -> list[Flashcard]:
        return [
            card
            for card in await self._cards.list_cards()
            if card.scheduling.state is CardState.NEW
        ]

    async def history(self, card_id: str) -> list[ReviewLogEntry]:
        return (await self._history()).for_card(card_id)

    async def session_stats(self, now: int | None = None) -> SessionStats:
        now = self._scheduler.now() if now is None else now
        cards = await self._cards.list_cards()
        history = await self._history()
        return SessionStats(
            total=len(cards),
            new=sum(1 for card in cards if card.scheduling.state is CardState.NEW),
            due=sum(1 for card in cards if card.scheduling.due <= now),
            reviewed_today=len(history.reviewed_since(start_of_day(now))),
            total_reviews=len(history),
            streak=self._metrics.streak(history.entries, now),
        )

    async def card_metrics(self, card_id: str) -> CardMetrics:
        card = await self._require(card_id)
        return self._metrics.enrich(card, self._scheduler.now())

    async def deck_stats(self, now: int | None = None) -> list[DeckStats]:
        now = self._scheduler.now() if now is None else now
        return self._metrics.deck_stats(await self._cards.list_cards(), now)

    async def tag_stats(self) -> list[TagStats]:
        return self._metrics.tag_stats(await self._cards.list_cards())
