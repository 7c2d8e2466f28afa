from unittest.mock import AsyncMock

import pytest

from anamnesis.application.clock import fixed_clock
from anamnesis.application.review_service import (
    ReviewService,
    card_priority,
    start_of_day,
)
from anamnesis.application.scheduler import Scheduler
from anamnesis.domain.constants import MS_PER_DAY
from anamnesis.domain.errors import CardNotFoundError, InvalidArgumentError, StoreError
from anamnesis.domain.models import (
    CardState,
    Correctness,
    Flashcard,
    Grade,
    Interval,
    SchedulingState,
)
from anamnesis.infrastructure.json_store import JsonCardRepository, JsonReviewLogRepository


@pytest.fixture
def cards(data_dir):
    return JsonCardRepository(data_dir)


@pytest.fixture
def logs(data_dir):
    return JsonReviewLogRepository(data_dir)


@pytest.fixture
def service(cards, logs, scheduler):
    return ReviewService(cards, logs, scheduler)


def _card(card_id: str, state: CardState, due: int) -> Flashcard:
    return Flashcard(
        id=card_id,
        front=f"Q {card_id}",
        back="A",
        scheduling=SchedulingState(interval=Interval.days(1), due=due, state=state),
    )


# --- Creating cards ---


@pytest.mark.asyncio
async def test_create_card(service, cards, now):
    card = await service.create_card("Capital of France?", "Paris", deck="Geo", tags=("eu",))

    assert card.id.startswith("card_")
    assert card.card_type == "qa"
    assert card.deck == "Geo"
    assert card.tags == ("eu",)
    assert card.scheduling.state is CardState.NEW
    assert card.scheduling.due == now
    assert card.created_at == now
    assert await cards.get_card(card.id) == card


@pytest.mark.asyncio
async def test_create_cloze_card(service):
    card = await service.create_card("{{c1}} chases {{c2}}", ["cat", "mouse"])
    assert card.is_cloze
    assert card.back == ["cat", "mouse"]


# --- Reviewing ---


@pytest.mark.asyncio
async def test_review_persists_card_and_log(service, cards, logs, now):
    card = await service.create_card("Q", "A")

    result = await service.review(card.id, Grade.GOOD, 4.0, "a")

    stored = await cards.get_card(card.id)
    assert stored.scheduling == result.scheduling
    assert stored.scheduling.state is CardState.LEARNING
    assert stored.stats.total_reviews == 1
    assert stored.updated_at == now

    saved_logs = await logs.load_logs()
    assert len(saved_logs) == 1
    assert saved_logs[0].id == result.log.id
    assert saved_logs[0].id.startswith("log_")
    assert saved_logs[0].card_id == card.id
    assert saved_logs[0].user_answer == "a"


@pytest.mark.asyncio
async def test_review_unknown_card(service):
    with pytest.raises(CardNotFoundError):
        await service.review("card_missing", Grade.GOOD, 1.0)


@pytest.mark.asyncio
async def test_invalid_review_persists_nothing(service, cards, logs):
    card = await service.create_card("Q", "A")

    with pytest.raises(InvalidArgumentError):
        await service.review(card.id, "perfect", 1.0)
    with pytest.raises(InvalidArgumentError):
        await service.review(card.id, Grade.GOOD, -2.0)

    assert await cards.get_card(card.id) == card
    assert await logs.load_logs() == []


@pytest.mark.asyncio
async def test_corrupt_log_store_leaves_card_untouched(service, cards, data_dir):
    card = await service.create_card("Q", "A")
    (data_dir / "review-logs.json").write_text("{broken", encoding="utf-8")

    with pytest.raises(StoreError):
        await service.review(card.id, Grade.GOOD, 1.0)
    with pytest.raises(StoreError):
        await service.delete_card(card.id)

    assert await cards.get_card(card.id) == card


@pytest.mark.asyncio
async def test_log_retention(cards, logs, scheduler):
    service = ReviewService(cards, logs, scheduler, retention=3)
    card = await service.create_card("Q", "A")

    for _ in range(5):
        await service.review(card.id, Grade.AGAIN, 1.0)

    saved = await logs.load_logs()
    assert len(saved) == 3
    assert (await cards.get_card(card.id)).scheduling.lapses == 5


# --- Grading typed answers ---


@pytest.mark.asyncio
async def test_grade_answer(service):
    card = await service.create_card("Capital of France?", "Paris")
    evaluation, grade = await service.grade_answer(card.id, "paris")
    assert evaluation.correctness is Correctness.CORRECT
    assert grade is Grade.EASY


@pytest.mark.asyncio
async def test_grade_answer_with_alternatives(cards, logs, scheduler):
    service = ReviewService(cards, logs, scheduler, accept_alternatives=True)
    card = await service.create_card("Old name of Paris?", "Lutetia / Lutèce")
    evaluation, _ = await service.grade_answer(card.id, "lutetia")
    assert evaluation.similarity == 1.0


@pytest.mark.asyncio
async def test_grade_cloze_answer(service):
    card = await service.create_card("{{c1}} and {{c2}}", ["cat", "dog"])
    evaluation, grade = await service.grade_answer(card.id, ["cat", "dag"])
    assert evaluation.correctness is Correctness.PARTIAL
    assert grade is Grade.HARD


# --- Deleting ---


@pytest.mark.asyncio
async def test_delete_card_drops_its_logs(service, cards, logs):
    keep = await service.create_card("Q1", "A1")
    drop = await service.create_card("Q2", "A2")
    await service.review(keep.id, Grade.GOOD, 1.0)
    await service.review(drop.id, Grade.GOOD, 1.0)

    await service.delete_card(drop.id)

    assert await cards.get_card(drop.id) is None
    assert [log.card_id for log in await logs.load_logs()] == [keep.id]


@pytest.mark.asyncio
async def test_delete_unknown_card(service):
    with pytest.raises(CardNotFoundError):
        await service.delete_card("card_missing")


# --- Queue and stats ---


def test_card_priority(now, days_ago):
    relearning = _card("r", CardState.RELEARNING, days_ago(1))
    new = _card("n", CardState.NEW, days_ago(2))
    review = _card("v", CardState.REVIEW, days_ago(10))
    future = _card("f", CardState.REVIEW, now + MS_PER_DAY)

    assert card_priority(relearning, now) == pytest.approx(201)
    assert card_priority(new, now) == pytest.approx(102)
    assert card_priority(review, now) == pytest.approx(10)
    assert card_priority(future, now) == 0


@pytest.mark.asyncio
async def test_due_cards_sorted_by_priority(now, days_ago):
    repo = AsyncMock()
    repo.list_cards.return_value = [
        _card("review", CardState.REVIEW, days_ago(3)),
        _card("future", CardState.REVIEW, now + MS_PER_DAY),
        _card("new", CardState.NEW, now),
        _card("relearning", CardState.RELEARNING, days_ago(0.01)),
    ]
    service = ReviewService(repo, AsyncMock(), Scheduler(clock=fixed_clock(now)))

    due = await service.due_cards()

    assert [card.id for card in due] == ["relearning", "new", "review"]


@pytest.mark.asyncio
async def test_new_cards_and_history(service):
    a = await service.create_card("Q1", "A1")
    b = await service.create_card("Q2", "A2")
    await service.review(a.id, Grade.HARD, 2.0)

    assert [card.id for card in await service.new_cards()] == [b.id]
    history = await service.history(a.id)
    assert len(history) == 1
    assert history[0].grade is Grade.HARD
    assert await service.history(b.id) == []


@pytest.mark.asyncio
async def test_session_stats(service, now):
    a = await service.create_card("Q1", "A1")
    await service.create_card("Q2", "A2")
    await service.review(a.id, Grade.GOOD, 2.0)

    stats = await service.session_stats()

    assert stats.total == 2
    assert stats.new == 1
    assert stats.due == 1
    assert stats.reviewed_today == 1
    assert stats.total_reviews == 1

    tomorrow = await service.session_stats(now + 2 * MS_PER_DAY)
    assert tomorrow.due == 2
    assert tomorrow.reviewed_today == 0


def test_start_of_day(now):
    midnight = start_of_day(now)
    assert midnight <= now < midnight + MS_PER_DAY + 3_600_000
    assert start_of_day(midnight) == midnight


# --- Metrics ---


@pytest.mark.asyncio
async def test_card_metrics(service, now):
    card = await service.create_card("Q", "A")
    await service.review(card.id, Grade.AGAIN, 2.0)

    m = await service.card_metrics(card.id)

    assert m.card_id == card.id
    assert m.state is CardState.LEARNING
    assert m.lapse_rate == 1.0
    assert m.correct_rate == 0.0
    assert m.days_overdue < 0


@pytest.mark.asyncio
async def test_card_metrics_unknown_card(service):
    with pytest.raises(CardNotFoundError):
        await service.card_metrics("card_missing")


@pytest.mark.asyncio
async def test_deck_and_tag_stats(service):
    a = await service.create_card("Q1", "A1", deck="Geo", tags=("eu",))
    await service.create_card("Q2", "A2", deck="Geo", tags=("eu", "capitals"))
    await service.create_card("Q3", "A3", deck="Math")
    await service.review(a.id, Grade.HARD, 1.0)

    decks = await service.deck_stats()
    assert [d.deck for d in decks] == ["Geo", "Math"]
    assert decks[0].total_cards == 2
    assert decks[0].new_cards == 1
    assert decks[0].correct_rate == pytest.approx(0.5)

    tags = await service.tag_stats()
    assert [(t.tag, t.count) for t in tags] == [("eu", 2), ("capitals", 1)]


@pytest.mark.asyncio
async def test_session_stats_streak(service):
    card = await service.create_card("Q", "A")
    assert (await service.session_stats()).streak == 0

    await service.review(card.id, Grade.GOOD, 1.0)
    assert (await service.session_stats()).streak == 1
