"""
JSON Store: infrastructure adapters for cards and review logs.

Implements CardRepository and ReviewLogRepository on top of two JSON files
(``flashcards.json`` and ``review-logs.json``) in a data directory. The
on-disk shapes use camelCase field names and keep ``interval`` as a bare
number; its unit is written alongside as ``intervalUnit``.
"""

import json
import logging
from pathlib import Path
from typing import Any

from anamnesis.domain.constants import CARDS_FILENAME, DEFAULT_DECK, LOGS_FILENAME
from anamnesis.domain.errors import StoreError
from anamnesis.domain.models import (
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
from anamnesis.domain.ports import CardRepository, ReviewLogRepository

logger = logging.getLogger(__name__)


# ---------- Cards ----------


def _infer_unit(state: CardState) -> IntervalUnit:
    # Legacy records carry no unit: review intervals are days, the rest minutes.
    # Known mislabel: "good" from new (1 day, state learning) reads back as
    # 1 minute. Only interval display and metrics see it; ``due`` is stored.
    return IntervalUnit.DAYS if state is CardState.REVIEW else IntervalUnit.MINUTES


def scheduling_to_dict(s: SchedulingState) -> dict[str, Any]:
    return {
        "interval": s.interval.value,
        "intervalUnit": s.interval.unit.value,
        "ease": s.ease,
        "due": s.due,
        "lapses": s.lapses,
        "reps": s.reps,
        "state": s.state.value,
    }


def scheduling_from_dict(data: dict[str, Any]) -> SchedulingState:
    state = CardState(data.get("state", CardState.NEW.value))
    unit_raw = data.get("intervalUnit")
    unit = IntervalUnit(unit_raw) if unit_raw else _infer_unit(state)
    return SchedulingState(
        interval=Interval(data.get("interval", 0), unit),
        ease=float(data["ease"]),
        due=int(data["due"]),
        lapses=int(data.get("lapses", 0)),
        reps=int(data.get("reps", 0)),
        state=state,
    )


def stats_to_dict(stats: CardStats) -> dict[str, Any]:
    data: dict[str, Any] = {
        "totalReviews": stats.total_reviews,
        "correctCount": stats.correct_count,
        "averageTime": stats.average_time,
        "difficulty": stats.difficulty,
    }
    if stats.last_review is not None:
        data["lastReview"] = stats.last_review
    return data


def stats_from_dict(data: dict[str, Any]) -> CardStats:
    last_review = data.get("lastReview")
    return CardStats(
        total_reviews=int(data.get("totalReviews", 0)),
        last_review=int(last_review) if last_review is not None else None,
        average_time=float(data.get("averageTime", 0.0)),
        correct_count=float(data.get("correctCount", 0.0)),
        difficulty=float(data.get("difficulty", 0.5)),
    )


def card_to_dict(card: Flashcard) -> dict[str, Any]:
    return {
        "id": card.id,
        "type": card.card_type,
        "front": card.front,
        "back": card.back,
        "deck": card.deck,
        "tags": list(card.tags),
        "scheduling": scheduling_to_dict(card.scheduling),
        "stats": stats_to_dict(card.stats),
        "metadata": {"createdAt": card.created_at, "updatedAt": card.updated_at},
    }


def card_from_dict(data: dict[str, Any]) -> Flashcard:
    metadata = data.get("metadata", {})
    back = data["back"]
    return Flashcard(
        id=data["id"],
        front=data["front"],
        back=list(back) if isinstance(back, list) else back,
        card_type=data.get("type", "qa"),
        deck=data.get("deck", DEFAULT_DECK),
        tags=tuple(data.get("tags", ())),
        scheduling=scheduling_from_dict(data["scheduling"]),
        stats=stats_from_dict(data.get("stats", {})),
        created_at=int(metadata.get("createdAt", 0)),
        updated_at=int(metadata.get("updatedAt", 0)),
    )


# ---------- Review logs ----------


def log_to_dict(entry: ReviewLogEntry) -> dict[str, Any]:
    response: dict[str, Any] = {"timeSpent": entry.time_spent, "ease": entry.grade.value}
    if entry.user_answer is not None:
        response["userAnswer"] = entry.user_answer
    data: dict[str, Any] = {
        "id": entry.id,
        "flashcardId": entry.card_id,
        "timestamp": entry.timestamp,
        "response": response,
        "schedulingChange": {
            "oldInterval": entry.old_interval,
            "newInterval": entry.new_interval,
            "oldEase": entry.old_ease,
            "newEase": entry.new_ease,
        },
    }
    if entry.grading is not None:
        data["grading"] = {
            "correctness": entry.grading.correctness.value,
            "similarity": entry.grading.similarity,
        }
    return data


def log_from_dict(data: dict[str, Any]) -> ReviewLogEntry:
    response = data["response"]
    change = data["schedulingChange"]
    grading = None
    if data.get("grading"):
        grading = Evaluation(
            Correctness(data["grading"]["correctness"]),
            float(data["grading"].get("similarity", 0.0)),
        )
    return ReviewLogEntry(
        id=data.get("id", ""),
        card_id=data["flashcardId"],
        timestamp=int(data["timestamp"]),
        grade=Grade.parse(response["ease"]),
        time_spent=float(response.get("timeSpent", 0.0)),
        user_answer=response.get("userAnswer"),
        grading=grading,
        old_interval=change["oldInterval"],
        new_interval=change["newInterval"],
        old_ease=change["oldEase"],
        new_ease=change["newEase"],
    )


# ---------- File helpers ----------


def _read_json_list(path: Path) -> list[dict[str, Any]]:
    if not path.exists():
        return []
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read {path}: {e}")
        raise StoreError(f"Could not read {path}: {e}") from e
    if not isinstance(payload, list):
        raise StoreError(f"Expected a JSON list in {path}")
    return payload


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    tmp.replace(path)


def _decode(records: list[dict[str, Any]], decoder, path: Path) -> list:
    try:
        return [decoder(record) for record in records]
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Malformed record in {path}: {e!r}")
        raise StoreError(f"Malformed record in {path}: {e!r}") from e


class JsonCardRepository(CardRepository):
    """Keeps every card in one JSON list, rewritten on each save."""

    def __init__(self, data_dir: Path):
        self.path = Path(data_dir) / CARDS_FILENAME

    def _load(self) -> dict[str, Flashcard]:
        cards = _decode(_read_json_list(self.path), card_from_dict, self.path)
        logger.debug(f"Loaded {len(cards)} cards from {self.path}")
        return {card.id: card for card in cards}

    def _dump(self, cards: dict[str, Flashcard]) -> None:
        _write_json(self.path, [card_to_dict(card) for card in cards.values()])
        logger.debug(f"Saved {len(cards)} cards to {self.path}")

    async def get_card(self, card_id: str) -> Flashcard | None:
        return self._load().get(card_id)

    async def list_cards(self) -> list[Flashcard]:
        return list(self._load().values())

    async def save_card(self, card: Flashcard) -> None:
        cards = self._load()
        cards[card.id] = card
        self._dump(cards)

    async def delete_card(self, card_id: str) -> bool:
        cards = self._load()
        if cards.pop(card_id, None) is None:
            return False
        self._dump(cards)
        return True


class JsonReviewLogRepository(ReviewLogRepository):
    def __init__(self, data_dir: Path):
        self.path = Path(data_dir) / LOGS_FILENAME

    async def load_logs(self) -> list[ReviewLogEntry]:
        return _decode(_read_json_list(self.path), log_from_dict, self.path)

    async def save_logs(self, entries: list[ReviewLogEntry]) -> None:
        _write_json(self.path, [log_to_dict(entry) for entry in entries])
        logger.debug(f"Saved {len(entries)} review logs to {self.path}")
