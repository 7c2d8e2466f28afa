"""
Append-only review history with FIFO retention.

Only the newest ``max_entries`` logs are kept; the oldest are dropped first.
"""

from collections import deque
from collections.abc import Iterable

from .constants import DEFAULT_LOG_RETENTION
from .errors import InvalidArgumentError
from .models import ReviewLogEntry


class ReviewHistory:
    def __init__(
        self,
        entries: Iterable[ReviewLogEntry] = (),
        max_entries: int = DEFAULT_LOG_RETENTION,
    ):
        if max_entries < 1:
            raise InvalidArgumentError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: deque[ReviewLogEntry] = deque(entries, maxlen=max_entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> list[ReviewLogEntry]:
        """All retained entries, oldest first."""
        return list(self._entries)

    def append(self, entry: ReviewLogEntry) -> None:
        self._entries.append(entry)

    def for_card(self, card_id: str) -> list[ReviewLogEntry]:
        return [e for e in self._entries if e.card_id == card_id]

    def reviewed_since(self, timestamp: int) -> list[ReviewLogEntry]:
        return [e for e in self._entries if e.timestamp >= timestamp]

    def discard_card(self, card_id: str) -> int:
        """Drop every entry of ``card_id``. Returns how many were removed."""
        kept = [e for e in self._entries if e.card_id != card_id]
        removed = len(self._entries) - len(kept)
        self._entries = deque(kept, maxlen=self.max_entries)
        return removed
