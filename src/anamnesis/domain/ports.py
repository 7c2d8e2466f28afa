"""
Ports (interfaces) for card and review-log persistence.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod

from .models import Flashcard, ReviewLogEntry


class CardRepository(ABC):
    """
    Port for loading and saving flashcards.

    Implementations:
        - JsonCardRepository: Stores all cards in a single JSON file.
    """

    @abstractmethod
    async def get_card(self, card_id: str) -> Flashcard | None:
        """Return the card with ``card_id``, or None if it does not exist."""
        pass

    @abstractmethod
    async def list_cards(self) -> list[Flashcard]:
        pass

    @abstractmethod
    async def save_card(self, card: Flashcard) -> None:
        """Insert or replace ``card``."""
        pass

    @abstractmethod
    async def delete_card(self, card_id: str) -> bool:
        """
        Remove a card.

        Returns:
            True if a card was removed.
        """
        pass


class ReviewLogRepository(ABC):
    """
    Port for the append-only review history.

    Retention is enforced by the caller (see ReviewHistory); the repository
    persists whatever list it is handed.
    """

    @abstractmethod
    async def load_logs(self) -> list[ReviewLogEntry]:
        """Return all stored entries, oldest first."""
        pass

    @abstractmethod
    async def save_logs(self, entries: list[ReviewLogEntry]) -> None:
        pass
