"""Domain exceptions."""


class AnamnesisError(Exception):
    """Base class for all anamnesis errors."""


class InvalidArgumentError(AnamnesisError, ValueError):
    """Raised for malformed input: unknown grade, negative time, mismatched answer shapes."""


class CardNotFoundError(AnamnesisError, LookupError):
    """Raised when a card id does not resolve to a stored card."""

    def __init__(self, card_id: str):
        super().__init__(f"Card not found: {card_id}")
        self.card_id = card_id


class StoreError(AnamnesisError):
    """Raised when a persisted store cannot be read or parsed."""
