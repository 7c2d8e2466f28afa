# Application Stats Package
from .metrics_calculator import (
    CardMetrics,
    DeckStats,
    DifficultCard,
    ErrorPattern,
    MetricsCalculator,
    TagStats,
)

__all__ = [
    "MetricsCalculator",
    "CardMetrics",
    "DeckStats",
    "DifficultCard",
    "ErrorPattern",
    "TagStats",
]
