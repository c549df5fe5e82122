# Domain Review Package
from .models import (
    Card,
    CardMemoryState,
    CardNotFoundError,
    CardState,
    InvalidCardStateError,
    Rating,
    ReviewResult,
    ReviewSession,
    ScheduledOutcome,
    SchedulingOptions,
    SessionProgress,
    SessionStats,
)
from .ports import CardRepository, ReviewLogRepository

__all__ = [
    "Card",
    "CardMemoryState",
    "CardNotFoundError",
    "CardRepository",
    "CardState",
    "InvalidCardStateError",
    "Rating",
    "ReviewLogRepository",
    "ReviewResult",
    "ReviewSession",
    "ScheduledOutcome",
    "SchedulingOptions",
    "SessionProgress",
    "SessionStats",
]
