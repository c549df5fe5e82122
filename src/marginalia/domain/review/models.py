"""
Domain models for spaced-repetition review.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum


class CardState(str, Enum):
    """Discrete learning phase of a card."""

    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARNING = "relearning"


class Rating(str, Enum):
    """
    Recall quality reported by the user for one review.

    Ordered from total failure (again) to effortless recall (easy).
    """

    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"

    @property
    def grade(self) -> int:
        """Numeric FSRS grade (1=Again .. 4=Easy)."""
        return _GRADES[self]

    @classmethod
    def parse(cls, value: "Rating | str") -> "Rating":
        """
        Coerce a rating or its string value.

        Raises:
            ValueError: If the value is not one of again/hard/good/easy.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown rating: {value!r}") from None


_GRADES = {Rating.AGAIN: 1, Rating.HARD: 2, Rating.GOOD: 3, Rating.EASY: 4}


class InvalidCardStateError(ValueError):
    """Raised when a memory state violates the scheduler's preconditions."""


class CardNotFoundError(LookupError):
    """Raised when a card id is unknown to the card repository."""


@dataclass(frozen=True)
class CardMemoryState:
    """
    Scheduling state of one flashcard.

    Attributes:
        stability: Days until recall probability decays to ~90%. 0 for new cards.
        difficulty: Algorithm difficulty factor (1-10 once reviewed). 0 for new cards.
        elapsed_days: Days since the previous review, measured at the last update.
        scheduled_days: Interval scheduled at the previous review (0 for sub-day steps).
        reps: Completed reviews.
        lapses: Times a graduated card was rated Again.
        state: Learning phase.
        due: When the card next becomes eligible for review.
        last_review: When the card was last reviewed (None iff reps == 0).
    """

    stability: float
    difficulty: float
    elapsed_days: int
    scheduled_days: int
    reps: int
    lapses: int
    state: CardState
    due: datetime
    last_review: datetime | None = None


@dataclass(frozen=True)
class Card:
    """
    A flashcard as handed over by the host: an id, its memory state, and
    optional display content the core never interprets.
    """

    id: str
    memory: CardMemoryState
    question: str | None = None
    answer: str | None = None

    def with_memory(self, memory: CardMemoryState) -> "Card":
        return replace(self, memory=memory)


@dataclass(frozen=True)
class ScheduledOutcome:
    """Result of applying one rating: the new memory state and its due date."""

    updated_state: CardMemoryState
    due: datetime
    interval: str  # Display label, e.g. "10m", "3d"


@dataclass(frozen=True)
class SchedulingOptions:
    """Outcomes for all four ratings, used for interval previews."""

    again: ScheduledOutcome
    hard: ScheduledOutcome
    good: ScheduledOutcome
    easy: ScheduledOutcome

    def for_rating(self, rating: Rating | str) -> ScheduledOutcome:
        return getattr(self, Rating.parse(rating).value)


@dataclass(frozen=True)
class ReviewResult:
    """
    Audit record of a single review inside a session.

    The *_before snapshots capture what the scheduler saw.
    """

    card_id: str
    rating: Rating
    duration_ms: int
    stability_before: float
    difficulty_before: float
    state_before: CardState


@dataclass(frozen=True)
class ReviewSession:
    """
    Ephemeral state of an active review flow.

    Idle is represented by the absence of a session (None).
    """

    session_id: str
    cards: tuple[Card, ...]
    current_index: int
    started_at: datetime
    card_started_at: datetime
    is_complete: bool
    results: tuple[ReviewResult, ...] = ()
    skip_count: int = 0

    @property
    def remaining(self) -> int:
        return max(0, len(self.cards) - self.current_index)


@dataclass(frozen=True)
class SessionProgress:
    current: int
    total: int
    percent: float


@dataclass(frozen=True)
class SessionStats:
    """Aggregate statistics over the results recorded so far."""

    total_cards: int
    total_duration_ms: int
    avg_duration_ms: float
    rating_counts: dict[Rating, int] = field(default_factory=dict)
    retention: int = 0  # Percent of Good + Easy, rounded
