"""
Metrics calculator for deriving insights from card memory state.

This is a pure computation module with no I/O.
"""

import math
from dataclasses import dataclass
from datetime import datetime

from marginalia.application.scheduler import (
    check_memory_state,
    check_timestamp,
    forgetting_curve,
    utcnow,
)
from marginalia.application.utils import percent
from marginalia.domain.constants import SECONDS_PER_DAY
from marginalia.domain.review.models import (
    Card,
    CardMemoryState,
    CardState,
    Rating,
    ReviewResult,
    SessionStats,
)


def retrievability(state: CardMemoryState, now: datetime | None = None) -> float:
    """
    Probability of successful recall right now, in [0, 1].

    Uses the scheduler's forgetting curve with fractional days since the last
    review. New cards and cards with zero stability have nothing to forget
    and report 1.0.

    Raises:
        InvalidCardStateError: If the memory state is malformed.
    """
    check_memory_state(state)
    if state.state == CardState.NEW or state.stability == 0:
        return 1.0

    now = check_timestamp(now or utcnow())
    reference = state.last_review or now
    days_elapsed = max(0.0, (now - reference).total_seconds() / SECONDS_PER_DAY)
    return forgetting_curve(days_elapsed, state.stability)


@dataclass
class EnrichedCard:
    """
    Card memory state enriched with computed metrics.
    """

    card_id: str
    state: CardState
    stability: float
    difficulty: float
    reps: int
    lapses: int

    # Computed metrics
    current_retrievability: float
    lapse_rate: float | None  # lapses / reps
    days_overdue: int  # Negative if not yet due


class MetricsCalculator:
    """
    Computes derived metrics from cards and review results.

    Stateless and side-effect free.
    """

    def enrich(self, card: Card, now: datetime | None = None) -> EnrichedCard:
        """
        Enrich a card with computed metrics.
        """
        now = now or utcnow()
        memory = card.memory
        return EnrichedCard(
            card_id=card.id,
            state=memory.state,
            stability=memory.stability,
            difficulty=memory.difficulty,
            reps=memory.reps,
            lapses=memory.lapses,
            current_retrievability=retrievability(memory, now),
            lapse_rate=self._compute_lapse_rate(memory),
            days_overdue=self._compute_days_overdue(memory, now),
        )

    def session_stats(self, results: tuple[ReviewResult, ...] | list[ReviewResult]) -> SessionStats:
        """
        Aggregate review results: counts per rating, durations, and retention.

        Retention is the share of Good and Easy ratings, as a rounded percent.
        """
        rating_counts = {rating: 0 for rating in Rating}
        for result in results:
            rating_counts[result.rating] += 1

        total = len(results)
        total_duration = sum(r.duration_ms for r in results)

        return SessionStats(
            total_cards=total,
            total_duration_ms=total_duration,
            avg_duration_ms=total_duration / total if total else 0.0,
            rating_counts=rating_counts,
            retention=percent(rating_counts[Rating.GOOD] + rating_counts[Rating.EASY], total),
        )

    def _compute_lapse_rate(self, memory: CardMemoryState) -> float | None:
        """
        Compute lapse rate as lapses / total reviews.
        """
        if memory.reps == 0:
            return None
        return memory.lapses / memory.reps

    def _compute_days_overdue(self, memory: CardMemoryState, now: datetime) -> int:
        """
        Compute whole days overdue (negative if not yet due).
        """
        return math.floor((now - memory.due).total_seconds() / SECONDS_PER_DAY)
