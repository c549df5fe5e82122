"""
FSRS Scheduler: pure scheduling logic (no I/O).

Implements the FSRS-5 memory model:
- Forgetting curve: R(t) = (1 + FACTOR * t / S) ^ DECAY
- Stability grows on successful recall, shrinks on failure
- Difficulty moves inversely to rating quality, mean-reverting toward
  the initial "Easy" difficulty and clamped to [1, 10]

New and (re)learning cards move through short minute-scale steps before
graduating to day-scale review intervals. Day intervals above a short
threshold get deterministic fuzz so that cards reviewed together do not
all come due on the same day.
"""

import logging
import math
import random
from datetime import datetime, timedelta, timezone
from functools import lru_cache

from marginalia.application.config import SchedulerSettings, resolve_config
from marginalia.application.utils import clamp, round_half_up
from marginalia.domain.constants import (
    DECAY,
    DIFFICULTY_MAX,
    DIFFICULTY_MIN,
    FACTOR,
    FUZZ_MIN_INTERVAL,
    FUZZ_RANGES,
    SECONDS_PER_DAY,
    STABILITY_MIN,
)
from marginalia.domain.review.models import (
    CardMemoryState,
    CardState,
    InvalidCardStateError,
    Rating,
    ScheduledOutcome,
    SchedulingOptions,
)

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def forgetting_curve(elapsed_days: float, stability: float) -> float:
    """
    Probability of recall after elapsed_days for a memory of the given stability.

    R(t) = (1 + FACTOR * t / S) ^ DECAY, so R(S) == 0.9.
    """
    return (1.0 + FACTOR * elapsed_days / stability) ** DECAY


def create_new_card(now: datetime | None = None) -> CardMemoryState:
    """
    Default memory state for a card that has never been reviewed.
    """
    return CardMemoryState(
        stability=0.0,
        difficulty=0.0,
        elapsed_days=0,
        scheduled_days=0,
        reps=0,
        lapses=0,
        state=CardState.NEW,
        due=now or utcnow(),
        last_review=None,
    )


def format_interval(due: datetime, now: datetime | None = None) -> str:
    """
    Format the time until due for rating-button previews.

    Returns "Nm" below an hour (at least 1), "Nh" below a day, "Nd" below a
    week, "Nw" below four weeks, otherwise "Nmo" (30-day months).
    """
    diff_ms = (due - (now or utcnow())).total_seconds() * 1000
    minutes = round_half_up(diff_ms / (1000 * 60))
    hours = round_half_up(diff_ms / (1000 * 60 * 60))
    days = round_half_up(diff_ms / (1000 * 60 * 60 * 24))
    weeks = round_half_up(days / 7)
    months = round_half_up(days / 30)

    if minutes < 60:
        return f"{max(1, minutes)}m"
    if hours < 24:
        return f"{hours}h"
    if days < 7:
        return f"{days}d"
    if weeks < 4:
        return f"{weeks}w"
    return f"{months}mo"


def check_memory_state(state: CardMemoryState) -> None:
    """
    Validate scheduler preconditions.

    Raises:
        InvalidCardStateError: On negative or non-finite values, naive timestamps,
            a last_review that disagrees with reps, or a new card with memory.
    """
    for name in ("stability", "difficulty"):
        value = getattr(state, name)
        if not math.isfinite(value) or value < 0:
            raise InvalidCardStateError(f"{name} must be a finite value >= 0, got {value!r}")
    for name in ("elapsed_days", "scheduled_days", "reps", "lapses"):
        value = getattr(state, name)
        if value < 0:
            raise InvalidCardStateError(f"{name} must be >= 0, got {value!r}")
    if not isinstance(state.state, CardState):
        raise InvalidCardStateError(f"Unknown card state: {state.state!r}")
    if state.reps > 0 and state.last_review is None:
        raise InvalidCardStateError("Reviewed card is missing last_review")
    if state.reps == 0 and state.last_review is not None:
        raise InvalidCardStateError("Unreviewed card must not have last_review")
    if state.state == CardState.NEW and (state.stability or state.difficulty or state.reps):
        raise InvalidCardStateError("New card must have zero stability, difficulty and reps")
    for name in ("due", "last_review"):
        value = getattr(state, name)
        if value is not None and value.tzinfo is None:
            raise InvalidCardStateError(f"{name} must be timezone-aware")


def check_timestamp(moment: datetime, name: str = "now") -> datetime:
    """
    Reject naive datetimes before they reach a stored state.

    Raises:
        ValueError: If the datetime has no timezone.
    """
    if moment.tzinfo is None:
        raise ValueError(f"{name} must be timezone-aware, got {moment!r}")
    return moment


class FSRSScheduler:
    """
    Stateless FSRS scheduler bound to a set of tuning parameters.

    Safe to share between sessions: it holds no mutable state.
    """

    def __init__(self, settings: SchedulerSettings | None = None):
        self.settings = settings or SchedulerSettings()
        self.w = self.settings.weights
        self._interval_modifier = (
            self.settings.request_retention ** (1 / DECAY) - 1
        ) / FACTOR
        logger.debug(
            f"FSRSScheduler ready: retention={self.settings.request_retention} "
            f"max_interval={self.settings.maximum_interval} fuzz={self.settings.enable_fuzz}"
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def compute_all_outcomes(
        self, state: CardMemoryState, now: datetime | None = None
    ) -> SchedulingOptions:
        """
        Compute what every rating would do to the card.

        Args:
            state: Current memory state (not modified).
            now: Review time; defaults to the wall clock.

        Returns:
            SchedulingOptions with one ScheduledOutcome per rating.
        """
        check_memory_state(state)
        now = check_timestamp(now or utcnow())
        elapsed = self._elapsed_days(state, now)
        fuzz_factor = self._fuzz_factor(state, now)

        # No memory to update yet: initialise from the rating
        if state.state == CardState.NEW or state.stability == 0 or state.difficulty == 0:
            updated = self._schedule_new(state, now, elapsed, fuzz_factor)
        elif state.state in (CardState.LEARNING, CardState.RELEARNING):
            updated = self._schedule_learning(state, now, elapsed, fuzz_factor)
        else:
            updated = self._schedule_review(state, now, elapsed, fuzz_factor)

        return SchedulingOptions(
            **{
                rating.value: ScheduledOutcome(
                    updated_state=card,
                    due=card.due,
                    interval=format_interval(card.due, now),
                )
                for rating, card in updated.items()
            }
        )

    def apply_rating(
        self, state: CardMemoryState, rating: Rating | str, now: datetime | None = None
    ) -> ScheduledOutcome:
        """
        Commit a review: the outcome of compute_all_outcomes for one rating.
        """
        rating = Rating.parse(rating)
        return self.compute_all_outcomes(state, now).for_rating(rating)

    def next_interval(self, stability: float, elapsed_days: int, fuzz_factor: float | None = None) -> int:
        """
        Whole-day interval at which recall probability reaches the retention target.
        """
        interval = clamp(
            round_half_up(stability * self._interval_modifier),
            1,
            self.settings.maximum_interval,
        )
        return self._apply_fuzz(int(interval), elapsed_days, fuzz_factor)

    # ------------------------------------------------------------------
    # Memory model
    # ------------------------------------------------------------------

    def init_stability(self, rating: Rating) -> float:
        return max(self.w[rating.grade - 1], STABILITY_MIN)

    def init_difficulty(self, rating: Rating) -> float:
        raw = self.w[4] - math.exp(self.w[5] * (rating.grade - 1)) + 1
        return clamp(raw, DIFFICULTY_MIN, DIFFICULTY_MAX)

    def next_difficulty(self, difficulty: float, rating: Rating) -> float:
        delta = -self.w[6] * (rating.grade - 3)
        # Linear damping: changes shrink as difficulty approaches the ceiling
        damped = difficulty + delta * (DIFFICULTY_MAX - difficulty) / 9.0
        reverted = self.w[7] * self.init_difficulty(Rating.EASY) + (1 - self.w[7]) * damped
        return clamp(reverted, DIFFICULTY_MIN, DIFFICULTY_MAX)

    def short_term_stability(self, stability: float, rating: Rating) -> float:
        return max(stability * math.exp(self.w[17] * (rating.grade - 3 + self.w[18])), STABILITY_MIN)

    def recall_stability(
        self, difficulty: float, stability: float, retrievability: float, rating: Rating
    ) -> float:
        hard_penalty = self.w[15] if rating == Rating.HARD else 1.0
        easy_bonus = self.w[16] if rating == Rating.EASY else 1.0
        growth = (
            math.exp(self.w[8])
            * (11 - difficulty)
            * stability ** -self.w[9]
            * (math.exp((1 - retrievability) * self.w[10]) - 1)
            * hard_penalty
            * easy_bonus
        )
        return max(stability * (1 + growth), STABILITY_MIN)

    def forget_stability(self, difficulty: float, stability: float, retrievability: float) -> float:
        long_term = (
            self.w[11]
            * difficulty ** -self.w[12]
            * ((stability + 1) ** self.w[13] - 1)
            * math.exp((1 - retrievability) * self.w[14])
        )
        # A lapse never leaves the memory more stable than a short-term relearn would
        short_term_cap = stability / math.exp(self.w[17] * self.w[18])
        return max(min(long_term, short_term_cap), STABILITY_MIN)

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def _schedule_new(
        self, state: CardMemoryState, now: datetime, elapsed: int, fuzz_factor: float | None
    ) -> dict[Rating, CardMemoryState]:
        again_m, hard_m, good_m = self.settings.new_card_steps_minutes
        steps = {Rating.AGAIN: again_m, Rating.HARD: hard_m, Rating.GOOD: good_m}

        out: dict[Rating, CardMemoryState] = {}
        for rating, minutes in steps.items():
            out[rating] = self._advance(
                state,
                now,
                elapsed,
                stability=self.init_stability(rating),
                difficulty=self.init_difficulty(rating),
                phase=CardState.LEARNING,
                minutes=minutes,
            )

        easy_s = self.init_stability(Rating.EASY)
        out[Rating.EASY] = self._advance(
            state,
            now,
            elapsed,
            stability=easy_s,
            difficulty=self.init_difficulty(Rating.EASY),
            phase=CardState.REVIEW,
            days=self.next_interval(easy_s, elapsed, fuzz_factor),
        )
        return out

    def _schedule_learning(
        self, state: CardMemoryState, now: datetime, elapsed: int, fuzz_factor: float | None
    ) -> dict[Rating, CardMemoryState]:
        again_m, hard_m = self.settings.learning_steps_minutes
        s = {r: self.short_term_stability(state.stability, r) for r in Rating}
        d = {r: self.next_difficulty(state.difficulty, r) for r in Rating}

        good_ivl = self.next_interval(s[Rating.GOOD], elapsed, fuzz_factor)
        easy_ivl = self.next_interval(s[Rating.EASY], elapsed, fuzz_factor)
        easy_ivl = min(max(easy_ivl, good_ivl + 1), self.settings.maximum_interval)

        return {
            Rating.AGAIN: self._advance(
                state, now, elapsed, stability=s[Rating.AGAIN], difficulty=d[Rating.AGAIN],
                phase=state.state, minutes=again_m,
            ),
            Rating.HARD: self._advance(
                state, now, elapsed, stability=s[Rating.HARD], difficulty=d[Rating.HARD],
                phase=state.state, minutes=hard_m,
            ),
            Rating.GOOD: self._advance(
                state, now, elapsed, stability=s[Rating.GOOD], difficulty=d[Rating.GOOD],
                phase=CardState.REVIEW, days=good_ivl,
            ),
            Rating.EASY: self._advance(
                state, now, elapsed, stability=s[Rating.EASY], difficulty=d[Rating.EASY],
                phase=CardState.REVIEW, days=easy_ivl,
            ),
        }

    def _schedule_review(
        self, state: CardMemoryState, now: datetime, elapsed: int, fuzz_factor: float | None
    ) -> dict[Rating, CardMemoryState]:
        retrievability = forgetting_curve(elapsed, state.stability)
        d = {r: self.next_difficulty(state.difficulty, r) for r in Rating}
        s = {
            r: self.recall_stability(state.difficulty, state.stability, retrievability, r)
            for r in (Rating.HARD, Rating.GOOD, Rating.EASY)
        }
        s[Rating.AGAIN] = self.forget_stability(state.difficulty, state.stability, retrievability)

        hard_ivl = self.next_interval(s[Rating.HARD], elapsed, fuzz_factor)
        good_ivl = self.next_interval(s[Rating.GOOD], elapsed, fuzz_factor)
        easy_ivl = self.next_interval(s[Rating.EASY], elapsed, fuzz_factor)
        # Keep hard <= good < easy regardless of fuzz
        max_ivl = self.settings.maximum_interval
        hard_ivl = min(hard_ivl, good_ivl)
        good_ivl = min(max(good_ivl, hard_ivl + 1), max_ivl)
        easy_ivl = min(max(easy_ivl, good_ivl + 1), max_ivl)

        return {
            Rating.AGAIN: self._advance(
                state, now, elapsed, stability=s[Rating.AGAIN], difficulty=d[Rating.AGAIN],
                phase=CardState.RELEARNING, minutes=self.settings.relearning_step_minutes,
                lapse=True,
            ),
            Rating.HARD: self._advance(
                state, now, elapsed, stability=s[Rating.HARD], difficulty=d[Rating.HARD],
                phase=CardState.REVIEW, days=hard_ivl,
            ),
            Rating.GOOD: self._advance(
                state, now, elapsed, stability=s[Rating.GOOD], difficulty=d[Rating.GOOD],
                phase=CardState.REVIEW, days=good_ivl,
            ),
            Rating.EASY: self._advance(
                state, now, elapsed, stability=s[Rating.EASY], difficulty=d[Rating.EASY],
                phase=CardState.REVIEW, days=easy_ivl,
            ),
        }

    def _advance(
        self,
        state: CardMemoryState,
        now: datetime,
        elapsed: int,
        *,
        stability: float,
        difficulty: float,
        phase: CardState,
        days: int = 0,
        minutes: int = 0,
        lapse: bool = False,
    ) -> CardMemoryState:
        due = now + (timedelta(days=days) if days else timedelta(minutes=minutes))
        return CardMemoryState(
            stability=stability,
            difficulty=difficulty,
            elapsed_days=elapsed,
            scheduled_days=days,
            reps=state.reps + 1,
            lapses=state.lapses + (1 if lapse else 0),
            state=phase,
            due=due,
            last_review=now,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _elapsed_days(state: CardMemoryState, now: datetime) -> int:
        if state.last_review is None:
            return 0
        seconds = (now - state.last_review).total_seconds()
        return max(0, math.floor(seconds / SECONDS_PER_DAY))

    def _fuzz_factor(self, state: CardMemoryState, now: datetime) -> float | None:
        """Seeded from the review time and card state, so identical inputs fuzz identically."""
        if not self.settings.enable_fuzz:
            return None
        seed = f"{int(now.timestamp() * 1000)}_{state.reps}_{state.difficulty * state.stability}"
        return random.Random(seed).random()

    def _apply_fuzz(self, interval: int, elapsed_days: int, fuzz_factor: float | None) -> int:
        if fuzz_factor is None or interval < FUZZ_MIN_INTERVAL:
            return interval
        min_ivl, max_ivl = self._fuzz_range(interval, elapsed_days)
        return math.floor(fuzz_factor * (max_ivl - min_ivl + 1) + min_ivl)

    def _fuzz_range(self, interval: int, elapsed_days: int) -> tuple[int, int]:
        maximum = self.settings.maximum_interval
        delta = 1.0
        for start, end, factor in FUZZ_RANGES:
            delta += factor * max(min(interval, end) - start, 0.0)

        interval = min(interval, maximum)
        min_ivl = max(2, round_half_up(interval - delta))
        max_ivl = min(round_half_up(interval + delta), maximum)
        if interval > elapsed_days:
            min_ivl = max(min_ivl, elapsed_days + 1)
        return min(min_ivl, max_ivl), max_ivl


@lru_cache(maxsize=1)
def default_scheduler() -> FSRSScheduler:
    """Scheduler built from the resolved configuration, created on first use."""
    return FSRSScheduler(resolve_config())


def compute_all_outcomes(state: CardMemoryState, now: datetime | None = None) -> SchedulingOptions:
    return default_scheduler().compute_all_outcomes(state, now)


def apply_rating(
    state: CardMemoryState, rating: Rating | str, now: datetime | None = None
) -> ScheduledOutcome:
    return default_scheduler().apply_rating(state, rating, now)
