"""
Review session transitions.

A review session is an explicit, immutable state object. Every operation takes
the current session (None while idle) and returns the next one; the host keeps
the reference and owns any change notification.

    Idle (None) --start_session--> Active --answer/skip/end--> Complete
    any state   --clear_session--> Idle

Derived views (current card, progress, previews, stats) are plain functions of
the session and are recomputed on every call.
"""

import logging
from dataclasses import replace
from datetime import datetime

from marginalia.application.id_service import generate_review_session_id
from marginalia.application.scheduler import (
    FSRSScheduler,
    check_timestamp,
    default_scheduler,
    utcnow,
)
from marginalia.application.stats.metrics_calculator import MetricsCalculator
from marginalia.domain.review.models import (
    Card,
    Rating,
    ReviewResult,
    ReviewSession,
    SchedulingOptions,
    SessionProgress,
    SessionStats,
)

logger = logging.getLogger(__name__)


def start_session(cards: list[Card], now: datetime | None = None) -> ReviewSession:
    """
    Start a session over the given cards, in the given order.

    An empty card list produces a session that is already complete.
    """
    now = check_timestamp(now or utcnow())
    session = ReviewSession(
        session_id=generate_review_session_id(now),
        cards=tuple(cards),
        current_index=0,
        started_at=now,
        card_started_at=now,
        is_complete=len(cards) == 0,
    )
    logger.info(f"Review session {session.session_id} started with {len(cards)} cards")
    return session


def answer_card(
    session: ReviewSession | None,
    rating: Rating | str,
    now: datetime | None = None,
    scheduler: FSRSScheduler | None = None,
) -> tuple[ReviewSession | None, ReviewResult | None]:
    """
    Rate the current card and advance.

    The card in the queue is replaced with its rescheduled version; persisting
    it is the caller's job.

    Returns:
        (next_session, result). The result is None, and the session unchanged,
        when the session is idle or complete.

    Raises:
        ValueError: If the rating is unknown or now is naive.
    """
    rating = Rating.parse(rating)
    if session is None or session.is_complete:
        return session, None

    now = check_timestamp(now or utcnow())
    scheduler = scheduler or default_scheduler()
    card = session.cards[session.current_index]
    memory = card.memory

    outcome = scheduler.apply_rating(memory, rating, now)
    result = ReviewResult(
        card_id=card.id,
        rating=rating,
        duration_ms=int((now - session.card_started_at).total_seconds() * 1000),
        stability_before=memory.stability,
        difficulty_before=memory.difficulty,
        state_before=memory.state,
    )

    cards = list(session.cards)
    cards[session.current_index] = card.with_memory(outcome.updated_state)
    next_index = session.current_index + 1
    is_complete = next_index >= len(cards)

    if is_complete:
        logger.info(f"Review session {session.session_id} complete after {len(session.results) + 1} reviews")

    return (
        replace(
            session,
            cards=tuple(cards),
            current_index=next_index,
            card_started_at=now,
            results=session.results + (result,),
            skip_count=0,
            is_complete=is_complete,
        ),
        result,
    )


def skip_card(session: ReviewSession | None, now: datetime | None = None) -> ReviewSession | None:
    """
    Move the current card to the end of the queue.

    The cursor stays put, so the next card moves up. Once every remaining card
    has been skipped in a row, the session completes instead of cycling forever.
    """
    if session is None or session.is_complete:
        return session

    cards = list(session.cards)
    cards.append(cards.pop(session.current_index))
    skip_count = session.skip_count + 1
    exhausted = skip_count >= session.remaining

    if exhausted:
        logger.warning(
            f"Review session {session.session_id} ended: all {session.remaining} remaining cards skipped"
        )

    return replace(
        session,
        cards=tuple(cards),
        skip_count=skip_count,
        card_started_at=check_timestamp(now or utcnow()),
        is_complete=exhausted,
    )


def end_session(session: ReviewSession | None) -> ReviewSession | None:
    """Mark the session complete, keeping its results."""
    if session is None:
        return None
    logger.info(f"Review session {session.session_id} ended with {len(session.results)} reviews")
    return replace(session, is_complete=True)


def clear_session(session: ReviewSession | None) -> None:
    """Discard the session and return to idle."""
    return None


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------


def current_card(session: ReviewSession | None) -> Card | None:
    if session is None or session.is_complete:
        return None
    return session.cards[session.current_index]


def session_progress(session: ReviewSession | None) -> SessionProgress | None:
    if session is None:
        return None
    total = len(session.cards)
    return SessionProgress(
        current=min(session.current_index + 1, total),
        total=total,
        percent=len(session.results) / total * 100 if total else 0.0,
    )


def current_scheduling_options(
    session: ReviewSession | None,
    now: datetime | None = None,
    scheduler: FSRSScheduler | None = None,
) -> SchedulingOptions | None:
    """Interval preview for each rating of the current card. The card is not modified."""
    card = current_card(session)
    if card is None:
        return None
    return (scheduler or default_scheduler()).compute_all_outcomes(card.memory, now)


def session_stats(session: ReviewSession | None) -> SessionStats | None:
    if session is None:
        return None
    return MetricsCalculator().session_stats(session.results)
