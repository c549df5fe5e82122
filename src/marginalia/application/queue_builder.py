"""
Queue builder for urgency-ordered review sessions.

Orders cards by:
1. Due cards before cards that are not yet due
2. Among due cards, lowest retrievability first (most at risk of being forgotten)
3. Among not-yet-due cards, earliest due date first
"""

import logging
from datetime import datetime

from marginalia.application.scheduler import utcnow
from marginalia.application.stats.metrics_calculator import retrievability
from marginalia.domain.review.models import Card

logger = logging.getLogger(__name__)


def is_due(card: Card, now: datetime) -> bool:
    return card.memory.due <= now


def urgency_key(card: Card, now: datetime) -> tuple[int, float]:
    """
    Sort key: (0, retrievability) for due cards, (1, due timestamp) otherwise.
    """
    if is_due(card, now):
        return (0, retrievability(card.memory, now))
    return (1, card.memory.due.timestamp())


def sort_by_urgency(cards: list[Card], now: datetime | None = None) -> list[Card]:
    """
    Return a new list ordered by review urgency, most urgent first.

    The sort is stable, so cards with equal keys keep their input order.
    Input cards are not modified.

    Args:
        cards: Cards to order.
        now: Reference time for due checks and retrievability (defaults to now).

    Returns:
        New list sorted by urgency.
    """
    now = now or utcnow()
    ordered = sorted(cards, key=lambda card: urgency_key(card, now))
    logger.debug(f"Ordered {len(ordered)} cards by urgency ({sum(is_due(c, now) for c in ordered)} due)")
    return ordered
