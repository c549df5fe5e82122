"""
Review Service: Application layer orchestrator.

Coordinates loading a card, rescheduling it and writing the result back
through the host's repositories.
"""

import logging
from datetime import datetime

from marginalia.application.scheduler import FSRSScheduler, default_scheduler, utcnow
from marginalia.domain.review.models import Card, CardNotFoundError, Rating, ReviewResult
from marginalia.domain.review.ports import CardRepository, ReviewLogRepository

logger = logging.getLogger(__name__)


class ReviewService:
    """
    Application service for submitting reviews outside (or at the end of) a session.

    Depends on the repository ports only; the host supplies the adapters.
    """

    def __init__(
        self,
        card_repo: CardRepository,
        review_log_repo: ReviewLogRepository,
        scheduler: FSRSScheduler | None = None,
    ):
        """
        Args:
            card_repo: Port for loading cards and saving their memory state.
            review_log_repo: Port for the review audit log.
            scheduler: Optional custom scheduler; uses the default if not provided.
        """
        self._cards = card_repo
        self._log = review_log_repo
        self._scheduler = scheduler or default_scheduler()

    async def submit_review(
        self,
        card_id: str,
        rating: Rating | str,
        duration_ms: int | None = None,
        now: datetime | None = None,
    ) -> Card:
        """
        Apply a rating to a stored card and persist the new state.

        Args:
            card_id: Card to review.
            rating: again/hard/good/easy.
            duration_ms: Time spent answering, if the host measured it.
            now: Review time (defaults to now).

        Returns:
            The card with its updated memory state.

        Raises:
            ValueError: If the rating is unknown.
            CardNotFoundError: If the repository does not know the card.
        """
        rating = Rating.parse(rating)
        now = now or utcnow()

        card = await self._cards.get_card(card_id)
        if card is None:
            raise CardNotFoundError(f"Card not found: {card_id}")

        outcome = self._scheduler.apply_rating(card.memory, rating, now)
        updated = card.with_memory(outcome.updated_state)

        result = ReviewResult(
            card_id=card.id,
            rating=rating,
            duration_ms=duration_ms or 0,
            stability_before=card.memory.stability,
            difficulty_before=card.memory.difficulty,
            state_before=card.memory.state,
        )
        await self.persist_answer(updated, result)
        logger.debug(f"Reviewed {card_id} as {rating.value}, next due {outcome.interval}")
        return updated

    async def persist_answer(
        self, card: Card, result: ReviewResult, session_id: str | None = None
    ) -> None:
        """
        Write back a card already rescheduled (e.g. inside a review session)
        together with its audit row.

        The card state is the primary effect: a failure saving it propagates.
        A failure writing the audit row is logged and swallowed.
        """
        await self._cards.save_card_state(card.id, card.memory)

        try:
            await self._log.record_review(result, session_id=session_id)
        except Exception:
            logger.exception(f"Failed to record review log for card {card.id}")
