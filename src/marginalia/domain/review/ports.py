"""
Ports (interfaces) for review persistence.

These define the contract that the host's storage adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod

from .models import Card, CardMemoryState, ReviewResult


class CardRepository(ABC):
    """
    Port for loading cards and writing back their scheduling state.
    """

    @abstractmethod
    async def get_card(self, card_id: str) -> Card | None:
        """
        Fetch a single card with its memory state.

        Returns:
            The card, or None if the id is unknown.
        """
        pass

    @abstractmethod
    async def save_card_state(self, card_id: str, state: CardMemoryState) -> None:
        """
        Persist the updated memory state of a card.
        """
        pass


class ReviewLogRepository(ABC):
    """
    Port for appending review audit rows.
    """

    @abstractmethod
    async def record_review(self, result: ReviewResult, session_id: str | None = None) -> None:
        """
        Append one review result, optionally tagged with the session it came from.
        """
        pass
