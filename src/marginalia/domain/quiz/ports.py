"""
Ports (interfaces) for quiz persistence.
"""

from abc import ABC, abstractmethod

from .models import QuizSessionRecord


class QuizSessionRepository(ABC):
    """
    Port for storing finished quiz sessions.
    """

    @abstractmethod
    async def save_quiz_session(self, record: QuizSessionRecord) -> str:
        """
        Store a finished quiz.

        Returns:
            The id assigned by the storage layer.
        """
        pass
