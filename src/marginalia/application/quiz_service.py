"""Persistence of finished quiz sessions."""

import logging
from datetime import datetime

from marginalia.application.quiz_session import quiz_results
from marginalia.domain.quiz.models import QuizSession, QuizSessionRecord
from marginalia.domain.quiz.ports import QuizSessionRepository

logger = logging.getLogger(__name__)


class QuizService:
    def __init__(self, quiz_repo: QuizSessionRepository):
        self._repo = quiz_repo

    async def save_results(
        self, session: QuizSession | None, provider: str, now: datetime | None = None
    ) -> str:
        """
        Score a finished quiz and hand it to the repository.

        Args:
            session: The completed quiz session.
            provider: Name of the question generator, stored for reporting.
            now: End time used for the duration (defaults to now).

        Returns:
            The id assigned by the repository.

        Raises:
            ValueError: If the session is missing, still running, or has no questions.
        """
        if session is None or not session.is_complete:
            raise ValueError("Quiz session is not complete")
        if not session.questions:
            raise ValueError("Quiz session has no questions")

        results = quiz_results(session, now)
        record = QuizSessionRecord(
            session_id=session.session_id,
            collection_id=session.collection_id,
            questions=session.questions,
            answers=results.answers,
            total_questions=results.total_questions,
            correct_count=results.correct_count,
            score_percent=results.score_percent,
            duration_ms=results.total_time_ms,
            provider=provider,
        )

        stored_id = await self._repo.save_quiz_session(record)
        logger.info(
            f"Saved quiz {session.session_id} as {stored_id}: "
            f"{results.correct_count}/{results.total_questions} ({results.score_percent}%)"
        )
        return stored_id
