"""
Quiz session transitions.

Same shape as review sessions but with no scheduler: questions are static
and one-shot, so skipped questions are simply scored as wrong.
"""

import logging
from dataclasses import replace
from datetime import datetime

from marginalia.application.id_service import generate_quiz_session_id
from marginalia.application.scheduler import check_timestamp, utcnow
from marginalia.application.utils import percent
from marginalia.domain.quiz.models import (
    QuizAnswer,
    QuizProgress,
    QuizQuestion,
    QuizResults,
    QuizSession,
)

logger = logging.getLogger(__name__)


def start_session(
    questions: list[QuizQuestion],
    collection_id: str,
    collection_title: str,
    now: datetime | None = None,
) -> QuizSession:
    now = check_timestamp(now or utcnow())
    session = QuizSession(
        session_id=generate_quiz_session_id(now),
        collection_id=collection_id,
        collection_title=collection_title,
        questions=tuple(questions),
        current_index=0,
        started_at=now,
        question_started_at=now,
        is_complete=len(questions) == 0,
    )
    logger.info(f"Quiz session {session.session_id} started with {len(questions)} questions")
    return session


def answer_question(
    session: QuizSession | None,
    user_answer: str,
    is_correct: bool,
    now: datetime | None = None,
) -> tuple[QuizSession | None, QuizAnswer | None]:
    """
    Record an answer for the current question and advance.

    Returns:
        (next_session, answer). The answer is None, and the session unchanged,
        when the session is idle or complete.
    """
    if session is None or session.is_complete:
        return session, None

    now = check_timestamp(now or utcnow())
    answer = QuizAnswer(
        question_index=session.current_index,
        user_answer=user_answer,
        is_correct=is_correct,
        time_ms=int((now - session.question_started_at).total_seconds() * 1000),
    )
    next_index = session.current_index + 1

    return (
        replace(
            session,
            answers=session.answers + (answer,),
            current_index=next_index,
            is_complete=next_index >= len(session.questions),
            question_started_at=now,
        ),
        answer,
    )


def skip_question(
    session: QuizSession | None, now: datetime | None = None
) -> tuple[QuizSession | None, QuizAnswer | None]:
    """Skip the current question: recorded as incorrect with an empty answer."""
    return answer_question(session, "", False, now)


def end_session(session: QuizSession | None) -> QuizSession | None:
    if session is None:
        return None
    return replace(session, is_complete=True)


def clear_session(session: QuizSession | None) -> None:
    return None


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------


def current_question(session: QuizSession | None) -> QuizQuestion | None:
    if session is None or session.is_complete:
        return None
    if session.current_index >= len(session.questions):
        return None
    return session.questions[session.current_index]


def quiz_progress(session: QuizSession | None) -> QuizProgress | None:
    if session is None:
        return None
    total = len(session.questions)
    return QuizProgress(
        current=min(session.current_index + 1, total),
        total=total,
        percent=percent(len(session.answers), total),
    )


def quiz_results(session: QuizSession | None, now: datetime | None = None) -> QuizResults | None:
    """
    Score a finished quiz. None while the quiz is idle or still running.

    Unanswered questions (after end_session) count against the score.
    """
    if session is None or not session.is_complete:
        return None

    now = now or utcnow()
    correct = sum(1 for a in session.answers if a.is_correct)
    total = len(session.questions)

    return QuizResults(
        total_questions=total,
        correct_count=correct,
        score_percent=percent(correct, total),
        total_time_ms=int((now - session.started_at).total_seconds() * 1000),
        answers=session.answers,
    )
