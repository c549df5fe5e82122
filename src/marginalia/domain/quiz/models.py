"""
Domain models for one-shot quizzes.

Quiz questions carry no memory state; they are never rescheduled.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class QuizQuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    SHORT_ANSWER = "short_answer"


@dataclass(frozen=True)
class QuizQuestion:
    """
    A generated question about one highlight.

    Attributes:
        highlight_id: Source highlight the question tests.
        type: Question format.
        question: Prompt shown to the user.
        correct_answer: Expected answer.
        explanation: Why the answer is correct.
        options: Choices for multiple-choice questions.
        confidence: Generator confidence (0-1).
    """

    highlight_id: str
    type: QuizQuestionType
    question: str
    correct_answer: str
    explanation: str
    options: tuple[str, ...] | None = None
    confidence: float = 1.0


@dataclass(frozen=True)
class QuizAnswer:
    question_index: int
    user_answer: str
    is_correct: bool
    time_ms: int


@dataclass(frozen=True)
class QuizSession:
    """
    Ephemeral state of an active quiz.

    collection_id and collection_title are opaque display metadata.
    """

    session_id: str
    collection_id: str
    collection_title: str
    questions: tuple[QuizQuestion, ...]
    current_index: int
    started_at: datetime
    question_started_at: datetime
    is_complete: bool
    answers: tuple[QuizAnswer, ...] = ()


@dataclass(frozen=True)
class QuizProgress:
    current: int
    total: int
    percent: int


@dataclass(frozen=True)
class QuizResults:
    total_questions: int
    correct_count: int
    score_percent: int
    total_time_ms: int
    answers: tuple[QuizAnswer, ...]


@dataclass(frozen=True)
class QuizSessionRecord:
    """Flattened quiz outcome handed to the host for storage."""

    session_id: str
    collection_id: str
    questions: tuple[QuizQuestion, ...]
    answers: tuple[QuizAnswer, ...]
    total_questions: int
    correct_count: int
    score_percent: int
    duration_ms: int
    provider: str
