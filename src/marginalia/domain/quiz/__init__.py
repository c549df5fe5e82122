# Domain Quiz Package
from .models import (
    QuizAnswer,
    QuizProgress,
    QuizQuestion,
    QuizQuestionType,
    QuizResults,
    QuizSession,
    QuizSessionRecord,
)
from .ports import QuizSessionRepository

__all__ = [
    "QuizAnswer",
    "QuizProgress",
    "QuizQuestion",
    "QuizQuestionType",
    "QuizResults",
    "QuizSession",
    "QuizSessionRecord",
    "QuizSessionRepository",
]
