"""
grammar-master: AI-generated multiple-choice English tense quiz.

Requests a batch of grammar questions from an LLM provider, plays them one
at a time, and shows a scored review with explanations.
"""

import logging

__version__ = "0.1.0"

from .questions import (
    Topic,
    Question,
    QuestionSource,
    QuestionGenerationError,
    SchemaViolation,
    SourceUnavailable,
)
from .config import Config, QuizConfig, ModelConfig
from .session import (
    QuizSession,
    SessionState,
    SessionStatus,
    InvalidTransition,
    compute_score,
    transition,
)
from .review import QuizReview, build_review, format_review_terminal

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Questions
    "Topic",
    "Question",
    "QuestionSource",
    "QuestionGenerationError",
    "SchemaViolation",
    "SourceUnavailable",
    # Config
    "Config",
    "QuizConfig",
    "ModelConfig",
    # Session
    "QuizSession",
    "SessionState",
    "SessionStatus",
    "InvalidTransition",
    "compute_score",
    "transition",
    # Review
    "QuizReview",
    "build_review",
    "format_review_terminal",
]
