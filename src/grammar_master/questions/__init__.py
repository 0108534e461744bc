"""
Question system for grammar-master

Question records, validation of model output, and the question source
that produces a shuffled batch for a quiz session.
"""

from .schema import (
    Topic,
    Question,
    QuestionSourceError,
    SchemaViolation,
    QUESTION_BATCH_SCHEMA,
    parse_question,
    parse_question_batch,
)
from .source import QuestionSource, QuestionGenerationError, SourceUnavailable, QUESTION_BATCH_TOOL

__all__ = [
    "Topic",
    "Question",
    "QuestionSourceError",
    "SchemaViolation",
    "SourceUnavailable",
    "QuestionGenerationError",
    "QuestionSource",
    "QUESTION_BATCH_SCHEMA",
    "QUESTION_BATCH_TOOL",
    "parse_question",
    "parse_question_batch",
]
