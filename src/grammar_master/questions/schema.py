"""
Question schema and validation

Defines the question record, the topic enumeration and the JSON schema the
question source must produce. Raw model output is only ever turned into
Question records through parse_question_batch().
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

OPTION_COUNT = 4
OPTION_LABELS = "ABCD"


class QuestionSourceError(Exception):
    """Base exception for question source failures."""
    pass


class SchemaViolation(QuestionSourceError):
    """Model output could not be turned into valid questions."""
    pass


class Topic(str, Enum):
    """Grammar topics a question can cover."""
    PRESENT = "Present"
    PAST = "Past"
    PRESENT_PERFECT = "Present Perfect"

    @classmethod
    def parse(cls, value: Any) -> "Topic":
        """
        Parse a topic label as emitted by a model.

        Case-insensitive; tolerates "Simple ... Tense" phrasing, so
        "Simple Past Tense" is PAST and "present perfect tense" is
        PRESENT_PERFECT.

        Raises:
            SchemaViolation: If the label is not one of the known topics
        """
        if not isinstance(value, str):
            raise SchemaViolation(f"topic must be a string, got {type(value).__name__}")

        key = " ".join(value.lower().split())
        if key.startswith("simple "):
            key = key[len("simple "):]
        if key.endswith(" tense"):
            key = key[: -len(" tense")]

        for topic in cls:
            if topic.value.lower() == key:
                return topic

        raise SchemaViolation(f"unknown topic: {value!r}")


@dataclass(frozen=True)
class Question:
    """A single multiple-choice question."""
    id: int
    text: str
    options: tuple[str, ...]
    correct_index: int
    explanation: str
    topic: Topic

    @property
    def correct_option(self) -> str:
        """Text of the correct option."""
        return self.options[self.correct_index]

    def is_correct(self, answer: Optional[int]) -> bool:
        """Whether an answer index matches the correct option."""
        return answer == self.correct_index

    def has_option(self, index: int) -> bool:
        return isinstance(index, int) and 0 <= index < len(self.options)

    @staticmethod
    def option_label(index: int) -> str:
        """Letter shown next to an option (A-D)."""
        return OPTION_LABELS[index]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "options": list(self.options),
            "correctIndex": self.correct_index,
            "explanation": self.explanation,
            "topic": self.topic.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Question":
        return parse_question(data, question_id=data.get("id", 0))


# =============================================================================
# WIRE SCHEMA
# =============================================================================

QUESTION_ITEM_SCHEMA = {
    "type": "object",
    "properties": {
        "text": {
            "type": "string",
            "description": "The question sentence with a blank, or a question asking for the correct form.",
        },
        "options": {
            "type": "array",
            "items": {"type": "string"},
            "minItems": OPTION_COUNT,
            "maxItems": OPTION_COUNT,
            "description": "Exactly 4 possible answers.",
        },
        "correctIndex": {
            "type": "integer",
            "minimum": 0,
            "maximum": OPTION_COUNT - 1,
            "description": "The index (0-3) of the correct answer in the options array.",
        },
        "explanation": {
            "type": "string",
            "description": "Why the correct answer is correct.",
        },
        "topic": {
            "type": "string",
            "enum": [t.value for t in Topic],
            "description": "The tense topic of the question.",
        },
    },
    "required": ["text", "options", "correctIndex", "explanation", "topic"],
}

QUESTION_BATCH_SCHEMA = {
    "type": "object",
    "properties": {
        "questions": {
            "type": "array",
            "items": QUESTION_ITEM_SCHEMA,
            "description": "The generated questions.",
        }
    },
    "required": ["questions"],
}


# =============================================================================
# VALIDATION
# =============================================================================

def _require_text(data: dict, key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise SchemaViolation(f"'{key}' must be a non-empty string")
    return value.strip()


def parse_question(data: Any, question_id: int = 0) -> Question:
    """
    Validate one raw record and build a Question from it.

    Args:
        data: Raw record (dict with text, options, correctIndex, explanation, topic)
        question_id: Identifier to assign

    Returns:
        A well-formed Question

    Raises:
        SchemaViolation: On any missing or malformed field
    """
    if not isinstance(data, dict):
        raise SchemaViolation(f"question must be an object, got {type(data).__name__}")

    text = _require_text(data, "text")
    explanation = _require_text(data, "explanation")

    options = data.get("options")
    if not isinstance(options, list) or len(options) != OPTION_COUNT:
        raise SchemaViolation(f"'options' must be a list of exactly {OPTION_COUNT} strings")
    if not all(isinstance(o, str) and o.strip() for o in options):
        raise SchemaViolation("every option must be a non-empty string")

    correct_index = data.get("correctIndex")
    # bool is an int subclass; True must not pass as 1
    if not isinstance(correct_index, int) or isinstance(correct_index, bool):
        raise SchemaViolation(f"'correctIndex' must be an integer, got {correct_index!r}")
    if not 0 <= correct_index < OPTION_COUNT:
        raise SchemaViolation(f"'correctIndex' out of range: {correct_index}")

    return Question(
        id=question_id,
        text=text,
        options=tuple(o.strip() for o in options),
        correct_index=correct_index,
        explanation=explanation,
        topic=Topic.parse(data.get("topic")),
    )


def parse_question_batch(data: Any) -> list[Question]:
    """
    Validate a whole batch of raw records.

    Accepts either a bare list of records or an object with a "questions"
    list. A single bad record invalidates the whole batch. Identifiers are
    provisional (source order); the question source reassigns them.

    Raises:
        SchemaViolation: If the batch is empty or any record is malformed
    """
    if isinstance(data, dict):
        data = data.get("questions")

    if not isinstance(data, list):
        raise SchemaViolation("expected a list of questions")
    if not data:
        raise SchemaViolation("question batch is empty")

    questions = []
    for index, raw in enumerate(data):
        try:
            questions.append(parse_question(raw, question_id=index))
        except SchemaViolation as e:
            raise SchemaViolation(f"question {index}: {e}") from e

    return questions
