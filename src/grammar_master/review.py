"""
Scored review of a finished quiz

Turns a FINISHED session into per-question feedback, a percentage with a
performance band, and a per-topic breakdown, plus a terminal rendering.
"""

import textwrap
from dataclasses import dataclass, field
from typing import Optional

from .questions.schema import Question, Topic
from .session import SessionState, SessionStatus

HIGH_BAND_PERCENT = 80
MEDIUM_BAND_PERCENT = 60


@dataclass
class ReviewItem:
    """Feedback for one question."""
    number: int
    question: Question
    user_answer: Optional[int]

    @property
    def is_correct(self) -> bool:
        return self.question.is_correct(self.user_answer)

    @property
    def user_answer_text(self) -> str:
        if self.user_answer is None or not self.question.has_option(self.user_answer):
            return ""
        return self.question.options[self.user_answer]

    @property
    def correct_answer_text(self) -> str:
        return self.question.correct_option

    def to_dict(self) -> dict:
        return {
            "number": self.number,
            "text": self.question.text,
            "topic": self.question.topic.value,
            "user_answer": self.user_answer_text,
            "correct_answer": self.correct_answer_text,
            "is_correct": self.is_correct,
            "explanation": self.question.explanation,
        }


@dataclass
class TopicScore:
    """Correct answers for one topic."""
    topic: Topic
    correct: int = 0
    total: int = 0

    @property
    def percentage(self) -> int:
        return round(self.correct / self.total * 100) if self.total else 0


@dataclass
class QuizReview:
    """Everything the result screen shows."""
    score: int
    total: int
    items: list[ReviewItem] = field(default_factory=list)
    topics: list[TopicScore] = field(default_factory=list)

    @property
    def percentage(self) -> int:
        return round(self.score / self.total * 100) if self.total else 0

    @property
    def band(self) -> str:
        """Performance band: 'high', 'medium' or 'low'."""
        if self.percentage >= HIGH_BAND_PERCENT:
            return "high"
        if self.percentage >= MEDIUM_BAND_PERCENT:
            return "medium"
        return "low"

    @property
    def mistakes(self) -> list[ReviewItem]:
        return [item for item in self.items if not item.is_correct]

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "total": self.total,
            "percentage": self.percentage,
            "band": self.band,
            "topics": {
                t.topic.value: {"correct": t.correct, "total": t.total}
                for t in self.topics
            },
            "items": [item.to_dict() for item in self.items],
        }


def build_review(state: SessionState) -> QuizReview:
    """
    Build the review for a finished session.

    Args:
        state: Session snapshot in FINISHED status

    Returns:
        QuizReview with items in presentation order

    Raises:
        ValueError: If the session is not finished
    """
    if state.status != SessionStatus.FINISHED:
        raise ValueError(f"Session is not finished (status: {state.status.value})")

    items = []
    by_topic: dict[Topic, TopicScore] = {}

    for index, question in enumerate(state.questions):
        answer = state.user_answers[index] if index < len(state.user_answers) else None
        item = ReviewItem(number=index + 1, question=question, user_answer=answer)
        items.append(item)

        topic_score = by_topic.setdefault(question.topic, TopicScore(topic=question.topic))
        topic_score.total += 1
        if item.is_correct:
            topic_score.correct += 1

    # Keep the enum order so the breakdown reads the same every time
    topics = [by_topic[t] for t in Topic if t in by_topic]

    return QuizReview(score=state.score, total=len(state.questions), items=items, topics=topics)


def format_review_terminal(review: QuizReview, show_all: bool = False) -> str:
    """
    Format a review for terminal display with box-drawing characters.

    Args:
        review: Review to render
        show_all: Include correct answers in the per-question section,
            not just mistakes

    Returns:
        Formatted string for terminal display
    """
    width = 62
    rule = "─" * (width - 4)

    def row(text: str = "") -> str:
        return f"│  {text[:width - 4]:<{width - 2}}│"

    def wrapped(text: str, indent: str) -> list[str]:
        return [row(line) for line in textwrap.wrap(
            text, width=width - 4, initial_indent=indent, subsequent_indent=indent
        )]

    lines = [
        "┌" + "─" * width + "┐",
        row(),
        row("QUIZ COMPLETE"),
        row("═" * 13),
        row(),
        row(f"Score: {review.score}/{review.total}  ({review.percentage}%)  [{review.band}]"),
        row(),
    ]

    if review.topics:
        lines.append(row("BY TOPIC"))
        for t in review.topics:
            lines.append(row(f"  {t.topic.value:<18} {t.correct:>3}/{t.total:<3} ({t.percentage}%)"))
        lines.append(row())

    shown = review.items if show_all else review.mistakes
    if shown:
        lines.append(row(rule))
        lines.append(row("REVIEW" if show_all else "MISTAKES"))
        lines.append(row())
        for item in shown:
            mark = "✓" if item.is_correct else "✗"
            lines.extend(wrapped(f"{mark} {item.number}. {item.question.text}", ""))
            if not item.is_correct:
                lines.append(row(f"    Your answer:    {item.user_answer_text or '-'}"))
            lines.append(row(f"    Correct answer: {item.correct_answer_text}"))
            lines.extend(wrapped(item.question.explanation, "    "))
            lines.append(row())
    elif not show_all:
        lines.append(row("No mistakes. Perfect score!"))
        lines.append(row())

    lines.append("└" + "─" * width + "┘")
    return "\n".join(lines)
