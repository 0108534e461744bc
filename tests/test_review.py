"""
Tests for the scored review.
"""

from dataclasses import replace

import pytest

from grammar_master.questions.schema import Question, Topic
from grammar_master.review import build_review, format_review_terminal
from grammar_master.session import SessionState, SessionStatus, compute_score


def finished_state(correct_indices: list[int], answers: list[int], topics=None) -> SessionState:
    topics = topics or [Topic.PRESENT] * len(correct_indices)
    questions = tuple(
        Question(
            id=i,
            text=f"Question {i} ___.",
            options=("go", "goes", "went", "has gone"),
            correct_index=correct,
            explanation=f"Penjelasan untuk soal {i}.",
            topic=topics[i],
        )
        for i, correct in enumerate(correct_indices)
    )
    return SessionState(
        status=SessionStatus.FINISHED,
        questions=questions,
        current_question_index=len(questions) - 1,
        user_answers=tuple(answers),
        score=compute_score(questions, answers),
    )


class TestBuildReview:
    """Tests for build_review()."""

    def test_items(self):
        """Test per-question feedback."""
        review = build_review(finished_state([1, 2], [1, 0]))

        assert review.score == 1
        assert review.total == 2
        assert [item.number for item in review.items] == [1, 2]

        right, wrong = review.items
        assert right.is_correct
        assert not wrong.is_correct
        assert wrong.user_answer_text == "go"
        assert wrong.correct_answer_text == "went"
        assert wrong.question.explanation == "Penjelasan untuk soal 1."

    def test_mistakes(self):
        """Test the list of wrong answers."""
        review = build_review(finished_state([0, 1, 2], [1, 1, 0]))

        assert [item.number for item in review.mistakes] == [1, 3]

    @pytest.mark.parametrize("score,band", [
        (10, "high"),
        (8, "high"),
        (7, "medium"),
        (6, "medium"),
        (5, "low"),
        (0, "low"),
    ])
    def test_band(self, score, band):
        """Test the 80/60 percentage bands."""
        answers = [0] * score + [1] * (10 - score)
        review = build_review(finished_state([0] * 10, answers))

        assert review.percentage == score * 10
        assert review.band == band

    def test_percentage_rounded(self):
        """Test a non-integer percentage."""
        review = build_review(finished_state([0, 0, 0], [0, 0, 1]))

        assert review.percentage == 67

    def test_topic_breakdown(self):
        """Test per-topic counts in enum order."""
        topics = [Topic.PRESENT_PERFECT, Topic.PAST, Topic.PAST, Topic.PRESENT_PERFECT]
        review = build_review(finished_state([0, 0, 0, 0], [0, 1, 0, 0], topics=topics))

        assert [t.topic for t in review.topics] == [Topic.PAST, Topic.PRESENT_PERFECT]
        assert (review.topics[0].correct, review.topics[0].total) == (1, 2)
        assert review.topics[1].percentage == 100

    def test_not_finished(self):
        """Test that only finished sessions can be reviewed."""
        with pytest.raises(ValueError, match="not finished"):
            build_review(SessionState(status=SessionStatus.ACTIVE))

    def test_to_dict(self):
        """Test serialization."""
        data = build_review(finished_state([1, 2], [1, 0])).to_dict()

        assert data["score"] == 1
        assert data["percentage"] == 50
        assert data["band"] == "low"
        assert data["topics"] == {"Present": {"correct": 1, "total": 2}}
        assert data["items"][1]["user_answer"] == "go"
        assert data["items"][1]["correct_answer"] == "went"


class TestFormatReview:
    """Tests for terminal rendering."""

    def test_summary(self):
        """Test the header lines."""
        output = format_review_terminal(build_review(finished_state([0, 1], [0, 0])))

        assert "QUIZ COMPLETE" in output
        assert "Score: 1/2  (50%)  [low]" in output
        assert "BY TOPIC" in output

    def test_mistakes_only(self):
        """Test that correct answers are hidden by default."""
        output = format_review_terminal(build_review(finished_state([0, 1], [0, 0])))

        assert "MISTAKES" in output
        assert "Question 1 ___." in output
        assert "Question 0 ___." not in output
        assert "Your answer:    go" in output
        assert "Correct answer: goes" in output

    def test_show_all(self):
        """Test the full review."""
        output = format_review_terminal(build_review(finished_state([0, 1], [0, 0])), show_all=True)

        assert "REVIEW" in output
        assert "Question 0 ___." in output
        assert "Question 1 ___." in output

    def test_perfect_score(self):
        """Test the no-mistakes message."""
        output = format_review_terminal(build_review(finished_state([0, 1], [0, 1])))

        assert "No mistakes. Perfect score!" in output
        assert "[high]" in output

    def test_long_explanation_wrapped(self):
        """Test that long explanations are not truncated."""
        state = finished_state([0], [1])
        question = state.questions[0]
        long_text = "Kata kerja " + "sangat " * 30 + "penting."
        state = replace(state, questions=(replace(question, explanation=long_text),))

        output = format_review_terminal(build_review(state))

        assert "penting." in output
        assert all(len(line) == len(output.splitlines()[0]) for line in output.splitlines())
