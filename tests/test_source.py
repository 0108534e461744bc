"""
Tests for the question source adapter.
"""

import json
import random

import httpx
import pytest

from grammar_master.config import QuizConfig
from grammar_master.providers.base import MalformedResponse, ToolCallError
from grammar_master.providers.cloudflare import CloudflareAIProvider
from grammar_master.providers.mock import MockProvider, create_question_mock, generate_mock_questions
from grammar_master.questions.schema import SchemaViolation, Topic
from grammar_master.questions.source import (
    QuestionSource,
    QuestionGenerationError,
    SourceUnavailable,
    QUESTION_BATCH_TOOL,
)


def make_records(count: int) -> list[dict]:
    """Distinct raw records, grouped by topic like a model would return them."""
    topics = ["Present", "Past", "Present Perfect"]
    return [
        {
            "text": f"Sentence number {i} ___.",
            "options": ["a", "b", "c", "d"],
            "correctIndex": i % 4,
            "explanation": f"Penjelasan {i}",
            "topic": topics[i * len(topics) // count],
        }
        for i in range(count)
    ]


class ToolsUnsupportedMock(MockProvider):
    """Claims tool support but rejects tool calls."""

    @property
    def supports_tools(self) -> bool:
        return True

    async def generate_with_tools(self, prompt, tools, **kwargs):
        raise ToolCallError("tools disabled for this model")


class CrashingMock(MockProvider):
    """Fails with an error outside the provider contract."""

    async def generate(self, prompt, **kwargs):
        raise RuntimeError("unexpected reply layout")


class TestFetch:
    """Tests for QuestionSource.fetch()."""

    @pytest.mark.asyncio
    async def test_default_batch(self):
        """Test a full batch from the mock provider."""
        source = QuestionSource(MockProvider(seed=1), quiz_config=QuizConfig(question_count=25))
        questions = await source.fetch()

        assert len(questions) == 25
        assert [q.id for q in questions] == list(range(25))
        assert all(len(q.options) == 4 for q in questions)
        assert {q.topic for q in questions} == set(Topic)

    @pytest.mark.asyncio
    async def test_ids_assigned_after_shuffle(self):
        """Test that order follows a uniform shuffle and ids are sequential."""
        records = make_records(12)
        source = QuestionSource(
            create_question_mock(records),
            quiz_config=QuizConfig(question_count=12),
            rng=random.Random(42),
        )
        questions = await source.fetch()

        expected = [r["text"] for r in records]
        random.Random(42).shuffle(expected)

        assert [q.text for q in questions] == expected
        assert [q.id for q in questions] == list(range(12))

    @pytest.mark.asyncio
    async def test_topics_interleaved(self):
        """Test that grouped source order does not survive."""
        records = make_records(30)
        source = QuestionSource(
            create_question_mock(records),
            quiz_config=QuizConfig(question_count=30),
            rng=random.Random(7),
        )
        questions = await source.fetch()

        assert [q.text for q in questions] != [r["text"] for r in records]
        # Grouped input has only 2 topic changes; a shuffle has many more
        changes = sum(1 for a, b in zip(questions, questions[1:]) if a.topic != b.topic)
        assert changes > 2

    @pytest.mark.asyncio
    async def test_extra_questions_truncated(self):
        """Test that a larger batch is cut to the target count."""
        source = QuestionSource(
            create_question_mock(make_records(8)),
            quiz_config=QuizConfig(question_count=5),
        )
        questions = await source.fetch()

        assert len(questions) == 5
        assert [q.id for q in questions] == list(range(5))
        assert len({q.text for q in questions}) == 5

    @pytest.mark.asyncio
    async def test_short_batch_accepted(self):
        """Test that fewer questions than requested are still playable."""
        source = QuestionSource(
            create_question_mock(make_records(3)),
            quiz_config=QuizConfig(question_count=25),
        )
        questions = await source.fetch()

        assert len(questions) == 3

    @pytest.mark.asyncio
    async def test_usage_recorded(self):
        """Test token usage tracking."""
        source = QuestionSource(MockProvider(token_count=321), quiz_config=QuizConfig(question_count=3))
        await source.fetch()

        assert source.last_usage["output_tokens"] == 321
        assert source.last_usage["input_tokens"] > 0

    @pytest.mark.asyncio
    async def test_single_request(self):
        """Test that one fetch makes exactly one provider call."""
        provider = MockProvider()
        source = QuestionSource(provider, quiz_config=QuizConfig(question_count=3))
        await source.fetch()

        assert provider.calls == 1


class TestToolCalling:
    """Tests for the tool calling path."""

    @pytest.mark.asyncio
    async def test_batch_via_tool_call(self):
        """Test that tool arguments are used when the provider supports tools."""
        provider = create_question_mock(make_records(4), tool_calling=True)
        source = QuestionSource(provider, quiz_config=QuizConfig(question_count=4))
        questions = await source.fetch()

        assert len(questions) == 4
        assert provider.calls == 1

    @pytest.mark.asyncio
    async def test_model_skips_tool(self):
        """Test content parsing when the model answers without calling the tool."""
        reply = "Here you go:\n```json\n" + json.dumps(make_records(3)) + "\n```"
        provider = MockProvider(fixed_response=reply, tool_calling=True)
        source = QuestionSource(provider, quiz_config=QuizConfig(question_count=3))
        questions = await source.fetch()

        assert len(questions) == 3
        assert provider.calls == 1

    @pytest.mark.asyncio
    async def test_fallback_when_tools_rejected(self):
        """Test falling back to a JSON prompt on ToolCallError."""
        provider = ToolsUnsupportedMock()
        source = QuestionSource(provider, quiz_config=QuizConfig(question_count=6))
        questions = await source.fetch()

        assert len(questions) == 6

    def test_tool_schema(self):
        """Test the tool wraps the batch schema."""
        assert QUESTION_BATCH_TOOL.parameters["required"] == ["questions"]


class TestFailures:
    """Tests for failure handling."""

    @pytest.mark.asyncio
    async def test_provider_failure(self):
        """Test that transport errors become one user-facing error."""
        config = QuizConfig(question_count=5)
        source = QuestionSource(MockProvider(fail_rate=1.0), quiz_config=config)

        with pytest.raises(QuestionGenerationError) as exc_info:
            await source.fetch()

        assert exc_info.value.kind == "source_unavailable"
        assert str(exc_info.value) == config.failure_message
        assert isinstance(exc_info.value.__cause__, SourceUnavailable)
        assert "Simulated" not in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_not_json(self):
        """Test that prose is a schema violation."""
        source = QuestionSource(MockProvider(fixed_response="Sorry, I can't do that."), quiz_config=QuizConfig())

        with pytest.raises(QuestionGenerationError) as exc_info:
            await source.fetch()

        assert exc_info.value.kind == "schema_violation"
        assert isinstance(exc_info.value.__cause__, SchemaViolation)

    @pytest.mark.asyncio
    async def test_empty_array(self):
        """Test that an empty batch is a schema violation."""
        source = QuestionSource(MockProvider(fixed_response="[]"), quiz_config=QuizConfig())

        with pytest.raises(QuestionGenerationError) as exc_info:
            await source.fetch()

        assert exc_info.value.kind == "schema_violation"

    @pytest.mark.asyncio
    async def test_one_malformed_question(self):
        """Test that one bad record fails the whole batch."""
        records = make_records(5)
        records[3]["options"] = ["only", "two"]
        source = QuestionSource(create_question_mock(records), quiz_config=QuizConfig())

        with pytest.raises(QuestionGenerationError) as exc_info:
            await source.fetch()

        assert exc_info.value.kind == "schema_violation"

    @pytest.mark.asyncio
    async def test_custom_failure_message(self):
        """Test that the configured message is surfaced."""
        config = QuizConfig(failure_message="Gagal membuat soal. Silakan coba lagi.")
        source = QuestionSource(MockProvider(fail_rate=1.0), quiz_config=config)

        with pytest.raises(QuestionGenerationError, match="Gagal membuat soal"):
            await source.fetch()


    @pytest.mark.asyncio
    async def test_unexpected_provider_error(self):
        """Test that a provider bug still surfaces as the one user-facing error."""
        config = QuizConfig(question_count=3)
        source = QuestionSource(CrashingMock(), quiz_config=config)

        with pytest.raises(QuestionGenerationError) as exc_info:
            await source.fetch()

        assert exc_info.value.kind == "source_unavailable"
        assert str(exc_info.value) == config.failure_message
        assert isinstance(exc_info.value.__cause__, SourceUnavailable)
        assert isinstance(exc_info.value.__cause__.__cause__, RuntimeError)

    @pytest.mark.parametrize("body", [
        [],
        {"success": True, "result": "oops"},
        {"success": True, "result": {"tool_calls": "x"}},
    ])
    @pytest.mark.asyncio
    async def test_malformed_cloudflare_reply(self, body):
        """Test that an off-contract Cloudflare body is a source failure."""
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=body))
        provider = CloudflareAIProvider(api_token="token", account_id="acct", transport=transport)
        source = QuestionSource(provider, quiz_config=QuizConfig(question_count=3))

        with pytest.raises(QuestionGenerationError) as exc_info:
            await source.fetch()

        assert exc_info.value.kind == "source_unavailable"
        assert isinstance(exc_info.value.__cause__.__cause__, MalformedResponse)

        await provider.close()


class TestMockQuestionBank:
    """Tests for the mock question generator."""

    def test_generates_valid_records(self):
        """Test that mock records pass validation."""
        from grammar_master.questions.schema import parse_question_batch

        records = generate_mock_questions(25, seed=3)
        questions = parse_question_batch(records)

        assert len(questions) == 25

    def test_topic_filter(self):
        """Test restricting topics."""
        records = generate_mock_questions(6, topics=["Past"])

        assert {r["topic"] for r in records} == {"Past"}
