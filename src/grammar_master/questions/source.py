"""
Question Source - produces a ready-to-play batch of questions

Requests one batch from a model provider, validates every record, shuffles
the batch so topics are interleaved, and assigns final sequential ids.
Any failure invalidates the whole batch and surfaces as a single
user-facing QuestionGenerationError.

Supports tool calling when the provider supports it, with fallback to JSON prompts.
"""

import json
import logging
import random
import re
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Optional

from ..providers.base import ModelProvider, ProviderError, ToolCallError, ToolDefinition
from .prompts import QUESTION_SYSTEM_PROMPT, format_question_prompt
from .schema import (
    Question, QuestionSourceError, SchemaViolation, QUESTION_BATCH_SCHEMA, parse_question_batch
)

if TYPE_CHECKING:
    from ..config import QuizConfig

logger = logging.getLogger(__name__)


QUESTION_BATCH_TOOL = ToolDefinition(
    name="submit_quiz_questions",
    description=(
        "Submit a batch of multiple-choice grammar questions. "
        "Call this tool once with every question you wrote."
    ),
    parameters=QUESTION_BATCH_SCHEMA,
)


class SourceUnavailable(QuestionSourceError):
    """The question source could not be reached or returned an API error."""
    pass


class QuestionGenerationError(Exception):
    """
    The one error fetch() raises.

    str() is the user-facing message; kind names the internal cause
    ("source_unavailable" or "schema_violation"). The original exception
    is chained as __cause__.
    """

    def __init__(self, message: str, kind: str):
        super().__init__(message)
        self.message = message
        self.kind = kind


def extract_json(content: str) -> Any:
    """
    Pull a JSON value out of a model reply.

    Handles bare JSON, fenced ```json blocks and JSON surrounded by prose.

    Raises:
        SchemaViolation: If no valid JSON is found
    """
    text = (content or "").strip()
    if not text:
        raise SchemaViolation("empty response")

    fence = re.search(r"```(?:json)?\s*([\s\S]*?)```", text)
    if fence:
        text = fence.group(1).strip()

    # Outermost value first: whichever bracket opens earliest
    candidates = [text]
    starts = sorted(i for i in (text.find("{"), text.find("[")) if i >= 0)
    for start in starts:
        end = text.rfind("}" if text[start] == "{" else "]")
        if end > start:
            candidates.append(text[start:end + 1])

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue

    raise SchemaViolation("response did not contain valid JSON")


class QuestionSource:
    """
    Question source adapter.

    Constructed once at startup with an explicit provider and question
    policy; fetch() takes no parameters.
    """

    def __init__(
        self,
        provider: ModelProvider,
        quiz_config: "QuizConfig",
        model: Optional[str] = None,
        temperature: float = 0.8,
        max_tokens: int = 8192,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize question source.

        Args:
            provider: AI model provider to use
            quiz_config: Question count, topics, explanation language and failure message
            model: Optional model override (uses provider default if not specified)
            temperature: Sampling temperature
            max_tokens: Maximum tokens for the batch
            rng: Random generator used for shuffling (tests pass a seeded one)
        """
        self.provider = provider
        self.quiz_config = quiz_config
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._rng = rng or random.Random()
        self.last_usage: dict = {}

    @property
    def question_count(self) -> int:
        return self.quiz_config.question_count

    async def fetch(self) -> list[Question]:
        """
        Fetch a complete, shuffled batch of questions.

        Returns:
            Questions with ids 0..N-1 in presentation order

        Raises:
            QuestionGenerationError: On any transport or validation failure
        """
        try:
            raw = await self._request_batch()
            questions = parse_question_batch(raw)
        except QuestionSourceError as e:
            kind = "schema_violation" if isinstance(e, SchemaViolation) else "source_unavailable"
            logger.error(f"Failed to generate quiz ({kind}): {e}")
            raise QuestionGenerationError(self.quiz_config.failure_message, kind=kind) from e

        if len(questions) < self.question_count:
            logger.warning(
                f"Question source returned {len(questions)} questions, expected {self.question_count}"
            )

        # Shuffle so topics are interleaved, then assign final ids
        self._rng.shuffle(questions)
        questions = questions[:self.question_count]

        logger.debug(f"Generated {len(questions)} questions")
        return [replace(q, id=i) for i, q in enumerate(questions)]

    async def _request_batch(self) -> Any:
        """Make the single request for a batch and return the raw JSON value."""
        try:
            if self.provider.supports_tools:
                try:
                    return await self._request_with_tools()
                except ToolCallError as e:
                    logger.warning(f"Tool calling failed, falling back to JSON prompt: {e}")
            return await self._request_json()
        except QuestionSourceError:
            raise
        except ProviderError as e:
            raise SourceUnavailable(str(e)) from e
        except Exception as e:
            # fetch() raises nothing but QuestionGenerationError
            logger.exception(f"Unexpected error from {self.provider.name} provider")
            raise SourceUnavailable(f"unexpected {type(e).__name__}: {e}") from e

    async def _request_with_tools(self) -> Any:
        prompt = format_question_prompt(
            count=self.question_count,
            topics=self.quiz_config.topics,
            language=self.quiz_config.explanation_language,
            tool_name=QUESTION_BATCH_TOOL.name,
        )

        response = await self.provider.generate_with_tools(
            prompt=prompt,
            tools=[QUESTION_BATCH_TOOL],
            system=QUESTION_SYSTEM_PROMPT,
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            tool_choice=QUESTION_BATCH_TOOL.name,
        )
        self._record_usage(response)

        arguments = response.tool_arguments(QUESTION_BATCH_TOOL.name)
        if arguments is not None:
            logger.debug("Question batch received via tool call")
            return arguments

        # Model responded without using the tool
        logger.debug("Model didn't use tool, falling back to content parsing")
        return extract_json(response.content)

    async def _request_json(self) -> Any:
        prompt = format_question_prompt(
            count=self.question_count,
            topics=self.quiz_config.topics,
            language=self.quiz_config.explanation_language,
        )

        response = await self.provider.generate(
            prompt=prompt,
            system=QUESTION_SYSTEM_PROMPT,
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        self._record_usage(response)

        return extract_json(response.content)

    def _record_usage(self, response) -> None:
        self.last_usage = {
            "input_tokens": response.input_tokens,
            "output_tokens": response.output_tokens,
        }
