"""
Mock provider for testing

Returns configurable responses without making API calls. By default it
answers question generation prompts with a well-formed batch drawn from a
small built-in bank, so the whole quiz can run offline.
"""

import asyncio
import json
import random
import re
from typing import Optional, List, Callable, Iterable
from dataclasses import dataclass

from .base import ModelProvider, ModelResponse, ProviderError, ToolDefinition, ToolCall


NAMES = ["Rina", "Budi", "Sarah", "Tom", "Maya", "Andi", "Lisa", "David"]

# topic -> list of (template, options, correct index, explanation)
QUESTION_BANK = {
    "Present": [
        (
            "{name} ___ to the office by bus every morning.",
            ["go", "goes", "went", "has gone"],
            1,
            "Kebiasaan sehari-hari memakai Simple Present. Subjek orang ketiga tunggal memakai 'goes'.",
        ),
        (
            "Water ___ at 100 degrees Celsius.",
            ["boil", "boiled", "boils", "has boiled"],
            2,
            "Fakta umum memakai Simple Present; subjek tunggal 'water' memakai 'boils'.",
        ),
        (
            "{name} and her friends usually ___ lunch at noon.",
            ["has", "have", "had", "having"],
            1,
            "Kata 'usually' menandakan kebiasaan. Subjek jamak memakai 'have'.",
        ),
    ],
    "Past": [
        (
            "{name} ___ the report yesterday afternoon.",
            ["finish", "finishes", "finished", "has finished"],
            2,
            "Kata 'yesterday' menunjukkan waktu lampau yang jelas, jadi memakai Simple Past 'finished'.",
        ),
        (
            "We ___ to Bali last year.",
            ["go", "went", "have gone", "goes"],
            1,
            "'Last year' adalah penanda Simple Past; bentuk lampau dari 'go' adalah 'went'.",
        ),
        (
            "{name} ___ not attend the meeting two days ago.",
            ["do", "does", "did", "has"],
            2,
            "Kalimat negatif Simple Past memakai 'did not' diikuti verb bentuk dasar.",
        ),
    ],
    "Present Perfect": [
        (
            "{name} ___ in Jakarta since 2015.",
            ["lives", "lived", "has lived", "is live"],
            2,
            "'Since' menunjukkan aksi yang dimulai di masa lalu dan masih berlangsung: Present Perfect.",
        ),
        (
            "I ___ never ___ sushi before.",
            ["have / eaten", "did / eat", "has / eaten", "am / eating"],
            0,
            "Pengalaman tanpa waktu spesifik memakai Present Perfect: 'have never eaten'.",
        ),
        (
            "{name} ___ just ___ the email to the client.",
            ["have / sent", "has / sent", "did / send", "is / sending"],
            1,
            "'Just' menandakan aksi yang baru selesai; subjek tunggal memakai 'has sent'.",
        ),
    ],
}


def generate_mock_questions(
    count: int = 25,
    topics: Optional[Iterable[str]] = None,
    seed: Optional[int] = None,
) -> List[dict]:
    """
    Generate raw question records in the wire format.

    Records are grouped by topic (as a model tends to return them), so the
    question source's shuffle is observable.

    Args:
        count: Number of questions to generate
        topics: Topic labels to cycle through (defaults to all bank topics)
        seed: Optional seed for name selection

    Returns:
        List of dicts with text, options, correctIndex, explanation, topic
    """
    rng = random.Random(seed)
    topic_list = [str(getattr(t, "value", t)) for t in (topics or QUESTION_BANK.keys())]
    topic_list = list(dict.fromkeys(t for t in topic_list if t in QUESTION_BANK)) or list(QUESTION_BANK.keys())

    per_topic = {t: 0 for t in topic_list}
    for i in range(count):
        per_topic[topic_list[i % len(topic_list)]] += 1

    records = []
    for topic in topic_list:
        bank = QUESTION_BANK[topic]
        for i in range(per_topic[topic]):
            template, options, correct, explanation = bank[i % len(bank)]
            records.append({
                "text": template.format(name=rng.choice(NAMES)),
                "options": list(options),
                "correctIndex": correct,
                "explanation": explanation,
                "topic": topic,
            })

    return records


@dataclass
class MockProvider(ModelProvider):
    """
    Mock provider for testing.

    Can be configured with custom response generators or fixed responses.
    With tool_calling=True it advertises tool support and returns the
    JSON content as the arguments of the requested tool.
    """

    _name: str = "mock"
    _default_model: str = "mock-model-v1"
    fixed_response: Optional[str] = None
    response_generator: Optional[Callable[[str], str]] = None
    delay_seconds: float = 0.0
    fail_rate: float = 0.0  # Probability of raising an error
    token_count: int = 100
    tool_calling: bool = False
    seed: Optional[int] = None  # Drives names in generated batches and simulated failures

    def __post_init__(self):
        self.calls = 0
        self.closed = False
        # Simulated failures use their own generator, seeded from `seed`
        self._rng = random.Random(self.seed)

    @property
    def name(self) -> str:
        return self._name

    @property
    def default_model(self) -> str:
        return self._default_model

    @property
    def supports_tools(self) -> bool:
        return self.tool_calling

    async def generate(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        **kwargs
    ) -> ModelResponse:
        """Generate a mock response."""
        self.calls += 1

        # Simulate delay
        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)

        # Simulate failures
        if self.fail_rate > 0 and self._rng.random() < self.fail_rate:
            raise ProviderError("Simulated mock provider failure")

        if self.fixed_response is not None:
            content = self.fixed_response
        elif self.response_generator is not None:
            content = self.response_generator(prompt)
        else:
            content = self._default_response(prompt, system)

        return ModelResponse(
            content=content,
            model=model or self._default_model,
            provider=self.name,
            usage={
                "input_tokens": len(prompt.split()) * 2,
                "output_tokens": self.token_count,
            },
        )

    async def generate_with_tools(
        self,
        prompt: str,
        tools: List[ToolDefinition],
        *,
        system: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        tool_choice: Optional[str] = None,
        **kwargs
    ) -> ModelResponse:
        """Return the mock content as a call of the first requested tool."""
        if not self.tool_calling:
            return await super().generate_with_tools(prompt, tools)

        response = await self.generate(
            prompt, system=system, model=model, max_tokens=max_tokens, temperature=temperature
        )

        try:
            arguments = json.loads(response.content)
        except json.JSONDecodeError:
            # Model "answered in prose" instead of calling the tool
            return response

        if isinstance(arguments, list):
            arguments = {"questions": arguments}

        tool_name = tool_choice if tool_choice not in (None, "auto", "any") else tools[0].name
        response.tool_calls = [ToolCall(tool_name=tool_name, arguments=arguments)]
        response.content = ""
        return response

    async def close(self) -> None:
        self.closed = True

    def _default_response(self, prompt: str, system: Optional[str] = None) -> str:
        """
        Generate a contextual mock response based on prompt content.

        Question generation prompts get a question batch; anything else gets
        a generic JSON payload.
        """
        prompt_lower = prompt.lower()

        if "question" in prompt_lower:
            count_match = re.search(r"\bwrite (\d+)\b", prompt_lower)
            count = int(count_match.group(1)) if count_match else 25
            topics = re.findall(r'"([^"]+)"', prompt)
            return json.dumps({
                "questions": generate_mock_questions(count, topics or None, seed=self.seed)
            }, indent=2)

        return json.dumps({
            "message": "Mock response generated",
            "prompt_length": len(prompt),
            "has_system": system is not None,
        }, indent=2)


def create_question_mock(records: List[dict], tool_calling: bool = False) -> MockProvider:
    """Create a mock provider that always returns the given raw records."""

    def generator(prompt: str) -> str:
        return json.dumps({"questions": records}, indent=2)

    return MockProvider(response_generator=generator, tool_calling=tool_calling)
