"""
Claude (Anthropic) provider

Uses the Anthropic SDK. Tool calling goes through the Messages API
tools parameter; a forced tool_choice makes Claude return the question
batch as a tool_use block instead of prose.
"""

import os
from typing import Optional

from .base import (
    ModelProvider, ModelResponse, ProviderError, AuthenticationError,
    ToolDefinition, ToolCall, classify_error
)


class ClaudeProvider(ModelProvider):
    """
    Anthropic Claude provider.

    API key comes from the constructor or ANTHROPIC_API_KEY.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        default_model: str = "claude-sonnet-4-20250514",
    ):
        self._api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        self._default_model = default_model
        self._client = None

    def _get_client(self):
        if self._client is None:
            if not self._api_key:
                raise AuthenticationError(
                    "No Anthropic API key provided. Set ANTHROPIC_API_KEY or pass api_key to constructor."
                )
            try:
                import anthropic
            except ImportError as e:
                raise ProviderError("anthropic package not installed. Run: pip install anthropic") from e
            self._client = anthropic.AsyncAnthropic(api_key=self._api_key)
        return self._client

    @property
    def name(self) -> str:
        return "claude"

    @property
    def default_model(self) -> str:
        return self._default_model

    @property
    def supports_tools(self) -> bool:
        return True

    @staticmethod
    def _tool_spec(tool: ToolDefinition) -> dict:
        return {"name": tool.name, "description": tool.description, "input_schema": tool.parameters}

    @staticmethod
    def _tool_choice(tool_choice: str) -> dict:
        if tool_choice in ("auto", "any"):
            return {"type": tool_choice}
        return {"type": "tool", "name": tool_choice}

    def _request(self, prompt, system, model, max_tokens, temperature) -> dict:
        request = {
            "model": model or self._default_model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            request["system"] = system
        # Anthropic rejects temperatures outside 0-1
        if temperature is not None:
            request["temperature"] = min(1.0, max(0.0, temperature))
        return request

    async def _send(self, request: dict) -> ModelResponse:
        client = self._get_client()
        try:
            message = await client.messages.create(**request)
        except Exception as e:
            raise classify_error("Claude", e) from e

        text_parts = []
        tool_calls = []
        for block in message.content:
            if getattr(block, "type", None) == "tool_use":
                tool_calls.append(ToolCall(tool_name=block.name, arguments=block.input))
            elif hasattr(block, "text"):
                text_parts.append(block.text)

        return ModelResponse(
            content="".join(text_parts),
            model=message.model,
            provider=self.name,
            usage={
                "input_tokens": message.usage.input_tokens,
                "output_tokens": message.usage.output_tokens,
            },
            tool_calls=tool_calls,
        )

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
        return await self._send(self._request(prompt, system, model, max_tokens, temperature))

    async def generate_with_tools(
        self,
        prompt: str,
        tools: list[ToolDefinition],
        *,
        system: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        tool_choice: Optional[str] = None,
        **kwargs
    ) -> ModelResponse:
        request = self._request(prompt, system, model, max_tokens, temperature)
        request["tools"] = [self._tool_spec(t) for t in tools]
        if tool_choice:
            request["tool_choice"] = self._tool_choice(tool_choice)
        return await self._send(request)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
