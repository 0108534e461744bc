"""
OpenAI-compatible provider

One provider for every backend that speaks the OpenAI chat completions API:
OpenAI itself, DeepSeek and Kimi (Moonshot). The function-tool format
defined here is also what Cloudflare Workers AI accepts.
"""

import json
import os
from typing import Optional

from .base import (
    ModelProvider, ModelResponse, ProviderError, AuthenticationError,
    ToolDefinition, ToolCall, classify_error
)


# name -> (base_url, api key env var, default model)
PRESETS = {
    "openai": (None, "OPENAI_API_KEY", "gpt-4o-mini"),
    "deepseek": ("https://api.deepseek.com", "DEEPSEEK_API_KEY", "deepseek-chat"),
    "kimi": ("https://api.moonshot.cn/v1", "KIMI_API_KEY", "kimi-k2-0528"),
}


def openai_tool_spec(tool: ToolDefinition) -> dict:
    """Tool in the OpenAI function-calling format."""
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description,
            "parameters": tool.parameters,
        },
    }


def parse_tool_arguments(arguments) -> dict:
    """
    Decode function-call arguments.

    Backends send them as a JSON string (sometimes as an already-decoded
    object). Undecodable text is kept under "raw", which then fails batch
    validation instead of being silently dropped.
    """
    if isinstance(arguments, dict):
        return arguments
    try:
        decoded = json.loads(arguments or "{}")
    except (TypeError, json.JSONDecodeError):
        return {"raw": arguments}
    return decoded if isinstance(decoded, dict) else {"raw": decoded}


class OpenAICompatibleProvider(ModelProvider):
    """
    Provider for OpenAI-compatible chat completion APIs.

    API key comes from the constructor or the preset's environment
    variable (OPENAI_API_KEY, DEEPSEEK_API_KEY, KIMI_API_KEY).
    """

    def __init__(
        self,
        preset: str = "openai",
        api_key: Optional[str] = None,
        default_model: Optional[str] = None,
        base_url: Optional[str] = None,
    ):
        """
        Args:
            preset: Backend name ('openai', 'deepseek', 'kimi')
            api_key: API key (falls back to the preset's env var)
            default_model: Default model (falls back to the preset's model)
            base_url: API base URL override
        """
        if preset not in PRESETS:
            raise ValueError(f"Unknown preset: {preset}. Valid options: {list(PRESETS.keys())}")

        preset_url, key_env, preset_model = PRESETS[preset]
        self._preset = preset
        self._key_env = key_env
        self._api_key = api_key or os.getenv(key_env)
        self._default_model = default_model or preset_model
        self._base_url = base_url or preset_url
        self._client = None

    def _get_client(self):
        if self._client is None:
            if not self._api_key:
                raise AuthenticationError(
                    f"No {self._preset} API key provided. Set {self._key_env} or pass api_key to constructor."
                )
            try:
                from openai import AsyncOpenAI
            except ImportError as e:
                raise ProviderError("openai package not installed. Run: pip install openai") from e
            self._client = AsyncOpenAI(api_key=self._api_key, base_url=self._base_url)
        return self._client

    @property
    def name(self) -> str:
        return self._preset

    @property
    def default_model(self) -> str:
        return self._default_model

    @property
    def supports_tools(self) -> bool:
        return True

    def _request(self, prompt, system, model, max_tokens, temperature) -> dict:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return {
            "model": model or self._default_model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

    async def _send(self, request: dict) -> ModelResponse:
        client = self._get_client()
        try:
            completion = await client.chat.completions.create(**request)
        except Exception as e:
            raise classify_error(self._preset, e) from e

        content = ""
        tool_calls = []
        if completion.choices and completion.choices[0].message:
            message = completion.choices[0].message
            content = message.content or ""
            tool_calls = [
                ToolCall(tool_name=tc.function.name, arguments=parse_tool_arguments(tc.function.arguments))
                for tc in message.tool_calls or []
            ]

        usage = {}
        if completion.usage:
            usage = {
                "input_tokens": completion.usage.prompt_tokens,
                "output_tokens": completion.usage.completion_tokens,
            }

        return ModelResponse(
            content=content,
            model=completion.model,
            provider=self.name,
            usage=usage,
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
        request["tools"] = [openai_tool_spec(t) for t in tools]

        if tool_choice == "auto":
            request["tool_choice"] = "auto"
        elif tool_choice == "any":
            request["tool_choice"] = "required"
        elif tool_choice:
            request["tool_choice"] = {"type": "function", "function": {"name": tool_choice}}

        return await self._send(request)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(preset={self._preset!r}, model={self._default_model!r})"
