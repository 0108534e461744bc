"""
Cloudflare Workers AI provider

Talks to the Workers AI REST API with httpx. Replies are validated
against the documented envelope ({"success": ..., "result": {...}}) before
anything is read from them; any other shape is a MalformedResponse.
"""

import os
import json
from typing import Optional

import httpx

from .base import (
    ModelProvider, ModelResponse, ProviderError, RateLimitError,
    AuthenticationError, MalformedResponse, ToolDefinition, ToolCall
)
from .openai_compat import openai_tool_spec, parse_tool_arguments


class CloudflareAIProvider(ModelProvider):
    """
    Cloudflare Workers AI provider.

    Requires CLOUDFLARE_API_TOKEN (Workers AI permission) and
    CLOUDFLARE_ACCOUNT_ID, from the environment or the constructor.
    """

    BASE_URL = "https://api.cloudflare.com/client/v4/accounts"

    def __init__(
        self,
        api_token: Optional[str] = None,
        account_id: Optional[str] = None,
        default_model: str = "@cf/meta/llama-4-scout-17b-16e-instruct",
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            api_token: Cloudflare API token (falls back to env var)
            account_id: Cloudflare account ID (falls back to env var)
            default_model: Default model to use
            timeout: Request timeout in seconds; a full batch is slow to generate
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self._api_token = api_token or os.getenv("CLOUDFLARE_API_TOKEN")
        self._account_id = account_id or os.getenv("CLOUDFLARE_ACCOUNT_ID")
        self._default_model = default_model
        self._timeout = timeout
        self._transport = transport
        self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            if not self._api_token:
                raise AuthenticationError(
                    "No Cloudflare API token provided. Set CLOUDFLARE_API_TOKEN or pass api_token to constructor."
                )
            if not self._account_id:
                raise AuthenticationError(
                    "No Cloudflare account ID provided. Set CLOUDFLARE_ACCOUNT_ID or pass account_id to constructor."
                )
            self._client = httpx.AsyncClient(
                headers={"Authorization": f"Bearer {self._api_token}"},
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    @property
    def name(self) -> str:
        return "cloudflare"

    @property
    def default_model(self) -> str:
        return self._default_model

    @property
    def supports_tools(self) -> bool:
        return True

    async def _post(self, model: str, payload: dict):
        """POST to the model endpoint and return the decoded JSON body."""
        client = self._get_client()
        url = f"{self.BASE_URL}/{self._account_id}/ai/run/{model}"

        try:
            response = await client.post(url, json=payload)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 429:
                raise RateLimitError(f"Cloudflare rate limit exceeded: {e}") from e
            if status in (401, 403):
                raise AuthenticationError(f"Cloudflare authentication failed: {e}") from e
            raise ProviderError(f"Cloudflare API error: {e}") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Cloudflare request failed: {e}") from e
        except ValueError as e:
            raise MalformedResponse(f"Cloudflare returned a non-JSON body: {e}") from e

    def _to_response(self, model: str, data) -> ModelResponse:
        if not isinstance(data, dict):
            raise MalformedResponse(f"Cloudflare returned {type(data).__name__}, expected an object")
        if not data.get("success"):
            raise ProviderError(f"Cloudflare API error: {data.get('errors', [])}")

        result = data.get("result") or {}
        if not isinstance(result, dict):
            raise MalformedResponse(f"Cloudflare result is {type(result).__name__}, expected an object")

        content = result.get("response") or ""
        if not isinstance(content, str):
            # Some models hand back structured output already decoded
            content = json.dumps(content)

        raw_calls = result.get("tool_calls") or []
        if not isinstance(raw_calls, list) or not all(isinstance(tc, dict) for tc in raw_calls):
            raise MalformedResponse("Cloudflare tool_calls is not a list of objects")
        tool_calls = [
            ToolCall(tool_name=tc.get("name", ""), arguments=parse_tool_arguments(tc.get("arguments")))
            for tc in raw_calls
        ]

        # Token counts are only reported by some models
        usage = {}
        if isinstance(result.get("usage"), dict):
            usage = {
                "input_tokens": result["usage"].get("prompt_tokens", 0),
                "output_tokens": result["usage"].get("completion_tokens", 0),
            }

        return ModelResponse(
            content=content,
            model=model,
            provider=self.name,
            usage=usage,
            tool_calls=tool_calls,
        )

    @staticmethod
    def _payload(prompt: str, system: Optional[str], max_tokens: int, temperature: float) -> dict:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return {"messages": messages, "max_tokens": max_tokens, "temperature": temperature}

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
        model = model or self._default_model
        data = await self._post(model, self._payload(prompt, system, max_tokens, temperature))
        return self._to_response(model, data)

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
        model = model or self._default_model
        payload = self._payload(prompt, system, max_tokens, temperature)
        payload["tools"] = [openai_tool_spec(t) for t in tools]
        data = await self._post(model, payload)
        return self._to_response(model, data)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
