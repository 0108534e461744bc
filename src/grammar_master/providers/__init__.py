"""
AI model providers for grammar-master

Supports multiple AI providers with a common interface.
Providers: Claude (Anthropic), OpenAI-compatible (OpenAI, DeepSeek, Kimi),
Cloudflare Workers AI, and a Mock provider for tests and offline runs.
"""

from .base import (
    ModelProvider, ModelResponse, ProviderError, RateLimitError,
    AuthenticationError, MalformedResponse, ToolCallError, ToolDefinition, ToolCall
)
from .claude import ClaudeProvider
from .openai_compat import OpenAICompatibleProvider, PRESETS as OPENAI_PRESETS
from .cloudflare import CloudflareAIProvider
from .mock import MockProvider

__all__ = [
    # Base classes and types
    "ModelProvider",
    "ModelResponse",
    "ProviderError",
    "RateLimitError",
    "AuthenticationError",
    "MalformedResponse",
    "ToolCallError",
    "ToolDefinition",
    "ToolCall",
    # Providers
    "ClaudeProvider",
    "OpenAICompatibleProvider",
    "CloudflareAIProvider",
    "MockProvider",
    "get_provider",
]

PROVIDER_NAMES = ["claude", *OPENAI_PRESETS.keys(), "cloudflare", "mock"]


def get_provider(name: str, **kwargs) -> ModelProvider:
    """
    Factory function to get a provider by name.

    Args:
        name: Provider name ('claude', 'openai', 'deepseek', 'kimi', 'cloudflare', 'mock')
        **kwargs: Provider-specific options (api_key, default_model, ...)

    Returns:
        Configured ModelProvider instance

    Raises:
        ValueError: If provider name is unknown
    """
    if name in OPENAI_PRESETS:
        return OpenAICompatibleProvider(preset=name, **kwargs)

    providers = {
        "claude": ClaudeProvider,
        "cloudflare": CloudflareAIProvider,
        "mock": MockProvider,
    }

    if name not in providers:
        raise ValueError(f"Unknown provider: {name}. Valid options: {PROVIDER_NAMES}")

    if name == "mock" and "default_model" in kwargs:
        kwargs["_default_model"] = kwargs.pop("default_model")

    return providers[name](**kwargs)
