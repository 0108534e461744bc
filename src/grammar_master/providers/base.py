"""
Provider interface behind the question source

A provider turns one prompt into one model reply. The question source
asks for a whole question batch in a single reply, either as text that
contains JSON or as a structured call of the batch tool, so a reply is
modelled as text plus zero or more tool calls.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional


class ProviderError(Exception):
    """The model backend could not produce a reply."""
    pass


class RateLimitError(ProviderError):
    pass


class AuthenticationError(ProviderError):
    """Missing or rejected credentials."""
    pass


class MalformedResponse(ProviderError):
    """The backend answered, but not in the shape its API documents."""
    pass


class ToolCallError(ProviderError):
    """The provider or model cannot do tool calling; callers fall back to a JSON prompt."""
    pass


@dataclass
class ToolDefinition:
    """A function the model may call; parameters is a JSON Schema object."""
    name: str
    description: str
    parameters: dict[str, Any]


@dataclass
class ToolCall:
    tool_name: str
    arguments: dict[str, Any]


@dataclass
class ModelResponse:
    """One model reply: free text, structured tool calls, and token usage."""
    content: str
    model: str
    provider: str
    usage: dict = field(default_factory=dict)
    tool_calls: list[ToolCall] = field(default_factory=list)

    @property
    def input_tokens(self) -> int:
        return self.usage.get("input_tokens", 0)

    @property
    def output_tokens(self) -> int:
        return self.usage.get("output_tokens", 0)

    def tool_arguments(self, tool_name: str) -> Optional[dict[str, Any]]:
        """Arguments of the first call to tool_name, or None if the model did not call it."""
        for call in self.tool_calls:
            if call.tool_name == tool_name:
                return call.arguments
        return None


def classify_error(provider_name: str, error: Exception) -> ProviderError:
    """
    Map an SDK exception onto the provider error hierarchy.

    SDK exception classes differ per backend, so the mapping goes by
    message: 429/rate limits and 401/api key failures are recognised,
    anything else is a plain ProviderError.
    """
    if isinstance(error, ProviderError):
        return error

    message = str(error).lower()
    if "rate" in message or "429" in message:
        return RateLimitError(f"{provider_name} rate limit exceeded: {error}")
    if "auth" in message or "401" in message or "api key" in message:
        return AuthenticationError(f"{provider_name} authentication failed: {error}")
    return ProviderError(f"{provider_name} API error: {error}")


class ModelProvider(ABC):
    """
    A model backend the question source can ask for a batch.

    Subclasses create their client lazily on first use, so constructing a
    provider never touches the network, and release it in close().
    """

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def default_model(self) -> str:
        pass

    @property
    def supports_tools(self) -> bool:
        """Whether generate_with_tools() can return structured tool calls."""
        return False

    @abstractmethod
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
        """
        Send a prompt and return the reply text.

        Raises:
            ProviderError: Or a subclass, for every backend failure
        """

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
        """
        Send a prompt with tools the model may call.

        tool_choice is "auto", "any", or the name of the one tool the
        model must call. The model may still answer in text; callers
        check tool_calls before falling back to content.

        Raises:
            ToolCallError: If this provider has no tool calling
        """
        raise ToolCallError(f"{self.name} provider does not support tool calling")

    async def close(self) -> None:
        """Release the client. Safe to call more than once."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model={self.default_model!r})"
