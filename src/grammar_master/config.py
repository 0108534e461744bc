"""
grammar-master configuration

Question policy, model choices and provider settings live here.
Environment variables override defaults for deployment flexibility.
"""

import os
from dataclasses import dataclass, field
from typing import Literal

from .questions.schema import Topic


@dataclass
class QuizConfig:
    """Question batch policy"""
    question_count: int = int(os.getenv("QUESTION_COUNT", "25"))
    explanation_language: str = os.getenv("EXPLANATION_LANGUAGE", "Indonesian")
    failure_message: str = os.getenv(
        "FAILURE_MESSAGE", "Question generation failed. Please try again."
    )
    topics: tuple = field(default_factory=lambda: tuple(Topic))


@dataclass
class ModelConfig:
    """AI model selection"""
    provider: Literal["claude", "openai", "deepseek", "kimi", "cloudflare", "mock"] = os.getenv(
        "QUIZ_PROVIDER", "claude"
    )
    model: str = os.getenv("QUIZ_MODEL", "")  # Empty = use provider default
    temperature: float = float(os.getenv("QUIZ_TEMPERATURE", "0.8"))
    max_tokens: int = int(os.getenv("QUIZ_MAX_TOKENS", "8192"))

    # Default models per provider
    PROVIDER_DEFAULTS = {
        "claude": "claude-sonnet-4-20250514",
        "openai": "gpt-4o-mini",
        "deepseek": "deepseek-chat",
        "kimi": "kimi-k2-0528",
        "cloudflare": "@cf/meta/llama-4-scout-17b-16e-instruct",
        "mock": "mock-model-v1",
    }

    def get_model(self) -> str:
        """Get model, falling back to provider default."""
        return self.model or self.PROVIDER_DEFAULTS.get(self.provider, "")


@dataclass
class Config:
    """Master config, built once at startup and passed explicitly"""
    quiz: QuizConfig = field(default_factory=QuizConfig)
    models: ModelConfig = field(default_factory=ModelConfig)

    @classmethod
    def mock_mode(cls) -> "Config":
        """For development/testing: no API calls"""
        cfg = cls()
        cfg.models.provider = "mock"
        cfg.models.model = ""
        return cfg

    @classmethod
    def quick_mode(cls) -> "Config":
        """Short rounds: fewer questions, cheaper generation"""
        cfg = cls()
        cfg.quiz.question_count = 5
        cfg.models.max_tokens = 2048
        return cfg
