"""
Inference providers for model-backed extraction tiers.

Supports:
- Anthropic Claude (default; Haiku for cheap calls, Opus opt-in)
- OpenAI GPT (fallback when only an OpenAI key is configured)

Every provider exposes ``complete(prompt, max_tokens)`` returning the text
and token counts; cost is computed locally from ``PRICE_TABLE``.
"""

import json
import os
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import structlog

from ..core.models import TokenUsage

logger = structlog.get_logger(__name__)


# Model tiers
CHEAP_CLAUDE_MODEL = "claude-haiku-4-5-20251001"
EXPENSIVE_CLAUDE_MODEL = "claude-opus-4-5-20251101"
CHEAP_OPENAI_MODEL = "gpt-4o-mini"
EXPENSIVE_OPENAI_MODEL = "gpt-4o"

# USD per million tokens: (input, output)
PRICE_TABLE = {
    CHEAP_CLAUDE_MODEL: (1.0, 5.0),
    EXPENSIVE_CLAUDE_MODEL: (15.0, 75.0),
    CHEAP_OPENAI_MODEL: (0.15, 0.60),
    EXPENSIVE_OPENAI_MODEL: (2.50, 10.0),
}


def compute_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """
    Cost in USD for one call.

    Unknown models are priced at zero and logged.
    """
    if model not in PRICE_TABLE:
        logger.warning("model_price_unknown", model=model)
        return 0.0
    input_price, output_price = PRICE_TABLE[model]
    return (input_tokens * input_price + output_tokens * output_price) / 1_000_000


@dataclass
class Completion:
    """Raw provider response."""
    text: str
    input_tokens: int
    output_tokens: int
    model: str

    @property
    def usage(self) -> TokenUsage:
        return TokenUsage(
            model=self.model,
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
            cost_usd=compute_cost(self.model, self.input_tokens, self.output_tokens),
        )


JSON_BLOCK_PATTERN = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)
JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")


def extract_json_object(text: str) -> dict:
    """
    Pull the JSON object out of a model response.

    Handles markdown code blocks and surrounding prose.

    Raises:
        ValueError: If no JSON object is present or it does not parse
    """
    match = JSON_BLOCK_PATTERN.search(text)
    if match:
        candidate = match.group(1)
    else:
        match = JSON_OBJECT_PATTERN.search(text)
        if not match:
            raise ValueError("No JSON object in response")
        candidate = match.group(0)

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ValueError(f"Malformed JSON in response: {e}") from e

    if not isinstance(data, dict):
        raise ValueError("Response JSON is not an object")
    return data


class InferenceProvider(ABC):
    """Abstract base class for model providers."""

    name: str = "base"
    cheap_model: str = ""
    expensive_model: str = ""

    def __init__(self, model: str):
        self.model = model

    @abstractmethod
    async def complete(self, prompt: str, max_tokens: int) -> Completion:
        """Send one prompt and return the raw completion."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if provider is configured and available."""

    @abstractmethod
    def with_model(self, model: str) -> "InferenceProvider":
        """Same credentials, different model."""


class ClaudeProvider(InferenceProvider):
    """Anthropic Claude provider."""

    name = "claude"
    cheap_model = CHEAP_CLAUDE_MODEL
    expensive_model = EXPENSIVE_CLAUDE_MODEL

    def __init__(self, api_key: Optional[str] = None, model: str = CHEAP_CLAUDE_MODEL):
        super().__init__(model)
        self.api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        self._client = None

    def is_available(self) -> bool:
        return bool(self.api_key)

    def _get_client(self):
        """Lazy-load Anthropic client."""
        if self._client is None:
            import anthropic
            self._client = anthropic.AsyncAnthropic(api_key=self.api_key)
        return self._client

    def with_model(self, model: str) -> "ClaudeProvider":
        provider = ClaudeProvider(api_key=self.api_key, model=model)
        provider._client = self._client
        return provider

    async def complete(self, prompt: str, max_tokens: int) -> Completion:
        client = self._get_client()
        message = await client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )

        text = "".join(
            block.text for block in message.content if getattr(block, "type", "") == "text"
        )
        return Completion(
            text=text,
            input_tokens=message.usage.input_tokens,
            output_tokens=message.usage.output_tokens,
            model=self.model,
        )


class OpenAIProvider(InferenceProvider):
    """OpenAI GPT provider."""

    name = "openai"
    cheap_model = CHEAP_OPENAI_MODEL
    expensive_model = EXPENSIVE_OPENAI_MODEL

    def __init__(self, api_key: Optional[str] = None, model: str = CHEAP_OPENAI_MODEL):
        super().__init__(model)
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self._client = None

    def is_available(self) -> bool:
        return bool(self.api_key)

    def _get_client(self):
        """Lazy-load OpenAI client."""
        if self._client is None:
            from openai import AsyncOpenAI
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    def with_model(self, model: str) -> "OpenAIProvider":
        provider = OpenAIProvider(api_key=self.api_key, model=model)
        provider._client = self._client
        return provider

    async def complete(self, prompt: str, max_tokens: int) -> Completion:
        client = self._get_client()
        response = await client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_tokens,
            response_format={"type": "json_object"},
        )

        return Completion(
            text=response.choices[0].message.content or "",
            input_tokens=response.usage.prompt_tokens,
            output_tokens=response.usage.completion_tokens,
            model=self.model,
        )


def select_provider(
    preferred: Optional[str] = None,
    anthropic_api_key: Optional[str] = None,
    openai_api_key: Optional[str] = None,
) -> Optional[InferenceProvider]:
    """
    Pick an available provider.

    Preference order: the forced provider, then Claude, then OpenAI.

    Returns:
        Provider on its cheap model, or None if no key is configured
    """
    providers: dict[str, InferenceProvider] = {
        "claude": ClaudeProvider(api_key=anthropic_api_key),
        "openai": OpenAIProvider(api_key=openai_api_key),
    }

    if preferred:
        provider = providers.get(preferred)
        if provider is None:
            raise ValueError(f"Unknown provider: {preferred}")
        if provider.is_available():
            return provider
        logger.warning("forced_provider_unavailable", provider=preferred)
        return None

    for name in ("claude", "openai"):
        if providers[name].is_available():
            logger.info("llm_provider_selected", provider=name)
            return providers[name]

    logger.warning("no_llm_provider_available")
    return None
