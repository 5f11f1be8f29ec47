"""LLM Provider abstraction layer for OpenAI, Anthropic, Cohere, and OpenRouter.

Provides a unified async interface to multiple LLM backends. Each provider
exposes plain completion (``complete``) and schema-constrained completion
(``complete_structured``). A call is attempted once; any backend failure is
raised as ``ProviderError``.
"""

from __future__ import annotations

import json
import logging
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from errors import ProviderError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LLMResponse:
    """Standardised response from any LLM provider."""

    text: str
    tokens_used: int
    model: str
    provider: str
    latency_ms: float
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ResponseSchema:
    """A named JSON schema the completion must conform to."""

    name: str
    schema: dict[str, Any]


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class LLMProvider(ABC):
    """Provider-agnostic interface that all LLM backends implement."""

    name: str  # e.g. "openai", "anthropic", "cohere"

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        api_key_env: str | None = None,
        timeout: int = 60,
    ) -> None:
        self.model = model
        self.timeout = timeout

        # Resolve API key: explicit > env var > raise
        self.api_key = api_key or os.getenv(api_key_env or "")
        if not self.api_key:
            raise ValueError(
                f"No API key for {self.name}. "
                f"Set {api_key_env!r} or pass api_key explicitly."
            )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def complete(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        """Return the generated text for a role-tagged message list."""
        response = await self.generate(messages, **kwargs)
        return response.text

    async def complete_structured(
        self,
        messages: list[dict[str, str]],
        schema_name: str,
        schema: dict[str, Any],
        **kwargs: Any,
    ) -> str:
        """Return JSON text constrained to *schema*."""
        response = await self.generate(
            messages,
            response_schema=ResponseSchema(name=schema_name, schema=schema),
            **kwargs,
        )
        return response.text

    async def generate(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float = 0.7,
        max_tokens: int = 500,
        response_schema: ResponseSchema | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Run a single completion call and time it."""
        if not messages:
            logger.warning("[%s] refusing to call %s with no messages", self.name, self.model)
            raise ProviderError(f"[{self.name}] messages are empty")

        logger.debug(
            "[%s] %s start (%d messages%s)",
            self.name,
            self.model,
            len(messages),
            f", schema={response_schema.name}" if response_schema else "",
        )
        start = time.perf_counter()
        try:
            result = await self._call_api(
                messages,
                temperature=temperature,
                max_tokens=max_tokens,
                response_schema=response_schema,
                **kwargs,
            )
        except ProviderError:
            raise
        except Exception as exc:
            logger.warning("[%s] %s request failed: %s", self.name, self.model, exc)
            raise ProviderError(f"[{self.name}] request failed: {exc}") from exc

        elapsed = (time.perf_counter() - start) * 1000
        response = LLMResponse(
            text=result["text"],
            tokens_used=result.get("tokens_used", 0),
            model=self.model,
            provider=self.name,
            latency_ms=round(elapsed, 1),
            raw=result.get("raw", {}),
        )
        logger.info(
            "[%s] %s responded (%d tokens, %.0f ms)",
            self.name,
            self.model,
            response.tokens_used,
            response.latency_ms,
        )
        return response

    # ------------------------------------------------------------------
    # Backend-specific implementation (override in subclasses)
    # ------------------------------------------------------------------

    @abstractmethod
    async def _call_api(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float,
        max_tokens: int,
        response_schema: ResponseSchema | None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Return ``{"text": ..., "tokens_used": ..., "raw": ...}``."""
        ...

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model!r})"


# ---------------------------------------------------------------------------
# OpenAI
# ---------------------------------------------------------------------------

class OpenAIProvider(LLMProvider):
    """Async OpenAI provider using the ``openai>=1.0`` client."""

    name = "openai"
    base_url: str | None = None

    def __init__(self, model: str = "gpt-4o-mini", **kwargs: Any) -> None:
        kwargs.setdefault("api_key_env", "OPENAI_API_KEY")
        super().__init__(model=model, **kwargs)
        import openai
        self._client = openai.AsyncOpenAI(
            base_url=self.base_url,
            api_key=self.api_key,
            timeout=self.timeout,
        )

    async def _call_api(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float,
        max_tokens: int,
        response_schema: ResponseSchema | None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        if response_schema is not None:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": response_schema.name,
                    "schema": response_schema.schema,
                    "strict": True,
                },
            }
        response = await self._client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            **kwargs,
        )
        if not response.choices:
            raise ProviderError(f"[{self.name}] response had no choices")
        choice = response.choices[0]
        usage = response.usage
        return {
            "text": choice.message.content or "",
            "tokens_used": usage.total_tokens if usage else 0,
            "raw": response.model_dump(),
        }


# ---------------------------------------------------------------------------
# OpenRouter
# ---------------------------------------------------------------------------

class OpenRouterProvider(OpenAIProvider):
    """Async OpenRouter provider using the OpenAI-compatible API.

    Model names use OpenRouter's format, e.g. ``"openai/gpt-4o"`` or
    ``"anthropic/claude-sonnet-4.5"``.
    """

    name = "openrouter"
    base_url = "https://openrouter.ai/api/v1"

    def __init__(self, model: str = "openai/gpt-4o-mini", **kwargs: Any) -> None:
        kwargs.setdefault("api_key_env", "OPENROUTER_API_KEY")
        super().__init__(model=model, **kwargs)


# ---------------------------------------------------------------------------
# Anthropic
# ---------------------------------------------------------------------------

OPENING_PROMPT = "Open the debate."
CONTINUE_PROMPT = "Continue the debate."


class AnthropicProvider(LLMProvider):
    """Async Anthropic provider using the ``anthropic`` client.

    Structured output is obtained by forcing a single tool whose input
    schema is the requested schema; the tool input is returned as JSON text.
    """

    name = "anthropic"

    def __init__(self, model: str = "claude-sonnet-4-5", **kwargs: Any) -> None:
        kwargs.setdefault("api_key_env", "ANTHROPIC_API_KEY")
        super().__init__(model=model, **kwargs)
        import anthropic
        self._client = anthropic.AsyncAnthropic(
            api_key=self.api_key,
            timeout=self.timeout,
        )

    async def _call_api(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float,
        max_tokens: int,
        response_schema: ResponseSchema | None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        # Anthropic uses a separate system parameter
        system_msg = ""
        api_messages: list[dict[str, str]] = []
        for msg in messages:
            if msg["role"] == "system":
                system_msg = msg["content"]
            else:
                api_messages.append(msg)

        # The Messages API needs at least one message and a user turn first
        if not api_messages:
            api_messages.append({"role": "user", "content": OPENING_PROMPT})
        elif api_messages[0]["role"] == "assistant":
            api_messages.insert(0, {"role": "user", "content": CONTINUE_PROMPT})

        create_kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": api_messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
            **kwargs,
        }
        if system_msg:
            create_kwargs["system"] = system_msg
        if response_schema is not None:
            create_kwargs["tools"] = [
                {
                    "name": response_schema.name,
                    "description": f"Record the {response_schema.name} result.",
                    "input_schema": response_schema.schema,
                }
            ]
            create_kwargs["tool_choice"] = {"type": "tool", "name": response_schema.name}

        response = await self._client.messages.create(**create_kwargs)
        if response_schema is not None:
            tool_inputs = [b.input for b in response.content if b.type == "tool_use"]
            if not tool_inputs:
                raise ProviderError(f"[{self.name}] response had no tool output")
            text = json.dumps(tool_inputs[0], ensure_ascii=False)
        else:
            text = "".join(b.text for b in response.content if b.type == "text")
        tokens = (response.usage.input_tokens + response.usage.output_tokens) if response.usage else 0
        return {
            "text": text,
            "tokens_used": tokens,
            "raw": response.model_dump() if hasattr(response, "model_dump") else {},
        }


# ---------------------------------------------------------------------------
# Cohere
# ---------------------------------------------------------------------------

class CohereProvider(LLMProvider):
    """Async Cohere provider using the ``cohere>=5.0`` client."""

    name = "cohere"

    def __init__(self, model: str = "command-r-plus", **kwargs: Any) -> None:
        kwargs.setdefault("api_key_env", "COHERE_API_KEY")
        super().__init__(model=model, **kwargs)
        import cohere
        self._client = cohere.AsyncClientV2(api_key=self.api_key)

    async def _call_api(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float,
        max_tokens: int,
        response_schema: ResponseSchema | None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        if response_schema is not None:
            kwargs["response_format"] = {
                "type": "json_object",
                "json_schema": response_schema.schema,
            }
        response = await self._client.chat(
            model=self.model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            **kwargs,
        )
        text = response.message.content[0].text if response.message and response.message.content else ""
        tokens = 0
        if response.usage and response.usage.tokens:
            tokens = (
                (response.usage.tokens.input_tokens or 0)
                + (response.usage.tokens.output_tokens or 0)
            )
        return {
            "text": text,
            "tokens_used": int(tokens),
            "raw": response.model_dump() if hasattr(response, "model_dump") else {},
        }


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_PROVIDERS: dict[str, type[LLMProvider]] = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "cohere": CohereProvider,
    "openrouter": OpenRouterProvider,
}


def create_provider(name: str, **kwargs: Any) -> LLMProvider:
    """Instantiate an LLM provider by its short name.

    >>> provider = create_provider("openai", model="gpt-4o-mini")
    """
    cls = _PROVIDERS.get(name.lower())
    if cls is None:
        raise ValueError(
            f"Unknown provider {name!r}. Choose from {list(_PROVIDERS)}"
        )
    return cls(**kwargs)
