"""Base agent class with provider-agnostic interface.

Every model-backed participant (debater, judge, moderator) inherits from
``BaseAgent`` which provides:
- Provider-agnostic free-text and schema-constrained generation
- Parsing of structured output into pydantic models
- A structured ``AgentResponse`` carrying token and latency figures

Agents keep no memory between calls: the stored transcript is the only
conversation state, and it is handed to the agent on every turn.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, TypeVar

import pydantic

from agents.llm_provider import LLMProvider, LLMResponse
from errors import ProviderError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


@dataclass
class AgentResponse:
    """Structured response emitted by an agent on each turn."""

    agent_id: str
    content: str
    tokens_used: int
    provider: str
    model: str
    latency_ms: float
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class BaseAgent:
    """Provider-agnostic base class for every model-backed agent.

    Parameters
    ----------
    kind : str
        Short label used in the agent id and log lines.
    provider : LLMProvider
        The LLM backend used for generation.
    agent_id : str | None
        Unique identifier; auto-generated if not supplied.
    temperature : float
        Sampling temperature forwarded to the provider.
    max_tokens : int
        Max output tokens forwarded to the provider.
    """

    def __init__(
        self,
        *,
        kind: str,
        provider: LLMProvider,
        agent_id: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 500,
    ) -> None:
        self.kind = kind
        self.agent_id = agent_id or f"{kind}_{uuid.uuid4().hex[:8]}"
        self.provider = provider
        self.temperature = temperature
        self.max_tokens = max_tokens

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate_response(self, messages: list[dict[str, str]]) -> AgentResponse:
        """Send *messages* to the LLM and return a structured response."""
        llm_resp: LLMResponse = await self.provider.generate(
            messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        return AgentResponse(
            agent_id=self.agent_id,
            content=llm_resp.text,
            tokens_used=llm_resp.tokens_used,
            provider=llm_resp.provider,
            model=llm_resp.model,
            latency_ms=llm_resp.latency_ms,
        )

    async def generate_structured(
        self,
        messages: list[dict[str, str]],
        schema_name: str,
        schema: dict[str, Any],
        output_model: type[ModelT],
    ) -> ModelT:
        """Request schema-constrained output and parse it into *output_model*.

        Output that is not valid JSON or does not match the model raises
        ``ProviderError``.
        """
        text = await self.provider.complete_structured(
            messages,
            schema_name,
            schema,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        try:
            return output_model.model_validate_json(text)
        except pydantic.ValidationError as exc:
            logger.warning(
                "%s returned non-conforming %s output: %s", self.agent_id, schema_name, exc
            )
            raise ProviderError(
                f"{schema_name} output does not match its schema: {exc.error_count()} error(s)"
            ) from exc

    # ------------------------------------------------------------------
    # Dunder
    # ------------------------------------------------------------------

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(id={self.agent_id!r}, "
            f"kind={self.kind!r}, provider={self.provider})"
        )
