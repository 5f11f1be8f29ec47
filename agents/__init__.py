"""Debate participants backed by language models, and the provider layer."""

from agents.base import AgentResponse, BaseAgent
from agents.debater import Debater, Perspective, TranscriptTurn, build_messages, reinterpret
from agents.judge import Judge
from agents.moderator import Moderator
from agents.llm_provider import (
    LLMProvider,
    OpenAIProvider,
    AnthropicProvider,
    CohereProvider,
    OpenRouterProvider,
    create_provider,
)

__all__ = [
    "AgentResponse",
    "BaseAgent",
    "Debater",
    "Judge",
    "Moderator",
    "Perspective",
    "TranscriptTurn",
    "build_messages",
    "reinterpret",
    "LLMProvider",
    "OpenAIProvider",
    "AnthropicProvider",
    "CohereProvider",
    "OpenRouterProvider",
    "create_provider",
]
