"""Moderator agent – proposes debate motions and writes the opening briefing."""

from __future__ import annotations

from typing import Any

from agents.base import BaseAgent
from agents.llm_provider import LLMProvider
from agents.schemas import TOPIC_SCHEMA, TOPIC_SCHEMA_NAME
from data.models import TopicProposal

_SYSTEM_PROMPT = """\
You are the **Moderator** of a debate platform. Propose debate motions that:
1. Are genuinely contested, with strong arguments available to both sides.
2. Are concrete enough for a non-specialist to join in.
3. Come from varied fields: politics, society, technology, ethics, education.

Phrase the motion as a single proposition and describe each side briefly.
"""


def build_briefing(topic: str, proposal: TopicProposal | None = None) -> str:
    """Text of the ``system`` message that opens every transcript."""
    lines = [f"Debate topic: {topic}"]
    if proposal is not None:
        lines += [
            f"Pro position: {proposal.pro_position}",
            f"Con position: {proposal.con_position}",
            f"Background: {proposal.background}",
        ]
    return "\n".join(lines)


class Moderator(BaseAgent):
    """Agent that generates fresh debate topics."""

    def __init__(
        self,
        provider: LLMProvider,
        *,
        agent_id: str | None = None,
        temperature: float = 0.9,
        max_tokens: int = 400,
        system_prompt: str = _SYSTEM_PROMPT,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            kind="moderator",
            provider=provider,
            agent_id=agent_id,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        self.system_prompt = system_prompt

    async def propose_topic(self) -> TopicProposal:
        messages = [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": "Propose one new debate topic."},
        ]
        return await self.generate_structured(
            messages, TOPIC_SCHEMA_NAME, TOPIC_SCHEMA, TopicProposal
        )
