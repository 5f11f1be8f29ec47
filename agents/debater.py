"""Debater agent – argues one side and sees the transcript from that side.

The prompt for a speaking role is one system instruction (topic, side,
ground rules) followed by the stored transcript reinterpreted from that
role's point of view: its own messages become ``assistant`` turns and
everything else becomes ``user`` turns. The same transcript therefore
serves both agents of a model-vs-model debate.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from agents.base import AgentResponse, BaseAgent
from agents.llm_provider import LLMProvider
from data.models import MessageRecord, Position, Role, SessionRecord

DEBATER_ROLES = frozenset({Role.MODEL, Role.AGENT1, Role.AGENT2})

_SIDE_DESCRIPTIONS: dict[Position, str] = {
    Position.PRO: "PRO (in favour of the motion)",
    Position.CON: "CON (against the motion)",
}

_INSTRUCTION = """\
You are a participant in a structured debate.
Topic: {topic}
Your side: {side}

Follow these rules:
1. Argue your assigned position logically and consistently.
2. Rebut your opponent's points directly.
3. Support your claims with concrete examples or data.
4. Stay civil and constructive.
5. Keep each response concise, around 300 characters.
"""


class Perspective(str, Enum):
    """Whose words a transcript turn is, seen from the speaking role."""

    SELF = "self"
    OTHER = "other"


@dataclass(frozen=True)
class TranscriptTurn:
    perspective: Perspective
    text: str


_PROVIDER_ROLES: dict[Perspective, str] = {
    Perspective.SELF: "assistant",
    Perspective.OTHER: "user",
}


def reinterpret(messages: Sequence[MessageRecord], target_role: Role) -> list[TranscriptTurn]:
    """Relabel a transcript as self/other turns for *target_role*.

    The ``system`` briefing is dropped; order is preserved.
    """
    return [
        TranscriptTurn(
            perspective=Perspective.SELF if msg.role is target_role else Perspective.OTHER,
            text=msg.content,
        )
        for msg in messages
        if msg.role is not Role.SYSTEM
    ]


def build_instruction(topic: str, position: Position) -> str:
    return _INSTRUCTION.format(topic=topic, side=_SIDE_DESCRIPTIONS[position])


def build_messages(
    session: SessionRecord,
    messages: Sequence[MessageRecord],
    role: Role,
) -> list[dict[str, str]]:
    """Provider-ready message list for *role* to speak next in *session*."""
    position = session.position_for(role)
    prompt = [{"role": "system", "content": build_instruction(session.topic, position)}]
    prompt.extend(
        {"role": _PROVIDER_ROLES[turn.perspective], "content": turn.text}
        for turn in reinterpret(messages, role)
    )
    return prompt


class Debater(BaseAgent):
    """Agent that speaks for one debating role (``model``, ``agent1`` or ``agent2``)."""

    def __init__(
        self,
        provider: LLMProvider,
        role: Role,
        *,
        agent_id: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 500,
        **kwargs: Any,
    ) -> None:
        if role not in DEBATER_ROLES:
            raise ValueError(f"{role.value!r} cannot debate; choose from {sorted(r.value for r in DEBATER_ROLES)}")
        super().__init__(
            kind=role.value,
            provider=provider,
            agent_id=agent_id,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        self.role = role

    async def respond(
        self, session: SessionRecord, messages: Sequence[MessageRecord]
    ) -> AgentResponse:
        """Produce this role's next message given the full transcript."""
        return await self.generate_response(build_messages(session, messages, self.role))
