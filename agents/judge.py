"""Judge agent – scores a finished transcript and returns a structured verdict."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from agents.base import BaseAgent
from agents.llm_provider import LLMProvider
from agents.schemas import VERDICT_SCHEMA, VERDICT_SCHEMA_NAME
from data.models import MessageRecord, Position, Role, SessionRecord, Verdict

_SYSTEM_PROMPT = """\
You are an impartial **Judge** of a structured debate.
Evaluate the debate below and decide the winner.

Topic: {topic}
Pro side: argues in favour of the motion
Con side: argues against the motion

Criteria:
1. Logical coherence: are the claims consistent and well reasoned?
2. Evidentiary support: are concrete examples or data used?
3. Rebuttal quality: are the opponent's points answered effectively?
4. Clarity: is the argument easy to follow and persuasive?

Judge both sides fairly. Declare a draw only if neither side is ahead.
"""

_POSITION_NAMES: dict[Position, str] = {Position.PRO: "Pro", Position.CON: "Con"}

# Participant shown in the judge transcript; ``None`` means the message is skipped.
_PARTICIPANT_NAMES: dict[Role, str | None] = {
    Role.HUMAN: "human",
    Role.MODEL: "AI",
    Role.AGENT1: "AI-1",
    Role.AGENT2: "AI-2",
    Role.SYSTEM: None,
    Role.JUDGE: None,
}


def side_label(session: SessionRecord, role: Role) -> str | None:
    """Human-readable label such as ``"Con (AI)"`` or ``None`` for non-debaters."""
    participant = _PARTICIPANT_NAMES[role]
    position = session.position_for(role)
    if participant is None or position is None:
        return None
    return f"{_POSITION_NAMES[position]} ({participant})"


def build_judge_messages(
    session: SessionRecord, messages: Sequence[MessageRecord]
) -> list[dict[str, str]]:
    """System instruction plus one user turn holding the labelled transcript."""
    blocks = []
    for msg in messages:
        label = side_label(session, msg.role)
        if label is None:
            continue
        blocks.append(f"{label}:\n{msg.content}")

    transcript = "[Debate transcript]\n\n" + "\n\n".join(blocks)
    return [
        {"role": "system", "content": _SYSTEM_PROMPT.format(topic=session.topic)},
        {"role": "user", "content": f"{transcript}\n\nEvaluate the debate above."},
    ]


class Judge(BaseAgent):
    """Agent that evaluates a transcript and delivers the final verdict."""

    def __init__(
        self,
        provider: LLMProvider,
        *,
        agent_id: str | None = None,
        temperature: float = 0.2,
        max_tokens: int = 1200,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            kind="judge",
            provider=provider,
            agent_id=agent_id,
            temperature=temperature,
            max_tokens=max_tokens,
        )

    async def evaluate(
        self, session: SessionRecord, messages: Sequence[MessageRecord]
    ) -> Verdict:
        return await self.generate_structured(
            build_judge_messages(session, messages),
            VERDICT_SCHEMA_NAME,
            VERDICT_SCHEMA,
            Verdict,
        )
