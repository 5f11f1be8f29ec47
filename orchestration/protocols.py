"""Turn protocols that control who speaks next in a debate.

Each protocol decides, from the stored transcript alone, which role takes
the next turn and whether that turn completes the debate. Nothing is cached
between calls: the decision is recomputed from message counts every time.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass

from data.models import DebateMode, MessageRecord, Role, SessionRecord

logger = logging.getLogger(__name__)

DEFAULT_MAX_TURNS_PER_AGENT = 5


@dataclass(frozen=True)
class TurnDecision:
    """Outcome of consulting a protocol.

    ``speaker`` is ``None`` when the transcript is already complete.
    ``finishes_debate`` tells whether the transcript will be complete once
    ``speaker`` has spoken.
    """

    speaker: Role | None
    finishes_debate: bool = False

    @property
    def complete(self) -> bool:
        return self.speaker is None


class TurnProtocol(ABC):
    """Base class for turn-taking strategies."""

    name: str

    @abstractmethod
    def next_turn(
        self, session: SessionRecord, messages: Sequence[MessageRecord]
    ) -> TurnDecision:
        """Return who speaks next given the stored transcript."""
        ...


class AlternatingProtocol(TurnProtocol):
    """Two agents alternate until each has spoken ``max_turns_per_agent`` times.

    The agent with fewer messages speaks next; on a tie ``agent1`` opens.
    """

    name = "alternating"

    def __init__(self, max_turns_per_agent: int = DEFAULT_MAX_TURNS_PER_AGENT) -> None:
        if max_turns_per_agent < 1:
            raise ValueError("max_turns_per_agent must be at least 1")
        self.max_turns_per_agent = max_turns_per_agent

    def counts(self, messages: Sequence[MessageRecord]) -> tuple[int, int]:
        """Number of ``agent1`` and ``agent2`` messages so far."""
        tally = Counter(m.role for m in messages)
        return tally[Role.AGENT1], tally[Role.AGENT2]

    def _done(self, agent1: int, agent2: int) -> bool:
        return agent1 >= self.max_turns_per_agent and agent2 >= self.max_turns_per_agent

    def next_turn(
        self, session: SessionRecord, messages: Sequence[MessageRecord]
    ) -> TurnDecision:
        agent1, agent2 = self.counts(messages)
        if self._done(agent1, agent2):
            return TurnDecision(speaker=None, finishes_debate=True)

        if agent1 <= agent2:
            speaker = Role.AGENT1
            agent1 += 1
        else:
            speaker = Role.AGENT2
            agent2 += 1
        return TurnDecision(speaker=speaker, finishes_debate=self._done(agent1, agent2))


class OpenExchangeProtocol(TurnProtocol):
    """Human and model trade messages with no cap; only End finishes the debate."""

    name = "open_exchange"

    def next_turn(
        self, session: SessionRecord, messages: Sequence[MessageRecord]
    ) -> TurnDecision:
        return TurnDecision(speaker=Role.MODEL)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_PROTOCOLS: dict[DebateMode, type[TurnProtocol]] = {
    DebateMode.MODEL_VS_MODEL: AlternatingProtocol,
    DebateMode.HUMAN_VS_MODEL: OpenExchangeProtocol,
}


def create_protocol(
    mode: str | DebateMode,
    max_turns_per_agent: int = DEFAULT_MAX_TURNS_PER_AGENT,
) -> TurnProtocol:
    """Instantiate the protocol that governs *mode*."""
    try:
        cls = _PROTOCOLS[DebateMode(mode)]
    except ValueError:
        raise ValueError(
            f"Unknown mode {mode!r}. Choose from {[m.value for m in _PROTOCOLS]}"
        ) from None
    if cls is AlternatingProtocol:
        return AlternatingProtocol(max_turns_per_agent)
    return cls()
