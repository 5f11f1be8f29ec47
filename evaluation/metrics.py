"""Outcome metrics: mapping a verdict onto a session and the user's record.

The judge always speaks in pro/con terms; these functions translate that
into who won the session and which counters move for the owning user.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from data.models import (
    DebateMode,
    Position,
    SessionRecord,
    StatsDelta,
    StatsRecord,
    Verdict,
    Winner,
)

_AGENT_WINNERS: dict[str, Winner] = {
    "pro": Winner.AGENT1,
    "con": Winner.AGENT2,
    "draw": Winner.DRAW,
}

_HUMAN_OUTCOMES: dict[Winner, StatsDelta] = {
    Winner.HUMAN: StatsDelta(total_debates=1, wins=1),
    Winner.MODEL: StatsDelta(total_debates=1, losses=1),
    Winner.DRAW: StatsDelta(total_debates=1, draws=1),
}


def map_winner(session: SessionRecord, verdict: Verdict) -> Winner:
    """Translate the verdict's winning side into the session's winner."""
    if session.mode is DebateMode.MODEL_VS_MODEL:
        return _AGENT_WINNERS[verdict.winner]

    if verdict.winner == "draw":
        return Winner.DRAW
    if Position(verdict.winner) is session.human_position:
        return Winner.HUMAN
    return Winner.MODEL


def stats_delta(session: SessionRecord, winner: Winner) -> StatsDelta:
    """Counters to add for the session owner; empty when nothing changes.

    Only owned human-vs-model sessions count towards a user's record.
    """
    if session.mode is not DebateMode.HUMAN_VS_MODEL or session.user_id is None:
        return StatsDelta()
    return _HUMAN_OUTCOMES[winner]


# ---------------------------------------------------------------------------
# History summaries
# ---------------------------------------------------------------------------

@dataclass
class HistorySummary:
    """Aggregate view over a user's sessions, used by reports."""

    total_sessions: int = 0
    finished_sessions: int = 0
    outcomes: dict[str, int] = field(default_factory=dict)
    win_rate: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_sessions": self.total_sessions,
            "finished_sessions": self.finished_sessions,
            "outcomes": self.outcomes,
            "win_rate": round(self.win_rate, 1),
        }


def summarize_history(
    sessions: Iterable[SessionRecord], stats: StatsRecord | None = None
) -> HistorySummary:
    """Count outcomes across *sessions*; win rate comes from *stats* when given."""
    summary = HistorySummary()
    for s in sessions:
        summary.total_sessions += 1
        if s.winner is None:
            continue
        summary.finished_sessions += 1
        summary.outcomes[s.winner.value] = summary.outcomes.get(s.winner.value, 0) + 1

    if stats is not None:
        summary.win_rate = stats.win_rate
    elif summary.finished_sessions:
        summary.win_rate = summary.outcomes.get(Winner.HUMAN.value, 0) / summary.finished_sessions * 100
    return summary
