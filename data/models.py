"""Pydantic models mirroring the SQLite schema, plus the structured outputs."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class DebateMode(str, Enum):
    HUMAN_VS_MODEL = "human_vs_model"
    MODEL_VS_MODEL = "model_vs_model"


class Position(str, Enum):
    PRO = "pro"
    CON = "con"

    @property
    def opposite(self) -> Position:
        return Position.CON if self is Position.PRO else Position.PRO


class SessionStatus(str, Enum):
    ACTIVE = "active"
    FINISHED = "finished"


class Role(str, Enum):
    """Speaker of a transcript message."""

    SYSTEM = "system"
    HUMAN = "human"
    MODEL = "model"
    AGENT1 = "agent1"
    AGENT2 = "agent2"
    JUDGE = "judge"


class Winner(str, Enum):
    HUMAN = "human"
    MODEL = "model"
    AGENT1 = "agent1"
    AGENT2 = "agent2"
    DRAW = "draw"


WINNERS_BY_MODE: dict[DebateMode, frozenset[Winner]] = {
    DebateMode.HUMAN_VS_MODEL: frozenset({Winner.HUMAN, Winner.MODEL, Winner.DRAW}),
    DebateMode.MODEL_VS_MODEL: frozenset({Winner.AGENT1, Winner.AGENT2, Winner.DRAW}),
}


# ---------------------------------------------------------------------------
# Store records
# ---------------------------------------------------------------------------

class UserRecord(BaseModel):
    """Row in the ``users`` table."""

    id: int | None = None
    username: str
    created_at: datetime = Field(default_factory=_utcnow)


class SessionRecord(BaseModel):
    """Row in the ``debate_sessions`` table."""

    id: int | None = None
    user_id: int | None = None
    topic: str
    mode: DebateMode
    human_position: Position | None = None
    status: SessionStatus = SessionStatus.ACTIVE
    winner: Winner | None = None
    judge_comment: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    finished_at: datetime | None = None

    @model_validator(mode="after")
    def _check_invariants(self) -> SessionRecord:
        is_human_mode = self.mode is DebateMode.HUMAN_VS_MODEL
        if is_human_mode != (self.human_position is not None):
            raise ValueError("human_position is set only for human_vs_model sessions")
        finished = self.status is SessionStatus.FINISHED
        for name in ("winner", "judge_comment", "finished_at"):
            if finished != (getattr(self, name) is not None):
                raise ValueError(f"{name} must be set exactly when the session is finished")
        if self.winner is not None and self.winner not in WINNERS_BY_MODE[self.mode]:
            raise ValueError(f"winner {self.winner.value!r} is not valid for {self.mode.value}")
        return self

    @property
    def model_position(self) -> Position | None:
        if self.human_position is None:
            return None
        return self.human_position.opposite

    @property
    def agent1_position(self) -> Position | None:
        return Position.PRO if self.mode is DebateMode.MODEL_VS_MODEL else None

    @property
    def agent2_position(self) -> Position | None:
        return Position.CON if self.mode is DebateMode.MODEL_VS_MODEL else None

    @property
    def is_active(self) -> bool:
        return self.status is SessionStatus.ACTIVE

    def position_for(self, role: Role) -> Position | None:
        """Side argued by *role* in this session (``None`` for non-debaters)."""
        positions = {
            Role.HUMAN: self.human_position,
            Role.MODEL: self.model_position,
            Role.AGENT1: self.agent1_position,
            Role.AGENT2: self.agent2_position,
            Role.SYSTEM: None,
            Role.JUDGE: None,
        }
        return positions[role]

    def to_dict(self) -> dict:
        data = self.model_dump(mode="json")
        data.update(
            model_position=self.model_position and self.model_position.value,
            agent1_position=self.agent1_position and self.agent1_position.value,
            agent2_position=self.agent2_position and self.agent2_position.value,
        )
        return data


class MessageRecord(BaseModel):
    """Row in the ``debate_messages`` table. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    session_id: int
    role: Role
    content: str
    created_at: datetime = Field(default_factory=_utcnow)


class StatsRecord(BaseModel):
    """Row in the ``user_stats`` table."""

    user_id: int
    total_debates: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0

    @property
    def win_rate(self) -> float:
        """Wins as a percentage of all finished debates."""
        if self.total_debates == 0:
            return 0.0
        return self.wins / self.total_debates * 100

    def to_dict(self) -> dict:
        return {**self.model_dump(), "win_rate": round(self.win_rate, 1)}


class StatsDelta(BaseModel):
    """Increments applied to a ``StatsRecord`` when a debate finishes."""

    model_config = ConfigDict(frozen=True)

    total_debates: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0

    @property
    def is_empty(self) -> bool:
        return not (self.total_debates or self.wins or self.losses or self.draws)

    def applied_to(self, stats: StatsRecord) -> StatsRecord:
        return stats.model_copy(
            update={
                "total_debates": stats.total_debates + self.total_debates,
                "wins": stats.wins + self.wins,
                "losses": stats.losses + self.losses,
                "draws": stats.draws + self.draws,
            }
        )


# ---------------------------------------------------------------------------
# Structured provider outputs
# ---------------------------------------------------------------------------

class TopicProposal(BaseModel):
    """Generated debate motion with a short description of each side."""

    model_config = ConfigDict(extra="forbid")

    topic: str
    pro_position: str
    con_position: str
    background: str


class Score(BaseModel):
    model_config = ConfigDict(extra="forbid")

    pro: int
    con: int


class Verdict(BaseModel):
    """The judge's structured decision, always phrased in pro/con terms."""

    model_config = ConfigDict(extra="forbid")

    winner: Literal["pro", "con", "draw"]
    score: Score
    reasoning: str
    pro_strengths: list[str]
    pro_weaknesses: list[str]
    con_strengths: list[str]
    con_weaknesses: list[str]
    final_comment: str
