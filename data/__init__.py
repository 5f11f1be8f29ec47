"""Data layer – SQLite transcript store and Pydantic models."""

from data.models import (
    DebateMode,
    MessageRecord,
    Position,
    Role,
    Score,
    SessionRecord,
    SessionStatus,
    StatsDelta,
    StatsRecord,
    TopicProposal,
    UserRecord,
    Verdict,
    Winner,
)
from data.database import DebateDatabase

__all__ = [
    "DebateDatabase",
    "DebateMode",
    "MessageRecord",
    "Position",
    "Role",
    "Score",
    "SessionRecord",
    "SessionStatus",
    "StatsDelta",
    "StatsRecord",
    "TopicProposal",
    "UserRecord",
    "Verdict",
    "Winner",
]
