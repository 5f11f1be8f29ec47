"""Orchestration layer – session lifecycle, turn protocols and judging."""

from orchestration.debate_manager import (
    CreateResult,
    DebateDetail,
    DebateManager,
    EndResult,
    ExchangeResult,
    StepResult,
)
from orchestration.judging import JudgingPipeline, Judgment
from orchestration.protocols import (
    AlternatingProtocol,
    OpenExchangeProtocol,
    TurnDecision,
    TurnProtocol,
    create_protocol,
)

__all__ = [
    "CreateResult",
    "DebateDetail",
    "DebateManager",
    "EndResult",
    "ExchangeResult",
    "StepResult",
    "JudgingPipeline",
    "Judgment",
    "AlternatingProtocol",
    "OpenExchangeProtocol",
    "TurnDecision",
    "TurnProtocol",
    "create_protocol",
]
