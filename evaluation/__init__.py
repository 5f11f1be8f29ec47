"""Evaluation – outcome metrics and input validators."""

from evaluation.metrics import (
    HistorySummary,
    map_winner,
    stats_delta,
    summarize_history,
)
from evaluation.validators import DebateValidator, ValidationResult

__all__ = [
    "DebateValidator",
    "HistorySummary",
    "ValidationResult",
    "map_winner",
    "stats_delta",
    "summarize_history",
]
