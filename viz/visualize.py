"""Debate visualization – charts and formatted text reports.

Generates matplotlib charts for user records and judge scores, and exports
a pretty-printed text transcript.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from pathlib import Path

import matplotlib

matplotlib.use("Agg")  # non-interactive backend
import matplotlib.pyplot as plt
import matplotlib.ticker as ticker

from agents.judge import side_label
from data.models import MessageRecord, Role, SessionRecord, StatsRecord, Verdict

logger = logging.getLogger(__name__)

# Colour palette per outcome / side
_COLOURS: dict[str, str] = {
    "wins": "#4CAF50",
    "losses": "#F44336",
    "draws": "#FF9800",
    "pro": "#2196F3",
    "con": "#9C27B0",
}

_FIXED_LABELS: dict[Role, str] = {
    Role.SYSTEM: "BRIEFING",
    Role.JUDGE: "JUDGE",
}


class DebateVisualizer:
    """Generate charts and reports from stored debate data."""

    def __init__(self, output_dir: str | Path = "viz/output") -> None:
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Charts
    # ------------------------------------------------------------------

    def plot_stats(self, stats: StatsRecord) -> Path:
        """Bar chart of a user's wins, losses and draws."""
        outcomes = ["wins", "losses", "draws"]
        values = [stats.wins, stats.losses, stats.draws]

        fig, ax = plt.subplots(figsize=(6, 4))
        ax.bar(outcomes, values, color=[_COLOURS[o] for o in outcomes])
        ax.set_ylabel("Debates")
        ax.set_title(
            f"User #{stats.user_id} – {stats.total_debates} debates, "
            f"{stats.win_rate:.1f}% won"
        )
        ax.yaxis.set_major_locator(ticker.MaxNLocator(integer=True))
        plt.tight_layout()

        path = self.output_dir / f"user_{stats.user_id}_stats.png"
        fig.savefig(path, dpi=150)
        plt.close(fig)
        logger.info("Saved %s", path)
        return path

    def plot_scores(self, session_id: int, verdict: Verdict) -> Path:
        """Bar chart of the judge's pro/con scores."""
        sides = ["pro", "con"]
        values = [verdict.score.pro, verdict.score.con]

        fig, ax = plt.subplots(figsize=(5, 4))
        bars = ax.bar(sides, values, color=[_COLOURS[s] for s in sides])
        ax.bar_label(bars)
        ax.set_ylabel("Score")
        ax.set_title(f"Debate #{session_id} – Judge Scores (winner: {verdict.winner})")
        plt.tight_layout()

        path = self.output_dir / f"debate_{session_id}_scores.png"
        fig.savefig(path, dpi=150)
        plt.close(fig)
        logger.info("Saved %s", path)
        return path

    # ------------------------------------------------------------------
    # Text transcript
    # ------------------------------------------------------------------

    def export_transcript(
        self,
        session: SessionRecord,
        messages: Sequence[MessageRecord],
    ) -> Path:
        """Export a pretty-printed text transcript."""
        lines = [
            f"{'=' * 72}",
            f"  DEBATE #{session.id} TRANSCRIPT ({session.mode.value})",
            f"  Topic: {session.topic}",
            f"  Status: {session.status.value}",
            f"{'=' * 72}",
            "",
        ]
        for msg in messages:
            label = _FIXED_LABELS.get(msg.role) or side_label(session, msg.role)
            lines.append(f"  [{label.upper()}] {msg.created_at:%Y-%m-%d %H:%M:%S}")
            lines.append("")
            for paragraph in _render_content(msg).split("\n"):
                lines.append(f"    {paragraph}")
            lines.append("")

        if session.winner is not None:
            lines.append(f"  Winner: {session.winner.value}")
            lines.append(f"  Judge: {session.judge_comment}")
        lines.append(f"{'=' * 72}")
        lines.append("  END OF TRANSCRIPT")
        lines.append(f"{'=' * 72}")

        path = self.output_dir / f"debate_{session.id}_transcript.txt"
        path.write_text("\n".join(lines), encoding="utf-8")
        logger.info("Saved %s", path)
        return path


def _render_content(msg: MessageRecord) -> str:
    if msg.role is not Role.JUDGE:
        return msg.content
    try:
        return json.dumps(json.loads(msg.content), indent=2, ensure_ascii=False)
    except json.JSONDecodeError:
        return msg.content
