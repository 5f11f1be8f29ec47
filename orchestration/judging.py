"""Judging pipeline: transcript -> verdict -> session outcome -> user stats."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from agents.judge import Judge
from data.database import DebateDatabase
from data.models import (
    MessageRecord,
    Role,
    SessionRecord,
    SessionStatus,
    StatsDelta,
    Verdict,
    Winner,
)
from errors import InvalidStateError, PersistenceError
from evaluation.metrics import map_winner, stats_delta

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Judgment:
    """A verdict together with what it means for the session and its owner."""

    verdict: Verdict
    winner: Winner
    delta: StatsDelta


class JudgingPipeline:
    """Runs the judge over a transcript and commits the outcome.

    Parameters
    ----------
    judge : Judge
        Agent producing the structured verdict.
    db : DebateDatabase
        Store the outcome is committed to.
    """

    def __init__(self, judge: Judge, db: DebateDatabase) -> None:
        self.judge = judge
        self.db = db

    async def evaluate(
        self, session: SessionRecord, messages: Sequence[MessageRecord]
    ) -> Judgment:
        """Ask the judge for a verdict; nothing is written."""
        verdict = await self.judge.evaluate(session, messages)
        winner = map_winner(session, verdict)
        return Judgment(verdict=verdict, winner=winner, delta=stats_delta(session, winner))

    async def commit(self, session: SessionRecord, judgment: Judgment) -> SessionRecord:
        """Finish *session* with *judgment* and return the updated record.

        The session update is the only step whose failure is raised; the
        judge message and the stats delta are best effort.
        """
        finished = session.model_copy(
            update={
                "status": SessionStatus.FINISHED,
                "winner": judgment.winner,
                "judge_comment": judgment.verdict.final_comment,
                "finished_at": datetime.now(timezone.utc),
            }
        )
        updated = await self.db.update_session(finished, expected_status=SessionStatus.ACTIVE)
        if not updated:
            raise InvalidStateError(f"Debate {session.id} is already finished")

        try:
            await self.db.append_message(
                session.id, Role.JUDGE, judgment.verdict.model_dump_json()
            )
        except PersistenceError:
            logger.exception("Could not store verdict message for debate %d", session.id)

        if not judgment.delta.is_empty:
            try:
                await self.db.apply_stats_delta(session.user_id, judgment.delta)
            except PersistenceError:
                logger.exception(
                    "Could not update stats of user %d for debate %d",
                    session.user_id,
                    session.id,
                )

        logger.info(
            "Debate %d finished: winner=%s (pro %d / con %d)",
            session.id,
            judgment.winner.value,
            judgment.verdict.score.pro,
            judgment.verdict.score.con,
        )
        return finished
