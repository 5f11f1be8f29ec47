"""DebateManager – orchestrates debate sessions end-to-end.

Each public coroutine is one request against a stored session: it loads the
session and transcript, consults the turn protocol or the judging pipeline,
calls the model at most once, and appends the result. No state is kept on
the manager between calls.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from agents.debater import Debater
from agents.judge import Judge
from agents.llm_provider import LLMProvider
from agents.moderator import Moderator, build_briefing
from data.database import DebateDatabase
from data.models import (
    DebateMode,
    MessageRecord,
    Position,
    Role,
    SessionRecord,
    StatsRecord,
    TopicProposal,
    UserRecord,
    Verdict,
)
from errors import InvalidStateError, NotFoundError, ValidationError
from evaluation.validators import RANDOM_POSITION, DebateValidator, ValidationResult
from orchestration.judging import JudgingPipeline
from orchestration.protocols import (
    DEFAULT_MAX_TURNS_PER_AGENT,
    TurnProtocol,
    create_protocol,
)

logger = logging.getLogger(__name__)


def _message_dict(message: MessageRecord | None) -> dict[str, Any] | None:
    return message.model_dump(mode="json") if message is not None else None


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass
class CreateResult:
    """A freshly created session and, if one was generated, its topic."""

    session: SessionRecord
    topic_info: TopicProposal | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "session": self.session.to_dict(),
            "topic_info": self.topic_info.model_dump() if self.topic_info else None,
        }


@dataclass
class ExchangeResult:
    human_message: MessageRecord
    model_message: MessageRecord

    def to_dict(self) -> dict[str, Any]:
        return {
            "human_message": _message_dict(self.human_message),
            "model_message": _message_dict(self.model_message),
        }


@dataclass
class StepResult:
    """One model-vs-model step.

    ``message`` and ``speaker`` are ``None`` when there was nothing left to
    say; ``finished`` tells the caller the debate is ready to be judged.
    """

    message: MessageRecord | None
    speaker: Role | None
    finished: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": _message_dict(self.message),
            "speaker": self.speaker.value if self.speaker else None,
            "finished": self.finished,
        }


@dataclass
class EndResult:
    session: SessionRecord
    verdict: Verdict

    def to_dict(self) -> dict[str, Any]:
        return {"session": self.session.to_dict(), "verdict": self.verdict.model_dump()}


@dataclass
class DebateDetail:
    session: SessionRecord
    messages: list[MessageRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "session": self.session.to_dict(),
            "messages": [_message_dict(m) for m in self.messages],
        }


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------

class DebateManager:
    """High-level controller for debate sessions.

    Parameters
    ----------
    db : DebateDatabase
        Connected store holding sessions, transcripts and stats.
    provider : LLMProvider | None
        Backend used by the debaters, and by the judge and moderator unless
        those are supplied. May be ``None`` when only queries are made.
    judge : Judge | None
        Agent producing verdicts; defaults to a ``Judge`` on *provider*.
    moderator : Moderator | None
        Agent proposing topics; defaults to a ``Moderator`` on *provider*.
    debater_settings : dict | None
        Keyword arguments (``temperature``, ``max_tokens``) for every debater.
    max_turns_per_agent : int
        Message cap per agent in model-vs-model debates.
    """

    def __init__(
        self,
        db: DebateDatabase,
        provider: LLMProvider | None,
        *,
        judge: Judge | None = None,
        moderator: Moderator | None = None,
        debater_settings: dict[str, Any] | None = None,
        max_turns_per_agent: int = DEFAULT_MAX_TURNS_PER_AGENT,
        validator: DebateValidator | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.db = db
        self.provider = provider
        self.judge = judge or Judge(provider)
        self.moderator = moderator or Moderator(provider)
        self.debater_settings = debater_settings or {}
        self.max_turns_per_agent = max_turns_per_agent
        self.validator = validator or DebateValidator()
        self.pipeline = JudgingPipeline(self.judge, db)
        self._rng = rng or random.Random()

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def register_user(self, username: str) -> UserRecord:
        _raise_invalid(self.validator.validate_username(username), "Invalid username")
        username = username.strip()
        if await self.db.get_user_by_username(username) is not None:
            raise ValidationError(f"Username {username!r} is already taken")
        user = await self.db.create_user(username)
        logger.info("Registered user %d (%s)", user.id, user.username)
        return user

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def generate_topic(self) -> TopicProposal:
        """Ask the moderator for a fresh topic without creating a session."""
        return await self.moderator.propose_topic()

    async def create(
        self,
        mode: str | DebateMode,
        *,
        user_id: int | None = None,
        topic: str | None = None,
        human_position: str | Position | None = None,
        randomize_topic: bool = False,
        randomize_position: bool = False,
    ) -> CreateResult:
        """Start a new active session with its opening ``system`` briefing."""
        _raise_invalid(
            self.validator.validate_create_request(mode, topic, human_position),
            "Invalid debate request",
        )
        mode = DebateMode(mode)

        if mode is DebateMode.MODEL_VS_MODEL:
            user_id = None
        elif user_id is not None and await self.db.get_user(user_id) is None:
            raise NotFoundError(f"User {user_id} not found")

        topic = (topic or "").strip()
        proposal: TopicProposal | None = None
        if not topic or randomize_topic:
            proposal = await self.moderator.propose_topic()
            topic = proposal.topic

        position: Position | None = None
        if mode is DebateMode.HUMAN_VS_MODEL:
            if randomize_position or not human_position or human_position == RANDOM_POSITION:
                position = self._rng.choice([Position.PRO, Position.CON])
            else:
                position = Position(human_position)

        session = await self.db.create_session(user_id, mode, topic, position)
        await self.db.append_message(session.id, Role.SYSTEM, build_briefing(topic, proposal))
        logger.info(
            "Created debate %d [%s] on '%s'%s",
            session.id,
            mode.value,
            topic,
            f" (human argues {position.value})" if position else "",
        )
        return CreateResult(session=session, topic_info=proposal)

    async def exchange_turn(self, session_id: int, text: str) -> ExchangeResult:
        """Store the human's message, then the model's reply to it."""
        _raise_invalid(self.validator.validate_message(text), "Invalid message")

        async with self.db.session_lock(session_id):
            session = await self._require_session(session_id)
            if session.mode is not DebateMode.HUMAN_VS_MODEL:
                raise InvalidStateError(
                    f"Debate {session_id} is {session.mode.value}; use advance_step"
                )
            _require_active(session)

            human_message = await self.db.append_message(session_id, Role.HUMAN, text.strip())
            messages = await self.db.list_messages(session_id)
            decision = self._protocol(session).next_turn(session, messages)
            response = await self._debater(decision.speaker).respond(session, messages)
            model_message = await self.db.append_message(
                session_id, decision.speaker, response.content
            )

        logger.info("Debate %d: human and model exchanged a turn", session_id)
        return ExchangeResult(human_message=human_message, model_message=model_message)

    async def advance_step(self, session_id: int) -> StepResult:
        """Let the next agent of a model-vs-model debate speak once."""
        async with self.db.session_lock(session_id):
            session = await self._require_session(session_id)
            if session.mode is not DebateMode.MODEL_VS_MODEL:
                raise InvalidStateError(
                    f"Debate {session_id} is {session.mode.value}; use exchange_turn"
                )
            if not session.is_active:
                return StepResult(message=None, speaker=None, finished=True)

            messages = await self.db.list_messages(session_id)
            decision = self._protocol(session).next_turn(session, messages)
            if decision.complete:
                return StepResult(message=None, speaker=None, finished=True)

            response = await self._debater(decision.speaker).respond(session, messages)
            message = await self.db.append_message(
                session_id, decision.speaker, response.content
            )

        logger.info(
            "Debate %d: %s spoke%s",
            session_id,
            decision.speaker.value,
            " (final turn)" if decision.finishes_debate else "",
        )
        return StepResult(
            message=message, speaker=decision.speaker, finished=decision.finishes_debate
        )

    async def end(self, session_id: int) -> EndResult:
        """Judge the transcript and finish the session."""
        async with self.db.session_lock(session_id):
            session = await self._require_session(session_id)
            _require_active(session)
            messages = await self.db.list_messages(session_id)
            judgment = await self.pipeline.evaluate(session, messages)
            finished = await self.pipeline.commit(session, judgment)
        return EndResult(session=finished, verdict=judgment.verdict)

    async def run_to_completion(
        self,
        session_id: int,
        on_step: Callable[[StepResult], None] | None = None,
    ) -> EndResult:
        """Step a model-vs-model debate until it is complete, then end it.

        At most twice the per-agent cap of steps are taken before judging.
        """
        for _ in range(2 * self.max_turns_per_agent):
            step = await self.advance_step(session_id)
            if on_step is not None and step.message is not None:
                on_step(step)
            if step.finished:
                break
        return await self.end(session_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_debate(self, session_id: int) -> DebateDetail:
        session = await self._require_session(session_id)
        messages = await self.db.list_messages(session_id)
        return DebateDetail(session=session, messages=messages)

    async def list_debates(self, limit: int = 20) -> list[SessionRecord]:
        return await self.db.list_sessions(limit)

    async def get_stats(self, user_id: int) -> StatsRecord:
        await self._require_user(user_id)
        stats = await self.db.get_stats(user_id)
        return stats or StatsRecord(user_id=user_id)

    async def get_history(self, user_id: int) -> list[SessionRecord]:
        """The user's sessions, newest first."""
        await self._require_user(user_id)
        return await self.db.list_sessions_for_user(user_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _require_session(self, session_id: int) -> SessionRecord:
        session = await self.db.get_session(session_id)
        if session is None:
            raise NotFoundError(f"Debate {session_id} not found")
        return session

    async def _require_user(self, user_id: int) -> UserRecord:
        user = await self.db.get_user(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def _protocol(self, session: SessionRecord) -> TurnProtocol:
        return create_protocol(session.mode, self.max_turns_per_agent)

    def _debater(self, role: Role) -> Debater:
        return Debater(self.provider, role, **self.debater_settings)


def _require_active(session: SessionRecord) -> None:
    if not session.is_active:
        raise InvalidStateError(f"Debate {session.id} is already finished")


def _raise_invalid(result: ValidationResult, message: str) -> None:
    if not result:
        raise ValidationError(f"{message}: {'; '.join(result.issues)}", result.issues)
