#!/usr/bin/env python3
"""Command-line interface for the debate arena.

Usage examples:
    python cli.py register alice
    python cli.py new --mode human_vs_model --user-id 1 --topic "Cities should ban cars" --position pro
    python cli.py say 1 "Cars make city centres unsafe for children."
    python cli.py end 1
    python cli.py debate --topic "Nuclear power is essential for decarbonisation"
    python cli.py play --user-id 1
    python cli.py show 2 --export
    python cli.py stats 1 --chart
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import click
import yaml

from agents import Judge, Moderator, create_provider
from agents.llm_provider import LLMProvider
from data.database import DebateDatabase
from data.models import DebateMode, MessageRecord, Role, SessionRecord, Verdict
from errors import DebateError
from evaluation.metrics import summarize_history
from orchestration.debate_manager import DebateManager, EndResult, StepResult
from viz.visualize import DebateVisualizer


# ---------------------------------------------------------------------------
# Live debate display
# ---------------------------------------------------------------------------

# Role labels and ANSI colour codes for terminal output
_ROLE_STYLES: dict[Role, tuple[str, str]] = {
    # role -> (label, ANSI colour code)
    Role.SYSTEM: ("BRIEFING", "\033[1;35m"),   # bold magenta
    Role.HUMAN:  ("YOU",      "\033[1;34m"),   # bold blue
    Role.MODEL:  ("MODEL",    "\033[1;31m"),   # bold red
    Role.AGENT1: ("AGENT 1",  "\033[1;34m"),   # bold blue
    Role.AGENT2: ("AGENT 2",  "\033[1;31m"),   # bold red
    Role.JUDGE:  ("JUDGE",    "\033[1;32m"),   # bold green
}
_RESET = "\033[0m"


def _print_message(session: SessionRecord, msg: MessageRecord) -> None:
    """Pretty-print a single transcript message to the terminal."""
    label, colour = _ROLE_STYLES[msg.role]
    position = session.position_for(msg.role)
    side = f"  •  {position.value.upper()}" if position else ""

    click.echo(f"\n{colour}{'─' * 60}")
    click.echo(f"  [{label}]{side}")
    click.echo(f"{'─' * 60}{_RESET}")
    for paragraph in msg.content.strip().split("\n"):
        click.echo(f"  {paragraph}")


def _print_verdict(session: SessionRecord, verdict: Verdict) -> None:
    click.echo(f"\n{'=' * 60}")
    click.echo(f"  VERDICT – debate #{session.id}")
    click.echo(f"{'=' * 60}")
    click.echo(f"  Winner    : {session.winner.value} ({verdict.winner})")
    click.echo(f"  Score     : pro {verdict.score.pro} / con {verdict.score.con}")
    click.echo(f"\n  Reasoning :\n")
    for line in verdict.reasoning.split("\n"):
        click.echo(f"    {line}")
    for side in ("pro", "con"):
        for label in ("strengths", "weaknesses"):
            points = getattr(verdict, f"{side}_{label}")
            if points:
                click.echo(f"\n  {side.capitalize()} {label}:")
                for point in points:
                    click.echo(f"    - {point}")
    click.echo(f"\n  {verdict.final_comment}")


def _print_session(session: SessionRecord) -> None:
    click.echo(f"  Debate #{session.id} [{session.mode.value}] – {session.status.value}")
    click.echo(f"  Topic    : {session.topic}")
    if session.mode is DebateMode.HUMAN_VS_MODEL:
        click.echo(
            f"  Positions: human {session.human_position.value}, "
            f"model {session.model_position.value}"
        )
    else:
        click.echo("  Positions: agent1 pro, agent2 con")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load_config(config_path: str = "config/default.yaml") -> dict[str, Any]:
    """Load and return the YAML config."""
    p = Path(config_path)
    if not p.exists():
        click.echo(f"Config not found: {p}. Using defaults.", err=True)
        return {}
    with open(p) as f:
        return yaml.safe_load(f) or {}


def _setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _build_provider(cfg: dict[str, Any]) -> LLMProvider:
    """Instantiate the configured completion provider."""
    api_cfg = cfg.get("api", {})
    provider_name = api_cfg.get("provider", "openai")
    provider_api_cfg = api_cfg.get(provider_name, {})

    provider_kwargs: dict[str, Any] = {"timeout": api_cfg.get("timeout", 60)}
    if provider_api_cfg.get("model"):
        provider_kwargs["model"] = provider_api_cfg["model"]
    if provider_api_cfg.get("api_key_env"):
        provider_kwargs["api_key_env"] = provider_api_cfg["api_key_env"]

    try:
        return create_provider(provider_name, **provider_kwargs)
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc


@asynccontextmanager
async def _open_manager(
    ctx: click.Context, needs_provider: bool = True
) -> AsyncIterator[DebateManager]:
    """Connect the database and wire a manager from the config."""
    cfg = ctx.obj["config"]
    provider = ctx.obj.get("provider")
    if provider is None and needs_provider:
        provider = _build_provider(cfg)
    agent_cfgs = cfg.get("agents", {})

    db_path = cfg.get("database", {}).get("path", "data/debates.db")
    db = DebateDatabase(db_path)
    await db.connect()
    try:
        yield DebateManager(
            db,
            provider,
            judge=Judge(provider, **agent_cfgs.get("judge", {})),
            moderator=Moderator(provider, **agent_cfgs.get("moderator", {})),
            debater_settings=agent_cfgs.get("debater", {}),
            max_turns_per_agent=cfg.get("debate", {}).get("max_turns_per_agent", 5),
        )
    finally:
        await db.close()


def _run(
    ctx: click.Context,
    action: Callable[[DebateManager], Awaitable[None]],
    needs_provider: bool = True,
) -> None:
    """Run *action* against a fresh manager, mapping engine errors to exit code 1."""

    async def _main() -> None:
        async with _open_manager(ctx, needs_provider) as manager:
            await action(manager)

    try:
        asyncio.run(_main())
    except DebateError as exc:
        click.echo(f"Error [{exc.kind}]: {exc.message}", err=True)
        sys.exit(1)


def _visualizer(ctx: click.Context) -> DebateVisualizer:
    return DebateVisualizer(ctx.obj["config"].get("viz", {}).get("output_dir", "viz/output"))


def _save_score_chart(ctx: click.Context, result: EndResult) -> None:
    path = _visualizer(ctx).plot_scores(result.session.id, result.verdict)
    click.echo(f"\n  Chart saved to: {path}")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

@click.group()
@click.option("--config", default="config/default.yaml", help="Path to YAML config")
@click.option("--log-level", default="INFO", help="Logging level")
@click.pass_context
def cli(ctx: click.Context, config: str, log_level: str) -> None:
    """Debate Arena – argue against a model, or watch two models argue."""
    _setup_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["config"] = _load_config(config)
    ctx.obj["config_path"] = config


# ---- users ----------------------------------------------------------------

@cli.command()
@click.argument("username")
@click.pass_context
def register(ctx: click.Context, username: str) -> None:
    """Create a user so human debates count towards their record."""

    async def action(manager: DebateManager) -> None:
        user = await manager.register_user(username)
        click.echo(f"Registered user #{user.id}: {user.username}")

    _run(ctx, action, needs_provider=False)


# ---- topic ----------------------------------------------------------------

@cli.command()
@click.pass_context
def topic(ctx: click.Context) -> None:
    """Generate a fresh debate topic."""

    async def action(manager: DebateManager) -> None:
        proposal = await manager.generate_topic()
        click.echo(f"Topic      : {proposal.topic}")
        click.echo(f"Pro        : {proposal.pro_position}")
        click.echo(f"Con        : {proposal.con_position}")
        click.echo(f"Background : {proposal.background}")

    _run(ctx, action)


# ---- new / say / step / end -----------------------------------------------

@cli.command()
@click.option(
    "--mode",
    type=click.Choice([m.value for m in DebateMode]),
    default=DebateMode.HUMAN_VS_MODEL.value,
    help="Debate mode",
)
@click.option("--user-id", type=int, default=None, help="Owner of a human debate")
@click.option("--topic", "topic_text", default=None, help="Debate topic (generated if omitted)")
@click.option(
    "--position",
    type=click.Choice(["pro", "con", "random"]),
    default=None,
    help="Human side (random if omitted)",
)
@click.option("--random-topic", is_flag=True, help="Generate a topic even if one is given")
@click.option("--random-position", is_flag=True, help="Pick the human side at random")
@click.pass_context
def new(
    ctx: click.Context,
    mode: str,
    user_id: int | None,
    topic_text: str | None,
    position: str | None,
    random_topic: bool,
    random_position: bool,
) -> None:
    """Create a new debate session."""

    async def action(manager: DebateManager) -> None:
        result = await manager.create(
            mode,
            user_id=user_id,
            topic=topic_text,
            human_position=position,
            randomize_topic=random_topic,
            randomize_position=random_position,
        )
        click.echo("Created debate:")
        _print_session(result.session)

    _run(ctx, action)


@cli.command()
@click.argument("session_id", type=int)
@click.argument("text")
@click.pass_context
def say(ctx: click.Context, session_id: int, text: str) -> None:
    """Send a human message and print the model's reply."""

    async def action(manager: DebateManager) -> None:
        result = await manager.exchange_turn(session_id, text)
        session = (await manager.get_debate(session_id)).session
        _print_message(session, result.model_message)

    _run(ctx, action)


@cli.command()
@click.argument("session_id", type=int)
@click.pass_context
def step(ctx: click.Context, session_id: int) -> None:
    """Advance a model-vs-model debate by one message."""

    async def action(manager: DebateManager) -> None:
        result = await manager.advance_step(session_id)
        if result.message is not None:
            session = (await manager.get_debate(session_id)).session
            _print_message(session, result.message)
        if result.finished:
            click.echo(f"\nDebate #{session_id} is complete. Run `end {session_id}` for the verdict.")

    _run(ctx, action)


@cli.command()
@click.argument("session_id", type=int)
@click.option("--chart", is_flag=True, help="Also save a chart of the judge's scores")
@click.pass_context
def end(ctx: click.Context, session_id: int, chart: bool) -> None:
    """Judge a debate and record the outcome."""

    async def action(manager: DebateManager) -> None:
        result = await manager.end(session_id)
        _print_verdict(result.session, result.verdict)
        if chart:
            _save_score_chart(ctx, result)

    _run(ctx, action)


# ---- debate / play --------------------------------------------------------

@cli.command()
@click.option("--topic", "topic_text", default=None, help="Debate topic (generated if omitted)")
@click.option("--chart", is_flag=True, help="Also save a chart of the judge's scores")
@click.pass_context
def debate(ctx: click.Context, topic_text: str | None, chart: bool) -> None:
    """Run a full model-vs-model debate through to the verdict."""

    async def action(manager: DebateManager) -> None:
        created = await manager.create(DebateMode.MODEL_VS_MODEL, topic=topic_text)
        session = created.session

        click.echo(f"\n\033[1m{'=' * 60}")
        click.echo(f"  DEBATE: {session.topic}")
        click.echo(f"{'=' * 60}\033[0m")

        def on_step(result: StepResult) -> None:
            _print_message(session, result.message)

        result = await manager.run_to_completion(session.id, on_step=on_step)
        _print_verdict(result.session, result.verdict)
        if chart:
            _save_score_chart(ctx, result)

    _run(ctx, action)


@cli.command()
@click.option("--user-id", type=int, default=None, help="Owner of the debate")
@click.option("--topic", "topic_text", default=None, help="Debate topic (generated if omitted)")
@click.option(
    "--position",
    type=click.Choice(["pro", "con", "random"]),
    default=None,
    help="Your side (random if omitted)",
)
@click.pass_context
def play(
    ctx: click.Context,
    user_id: int | None,
    topic_text: str | None,
    position: str | None,
) -> None:
    """Debate the model interactively; type /end to ask for the verdict."""

    async def action(manager: DebateManager) -> None:
        created = await manager.create(
            DebateMode.HUMAN_VS_MODEL,
            user_id=user_id,
            topic=topic_text,
            human_position=position,
        )
        session = created.session
        _print_session(session)

        while True:
            text = click.prompt("\nYou", prompt_suffix="> ")
            if text.strip() == "/end":
                break
            result = await manager.exchange_turn(session.id, text)
            _print_message(session, result.model_message)

        result = await manager.end(session.id)
        _print_verdict(result.session, result.verdict)

    _run(ctx, action)


# ---- show / stats / history / list-debates --------------------------------

@cli.command()
@click.argument("session_id", type=int)
@click.option("--export", is_flag=True, help="Also write a text transcript")
@click.pass_context
def show(ctx: click.Context, session_id: int, export: bool) -> None:
    """Print a debate's transcript."""

    async def action(manager: DebateManager) -> None:
        detail = await manager.get_debate(session_id)
        _print_session(detail.session)
        for msg in detail.messages:
            if msg.role is Role.JUDGE:
                continue
            _print_message(detail.session, msg)
        if detail.session.winner is not None:
            click.echo(f"\n  Winner: {detail.session.winner.value}")
            click.echo(f"  {detail.session.judge_comment}")

        if export:
            path = _visualizer(ctx).export_transcript(
                detail.session, detail.messages
            )
            click.echo(f"\n  Transcript saved to: {path}")

    _run(ctx, action, needs_provider=False)


@cli.command()
@click.argument("user_id", type=int)
@click.option("--chart", is_flag=True, help="Also save a bar chart")
@click.pass_context
def stats(ctx: click.Context, user_id: int, chart: bool) -> None:
    """Show a user's win/loss record."""

    async def action(manager: DebateManager) -> None:
        record = await manager.get_stats(user_id)
        click.echo(f"User #{user_id}")
        click.echo(f"  Debates  : {record.total_debates}")
        click.echo(f"  Wins     : {record.wins}")
        click.echo(f"  Losses   : {record.losses}")
        click.echo(f"  Draws    : {record.draws}")
        click.echo(f"  Win rate : {record.win_rate:.1f}%")

        if chart:
            path = _visualizer(ctx).plot_stats(record)
            click.echo(f"  Chart saved to: {path}")

    _run(ctx, action, needs_provider=False)


@cli.command()
@click.argument("user_id", type=int)
@click.pass_context
def history(ctx: click.Context, user_id: int) -> None:
    """List a user's debates, newest first."""

    async def action(manager: DebateManager) -> None:
        sessions = await manager.get_history(user_id)
        if not sessions:
            click.echo("No debates found.")
            return

        _print_session_table(sessions)
        summary = summarize_history(sessions, await manager.get_stats(user_id))
        click.echo(
            f"\n  {summary.finished_sessions}/{summary.total_sessions} finished, "
            f"win rate {summary.win_rate:.1f}%"
        )

    _run(ctx, action, needs_provider=False)


@cli.command("list-debates")
@click.option("--limit", default=20, type=int, help="Number of debates to list")
@click.pass_context
def list_debates(ctx: click.Context, limit: int) -> None:
    """List recent debates stored in the database."""

    async def action(manager: DebateManager) -> None:
        sessions = await manager.list_debates(limit=limit)
        if not sessions:
            click.echo("No debates found.")
            return
        _print_session_table(sessions)

    _run(ctx, action, needs_provider=False)


def _print_session_table(sessions: list[SessionRecord]) -> None:
    click.echo(f"{'ID':>5}  {'Status':<9} {'Mode':<15} {'Winner':<7} {'Topic'}")
    click.echo(f"{'─' * 5}  {'─' * 9} {'─' * 15} {'─' * 7} {'─' * 40}")
    for s in sessions:
        winner = s.winner.value if s.winner else "-"
        click.echo(
            f"{s.id:>5}  {s.status.value:<9} {s.mode.value:<15} {winner:<7} {s.topic[:40]}"
        )


# ---------------------------------------------------------------------------

if __name__ == "__main__":
    cli()
