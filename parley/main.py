from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path

import click

from parley.channels.web import WebChannel
from parley.chat.identity import ContextIdentity, StaticIdentity
from parley.chat.orchestrator import ConversationOrchestrator
from parley.chat.surfaces import SURFACES, build_orchestrator
from parley.config import ParleySettings, load_config
from parley.core.logging import setup_logging
from parley.core.rate_limiter import SlidingWindowRateLimiter
from parley.core.telemetry import init_tracing, shutdown_tracing
from parley.models.turns import SenderRole, Turn
from parley.persistence.migrations import run_migrations
from parley.persistence.profile_store import SQLiteProfileStore

logger = logging.getLogger(__name__)

_CONFIG_OPTION = click.option(
    "--config", "config_path", default="config/parley.yaml", show_default=True
)


def _db_path(settings: ParleySettings) -> str:
    db_path = settings.store.db_path
    if not db_path.is_absolute():
        db_path = Path.cwd() / db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return str(db_path)


def _configure(settings: ParleySettings, surfaces: Sequence[str] = ()) -> None:
    setup_logging(settings.observability.log_level, json_output=settings.observability.json_logs)
    if settings.telemetry.enabled:
        init_tracing(
            env=settings.telemetry.env, endpoint=settings.telemetry.endpoint, surfaces=surfaces
        )


async def _prepare_storage(settings: ParleySettings, profiles_path: Path | None = None) -> int:
    db = _db_path(settings)
    await run_migrations(db)
    source = profiles_path or settings.store.profiles_path
    if source is None:
        return 0
    return await SQLiteProfileStore(db).load_profiles(source)


@click.group()
def cli() -> None:
    """Parley conversation pipeline CLI."""
    setup_logging()


@cli.command("init")
@_CONFIG_OPTION
@click.option(
    "--profiles",
    "profiles_path",
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    default=None,
    help="YAML file of counterpart profiles to seed.",
)
def init_command(config_path: str, profiles_path: Path | None) -> None:
    """Create the database schema and seed counterpart profiles."""
    settings = load_config(config_path)
    _configure(settings)
    seeded = asyncio.run(_prepare_storage(settings, profiles_path))
    click.echo(f"Database ready at {_db_path(settings)} ({seeded} profiles seeded).")


async def _serve(settings: ParleySettings) -> None:
    await _prepare_storage(settings)
    identity = ContextIdentity()
    limiter = SlidingWindowRateLimiter(
        settings.rate_limit.max_calls, settings.rate_limit.window_seconds
    )
    orchestrators = {
        name: build_orchestrator(settings, surface, identity, limiter=limiter)
        for name, surface in SURFACES.items()
    }
    channel = WebChannel(
        orchestrators,
        identity,
        settings.web.tokens,
        host=settings.web.host,
        port=settings.web.port,
        metrics_enabled=settings.observability.metrics_enabled,
    )
    try:
        await channel.serve()
    finally:
        shutdown_tracing()


@cli.command("serve")
@_CONFIG_OPTION
def serve_command(config_path: str) -> None:
    """Serve every chat surface over HTTP."""
    settings = load_config(config_path)
    _configure(settings, list(SURFACES))
    if not settings.web.tokens:
        logger.warning("no web tokens configured; every API request will be rejected")
    try:
        asyncio.run(_serve(settings))
    except KeyboardInterrupt:
        click.echo("Shutting down.")


def _render(turns: list[Turn]) -> None:
    for turn in turns:
        who = "you" if turn.sender is SenderRole.actor else "them"
        stamp = turn.created_at.astimezone().strftime("%H:%M")
        click.echo(f"[{stamp}] {who}: {turn.text}")


async def _chat_loop(orchestrator: ConversationOrchestrator, contact_id: str | None) -> None:
    await orchestrator.initialize()
    contacts = await orchestrator.load_contacts()
    if contact_id is None:
        if not contacts:
            raise click.ClickException("no contacts; pass --contact")
        contact_id = contacts[0].contact_id
    click.echo(f"Chatting with {contact_id}. Type /more for older turns, /quit to leave.")

    page = await orchestrator.load_page(contact_id)
    _render(page.turns)
    while True:
        line = await asyncio.to_thread(click.prompt, "you", default="", show_default=False)
        command = line.strip()
        if command == "/quit":
            break
        if command == "/more":
            older = await orchestrator.load_more(contact_id)
            if older is None or not older.turns:
                click.echo("(no older turns)")
            else:
                _render(older.turns)
            continue
        if not command:
            continue
        before = {turn.turn_id for turn in orchestrator.cached_turns(contact_id)}
        turns = await orchestrator.send_turn(contact_id, line)
        _render(
            [
                turn
                for turn in turns
                if turn.turn_id not in before and turn.sender is SenderRole.counterpart
            ]
        )
    await orchestrator.drain_notifications()


@cli.command("chat")
@_CONFIG_OPTION
@click.option(
    "--surface",
    type=click.Choice(sorted(SURFACES), case_sensitive=False),
    default="messenger",
    show_default=True,
)
@click.option("--actor", "actor_id", required=True, help="Actor id to chat as.")
@click.option("--contact", "contact_id", default=None, help="Conversation to open.")
def chat_command(config_path: str, surface: str, actor_id: str, contact_id: str | None) -> None:
    """Chat with a counterpart from the terminal."""
    settings = load_config(config_path)
    _configure(settings, [surface])
    asyncio.run(_prepare_storage(settings))
    orchestrator = build_orchestrator(settings, SURFACES[surface], StaticIdentity(actor_id))
    try:
        asyncio.run(_chat_loop(orchestrator, contact_id))
    except (KeyboardInterrupt, click.Abort):
        click.echo("Bye.")


__all__ = ["cli"]
