"""dh CLI — Typer-based command-line interface."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import typer
import yaml
from rich.console import Console

from deckhand import __version__

app = typer.Typer(
    name="dh",
    help="dh - agent session lifecycle client",
    no_args_is_help=True,
)

console = Console()

# exit codes per terminal agent state
EXIT_ERROR = 1
EXIT_NO_PROVIDER = 2


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"dh v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to deckhand.yaml"),
    version: bool = typer.Option(
        None, "--version", "-v", callback=_version_callback, is_eager=True
    ),
) -> None:
    """dh - agent session lifecycle client."""
    ctx.obj = {"config_path": config}


def _load(ctx: typer.Context):
    from deckhand.core.config.loader import load_config

    return load_config((ctx.obj or {}).get("config_path"))


def _load_recipe(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise typer.BadParameter(f"{path}: recipe must be a mapping")
    # saved recipes wrap the recipe under a "recipe" key
    return data.get("recipe", data)


# ════════════════════════════════════════════════════════════
# start — bootstrap an agent session
# ════════════════════════════════════════════════════════════


@app.command()
def start(
    ctx: typer.Context,
    resume: str | None = typer.Option(None, "--resume", "-r", help="Session ID to resume"),
    recipe: Path | None = typer.Option(None, "--recipe", help="Recipe YAML/JSON file"),
    view: str | None = typer.Option(None, "--view", help="Open a view instead of the agent"),
    query: str | None = typer.Option(None, "--query", "-q", help="Deep-link query string"),
) -> None:
    """Start, resume, or open a recipe in an agent session."""
    from deckhand.agent.lifecycle import AgentLifecycle
    from deckhand.agent.state import AgentState, Recipe
    from deckhand.bootstrap import AppBootstrap, LaunchContext
    from deckhand.core.client import AgentAPIClient
    from dh_cli.output import ConsoleNavigator, ConsoleNotifier, render_agent_status, render_chat

    config = _load(ctx)
    recipe_obj = Recipe.model_validate(_load_recipe(recipe)) if recipe else None
    if query:
        launch = LaunchContext.from_query(query, recipe=recipe_obj)
    else:
        launch = LaunchContext(resume_session_id=resume, recipe=recipe_obj, view=view)

    def _show(message: str | None) -> None:
        if message:
            console.print(f"[dim]{message}...[/dim]")

    async def _run():
        async with AgentAPIClient.from_config(config) as client:
            lifecycle = AgentLifecycle(client, config)
            boot = AppBootstrap(
                lifecycle,
                notifier=ConsoleNotifier(console),
                navigator=ConsoleNavigator(console),
                set_waiting_message=_show,
            )
            try:
                result = await boot.run(launch)
            except Exception as e:
                return lifecycle, None, e
            return lifecycle, result, None

    lifecycle, result, error = asyncio.run(_run())
    state = lifecycle.agent_state

    if error is not None:
        if state is AgentState.NO_PROVIDER:
            console.print(
                "[yellow]No provider configured.[/yellow] "
                "Set DECKHAND_AGENT__DEFAULT_PROVIDER and DECKHAND_AGENT__DEFAULT_MODEL."
            )
            raise typer.Exit(code=EXIT_NO_PROVIDER)
        console.print(f"[red]Error:[/red] {error}")
        raise typer.Exit(code=EXIT_ERROR)

    if result.chat is not None:
        render_chat(console, result.chat, state)
        render_agent_status(console, lifecycle)
    elif result.route is None:
        console.print(f"[yellow]Unknown view:[/yellow] {launch.view}")


# ════════════════════════════════════════════════════════════
# config — local file + remote config health
# ════════════════════════════════════════════════════════════

config_app = typer.Typer(help="Configuration")
app.add_typer(config_app, name="config")


@config_app.command("init")
def config_init(
    path: Path = typer.Argument(Path("deckhand.yaml"), help="Where to write the file"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite existing file"),
) -> None:
    """Write a starter deckhand.yaml."""
    from deckhand.core.config.loader import write_default_config

    try:
        target = write_default_config(path, overwrite=force)
    except FileExistsError as e:
        console.print(f"[red]{e}[/red] (use --force)")
        raise typer.Exit(code=1)
    console.print(f"[green]Wrote[/green] {target}")


@config_app.command("check")
def config_check(ctx: typer.Context) -> None:
    """Run the config recovery cascade against the agent service."""
    from deckhand.agent.recovery import ConfigRecoveryPipeline
    from deckhand.core.client import AgentAPIClient
    from deckhand.core.local_state import LocalState
    from dh_cli.output import render_recovery_report

    config = _load(ctx)

    async def _run():
        async with AgentAPIClient.from_config(config) as client:
            pipeline = ConfigRecoveryPipeline(
                client,
                LocalState(config.state_path),
                migration_threshold=config.recovery.migration_threshold,
            )
            return await pipeline.ensure_valid_config()

    render_recovery_report(console, asyncio.run(_run()))


# ════════════════════════════════════════════════════════════
# sessions — session management (sub-command group)
# ════════════════════════════════════════════════════════════

sessions_app = typer.Typer(help="Manage agent sessions")
app.add_typer(sessions_app, name="sessions")


def _with_client(ctx: typer.Context, fn):
    """Run ``fn(client)`` on a configured client; API or transport errors exit 1."""
    import httpx

    from deckhand.core.client import AgentAPIClient, APIError

    config = _load(ctx)

    async def _run():
        async with AgentAPIClient.from_config(config) as client:
            return await fn(client)

    try:
        return asyncio.run(_run())
    except APIError as e:
        console.print(f"[red]Error:[/red] {e.detail}")
        raise typer.Exit(code=1)
    except httpx.HTTPError as e:
        console.print(f"[red]Cannot reach agent service:[/red] {e}")
        raise typer.Exit(code=1)


@sessions_app.command("list")
def sessions_list(ctx: typer.Context) -> None:
    """List non-empty sessions, newest first."""
    from deckhand.sessions import fetch_sessions
    from dh_cli.output import render_sessions_table

    render_sessions_table(console, _with_client(ctx, fetch_sessions))


@sessions_app.command("show")
def sessions_show(ctx: typer.Context, session_id: str = typer.Argument(help="Session ID")) -> None:
    """Show session metadata."""
    from deckhand.sessions import fetch_session_details
    from dh_cli.output import render_session_details

    details = _with_client(ctx, lambda c: fetch_session_details(c, session_id))
    render_session_details(console, details)


@sessions_app.command("rename")
def sessions_rename(
    ctx: typer.Context,
    session_id: str = typer.Argument(help="Session ID"),
    description: str = typer.Argument(help="New description"),
) -> None:
    """Rename a session."""
    from deckhand.sessions import MAX_DESCRIPTION_LENGTH, update_session_metadata

    if len(description) > MAX_DESCRIPTION_LENGTH:
        console.print(f"[red]Description exceeds {MAX_DESCRIPTION_LENGTH} characters[/red]")
        raise typer.Exit(code=1)
    _with_client(ctx, lambda c: update_session_metadata(c, session_id, description))
    console.print(f"[green]Renamed[/green] {session_id}")


@sessions_app.command("delete")
def sessions_delete(
    ctx: typer.Context,
    session_id: str = typer.Argument(help="Session ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a session."""
    from deckhand.sessions import delete_session

    if not yes and not typer.confirm(f"Delete session {session_id}?"):
        raise typer.Exit()
    _with_client(ctx, lambda c: delete_session(c, session_id))
    console.print(f"[green]Deleted[/green] {session_id}")
