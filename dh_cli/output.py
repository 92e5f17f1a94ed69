"""Rich output formatters and console sinks for the CLI."""

from __future__ import annotations

import itertools
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from deckhand.agent.lifecycle import AgentLifecycle
    from deckhand.agent.recovery import RecoveryReport
    from deckhand.agent.state import AgentState, ChatSnapshot
    from deckhand.sessions import Session, SessionDetails


def render_sessions_table(console: Console, sessions: list[Session]) -> None:
    """Render sessions as a Rich table."""
    if not sessions:
        console.print("[dim]No sessions found.[/dim]")
        return
    table = Table(title="Sessions")
    table.add_column("Session ID", style="cyan", no_wrap=True)
    table.add_column("Description", style="white")
    table.add_column("Modified", style="green")
    table.add_column("Messages", justify="right")
    table.add_column("Working Dir", style="dim")
    for s in sessions:
        table.add_row(
            s.id,
            s.metadata.description or "-",
            s.modified,
            str(s.metadata.message_count),
            s.metadata.working_dir,
        )
    console.print(table)


def render_session_details(console: Console, details: SessionDetails) -> None:
    """Render session metadata as a Rich panel."""
    meta = details.metadata
    lines = [
        f"[cyan]description:[/cyan] {meta.description or '-'}",
        f"[cyan]working_dir:[/cyan] {meta.working_dir}",
        f"[cyan]messages:[/cyan] {len(details.messages)}",
        f"[cyan]total_tokens:[/cyan] {meta.accumulated_total_tokens or meta.total_tokens or 0}",
    ]
    if meta.recipe:
        lines.append(f"[cyan]recipe:[/cyan] {meta.recipe.title}")
    console.print(Panel("\n".join(lines), title=f"Session {details.session_id}"))


def render_chat(console: Console, chat: ChatSnapshot, state: AgentState) -> None:
    """Render the loaded chat summary."""
    lines = [
        f"[cyan]state:[/cyan] {state.value}",
        f"[cyan]title:[/cyan] {chat.title or '-'}",
        f"[cyan]messages:[/cyan] {len(chat.messages)}",
    ]
    if chat.recipe:
        lines.append(f"[cyan]recipe:[/cyan] {chat.recipe.title}")
    console.print(Panel("\n".join(lines), title=f"Agent session {chat.session_id}"))


def render_recovery_report(console: Console, report: RecoveryReport) -> None:
    """Render the config recovery outcome."""
    style = "yellow" if report.degraded else "green"
    table = Table(title="Config check")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style=style)
    table.add_row("Resolved by", report.resolved_by)
    table.add_row("Migrated", str(report.migrated))
    for step, error in report.errors.items():
        table.add_row(f"{step} error", error[:80])
    console.print(table)


class ConsoleNotifier:
    """Toast sink printing to a Rich console."""

    def __init__(self, console: Console):
        self.console = console
        self._ids = itertools.count(1)

    def loading(self, title: str, msg: str) -> str:
        self.console.print(f"[bold]{title}[/bold] [dim]{msg}[/dim]")
        return str(next(self._ids))

    def success(self, title: str, msg: str) -> None:
        self.console.print(f"[green]{title}[/green] {msg}")

    def dismiss(self, toast_id: str) -> None:
        return None


class ConsoleNavigator:
    """Records the route the app was sent to."""

    def __init__(self, console: Console, current: str = "/"):
        self.console = console
        self.current = current
        self.state: dict[str, Any] | None = None

    def navigate(self, route: str, state: dict[str, Any] | None = None) -> None:
        self.current = route
        self.state = state
        self.console.print(f"[dim]→ {route}[/dim]")


def render_agent_status(console: Console, lifecycle: AgentLifecycle) -> None:
    """Print what the cold path degraded on, plus pricing for the active model."""
    extensions = lifecycle.last_extensions
    if extensions and extensions.failed:
        table = Table(title="Extensions failed to load")
        table.add_column("Extension", style="cyan")
        table.add_column("Error", style="red")
        for name, error in extensions.failed.items():
            table.add_row(name, error[:80])
        console.print(table)

    if lifecycle.last_recovery and lifecycle.last_recovery.degraded:
        console.print("[yellow]Config could not be verified, running on a reinitialized config.[/yellow]")

    if lifecycle.cost_tracker and lifecycle.active_model:
        cost = lifecycle.cost_tracker.get_model_cost(*lifecycle.active_model)
        if cost:
            currency = cost.get("currency") or "$"
            console.print(
                f"[dim]pricing {'/'.join(lifecycle.active_model)}: "
                f"in {currency}{cost.get('input_token_cost')} / "
                f"out {currency}{cost.get('output_token_cost')} per token[/dim]"
            )
