"""
Command-line interface for tutorloop.

Provides an interactive tutoring chat plus configuration and stored-session
inspection commands.
"""

import asyncio
import sys
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .utils.rich_logging import console as tutor_console

app = typer.Typer(
    name="tutorloop",
    help="Conversational tutoring pipeline with retrieval and tool calling",
    add_completion=False,
)

console = Console()

EXIT_COMMANDS = {"exit", "quit", ":q"}


@app.command()
def version():
    """Show version information."""
    console.print(f"[bold cyan]tutorloop[/bold cyan] version {__version__}")
    console.print("Conversational Tutoring Pipeline")


async def _chat_loop(session_id: Optional[str], domain: str, show_metrics: bool) -> None:
    from .core.factory import build_pipeline
    from .models.schemas import TutorRequest

    pipeline = build_pipeline()
    session = await pipeline.start_session(session_id)
    tutor_console.print_info(f"Session [bold]{session.session_id}[/bold]. Type 'exit' to quit.")

    while True:
        text = await asyncio.to_thread(tutor_console.console.input, "[learner]You[/learner] > ")
        if text.strip().lower() in EXIT_COMMANDS:
            break
        if not text.strip():
            continue

        answer = await pipeline.handle_turn(
            TutorRequest(session_id=session.session_id, text=text, domain_summary=domain)
        )
        tutor_console.print_answer(answer)
        if answer.pending_tool_calls:
            tutor_console.print_warning(
                f"Waiting on {len(answer.pending_tool_calls)} tool result(s); they arrive out of band."
            )

    if show_metrics:
        tutor_console.print_metrics(pipeline.metrics.snapshot())
    pipeline.end_session(session.session_id)


@app.command()
def chat(
    session: Optional[str] = typer.Option(None, "--session", "-s", help="Resume a session by id"),
    domain: str = typer.Option(
        "", "--domain", "-d", help="What the tutor covers, used for intent routing"
    ),
    metrics: bool = typer.Option(False, "--metrics", help="Print metrics when the chat ends"),
):
    """
    Start an interactive tutoring chat.

    Uses the configured models and local stores (see `tutorloop config show`).
    """
    from .core.config import get_config
    from .utils.logging import setup_logging

    config = get_config()
    setup_logging(config)
    tutor_console.print_banner()
    tutor_console.print_config_summary(config)

    try:
        asyncio.run(_chat_loop(session, domain, metrics))
    except (KeyboardInterrupt, EOFError):
        console.print("\n[dim]Bye.[/dim]")


# Configuration management subcommand group
config_app = typer.Typer(help="Configuration management commands")
app.add_typer(config_app, name="config")


@config_app.command("show")
def config_show():
    """
    Display current configuration settings.

    Secrets are masked.
    """
    from .core.config import get_config

    try:
        config = get_config()
    except Exception as e:
        tutor_console.print_error(f"Failed to load config: {e}")
        sys.exit(1)

    table = Table(title="Active Settings")
    table.add_column("Setting", style="cyan", no_wrap=True)
    table.add_column("Value", style="yellow")

    for key, value in sorted(config.export_safe().items()):
        if value is None:
            continue
        table.add_row(key, str(value))

    console.print(table)


# Stored session subcommand group
sessions_app = typer.Typer(help="Inspect and manage stored sessions")
app.add_typer(sessions_app, name="sessions")


@sessions_app.command("show")
def sessions_show(
    session_id: str = typer.Argument(..., help="Session id"),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of recent turns to show"),
):
    """Show the stored summary and recent turns of a session."""
    from .core.config import get_config
    from .core.persistence import JsonSessionStore

    store = JsonSessionStore(get_config().session_store_dir)
    stored = asyncio.run(store.read(session_id))
    if stored is None:
        tutor_console.print_error(f"No stored session '{session_id}'")
        sys.exit(1)

    if stored.title:
        console.print(f"[bold]Title:[/bold] {stored.title}")
    if stored.summary:
        console.print(f"[bold]Summary:[/bold] {stored.summary}\n")

    table = Table(title=f"Session {session_id} ({len(stored.history)} turns)")
    table.add_column("Role", style="cyan", no_wrap=True)
    table.add_column("Content", style="white")
    for turn in stored.history[-limit:]:
        content = turn.text
        if not content:
            kinds = ", ".join(part.kind for part in turn.parts)
            content = f"[dim]<{kinds}>[/dim]"
        table.add_row(turn.role.value, content)

    console.print(table)


@sessions_app.command("delete")
def sessions_delete(
    session_id: str = typer.Argument(..., help="Session id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete a stored session."""
    from .core.config import get_config
    from .core.persistence import JsonSessionStore

    if not yes:
        typer.confirm(f"Delete stored session '{session_id}'?", abort=True)

    store = JsonSessionStore(get_config().session_store_dir)
    if store.delete(session_id):
        tutor_console.print_success(f"Deleted session '{session_id}'")
    else:
        tutor_console.print_error(f"No stored session '{session_id}'")
        sys.exit(1)


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
