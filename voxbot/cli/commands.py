"""CLI commands for voxbot."""

import asyncio
import json

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from voxbot import __logo__, __version__

app = typer.Typer(
    name="voxbot",
    help=f"{__logo__} voxbot - Voice command resolution and dispatch",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} voxbot v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
    log_level: str = typer.Option(None, "--log-level", help="Log level (default: $LOG_LEVEL or INFO)"),
):
    """voxbot - Voice command resolution and dispatch."""
    from voxbot.logging_config import setup_logging

    setup_logging(log_level or None)


# ============================================================================
# Shared helpers
# ============================================================================


def _make_agent():
    from voxbot.agent import VoiceAgent
    from voxbot.config.loader import load_config

    return VoiceAgent.from_config(load_config())


def _print_decision(decision) -> None:
    table = Table(title=f"{__logo__} {escape(decision.original_text)}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Intent", f"[bold]{decision.label.value}[/bold]")
    table.add_row("Confidence", f"{decision.confidence:.2f}")
    table.add_row("Language", decision.language)
    if decision.adjusted_by:
        table.add_row("Context rule", decision.adjusted_by)
    data = decision.to_dict()
    if data["entities"]:
        table.add_row("Entities", escape(json.dumps(data["entities"], ensure_ascii=False)))
    if data["scores"]:
        scores = ", ".join(f"{k}={v:.2f}" for k, v in data["scores"].items())
        table.add_row("Scores", scores)

    console.print(table)


def _print_outcome(outcome) -> None:
    if outcome.command is None:
        console.print(
            f"[yellow]No command for {outcome.decision.label.value} "
            f"({outcome.decision.confidence:.2f})[/yellow]"
        )
        return

    result = outcome.result
    if result.success:
        console.print(f"[green]✓[/green] {outcome.command.name}: {escape(result.message)}")
        return

    console.print(f"[red]✗[/red] {outcome.command.name}: {escape(result.error or '')}")
    for field, messages in result.errors_by_field().items():
        for message in messages:
            console.print(f"  [dim]{field}:[/dim] {escape(message)}")


# ============================================================================
# Commands
# ============================================================================


@app.command()
def resolve(
    text: str = typer.Argument(..., help="Utterance to classify"),
    language: str = typer.Option(None, "--language", "-l", help="Language code"),
    session_id: str = typer.Option("cli:default", "--session", "-s", help="Session ID"),
):
    """Classify an utterance and show the decision."""
    agent = _make_agent()
    decision = asyncio.run(agent.resolve(text, language, session_id))
    _print_decision(decision)


@app.command()
def run(
    text: str = typer.Argument(..., help="Utterance to execute"),
    language: str = typer.Option(None, "--language", "-l", help="Language code"),
    session_id: str = typer.Option("cli:default", "--session", "-s", help="Session ID"),
    bypass_cache: bool = typer.Option(False, "--bypass-cache", help="Ignore cached results"),
):
    """Resolve an utterance and dispatch it (dry-run handlers)."""
    agent = _make_agent()
    outcome = asyncio.run(agent.handle_utterance(text, language, session_id, bypass_cache))
    _print_decision(outcome.decision)
    _print_outcome(outcome)


@app.command()
def chat(
    language: str = typer.Option(None, "--language", "-l", help="Language code"),
    session_id: str = typer.Option("cli:default", "--session", "-s", help="Session ID"),
):
    """Interactive loop keeping one conversation session."""
    agent = _make_agent()
    console.print(f"{__logo__} Interactive mode (Ctrl+C to exit)\n")

    async def run_interactive():
        agent.start()
        try:
            while True:
                try:
                    user_input = await asyncio.to_thread(console.input, "[bold blue]You:[/bold blue] ")
                except (KeyboardInterrupt, EOFError):
                    console.print("\nGoodbye!")
                    break
                if not user_input.strip():
                    continue
                if user_input.strip() == "/context":
                    async with agent.conversations.session(session_id) as state:
                        console.print(f"[dim]{escape(state.describe() or '(empty)')}[/dim]")
                    continue
                outcome = await agent.handle_utterance(user_input, language, session_id)
                _print_decision(outcome.decision)
                _print_outcome(outcome)
                console.print()
        finally:
            await agent.stop()

    asyncio.run(run_interactive())


@app.command()
def strategies():
    """Show registered strategies and their weights."""
    agent = _make_agent()

    table = Table(title="Strategies")
    table.add_column("#", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Weight", justify="right")

    for i, ws in enumerate(agent.classifier.strategies, 1):
        table.add_row(str(i), ws.name, f"{ws.weight:.2f}")

    console.print(table)
    if agent.classifier.timeout is not None:
        console.print(f"[dim]Timeout per strategy: {agent.classifier.timeout:.1f}s[/dim]")


if __name__ == "__main__":
    app()
