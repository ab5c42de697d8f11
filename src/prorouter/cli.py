"""CLI for prorouter.

Operator tool for explaining routing decisions. Nothing here calls a
model or touches billing state; every command is a pure evaluation.

Quick start:
    prorouter classify "optimize this query"
    prorouter route "deep risk analysis of our architecture" --used 150000 --region IN
    prorouter route "hi" --json
    prorouter budget --used 205000 --region IN
    prorouter keywords
    prorouter validate
"""

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from prorouter import __version__
from prorouter.config import ConfigError, load_settings, validate_settings
from prorouter.routing import (
    BudgetGuard,
    Intent,
    KeywordRegistry,
    ProRouter,
    Region,
    default_table,
    validate_table,
)

app = typer.Typer(
    name="prorouter",
    help="Explain Pro-tier routing decisions (intent, budget, provider)",
    no_args_is_help=True,
)

console = Console()


def _load(config: Path | None):
    try:
        return load_settings(config)
    except ConfigError as e:
        console.print(f"[red]Config error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


def _parse_intent(value: str | None) -> Intent | None:
    if value is None:
        return None
    try:
        return Intent(value.lower())
    except ValueError:
        console.print(f"[red]Unknown intent '{value}'. Use everyday|professional|expert[/red]")
        raise typer.Exit(2)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """prorouter diagnostics."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command()
def version() -> None:
    """Show the prorouter version."""
    console.print(f"prorouter {__version__}")


@app.command()
def classify(
    message: str = typer.Argument(..., help="Message to classify"),
    session_intent: Optional[str] = typer.Option(
        None, "--session-intent", "-s", help="Locked session intent"),
    locked: bool = typer.Option(False, "--locked", help="Session intent is locked"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Settings YAML"),
) -> None:
    """Classify a message and show the scoring breakdown."""
    settings = _load(config)
    router = ProRouter(settings)
    result = router.classify(
        message,
        session_intent=_parse_intent(session_intent),
        session_intent_locked=locked,
    )

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Intent", f"[cyan]{result.intent.value}[/cyan]")
    table.add_row("Confidence", str(result.confidence))
    table.add_row("Should lock", "yes" if result.should_lock else "no")
    table.add_row("Bias applied", "yes" if result.bias_applied else "no")
    table.add_row("Session override", "yes" if result.hysteresis_applied else "no")
    for name, value in result.raw_scores.items():
        adjusted = result.adjusted_scores.get(name, value)
        table.add_row(f"Score ({name})", f"{value:g} -> {adjusted:g}")
    table.add_row("Matched", ", ".join(sorted(result.matched_keywords)) or "-")

    console.print(Panel("[bold]Intent Classification[/bold]", border_style="cyan"))
    console.print(table)


@app.command()
def route(
    message: str = typer.Argument(..., help="Message to route"),
    used: Optional[int] = typer.Option(
        0, "--used", "-u", help="Premium tokens used this cycle (omit with --unknown-usage)"),
    unknown_usage: bool = typer.Option(
        False, "--unknown-usage", help="Simulate a failed usage lookup"),
    region: str = typer.Option("IN", "--region", "-r", help="Billing region: IN|INTL"),
    turn: int = typer.Option(1, "--turn", "-t", help="Turn number in the conversation"),
    session_intent: Optional[str] = typer.Option(
        None, "--session-intent", "-s", help="Locked session intent"),
    locked: bool = typer.Option(False, "--locked", help="Session intent is locked"),
    user_id: Optional[str] = typer.Option(None, "--user-id", help="User id for the routing hash"),
    as_json: bool = typer.Option(False, "--json", help="Print the decision as JSON"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Settings YAML"),
) -> None:
    """Route a message and explain the decision."""
    settings = _load(config)
    router = ProRouter(settings)
    result = router.route(
        message,
        tokens_used=None if unknown_usage else used,
        region=region.upper(),
        turn_number=turn,
        session_intent=_parse_intent(session_intent),
        session_intent_locked=locked,
        user_id=user_id,
    )

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
        return

    meta = result.metadata
    color = "red" if result.cap_reached else "green"

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Provider", f"[cyan]{result.display_name}[/cyan] ({result.provider})")
    table.add_row("Intent", f"{result.intent.value} ({result.confidence})")
    table.add_row("Premium allowed", "yes" if result.premium_allowed else "no")
    table.add_row("Soft escalation", "yes" if meta.soft_escalation_triggered else "no")
    table.add_row(
        "Fallback",
        meta.fallback_reason.value if meta.fallback_applied and meta.fallback_reason else "-",
    )
    table.add_row("Routing hash", str(meta.routing_hash))
    table.add_row("Estimated tokens", f"{result.estimated_tokens:,}")
    table.add_row(
        "Premium budget",
        f"[{color}]{meta.tokens_remaining:,} / {meta.cap_limit:,} remaining[/{color}]",
    )
    table.add_row("Follow-up", "yes" if result.is_follow_up else "no")
    if result.nudge:
        table.add_row("Nudge", result.nudge.value)

    console.print(Panel("[bold]Routing Decision[/bold]", border_style="cyan"))
    console.print(table)
    console.print(Panel(result.delta_prompt, title="Delta prompt", border_style="dim"))


@app.command()
def budget(
    used: int = typer.Option(0, "--used", "-u", help="Premium tokens used this cycle"),
    region: str = typer.Option("IN", "--region", "-r", help="Billing region: IN|INTL"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Settings YAML"),
) -> None:
    """Show premium cap status for a usage figure."""
    settings = _load(config)
    guard = BudgetGuard(settings.budget)
    stats = guard.usage_stats(region.upper(), used)

    pct = stats["percent_used"]
    color = "green" if pct < 50 else ("yellow" if pct < 80 else "red")
    bar_len = 30
    filled = int(bar_len * min(pct, 100) / 100)
    bar = f"[{color}]{'█' * filled}{'░' * (bar_len - filled)}[/{color}]"

    console.print(f"  Premium cap ({region.upper()}): {bar} {pct}%")
    console.print(f"  {stats['used']:,} / {stats['cap']:,}  ({stats['remaining']:,} remaining)")
    if stats["is_cap_reached"]:
        console.print("  [bold red]Cap reached: premium routing disabled[/bold red]")
    elif stats["is_near_cap"]:
        console.print("  [yellow]Approaching premium cap[/yellow]")


@app.command()
def keywords() -> None:
    """Show keyword table statistics."""
    stats = default_table().stats()

    table = Table(title=f"Keyword Table v{stats['version']}")
    table.add_column("Tier", style="cyan")
    table.add_column("High", justify="right")
    table.add_column("Medium", justify="right")
    table.add_column("Low", justify="right")
    table.add_column("Total", justify="right", style="green")

    for intent in Intent:
        counts = stats[intent.value]
        table.add_row(
            intent.value,
            str(counts["high"]),
            str(counts["medium"]),
            str(counts["low"]),
            str(counts["total"]),
        )
    console.print(table)


@app.command()
def validate(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Settings YAML"),
) -> None:
    """Validate settings and the keyword table (run once at deploy time)."""
    settings = _load(config)
    try:
        validate_settings(settings)
        registry = KeywordRegistry(default_table(), settings.keyword_limits)
        warnings = validate_table(registry.snapshot(), settings.keyword_limits)
    except ConfigError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(1)

    for message in warnings:
        console.print(f"[yellow]⚠ {escape(message)}[/yellow]")

    regions = ", ".join(f"{r}={c:,}" for r, c in settings.budget.caps.items())
    console.print(f"[green]✓ Routing config v{settings.version} is valid[/green]")
    console.print(f"[dim]Caps: {regions} | Regions known: {', '.join(r.value for r in Region)}[/dim]")


if __name__ == "__main__":
    app()
