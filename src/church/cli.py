"""Typer-based CLI for the church ledger."""

import json
import logging
import time
from datetime import datetime, timezone
from typing import List, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .account import AccountStateDeriver
from .config import ChurchConfig
from .errors import LedgerError
from .store import append_event_line, load_ledger, read_ledger_tail

app = typer.Typer(
    name="church",
    help="Church ledger - hash-chained deed ledger and CHURCH mint eligibility",
    add_completion=False,
)

deed_app = typer.Typer(help="Deed commands")
app.add_typer(deed_app, name="deed")

account_app = typer.Typer(help="Account commands")
app.add_typer(account_app, name="account")

ledger_app = typer.Typer(help="Ledger commands")
app.add_typer(ledger_app, name="ledger")

console = Console()

LEDGER_OPTION_HELP = "Path to ledger .jsonl file (default: CHURCH_LEDGER_PATH env or ./church_ledger.jsonl)"


def _setup_logging(verbose: bool) -> None:
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _format_ts(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


@deed_app.command("log")
def deed_log(
    actor: str = typer.Option(..., "--actor", "-a", help="Acting party"),
    deed_type: str = typer.Option(..., "--type", "-t", help="Deed category, e.g. ecological_sustainability"),
    tags: Optional[List[str]] = typer.Option(None, "--tag", help="Free-form label (repeatable)"),
    targets: Optional[List[str]] = typer.Option(None, "--target", help="Affected party (repeatable)"),
    flags: Optional[List[str]] = typer.Option(None, "--flag", help="Ethics flag (repeatable)"),
    harm: bool = typer.Option(False, "--harm", help="Mark the deed as having caused harm"),
    context: str = typer.Option("{}", "--context", "-c", help="JSON object payload"),
    timestamp: Optional[int] = typer.Option(None, "--timestamp", help="Epoch seconds (default: now)"),
    ledger_path: str = typer.Option(None, "--ledger", "-l", help=LEDGER_OPTION_HELP),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
):
    """Record a deed on top of the current ledger head.

    The existing ledger is loaded and verified before the new event is
    appended to the file.
    """
    _setup_logging(verbose)
    config = ChurchConfig.from_env(cli_ledger_path=ledger_path)

    try:
        context_json = json.loads(context)
    except json.JSONDecodeError as e:
        console.print(f"[red]Error: --context is not valid JSON: {e}[/red]")
        raise typer.Exit(code=1)
    if not isinstance(context_json, dict):
        console.print("[red]Error: --context must be a JSON object[/red]")
        raise typer.Exit(code=1)

    try:
        ledger = load_ledger(config.ledger_path)
        event = ledger.record(
            actor_id=actor,
            deed_type=deed_type,
            target_ids=targets,
            tags=tags,
            context_json=context_json,
            ethics_flags=flags,
            life_harm_flag=harm,
            timestamp=timestamp,
        )
    except LedgerError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)
    except ValidationError as e:
        console.print(f"[red]Error: invalid deed: {e}[/red]")
        raise typer.Exit(code=1)

    append_event_line(event, config.ledger_path)

    console.print("[green]Recorded deed:[/green]")
    console.print(f"  ID:       {event.event_id}")
    console.print(f"  Category: {event.category.value}")
    console.print(f"  Hash:     {event.self_hash}")
    if event.is_harmful:
        console.print("[yellow]  Harm recorded; minting is gated on forgiveness quorum[/yellow]")


@account_app.command("show")
def account_show(
    actor: str = typer.Argument(..., help="Actor to evaluate"),
    now: Optional[int] = typer.Option(None, "--now", help="Evaluation time in epoch seconds (default: now)"),
    ledger_path: str = typer.Option(None, "--ledger", "-l", help=LEDGER_OPTION_HELP),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
):
    """Show the derived account state and CHURCH mint amount for an actor."""
    _setup_logging(verbose)
    config = ChurchConfig.from_env(cli_ledger_path=ledger_path)

    try:
        ledger = load_ledger(config.ledger_path)
    except LedgerError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)

    deriver = AccountStateDeriver(config.scoring)
    evaluated_at = int(time.time()) if now is None else now
    state = deriver.compute(ledger, actor, now=evaluated_at)

    if state is None:
        console.print(f"[dim]No history for {actor}[/dim]")
        return

    table = Table(title=f"Account: {actor}")
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value", style="magenta")
    table.add_row("Phase", state.phase.value)
    table.add_row("Events", str(state.event_count))
    table.add_row("Eco score", f"{state.eco_score:.4f}")
    table.add_row("Good deeds (discounted)", f"{state.cumulative_good_deeds:.4f}")
    table.add_row("Harm count", str(state.harm_count))
    table.add_row("Harm weight", f"{state.harm_weight:.4f}")
    table.add_row("Forgiveness signals", str(state.forgiveness_count))
    table.add_row("Forgiveness quorum", "met" if state.forgiveness_quorum_met else "not met")
    table.add_row("Debt ceiling", f"{state.debt_ceiling:.2f}")
    table.add_row("Mint eligible", "yes" if deriver.can_mint_church(state) else "no")
    table.add_row("Mint amount", f"{deriver.compute_mint_amount(state):.6f} CHURCH")
    console.print(table)


@ledger_app.command("verify")
def ledger_verify(
    ledger_path: str = typer.Option(None, "--ledger", "-l", help=LEDGER_OPTION_HELP),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
):
    """Re-check every hash link in the ledger file."""
    _setup_logging(verbose)
    config = ChurchConfig.from_env(cli_ledger_path=ledger_path)

    try:
        ledger = load_ledger(config.ledger_path)
        ledger.verify_chain()
    except LedgerError as e:
        console.print(f"[red]Chain verification failed: {e}[/red]")
        raise typer.Exit(code=1)

    console.print(f"[green]Chain OK[/green] ({len(ledger)} events)")
    if len(ledger):
        console.print(f"[dim]Head:[/dim] {ledger.last_hash()}")


@ledger_app.command("tail")
def ledger_tail(
    n: int = typer.Option(20, "--n", help="Number of recent events to display"),
    ledger_path: str = typer.Option(None, "--ledger", "-l", help=LEDGER_OPTION_HELP),
):
    """Display the last N events from the ledger.

    Skips malformed lines with warnings; does not verify the chain.
    """
    config = ChurchConfig.from_env(cli_ledger_path=ledger_path)
    events = read_ledger_tail(config.ledger_path, n=n)

    if not events:
        console.print("[dim]No events in ledger[/dim]")
        return

    table = Table(title=f"Last {len(events)} Deed(s)")
    table.add_column("Timestamp (UTC)", style="cyan", no_wrap=True)
    table.add_column("Actor", style="yellow")
    table.add_column("Deed Type", style="magenta")
    table.add_column("Harm", style="red")
    table.add_column("Hash", style="dim")

    for event in events:
        table.add_row(
            _format_ts(event.timestamp),
            event.actor_id,
            event.deed_type,
            "yes" if event.is_harmful else "-",
            event.self_hash[:12] + "...",
        )

    console.print(table)


if __name__ == "__main__":
    app()
