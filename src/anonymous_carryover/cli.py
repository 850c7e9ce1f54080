# ABOUTME: Command-line interface for the anonymous action carryover subsystem using Typer.
# ABOUTME: Provides mint-token, store, summary, reconcile, sweep and status commands.

import json
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from anonymous_carryover.clock import system_clock
from anonymous_carryover.config import get_settings
from anonymous_carryover.database import DatabaseService
from anonymous_carryover.database.stats import get_database_stats
from anonymous_carryover.display import (
    ReconcileResultTable,
    display_error,
    display_invalid_timestamps,
    display_rate_limit_exceeded,
    render_carryover_summary,
    render_database_stats_panel,
    render_sweep_summary,
)
from anonymous_carryover.errors import AuthenticationRequired, CarryoverError, InvalidTimestamp
from anonymous_carryover.logging_config import setup_logging
from anonymous_carryover.rate_limit import DatabaseCounterStore, RateLimiter, RateLimitExceeded
from anonymous_carryover.reconcile import ReconcileReason
from anonymous_carryover.service import CarryoverService
from anonymous_carryover.tokens import mint_session_token

app = typer.Typer(
    name="anonymous-carryover",
    help="Buffer anonymous visitor actions and carry them over on sign-in.",
    add_completion=False,
)

console = Console()


def _open_database() -> DatabaseService:
    settings = get_settings()
    db_service = DatabaseService(db_path=settings.db_path)
    db_service.init_db()
    return db_service


def _build_service(db_service: DatabaseService) -> CarryoverService:
    """Wire a CarryoverService for a one-shot CLI process.

    Each CLI invocation is its own process, so rate limits are kept in the
    database where every invocation can see them.
    """
    settings = get_settings()
    rate_limiter = RateLimiter(settings, store=DatabaseCounterStore(db_service))
    return CarryoverService(db_service, settings, rate_limiter=rate_limiter)



def _verbose(ctx: typer.Context) -> bool:
    return bool(ctx.obj and ctx.obj.get("verbose"))

@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging and show tracebacks on errors."),
    ] = False,
) -> None:
    """Anonymous action carryover tool.

    Buffer actions taken before sign-in, inspect pending carryovers,
    reconcile them into an account, and sweep expired sessions.
    """
    setup_logging("DEBUG" if verbose else get_settings().log_level)
    ctx.obj = {"verbose": verbose}
    if ctx.invoked_subcommand is None:
        console.print("[dim]Use --help to see available commands.[/dim]")


@app.command("mint-token")
def mint_token() -> None:
    """Mint a fresh anonymous session token."""
    typer.echo(mint_session_token(system_clock()))


@app.command()
def store(
    ctx: typer.Context,
    session_id: Annotated[str, typer.Argument(help="Anonymous session token.")],
    file: Annotated[
        Path,
        typer.Option(
            "--file",
            "-f",
            exists=True,
            dir_okay=False,
            readable=True,
            help="JSON file containing an array of wire-format actions.",
        ),
    ],
) -> None:
    """Buffer a batch of actions under an anonymous session.

    The whole batch is stored or none of it is.
    """
    try:
        payload = json.loads(file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(display_error(e, verbose=_verbose(ctx)))
        raise typer.Exit(code=1) from None

    if not isinstance(payload, list):
        console.print("[red]Error: the file must contain a JSON array of actions.[/red]")
        raise typer.Exit(code=1)

    service = _build_service(_open_database())

    try:
        record_id = service.store_actions(session_id, payload)
    except RateLimitExceeded as e:
        console.print(display_rate_limit_exceeded(e.reset_seconds))
        raise typer.Exit(code=1) from None
    except InvalidTimestamp as e:
        console.print(display_invalid_timestamps(e))
        raise typer.Exit(code=1) from None
    except CarryoverError as e:
        console.print(display_error(e, verbose=_verbose(ctx)))
        raise typer.Exit(code=1) from None

    console.print(f"[green]Stored {len(payload)} action(s) in session record {record_id}.[/green]")


@app.command()
def summary(
    session_id: Annotated[str, typer.Argument(help="Anonymous session token.")],
) -> None:
    """Show what a session would carry over on sign-in."""
    service = _build_service(_open_database())
    result = service.get_carryover_summary(session_id)

    if result is None:
        console.print("[yellow]No pending carryover for this session (missing or expired).[/yellow]")
        return

    console.print(render_carryover_summary(session_id, result))


@app.command()
def reconcile(
    ctx: typer.Context,
    session_id: Annotated[str, typer.Argument(help="Anonymous session token.")],
    subject: Annotated[
        str,
        typer.Option("--subject", "-s", help="Authenticated user the actions belong to."),
    ],
) -> None:
    """Carry a session's actions over to an authenticated user."""
    service = _build_service(_open_database())

    try:
        result = service.reconcile_on_sign_in(session_id, subject)
    except AuthenticationRequired as e:
        console.print(display_error(e, verbose=_verbose(ctx)))
        raise typer.Exit(code=1) from None

    if not result.success:
        if result.reason == ReconcileReason.ALREADY_PROCESSED:
            console.print("[yellow]This session has already been reconciled.[/yellow]")
        else:
            console.print("[yellow]No anonymous actions found or expired.[/yellow]")
        return

    if result.per_action_results:
        console.print(ReconcileResultTable().render(result, title="Carried Over Actions"))
        console.print()

    style = "green" if not result.failures else "yellow"
    console.print(
        f"[{style}]Processed {result.processed_count} of {result.total_actions} action(s).[/{style}]"
    )


@app.command()
def sweep() -> None:
    """Delete expired anonymous sessions."""
    service = _build_service(_open_database())
    console.print(render_sweep_summary(service.sweep_expired_sessions()))


@app.command()
def status() -> None:
    """Show session, carryover and audit statistics."""
    db_service = _open_database()
    stats = get_database_stats(db_service, system_clock())
    console.print(render_database_stats_panel(stats))


if __name__ == "__main__":
    app()
