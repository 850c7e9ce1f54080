# ABOUTME: Rich rendering for carryover summaries, reconcile results, sweeps and stats.
# ABOUTME: Provides ReconcileResultTable and panel helpers used by the CLI.

from datetime import UTC, datetime
from typing import Any

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from anonymous_carryover.reconcile import ReconcileResult
from anonymous_carryover.service import CarryoverSummary
from anonymous_carryover.sweeper import SweepSummary


def format_epoch_ms(value: int | None) -> str:
    """Format epoch milliseconds as a UTC timestamp string."""
    if value is None:
        return "-"
    return datetime.fromtimestamp(value / 1000, tz=UTC).strftime("%Y-%m-%d %H:%M:%S UTC")


class ReconcileResultTable:
    """Renders per-action reconcile outcomes as a Rich table."""

    MAX_TARGET_LENGTH = 32
    MAX_ERROR_LENGTH = 48

    STATUS_COLORS: dict[str, str] = {
        "tracked": "green",
        "added_to_history": "cyan",
        "failed": "red",
    }

    def _truncate(self, text: str | None, max_length: int) -> str:
        """Truncate text to max length with ellipsis.

        Args:
            text: The text to truncate, or None.
            max_length: Maximum length before truncation.

        Returns:
            Truncated text with ellipsis, or empty string if None.
        """
        if text is None:
            return ""
        if len(text) <= max_length:
            return text
        return text[: max_length - 3] + "..."

    def render(self, result: ReconcileResult, title: str | None = None) -> Table:
        """Render the per-action results of a reconcile call.

        Args:
            result: The ReconcileResult to display.
            title: Optional title for the table.

        Returns:
            Rich Table with one row per buffered action.
        """
        table = Table(title=title, show_lines=False)

        table.add_column("#", style="dim", width=4)
        table.add_column("Type", style="magenta", no_wrap=True)
        table.add_column("Target", style="white", max_width=self.MAX_TARGET_LENGTH)
        table.add_column("Status", no_wrap=True)
        table.add_column("Error", style="red", max_width=self.MAX_ERROR_LENGTH)

        for idx, item in enumerate(result.per_action_results, 1):
            color = self.STATUS_COLORS.get(item.status, "white")
            error = getattr(item, "error", None)
            table.add_row(
                str(idx),
                item.type,
                self._truncate(item.target_id, self.MAX_TARGET_LENGTH),
                f"[{color}]{item.status}[/{color}]",
                self._truncate(error, self.MAX_ERROR_LENGTH),
            )

        return table


def render_carryover_summary(session_id: str, summary: CarryoverSummary) -> Panel:
    """Render a pending carryover as a Rich Panel.

    Args:
        session_id: The session being summarized.
        summary: Summary returned by CarryoverService.get_carryover_summary.

    Returns:
        Rich Panel listing action counts and session lifetime.
    """
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Label", style="dim")
    table.add_column("Value")

    table.add_row("Session:", Text(f"{session_id[:8]}...", style="cyan"))
    table.add_row("Total Actions:", f"[cyan]{summary.total_actions}[/cyan]")
    for action_type, count in sorted(summary.counts_by_type.items()):
        table.add_row(f"  {action_type}:", str(count))
    table.add_row("Created:", format_epoch_ms(summary.session_created))
    table.add_row("Expires:", format_epoch_ms(summary.expires_at))
    if summary.processed_at is not None:
        table.add_row("Processed:", format_epoch_ms(summary.processed_at))

    return Panel(
        table,
        title="Carryover Summary",
        border_style="green",
        padding=(1, 2),
    )


def render_sweep_summary(summary: SweepSummary) -> Panel:
    """Render the outcome of an expiry sweep."""
    if summary.deleted_sessions == 0:
        body = "[dim]No expired sessions to remove.[/dim]"
        border_style = "blue"
    else:
        body = (
            f"Removed [bold]{summary.deleted_sessions}[/bold] expired session(s) "
            f"holding [bold]{summary.total_actions_removed}[/bold] action(s)."
        )
        border_style = "green"

    return Panel(
        Text.from_markup(body),
        title="Expiry Sweep",
        border_style=border_style,
        padding=(1, 2),
    )


def render_database_stats_panel(stats: dict[str, Any]) -> Panel:
    """Render database statistics as a Rich Panel.

    Args:
        stats: Dictionary of database statistics from get_database_stats.

    Returns:
        Rich Panel containing formatted database statistics.
    """
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Label", style="dim")
    table.add_column("Value")

    table.add_row("Sessions:", f"[cyan]{stats.get('total_sessions', 0)}[/cyan]")
    table.add_row("Live:", f"[cyan]{stats.get('live_sessions', 0)}[/cyan]")
    table.add_row("Awaiting Sweep:", f"[cyan]{stats.get('expired_sessions', 0)}[/cyan]")

    states = stats.get("state_distribution", {})
    if states:
        parts = [f"{state}: {count}" for state, count in sorted(states.items())]
        table.add_row("By State:", ", ".join(parts))

    table.add_row("Buffered Actions:", f"[cyan]{stats.get('buffered_actions', 0)}[/cyan]")
    table.add_row("Carried Searches:", f"[cyan]{stats.get('carryover_searches', 0)}[/cyan]")
    table.add_row("Audit Events:", f"[cyan]{stats.get('audit_events', 0)}[/cyan]")

    return Panel(
        table,
        title="Database Statistics",
        border_style="blue",
        padding=(1, 2),
    )
