# ABOUTME: Display module for Rich terminal output formatting.
# ABOUTME: Exports panels and tables for summaries, reconcile results and errors.

from anonymous_carryover.display.errors import (
    display_error,
    display_invalid_timestamps,
    display_rate_limit_exceeded,
)
from anonymous_carryover.display.tables import (
    ReconcileResultTable,
    format_epoch_ms,
    render_carryover_summary,
    render_database_stats_panel,
    render_sweep_summary,
)

__all__ = [
    "ReconcileResultTable",
    "display_error",
    "display_invalid_timestamps",
    "display_rate_limit_exceeded",
    "format_epoch_ms",
    "render_carryover_summary",
    "render_database_stats_panel",
    "render_sweep_summary",
]
