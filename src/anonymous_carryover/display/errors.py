# ABOUTME: Error display helpers for formatting rejections with Rich.
# ABOUTME: Provides panels for rejected batches, rate limits, and generic errors.

import traceback

from rich.panel import Panel
from rich.text import Text

from anonymous_carryover.errors import InvalidTimestamp


def display_error(error: Exception, verbose: bool = False) -> Panel:
    """Format an error as a Rich Panel.

    Args:
        error: The exception to display.
        verbose: If True, include full traceback information.

    Returns:
        A Rich Panel containing formatted error information.
    """
    error_type = type(error).__name__
    error_message = str(error)

    content = Text()
    content.append(f"{error_type}: ", style="bold red")
    content.append(error_message, style="red")

    if verbose:
        content.append("\n\n")
        content.append("Traceback:", style="dim")
        content.append("\n")
        tb_text = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        content.append(tb_text, style="dim")

    return Panel(
        content,
        title="Error",
        border_style="red",
        padding=(1, 2),
    )


def display_invalid_timestamps(error: InvalidTimestamp) -> Panel:
    """List every action that caused a batch to be rejected.

    Args:
        error: The InvalidTimestamp raised for the batch.

    Returns:
        A Rich Panel naming each offending action.
    """
    message = Text()
    message.append("Batch rejected. No actions were stored.\n\n", style="bold red")
    for violation in error.violations:
        reason = violation.reason.replace("_", " ")
        message.append(f"• #{violation.index} ", style="bold")
        message.append(f"{violation.target_id} ", style="cyan")
        message.append(f"({violation.timestamp}, {reason})\n", style="dim")

    return Panel(
        message,
        title="Invalid Action Timestamps",
        border_style="red",
        padding=(1, 2),
    )


def display_rate_limit_exceeded(reset_seconds: int) -> Panel:
    """Display information about rate limit being exceeded.

    Args:
        reset_seconds: Seconds until another request would be accepted.

    Returns:
        A Rich Panel showing when the caller can try again.
    """
    unit = "second" if reset_seconds == 1 else "seconds"
    message = Text()
    message.append("Rate limit reached!\n\n", style="bold red")
    message.append("Too many requests for this session.\n", style="yellow")
    message.append("Try again in ", style="dim")
    message.append(f"{reset_seconds} {unit}", style="bold cyan")
    message.append(".", style="dim")

    return Panel(
        message,
        title="Rate Limit Exceeded",
        border_style="yellow",
        padding=(1, 2),
    )
