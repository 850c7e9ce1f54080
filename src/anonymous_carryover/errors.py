# ABOUTME: Exception hierarchy for anonymous session ingestion and reconciliation.
# ABOUTME: Every rejection raised to callers of store_actions inherits from CarryoverError.

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from anonymous_carryover.sessions.validation import TimestampViolation


class CarryoverError(Exception):
    """Base exception for all carryover errors.

    All custom exceptions inherit from this class so callers can handle
    any rejected ingestion with a single except clause.
    """

    pass


class InvalidTokenFormat(CarryoverError):
    """Raised when a session token fails structural or temporal validation."""

    pass


class InvalidActionPayload(CarryoverError):
    """Raised when an incoming action does not match its wire schema."""

    pass


class InvalidTimestamp(CarryoverError):
    """Raised when one or more actions in a batch fall outside the skew window.

    Attributes:
        violations: One entry per offending action, in batch order.
    """

    def __init__(self, violations: list["TimestampViolation"]) -> None:
        indexes = ", ".join(str(v.index) for v in violations)
        super().__init__(f"Invalid action timestamp at batch position(s): {indexes}")
        self.violations = violations


class SessionLimitExceeded(CarryoverError):
    """Raised when a session would hold more actions than allowed."""

    def __init__(self, message: str, limit: int) -> None:
        super().__init__(message)
        self.limit = limit


class SessionExpired(CarryoverError):
    """Raised when merging into a session whose expiry has passed."""

    pass


class SessionAlreadyProcessed(CarryoverError):
    """Raised when merging into a session that has been claimed for reconciliation."""

    pass


class ConcurrentModification(CarryoverError):
    """Raised when a merge keeps losing compare-and-swap races."""

    pass


class AuthenticationRequired(CarryoverError):
    """Raised when reconciliation is attempted without an authenticated subject."""

    pass

