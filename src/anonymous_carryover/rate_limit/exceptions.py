# ABOUTME: Exception classes for rate limiting functionality.
# ABOUTME: Contains RateLimitExceeded, raised when a key has used up its sliding window.

from anonymous_carryover.errors import CarryoverError


class RateLimitExceeded(CarryoverError):
    """Exception raised when the rate limit has been exceeded.

    Attributes:
        key: The rate limit key that was throttled.
        reset_seconds: Seconds until the oldest counted request leaves the window.
    """

    def __init__(self, message: str, key: str, reset_seconds: int) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable description of the error.
            key: The rate limit key that was throttled.
            reset_seconds: Seconds until another request would be accepted.
        """
        super().__init__(message)
        self.key = key
        self.reset_seconds = reset_seconds
