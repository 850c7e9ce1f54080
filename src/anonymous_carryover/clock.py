# ABOUTME: Millisecond wall-clock helpers shared by every time-dependent component.
# ABOUTME: Components accept a Clock callable so tests can pin the current time.

import time
from collections.abc import Callable

Clock = Callable[[], int]


def system_clock() -> int:
    """Return the current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


class FixedClock:
    """A manually advanced clock.

    Useful for tests and for replaying recorded traffic.
    """

    def __init__(self, now_ms: int) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, delta_ms: int) -> int:
        """Move the clock forward and return the new time."""
        self.now_ms += delta_ms
        return self.now_ms
