# ABOUTME: Rate limiting package for throttling anonymous and reconcile traffic.
# ABOUTME: Exports the RateLimiter service, its counter stores, and RateLimitExceeded.

from anonymous_carryover.rate_limit.exceptions import RateLimitExceeded
from anonymous_carryover.rate_limit.service import RateLimiter, RateLimitRule
from anonymous_carryover.rate_limit.store import (
    CounterStore,
    DatabaseCounterStore,
    InMemoryCounterStore,
)

__all__ = [
    "CounterStore",
    "DatabaseCounterStore",
    "InMemoryCounterStore",
    "RateLimitExceeded",
    "RateLimitRule",
    "RateLimiter",
]
