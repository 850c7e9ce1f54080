# ABOUTME: Sliding-window rate limiter keyed by subject and action kind.
# ABOUTME: Delegates counting to an injected CounterStore and sweeps abandoned keys opportunistically.

import logging
import math
import random
from dataclasses import dataclass

from anonymous_carryover.clock import Clock, system_clock
from anonymous_carryover.config import Settings
from anonymous_carryover.rate_limit.exceptions import RateLimitExceeded
from anonymous_carryover.rate_limit.store import CounterStore, InMemoryCounterStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitRule:
    """How many requests an action kind may make per window."""

    max_requests: int
    window_ms: int


class RateLimiter:
    """Service that enforces sliding-window request limits.

    Every check prunes the key's timestamps older than the window, rejects
    the request if the remaining count has reached the maximum, and records
    it otherwise. With a small probability per call it also sweeps the whole
    store, removing keys with no activity within twice their own window.

    The default InMemoryCounterStore only protects a single process. Pass a
    shared store (DatabaseCounterStore) when more than one process serves
    requests.
    """

    def __init__(
        self,
        settings: Settings,
        store: CounterStore | None = None,
        clock: Clock = system_clock,
        rng: random.Random | None = None,
        rules: dict[str, RateLimitRule] | None = None,
    ) -> None:
        """Initialize the rate limiter.

        Args:
            settings: Application settings containing rate limit defaults.
            store: Backing counter store. Defaults to a new in-memory store.
            clock: Source of the current time in epoch milliseconds.
            rng: Random source for the opportunistic sweep.
            rules: Per-action-kind overrides of the default rule.
        """
        self._settings = settings
        self._store: CounterStore = store if store is not None else InMemoryCounterStore()
        self._clock = clock
        self._rng = rng if rng is not None else random.Random()
        self._default_rule = RateLimitRule(
            max_requests=settings.rate_limit_max_requests,
            window_ms=settings.rate_limit_window_ms,
        )
        self._rules = dict(rules or {})

    @property
    def store(self) -> CounterStore:
        return self._store

    def rule_for(self, action_kind: str) -> RateLimitRule:
        """Return the rule applied to an action kind."""
        return self._rules.get(action_kind, self._default_rule)

    def check(
        self,
        key: str,
        max_requests: int,
        window_ms: int,
        now: int | None = None,
    ) -> None:
        """Check a key against its limit and record the request if allowed.

        Args:
            key: Rate limit key, usually "{subject}:{action_kind}".
            max_requests: Requests allowed inside the window.
            window_ms: Window length in milliseconds.
            now: Current time; defaults to the limiter's clock.

        Raises:
            RateLimitExceeded: If the key has already made max_requests
                requests inside the window.
        """
        if now is None:
            now = self._clock()

        oldest = self._store.check_and_record(key, now, max_requests, window_ms)
        self._maybe_sweep(now)

        if oldest is not None:
            reset_seconds = math.ceil((oldest + window_ms - now) / 1000)
            logger.warning("Rate limit exceeded for %s; resets in %ds", key, reset_seconds)
            raise RateLimitExceeded(
                f"Rate limit exceeded for {key}. Too many requests. "
                f"Try again in {reset_seconds} seconds.",
                key=key,
                reset_seconds=reset_seconds,
            )

    def check_action(self, subject: str, action_kind: str, now: int | None = None) -> None:
        """Check the configured rule for a subject performing an action kind.

        Raises:
            RateLimitExceeded: If the subject is over the limit for this kind.
        """
        rule = self.rule_for(action_kind)
        self.check(f"{subject}:{action_kind}", rule.max_requests, rule.window_ms, now=now)

    def remaining(self, subject: str, action_kind: str, now: int | None = None) -> int:
        """Return how many more requests the subject may make right now."""
        if now is None:
            now = self._clock()
        rule = self.rule_for(action_kind)
        used = self._store.count(f"{subject}:{action_kind}", now, rule.window_ms)
        return max(0, rule.max_requests - used)

    def _maybe_sweep(self, now: int) -> None:
        if self._rng.random() >= self._settings.rate_limit_sweep_probability:
            return
        try:
            removed = self._store.sweep(now)
        except Exception:
            logger.exception("Rate limit sweep failed")
            return
        if removed:
            logger.debug("Rate limit sweep removed %d idle key(s)", removed)
