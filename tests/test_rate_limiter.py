# ABOUTME: Tests for the sliding-window RateLimiter and its counter stores.
# ABOUTME: Covers limits, reset estimates, window expiry, opportunistic sweeps, and the shared store.

import random
from unittest import mock

import pytest

from anonymous_carryover.clock import FixedClock
from anonymous_carryover.config import Settings
from anonymous_carryover.database import DatabaseService
from anonymous_carryover.rate_limit import (
    DatabaseCounterStore,
    InMemoryCounterStore,
    RateLimiter,
    RateLimitExceeded,
    RateLimitRule,
)
from helpers import HOUR_MS, T0

WINDOW_MS = 60_000


class AlwaysSweep(random.Random):
    """Random source that always falls under the sweep probability."""

    def random(self) -> float:
        return 0.0


@pytest.fixture
def rate_limiter(settings: Settings, clock: FixedClock) -> RateLimiter:
    """Create a RateLimiter with an in-memory store and no random sweeps."""
    return RateLimiter(settings, clock=clock)


class TestRateLimiterInit:
    """Tests for RateLimiter initialization."""

    def test_defaults_to_in_memory_store(self, settings: Settings) -> None:
        """Without a store argument, a fresh in-memory store is used."""
        limiter = RateLimiter(settings)
        assert isinstance(limiter.store, InMemoryCounterStore)

    def test_instances_do_not_share_state(self, settings: Settings) -> None:
        """Each limiter owns its own store; there is no global state."""
        first = RateLimiter(settings)
        second = RateLimiter(settings)
        for i in range(3):
            first.check("user:search", 3, WINDOW_MS, now=T0 + i)
        second.check("user:search", 3, WINDOW_MS, now=T0 + 3)


class TestCheck:
    """Tests for the check method."""

    def test_allows_up_to_max_requests(self, rate_limiter: RateLimiter) -> None:
        """The first max_requests calls inside the window succeed."""
        for i in range(3):
            rate_limiter.check("u1:search", 3, WINDOW_MS, now=T0 + i)

    def test_rejects_request_over_limit(self, rate_limiter: RateLimiter) -> None:
        """The fourth call inside the window is rejected."""
        for i in range(3):
            rate_limiter.check("u1:search", 3, WINDOW_MS, now=T0 + i)

        with pytest.raises(RateLimitExceeded) as exc_info:
            rate_limiter.check("u1:search", 3, WINDOW_MS, now=T0 + 3)

        assert exc_info.value.key == "u1:search"
        assert "u1:search" in str(exc_info.value)

    def test_reset_seconds_counts_from_oldest_request(self, rate_limiter: RateLimiter) -> None:
        """reset_seconds rounds up the time until the oldest request leaves the window."""
        rate_limiter.check("k", 2, WINDOW_MS, now=T0)
        rate_limiter.check("k", 2, WINDOW_MS, now=T0 + 10_000)

        with pytest.raises(RateLimitExceeded) as exc_info:
            rate_limiter.check("k", 2, WINDOW_MS, now=T0 + 20_500)

        # oldest (T0) + 60s - (T0 + 20.5s) = 39.5s -> 40
        assert exc_info.value.reset_seconds == 40

    def test_rejected_requests_are_not_counted(self, rate_limiter: RateLimiter) -> None:
        """A rejected call does not extend the window."""
        rate_limiter.check("k", 1, WINDOW_MS, now=T0)
        with pytest.raises(RateLimitExceeded):
            rate_limiter.check("k", 1, WINDOW_MS, now=T0 + 30_000)

        rate_limiter.check("k", 1, WINDOW_MS, now=T0 + WINDOW_MS)

    def test_succeeds_again_after_window(self, rate_limiter: RateLimiter) -> None:
        """Once the window has elapsed the key is accepted again."""
        for i in range(3):
            rate_limiter.check("u1:search", 3, WINDOW_MS, now=T0 + i)
        with pytest.raises(RateLimitExceeded):
            rate_limiter.check("u1:search", 3, WINDOW_MS, now=T0 + 3)

        rate_limiter.check("u1:search", 3, WINDOW_MS, now=T0 + WINDOW_MS)

    def test_keys_are_independent(self, rate_limiter: RateLimiter) -> None:
        """Exhausting one key leaves other keys untouched."""
        rate_limiter.check("u1:search", 1, WINDOW_MS, now=T0)
        rate_limiter.check("u2:search", 1, WINDOW_MS, now=T0)
        rate_limiter.check("u1:follow", 1, WINDOW_MS, now=T0)

    def test_uses_clock_when_now_omitted(self, rate_limiter: RateLimiter, clock: FixedClock) -> None:
        """The injected clock supplies the time."""
        rate_limiter.check("k", 1, WINDOW_MS)
        with pytest.raises(RateLimitExceeded):
            rate_limiter.check("k", 1, WINDOW_MS)
        clock.advance(WINDOW_MS)
        rate_limiter.check("k", 1, WINDOW_MS)


class TestCheckAction:
    """Tests for per-action-kind rules."""

    def test_default_rule_from_settings(self, settings: Settings) -> None:
        """Action kinds without an override use the configured default."""
        limiter = RateLimiter(settings)
        assert limiter.rule_for("search") == RateLimitRule(max_requests=10, window_ms=60_000)

    def test_builds_subject_and_kind_key(self, rate_limiter: RateLimiter) -> None:
        """Keys combine subject and action kind."""
        for i in range(10):
            rate_limiter.check_action("u1", "search", now=T0 + i)

        with pytest.raises(RateLimitExceeded) as exc_info:
            rate_limiter.check_action("u1", "search", now=T0 + 10)
        assert exc_info.value.key == "u1:search"

    def test_rule_override(self, settings: Settings) -> None:
        """Overrides apply only to their action kind."""
        limiter = RateLimiter(settings, rules={"follow": RateLimitRule(1, WINDOW_MS)})
        limiter.check_action("u1", "follow", now=T0)
        with pytest.raises(RateLimitExceeded):
            limiter.check_action("u1", "follow", now=T0 + 1)
        limiter.check_action("u1", "search", now=T0 + 1)

    def test_remaining(self, rate_limiter: RateLimiter) -> None:
        """remaining reports how many requests are left in the window."""
        assert rate_limiter.remaining("u1", "search", now=T0) == 10
        rate_limiter.check_action("u1", "search", now=T0)
        assert rate_limiter.remaining("u1", "search", now=T0) == 9
        assert rate_limiter.remaining("u1", "search", now=T0 + WINDOW_MS) == 10


class TestOpportunisticSweep:
    """Tests for the probabilistic sweep of abandoned keys."""

    def test_sweep_removes_idle_keys(self) -> None:
        """Keys with no timestamps inside twice the window are dropped."""
        store = InMemoryCounterStore()
        settings = Settings(rate_limit_sweep_probability=0.01)
        limiter = RateLimiter(settings, store=store, rng=AlwaysSweep())

        limiter.check("abandoned", 5, WINDOW_MS, now=T0)
        limiter.check("recent", 5, WINDOW_MS, now=T0 + WINDOW_MS)
        limiter.check("caller", 5, WINDOW_MS, now=T0 + 2 * WINDOW_MS)

        assert "abandoned" not in store
        assert "recent" in store
        assert "caller" in store

    def test_no_sweep_when_probability_zero(self, settings: Settings) -> None:
        """With probability 0 the store is never swept."""
        store = InMemoryCounterStore()
        limiter = RateLimiter(settings, store=store, rng=AlwaysSweep())

        limiter.check("abandoned", 5, WINDOW_MS, now=T0)
        limiter.check("caller", 5, WINDOW_MS, now=T0 + 10 * WINDOW_MS)

        assert "abandoned" in store

    def test_sweep_failure_does_not_affect_decision(self) -> None:
        """A failing sweep is logged and the request is still accepted."""
        store = InMemoryCounterStore()
        limiter = RateLimiter(
            Settings(rate_limit_sweep_probability=1.0), store=store, rng=AlwaysSweep()
        )

        with mock.patch.object(store, "sweep", side_effect=RuntimeError("boom")):
            limiter.check("k", 1, WINDOW_MS, now=T0)
            with pytest.raises(RateLimitExceeded):
                limiter.check("k", 1, WINDOW_MS, now=T0 + 1)


class TestInMemoryCounterStore:
    """Tests for the process-local store."""

    def test_count_ignores_old_entries(self) -> None:
        store = InMemoryCounterStore()
        store.check_and_record("k", T0, 5, WINDOW_MS)
        store.check_and_record("k", T0 + 30_000, 5, WINDOW_MS)
        assert store.count("k", T0 + WINDOW_MS, WINDOW_MS) == 1

    def test_sweep_judges_each_key_by_its_own_window(self) -> None:
        """An hourly key outlives a sweep that drops an idle per-minute key."""
        store = InMemoryCounterStore()
        store.check_and_record("hourly", T0, 5, HOUR_MS)
        store.check_and_record("minute", T0, 5, WINDOW_MS)

        removed = store.sweep(T0 + 3 * WINDOW_MS)

        assert removed == 1
        assert "minute" not in store
        assert store.count("hourly", T0 + 3 * WINDOW_MS, HOUR_MS) == 1

    def test_sweep_never_trims_a_live_key(self) -> None:
        store = InMemoryCounterStore()
        store.check_and_record("k", T0, 5, WINDOW_MS)
        store.check_and_record("k", T0 + 3 * WINDOW_MS, 5, WINDOW_MS)

        assert store.sweep(T0 + 3 * WINDOW_MS) == 0
        assert store.count("k", T0 + 3 * WINDOW_MS, 4 * WINDOW_MS) == 2


class TestDatabaseCounterStore:
    """Tests for the shared database-backed store."""

    def test_limit_shared_between_limiters(
        self, db_service: DatabaseService, settings: Settings
    ) -> None:
        """Two limiters on the same database enforce one combined limit."""
        first = RateLimiter(settings, store=DatabaseCounterStore(db_service))
        second = RateLimiter(settings, store=DatabaseCounterStore(db_service))

        first.check("u1:search", 2, WINDOW_MS, now=T0)
        second.check("u1:search", 2, WINDOW_MS, now=T0 + 1)

        with pytest.raises(RateLimitExceeded) as exc_info:
            first.check("u1:search", 2, WINDOW_MS, now=T0 + 2)
        assert exc_info.value.reset_seconds == 60

    def test_window_slides(self, db_service: DatabaseService) -> None:
        """Entries older than the window are pruned on check."""
        store = DatabaseCounterStore(db_service)
        assert store.check_and_record("k", T0, 1, WINDOW_MS) is None
        assert store.check_and_record("k", T0 + 1, 1, WINDOW_MS) == T0
        assert store.check_and_record("k", T0 + WINDOW_MS, 1, WINDOW_MS) is None

    def test_count(self, db_service: DatabaseService) -> None:
        store = DatabaseCounterStore(db_service)
        store.check_and_record("k", T0, 5, WINDOW_MS)
        store.check_and_record("k", T0 + 1, 5, WINDOW_MS)
        store.check_and_record("other", T0, 5, WINDOW_MS)
        assert store.count("k", T0 + 1, WINDOW_MS) == 2

    def test_sweep_removes_idle_keys(self, db_service: DatabaseService) -> None:
        store = DatabaseCounterStore(db_service)
        store.check_and_record("idle", T0, 5, WINDOW_MS)
        store.check_and_record("busy", T0, 5, WINDOW_MS)
        store.check_and_record("busy", T0 + 3 * WINDOW_MS, 5, WINDOW_MS)

        removed = store.sweep(T0 + 3 * WINDOW_MS)

        assert removed == 1
        assert store.count("idle", T0, WINDOW_MS) == 0
        assert store.count("busy", T0 + 3 * WINDOW_MS, 4 * WINDOW_MS) == 2

    def test_sweep_judges_each_key_by_its_own_window(self, db_service: DatabaseService) -> None:
        store = DatabaseCounterStore(db_service)
        store.check_and_record("hourly", T0, 5, HOUR_MS)
        store.check_and_record("minute", T0, 5, WINDOW_MS)

        removed = store.sweep(T0 + 3 * WINDOW_MS)

        assert removed == 1
        assert store.count("minute", T0, WINDOW_MS) == 0
        assert store.count("hourly", T0 + 3 * WINDOW_MS, HOUR_MS) == 1


class TestSweepWithMixedWindows:
    """Tests that a sweep triggered by a short-window check spares longer windows."""

    @pytest.fixture(params=["memory", "database"])
    def store(self, request: pytest.FixtureRequest, db_service: DatabaseService):
        if request.param == "memory":
            return InMemoryCounterStore()
        return DatabaseCounterStore(db_service)

    def test_hourly_limit_survives_minute_sweep(self, store) -> None:
        limiter = RateLimiter(
            Settings(rate_limit_sweep_probability=1.0), store=store, rng=AlwaysSweep()
        )
        limiter.check("u:export", 2, HOUR_MS, now=T0)
        limiter.check("u:export", 2, HOUR_MS, now=T0 + 150_000)
        limiter.check("u:search", 10, WINDOW_MS, now=T0 + 200_000)

        with pytest.raises(RateLimitExceeded):
            limiter.check("u:export", 2, HOUR_MS, now=T0 + 210_000)
