# ABOUTME: Backing stores for sliding-window rate limit counters.
# ABOUTME: In-memory store for one process, database store for limits shared across processes.

import threading
from typing import Protocol

from sqlalchemy import delete, func
from sqlmodel import select

from anonymous_carryover.database import DatabaseService
from anonymous_carryover.models import RateLimitHit


class CounterStore(Protocol):
    """Storage for accepted-request timestamps, keyed by rate limit key.

    Implementations must make check_and_record atomic per key. A store that
    is only atomic within one process (InMemoryCounterStore) gives a correct
    limit only when a single process serves all requests; deployments with
    several processes need a shared store such as DatabaseCounterStore.
    """

    def check_and_record(self, key: str, now: int, max_requests: int, window_ms: int) -> int | None:
        """Prune, count and conditionally record a request.

        Returns:
            None if the request was accepted and recorded, otherwise the
            oldest timestamp still inside the window.
        """
        ...

    def count(self, key: str, now: int, window_ms: int) -> int:
        """Return how many requests for key fall inside the window."""
        ...

    def sweep(self, now: int) -> int:
        """Drop keys idle for at least twice their own window.

        A key is kept whole or removed whole; timestamps of a key that is
        still in use are never trimmed here.

        Returns:
            Number of keys removed.
        """
        ...


class InMemoryCounterStore:
    """Process-local counter store guarded by a lock."""

    def __init__(self) -> None:
        self._buckets: dict[str, list[int]] = {}
        self._windows: dict[str, int] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._buckets)

    def __contains__(self, key: object) -> bool:
        return key in self._buckets

    def check_and_record(self, key: str, now: int, max_requests: int, window_ms: int) -> int | None:
        window_start = now - window_ms
        with self._lock:
            self._windows[key] = max(window_ms, self._windows.get(key, 0))
            timestamps = [t for t in self._buckets.get(key, []) if t > window_start]
            if len(timestamps) >= max_requests:
                self._buckets[key] = timestamps
                return min(timestamps)
            timestamps.append(now)
            self._buckets[key] = timestamps
            return None

    def count(self, key: str, now: int, window_ms: int) -> int:
        window_start = now - window_ms
        with self._lock:
            return sum(1 for t in self._buckets.get(key, []) if t > window_start)

    def sweep(self, now: int) -> int:
        removed = 0
        with self._lock:
            for key, timestamps in list(self._buckets.items()):
                idle_before = now - 2 * self._windows.get(key, 0)
                if not timestamps or max(timestamps) <= idle_before:
                    del self._buckets[key]
                    self._windows.pop(key, None)
                    removed += 1
        return removed


class DatabaseCounterStore:
    """Counter store shared by every process using the same database.

    Each check runs in one transaction that starts with a write (pruning the
    key), so SQLite takes its write lock before counting and concurrent
    checks for any key are serialized. Every row carries the window it was
    counted against so sweeps judge each key by its own window.
    """

    def __init__(self, db_service: DatabaseService) -> None:
        self._db_service = db_service

    def check_and_record(self, key: str, now: int, max_requests: int, window_ms: int) -> int | None:
        with self._db_service.get_session() as session:
            session.connection().execute(
                delete(RateLimitHit).where(
                    RateLimitHit.key == key,
                    RateLimitHit.timestamp <= now - window_ms,
                )
            )
            statement = (
                select(RateLimitHit.timestamp)
                .where(RateLimitHit.key == key)
                .order_by(RateLimitHit.timestamp)
            )
            timestamps = list(session.exec(statement).all())
            if len(timestamps) >= max_requests:
                session.commit()
                return timestamps[0]

            session.add(RateLimitHit(key=key, timestamp=now, window_ms=window_ms))
            session.commit()
            return None

    def count(self, key: str, now: int, window_ms: int) -> int:
        with self._db_service.get_session() as session:
            statement = (
                select(func.count())
                .select_from(RateLimitHit)
                .where(RateLimitHit.key == key, RateLimitHit.timestamp > now - window_ms)
            )
            return session.exec(statement).one()

    def sweep(self, now: int) -> int:
        with self._db_service.get_session() as session:
            stale_keys = list(
                session.exec(
                    select(RateLimitHit.key)
                    .group_by(RateLimitHit.key)
                    .having(
                        func.max(RateLimitHit.timestamp)
                        <= now - 2 * func.max(RateLimitHit.window_ms)
                    )
                ).all()
            )
            if stale_keys:
                # Rows recorded after the select keep their key alive.
                session.connection().execute(
                    delete(RateLimitHit).where(
                        RateLimitHit.key.in_(stale_keys),  # type: ignore[attr-defined]
                        RateLimitHit.timestamp <= now - 2 * RateLimitHit.window_ms,
                    )
                )
            session.commit()
            return len(stale_keys)
