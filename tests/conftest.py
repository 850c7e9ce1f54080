# ABOUTME: Shared pytest fixtures for anonymous-carryover tests.
# ABOUTME: Provides temporary databases, pinned clocks, settings, and session stores.

from pathlib import Path

import pytest

from anonymous_carryover.clock import FixedClock
from anonymous_carryover.config import Settings
from anonymous_carryover.database import DatabaseService
from anonymous_carryover.sessions import SessionStore
from helpers import T0


@pytest.fixture
def clock() -> FixedClock:
    """A clock pinned to T0 that tests can advance."""
    return FixedClock(T0)


@pytest.fixture
def settings() -> Settings:
    """Settings with the documented defaults and no random rate limit sweeps."""
    return Settings(rate_limit_sweep_probability=0.0)


@pytest.fixture
def db_service(tmp_path: Path) -> DatabaseService:
    """Create a DatabaseService with a temporary database."""
    service = DatabaseService(db_path=tmp_path / "test.db")
    service.init_db()
    return service


@pytest.fixture
def session_store(
    db_service: DatabaseService, settings: Settings, clock: FixedClock
) -> SessionStore:
    """Create a SessionStore on the temporary database."""
    return SessionStore(db_service, settings, clock=clock)
