# ABOUTME: Database service for managing SQLite connections and CRUD operations.
# ABOUTME: Persists search history and audit events, and hands out sessions to the session store.

from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import event
from sqlmodel import Session, SQLModel, create_engine, select

from anonymous_carryover.models import AuditEvent, SearchHistoryEntry


class DatabaseService:
    """Service for managing database connections and operations."""

    DEFAULT_DB_PATH = Path.home() / ".anonymous-carryover" / "carryover.db"

    def __init__(self, db_path: Path | None = None) -> None:
        """Initialize the database service.

        Args:
            db_path: Path to the SQLite database file. Defaults to
                ~/.anonymous-carryover/carryover.db
        """
        self.db_path = db_path if db_path is not None else self.DEFAULT_DB_PATH
        self._engine = create_engine(
            f"sqlite:///{self.db_path}",
            echo=False,
            connect_args={"timeout": 30},
        )
        event.listen(self._engine, "connect", _enable_wal)

    @property
    def engine(self):
        return self._engine

    def init_db(self) -> None:
        """Initialize the database by creating tables and parent directories."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        SQLModel.metadata.create_all(self._engine)

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a database session as a context manager.

        Yields:
            SQLModel Session for database operations.
        """
        with Session(self._engine) as session:
            yield session

    def record_search(self, entry: SearchHistoryEntry) -> SearchHistoryEntry:
        """Append a row to a user's search history.

        Args:
            entry: The SearchHistoryEntry to save.

        Returns:
            The saved entry with ID populated.
        """
        with self.get_session() as session:
            session.add(entry)
            session.commit()
            session.refresh(entry)
            return entry

    def get_search_history(self, user_id: str, limit: int = 100) -> list[SearchHistoryEntry]:
        """Retrieve a user's search history, oldest first.

        Args:
            user_id: The authenticated user whose history to load.
            limit: Maximum number of rows to return.

        Returns:
            List of SearchHistoryEntry objects.
        """
        with self.get_session() as session:
            statement = (
                select(SearchHistoryEntry)
                .where(SearchHistoryEntry.user_id == user_id)
                .order_by(SearchHistoryEntry.timestamp, SearchHistoryEntry.id)
                .limit(limit)
            )
            return list(session.exec(statement).all())

    def record_audit_event(
        self,
        event_type: str,
        data: dict[str, Any],
        now: int,
        subject: str = "anonymous",
    ) -> AuditEvent:
        """Append a security audit event.

        Args:
            event_type: Short machine-readable event name.
            data: Event details, stored as JSON.
            now: Event time in epoch milliseconds.
            subject: Session or user the event concerns.

        Returns:
            The saved AuditEvent with ID populated.
        """
        audit_event = AuditEvent(
            event_type=event_type,
            subject=subject,
            payload={**data, "timestamp": now},
            timestamp=now,
        )
        with self.get_session() as session:
            session.add(audit_event)
            session.commit()
            session.refresh(audit_event)
            return audit_event

    def get_audit_events(self, event_type: str | None = None) -> list[AuditEvent]:
        """Retrieve audit events in the order they were written.

        Args:
            event_type: Optional event type to filter by.

        Returns:
            List of AuditEvent objects.
        """
        with self.get_session() as session:
            statement = select(AuditEvent)
            if event_type is not None:
                statement = statement.where(AuditEvent.event_type == event_type)
            statement = statement.order_by(AuditEvent.id)
            return list(session.exec(statement).all())


def _enable_wal(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()
