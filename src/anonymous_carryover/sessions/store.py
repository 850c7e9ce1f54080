# ABOUTME: Durable store for anonymous sessions with create, merge, claim and expiry semantics.
# ABOUTME: Every write is a compare-and-swap so concurrent batches and reconciles cannot interleave.

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from anonymous_carryover.clock import Clock, system_clock
from anonymous_carryover.config import Settings
from anonymous_carryover.database import DatabaseService
from anonymous_carryover.errors import (
    ConcurrentModification,
    SessionAlreadyProcessed,
    SessionExpired,
    SessionLimitExceeded,
)
from anonymous_carryover.models import (
    ActionRecord,
    AnonymousSession,
    ExpiredSessionSummary,
    SessionState,
    dump_actions,
)
from anonymous_carryover.sessions.validation import BatchValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergeOutcome:
    """Result of a successful merge."""

    session_id: str
    record_id: int
    created: bool
    added_actions: int
    total_actions: int


class SessionStore:
    """Keyed store of anonymous sessions.

    Merges are optimistic: the session is read, the new action list is
    computed, and the write only lands if the row's version is unchanged and
    the session is still active. A lost race is retried from a fresh read.
    Expired sessions are never refreshed: an attempt to merge into one
    deletes it and fails, so the next batch under that id starts afresh.
    """

    def __init__(
        self,
        db_service: DatabaseService,
        settings: Settings,
        clock: Clock = system_clock,
    ) -> None:
        """Initialize the session store.

        Args:
            db_service: Database service providing sessions on the backing store.
            settings: Application settings with session limits and lifetime.
            clock: Source of the current time in epoch milliseconds.
        """
        self._db_service = db_service
        self._settings = settings
        self._clock = clock
        self._validator = BatchValidator(settings)

    @property
    def validator(self) -> BatchValidator:
        return self._validator

    def create(self, session_id: str, actions: Sequence[ActionRecord], now: int | None = None) -> str:
        """Create a new session holding actions.

        Args:
            session_id: Opaque session token.
            actions: Initial actions, validated as one batch.
            now: Current time; defaults to the store's clock.

        Returns:
            The session id.

        Raises:
            SessionLimitExceeded: If more actions than a session may hold are given.
            InvalidTimestamp: If any action timestamp is out of range.
            ConcurrentModification: If a session with this id already exists.
        """
        if now is None:
            now = self._clock()
        self._validator.validate_batch(actions, now)
        if self._insert(session_id, actions, now) is None:
            raise ConcurrentModification(f"Session {_short(session_id)} already exists")
        return session_id

    def merge(
        self, session_id: str, new_actions: Sequence[ActionRecord], now: int | None = None
    ) -> MergeOutcome:
        """Append a batch to a session, creating the session if needed.

        Args:
            session_id: Opaque session token.
            new_actions: Actions to append, in client order.
            now: Current time; defaults to the store's clock.

        Returns:
            MergeOutcome describing the stored session.

        Raises:
            SessionExpired: If the session exists but its expiry has passed. The
                expired session is deleted.
            SessionAlreadyProcessed: If the session was claimed for reconciliation.
            SessionLimitExceeded: If the merged session would exceed the cap.
            InvalidTimestamp: If any action timestamp is out of range.
            ConcurrentModification: If every compare-and-swap attempt lost a race.
        """
        if now is None:
            now = self._clock()
        self._validator.check_size(len(new_actions))

        for _attempt in range(self._settings.merge_retry_attempts):
            existing = self._load(session_id)

            if existing is None:
                self._validator.validate_batch(new_actions, now)
                record_id = self._insert(session_id, new_actions, now)
                if record_id is not None:
                    logger.info(
                        "Created anonymous session %s with %d action(s)",
                        _short(session_id),
                        len(new_actions),
                    )
                    return MergeOutcome(
                        session_id=session_id,
                        record_id=record_id,
                        created=True,
                        added_actions=len(new_actions),
                        total_actions=len(new_actions),
                    )
                continue

            if not existing.is_live(now):
                self._discard(existing)
                logger.info("Discarded expired session %s on merge", _short(session_id))
                raise SessionExpired("Session expired")
            if existing.state != SessionState.ACTIVE:
                raise SessionAlreadyProcessed("Session has already been reconciled")

            self._validator.validate_batch(new_actions, now)

            merged = existing.actions + dump_actions(list(new_actions))
            if len(merged) > self._validator.max_actions:
                raise SessionLimitExceeded(
                    "Session action limit exceeded", limit=self._validator.max_actions
                )

            record_id = self._compare_and_swap(existing, merged, now)
            if record_id is not None:
                logger.info(
                    "Merged %d action(s) into session %s (%d total)",
                    len(new_actions),
                    _short(session_id),
                    len(merged),
                )
                return MergeOutcome(
                    session_id=session_id,
                    record_id=record_id,
                    created=False,
                    added_actions=len(new_actions),
                    total_actions=len(merged),
                )

            logger.debug("Lost merge race on session %s, retrying", _short(session_id))

        raise ConcurrentModification(
            f"Session {_short(session_id)} changed concurrently; giving up after "
            f"{self._settings.merge_retry_attempts} attempts"
        )

    def get(self, session_id: str, now: int | None = None) -> AnonymousSession | None:
        """Return the session if it exists and has not expired.

        Expired sessions read as missing; nothing is evicted here.
        """
        if now is None:
            now = self._clock()
        existing = self._load(session_id)
        if existing is None or not existing.is_live(now):
            return None
        return existing

    def claim(self, session_id: str, now: int | None = None) -> AnonymousSession | None:
        """Atomically move a live, active session into the processing state.

        Only one caller can win the claim for a given session.

        Returns:
            The claimed session as of the claim, or None if it is missing,
            expired, or already claimed.
        """
        if now is None:
            now = self._clock()
        statement = (
            update(AnonymousSession)
            .where(
                AnonymousSession.session_id == session_id,
                AnonymousSession.state == SessionState.ACTIVE,
                AnonymousSession.expires_at > now,
            )
            .values(
                state=SessionState.PROCESSING,
                version=AnonymousSession.version + 1,
            )
        )
        with self._db_service.get_session() as session:
            result = session.connection().execute(statement)
            if result.rowcount != 1:
                session.rollback()
                return None
            claimed = session.exec(
                select(AnonymousSession).where(AnonymousSession.session_id == session_id)
            ).one()
            session.commit()
            session.refresh(claimed)
            return claimed

    def mark_processed(self, session_id: str, now: int | None = None) -> None:
        """Record that a session's actions have been reconciled."""
        if now is None:
            now = self._clock()
        statement = (
            update(AnonymousSession)
            .where(
                AnonymousSession.session_id == session_id,
                AnonymousSession.processed_at.is_(None),  # type: ignore[union-attr]
            )
            .values(
                state=SessionState.PROCESSED,
                processed_at=now,
                version=AnonymousSession.version + 1,
            )
        )
        with self._db_service.get_session() as session:
            session.connection().execute(statement)
            session.commit()

    def delete_expired_before(self, now: int | None = None) -> list[ExpiredSessionSummary]:
        """Delete every session whose expiry is strictly before now.

        Returns:
            One summary per deleted session.
        """
        if now is None:
            now = self._clock()
        with self._db_service.get_session() as session:
            expired = session.exec(
                select(AnonymousSession).where(AnonymousSession.expires_at < now)
            ).all()
            summaries = [
                ExpiredSessionSummary(
                    session_id=record.session_id,
                    action_count=record.action_count,
                    expires_at=record.expires_at,
                )
                for record in expired
            ]
            for record in expired:
                session.delete(record)
            session.commit()
        return summaries

    def _discard(self, existing: AnonymousSession) -> None:
        statement = delete(AnonymousSession).where(
            AnonymousSession.id == existing.id,
            AnonymousSession.version == existing.version,
        )
        with self._db_service.get_session() as session:
            session.connection().execute(statement)
            session.commit()

    def _load(self, session_id: str) -> AnonymousSession | None:
        with self._db_service.get_session() as session:
            statement = select(AnonymousSession).where(AnonymousSession.session_id == session_id)
            return session.exec(statement).first()

    def _insert(self, session_id: str, actions: Sequence[ActionRecord], now: int) -> int | None:
        record = AnonymousSession(
            session_id=session_id,
            actions=dump_actions(list(actions)),
            created_at=now,
            expires_at=now + self._settings.session_expiration_ms,
        )
        with self._db_service.get_session() as session:
            session.add(record)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                return None
            session.refresh(record)
            return record.id

    def _compare_and_swap(
        self, existing: AnonymousSession, merged: list[dict], now: int
    ) -> int | None:
        """Write merged actions if the row is unchanged; return its id on success."""
        statement = (
            update(AnonymousSession)
            .where(
                AnonymousSession.id == existing.id,
                AnonymousSession.version == existing.version,
                AnonymousSession.state == SessionState.ACTIVE,
            )
            .values(
                actions=merged,
                expires_at=now + self._settings.session_expiration_ms,
                version=existing.version + 1,
            )
            .returning(AnonymousSession.id)
        )
        with self._db_service.get_session() as session:
            record_id = session.connection().execute(statement).scalar_one_or_none()
            session.commit()
            return record_id


def _short(session_id: str) -> str:
    return f"{session_id[:8]}..."
