# ABOUTME: Periodic janitor that deletes expired anonymous sessions.
# ABOUTME: Emits one audit event per sweep and never raises to its scheduler.

import logging

from pydantic import BaseModel

from anonymous_carryover.audit import SESSIONS_CLEANUP, AuditSink, SecurityEventLogger
from anonymous_carryover.clock import Clock, system_clock
from anonymous_carryover.sessions import SessionStore

logger = logging.getLogger(__name__)


class SweepSummary(BaseModel):
    """What one sweep removed."""

    deleted_sessions: int = 0
    total_actions_removed: int = 0


class ExpirySweeper:
    """Deletes sessions nobody reconciled before they expired.

    Meant to be run on a recurring external schedule. Running it again with
    no new expirations is a no-op that reports zero deletions.
    """

    def __init__(
        self,
        session_store: SessionStore,
        audit_sink: AuditSink,
        clock: Clock = system_clock,
    ) -> None:
        self._session_store = session_store
        self._events = SecurityEventLogger(audit_sink)
        self._clock = clock

    def sweep(self, now: int | None = None) -> SweepSummary:
        """Delete expired sessions and report what was removed.

        Args:
            now: Current time; defaults to the sweeper's clock.

        Returns:
            SweepSummary. A failed sweep is logged and reported as empty.
        """
        if now is None:
            now = self._clock()

        try:
            deleted = self._session_store.delete_expired_before(now)
        except Exception:
            logger.exception("Expired session sweep failed")
            return SweepSummary()

        summary = SweepSummary(
            deleted_sessions=len(deleted),
            total_actions_removed=sum(s.action_count for s in deleted),
        )
        self._events.emit(
            SESSIONS_CLEANUP,
            {
                "deleted_sessions": summary.deleted_sessions,
                "total_actions_removed": summary.total_actions_removed,
                "cleanup_timestamp": now,
            },
            now,
        )

        if summary.deleted_sessions:
            logger.info(
                "[SECURITY] Cleaned up %d expired anonymous sessions with %d total actions",
                summary.deleted_sessions,
                summary.total_actions_removed,
            )
        return summary
