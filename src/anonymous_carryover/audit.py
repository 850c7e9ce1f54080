# ABOUTME: Security event logging for the anonymous actions system.
# ABOUTME: Wraps an append-only audit sink so a failing sink never breaks the request path.

import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)

SESSION_CREATED = "anonymous_session_created"
SESSION_UPDATED = "anonymous_session_updated"
SESSIONS_CLEANUP = "anonymous_sessions_cleanup"


class AuditSink(Protocol):
    """Append-only log of security-relevant events."""

    def record_audit_event(
        self,
        event_type: str,
        data: dict[str, Any],
        now: int,
        subject: str = "anonymous",
    ) -> Any: ...


class SecurityEventLogger:
    """Best-effort emitter of audit events."""

    def __init__(self, sink: AuditSink) -> None:
        self._sink = sink

    def emit(
        self,
        event_type: str,
        data: dict[str, Any],
        now: int,
        subject: str = "anonymous",
    ) -> bool:
        """Write an event to the sink.

        Returns:
            True if the sink accepted the event, False if it failed. Failures
            are logged, not raised.
        """
        try:
            self._sink.record_audit_event(event_type, data, now, subject=subject)
        except Exception:
            logger.exception("[SECURITY] Failed to log security event %s", event_type)
            return False
        return True
