# ABOUTME: Coordinates token checks, rate limiting, the session store, reconciliation and sweeps.
# ABOUTME: Provides the four operations callers use: store, reconcile, summarize, sweep.

import logging
from collections import Counter
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel

from anonymous_carryover.audit import SESSION_CREATED, SESSION_UPDATED, SecurityEventLogger
from anonymous_carryover.clock import Clock, system_clock
from anonymous_carryover.config import Settings
from anonymous_carryover.database import DatabaseService
from anonymous_carryover.errors import CarryoverError, InvalidTokenFormat
from anonymous_carryover.models import parse_wire_actions
from anonymous_carryover.rate_limit import RateLimiter
from anonymous_carryover.reconcile import (
    ActionReconciler,
    IdentityResolver,
    ReconcileResult,
    SubjectIdentityResolver,
)
from anonymous_carryover.sessions import SessionStore
from anonymous_carryover.sweeper import ExpirySweeper, SweepSummary
from anonymous_carryover.tokens import TokenValidator

logger = logging.getLogger(__name__)

STORE_ACTIONS = "store_actions"


class CarryoverSummary(BaseModel):
    """Shape of a pending carryover, for display before sign-in."""

    total_actions: int
    counts_by_type: dict[str, int]
    session_created: int
    expires_at: int
    processed_at: int | None = None


class CarryoverService:
    """Entry point for buffering anonymous actions and carrying them over.

    Handles the full flow including:
    - Gating every write on a well-formed, recently minted session token
    - Throttling writes per session
    - Validating and buffering action batches
    - Reconciling sessions once the visitor signs in
    - Sweeping sessions that expired unreconciled
    """

    def __init__(
        self,
        db_service: DatabaseService,
        settings: Settings,
        clock: Clock = system_clock,
        rate_limiter: RateLimiter | None = None,
        identity_resolver: IdentityResolver | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            db_service: Database service backing sessions, history and audit events.
            settings: Application settings.
            clock: Source of the current time in epoch milliseconds.
            rate_limiter: Rate limiter for writes. Defaults to an in-memory limiter.
            identity_resolver: Resolver for authenticated subjects.
        """
        self._clock = clock
        self._tokens = TokenValidator(settings)
        self._sessions = SessionStore(db_service, settings, clock=clock)
        self._rate_limiter = (
            rate_limiter if rate_limiter is not None else RateLimiter(settings, clock=clock)
        )
        self._reconciler = ActionReconciler(
            self._sessions,
            identity_resolver if identity_resolver is not None else SubjectIdentityResolver(),
            db_service,
            clock=clock,
        )
        self._sweeper = ExpirySweeper(self._sessions, db_service, clock=clock)
        self._events = SecurityEventLogger(db_service)

    @property
    def sessions(self) -> SessionStore:
        return self._sessions

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    def store_actions(
        self,
        session_id: str,
        actions: Sequence[dict[str, Any] | BaseModel],
    ) -> int:
        """Buffer a batch of actions under an anonymous session.

        The batch is applied entirely or not at all.

        Args:
            session_id: Opaque session token supplied by the client.
            actions: Wire-format action payloads (or typed action records).

        Returns:
            The database record id of the session.

        Raises:
            InvalidTokenFormat: If the token is malformed or stale.
            RateLimitExceeded: If the session is writing too often.
            InvalidActionPayload: If an action fails schema validation.
            SessionLimitExceeded: If the batch or merged session is too large.
            InvalidTimestamp: If any action timestamp is out of range.
            SessionExpired: If the session exists but has expired.
            SessionAlreadyProcessed: If the session was already reconciled.
        """
        now = self._clock()
        if not self._tokens.validate(session_id, now):
            raise InvalidTokenFormat("Invalid session token format")

        self._rate_limiter.check_action(session_id, STORE_ACTIONS, now=now)

        raw_actions = [
            a.model_dump(mode="json", by_alias=True, exclude_none=True)
            if isinstance(a, BaseModel)
            else a
            for a in actions
        ]

        try:
            records = parse_wire_actions(session_id, raw_actions)
            outcome = self._sessions.merge(session_id, records, now)
        except CarryoverError as e:
            logger.warning("Rejected batch for session %s...: %s", session_id[:8], e)
            raise

        if outcome.created:
            self._events.emit(
                SESSION_CREATED,
                {"sessionId": session_id, "actionCount": outcome.added_actions},
                now,
                subject=session_id,
            )
        else:
            self._events.emit(
                SESSION_UPDATED,
                {
                    "sessionId": session_id,
                    "actionCount": outcome.added_actions,
                    "totalActions": outcome.total_actions,
                },
                now,
                subject=session_id,
            )
        return outcome.record_id

    def reconcile_on_sign_in(self, session_id: str, authenticated_subject: str | None) -> ReconcileResult:
        """Carry a session's actions over to a newly authenticated user.

        Raises:
            AuthenticationRequired: If no subject is authenticated.
        """
        return self._reconciler.reconcile(session_id, authenticated_subject, self._clock())

    def get_carryover_summary(self, session_id: str) -> CarryoverSummary | None:
        """Summarize a live session's buffered actions, or None if there is none."""
        session = self._sessions.get(session_id, self._clock())
        if session is None:
            return None

        counts = Counter(action.type for action in session.parsed_actions())
        return CarryoverSummary(
            total_actions=session.action_count,
            counts_by_type=dict(counts),
            session_created=session.created_at,
            expires_at=session.expires_at,
            processed_at=session.processed_at,
        )

    def sweep_expired_sessions(self) -> SweepSummary:
        """Delete expired sessions. Never raises."""
        return self._sweeper.sweep(self._clock())
