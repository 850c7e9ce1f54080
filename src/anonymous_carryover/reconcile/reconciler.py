# ABOUTME: Drains an anonymous session's buffered actions into authenticated side effects.
# ABOUTME: Claims the session first so concurrent or repeated reconciles cannot double-apply.

import logging
from typing import Any, Protocol

from anonymous_carryover.clock import Clock, system_clock
from anonymous_carryover.models import (
    CARRYOVER_CATEGORY,
    ActionRecord,
    SearchAction,
    SearchHistoryEntry,
    load_action,
)
from anonymous_carryover.reconcile.identity import IdentityResolver
from anonymous_carryover.reconcile.results import (
    ActionFailure,
    ActionResult,
    ActionSuccess,
    ReconcileReason,
    ReconcileResult,
)
from anonymous_carryover.sessions import SessionStore

logger = logging.getLogger(__name__)


class SearchHistorySink(Protocol):
    """Append-only search history, keyed by authenticated user."""

    def record_search(self, entry: SearchHistoryEntry) -> SearchHistoryEntry: ...


class ActionReconciler:
    """Converts a session's buffered actions into authenticated side effects.

    Views, likes, rating attempts and follow attempts are acknowledged as
    tracked and create nothing. Searches become rows in the user's search
    history. Each action is processed in isolation: a failure is recorded in
    the result and the next action still runs.
    """

    def __init__(
        self,
        session_store: SessionStore,
        identity_resolver: IdentityResolver,
        search_history: SearchHistorySink,
        clock: Clock = system_clock,
    ) -> None:
        """Initialize the reconciler.

        Args:
            session_store: Store holding the buffered sessions.
            identity_resolver: Turns the authenticated subject into a user id.
            search_history: Sink receiving carried-over searches.
            clock: Source of the current time in epoch milliseconds.
        """
        self._session_store = session_store
        self._identity_resolver = identity_resolver
        self._search_history = search_history
        self._clock = clock

    def reconcile(
        self,
        session_id: str,
        authenticated_subject: str | None,
        now: int | None = None,
    ) -> ReconcileResult:
        """Fold a session's actions into the subject's account.

        Args:
            session_id: The anonymous session to drain.
            authenticated_subject: Subject reported by the identity provider.
            now: Current time; defaults to the reconciler's clock.

        Returns:
            ReconcileResult. success is False only when the session is missing,
            expired, or already claimed by another reconcile.

        Raises:
            AuthenticationRequired: If no subject is authenticated.
        """
        if now is None:
            now = self._clock()
        user_id = self._identity_resolver.resolve(authenticated_subject)

        if self._session_store.get(session_id, now) is None:
            return ReconcileResult(success=False, reason=ReconcileReason.NOT_FOUND_OR_EXPIRED)

        claimed = self._session_store.claim(session_id, now)
        if claimed is None:
            if self._session_store.get(session_id, now) is None:
                return ReconcileResult(success=False, reason=ReconcileReason.NOT_FOUND_OR_EXPIRED)
            logger.info("Session %s... already claimed; skipping", session_id[:8])
            return ReconcileResult(success=False, reason=ReconcileReason.ALREADY_PROCESSED)

        results = [self._process(raw, user_id) for raw in claimed.actions]
        processed_count = sum(1 for r in results if isinstance(r, ActionSuccess))

        self._session_store.mark_processed(session_id, now)

        logger.info(
            "Reconciled session %s... for %s: %d/%d action(s)",
            session_id[:8],
            user_id,
            processed_count,
            len(results),
        )
        return ReconcileResult(
            success=True,
            processed_count=processed_count,
            total_actions=len(results),
            per_action_results=results,
        )

    def _process(self, raw: dict[str, Any], user_id: str) -> ActionResult:
        try:
            action = load_action(raw)
            return self._apply(action, user_id)
        except Exception as e:
            action_type = str(raw.get("type", "unknown"))
            logger.warning("Failed to process action %s: %s", action_type, e)
            return ActionFailure(
                type=action_type,
                target_id=str(raw.get("targetId", "")),
                error=str(e) or type(e).__name__,
            )

    def _apply(self, action: ActionRecord, user_id: str) -> ActionSuccess:
        if isinstance(action, SearchAction):
            self._search_history.record_search(
                SearchHistoryEntry(
                    user_id=user_id,
                    query=action.search_query,
                    timestamp=action.timestamp,
                    result_count=0,
                    category=CARRYOVER_CATEGORY,
                )
            )
            return ActionSuccess(
                type=action.type, target_id=action.target_id, status="added_to_history"
            )

        return ActionSuccess(type=action.type, target_id=action.target_id, status="tracked")
