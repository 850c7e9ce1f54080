# ABOUTME: Database statistics functionality for the status command.
# ABOUTME: Aggregates session lifecycle counts, buffered actions, carried-over searches and audits.

from typing import Any

from sqlmodel import func, select

from anonymous_carryover.database.service import DatabaseService
from anonymous_carryover.models import (
    CARRYOVER_CATEGORY,
    AnonymousSession,
    AuditEvent,
    SearchHistoryEntry,
)


def get_database_stats(db_service: DatabaseService, now: int) -> dict[str, Any]:
    """Get statistics about stored sessions and carryover side effects.

    Args:
        db_service: The DatabaseService instance to query.
        now: Current time in epoch milliseconds, used to tell live from expired.

    Returns:
        Dictionary containing:
            - total_sessions: Number of stored anonymous sessions
            - live_sessions: Sessions whose expiry is still in the future
            - expired_sessions: Sessions awaiting the sweeper
            - state_distribution: Dict mapping session state to count
            - buffered_actions: Actions held by live, unprocessed sessions
            - carryover_searches: Search history rows created by reconciliation
            - audit_events: Total audit events recorded
    """
    with db_service.get_session() as session:
        total_sessions = session.exec(select(func.count()).select_from(AnonymousSession)).one()

        live_stmt = (
            select(func.count())
            .select_from(AnonymousSession)
            .where(AnonymousSession.expires_at > now)
        )
        live_sessions = session.exec(live_stmt).one()

        state_stmt = select(AnonymousSession.state, func.count()).group_by(
            AnonymousSession.state  # type: ignore[arg-type]
        )
        state_distribution = {
            getattr(state, "value", state): count for state, count in session.exec(state_stmt).all()
        }

        # Action lists are JSON, so they are counted client-side.
        buffered_stmt = select(AnonymousSession.actions).where(
            AnonymousSession.expires_at > now,
            AnonymousSession.processed_at.is_(None),  # type: ignore[union-attr]
        )
        buffered_actions = sum(len(actions) for actions in session.exec(buffered_stmt).all())

        searches_stmt = (
            select(func.count())
            .select_from(SearchHistoryEntry)
            .where(SearchHistoryEntry.category == CARRYOVER_CATEGORY)
        )
        carryover_searches = session.exec(searches_stmt).one()

        audit_events = session.exec(select(func.count()).select_from(AuditEvent)).one()

    return {
        "total_sessions": total_sessions,
        "live_sessions": live_sessions,
        "expired_sessions": total_sessions - live_sessions,
        "state_distribution": state_distribution,
        "buffered_actions": buffered_actions,
        "carryover_searches": carryover_searches,
        "audit_events": audit_events,
    }
