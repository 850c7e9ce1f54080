# ABOUTME: Models package for carryover data structures.
# ABOUTME: Exports typed action records and the SQLModel tables.

from anonymous_carryover.models.action import (
    ActionRecord,
    ActionType,
    FollowAttemptAction,
    LikeContentAction,
    RatingAttemptAction,
    SearchAction,
    SearchData,
    ViewContentAction,
    dump_actions,
    load_action,
    load_actions,
    parse_wire_actions,
)
from anonymous_carryover.models.audit import AUDIT_SOURCE, AuditEvent
from anonymous_carryover.models.rate_limit import RateLimitHit
from anonymous_carryover.models.search_history import CARRYOVER_CATEGORY, SearchHistoryEntry
from anonymous_carryover.models.session import (
    AnonymousSession,
    ExpiredSessionSummary,
    SessionState,
)

__all__ = [
    "AUDIT_SOURCE",
    "CARRYOVER_CATEGORY",
    "ActionRecord",
    "ActionType",
    "AnonymousSession",
    "AuditEvent",
    "ExpiredSessionSummary",
    "FollowAttemptAction",
    "LikeContentAction",
    "RateLimitHit",
    "RatingAttemptAction",
    "SearchAction",
    "SearchData",
    "SearchHistoryEntry",
    "SessionState",
    "ViewContentAction",
    "dump_actions",
    "load_action",
    "load_actions",
    "parse_wire_actions",
]
