# ABOUTME: Anonymous session package: batch validation and the durable session store.
# ABOUTME: Exports SessionStore, BatchValidator and their result types.

from anonymous_carryover.sessions.store import MergeOutcome, SessionStore
from anonymous_carryover.sessions.validation import BatchValidator, TimestampViolation

__all__ = ["BatchValidator", "MergeOutcome", "SessionStore", "TimestampViolation"]
