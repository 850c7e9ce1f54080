# ABOUTME: SQLModel for anonymous sessions and their buffered actions.
# ABOUTME: Carries lifecycle state and a version counter for compare-and-swap writes.

from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlalchemy import JSON, BigInteger, Column
from sqlmodel import Field, SQLModel

from anonymous_carryover.models.action import ActionRecord, load_actions


class SessionState(str, Enum):
    """Lifecycle of an anonymous session."""

    ACTIVE = "active"
    PROCESSING = "processing"
    PROCESSED = "processed"


class AnonymousSession(SQLModel, table=True):
    """Buffered pre-authentication actions for one opaque session token."""

    __tablename__ = "anonymous_sessions"

    id: int | None = Field(default=None, primary_key=True)
    session_id: str = Field(unique=True, index=True)
    actions: list[dict[str, Any]] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    created_at: int = Field(sa_type=BigInteger)
    expires_at: int = Field(sa_type=BigInteger, index=True)
    processed_at: int | None = Field(default=None, sa_type=BigInteger)
    state: SessionState = Field(default=SessionState.ACTIVE)
    version: int = Field(default=1)

    @property
    def action_count(self) -> int:
        return len(self.actions)

    def parsed_actions(self) -> list[ActionRecord]:
        """Return the buffered actions as typed records, in insertion order."""
        return load_actions(self.actions)

    def is_live(self, now: int) -> bool:
        """Whether the session has not yet reached its expiry."""
        return self.expires_at > now


@dataclass(frozen=True)
class ExpiredSessionSummary:
    """What was removed when an expired session was deleted."""

    session_id: str
    action_count: int
    expires_at: int
